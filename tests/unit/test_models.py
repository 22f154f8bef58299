"""Unit tests for the resource models and their helpers."""

from datetime import datetime, timezone

import pytest

from shopctl.models import (
    Asset,
    Blog,
    Article,
    Menu,
    Page,
    Product,
    ProductImage,
    Theme,
    draft_key,
    format_timestamp,
    handle_name,
    parse_timestamp,
)


class TestHandleName:
    """Test cases for handle normalization."""

    def test_strips_accents_and_punctuation(self):
        assert handle_name("Café Dé!") == "cafe_de"

    @pytest.mark.parametrize("name", ["Café Dé!", "  Summer Sale 2024 ", "[DEV] me@host/feature-x", "déjà_vu", "---"])
    def test_idempotent(self, name):
        once = handle_name(name)
        assert handle_name(once) == once

    def test_keeps_dashes_and_underscores(self):
        assert handle_name("my-theme_v2") == "my-theme_v2"

    def test_dev_theme_name(self):
        assert handle_name("[DEV] me@host/feature") == "dev_me_host_feature"


class TestTimestamps:
    """Test cases for timestamp parsing and formatting."""

    def test_parse_zulu(self):
        assert parse_timestamp("2024-01-01T00:00:30Z") == datetime(2024, 1, 1, 0, 0, 30, tzinfo=timezone.utc)

    def test_parse_offset(self):
        parsed = parse_timestamp("2024-01-01T02:00:00+02:00")
        assert parsed == datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_timestamp("2024-01-01T00:00:00").tzinfo is not None

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_unparseable(self, value):
        assert parse_timestamp(value) is None

    def test_format(self):
        value = datetime(2024, 1, 1, 12, 30, 5, 123456, tzinfo=timezone.utc)
        assert format_timestamp(value) == "2024-01-01T12:30:05.123Z"


class TestModels:
    """Test cases for resource models."""

    def test_theme_handle_is_derived(self):
        theme = Theme(id=1, name="Summer Sale", role="main")

        assert theme.handle == "summer_sale"
        assert theme.is_main is True

    def test_theme_keeps_unknown_attributes(self):
        theme = Theme(id=1, name="Dawn", previewable=True)

        assert theme.to_payload()["previewable"] is True

    def test_asset_defaults(self):
        asset = Asset(key="layout/theme.liquid")

        assert asset.versions == []
        assert asset.version is None

    def test_draft_key(self):
        assert draft_key("about", "2024-01-01T00:00:00Z") == "about"
        assert draft_key("about", None) == "drafts/about"

    def test_page_path(self):
        assert Page(handle="about", published_at="2024-01-01T00:00:00Z").path == "pages/about"
        assert Page(handle="secret").path == "pages/drafts/secret"

    def test_article_path(self):
        blog = Blog(id=1, handle="news")
        article = Article(id=2, handle="launch")

        assert blog.article_path(article) == "blogs/news/drafts/launch"

    def test_menu_items_nest(self):
        menu = Menu(
            id=1,
            handle="main-menu",
            items=[{"title": "Shop", "items": [{"title": "Shirts", "type": "collection", "subject": "shirts"}]}],
        )

        assert menu.path == "menus/main-menu"
        assert menu.items[0].items[0].subject == "shirts"

    @pytest.mark.parametrize("src,expected", [
        ("https://cdn.shopify.com/s/files/1/0716/7497/products/soap-dish-2.jpg?v=1605121789", "soap-dish-2.jpg"),
        ("//cdn.shopify.com/products/mug.png", "mug.png"),
        ("https://cdn.shopify.com/products/", None),
        (None, None),
    ])
    def test_product_image_handle(self, src, expected):
        assert ProductImage(src=src).handle == expected

    def test_product_image_key(self):
        product = Product(handle="soap-dish")
        image = ProductImage(src="https://cdn.shopify.com/products/soap-dish.jpg?v=1")

        assert product.key == "products/soap-dish"
        assert product.image_key(image) == "products/soap-dish/soap-dish.jpg"

    @pytest.mark.parametrize("options,expected", [
        ([], False),
        ([{"name": "Title", "values": ["Default Title"]}], False),
        ([{"name": "Size", "values": ["S", "L"]}], True),
        ([{"name": "Title", "values": ["Custom"]}], True),
        ([{"name": "Title", "values": ["Default Title"]}, {"name": "Color", "values": ["Red"]}], True),
    ])
    def test_product_has_variants(self, options, expected):
        assert Product(handle="p", options=options).has_variants is expected
