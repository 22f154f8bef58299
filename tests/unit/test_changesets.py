"""Unit tests for change set bucketing and merging."""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from shopctl.exceptions import ThemeOperationError
from shopctl.models import EPOCH, Asset, AssetVersion, Page, Theme
from shopctl.sync.changesets import ChangeKey, ChangeSet, ancestor_assets, get_change_sets, is_ancestor


def at(seconds: int) -> str:
    return (datetime(2021, 3, 1, tzinfo=timezone.utc) + timedelta(seconds=seconds)).isoformat()


class TestChangeKey:
    """Test cases for ChangeKey."""

    def test_asset_string(self):
        change = ChangeKey("layout/theme.liquid", 12, "dawn", 3)

        assert change.is_asset is True
        assert str(change) == "12~dawn~layout/theme.liquid@3"

    def test_content_string(self):
        change = ChangeKey("pages/about.html")

        assert change.is_asset is False
        assert str(change) == "pages/about.html"

    def test_identity_ignores_theme_id_and_version(self):
        assert ChangeKey("a", 1, "dawn", 1).identity == ChangeKey("a", 2, "dawn", 5).identity


class TestChangeSet:
    """Test cases for bucketing and merging."""

    def test_changes_at_the_same_time_share_a_bucket(self):
        change_set = ChangeSet()
        change_set.add(at(0), ChangeKey("a"))
        change_set.add(at(0), ChangeKey("b"))

        assert len(change_set) == 1
        assert len(change_set.keys()) == 1

    def test_unparseable_time_lands_on_epoch(self):
        change_set = ChangeSet()
        change_set.add("not a time", ChangeKey("a"))

        assert change_set.keys() == [EPOCH]

    def test_nearby_changes_merge(self):
        change_set = ChangeSet()
        change_set.add(at(0), ChangeKey("a"))
        change_set.add(at(30), ChangeKey("b"))

        change_set.merge_adjacent()

        buckets = list(change_set)
        assert len(buckets) == 1
        assert buckets[0].key == "2021-03-01T00:00:00.000Z"
        assert buckets[0].latest == datetime(2021, 3, 1, 0, 0, 30, tzinfo=timezone.utc)

    def test_same_resource_twice_stays_separate(self):
        change_set = ChangeSet()
        change_set.add(at(0), ChangeKey("a"))
        change_set.add(at(30), ChangeKey("a"))

        change_set.merge_adjacent()

        assert len(change_set) == 2

    def test_shared_key_blocks_merge(self):
        change_set = ChangeSet()
        change_set.add(at(0), ChangeKey("a"))
        change_set.add(at(10), ChangeKey("a"))
        change_set.add(at(10), ChangeKey("b"))

        change_set.merge_adjacent()

        assert [len(b.changes) for b in change_set] == [1, 2]

    def test_window_is_measured_from_latest_change(self):
        change_set = ChangeSet()
        for i, key in enumerate(["a", "b", "c", "d"]):
            change_set.add(at(i * 50), ChangeKey(key))

        change_set.merge_adjacent()

        # each step is within the window of the previous change
        assert len(change_set) == 1

    def test_distant_changes_stay_separate(self):
        change_set = ChangeSet()
        change_set.add(at(0), ChangeKey("a"))
        change_set.add(at(61), ChangeKey("b"))

        change_set.merge_adjacent()

        assert len(change_set) == 2

    def test_merge_keeps_every_identifier(self):
        change_set = ChangeSet()
        for i, key in enumerate(["a", "b", "a", "c", "b", "d"]):
            change_set.add(at(i * 20), ChangeKey(key, 1, "dawn", i))
        before = change_set.identifiers()

        change_set.merge_adjacent()

        assert change_set.identifiers() == before

    def test_to_dict_is_chronological(self):
        change_set = ChangeSet()
        change_set.add(at(300), ChangeKey("b"))
        change_set.add(at(0), ChangeKey("a"))

        assert list(change_set.to_dict().values()) == [["a"], ["b"]]


class TestAncestors:
    """Test cases for the ancestor theme guess."""

    def test_is_ancestor(self):
        target = Theme(id=1, name="Dawn", theme_store_id=887, created_at=at(100))

        assert is_ancestor(target, target) is True
        assert is_ancestor(Theme(id=2, name="Old", theme_store_id=887, created_at=at(0)), target) is True
        assert is_ancestor(Theme(id=3, name="Newer", theme_store_id=887, created_at=at(200)), target) is False
        assert is_ancestor(Theme(id=4, name="Other", theme_store_id=1, created_at=at(0)), target) is False

    def test_ancestor_assets_drop_later_versions(self):
        theme = Theme(id=2, name="Old", assets=[
            Asset(key="layout/theme.liquid", created_at=at(0), versions=[
                AssetVersion(version=1, created_at=at(500)),
                AssetVersion(version=2, created_at=at(50)),
                AssetVersion(version=3, created_at=at(500)),
            ]),
            Asset(key="assets/new.css", created_at=at(500)),
        ])

        assets = ancestor_assets(theme, datetime.fromisoformat(at(100)))

        assert [a.key for a in assets] == ["layout/theme.liquid"]
        assert [v.version for v in assets[0].versions] == [1, 2]


class TestGetChangeSets:
    """Test cases for change set reconstruction from the store."""

    def test_unknown_theme(self):
        store = Mock()
        store.get_theme.return_value = None

        with pytest.raises(ThemeOperationError):
            get_change_sets(store, "missing")

    def test_assets_and_pages(self):
        target = Theme(id=1, name="Dawn", role="main", created_at=at(0))
        detailed = target.model_copy(update={"assets": [
            Asset(key="layout/theme.liquid", created_at=at(0), versions=[
                AssetVersion(version=1, created_at=at(1000)),
                AssetVersion(version=2, created_at=at(600)),
            ]),
            Asset(key="assets/logo.png", updated_at=at(5000)),
        ]})
        store = Mock()
        store.get_theme.return_value = target
        store.list_themes.return_value = [target]
        store.list_assets.return_value = detailed
        store.list_pages.return_value = [Page(handle="about", updated_at=at(5010), published_at=at(0))]

        change_set = get_change_sets(store, target, ["assets", "pages"])

        assert change_set.to_dict() == {
            "2021-03-01T00:00:00.000Z": ["1~dawn~layout/theme.liquid@1"],
            "2021-03-01T00:10:00.000Z": ["1~dawn~layout/theme.liquid@2"],
            "2021-03-01T01:23:20.000Z": ["1~dawn~assets/logo.png", "pages/about.html"],
        }
        store.list_menus.assert_not_called()
        store.list_assets.assert_called_once_with(target, include_versions=True)
