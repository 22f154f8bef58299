"""Product catalogue export.

Products are pulled into ``products/products.csv`` in the store's own
product import format, one row per variant, with each product's images
saved below ``products/<handle>/``. The export is pull-only.
"""

import json
import logging
from functools import partial
from pathlib import Path
from typing import Any, List

from ..models import EPOCH, Product, ProductImage, parse_timestamp
from ..store import ShopifyStore
from .files import LocalFileIndex, delete_file, md5_bytes, md5_file, save_file
from .redirects import write_csv
from .report import SyncOptions, SyncReport, SyncTask, run_batch

logger = logging.getLogger(__name__)

PRODUCTS_DIR = "products"
PRODUCTS_FILE = "products/products.csv"
PRODUCTS_HEADER = [
    "Handle", "Title", "Body (HTML)", "Vendor", "Type", "Tags", "Published",
    "Option1 Name", "Option1 Value", "Option2 Name", "Option2 Value", "Option3 Name", "Option3 Value",
    "Variant SKU", "Variant Inventory Policy", "Variant Fulfillment Service",
    "Variant Price", "Variant Compare At Price", "Variant Requires Shipping", "Variant Taxable", "Variant Barcode",
    "Image Src", "Image Alt Text", "Variant Weight", "Variant Weight Unit", "Status",
]


def csv_value(value: Any) -> str:
    """Cell text; empty for missing or false values."""
    if not value:
        return ""
    if value is True:
        return "true"
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    if isinstance(value, str):
        return value
    return str(value).strip()


def _by_position(items: List[Any]) -> List[Any]:
    return sorted(items, key=lambda item: item.position or 0)


def product_rows(product: Product) -> List[List[str]]:
    """One CSV row per variant, ordered by variant position."""
    options = _by_position(product.options)
    names = [option.name for option in options] + [None, None, None]
    has_variants = product.has_variants
    image_src = "\n".join(image.src or "" for image in product.images)
    image_alt = "\n".join(image.alt or "" for image in product.images).strip()

    rows = []
    for variant in _by_position(product.variants):
        row = [
            product.handle,
            product.title,
            product.body_html,
            product.vendor,
            product.product_type,
            product.tags,
            bool(product.published_at),
            names[0] if has_variants else None,
            variant.option1 if has_variants else None,
            names[1],
            variant.option2,
            names[2],
            variant.option3,
            variant.sku,
            variant.inventory_policy,
            variant.fulfillment_service,
            variant.price,
            variant.compare_at_price,
            variant.requires_shipping,
            bool(variant.taxable),
            variant.barcode,
            image_src,
            image_alt,
            variant.weight,
            variant.weight_unit,
            variant.status,
        ]
        rows.append([csv_value(value) for value in row])
    return rows


def is_image_current(path: Path, image: ProductImage) -> bool:
    """Whether the local copy was written after the image last changed."""
    if not path.is_file():
        return False
    updated_at = parse_timestamp(image.updated_at)
    return updated_at is None or path.stat().st_mtime >= updated_at.timestamp()


def _created_by(item: Any, options: SyncOptions) -> bool:
    return (parse_timestamp(item.created_at) or EPOCH) <= options.created_before


class ProductSync:
    """Export the product catalogue to ``<output>/products``."""

    kind = "products"

    def __init__(self, store: ShopifyStore, files: LocalFileIndex) -> None:
        self.store = store
        self.files = files

    def list_keys(self, options: SyncOptions) -> List[str]:
        keys = []
        for product in self.store.list_products():
            keys.append(product.key)
            keys.extend(key for key in map(product.image_key, product.images) if key)
        return keys

    def select_created(self, products: List[Product], options: SyncOptions) -> List[Product]:
        """Products and images that existed at the creation-time filter."""
        selected = []
        for product in products:
            if _created_by(product, options):
                images = [image for image in product.images if _created_by(image, options)]
                selected.append(product.model_copy(update={"images": images}))
        return selected

    def download_image(self, image: ProductImage, path: Path) -> None:
        data = self.store.client.download(image.src)
        if data is None:
            logger.warning("Image no longer available: %s", image.src)
            return
        save_file(path, data)

    def pull(self, options: SyncOptions) -> SyncReport:
        report = SyncReport(self.kind, dry_run=options.dry_run)
        products = self.store.list_products()
        if options.filtered:
            products = self.select_created(products, options)

        local_files = self.files.list_files(options.output_dir, [PRODUCTS_DIR])
        local_files.discard(PRODUCTS_FILE)
        tasks = []

        text = write_csv(PRODUCTS_HEADER, [row for product in products for row in product_rows(product)])
        csv_path = options.output_dir / PRODUCTS_FILE
        if options.force or md5_file(csv_path) != md5_bytes(text):
            tasks.append(SyncTask("save", PRODUCTS_FILE, partial(save_file, csv_path, text)))
        else:
            report.record("skip", PRODUCTS_FILE)

        for product in products:
            for image in product.images:
                key = product.image_key(image)
                if key is None:
                    logger.debug("SKIP: image without a file name on %s", product.key)
                    continue
                local_files.discard(key)
                path = options.output_dir / key
                if options.force or not is_image_current(path, image):
                    tasks.append(SyncTask("save", key, partial(self.download_image, image, path)))
                else:
                    report.record("skip", key)

        if not options.filtered:
            for relative in sorted(local_files):
                tasks.append(SyncTask("delete", relative, partial(delete_file, options.output_dir / relative)))

        return run_batch(tasks, report, options.dry_run, options.max_workers)

    def push(self, options: SyncOptions) -> SyncReport:
        logger.warning("Products are pull-only; nothing pushed")
        return SyncReport(self.kind, dry_run=options.dry_run)
