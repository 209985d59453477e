# catalog_api/services/catalog_aggregator.py
"""
Fold the catalog fan-out join into nested products.

Input rows come from `catalog_rows_statement()` (see product_repo): one row
per (variant attribute x gallery image) combination, left-joined so that
missing children are null-padded. Because of the fan-out the same attribute
repeats once per gallery image and the same image repeats once per variant
attribute, so every nested collection is deduplicated:

  products    keyed by product_id          (first-seen order kept)
  variants    keyed by variant_id          (first-seen order kept)
  attributes  keyed by (variant_id, name, value)
  images      keyed by img_id, then sorted by sort order ascending

Product-level columns take the values of the first row seen for that product.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from catalog_api.core.storage_utils import resolve_image_url
from catalog_api.schemas.product import (
    AttributePair,
    CatalogProduct,
    GalleryImageRead,
    VariantRead,
)
from catalog_api.services.attributes import PAIR_SEPARATOR, attributes_as_mapping


class _ProductAccumulator:
    __slots__ = ("product", "variants", "attribute_keys", "images")

    def __init__(self, product: CatalogProduct):
        self.product = product
        self.variants: dict[Any, VariantRead] = {}
        self.attribute_keys: set[str] = set()
        self.images: dict[Any, GalleryImageRead] = {}

    def add_variant_row(self, row: Mapping[str, Any]) -> None:
        variant_id = row.get("variant_id")
        if variant_id is None:
            return

        variant = self.variants.get(variant_id)
        if variant is None:
            variant = VariantRead(
                id=variant_id,
                sku=row.get("variant_sku") or "",
                price=row.get("variant_price") or 0,
                stock=row.get("variant_stock") or 0,
            )
            self.variants[variant_id] = variant

        name, value = row.get("attr_name"), row.get("attr_value")
        if not name or not value:
            return
        key = f"{variant_id}{PAIR_SEPARATOR}{name}{PAIR_SEPARATOR}{value}"
        if key in self.attribute_keys:
            return
        self.attribute_keys.add(key)
        variant.attributes.append(AttributePair(name=name, value=value))

    def add_image_row(self, row: Mapping[str, Any]) -> None:
        image_id = row.get("img_id")
        if image_id is None or not row.get("img_path") or image_id in self.images:
            return
        self.images[image_id] = GalleryImageRead(
            id=image_id,
            image=resolve_image_url(row.get("img_path")),
            sort_order=row.get("img_sort") or 0,
        )

    def build(self) -> CatalogProduct:
        self.product.variants = list(self.variants.values())
        # sorted() is stable: equal sort orders keep first-seen order
        self.product.images = sorted(self.images.values(), key=lambda img: img.sort_order)
        return self.product


def _product_from_row(row: Mapping[str, Any]) -> CatalogProduct:
    is_active = row.get("is_active")
    return CatalogProduct(
        id=row["product_id"],
        name=row.get("product_name"),
        image=resolve_image_url(row.get("product_image")),
        description=row.get("product_description"),
        additional_description=row.get("product_additional_description"),
        category_id=row.get("category_id"),
        category_name=row.get("category_name"),
        category_slug=row.get("category_slug"),
        is_active=True if is_active is None else bool(is_active),
    )


def aggregate_products(rows: Iterable[Mapping[str, Any]]) -> list[CatalogProduct]:
    """
    Group flat catalog rows into products, preserving the row stream's
    product order (callers choose it with ORDER BY).
    """
    accumulators: dict[Any, _ProductAccumulator] = {}

    for row in rows:
        product_id = row.get("product_id")
        if product_id is None:
            continue

        acc = accumulators.get(product_id)
        if acc is None:
            acc = _ProductAccumulator(_product_from_row(row))
            accumulators[product_id] = acc

        acc.add_variant_row(row)
        acc.add_image_row(row)

    return [acc.build() for acc in accumulators.values()]


def group_variant_rows(rows: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """
    Group variant x attribute rows into variants with a name -> value map.

    Used by the edit view and the storefront variant picker. Returns plain
    dicts shaped like VariantSummary.
    """
    grouped: dict[Any, dict[str, Any]] = {}
    pairs: dict[Any, list[AttributePair]] = {}
    for row in rows:
        variant_id = row.get("variant_id")
        if variant_id is None:
            continue
        if variant_id not in grouped:
            grouped[variant_id] = {
                "variant_id": variant_id,
                "sku": row.get("sku"),
                "price": row.get("price"),
                "stock": row.get("stock"),
            }
            pairs[variant_id] = []
        name, value = row.get("attr_name"), row.get("attr_value")
        if name and value:
            pairs[variant_id].append(AttributePair(name=name, value=value))

    for variant_id, variant in grouped.items():
        variant["attributes"] = attributes_as_mapping(pairs[variant_id])
    return list(grouped.values())
