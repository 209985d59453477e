# catalog_api/schemas/product.py
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base for API payloads: snake_case in Python, camelCase on the wire.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----- Attributes -----


class AttributePair(CamelModel):
    name: str
    value: str


# Accepted on input: [{"name": ..., "value": ...}, ...] or {"Size": "M", ...}
AttributesInput = list[Any] | dict[str, Any]


# ----- Variants -----


class VariantInput(CamelModel):
    """
    One entry of a variants payload.

    - `id` present  => update that existing variant (product update only)
    - `id` missing  => create a new variant
    price / stock are coerced by the service (non-numeric -> 0).
    """

    id: int | None = None
    sku: str | None = None
    price: Any = None
    stock: Any = None
    attributes: AttributesInput | None = None


class VariantUpdate(CamelModel):
    """
    Partial update for a single variant.

    Only supplied keys are written. Sending `attributes` (even an empty
    list) replaces the whole attribute set; `attributes: null` leaves it as is.
    """

    sku: str | None = None
    price: Any = None
    stock: Any = None
    attributes: AttributesInput | None = None


class VariantRead(CamelModel):
    id: int
    sku: str
    price: float
    stock: int
    attributes: list[AttributePair] = Field(default_factory=list)


class VariantSummary(CamelModel):
    """
    Variant with attributes grouped as a name -> value map
    (edit form pre-population and storefront variant pickers).
    """

    variant_id: int
    sku: str | None
    price: float | None
    stock: int | None
    attributes: dict[str, str] = Field(default_factory=dict)


class VariantCreated(CamelModel):
    variant_id: int
    sku: str


class BulkVariantsCreated(CamelModel):
    success: bool = True
    created: list[VariantCreated]


class VariantUpdated(CamelModel):
    variant: VariantSummary


class BulkDeleteRequest(CamelModel):
    variant_ids: list[Any] = Field(default_factory=list)


# ----- Gallery -----


class GalleryImageRead(CamelModel):
    id: int
    image: str | None
    sort_order: int = 0


# ----- Products -----


class CatalogProduct(CamelModel):
    """
    Nested product built by the catalog aggregator.
    """

    id: int
    name: str | None
    image: str | None
    description: str | None = None
    additional_description: str | None = None
    category_id: int | None = None
    category_name: str | None = None
    category_slug: str | None = None
    is_active: bool = True
    variants: list[VariantRead] = Field(default_factory=list)
    images: list[GalleryImageRead] = Field(default_factory=list)


class ProductList(CamelModel):
    products: list[CatalogProduct]


class ProductCreated(CamelModel):
    success: bool = True
    product_id: int


class ProductEditView(CamelModel):
    id: int
    category_id: int
    category_name: str | None = None
    name: str
    image: str | None
    description: str | None = None
    additional_description: str | None = None
    is_active: bool
    images: list[GalleryImageRead] = Field(default_factory=list)


class ProductEditResponse(CamelModel):
    product: ProductEditView
    variants: list[VariantSummary]


class ProductStatusUpdate(CamelModel):
    is_active: bool


class ProductDetail(CamelModel):
    product: CatalogProduct
    related: list[CatalogProduct]


class VariantList(CamelModel):
    variants: list[VariantSummary]


# ----- Generic write acknowledgements -----


class WriteResult(CamelModel):
    success: bool = True
    message: str | None = None


class UpdatedCount(CamelModel):
    success: bool = True
    updated: int


class DeletedCount(CamelModel):
    success: bool = True
    deleted: int
    message: str | None = None


class UploadedImage(CamelModel):
    location: str
