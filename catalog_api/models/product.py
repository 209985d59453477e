# catalog_api/models/product.py
from datetime import datetime, timezone

from sqlalchemy import Column, Text, UniqueConstraint
from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Catalog product.

    Owns its variants (product_variants) and gallery images (product_images).
    Deleting a product removes both; see ProductService.delete_product.
    """

    __tablename__ = "products"

    id: int | None = Field(default=None, primary_key=True)

    category_id: int = Field(
        foreign_key="categories.id",
        index=True,
        description="FK to categories.id",
    )

    name: str = Field(
        max_length=255,
        index=True,
        description="Display name of the product",
    )

    image: str = Field(
        description="Primary image path (required on create)",
    )

    description: str | None = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
    )

    additional_description: str | None = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
        description="Optional rich-text (HTML) block",
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this product is visible on the storefront",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class ProductImage(SQLModel, table=True):
    """
    Additional gallery images for a product, displayed by sort_order.
    """

    __tablename__ = "product_images"

    id: int | None = Field(default=None, primary_key=True)

    product_id: int = Field(
        foreign_key="products.id",
        index=True,
        description="FK to products.id",
    )

    image: str = Field(
        description="Stored image path or public URL",
    )

    sort_order: int = Field(
        default=0,
        ge=0,
        description="Ordering index within the gallery (gaps allowed)",
    )


class ProductVariant(SQLModel, table=True):
    """
    SKU-level variant of a product (price + stock).
    """

    __tablename__ = "product_variants"

    id: int | None = Field(default=None, primary_key=True)

    product_id: int = Field(
        foreign_key="products.id",
        index=True,
    )

    sku: str = Field(
        max_length=64,
        unique=True,
        index=True,
        description="Unique across the catalog; generated when omitted",
    )

    price: float = Field(default=0, ge=0)

    stock: int = Field(default=0, ge=0)


class VariantAttribute(SQLModel, table=True):
    """
    Free-form (name, value) pair of a variant, e.g. ("Size", "8 inches").
    """

    __tablename__ = "variant_attributes"
    __table_args__ = (
        UniqueConstraint(
            "variant_id",
            "attribute_name",
            "attribute_value",
            name="uq_variant_attribute_pair",
        ),
    )

    id: int | None = Field(default=None, primary_key=True)

    variant_id: int = Field(
        foreign_key="product_variants.id",
        index=True,
    )

    attribute_name: str = Field(max_length=100)

    attribute_value: str = Field(max_length=255)
