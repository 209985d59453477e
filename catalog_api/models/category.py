# catalog_api/models/category.py
from sqlmodel import SQLModel, Field


class Category(SQLModel, table=True):
    """
    Product category shown on the storefront.

    - slug is derived from name and regenerated whenever name changes.
    - A category cannot be deleted while products reference it.
    """

    __tablename__ = "categories"

    id: int | None = Field(default=None, primary_key=True)

    name: str = Field(
        max_length=255,
        index=True,
        description="Display name; also used by admin forms to pick a category",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="Lowercased URL identifier derived from name",
    )

    image: str | None = Field(
        default=None,
        description="Stored image path or public URL",
    )
