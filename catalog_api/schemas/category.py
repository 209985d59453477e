# catalog_api/schemas/category.py
from catalog_api.schemas.product import CamelModel, CatalogProduct


class CategoryRead(CamelModel):
    id: int
    name: str
    slug: str
    image: str | None = None


class CategoryList(CamelModel):
    categories: list[CategoryRead]


class CategoryCreated(CamelModel):
    success: bool = True
    category_id: int


class CategoryUpdated(CamelModel):
    success: bool = True
    message: str = "Category updated successfully"
    category: CategoryRead


class CategoryProducts(CamelModel):
    category: CategoryRead
    products: list[CatalogProduct]
