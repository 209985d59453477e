# catalog_api/routers/public.py
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from catalog_api.database import get_session
from catalog_api.repositories.category_repo import CategoryRepository
from catalog_api.repositories.product_repo import ProductRepository
from catalog_api.repositories.variant_repo import VariantRepository
from catalog_api.schemas.category import CategoryList, CategoryProducts
from catalog_api.schemas.product import ProductDetail, ProductList, VariantList
from catalog_api.services.category_service import CategoryService
from catalog_api.services.storefront_service import StorefrontService
from catalog_api.services.variant_service import VariantService

router = APIRouter(prefix="/public", tags=["Storefront"])

product_repo = ProductRepository()
categories = CategoryService(CategoryRepository(), product_repo)
service = StorefrontService(
    repo=product_repo,
    categories=categories,
    variants=VariantService(VariantRepository(), product_repo),
)


@router.get("/categories", response_model=CategoryList)
def list_categories(session: Session = Depends(get_session)):
    return CategoryList(categories=categories.list_categories(session))


@router.get("/categories/{slug}/products", response_model=CategoryProducts)
def category_products(slug: str, session: Session = Depends(get_session)):
    """
    Active products of a category, newest first.
    """
    return service.category_products(session, slug)


@router.get("/products/{product_id}", response_model=ProductDetail)
def get_product(product_id: int, session: Session = Depends(get_session)):
    """
    A single active product plus related products from its category.
    """
    return service.product_detail(session, product_id)


@router.get("/products/{product_id}/variants", response_model=VariantList)
def product_variants(product_id: int, session: Session = Depends(get_session)):
    return VariantList(variants=service.product_variants(session, product_id))


@router.get("/search", response_model=ProductList)
def search_products(
    q: str | None = Query(None, description="search term"),
    session: Session = Depends(get_session),
):
    """
    Case-insensitive search over name, description, category, SKU and
    attribute values. An empty query returns every active product.
    """
    return ProductList(products=service.search(session, q))
