# catalog_api/services/storefront_service.py
import logging

from sqlmodel import Session

from catalog_api.core.errors import NotFoundError
from catalog_api.repositories.product_repo import ProductRepository
from catalog_api.schemas.category import CategoryProducts
from catalog_api.schemas.product import CatalogProduct, ProductDetail, VariantSummary
from catalog_api.services.catalog_aggregator import aggregate_products
from catalog_api.services.category_service import CategoryService
from catalog_api.services.variant_service import VariantService

logger = logging.getLogger(__name__)

RELATED_PRODUCTS_LIMIT = 6


class StorefrontService:
    """
    Public (read-only) catalog views. Inactive products are never shown.
    """

    def __init__(
        self,
        repo: ProductRepository,
        categories: CategoryService,
        variants: VariantService,
    ):
        self.repo = repo
        self.categories = categories
        self.variants = variants

    def category_products(self, session: Session, slug: str) -> CategoryProducts:
        category = self.categories.get_by_slug(session, slug)
        rows = self.repo.catalog_rows(
            session, category_id=category.id, only_active=True
        )
        return CategoryProducts(
            category=self.categories.to_read(category),
            products=aggregate_products(rows),
        )

    def product_detail(self, session: Session, product_id: int) -> ProductDetail:
        """
        An active product plus up to six related active products from the
        same category (newest first).
        """
        rows = self.repo.catalog_rows(
            session, product_ids=[product_id], only_active=True
        )
        products = aggregate_products(rows)
        if not products:
            raise NotFoundError("Product not found")
        product = products[0]

        related: list[CatalogProduct] = []
        if product.category_id is not None:
            related_ids = self.repo.related_ids(
                session, product.category_id, product_id, RELATED_PRODUCTS_LIMIT
            )
            related = aggregate_products(
                self.repo.catalog_rows(session, product_ids=related_ids, only_active=True)
            )
        return ProductDetail(product=product, related=related)

    def product_variants(self, session: Session, product_id: int) -> list[VariantSummary]:
        return self.variants.list_for_product(session, product_id)

    def search(self, session: Session, q: str | None) -> list[CatalogProduct]:
        """
        Blank query => every active product by name; otherwise active
        products matching name, description, category, SKU or attribute value.
        """
        term = (q or "").strip()
        if not term:
            rows = self.repo.catalog_rows(session, only_active=True, order_by_name=True)
        else:
            ids = self.repo.search_ids(session, term)
            if not ids:
                return []
            rows = self.repo.catalog_rows(
                session, product_ids=ids, only_active=True, order_by_name=True
            )

        products = aggregate_products(rows)
        logger.info("Search %r matched %d product(s)", term, len(products))
        return products
