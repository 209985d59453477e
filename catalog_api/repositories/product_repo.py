# catalog_api/repositories/product_repo.py
from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, func, or_, update
from sqlmodel import Session, select

from catalog_api.models.category import Category
from catalog_api.models.product import (
    Product,
    ProductImage,
    ProductVariant,
    VariantAttribute,
)


def catalog_rows_statement():
    """
    The wide fan-out join read by the catalog aggregator.

    One row per (variant attribute x gallery image) combination, with
    left joins so products without variants / images still produce a
    null-padded row. Column labels form the aggregator's row contract.
    """
    return (
        select(
            Product.id.label("product_id"),
            Product.name.label("product_name"),
            Product.image.label("product_image"),
            Product.description.label("product_description"),
            Product.additional_description.label("product_additional_description"),
            Product.category_id.label("category_id"),
            Category.name.label("category_name"),
            Category.slug.label("category_slug"),
            Product.is_active.label("is_active"),
            ProductVariant.id.label("variant_id"),
            ProductVariant.sku.label("variant_sku"),
            ProductVariant.price.label("variant_price"),
            ProductVariant.stock.label("variant_stock"),
            VariantAttribute.attribute_name.label("attr_name"),
            VariantAttribute.attribute_value.label("attr_value"),
            ProductImage.id.label("img_id"),
            ProductImage.image.label("img_path"),
            ProductImage.sort_order.label("img_sort"),
        )
        .select_from(Product)
        .join(Category, Category.id == Product.category_id, isouter=True)
        .join(ProductVariant, ProductVariant.product_id == Product.id, isouter=True)
        .join(
            VariantAttribute,
            VariantAttribute.variant_id == ProductVariant.id,
            isouter=True,
        )
        .join(ProductImage, ProductImage.product_id == Product.id, isouter=True)
    )


class ProductRepository:
    """
    Data access layer for Product & ProductImage.

    - Pure DB operations (CRUD + queries).
    - Never commits: transaction scopes belong to the services.
    """

    # ----- Products -----

    def get_by_id(self, session: Session, product_id: int) -> Product | None:
        return session.get(Product, product_id)

    def exists(self, session: Session, product_id: int) -> bool:
        stmt = select(Product.id).where(Product.id == product_id)
        return session.exec(stmt).first() is not None

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.flush()
        return product

    def update_fields(
        self, session: Session, product_id: int, values: dict[str, Any]
    ) -> int:
        if not values:
            return 0
        stmt = update(Product).where(Product.id == product_id).values(**values)
        return session.exec(stmt).rowcount

    def delete(self, session: Session, product_id: int) -> int:
        stmt = delete(Product).where(Product.id == product_id)
        return session.exec(stmt).rowcount

    def count_in_category(self, session: Session, category_id: int) -> int:
        stmt = select(func.count()).select_from(Product).where(
            Product.category_id == category_id
        )
        return session.exec(stmt).one()

    def related_ids(
        self, session: Session, category_id: int, exclude_id: int, limit: int = 6
    ) -> list[int]:
        stmt = (
            select(Product.id)
            .where(
                Product.category_id == category_id,
                Product.id != exclude_id,
                Product.is_active == True,  # noqa: E712
            )
            .order_by(Product.id.desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def search_ids(self, session: Session, term: str) -> list[int]:
        """
        Active product ids whose name, description, category name, variant
        SKU or attribute value contains `term` (case-insensitive).
        """
        like = f"%{term.lower()}%"
        stmt = (
            select(Product.id)
            .select_from(Product)
            .join(Category, Category.id == Product.category_id, isouter=True)
            .join(ProductVariant, ProductVariant.product_id == Product.id, isouter=True)
            .join(
                VariantAttribute,
                VariantAttribute.variant_id == ProductVariant.id,
                isouter=True,
            )
            .where(
                Product.is_active == True,  # noqa: E712
                or_(
                    func.lower(Product.name).like(like),
                    func.lower(Product.description).like(like),
                    func.lower(Category.name).like(like),
                    func.lower(ProductVariant.sku).like(like),
                    func.lower(VariantAttribute.attribute_value).like(like),
                ),
            )
            .distinct()
        )
        return list(session.exec(stmt).all())

    # ----- Catalog rows (fan-out join) -----

    def catalog_rows(
        self,
        session: Session,
        *,
        product_ids: Sequence[int] | None = None,
        category_id: int | None = None,
        only_active: bool = False,
        order_by_name: bool = False,
    ) -> list[dict[str, Any]]:
        stmt = catalog_rows_statement()
        if product_ids is not None:
            if not product_ids:
                return []
            stmt = stmt.where(Product.id.in_(product_ids))
        if category_id is not None:
            stmt = stmt.where(Product.category_id == category_id)
        if only_active:
            stmt = stmt.where(Product.is_active == True)  # noqa: E712

        product_order = Product.name.asc() if order_by_name else Product.id.desc()
        stmt = stmt.order_by(
            product_order,
            Product.id.desc(),
            ProductVariant.id.desc(),
            ProductImage.sort_order.asc(),
            ProductImage.id.asc(),
            VariantAttribute.id.asc(),
        )
        return [dict(row) for row in session.exec(stmt).mappings().all()]

    # ----- Product images -----

    def list_images_for_product(
        self,
        session: Session,
        product_id: int,
    ) -> list[ProductImage]:
        stmt = (
            select(ProductImage)
            .where(ProductImage.product_id == product_id)
            .order_by(ProductImage.sort_order, ProductImage.id)
        )
        return list(session.exec(stmt).all())

    def max_sort_order(self, session: Session, product_id: int) -> int:
        """Highest sort_order of the product's gallery, -1 when empty."""
        stmt = select(func.coalesce(func.max(ProductImage.sort_order), -1)).where(
            ProductImage.product_id == product_id
        )
        return session.exec(stmt).one()

    def create_image(
        self,
        session: Session,
        image: ProductImage,
    ) -> ProductImage:
        session.add(image)
        session.flush()
        return image

    def delete_images_not_in(
        self,
        session: Session,
        product_id: int,
        keep_ids: Sequence[int],
    ) -> list[str]:
        """
        Delete gallery rows of the product whose id is not in keep_ids
        (all of them when keep_ids is empty). Returns the removed paths.
        """
        condition = [ProductImage.product_id == product_id]
        if keep_ids:
            condition.append(ProductImage.id.not_in(keep_ids))

        removed = list(
            session.exec(select(ProductImage.image).where(*condition)).all()
        )
        session.exec(delete(ProductImage).where(*condition))
        return removed

    def delete_images_for_product(self, session: Session, product_id: int) -> list[str]:
        return self.delete_images_not_in(session, product_id, [])
