# catalog_api/repositories/variant_repo.py
from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy import delete, update
from sqlmodel import Session, select

from catalog_api.models.product import ProductVariant, VariantAttribute
from catalog_api.schemas.product import AttributePair


class VariantRepository:
    """
    Data access for ProductVariant & VariantAttribute.

    Attributes always go before their variant on delete (FK order).
    """

    # ----- Variants -----

    def get_by_id(self, session: Session, variant_id: int) -> ProductVariant | None:
        return session.get(ProductVariant, variant_id)

    def sku_exists(self, session: Session, sku: str) -> bool:
        stmt = select(ProductVariant.id).where(ProductVariant.sku == sku)
        return session.exec(stmt).first() is not None

    def create(self, session: Session, variant: ProductVariant) -> ProductVariant:
        session.add(variant)
        session.flush()
        return variant

    def update_fields(
        self, session: Session, variant_id: int, values: dict[str, Any]
    ) -> int:
        if not values:
            return 0
        stmt = (
            update(ProductVariant)
            .where(ProductVariant.id == variant_id)
            .values(**values)
        )
        return session.exec(stmt).rowcount

    def delete_many(self, session: Session, variant_ids: Sequence[int]) -> int:
        if not variant_ids:
            return 0
        self.delete_attributes_for(session, variant_ids)
        stmt = delete(ProductVariant).where(ProductVariant.id.in_(variant_ids))
        return session.exec(stmt).rowcount

    def ids_for_product(self, session: Session, product_id: int) -> list[int]:
        stmt = select(ProductVariant.id).where(ProductVariant.product_id == product_id)
        return list(session.exec(stmt).all())

    def rows_for_product(self, session: Session, product_id: int) -> list[dict[str, Any]]:
        """
        variant x attribute rows (left join) for one product, variant id ascending.
        """
        stmt = (
            self._variant_rows_statement()
            .where(ProductVariant.product_id == product_id)
            .order_by(ProductVariant.id.asc(), VariantAttribute.id.asc())
        )
        return [dict(row) for row in session.exec(stmt).mappings().all()]

    def rows_for_variant(self, session: Session, variant_id: int) -> list[dict[str, Any]]:
        stmt = (
            self._variant_rows_statement()
            .where(ProductVariant.id == variant_id)
            .order_by(VariantAttribute.id.asc())
        )
        return [dict(row) for row in session.exec(stmt).mappings().all()]

    @staticmethod
    def _variant_rows_statement():
        return (
            select(
                ProductVariant.id.label("variant_id"),
                ProductVariant.sku.label("sku"),
                ProductVariant.price.label("price"),
                ProductVariant.stock.label("stock"),
                VariantAttribute.attribute_name.label("attr_name"),
                VariantAttribute.attribute_value.label("attr_value"),
            )
            .select_from(ProductVariant)
            .join(
                VariantAttribute,
                VariantAttribute.variant_id == ProductVariant.id,
                isouter=True,
            )
        )

    # ----- Attributes -----

    def insert_attributes(
        self,
        session: Session,
        variant_id: int,
        pairs: Iterable[AttributePair],
    ) -> int:
        count = 0
        for pair in pairs:
            session.add(
                VariantAttribute(
                    variant_id=variant_id,
                    attribute_name=pair.name,
                    attribute_value=pair.value,
                )
            )
            count += 1
        session.flush()
        return count

    def delete_attributes_for(self, session: Session, variant_ids: Sequence[int]) -> int:
        if not variant_ids:
            return 0
        stmt = delete(VariantAttribute).where(VariantAttribute.variant_id.in_(variant_ids))
        return session.exec(stmt).rowcount
