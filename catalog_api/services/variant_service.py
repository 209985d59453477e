# catalog_api/services/variant_service.py
import json
import logging
import math
import secrets
import string
import time
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from catalog_api.core.errors import NotFoundError, TransactionFailure, ValidationError
from catalog_api.core.transactions import smart_transaction
from catalog_api.models.product import ProductVariant
from catalog_api.repositories.product_repo import ProductRepository
from catalog_api.repositories.variant_repo import VariantRepository
from catalog_api.schemas.product import (
    VariantCreated,
    VariantInput,
    VariantSummary,
    VariantUpdate,
)
from catalog_api.services.attributes import normalize_attributes
from catalog_api.services.catalog_aggregator import group_variant_rows

logger = logging.getLogger(__name__)

BASE36_ALPHABET = string.digits + string.ascii_uppercase
SKU_RANDOM_LENGTH = 4
SKU_GENERATION_ATTEMPTS = 5


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(BASE36_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_sku(product_id: int) -> str:
    """
    P<productId>-<base36 ms timestamp>-<4 random base36 chars>, upper-cased.
    """
    stamp = to_base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(SKU_RANDOM_LENGTH))
    return f"P{product_id}-{stamp}-{suffix}".upper()


def coerce_number(raw: Any, cast: type = float, field: str = "value") -> Any:
    """
    Coerce price / stock input.

    Non-numeric and non-finite input falls back to 0; negative numbers are
    rejected.
    """
    if isinstance(raw, bool):
        raw = int(raw)
    try:
        number = float(raw)
    except (TypeError, ValueError):
        return cast(0)
    if not math.isfinite(number):
        return cast(0)
    if number < 0:
        raise ValidationError(f"{field} must not be negative")
    return cast(number)


def parse_variants_payload(raw: Any) -> list[VariantInput]:
    """
    Accept a variants payload (JSON string from a multipart form, or an
    already decoded body) and validate every entry.

    Raises:
        ValidationError: payload is not valid JSON / not an array / has a
        malformed entry.
    """
    if raw is None or raw == "":
        return []
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            raise ValidationError("variants must be a JSON array")
    if not isinstance(raw, list):
        raise ValidationError("Request body must be an array of variants")

    variants: list[VariantInput] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(f"Variant #{index + 1} must be an object")
        try:
            variants.append(VariantInput.model_validate(item))
        except PydanticValidationError as exc:
            raise ValidationError(f"Variant #{index + 1} is invalid: {exc.errors()[0]['msg']}")
    return variants


class VariantService:
    """
    Business logic for product variants and their attribute sets.

    Responsibilities:
      - SKU auto-generation (unique across the catalog)
      - price / stock coercion
      - attribute replacement (always delete-all-then-insert, never a merge)
      - transactional bulk create / update

    Methods suffixed with `_in_tx` expect the caller to hold a transaction
    (the product write coordinator composes them into one unit).
    """

    def __init__(self, repo: VariantRepository, product_repo: ProductRepository):
        self.repo = repo
        self.product_repo = product_repo

    # ----- Helpers -----

    def _unique_sku(self, session: Session, product_id: int) -> str:
        for _ in range(SKU_GENERATION_ATTEMPTS):
            sku = generate_sku(product_id)
            if not self.repo.sku_exists(session, sku):
                return sku
        raise TransactionFailure("Could not generate a unique SKU")

    def _summary(self, session: Session, variant_id: int) -> VariantSummary:
        grouped = group_variant_rows(self.repo.rows_for_variant(session, variant_id))
        if not grouped:
            raise NotFoundError("Variant not found")
        return VariantSummary.model_validate(grouped[0])

    # ----- Composable steps (caller holds the transaction) -----

    def create_variant_in_tx(
        self,
        session: Session,
        product_id: int,
        payload: VariantInput,
    ) -> VariantCreated:
        sku = (payload.sku or "").strip()
        if not sku:
            sku = self._unique_sku(session, product_id)
            logger.info("Auto-generated SKU %s for product %s", sku, product_id)

        variant = self.repo.create(
            session,
            ProductVariant(
                product_id=product_id,
                sku=sku,
                price=coerce_number(payload.price, float, "price"),
                stock=coerce_number(payload.stock, int, "stock"),
            ),
        )
        pairs = normalize_attributes(payload.attributes)
        self.repo.insert_attributes(session, variant.id, pairs)
        logger.info(
            "Inserted variant %s (SKU: %s) with %d attribute(s)",
            variant.id,
            sku,
            len(pairs),
        )
        return VariantCreated(variant_id=variant.id, sku=sku)

    def update_variant_fields_in_tx(
        self,
        session: Session,
        variant_id: int,
        payload: VariantInput | VariantUpdate,
    ) -> None:
        supplied = payload.model_fields_set
        values: dict[str, Any] = {}
        if "sku" in supplied and payload.sku is not None:
            values["sku"] = payload.sku.strip()
        if "price" in supplied:
            values["price"] = coerce_number(payload.price, float, "price")
        if "stock" in supplied:
            values["stock"] = coerce_number(payload.stock, int, "stock")

        if "sku" in values and not values["sku"]:
            raise ValidationError("sku cannot be empty")

        if values:
            self.repo.update_fields(session, variant_id, values)
            logger.info("Updated variant %s fields: %s", variant_id, ", ".join(values))

        # null means "leave as is"; an empty list or mapping clears the set
        if "attributes" in supplied and payload.attributes is not None:
            self.replace_attributes_in_tx(session, variant_id, payload.attributes)

    def replace_attributes_in_tx(
        self,
        session: Session,
        variant_id: int,
        attributes: Any,
    ) -> int:
        pairs = normalize_attributes(attributes)
        self.repo.delete_attributes_for(session, [variant_id])
        inserted = self.repo.insert_attributes(session, variant_id, pairs)
        logger.info("Replaced attributes for variant %s (%d pair(s))", variant_id, inserted)
        return inserted

    # ----- Public operations (own their transaction) -----

    def create_variant(
        self,
        session: Session,
        product_id: int,
        payload: VariantInput,
    ) -> VariantCreated:
        try:
            with smart_transaction(session):
                if not self.product_repo.exists(session, product_id):
                    raise NotFoundError("Product not found")
                return self.create_variant_in_tx(session, product_id, payload)
        except SQLAlchemyError as exc:
            logger.exception("Variant create failed for product %s", product_id)
            raise TransactionFailure("Failed to save variant") from exc

    def bulk_create_variants(
        self,
        session: Session,
        product_id: int,
        raw_payload: Any,
    ) -> list[VariantCreated]:
        """
        Create several variants for a product, all-or-nothing.
        """
        if not isinstance(raw_payload, list):
            raise ValidationError("Request body must be an array of variants")
        variants = parse_variants_payload(raw_payload)

        try:
            with smart_transaction(session):
                if not self.product_repo.exists(session, product_id):
                    raise NotFoundError("Product not found")
                created = [
                    self.create_variant_in_tx(session, product_id, variant)
                    for variant in variants
                ]
        except SQLAlchemyError as exc:
            logger.exception("Bulk variant create rolled back for product %s", product_id)
            raise TransactionFailure("Failed to save variants") from exc

        logger.info("Created %d variant(s) for product %s", len(created), product_id)
        return created

    def replace_variant_attributes(
        self,
        session: Session,
        variant_id: int,
        attributes: Any,
    ) -> VariantSummary:
        try:
            with smart_transaction(session):
                if self.repo.get_by_id(session, variant_id) is None:
                    raise NotFoundError("Variant not found")
                self.replace_attributes_in_tx(session, variant_id, attributes)
        except SQLAlchemyError as exc:
            logger.exception("Attribute replace rolled back for variant %s", variant_id)
            raise TransactionFailure("Failed to update variant attributes") from exc
        return self._summary(session, variant_id)

    def update_variant(
        self,
        session: Session,
        variant_id: int,
        payload: VariantUpdate,
    ) -> VariantSummary:
        """
        Partial field update plus optional attribute replacement, in one
        transaction so readers never see a variant without attributes.
        """
        try:
            with smart_transaction(session):
                if self.repo.get_by_id(session, variant_id) is None:
                    raise NotFoundError("Variant not found")
                self.update_variant_fields_in_tx(session, variant_id, payload)
        except SQLAlchemyError as exc:
            logger.exception("Variant update rolled back for variant %s", variant_id)
            raise TransactionFailure("Failed to update variant") from exc
        return self._summary(session, variant_id)

    def delete_variant(self, session: Session, variant_id: int) -> int:
        with smart_transaction(session):
            deleted = self.repo.delete_many(session, [variant_id])
        logger.info("Deleted variant %s (%d row(s))", variant_id, deleted)
        return deleted

    def bulk_delete_variants(self, session: Session, raw_ids: list[Any]) -> int:
        """
        Delete many variants; invalid ids are silently dropped.

        Raises:
            ValidationError: no valid positive integer id was supplied.
        """
        valid_ids: list[int] = []
        for raw in raw_ids or []:
            if isinstance(raw, bool):
                continue
            try:
                number = float(raw)
            except (TypeError, ValueError):
                continue
            if not math.isfinite(number) or not number.is_integer() or number <= 0:
                continue
            if int(number) not in valid_ids:
                valid_ids.append(int(number))

        if not valid_ids:
            raise ValidationError("Invalid variant IDs provided")

        with smart_transaction(session):
            deleted = self.repo.delete_many(session, valid_ids)
        logger.info("Bulk deleted %d variant(s)", deleted)
        return deleted

    # ----- Reads -----

    def list_for_product(self, session: Session, product_id: int) -> list[VariantSummary]:
        rows = self.repo.rows_for_product(session, product_id)
        return [VariantSummary.model_validate(v) for v in group_variant_rows(rows)]
