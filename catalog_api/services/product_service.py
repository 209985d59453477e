# catalog_api/services/product_service.py
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from catalog_api.core.config import get_settings
from catalog_api.core.errors import NotFoundError, TransactionFailure, ValidationError
from catalog_api.core.storage_utils import (
    ImageStorage,
    ImageUpload,
    delete_quietly,
    resolve_image_url,
    validate_image,
)
from catalog_api.core.transactions import smart_transaction
from catalog_api.models.product import Product
from catalog_api.repositories.category_repo import CategoryRepository
from catalog_api.repositories.product_repo import ProductRepository
from catalog_api.repositories.variant_repo import VariantRepository
from catalog_api.schemas.product import (
    CatalogProduct,
    ProductEditResponse,
    ProductEditView,
)
from catalog_api.services.catalog_aggregator import aggregate_products
from catalog_api.services.gallery_service import PRODUCT_IMAGE_FOLDER, GalleryService
from catalog_api.services.variant_service import VariantService, parse_variants_payload

logger = logging.getLogger(__name__)


@dataclass
class ProductForm:
    """
    Text fields of the multipart product form (create and update).

    `variants` and `keep_image_ids` are the raw JSON strings as posted.
    """

    category_name: str | None = None
    product_name: str | None = None
    description: str | None = None
    additional_description: str | None = None
    variants: str | None = None
    keep_image_ids: str | None = None


@dataclass
class ProductUploads:
    main_image: ImageUpload | None = None
    gallery: list[ImageUpload] = field(default_factory=list)


def _present(value: str | None) -> bool:
    return value is not None and value.strip() != ""


def parse_keep_image_ids(raw: str | None) -> list[int] | None:
    """
    None when no keep-list was sent; otherwise the list of image ids.

    Raises:
        ValidationError: not a JSON array of integer ids.
    """
    if raw is None:
        return None
    try:
        decoded = json.loads(raw) if raw.strip() else []
    except json.JSONDecodeError:
        raise ValidationError("keepImageIds must be a JSON array")
    if not isinstance(decoded, list):
        raise ValidationError("keepImageIds must be a JSON array")

    keep_ids: list[int] = []
    for item in decoded:
        try:
            keep_ids.append(int(item))
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid image id in keepImageIds: {item!r}")
    return keep_ids


class ProductService:
    """
    Product write coordinator + admin reads.

    Responsibilities:
      - full create (product row, main image, gallery, variants)
      - partial update (only supplied fields; gallery keep-list + append;
        variant update-or-create, never implicit variant deletion)
      - delete with explicit cleanup of variants, attributes and gallery rows
      - admin catalog listing and the edit-form view

    Each write runs in a single transaction. Gallery images are the one
    lenient step: a failing image is skipped (see GalleryService) while a
    failing variant rolls back the whole operation.
    """

    def __init__(
        self,
        repo: ProductRepository,
        category_repo: CategoryRepository,
        variant_repo: VariantRepository,
        variants: VariantService,
        gallery: GalleryService,
    ):
        self.repo = repo
        self.category_repo = category_repo
        self.variant_repo = variant_repo
        self.variants = variants
        self.gallery = gallery

    # ----- Helpers -----

    @staticmethod
    def _validate_uploads(uploads: ProductUploads) -> None:
        max_gallery = get_settings().MAX_GALLERY_IMAGES
        if len(uploads.gallery) > max_gallery:
            raise ValidationError(f"At most {max_gallery} gallery images are allowed")
        if uploads.main_image is not None:
            validate_image(uploads.main_image)
        for upload in uploads.gallery:
            validate_image(upload)

    def _category_id_by_name(self, session: Session, name: str) -> int:
        category = self.category_repo.get_by_name(session, name.strip())
        if category is None:
            raise NotFoundError("Category not found")
        return category.id

    def _get_product(self, session: Session, product_id: int) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if product is None:
            raise NotFoundError("Product not found")
        return product

    # ----- Reads -----

    def list_products(self, session: Session) -> list[CatalogProduct]:
        """
        Every product (active or not), newest first.
        """
        return aggregate_products(self.repo.catalog_rows(session))

    def get_edit_view(self, session: Session, product_id: int) -> ProductEditResponse:
        """
        Product + gallery + variants (attributes as name -> value maps),
        shaped for pre-populating the admin edit form.
        """
        product = self._get_product(session, product_id)
        category = self.category_repo.get_by_id(session, product.category_id)

        view = ProductEditView(
            id=product.id,
            category_id=product.category_id,
            category_name=category.name if category else None,
            name=product.name,
            image=resolve_image_url(product.image),
            description=product.description,
            additional_description=product.additional_description,
            is_active=product.is_active,
            images=self.gallery.list_images(session, product_id),
        )
        return ProductEditResponse(
            product=view,
            variants=self.variants.list_for_product(session, product_id),
        )

    # ----- Writes -----

    def create_product(
        self,
        session: Session,
        storage: ImageStorage,
        form: ProductForm,
        uploads: ProductUploads,
    ) -> int:
        if uploads.main_image is None:
            raise ValidationError("Product image required")
        if not _present(form.product_name):
            raise ValidationError("Product name required")
        if not _present(form.category_name):
            raise ValidationError("Category name required")
        self._validate_uploads(uploads)
        variants = parse_variants_payload(form.variants)

        logger.info(
            "Creating product %r with %d gallery image(s) and %d variant(s)",
            form.product_name,
            len(uploads.gallery),
            len(variants),
        )

        # files stored inside the transaction; removed again if it rolls back
        stored_paths: list[str] = []
        try:
            with smart_transaction(session):
                category_id = self._category_id_by_name(session, form.category_name)
                main_path = storage.save(PRODUCT_IMAGE_FOLDER, uploads.main_image)
                stored_paths.append(main_path)

                product = self.repo.create(
                    session,
                    Product(
                        category_id=category_id,
                        name=form.product_name.strip(),
                        image=main_path,
                        description=form.description,
                        additional_description=form.additional_description or None,
                        is_active=True,
                    ),
                )
                product_id = product.id

                stored_paths.extend(
                    self._append_gallery(session, storage, product_id, uploads.gallery)
                )
                for variant in variants:
                    self.variants.create_variant_in_tx(session, product_id, variant)
        except SQLAlchemyError as exc:
            logger.exception("Product create rolled back")
            delete_quietly(storage, stored_paths)
            raise TransactionFailure("Failed to create product") from exc
        except Exception:
            delete_quietly(storage, stored_paths)
            raise

        logger.info("Created product %s", product_id)
        return product_id

    def update_product(
        self,
        session: Session,
        storage: ImageStorage,
        product_id: int,
        form: ProductForm,
        uploads: ProductUploads,
    ) -> None:
        """
        Partial update.

        - name / description / additional description / category / main image
          are written only when supplied and non-empty
        - keepImageIds (if sent) prunes the gallery, then new gallery files
          are appended after the current max sort order
        - variants with an id are patched (attributes replaced if the key is
          present); variants without an id are created; variants missing
          from the payload are left alone
        """
        self._validate_uploads(uploads)
        keep_ids = parse_keep_image_ids(form.keep_image_ids)
        variants = parse_variants_payload(form.variants)

        stale_paths: list[str] = []
        stored_paths: list[str] = []
        try:
            with smart_transaction(session):
                product = self._get_product(session, product_id)

                values: dict[str, Any] = {}
                if _present(form.product_name):
                    values["name"] = form.product_name.strip()
                if _present(form.description):
                    values["description"] = form.description
                if _present(form.additional_description):
                    values["additional_description"] = form.additional_description
                if _present(form.category_name):
                    values["category_id"] = self._category_id_by_name(
                        session, form.category_name
                    )
                if uploads.main_image is not None:
                    values["image"] = storage.save(PRODUCT_IMAGE_FOLDER, uploads.main_image)
                    stored_paths.append(values["image"])
                    stale_paths.append(product.image)

                if values:
                    self.repo.update_fields(session, product_id, values)
                    logger.info("Updated product %s fields: %s", product_id, ", ".join(values))
                else:
                    logger.info("No product fields to update for product %s", product_id)

                if keep_ids is not None:
                    stale_paths.extend(
                        self.gallery.prune_to_keep_list_in_tx(session, product_id, keep_ids)
                    )
                stored_paths.extend(
                    self._append_gallery(session, storage, product_id, uploads.gallery)
                )

                self._apply_variants(session, product_id, variants)
        except SQLAlchemyError as exc:
            logger.exception("Product update rolled back for product %s", product_id)
            delete_quietly(storage, stored_paths)
            raise TransactionFailure("Failed to update product") from exc
        except Exception:
            delete_quietly(storage, stored_paths)
            raise

        delete_quietly(storage, [p for p in stale_paths if p])

    def _append_gallery(
        self,
        session: Session,
        storage: ImageStorage,
        product_id: int,
        uploads: Sequence[ImageUpload],
    ) -> list[str]:
        """Append gallery files and return the stored paths."""
        saved = self.gallery.append_images_in_tx(session, storage, product_id, uploads)
        return [image.image for image in saved]

    def _apply_variants(
        self,
        session: Session,
        product_id: int,
        variants: Sequence,
    ) -> None:
        if not variants:
            return

        logger.info("Processing %d variant(s) for product %s", len(variants), product_id)
        for variant in variants:
            if variant.id:
                existing = self.variant_repo.get_by_id(session, variant.id)
                if existing is None or existing.product_id != product_id:
                    raise NotFoundError(f"Variant {variant.id} not found for this product")
                self.variants.update_variant_fields_in_tx(session, variant.id, variant)
            else:
                self.variants.create_variant_in_tx(session, product_id, variant)

    def delete_product(
        self,
        session: Session,
        storage: ImageStorage,
        product_id: int,
    ) -> int:
        """
        Delete a product with its variants, their attributes and its gallery
        rows, then clean up the stored files (best-effort).
        """
        with smart_transaction(session):
            product = self._get_product(session, product_id)
            paths = [product.image]

            variant_ids = self.variant_repo.ids_for_product(session, product_id)
            self.variant_repo.delete_many(session, variant_ids)
            paths.extend(self.repo.delete_images_for_product(session, product_id))
            deleted = self.repo.delete(session, product_id)

        logger.info(
            "Deleted product %s with %d variant(s)", product_id, len(variant_ids)
        )
        delete_quietly(storage, [p for p in paths if p])
        return deleted

    def set_status(self, session: Session, product_id: int, is_active: bool) -> int:
        with smart_transaction(session):
            updated = self.repo.update_fields(
                session, product_id, {"is_active": bool(is_active)}
            )
            if not updated:
                raise NotFoundError("Product not found")
        logger.info("Product %s is_active=%s", product_id, is_active)
        return updated

    def upload_editor_image(self, storage: ImageStorage, upload: ImageUpload) -> str:
        """
        Store an image for the rich-text editor and return an absolute URL.
        """
        path = storage.save(PRODUCT_IMAGE_FOLDER, upload)
        url = resolve_image_url(path)
        if url.startswith(("http://", "https://")):
            return url
        return f"{get_settings().PUBLIC_BASE_URL.rstrip('/')}{url}"
