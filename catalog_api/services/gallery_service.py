# catalog_api/services/gallery_service.py
import logging
from collections.abc import Sequence

from fastapi import HTTPException
from sqlmodel import Session

from catalog_api.core.errors import NotFoundError, TransientIOError
from catalog_api.core.storage_utils import (
    ImageStorage,
    ImageUpload,
    delete_quietly,
    resolve_image_url,
)
from catalog_api.core.transactions import smart_transaction
from catalog_api.models.product import ProductImage
from catalog_api.repositories.product_repo import ProductRepository
from catalog_api.schemas.product import GalleryImageRead

logger = logging.getLogger(__name__)

PRODUCT_IMAGE_FOLDER = "products"


class GalleryService:
    """
    A product's ordered list of auxiliary images.

    - append: continues after the current max sort_order; each file is its
      own SAVEPOINT, so one failing image is logged and skipped while the
      rest of the batch (and the caller's transaction) carries on.
    - prune: keep only the listed image ids (empty list clears the gallery).
    """

    def __init__(self, repo: ProductRepository):
        self.repo = repo

    def _store_one(
        self,
        session: Session,
        storage: ImageStorage,
        product_id: int,
        upload: ImageUpload,
        sort_order: int,
    ) -> ProductImage:
        path: str | None = None
        try:
            with smart_transaction(session):
                path = storage.save(PRODUCT_IMAGE_FOLDER, upload)
                return self.repo.create_image(
                    session,
                    ProductImage(product_id=product_id, image=path, sort_order=sort_order),
                )
        except HTTPException:
            raise
        except Exception as exc:
            # row insert failed after the file was stored
            if path:
                delete_quietly(storage, [path])
            raise TransientIOError(str(exc)) from exc

    def append_images_in_tx(
        self,
        session: Session,
        storage: ImageStorage,
        product_id: int,
        uploads: Sequence[ImageUpload],
    ) -> list[ProductImage]:
        if not uploads:
            return []

        next_sort = self.repo.max_sort_order(session, product_id) + 1
        saved: list[ProductImage] = []

        for index, upload in enumerate(uploads, start=1):
            try:
                image = self._store_one(session, storage, product_id, upload, next_sort)
            except TransientIOError as exc:
                logger.warning(
                    "Skipping gallery image %d (%s) for product %s: %s",
                    index,
                    upload.filename,
                    product_id,
                    exc,
                )
                continue
            saved.append(image)
            next_sort += 1

        logger.info(
            "Saved %d/%d gallery image(s) for product %s",
            len(saved),
            len(uploads),
            product_id,
        )
        return saved

    def prune_to_keep_list_in_tx(
        self,
        session: Session,
        product_id: int,
        keep_ids: Sequence[int],
    ) -> list[str]:
        removed = self.repo.delete_images_not_in(session, product_id, keep_ids)
        logger.info(
            "Removed %d gallery image(s) not in keep list for product %s",
            len(removed),
            product_id,
        )
        return removed

    # ----- Standalone operations -----

    def append_images(
        self,
        session: Session,
        storage: ImageStorage,
        product_id: int,
        uploads: Sequence[ImageUpload],
    ) -> list[GalleryImageRead]:
        with smart_transaction(session):
            if not self.repo.exists(session, product_id):
                raise NotFoundError("Product not found")
            saved = self.append_images_in_tx(session, storage, product_id, uploads)
            result = [self._to_read(img) for img in saved]
        return result

    def prune_to_keep_list(
        self,
        session: Session,
        product_id: int,
        keep_ids: Sequence[int],
    ) -> list[str]:
        with smart_transaction(session):
            return self.prune_to_keep_list_in_tx(session, product_id, keep_ids)

    def list_images(self, session: Session, product_id: int) -> list[GalleryImageRead]:
        """
        Gallery rows ordered by sort_order ascending, with display URLs.
        """
        return [
            self._to_read(img)
            for img in self.repo.list_images_for_product(session, product_id)
        ]

    @staticmethod
    def _to_read(image: ProductImage) -> GalleryImageRead:
        return GalleryImageRead(
            id=image.id,
            image=resolve_image_url(image.image),
            sort_order=image.sort_order,
        )
