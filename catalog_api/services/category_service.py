# catalog_api/services/category_service.py
import logging
import re

from fastapi import status
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from catalog_api.core.errors import ConflictError, NotFoundError, ValidationError
from catalog_api.core.storage_utils import (
    ImageStorage,
    ImageUpload,
    delete_quietly,
    resolve_image_url,
    validate_image,
)
from catalog_api.core.transactions import smart_transaction
from catalog_api.models.category import Category
from catalog_api.repositories.category_repo import CategoryRepository
from catalog_api.repositories.product_repo import ProductRepository
from catalog_api.schemas.category import CategoryRead

logger = logging.getLogger(__name__)

CATEGORY_IMAGE_FOLDER = "categories"


def slugify(raw: str) -> str:
    """
    Basic slugification:
      - lowercase
      - non-alphanumeric -> '-'
      - collapse multiple '-'
      - strip leading/trailing '-'
    """
    value = raw.strip().lower()
    value = re.sub(r"[^a-z0-9]+", "-", value)
    value = re.sub(r"-+", "-", value)
    value = value.strip("-")
    return value or "category"


class CategoryService:
    """
    Category CRUD with a referential guard: a category that still has
    products cannot be deleted.
    """

    def __init__(self, repo: CategoryRepository, product_repo: ProductRepository):
        self.repo = repo
        self.product_repo = product_repo

    @staticmethod
    def to_read(category: Category) -> CategoryRead:
        return CategoryRead(
            id=category.id,
            name=category.name,
            slug=category.slug,
            image=resolve_image_url(category.image),
        )

    def _ensure_slug_free(
        self, session: Session, slug: str, category_id: int | None = None
    ) -> None:
        existing = self.repo.get_by_slug(session, slug)
        if existing is not None and existing.id != category_id:
            raise ConflictError(f"A category with slug '{slug}' already exists")

    def list_categories(self, session: Session) -> list[CategoryRead]:
        return [self.to_read(c) for c in self.repo.list(session)]

    def get_by_slug(self, session: Session, slug: str) -> Category:
        category = self.repo.get_by_slug(session, slug)
        if category is None:
            raise NotFoundError("Category not found")
        return category

    def create_category(
        self,
        session: Session,
        storage: ImageStorage,
        name: str | None,
        image: ImageUpload | None,
    ) -> int:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name required")
        if image is None:
            raise ValidationError("Category image required")
        validate_image(image)

        slug = slugify(name)
        saved_path: str | None = None
        try:
            with smart_transaction(session):
                self._ensure_slug_free(session, slug)
                saved_path = storage.save(CATEGORY_IMAGE_FOLDER, image)
                category = self.repo.create(
                    session,
                    Category(name=name, slug=slug, image=saved_path),
                )
                category_id = category.id
        except IntegrityError as exc:
            if saved_path:
                delete_quietly(storage, [saved_path])
            raise ConflictError(f"A category with slug '{slug}' already exists") from exc

        logger.info("Created category %s (%s)", category_id, slug)
        return category_id

    def update_category(
        self,
        session: Session,
        storage: ImageStorage,
        category_id: int,
        name: str | None,
        image: ImageUpload | None = None,
    ) -> CategoryRead:
        """
        Rename a category (slug follows the name) and optionally replace
        its image; the current image is kept when none is uploaded.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name required")
        if image is not None:
            validate_image(image)

        slug = slugify(name)
        old_image: str | None = None
        new_image: str | None = None
        try:
            with smart_transaction(session):
                category = self.repo.get_by_id(session, category_id)
                if category is None:
                    raise NotFoundError("Category not found")
                self._ensure_slug_free(session, slug, category_id)

                category.name = name
                category.slug = slug
                if image is not None:
                    old_image = category.image
                    new_image = storage.save(CATEGORY_IMAGE_FOLDER, image)
                    category.image = new_image
                self.repo.update(session, category)
                result = self.to_read(category)
        except Exception:
            if new_image:
                delete_quietly(storage, [new_image])
            raise

        if old_image:
            delete_quietly(storage, [old_image])
        logger.info("Updated category %s", category_id)
        return result

    def delete_category(self, session: Session, category_id: int) -> None:
        """
        Delete a category that no product references.

        Raises:
            NotFoundError: category does not exist.
            ConflictError (400): products still reference the category.
        """
        with smart_transaction(session):
            category = self.repo.get_by_id(session, category_id)
            if category is None:
                raise NotFoundError("Category not found")

            count = self.product_repo.count_in_category(session, category_id)
            if count > 0:
                raise ConflictError(
                    f"Cannot delete category. There are {count} product(s) "
                    "associated with this category. Please remove or reassign "
                    "products first.",
                    status_code=status.HTTP_400_BAD_REQUEST,
                )
            self.repo.delete(session, category)

        logger.info("Deleted category %s", category_id)
