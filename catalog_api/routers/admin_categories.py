# catalog_api/routers/admin_categories.py
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlmodel import Session

from catalog_api.core.auth import require_admin
from catalog_api.core.storage_utils import ImageStorage, get_image_storage, read_upload
from catalog_api.database import get_session
from catalog_api.repositories.category_repo import CategoryRepository
from catalog_api.repositories.product_repo import ProductRepository
from catalog_api.schemas.category import CategoryCreated, CategoryUpdated
from catalog_api.schemas.product import WriteResult
from catalog_api.services.category_service import CategoryService

router = APIRouter(
    prefix="/admin/categories",
    tags=["Admin categories"],
    dependencies=[Depends(require_admin)],
)

service = CategoryService(CategoryRepository(), ProductRepository())


@router.post("", response_model=CategoryCreated)
def create_category(
    name: str | None = Form(None),
    image: UploadFile | None = File(None),
    session: Session = Depends(get_session),
    storage: ImageStorage = Depends(get_image_storage),
):
    """
    Create a category; the slug is derived from the name.
    """
    category_id = service.create_category(session, storage, name, read_upload(image))
    return CategoryCreated(category_id=category_id)


@router.put("/{category_id}", response_model=CategoryUpdated)
def update_category(
    category_id: int,
    name: str | None = Form(None),
    image: UploadFile | None = File(None),
    session: Session = Depends(get_session),
    storage: ImageStorage = Depends(get_image_storage),
):
    """
    Rename a category (slug regenerated) and optionally replace its image.
    """
    category = service.update_category(
        session, storage, category_id, name, read_upload(image)
    )
    return CategoryUpdated(category=category)


@router.delete("/{category_id}", response_model=WriteResult)
def delete_category(
    category_id: int,
    session: Session = Depends(get_session),
):
    """
    Delete a category. Refused while products still reference it.
    """
    service.delete_category(session, category_id)
    return WriteResult(message="Category deleted successfully")
