# catalog_api/routers/admin_products.py
from typing import Any

from fastapi import (
    APIRouter,
    Body,
    Depends,
    File,
    Form,
    UploadFile,
)
from sqlmodel import Session

from catalog_api.core.auth import require_admin
from catalog_api.core.errors import ValidationError
from catalog_api.core.storage_utils import (
    ImageStorage,
    get_image_storage,
    read_upload,
    read_uploads,
)
from catalog_api.database import get_session
from catalog_api.repositories.category_repo import CategoryRepository
from catalog_api.repositories.product_repo import ProductRepository
from catalog_api.repositories.variant_repo import VariantRepository
from catalog_api.schemas.product import (
    BulkDeleteRequest,
    BulkVariantsCreated,
    DeletedCount,
    ProductCreated,
    ProductEditResponse,
    ProductList,
    ProductStatusUpdate,
    UpdatedCount,
    UploadedImage,
    VariantUpdate,
    VariantUpdated,
    WriteResult,
)
from catalog_api.services.gallery_service import GalleryService
from catalog_api.services.product_service import (
    ProductForm,
    ProductService,
    ProductUploads,
)
from catalog_api.services.variant_service import VariantService

router = APIRouter(
    prefix="/admin",
    tags=["Admin catalog"],
    dependencies=[Depends(require_admin)],
)

product_repo = ProductRepository()
variant_repo = VariantRepository()
variant_service = VariantService(variant_repo, product_repo)
service = ProductService(
    repo=product_repo,
    category_repo=CategoryRepository(),
    variant_repo=variant_repo,
    variants=variant_service,
    gallery=GalleryService(product_repo),
)


# -------- Products --------


@router.get("/products", response_model=ProductList)
def list_products(session: Session = Depends(get_session)):
    """
    Full catalog (active and inactive) with variants, attributes and gallery.
    """
    return ProductList(products=service.list_products(session))


@router.post("/products", response_model=ProductCreated)
def create_product(
    category_name: str | None = Form(None, alias="categoryName"),
    product_name: str | None = Form(None, alias="productName"),
    description: str | None = Form(None),
    additional_description: str | None = Form(None, alias="additionalDescription"),
    variants: str | None = Form(None),
    image: UploadFile | None = File(None),
    gallery: list[UploadFile] | None = File(None),
    session: Session = Depends(get_session),
    storage: ImageStorage = Depends(get_image_storage),
):
    """
    Create a product with its main image, gallery and variants.

    - `variants` is a JSON-encoded array of {sku?, price, stock, attributes}.
    - `attributes` may be [{name, value}, ...] or {"Size": "M", ...}.
    """
    form = ProductForm(
        category_name=category_name,
        product_name=product_name,
        description=description,
        additional_description=additional_description,
        variants=variants,
    )
    uploads = ProductUploads(main_image=read_upload(image), gallery=read_uploads(gallery))
    product_id = service.create_product(session, storage, form, uploads)
    return ProductCreated(product_id=product_id)


@router.put("/products/{product_id}", response_model=WriteResult)
def update_product(
    product_id: int,
    category_name: str | None = Form(None, alias="categoryName"),
    product_name: str | None = Form(None, alias="productName"),
    description: str | None = Form(None),
    additional_description: str | None = Form(None, alias="additionalDescription"),
    keep_image_ids: str | None = Form(None, alias="keepImageIds"),
    variants: str | None = Form(None),
    image: UploadFile | None = File(None),
    gallery: list[UploadFile] | None = File(None),
    session: Session = Depends(get_session),
    storage: ImageStorage = Depends(get_image_storage),
):
    """
    Partial update: only supplied, non-empty fields are written.

    - `keepImageIds` (JSON array) prunes the gallery to those ids.
    - `variants` entries with `id` are patched, entries without are created.
    """
    form = ProductForm(
        category_name=category_name,
        product_name=product_name,
        description=description,
        additional_description=additional_description,
        variants=variants,
        keep_image_ids=keep_image_ids,
    )
    uploads = ProductUploads(main_image=read_upload(image), gallery=read_uploads(gallery))
    service.update_product(session, storage, product_id, form, uploads)
    return WriteResult(message="Product updated successfully")


@router.delete("/products/{product_id}", response_model=DeletedCount)
def delete_product(
    product_id: int,
    session: Session = Depends(get_session),
    storage: ImageStorage = Depends(get_image_storage),
):
    """
    Delete a product together with its variants, attributes and gallery.
    """
    deleted = service.delete_product(session, storage, product_id)
    return DeletedCount(deleted=deleted)


@router.patch("/products/{product_id}/status", response_model=UpdatedCount)
def set_product_status(
    product_id: int,
    payload: ProductStatusUpdate,
    session: Session = Depends(get_session),
):
    """
    Show / hide a product on the storefront.
    """
    updated = service.set_status(session, product_id, payload.is_active)
    return UpdatedCount(updated=updated)


@router.get("/products/{product_id}/edit", response_model=ProductEditResponse)
def get_product_for_edit(
    product_id: int,
    session: Session = Depends(get_session),
):
    """
    Product, gallery and variants (attributes as a name -> value map)
    for pre-populating the edit form.
    """
    return service.get_edit_view(session, product_id)


# -------- Variants --------


@router.post("/products/{product_id}/variants", response_model=BulkVariantsCreated)
def create_variants(
    product_id: int,
    payload: Any = Body(...),
    session: Session = Depends(get_session),
):
    """
    Save several variants for a product in one transaction (all-or-nothing).

    Body: [{price, stock, sku?, attributes: {"Size": "8 inches"}}, ...]
    """
    created = variant_service.bulk_create_variants(session, product_id, payload)
    return BulkVariantsCreated(created=created)


@router.put("/variants/{variant_id}", response_model=VariantUpdated)
def update_variant(
    variant_id: int,
    payload: VariantUpdate,
    session: Session = Depends(get_session),
):
    """
    Update sku / price / stock; sending `attributes` replaces the whole set.
    """
    return VariantUpdated(variant=variant_service.update_variant(session, variant_id, payload))


@router.delete("/variants/{variant_id}", response_model=DeletedCount)
def delete_variant(
    variant_id: int,
    session: Session = Depends(get_session),
):
    deleted = variant_service.delete_variant(session, variant_id)
    return DeletedCount(deleted=deleted)


@router.post("/variants/bulk-delete", response_model=DeletedCount)
def bulk_delete_variants(
    payload: BulkDeleteRequest,
    session: Session = Depends(get_session),
):
    deleted = variant_service.bulk_delete_variants(session, payload.variant_ids)
    return DeletedCount(
        deleted=deleted,
        message=f"Successfully deleted {deleted} variant(s)",
    )


# -------- Editor uploads --------


@router.post("/upload-image", response_model=UploadedImage)
def upload_editor_image(
    file: UploadFile | None = File(None),
    storage: ImageStorage = Depends(get_image_storage),
):
    """
    Image upload for the rich-text editor; returns {"location": <absolute URL>}.
    """
    upload = read_upload(file)
    if upload is None:
        raise ValidationError("No file uploaded")
    return UploadedImage(location=service.upload_editor_image(storage, upload))
