from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pymongo.database import Database

from database import get_db
from errors import Forbidden, ValidationError
from ownership import products
from routes import ok
from security import can_modify, get_current_admin
from uploads import ImageStore, get_image_store, has_file

router = APIRouter(prefix="/products", tags=["Products"])


def _store_images(store: ImageStore, uploads: List[Optional[UploadFile]], current: Optional[list] = None) -> list:
    """Save uploaded slot images, replacing only the slots that were sent."""
    images = {img["image"]: img["url"] for img in current or []}
    for slot, upload in enumerate(uploads, start=1):
        if has_file(upload):
            images[slot] = store.save_upload(upload, "products", "product")
    return [{"image": slot, "url": images[slot]} for slot in sorted(images)]


@router.get("")
def list_products(admin_id: Optional[str] = Query(None, alias="adminId"), db: Database = Depends(get_db)):
    return ok("Products retrieved successfully.", products.list(db, admin_id))


@router.get("/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    return ok("Product retrieved successfully.", products.get(db, product_id))


@router.post("")
def create_product(
    name: str = Form(..., min_length=1),
    description: Optional[str] = Form(None),
    quantity: int = Form(..., ge=0),
    price: float = Form(..., ge=0),
    offer_price: Optional[float] = Form(None, alias="offerPrice", ge=0),
    category_id: str = Form(..., alias="categoryId"),
    sub_category_id: str = Form(..., alias="subCategoryId"),
    brand_id: Optional[str] = Form(None, alias="brandId"),
    variant_type_id: Optional[str] = Form(None, alias="variantTypeId"),
    variant_ids: Optional[List[str]] = Form(None, alias="variantIds"),
    image1: Optional[UploadFile] = File(None),
    image2: Optional[UploadFile] = File(None),
    image3: Optional[UploadFile] = File(None),
    image4: Optional[UploadFile] = File(None),
    image5: Optional[UploadFile] = File(None),
    admin: dict = Depends(get_current_admin),
    db: Database = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    uploads = [image1, image2, image3, image4, image5]
    if not any(has_file(u) for u in uploads):
        raise ValidationError("At least one product image is required.")
    fields = {
        "name": name,
        "description": description,
        "quantity": quantity,
        "price": price,
        "offerPrice": offer_price,
        "categoryId": category_id,
        "subCategoryId": sub_category_id,
        "brandId": brand_id,
        "variantTypeId": variant_type_id,
        "variantIds": variant_ids or [],
    }
    # references are checked before any image is written
    fields = products.resolve_refs(db, fields, creating=True)
    fields["images"] = _store_images(store, uploads)
    return ok("Product created successfully.", products.create(db, fields, admin, refs_resolved=True))


@router.put("/{product_id}")
def update_product(
    product_id: str,
    name: Optional[str] = Form(None, min_length=1),
    description: Optional[str] = Form(None),
    quantity: Optional[int] = Form(None, ge=0),
    price: Optional[float] = Form(None, ge=0),
    offer_price: Optional[float] = Form(None, alias="offerPrice", ge=0),
    category_id: Optional[str] = Form(None, alias="categoryId"),
    sub_category_id: Optional[str] = Form(None, alias="subCategoryId"),
    brand_id: Optional[str] = Form(None, alias="brandId"),
    variant_type_id: Optional[str] = Form(None, alias="variantTypeId"),
    variant_ids: Optional[List[str]] = Form(None, alias="variantIds"),
    image1: Optional[UploadFile] = File(None),
    image2: Optional[UploadFile] = File(None),
    image3: Optional[UploadFile] = File(None),
    image4: Optional[UploadFile] = File(None),
    image5: Optional[UploadFile] = File(None),
    admin: dict = Depends(get_current_admin),
    db: Database = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    product = products.load(db, product_id)
    if not can_modify(admin, product):
        raise Forbidden("You can only edit your own products.")
    fields = {
        "name": name,
        "description": description,
        "quantity": quantity,
        "price": price,
        "offerPrice": offer_price,
        "categoryId": category_id,
        "subCategoryId": sub_category_id,
        "brandId": brand_id,
        "variantTypeId": variant_type_id,
        "variantIds": variant_ids,
    }
    fields = {k: v for k, v in fields.items() if v is not None and v != ""}
    fields = products.resolve_refs(db, fields, creating=False)
    uploads = [image1, image2, image3, image4, image5]
    if any(has_file(u) for u in uploads):
        fields["images"] = _store_images(store, uploads, product.get("images"))
    return ok("Product updated successfully.", products.update(db, product_id, fields, admin, refs_resolved=True))


@router.delete("/{product_id}")
def delete_product(product_id: str, admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
    products.delete(db, product_id, admin)
    return ok("Product deleted successfully.")
