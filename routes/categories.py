from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pymongo.database import Database

from database import get_db
from errors import Forbidden, ValidationError
from ownership import categories, posters
from routes import ok
from security import can_modify, get_current_admin
from uploads import ImageStore, get_image_store, has_file

router = APIRouter(prefix="/categories", tags=["Categories"])
poster_router = APIRouter(prefix="/posters", tags=["Posters"])


# ---------- Categories ----------
@router.get("")
def list_categories(admin_id: Optional[str] = Query(None, alias="adminId"), db: Database = Depends(get_db)):
    return ok("Categories retrieved successfully.", categories.list(db, admin_id))


@router.get("/{category_id}")
def get_category(category_id: str, db: Database = Depends(get_db)):
    return ok("Category retrieved successfully.", categories.get(db, category_id))


@router.post("")
def create_category(
    name: str = Form(..., min_length=1),
    img: Optional[UploadFile] = File(None),
    image: Optional[str] = Form(None),
    admin: dict = Depends(get_current_admin),
    db: Database = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    if has_file(img):
        image = store.save_upload(img, "categories", "category")
    if not image:
        raise ValidationError("Image is required.")
    return ok("Category created successfully.", categories.create(db, {"name": name, "image": image}, admin))


@router.put("/{category_id}")
def update_category(
    category_id: str,
    name: Optional[str] = Form(None, min_length=1),
    img: Optional[UploadFile] = File(None),
    image: Optional[str] = Form(None),
    admin: dict = Depends(get_current_admin),
    db: Database = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    if not can_modify(admin, categories.load(db, category_id)):
        raise Forbidden("You can only edit your own categories.")
    if has_file(img):
        image = store.save_upload(img, "categories", "category")
    fields = {k: v for k, v in {"name": name, "image": image}.items() if v}
    return ok("Category updated successfully.", categories.update(db, category_id, fields, admin))


@router.delete("/{category_id}")
def delete_category(category_id: str, admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
    categories.delete(db, category_id, admin)
    return ok("Category deleted successfully.")


# ---------- Posters ----------
@poster_router.get("")
def list_posters(admin_id: Optional[str] = Query(None, alias="adminId"), db: Database = Depends(get_db)):
    return ok("Posters retrieved successfully.", posters.list(db, admin_id))


@poster_router.get("/{poster_id}")
def get_poster(poster_id: str, db: Database = Depends(get_db)):
    return ok("Poster retrieved successfully.", posters.get(db, poster_id))


@poster_router.post("")
def create_poster(
    poster_name: str = Form(..., alias="posterName", min_length=1),
    img: Optional[UploadFile] = File(None),
    image: Optional[str] = Form(None),
    admin: dict = Depends(get_current_admin),
    db: Database = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    if has_file(img):
        image = store.save_upload(img, "posters", "poster")
    if not image:
        raise ValidationError("Image is required.")
    return ok("Poster created successfully.", posters.create(db, {"posterName": poster_name, "imageUrl": image}, admin))


@poster_router.put("/{poster_id}")
def update_poster(
    poster_id: str,
    poster_name: Optional[str] = Form(None, alias="posterName", min_length=1),
    img: Optional[UploadFile] = File(None),
    image: Optional[str] = Form(None),
    admin: dict = Depends(get_current_admin),
    db: Database = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    if not can_modify(admin, posters.load(db, poster_id)):
        raise Forbidden("You can only edit your own posters.")
    if has_file(img):
        image = store.save_upload(img, "posters", "poster")
    fields = {k: v for k, v in {"posterName": poster_name, "imageUrl": image}.items() if v}
    return ok("Poster updated successfully.", posters.update(db, poster_id, fields, admin))


@poster_router.delete("/{poster_id}")
def delete_poster(poster_id: str, admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
    posters.delete(db, poster_id, admin)
    return ok("Poster deleted successfully.")
