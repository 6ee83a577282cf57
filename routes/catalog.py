from typing import Optional, Type

from fastapi import APIRouter, Depends, Query
from pymongo.database import Database

from database import get_db
from ownership import OwnedResource, brands, sub_categories, variant_types, variants
from routes import ok
from schemas import (
    BrandIn, BrandUpdate, Schema, SubCategoryIn, SubCategoryUpdate,
    VariantIn, VariantTypeIn, VariantTypeUpdate, VariantUpdate,
)
from security import get_current_admin


def resource_router(resource: OwnedResource, prefix: str, create_model: Type[Schema], update_model: Type[Schema], title: str, title_plural: str) -> APIRouter:
    """CRUD routes for a catalog resource with JSON bodies."""
    router = APIRouter(prefix=prefix, tags=[title_plural])

    @router.get("")
    def list_items(admin_id: Optional[str] = Query(None, alias="adminId"), db: Database = Depends(get_db)):
        return ok(f"{title_plural} retrieved successfully.", resource.list(db, admin_id))

    @router.get("/{item_id}")
    def get_item(item_id: str, db: Database = Depends(get_db)):
        return ok(f"{title} retrieved successfully.", resource.get(db, item_id))

    @router.post("")
    def create_item(body: create_model, admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
        return ok(f"{title} created successfully.", resource.create(db, body.changes(), admin))

    @router.put("/{item_id}")
    def update_item(item_id: str, body: update_model, admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
        return ok(f"{title} updated successfully.", resource.update(db, item_id, body.changes(), admin))

    @router.delete("/{item_id}")
    def delete_item(item_id: str, admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
        resource.delete(db, item_id, admin)
        return ok(f"{title} deleted successfully.")

    return router


sub_category_router = resource_router(sub_categories, "/subCategories", SubCategoryIn, SubCategoryUpdate, "Sub-category", "Sub-categories")
brand_router = resource_router(brands, "/brands", BrandIn, BrandUpdate, "Brand", "Brands")
variant_type_router = resource_router(variant_types, "/variantTypes", VariantTypeIn, VariantTypeUpdate, "Variant type", "Variant types")
variant_router = resource_router(variants, "/variants", VariantIn, VariantUpdate, "Variant", "Variants")
