"""
Ownership-scoped catalog resources.

Every catalog document carries ``createdBy`` (the admin that created it). Any
admin may create; only the creator or a super admin may update or delete; a
document cannot be deleted while another catalog document or a product still
points at it. Deleting an admin purges everything it owns (see purge_owned).
"""
import logging
from typing import Iterable, List, Optional, Sequence

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import create_document, now, to_object_id
from errors import Conflict, Forbidden, InternalError, NotFound, ValidationError
from security import can_modify

logger = logging.getLogger(__name__)

CREATOR_PROJECTION = {"username": 1, "name": 1}


class Ref:
    """A reference from one catalog document to another."""

    def __init__(self, field: str, collection: str, label: str, many: bool = False, required: bool = True, projection: Sequence[str] = ("name",)):
        self.field = field
        self.collection = collection
        self.label = label
        self.many = many
        self.required = required
        self.projection = {p: 1 for p in projection}


class Dependent:
    """A collection whose documents block deletion while they reference this one."""

    def __init__(self, collection: str, field: str, label: str):
        self.collection = collection
        self.field = field
        self.label = label


class OwnedResource:
    def __init__(self, collection: str, label: str, plural: str, refs: Iterable[Ref] = (), dependents: Iterable[Dependent] = ()):
        self.collection = collection
        self.label = label
        self.plural = plural
        self.refs = list(refs)
        self.dependents = list(dependents)

    # ---------- reads ----------
    def list(self, db: Database, admin_id: Optional[str] = None) -> List[dict]:
        query = {}
        if admin_id:
            oid = to_object_id(admin_id)
            if oid is None:
                return []
            query["createdBy"] = oid
        return [self.populate(db, d) for d in db[self.collection].find(query).sort("_id", -1)]

    def get(self, db: Database, doc_id: str) -> dict:
        return self.populate(db, self.load(db, doc_id))

    def populate(self, db: Database, doc: dict) -> dict:
        doc = dict(doc)
        for ref in self.refs:
            value = doc.get(ref.field)
            if value is None:
                continue
            target = db[ref.collection]
            if ref.many:
                doc[ref.field] = list(target.find({"_id": {"$in": list(value)}}, ref.projection))
            else:
                doc[ref.field] = target.find_one({"_id": value}, ref.projection)
        if doc.get("createdBy") is not None:
            doc["createdBy"] = db["adminuser"].find_one({"_id": doc["createdBy"]}, CREATOR_PROJECTION)
        return doc

    # ---------- writes ----------
    def create(self, db: Database, fields: dict, admin: dict, refs_resolved: bool = False) -> dict:
        if not refs_resolved:
            fields = self.resolve_refs(db, fields, creating=True)
        fields["createdBy"] = admin["_id"]
        inserted_id = create_document(db, self.collection, fields)
        logger.info("%s %s created by %s", self.label, inserted_id, admin.get("username"))
        return self.get(db, inserted_id)

    def update(self, db: Database, doc_id: str, fields: dict, admin: dict, refs_resolved: bool = False) -> dict:
        doc = self.load(db, doc_id)
        if not can_modify(admin, doc):
            raise Forbidden(f"You can only edit your own {self.plural}.")
        # null only clears optional references; other nulls are ignored
        ref_fields = {ref.field for ref in self.refs}
        fields = {k: v for k, v in fields.items() if v is not None or k in ref_fields}
        if not refs_resolved:
            fields = self.resolve_refs(db, fields, creating=False)
        fields.pop("createdBy", None)
        if not fields:
            raise ValidationError("No fields to update.")
        fields["updatedAt"] = now()
        db[self.collection].find_one_and_update({"_id": doc["_id"]}, {"$set": fields}, return_document=ReturnDocument.AFTER)
        return self.get(db, doc["_id"])

    def delete(self, db: Database, doc_id: str, admin: dict) -> None:
        doc = self.load(db, doc_id)
        if not can_modify(admin, doc):
            raise Forbidden(f"You can only delete your own {self.plural}.")
        for dep in self.dependents:
            if db[dep.collection].find_one({dep.field: doc["_id"]}, {"_id": 1}):
                raise Conflict(f"Cannot delete {self.label.lower()}. {dep.label} are referencing it.")
        db[self.collection].delete_one({"_id": doc["_id"]})
        logger.info("%s %s deleted by %s", self.label, doc["_id"], admin.get("username"))

    def purge_owned(self, db: Database, admin_id: ObjectId) -> int:
        return db[self.collection].delete_many({"createdBy": admin_id}).deleted_count

    # ---------- helpers ----------
    def load(self, db: Database, doc_id) -> dict:
        oid = to_object_id(doc_id)
        doc = db[self.collection].find_one({"_id": oid}) if oid else None
        if not doc:
            raise NotFound(f"{self.label} not found.")
        return doc

    def resolve_refs(self, db: Database, fields: dict, creating: bool) -> dict:
        """Turn reference ids into ObjectIds, checking that every referenced document exists."""
        fields = dict(fields)
        for ref in self.refs:
            if ref.field not in fields:
                if creating and ref.required:
                    raise ValidationError(f"{ref.label} ID is required.")
                continue
            value = fields[ref.field]
            if value in (None, "", []):
                if ref.required:
                    raise ValidationError(f"{ref.label} ID is required.")
                fields[ref.field] = [] if ref.many else None
                continue
            if ref.many:
                ids = [to_object_id(v) for v in value]
                unique = set(ids)
                if None in unique or db[ref.collection].count_documents({"_id": {"$in": list(unique)}}) != len(unique):
                    raise ValidationError(f"Referenced {ref.label.lower()} does not exist.")
                fields[ref.field] = ids
            else:
                oid = to_object_id(value)
                if oid is None or not db[ref.collection].find_one({"_id": oid}, {"_id": 1}):
                    raise ValidationError(f"Referenced {ref.label.lower()} does not exist.")
                fields[ref.field] = oid
        return fields


categories = OwnedResource(
    "category", "Category", "categories",
    dependents=[Dependent("subcategory", "categoryId", "Subcategories"), Dependent("product", "categoryId", "Products")],
)
sub_categories = OwnedResource(
    "subcategory", "Sub-category", "sub-categories",
    refs=[Ref("categoryId", "category", "Category")],
    dependents=[Dependent("brand", "subCategoryId", "Brands"), Dependent("product", "subCategoryId", "Products")],
)
brands = OwnedResource(
    "brand", "Brand", "brands",
    refs=[Ref("subCategoryId", "subcategory", "Sub-category")],
    dependents=[Dependent("product", "brandId", "Products")],
)
variant_types = OwnedResource(
    "varianttype", "Variant type", "variant types",
    dependents=[Dependent("variant", "variantTypeId", "Variants"), Dependent("product", "variantTypeId", "Products")],
)
variants = OwnedResource(
    "variant", "Variant", "variants",
    refs=[Ref("variantTypeId", "varianttype", "Variant type")],
    dependents=[Dependent("product", "variantIds", "Products")],
)
products = OwnedResource(
    "product", "Product", "products",
    refs=[
        Ref("categoryId", "category", "Category"),
        Ref("subCategoryId", "subcategory", "Sub-category"),
        Ref("brandId", "brand", "Brand", required=False),
        Ref("variantTypeId", "varianttype", "Variant type", required=False, projection=("name", "type")),
        Ref("variantIds", "variant", "Variant", many=True, required=False),
    ],
)
coupons = OwnedResource(
    "coupon", "Coupon", "coupons",
    refs=[
        Ref("applicableCategory", "category", "Category", required=False),
        Ref("applicableSubCategory", "subcategory", "Sub-category", required=False),
        Ref("applicableProduct", "product", "Product", required=False),
    ],
)
posters = OwnedResource("poster", "Poster", "posters")

# Children before parents, so a cascade that stops part way leaves as few dangling references as possible.
CASCADE_ORDER = [products, coupons, posters, variants, brands, sub_categories, variant_types, categories]


def purge_admin(db: Database, admin_id: ObjectId) -> dict:
    """Delete every catalog document owned by an admin, then the admin itself.

    Each collection is purged independently. When a step fails, the collections
    already purged are logged for manual reconciliation and the error propagates.
    """
    purged = {}
    try:
        for resource in CASCADE_ORDER:
            purged[resource.collection] = resource.purge_owned(db, admin_id)
        db["adminuser"].delete_one({"_id": admin_id})
    except PyMongoError:
        logger.error("Cascade delete of admin %s stopped part way; purged so far: %s", admin_id, purged)
        raise InternalError("Admin deletion stopped part way; owned data may be partially removed.")
    logger.info("Admin %s deleted with owned data %s", admin_id, purged)
    return purged
