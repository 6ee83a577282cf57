import logging

from fastapi import APIRouter, Depends
from pymongo import ReturnDocument
from pymongo.database import Database

from config import Settings, get_settings
from database import create_document, get_db, now, to_object_id
from errors import Conflict, NotFound, Unauthorized, ValidationError
from ownership import purge_admin
from routes import ok
from schemas import AdminLogin, AdminUserIn, AdminUserUpdate, ProfileUpdate
from security import SUPER_ADMIN, create_access_token, get_current_admin, require_super_admin, verify_password, with_hashed_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin-users", tags=["Admin users"])

CREATOR_PROJECTION = {"name": 1, "username": 1}


def _public(db: Database, admin: dict) -> dict:
    admin = {k: v for k, v in admin.items() if k != "password"}
    if admin.get("createdBy") is not None:
        admin["createdBy"] = db["adminuser"].find_one({"_id": admin["createdBy"]}, CREATOR_PROJECTION)
    return admin


def _load(db: Database, admin_id: str) -> dict:
    oid = to_object_id(admin_id)
    admin = db["adminuser"].find_one({"_id": oid}) if oid else None
    if not admin:
        raise NotFound("Admin user not found.")
    return admin


def _email_taken(db: Database, email: str, exclude=None) -> bool:
    query = {"email": email.lower()}
    if exclude is not None:
        query["_id"] = {"$ne": exclude}
    return db["adminuser"].find_one(query, {"_id": 1}) is not None


@router.post("/login")
def login(body: AdminLogin, db: Database = Depends(get_db), settings: Settings = Depends(get_settings)):
    admin = db["adminuser"].find_one({"username": body.username, "isActive": True})
    if not admin or not verify_password(body.password, admin.get("password")):
        logger.info("Failed admin login for %s", body.username)
        raise Unauthorized("Invalid username or password.")
    token = create_access_token(str(admin["_id"]), "admin", settings)
    logger.info("Admin %s logged in", admin["username"])
    return ok("Login successful.", {**_public(db, admin), "token": token, "tokenType": "bearer"})


@router.get("/profile")
def get_profile(admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
    return ok("Profile retrieved successfully.", _public(db, admin))


@router.put("/profile")
def update_profile(body: ProfileUpdate, admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
    changes = {}
    if body.name:
        changes["name"] = body.name
    if body.email and body.email.lower() != admin.get("email"):
        if _email_taken(db, body.email, exclude=admin["_id"]):
            raise Conflict("Email already exists.")
        changes["email"] = body.email.lower()
    if body.new_password:
        if not body.current_password:
            raise ValidationError("Current password is required to set new password.")
        if not verify_password(body.current_password, admin.get("password")):
            raise ValidationError("Current password is incorrect.")
        changes["password"] = body.new_password
    if not changes:
        raise ValidationError("No fields to update.")
    changes = with_hashed_password(changes)
    changes["updatedAt"] = now()
    updated = db["adminuser"].find_one_and_update({"_id": admin["_id"]}, {"$set": changes}, return_document=ReturnDocument.AFTER)
    return ok("Profile updated successfully.", _public(db, updated))


@router.get("")
def list_admins(admin: dict = Depends(require_super_admin), db: Database = Depends(get_db)):
    admins = db["adminuser"].find({"isActive": True}).sort("createdAt", -1)
    return ok("Admin users retrieved successfully.", [_public(db, a) for a in admins])


@router.get("/{admin_id}")
def get_admin(admin_id: str, admin: dict = Depends(require_super_admin), db: Database = Depends(get_db)):
    return ok("Admin user retrieved successfully.", _public(db, _load(db, admin_id)))


@router.post("")
def create_admin(body: AdminUserIn, admin: dict = Depends(require_super_admin), db: Database = Depends(get_db)):
    email = body.email.lower()
    if db["adminuser"].find_one({"$or": [{"username": body.username}, {"email": email}]}, {"_id": 1}):
        raise Conflict("Username or email already exists.")
    doc = with_hashed_password({
        "username": body.username,
        "name": body.name,
        "email": email,
        "password": body.password,
        "clearanceLevel": body.clearance_level,
        "createdBy": admin["_id"],
        "isActive": True,
    })
    inserted_id = create_document(db, "adminuser", doc)
    logger.info("Admin %s created by %s", body.username, admin["username"])
    return ok("Admin user created successfully.", _public(db, db["adminuser"].find_one({"_id": inserted_id})))


@router.put("/{admin_id}")
def update_admin(admin_id: str, body: AdminUserUpdate, admin: dict = Depends(require_super_admin), db: Database = Depends(get_db)):
    target = _load(db, admin_id)
    changes = body.changes()
    changes = {k: v for k, v in changes.items() if v is not None}
    if "email" in changes:
        changes["email"] = changes["email"].lower()
        if _email_taken(db, changes["email"], exclude=target["_id"]):
            raise Conflict("Email already exists.")
    if target["_id"] == admin["_id"] and changes.get("isActive") is False:
        raise ValidationError("You cannot deactivate your own account.")
    if target["_id"] == admin["_id"] and changes.get("clearanceLevel", SUPER_ADMIN) != SUPER_ADMIN:
        raise ValidationError("You cannot change your own clearance level.")
    if not changes:
        raise ValidationError("No fields to update.")
    changes["updatedAt"] = now()
    updated = db["adminuser"].find_one_and_update({"_id": target["_id"]}, {"$set": changes}, return_document=ReturnDocument.AFTER)
    return ok("Admin user updated successfully.", _public(db, updated))


@router.put("/{admin_id}/deactivate")
def deactivate_admin(admin_id: str, admin: dict = Depends(require_super_admin), db: Database = Depends(get_db)):
    target = _load(db, admin_id)
    if target["_id"] == admin["_id"]:
        raise ValidationError("You cannot deactivate your own account.")
    updated = db["adminuser"].find_one_and_update(
        {"_id": target["_id"]}, {"$set": {"isActive": False, "updatedAt": now()}}, return_document=ReturnDocument.AFTER
    )
    logger.info("Admin %s deactivated by %s", target["username"], admin["username"])
    return ok("Admin user deactivated successfully.", _public(db, updated))


@router.delete("/{admin_id}")
def delete_admin(admin_id: str, admin: dict = Depends(require_super_admin), db: Database = Depends(get_db)):
    target = _load(db, admin_id)
    if target["_id"] == admin["_id"]:
        raise ValidationError("You cannot delete your own account.")
    purged = purge_admin(db, target["_id"])
    return ok("Admin user and all associated data deleted successfully.", {"deleted": purged})
