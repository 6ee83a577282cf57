import logging

from fastapi import APIRouter, Depends
from pymongo.database import Database

from config import Settings, get_settings
from database import create_document, get_db, now, to_object_id
from errors import Conflict, Forbidden, NotFound, Unauthorized, ValidationError
from routes import ok
from schemas import UserLogin, UserRegister, UserUpdate
from security import create_access_token, get_current_admin, get_current_customer, verify_password, with_hashed_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _load(db: Database, user_id: str) -> dict:
    oid = to_object_id(user_id)
    user = db["user"].find_one({"_id": oid}) if oid else None
    if not user:
        raise NotFound("User not found.")
    return user


@router.get("")
def list_users(admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
    return ok("Users retrieved successfully.", list(db["user"].find().sort("_id", -1)))


@router.post("/register")
def register(body: UserRegister, db: Database = Depends(get_db), settings: Settings = Depends(get_settings)):
    email = body.email.lower() if body.email else None
    if email and db["user"].find_one({"email": email}, {"_id": 1}):
        raise Conflict("Email already exists.")
    if body.phone and db["user"].find_one({"phone": body.phone}, {"_id": 1}):
        raise Conflict("Phone already exists.")
    doc = {
        "name": body.name,
        "password": body.password,
        "emailVerified": bool(email and db["emailverification"].find_one({"email": email, "verified": True})),
        "phoneVerified": False,
    }
    # sparse unique indexes skip missing keys, not nulls
    if email:
        doc["email"] = email
    if body.phone:
        doc["phone"] = body.phone
    user_id = create_document(db, "user", with_hashed_password(doc))
    user = db["user"].find_one({"_id": user_id})
    token = create_access_token(str(user_id), "customer", settings)
    return ok("User created successfully. Please verify your email.", {**user, "token": token})


@router.post("/login")
def login(body: UserLogin, db: Database = Depends(get_db), settings: Settings = Depends(get_settings)):
    if body.email:
        user = db["user"].find_one({"email": body.email.lower()})
    elif body.name:
        user = db["user"].find_one({"name": body.name})
    else:
        raise ValidationError("Name or email is required.")
    if not user or not verify_password(body.password, user.get("password")):
        raise Unauthorized("Invalid name or password.")
    token = create_access_token(str(user["_id"]), "customer", settings)
    return ok("Login successful.", {**user, "token": token})


@router.get("/{user_id}")
def get_user(user_id: str, db: Database = Depends(get_db)):
    return ok("User retrieved successfully.", _load(db, user_id))


@router.put("/{user_id}")
def update_user(user_id: str, body: UserUpdate, current: dict = Depends(get_current_customer), db: Database = Depends(get_db)):
    user = _load(db, user_id)
    if user["_id"] != current["_id"]:
        raise Forbidden("You can only update your own account.")
    changes = {"name": body.name, "updatedAt": now()}
    if body.password:
        if not body.current_password:
            raise ValidationError("Current password is required to set new password.")
        if not verify_password(body.current_password, user.get("password")):
            raise ValidationError("Current password is incorrect.")
        changes["password"] = body.password
    db["user"].update_one({"_id": user["_id"]}, {"$set": with_hashed_password(changes)})
    return ok("User updated successfully.", db["user"].find_one({"_id": user["_id"]}))


@router.delete("/{user_id}")
def delete_user(user_id: str, admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
    user = _load(db, user_id)
    db["user"].delete_one({"_id": user["_id"]})
    logger.info("User %s deleted by %s", user["_id"], admin["username"])
    return ok("User deleted successfully.")
