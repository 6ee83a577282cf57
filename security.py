import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database

from config import Settings, get_settings
from database import get_db, to_object_id
from errors import Forbidden, Unauthorized

logger = logging.getLogger(__name__)

SUPER_ADMIN = "super_admin"


@lru_cache
def _pwd_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_password(password: str) -> str:
    return _pwd_context(get_settings().bcrypt_rounds).hash(password)


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not password or not hashed:
        return False
    return _pwd_context(get_settings().bcrypt_rounds).verify(password, hashed)


def with_hashed_password(fields: dict) -> dict:
    """Copy of a document or update whose plaintext password is replaced by its digest."""
    fields = dict(fields)
    if fields.get("password"):
        fields["password"] = hash_password(fields["password"])
    else:
        fields.pop("password", None)
    return fields


def create_access_token(subject: str, kind: str, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    return jwt.encode({"sub": subject, "kind": kind, "exp": expire}, settings.secret_key, algorithm=settings.algorithm)


def _decode_bearer(authorization: Optional[str], kind: str, settings: Settings):
    if not authorization or not authorization.lower().startswith("bearer "):
        raise Unauthorized("Not authenticated.")
    token = authorization.split(" ", 1)[1].strip()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        raise Unauthorized("Invalid or expired token.")
    if payload.get("kind") != kind:
        raise Unauthorized("Invalid token.")
    oid = to_object_id(payload.get("sub"))
    if oid is None:
        raise Unauthorized("Invalid token.")
    return oid


def get_current_admin(
    authorization: Optional[str] = Header(default=None),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> dict:
    admin_id = _decode_bearer(authorization, "admin", settings)
    admin = db["adminuser"].find_one({"_id": admin_id})
    if not admin:
        raise Unauthorized("Invalid admin user.")
    if not admin.get("isActive", True):
        raise Forbidden("Admin account is deactivated.")
    return admin


def require_super_admin(admin: dict = Depends(get_current_admin)) -> dict:
    if admin.get("clearanceLevel") != SUPER_ADMIN:
        raise Forbidden("Access denied. Super admin privileges required.")
    return admin


def get_current_customer(
    authorization: Optional[str] = Header(default=None),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> dict:
    user_id = _decode_bearer(authorization, "customer", settings)
    user = db["user"].find_one({"_id": user_id})
    if not user:
        raise Unauthorized("User not found.")
    return user


def can_modify(admin: dict, doc: dict) -> bool:
    """Super admins may modify anything, other admins only what they created."""
    if admin.get("clearanceLevel") == SUPER_ADMIN:
        return True
    return doc.get("createdBy") == admin["_id"]


def bootstrap_super_admin(db: Database, settings: Settings) -> Optional[dict]:
    """Create the first super admin when none exists. Returns the created document."""
    if db["adminuser"].find_one({"clearanceLevel": SUPER_ADMIN}):
        logger.info("Super admin already exists")
        return None
    now = datetime.now(timezone.utc)
    doc = with_hashed_password({
        "username": settings.superadmin_username,
        "name": settings.superadmin_name,
        "email": settings.superadmin_email.lower(),
        "password": settings.superadmin_password,
        "clearanceLevel": SUPER_ADMIN,
        "createdBy": None,
        "isActive": True,
        "createdAt": now,
        "updatedAt": now,
    })
    doc["_id"] = db["adminuser"].insert_one(doc).inserted_id
    logger.warning("Bootstrap super admin '%s' created; change its default password", settings.superadmin_username)
    return doc
