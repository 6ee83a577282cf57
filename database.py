"""
MongoDB access

One client per process, built lazily from settings. Collections are named after
the lowercase schema class, e.g. SubCategory -> "subcategory".
"""
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_client() -> MongoClient:
    settings = get_settings()
    return MongoClient(settings.database_url, serverSelectionTimeoutMS=30000, socketTimeoutMS=45000, maxPoolSize=10)


def get_db() -> Database:
    return get_client()[get_settings().database_name]


def now() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id coming from a path, query or body; None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def create_document(db: Database, collection_name: str, data: Union[BaseModel, dict]) -> ObjectId:
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True, exclude_none=True)
    doc = dict(data)
    doc["createdAt"] = now()
    doc["updatedAt"] = now()
    return db[collection_name].insert_one(doc).inserted_id


def serialize(value: Any) -> Any:
    """Make a stored document JSON friendly: ObjectIds become strings, secrets are dropped."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: serialize(v) for k, v in value.items() if k not in ("password", "verificationCode", "codeExpires")}
    return value


def ensure_indexes(db: Database) -> None:
    db["adminuser"].create_index([("username", ASCENDING)], unique=True)
    db["adminuser"].create_index([("email", ASCENDING)], unique=True)
    db["adminuser"].create_index([("clearanceLevel", ASCENDING)])
    db["user"].create_index([("email", ASCENDING)], unique=True, sparse=True)
    db["user"].create_index([("phone", ASCENDING)], unique=True, sparse=True)
    db["rating"].create_index([("productId", ASCENDING), ("userId", ASCENDING)], unique=True)
    db["emailverification"].create_index([("email", ASCENDING)], unique=True)


def database_status(db: Database) -> str:
    try:
        db.command("ping")
        return "connected"
    except PyMongoError as e:
        logger.warning("Database ping failed: %s", e)
        return "disconnected"
