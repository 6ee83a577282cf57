import logging
import math

from fastapi import APIRouter, Depends, Query
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, get_db, now, to_object_id
from errors import Conflict, NotFound, ValidationError
from routes import ok
from schemas import RatingIn, RatingUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ratings", tags=["Ratings"])


def _oid(value: str, label: str):
    oid = to_object_id(value)
    if oid is None:
        raise ValidationError(f"Invalid {label} ID.")
    return oid


def _populate(db: Database, rating: dict) -> dict:
    rating = dict(rating)
    rating["productId"] = db["product"].find_one({"_id": rating.get("productId")}, {"name": 1}) or rating.get("productId")
    rating["userId"] = db["user"].find_one({"_id": rating.get("userId")}, {"name": 1}) or rating.get("userId")
    return rating


def _load(db: Database, rating_id: str) -> dict:
    oid = to_object_id(rating_id)
    rating = db["rating"].find_one({"_id": oid}) if oid else None
    if not rating:
        raise NotFound("Rating not found.")
    return rating


def has_purchased(db: Database, user_id, product_id) -> bool:
    """A purchase counts once an order holding the product has been delivered."""
    query = {"userId": user_id, "orderStatus": "delivered", "items.productId": product_id}
    return db["order"].find_one(query, {"_id": 1}) is not None


@router.get("")
def list_ratings(db: Database = Depends(get_db)):
    ratings = db["rating"].find().sort("createdAt", -1)
    return ok("Ratings retrieved successfully.", [_populate(db, r) for r in ratings])


@router.get("/product/{product_id}")
def ratings_for_product(
    product_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Database = Depends(get_db),
):
    query = {"productId": _oid(product_id, "product")}
    total = db["rating"].count_documents(query)
    cursor = db["rating"].find(query).sort("createdAt", -1).skip((page - 1) * limit).limit(limit)
    data = {
        "ratings": [_populate(db, r) for r in cursor],
        "totalPages": math.ceil(total / limit),
        "currentPage": page,
        "ratingCount": total,
    }
    return ok("Product ratings retrieved successfully.", data)


@router.get("/product/{product_id}/stats")
def rating_stats(product_id: str, db: Database = Depends(get_db)):
    pid = _oid(product_id, "product")
    pipeline = [
        {"$match": {"productId": pid}},
        {"$group": {"_id": "$rating", "count": {"$sum": 1}}},
    ]
    distribution = {str(star): 0 for star in range(1, 6)}
    total = 0
    score = 0
    for row in db["rating"].aggregate(pipeline):
        distribution[str(row["_id"])] = row["count"]
        total += row["count"]
        score += row["_id"] * row["count"]
    data = {
        "averageRating": round(score / total, 1) if total else 0,
        "totalRatings": total,
        "ratingDistribution": distribution,
    }
    return ok("Rating statistics retrieved successfully.", data)


@router.get("/product/{product_id}/user/{user_id}")
def rating_by_user(product_id: str, user_id: str, db: Database = Depends(get_db)):
    rating = db["rating"].find_one({"productId": _oid(product_id, "product"), "userId": _oid(user_id, "user")})
    if not rating:
        return ok("No rating found for this product.", None)
    return ok("User rating retrieved successfully.", rating)


@router.get("/{rating_id}")
def get_rating(rating_id: str, db: Database = Depends(get_db)):
    return ok("Rating retrieved successfully.", _populate(db, _load(db, rating_id)))


@router.post("")
def upsert_rating(body: RatingIn, db: Database = Depends(get_db)):
    product_id = _oid(body.product_id, "product")
    user_id = _oid(body.user_id, "user")
    if not db["product"].find_one({"_id": product_id}, {"_id": 1}):
        raise NotFound("Product not found.")

    existing = db["rating"].find_one({"productId": product_id, "userId": user_id})
    if existing:
        updated = db["rating"].find_one_and_update(
            {"_id": existing["_id"]},
            {"$set": {"rating": body.rating, "review": body.review, "updatedAt": now()}},
            return_document=ReturnDocument.AFTER,
        )
        return ok("Rating updated successfully.", updated)

    doc = {
        "productId": product_id,
        "userId": user_id,
        "userName": body.user_name,
        "rating": body.rating,
        "review": body.review,
        "verifiedPurchase": has_purchased(db, user_id, product_id),
    }
    try:
        rating_id = create_document(db, "rating", doc)
    except DuplicateKeyError:
        logger.info("Concurrent rating of product %s by user %s", product_id, user_id)
        raise Conflict("You have already rated this product.")
    return ok("Rating added successfully.", db["rating"].find_one({"_id": rating_id}))


@router.put("/{rating_id}")
def update_rating(rating_id: str, body: RatingUpdate, db: Database = Depends(get_db)):
    rating = _load(db, rating_id)
    changes = {k: v for k, v in body.changes().items() if v is not None}
    if not changes:
        raise ValidationError("No fields to update.")
    changes["updatedAt"] = now()
    updated = db["rating"].find_one_and_update({"_id": rating["_id"]}, {"$set": changes}, return_document=ReturnDocument.AFTER)
    return ok("Rating updated successfully.", updated)


@router.delete("/{rating_id}")
def delete_rating(rating_id: str, db: Database = Depends(get_db)):
    rating = _load(db, rating_id)
    db["rating"].delete_one({"_id": rating["_id"]})
    return ok("Rating deleted successfully.")
