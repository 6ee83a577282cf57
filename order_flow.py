"""
Order lifecycle and manual payment verification.

COD orders start in ``pending``. Bank/mobile-money orders (cbe, telebirr) start
in ``payment_pending`` and wait for the customer to upload a payment proof and an
admin to verify it; verification moves the order to ``processing``, rejection
cancels it.
"""
import logging
from typing import List, Optional

from pymongo import ReturnDocument
from pymongo.database import Database

from database import create_document, now, to_object_id
from errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ("cod", "cbe", "telebirr")
PROOF_METHODS = ("cbe", "telebirr")
PAYMENT_STATUSES = ("pending", "verified", "failed")
ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled", "payment_pending", "payment_verified")

# Only consulted when strict transitions are enabled.
TRANSITIONS = {
    "pending": {"processing", "cancelled", "payment_pending"},
    "payment_pending": {"payment_verified", "processing", "cancelled"},
    "payment_verified": {"processing", "cancelled"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": set(),
    "cancelled": set(),
}

USER_PROJECTION = {"name": 1}
COUPON_PROJECTION = {"couponCode": 1, "discountType": 1, "discountAmount": 1}


def initial_statuses(payment_method: str):
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError("Invalid payment method.")
    if payment_method == "cod":
        return "pending", "pending"
    return "payment_pending", "pending"


def populate(db: Database, order: dict) -> dict:
    order = dict(order)
    if order.get("userId") is not None:
        order["userId"] = db["user"].find_one({"_id": order["userId"]}, USER_PROJECTION)
    if order.get("couponCode") is not None:
        order["couponCode"] = db["coupon"].find_one({"_id": order["couponCode"]}, COUPON_PROJECTION)
    return order


def _load(db: Database, order_id) -> dict:
    oid = to_object_id(order_id)
    order = db["order"].find_one({"_id": oid}) if oid else None
    if not order:
        raise NotFound("Order not found.")
    return order


def _set(db: Database, order: dict, changes: dict) -> dict:
    changes["updatedAt"] = now()
    return db["order"].find_one_and_update({"_id": order["_id"]}, {"$set": changes}, return_document=ReturnDocument.AFTER)


def create_order(db: Database, fields: dict) -> dict:
    order_status, payment_status = initial_statuses(fields.get("paymentMethod"))
    user_id = to_object_id(fields.get("userId"))
    if user_id is None or not db["user"].find_one({"_id": user_id}, {"_id": 1}):
        raise ValidationError("Customer not found.")
    items = []
    for item in fields["items"]:
        product_id = to_object_id(item.get("productId"))
        if product_id is None:
            raise ValidationError("Invalid product ID in order items.")
        items.append({**item, "productId": product_id})
    doc = {**fields, "userId": user_id, "items": items, "orderStatus": order_status, "paymentStatus": payment_status, "orderDate": now()}
    if fields.get("couponCode"):
        coupon_id = to_object_id(fields["couponCode"])
        if coupon_id is None or not db["coupon"].find_one({"_id": coupon_id}, {"_id": 1}):
            raise ValidationError("Coupon not found.")
        doc["couponCode"] = coupon_id
    else:
        doc.pop("couponCode", None)
    inserted_id = create_document(db, "order", doc)
    logger.info("Order %s created (%s, %s)", inserted_id, fields["paymentMethod"], order_status)
    return db["order"].find_one({"_id": inserted_id})


def submit_payment_proof(db: Database, order_id, image_url: str) -> dict:
    if not image_url:
        raise ValidationError("Image URL is required.")
    order = _load(db, order_id)
    changes = {"paymentProof": {"imageUrl": image_url, "uploadedAt": now(), "verified": False, "verifiedAt": None}}
    if order.get("paymentMethod") != "cod":
        # a new proof always goes back to the review queue
        changes["orderStatus"] = "payment_pending"
        changes["paymentStatus"] = "pending"
    return _set(db, order, changes)


def verify_payment(db: Database, order_id, verified: bool, admin_notes: Optional[str] = None) -> dict:
    order = _load(db, order_id)
    changes = {
        "paymentStatus": "verified" if verified else "failed",
        "orderStatus": "processing" if verified else "cancelled",
    }
    if order.get("paymentProof"):
        changes["paymentProof.verified"] = verified
        changes["paymentProof.verifiedAt"] = now() if verified else None
    if admin_notes is not None:
        changes["adminNotes"] = admin_notes
    logger.info("Payment for order %s %s", order["_id"], "verified" if verified else "rejected")
    return _set(db, order, changes)


def update_status(db: Database, order_id, order_status: str, tracking_url: Optional[str] = None, strict: bool = False) -> dict:
    if order_status not in ORDER_STATUSES:
        raise ValidationError("Invalid order status.")
    order = _load(db, order_id)
    current = order.get("orderStatus")
    if strict and order_status != current and order_status not in TRANSITIONS.get(current, set()):
        raise ValidationError(f"Cannot move order from {current} to {order_status}.")
    changes = {"orderStatus": order_status}
    if tracking_url is not None:
        changes["trackingUrl"] = tracking_url
    return _set(db, order, changes)


def delete_order(db: Database, order_id) -> None:
    oid = to_object_id(order_id)
    if oid is None or db["order"].delete_one({"_id": oid}).deleted_count == 0:
        raise NotFound("Order not found.")


def get_order(db: Database, order_id) -> dict:
    return populate(db, _load(db, order_id))


def find_orders(db: Database, query: Optional[dict] = None) -> List[dict]:
    return [populate(db, o) for o in db["order"].find(query or {}).sort("_id", -1)]


def orders_for_customer(db: Database, user_id) -> List[dict]:
    oid = to_object_id(user_id)
    if oid is None:
        return []
    return find_orders(db, {"userId": oid})


def orders_by_payment_status(db: Database, payment_status: str) -> List[dict]:
    if payment_status not in PAYMENT_STATUSES:
        raise ValidationError("Invalid payment status.")
    return find_orders(db, {"paymentStatus": payment_status})


def pending_verification(db: Database) -> List[dict]:
    return find_orders(db, {
        "paymentMethod": {"$in": list(PROOF_METHODS)},
        "paymentStatus": "pending",
        "paymentProof.imageUrl": {"$exists": True, "$ne": None},
    })
