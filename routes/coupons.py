import logging

from fastapi import Depends
from pymongo.database import Database

from database import get_db, to_object_id
from dispatch import is_expired
from ownership import coupons
from routes import fail, ok
from routes.catalog import resource_router
from schemas import CouponCheck, CouponIn, CouponUpdate

logger = logging.getLogger(__name__)

router = resource_router(coupons, "/couponCodes", CouponIn, CouponUpdate, "Coupon", "Coupons")


def _in_scope(coupon: dict, product: dict) -> bool:
    if coupon.get("applicableCategory") and coupon["applicableCategory"] != product.get("categoryId"):
        return False
    if coupon.get("applicableSubCategory") and coupon["applicableSubCategory"] != product.get("subCategoryId"):
        return False
    if coupon.get("applicableProduct") and coupon["applicableProduct"] != product["_id"]:
        return False
    return True


@router.post("/check-coupon")
def check_coupon(body: CouponCheck, db: Database = Depends(get_db)):
    coupon = db["coupon"].find_one({"couponCode": body.coupon_code})
    if not coupon:
        return fail("Coupon not found.")
    if is_expired(coupon.get("endDate")):
        return fail("Coupon is expired.")
    if coupon.get("status") != "active":
        return fail("Coupon is inactive.")
    minimum = coupon.get("minimumPurchaseAmount")
    if minimum and body.purchase_amount < minimum:
        return fail("Minimum purchase amount not met.")

    if not any(coupon.get(k) for k in ("applicableCategory", "applicableSubCategory", "applicableProduct")):
        return ok("Coupon is applicable for all orders.", coupon)

    ids = [to_object_id(pid) for pid in body.product_ids]
    if not ids or None in ids:
        return fail("Coupon is not applicable for the provided products.")
    products = list(db["product"].find({"_id": {"$in": ids}}))
    if len(products) != len(set(ids)) or not all(_in_scope(coupon, p) for p in products):
        return fail("Coupon is not applicable for the provided products.")
    logger.info("Coupon %s accepted for %d products", coupon["couponCode"], len(products))
    return ok("Coupon is applicable for the provided products.", coupon)
