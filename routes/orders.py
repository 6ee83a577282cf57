from fastapi import APIRouter, Depends
from pymongo.database import Database

import order_flow
from config import Settings, get_settings
from database import get_db
from routes import ok
from schemas import OrderIn, OrderStatusUpdate, PaymentProofIn, PaymentVerification
from security import get_current_admin

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.get("")
def list_orders(admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
    return ok("Orders retrieved successfully.", order_flow.find_orders(db))


@router.get("/orderByUserId/{user_id}")
def orders_by_user(user_id: str, db: Database = Depends(get_db)):
    return ok("Orders retrieved successfully.", order_flow.orders_for_customer(db, user_id))


@router.get("/payment-status/{payment_status}")
def orders_by_payment_status(payment_status: str, admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
    return ok("Orders retrieved successfully.", order_flow.orders_by_payment_status(db, payment_status))


@router.get("/admin/pending-verification")
def orders_pending_verification(admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
    return ok("Orders pending payment verification retrieved successfully.", order_flow.pending_verification(db))


@router.get("/{order_id}")
def get_order(order_id: str, db: Database = Depends(get_db)):
    return ok("Order retrieved successfully.", order_flow.get_order(db, order_id))


@router.post("")
def create_order(order: OrderIn, db: Database = Depends(get_db)):
    return ok("Order created successfully.", order_flow.create_order(db, order.changes()))


@router.put("/{order_id}")
def update_order_status(
    order_id: str,
    body: OrderStatusUpdate,
    admin: dict = Depends(get_current_admin),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    updated = order_flow.update_status(db, order_id, body.order_status, body.tracking_url, strict=settings.strict_order_transitions)
    return ok("Order updated successfully.", updated)


@router.put("/{order_id}/verify-payment")
def verify_payment(order_id: str, body: PaymentVerification, admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
    updated = order_flow.verify_payment(db, order_id, body.verified, body.admin_notes)
    return ok(f"Payment {'verified' if body.verified else 'rejected'} successfully.", updated)


@router.put("/{order_id}/payment-proof")
def update_payment_proof(order_id: str, body: PaymentProofIn, db: Database = Depends(get_db)):
    return ok("Payment proof updated successfully.", order_flow.submit_payment_proof(db, order_id, body.image_url))


@router.delete("/{order_id}")
def delete_order(order_id: str, admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
    order_flow.delete_order(db, order_id)
    return ok("Order deleted successfully.")
