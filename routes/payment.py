from fastapi import APIRouter, Depends, File, UploadFile
from pymongo.database import Database

import order_flow
from database import get_db
from errors import ValidationError
from routes import ok
from schemas import Base64Proof, PaymentVerification
from security import get_current_admin
from uploads import ImageStore, get_image_store, has_file

router = APIRouter(prefix="/payment", tags=["Payment"])


@router.post("/upload-proof")
def upload_proof(proof_image: UploadFile = File(None, alias="proofImage"), store: ImageStore = Depends(get_image_store)):
    if not has_file(proof_image):
        raise ValidationError("No file uploaded.")
    image_url = store.save_upload(proof_image, "payment-proofs", "payment")
    return ok("Payment proof uploaded successfully.", {"imageUrl": image_url})


@router.post("/upload-proof-base64")
def upload_proof_base64(body: Base64Proof, store: ImageStore = Depends(get_image_store)):
    image_url = store.save_base64(body.image, "payment-proofs", "payment")
    return ok("Payment proof uploaded successfully.", {"imageUrl": image_url, "verified": False, "verifiedAt": None})


@router.post("/verify-payment/{order_id}")
def verify_payment(order_id: str, body: PaymentVerification, admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
    updated = order_flow.verify_payment(db, order_id, body.verified, body.admin_notes)
    return ok(f"Payment {'verified' if body.verified else 'rejected'} successfully.", updated)
