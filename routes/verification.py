"""
One-time email codes for customers.

Codes for addresses that are not registered yet live in the
``emailverification`` collection; password reset codes live on the customer
document itself. Neither ever leaves the service except by email, or in the
response body when running in development without a working mail provider.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pymongo.database import Database

from config import Settings, get_settings
from database import get_db, now, to_object_id
from dispatch import Dispatcher, code_expiry, generate_code, get_dispatcher, is_expired
from errors import Conflict, Forbidden, NotFound, UpstreamError, ValidationError
from routes import ok
from schemas import EmailCode, EmailRequest, PasswordReset, ProfileUpdate
from security import get_current_customer, verify_password, with_hashed_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/verification", tags=["Verification"])


def _deliver(send, settings: Settings, email: str, code: str, message: str):
    try:
        send()
    except UpstreamError:
        if not settings.is_development:
            raise
        logger.warning("Email delivery to %s failed; returning code in development", email)
        return ok(f"{message} (email delivery failed, development mode)", {"email": email, "code": code})
    return ok(message, {"email": email})


def _check_code(stored: Optional[str], expires, code: str) -> None:
    if not stored or stored != code:
        raise ValidationError("Invalid verification code.")
    if is_expired(expires):
        raise ValidationError("Verification code has expired.")


@router.post("/send-email-verification")
def send_email_verification(
    body: EmailRequest,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    email = body.email.lower()
    if db["user"].find_one({"email": email, "emailVerified": True}, {"_id": 1}):
        raise ValidationError("Email is already verified.")
    code = generate_code()
    db["emailverification"].update_one(
        {"email": email},
        {
            "$set": {"verificationCode": code, "codeExpires": code_expiry(settings), "verified": False, "updatedAt": now()},
            "$setOnInsert": {"createdAt": now()},
        },
        upsert=True,
    )
    return _deliver(lambda: dispatcher.send_verification_code(email, code), settings, email, code, "Verification code sent to your email.")


@router.post("/verify-email")
def verify_email(body: EmailCode, db: Database = Depends(get_db)):
    email = body.email.lower()
    record = db["emailverification"].find_one({"email": email})
    if not record:
        raise ValidationError("Invalid verification code.")
    _check_code(record.get("verificationCode"), record.get("codeExpires"), body.code)
    db["emailverification"].update_one(
        {"_id": record["_id"]},
        {"$set": {"verified": True, "updatedAt": now()}, "$unset": {"verificationCode": "", "codeExpires": ""}},
    )
    db["user"].update_many({"email": email}, {"$set": {"emailVerified": True, "updatedAt": now()}})
    return ok("Email verified successfully.", {"email": email, "verified": True})


@router.post("/forgot-password")
def forgot_password(
    body: EmailRequest,
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    email = body.email.lower()
    user = db["user"].find_one({"email": email})
    if not user:
        raise NotFound("No account found with this email.")
    if not user.get("emailVerified"):
        raise ValidationError("Email is not verified.")
    code = generate_code()
    db["user"].update_one({"_id": user["_id"]}, {"$set": {"verificationCode": code, "codeExpires": code_expiry(settings)}})
    return _deliver(
        lambda: dispatcher.send_reset_code(email, code, user.get("name")), settings, email, code, "Password reset code sent to your email."
    )


@router.post("/reset-password")
def reset_password(body: PasswordReset, db: Database = Depends(get_db)):
    user = db["user"].find_one({"email": body.email.lower()})
    if not user:
        raise NotFound("No account found with this email.")
    _check_code(user.get("verificationCode"), user.get("codeExpires"), body.code)
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": with_hashed_password({"password": body.new_password, "updatedAt": now()}), "$unset": {"verificationCode": "", "codeExpires": ""}},
    )
    logger.info("Password reset for user %s", user["_id"])
    return ok("Password reset successfully.")


@router.put("/update-profile/{user_id}")
def update_profile(user_id: str, body: ProfileUpdate, current: dict = Depends(get_current_customer), db: Database = Depends(get_db)):
    if to_object_id(user_id) != current["_id"]:
        raise Forbidden("You can only update your own profile.")
    changes = {}
    if body.name:
        changes["name"] = body.name
    if body.email and body.email.lower() != current.get("email"):
        email = body.email.lower()
        if db["user"].find_one({"email": email, "_id": {"$ne": current["_id"]}}, {"_id": 1}):
            raise Conflict("Email already exists.")
        changes["email"] = email
        changes["emailVerified"] = False
    if body.new_password:
        if not body.current_password or not verify_password(body.current_password, current.get("password")):
            raise ValidationError("Current password is incorrect.")
        changes["password"] = body.new_password
    if not changes:
        raise ValidationError("No fields to update.")
    changes = with_hashed_password(changes)
    changes["updatedAt"] = now()
    db["user"].update_one({"_id": current["_id"]}, {"$set": changes})
    return ok("Profile updated successfully.", db["user"].find_one({"_id": current["_id"]}))
