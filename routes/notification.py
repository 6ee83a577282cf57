from fastapi import APIRouter, Depends
from pymongo.database import Database

from database import create_document, get_db, to_object_id
from dispatch import Dispatcher, get_dispatcher
from errors import NotFound
from routes import ok
from schemas import NotificationIn
from security import get_current_admin

router = APIRouter(prefix="/notification", tags=["Notifications"])


@router.post("/send-notification")
def send_notification(
    body: NotificationIn,
    admin: dict = Depends(get_current_admin),
    db: Database = Depends(get_db),
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    notification_id = dispatcher.send_push(body.title, body.description, body.image_url)
    doc = {"notificationId": notification_id, "title": body.title, "description": body.description, "imageUrl": body.image_url}
    create_document(db, "notification", doc)
    return ok("Notification sent successfully.", {"notificationId": notification_id})


@router.get("/track-notification/{notification_id}")
def track_notification(notification_id: str, admin: dict = Depends(get_current_admin), dispatcher: Dispatcher = Depends(get_dispatcher)):
    return ok("Notification tracked successfully.", dispatcher.track_push(notification_id))


@router.get("/all-notification")
def all_notifications(admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
    notifications = db["notification"].find().sort("_id", -1)
    return ok("Notifications retrieved successfully.", list(notifications))


@router.delete("/delete-notification/{notification_id}")
def delete_notification(notification_id: str, admin: dict = Depends(get_current_admin), db: Database = Depends(get_db)):
    oid = to_object_id(notification_id)
    result = db["notification"].delete_one({"_id": oid}) if oid else None
    if not result or not result.deleted_count:
        raise NotFound("Notification not found.")
    return ok("Notification deleted successfully.")
