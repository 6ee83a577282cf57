"""
Outbound one-time codes and push notifications.

Email goes through Resend, push through the OneSignal REST API. Both are
external providers: failures surface as UpstreamError and are never retried.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import requests
import resend
from fastapi import Depends

from config import Settings, get_settings
from errors import UpstreamError

logger = logging.getLogger(__name__)

CODE_EMAIL_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #2D5A7E;">{heading}</h2>
  <p>Hello{greeting},</p>
  <p>{intro}</p>
  <div style="background: #f4f4f4; padding: 15px; text-align: center; font-size: 24px; font-weight: bold; letter-spacing: 5px; margin: 20px 0;">
    {code}
  </div>
  <p>This code will expire in {minutes} minutes.</p>
  <p>If you didn't request this, please ignore this email.</p>
</div>"""


def generate_code() -> str:
    return f"{100000 + secrets.randbelow(900000)}"


def code_expiry(settings: Settings) -> datetime:
    return datetime.now(timezone.utc) + timedelta(minutes=settings.verification_code_ttl_minutes)


def is_expired(expires_at: Optional[datetime]) -> bool:
    if expires_at is None:
        return True
    if expires_at.tzinfo is None:
        # pymongo hands back naive UTC datetimes
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at < datetime.now(timezone.utc)


class Dispatcher:
    def __init__(self, settings: Settings):
        self.settings = settings

    # ---------- email ----------
    def send_email(self, to: str, subject: str, html: str) -> None:
        if not self.settings.resend_api_key or not self.settings.email_sender:
            raise UpstreamError("Email delivery is not configured.")
        resend.api_key = self.settings.resend_api_key
        try:
            response = resend.Emails.send({"from": self.settings.email_sender, "to": [to], "subject": subject, "html": html})
        except Exception as e:
            logger.error("Resend delivery to %s failed: %s", to, e)
            raise UpstreamError("Failed to send email.")
        if not isinstance(response, dict) or not response.get("id"):
            logger.error("Resend rejected delivery to %s: %s", to, response)
            raise UpstreamError("Failed to send email.")

    def send_verification_code(self, to: str, code: str) -> None:
        html = CODE_EMAIL_TEMPLATE.format(
            heading="Email Verification", greeting="", intro="Your verification code is:",
            code=code, minutes=self.settings.verification_code_ttl_minutes,
        )
        self.send_email(to, "Email Verification Code", html)

    def send_reset_code(self, to: str, code: str, name: Optional[str] = None) -> None:
        html = CODE_EMAIL_TEMPLATE.format(
            heading="Password Reset", greeting=f" {name}" if name else "",
            intro="We received a request to reset your password. Your reset code is:",
            code=code, minutes=self.settings.verification_code_ttl_minutes,
        )
        self.send_email(to, "Password Reset Code", html)

    # ---------- push ----------
    def _push_headers(self) -> dict:
        if not self.settings.one_signal_app_id or not self.settings.one_signal_rest_api_key:
            raise UpstreamError("Push notifications are not configured.")
        return {"Authorization": f"Basic {self.settings.one_signal_rest_api_key}", "Content-Type": "application/json"}

    def send_push(self, title: str, description: str, image_url: Optional[str] = None) -> str:
        headers = self._push_headers()
        body = {
            "app_id": self.settings.one_signal_app_id,
            "headings": {"en": title},
            "contents": {"en": description},
            "included_segments": ["All"],
        }
        if image_url:
            body["big_picture"] = image_url
        try:
            response = requests.post(self.settings.one_signal_url, json=body, headers=headers, timeout=15)
            response.raise_for_status()
            notification_id = response.json().get("id")
        except (requests.RequestException, ValueError) as e:
            logger.error("OneSignal send failed: %s", e)
            raise UpstreamError("Failed to send notification.")
        if not notification_id:
            logger.error("OneSignal returned no notification id")
            raise UpstreamError("Failed to send notification.")
        logger.info("Notification sent to all users: %s", notification_id)
        return notification_id

    def track_push(self, notification_id: str) -> dict:
        headers = self._push_headers()
        url = f"{self.settings.one_signal_url}/{notification_id}"
        try:
            response = requests.get(url, params={"app_id": self.settings.one_signal_app_id}, headers=headers, timeout=15)
            response.raise_for_status()
            android = response.json()["platform_delivery_stats"]["android"]
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            logger.error("OneSignal tracking of %s failed: %s", notification_id, e)
            raise UpstreamError("Failed to track notification.")
        return {
            "platform": "Android",
            "success_delivery": android.get("successful"),
            "failed_delivery": android.get("failed"),
            "errored_delivery": android.get("errored"),
            "opened_notification": android.get("converted"),
        }


def get_dispatcher(settings: Settings = Depends(get_settings)) -> Dispatcher:
    return Dispatcher(settings)
