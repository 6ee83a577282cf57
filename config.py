import os
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_title: str = "Marketplace API"
    version: str = "1.0.0"
    # development mode is opt-in: it exposes one-time codes when mail delivery fails
    environment: str = "production"
    log_level: str = "INFO"
    cors_origins: str = "*"

    database_url: str = "mongodb://localhost:27017"
    database_name: str = "marketplace"

    secret_key: str = "dev-secret-key"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    bcrypt_rounds: int = Field(12, ge=4, le=31)

    upload_dir: str = Field(default_factory=lambda: os.path.join(os.getcwd(), "uploads"))
    max_image_bytes: int = 5 * 1024 * 1024

    one_signal_app_id: Optional[str] = None
    one_signal_rest_api_key: Optional[str] = None
    one_signal_url: str = "https://onesignal.com/api/v1/notifications"
    resend_api_key: Optional[str] = None
    email_sender: Optional[str] = None
    verification_code_ttl_minutes: int = 10

    superadmin_username: str = "superadmin"
    superadmin_password: str = "admin123"
    superadmin_email: str = "superadmin@yourapp.com"
    superadmin_name: str = "Super Administrator"

    strict_order_transitions: bool = False

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
