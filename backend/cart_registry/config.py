# backend/cart_registry/config.py
from __future__ import annotations
import os
from dataclasses import dataclass


# Published placeholder; create_app warns when it is still in use outside dev/test
DEV_ADMIN_SECRET = "dev-admin-secret-change-me"


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the process by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///cart_registry.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Admin access: HMAC key for signed tokens, static key for tools, login password
    ADMIN_SECRET = os.environ.get("ADMIN_SECRET", DEV_ADMIN_SECRET)
    ADMIN_STATIC_KEY = os.environ.get("ADMIN_STATIC_KEY", "")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "")
    ADMIN_TOKEN_TTL_SECONDS = int(os.environ.get("ADMIN_TOKEN_TTL_SECONDS", "1800"))

    # Warranty defaults
    DEFAULT_WARRANTY_MONTHS = int(os.environ.get("DEFAULT_WARRANTY_MONTHS", "24"))
    USED_SALE_LOCATION = os.environ.get("USED_SALE_LOCATION", "Usato")

    # Store behaviour
    TRANSACTION_ATTEMPTS = int(os.environ.get("TRANSACTION_ATTEMPTS", "3"))
    PURGE_SCAN_LIMIT = int(os.environ.get("PURGE_SCAN_LIMIT", "1000"))
    PURGE_BATCH_SIZE = int(os.environ.get("PURGE_BATCH_SIZE", "400"))

    # Outbound confirmation mail (disabled when EMAIL_HOST is empty)
    EMAIL_HOST = os.environ.get("EMAIL_HOST", "")
    EMAIL_PORT = int(os.environ.get("EMAIL_PORT", "465"))
    EMAIL_USER = os.environ.get("EMAIL_USER", "")
    EMAIL_PASS = os.environ.get("EMAIL_PASS", "")
    EMAIL_SENDER_NAME = os.environ.get("EMAIL_SENDER_NAME", "Stewart Golf")
    BASE_IMAGE_URL = os.environ.get("BASE_IMAGE_URL", "")
    EMAIL_ASSETS_DIR = os.environ.get("EMAIL_ASSETS_DIR", "email-assets/images")

    CORS_ORIGINS = [
        o.strip()
        for o in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if o.strip()
    ]


@dataclass(frozen=True)
class RegistrySettings:
    """
    Immutable process-wide settings, built once at startup.

    Services receive this explicitly; nothing inside a transition reads
    the environment or the Flask config directly.
    """
    admin_secret: str
    admin_static_key: str
    admin_password: str
    admin_token_ttl_seconds: int
    default_warranty_months: int
    used_sale_location: str
    transaction_attempts: int
    purge_scan_limit: int
    purge_batch_size: int
    email_host: str
    email_port: int
    email_user: str
    email_pass: str
    email_sender_name: str
    base_image_url: str
    email_assets_dir: str

    @classmethod
    def from_mapping(cls, config) -> "RegistrySettings":
        return cls(
            admin_secret=config["ADMIN_SECRET"],
            admin_static_key=config.get("ADMIN_STATIC_KEY", ""),
            admin_password=config.get("ADMIN_PASSWORD", ""),
            admin_token_ttl_seconds=int(config.get("ADMIN_TOKEN_TTL_SECONDS", 1800)),
            default_warranty_months=int(config.get("DEFAULT_WARRANTY_MONTHS", 24)),
            used_sale_location=config.get("USED_SALE_LOCATION", "Usato"),
            transaction_attempts=int(config.get("TRANSACTION_ATTEMPTS", 3)),
            purge_scan_limit=int(config.get("PURGE_SCAN_LIMIT", 1000)),
            purge_batch_size=int(config.get("PURGE_BATCH_SIZE", 400)),
            email_host=config.get("EMAIL_HOST", ""),
            email_port=int(config.get("EMAIL_PORT", 465)),
            email_user=config.get("EMAIL_USER", ""),
            email_pass=config.get("EMAIL_PASS", ""),
            email_sender_name=config.get("EMAIL_SENDER_NAME", "Stewart Golf"),
            base_image_url=config.get("BASE_IMAGE_URL", ""),
            email_assets_dir=config.get("EMAIL_ASSETS_DIR", "email-assets/images"),
        )
