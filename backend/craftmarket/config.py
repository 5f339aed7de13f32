# backend/craftmarket/config.py
from __future__ import annotations
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

load_dotenv()


def _read_key(env_value: str, env_path: str) -> str:
    """PEM text from an env var, or from the file an env var points at."""
    value = os.environ.get(env_value, "")
    if value:
        return value.replace("\\n", "\n")
    path = os.environ.get(env_path, "")
    if path:
        return Path(path).expanduser().read_text(encoding="utf-8")
    return ""


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/craftmarket.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///craftmarket.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # RS256 key pair: private key signs, public key verifies
    JWT_PRIVATE_KEY = _read_key("JWT_PRIVATE_KEY", "JWT_PRIVATE_KEY_PATH")
    JWT_PUBLIC_KEY = _read_key("JWT_PUBLIC_KEY", "JWT_PUBLIC_KEY_PATH")
    ACCESS_TOKEN_TTL_SECONDS = int(os.environ.get("ACCESS_TOKEN_TTL_SECONDS", 24 * 60 * 60))
    RESET_TOKEN_TTL_SECONDS = int(os.environ.get("RESET_TOKEN_TTL_SECONDS", 15 * 60))
    OTP_TTL_SECONDS = int(os.environ.get("OTP_TTL_SECONDS", 10 * 60))

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", 12))

    # Outbound mail (Resend). Empty key disables sending.
    RESEND_API_KEY = os.environ.get("RESEND_API_KEY", "")
    MAIL_SENDER = os.environ.get("MAIL_SENDER", "Craft Market <no-reply@craftmarket.local>")

    APP_URL = os.environ.get("APP_URL", "http://localhost:5000")
    FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:3000")
    CORS_ALLOWED_ORIGINS = os.environ.get(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    )

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class Settings:
    """
    Immutable runtime settings, built once per app in create_app().

    Services never read os.environ or app.config directly; routes hand them
    the values from this object.
    """
    jwt_private_key: str
    jwt_public_key: str
    access_token_ttl: timedelta
    reset_token_ttl: timedelta
    otp_ttl: timedelta
    bcrypt_rounds: int
    resend_api_key: str
    mail_sender: str
    app_url: str
    frontend_url: str
    cors_allowed_origins: frozenset[str]

    @classmethod
    def from_mapping(cls, config: Mapping) -> "Settings":
        origins = config.get("CORS_ALLOWED_ORIGINS") or ""
        if isinstance(origins, str):
            origins = [o.strip() for o in origins.split(",") if o.strip()]
        return cls(
            jwt_private_key=config.get("JWT_PRIVATE_KEY") or "",
            jwt_public_key=config.get("JWT_PUBLIC_KEY") or "",
            access_token_ttl=timedelta(seconds=int(config.get("ACCESS_TOKEN_TTL_SECONDS", 86400))),
            reset_token_ttl=timedelta(seconds=int(config.get("RESET_TOKEN_TTL_SECONDS", 900))),
            otp_ttl=timedelta(seconds=int(config.get("OTP_TTL_SECONDS", 600))),
            bcrypt_rounds=int(config.get("BCRYPT_ROUNDS", 12)),
            resend_api_key=config.get("RESEND_API_KEY") or "",
            mail_sender=config.get("MAIL_SENDER") or "",
            app_url=config.get("APP_URL") or "",
            frontend_url=config.get("FRONTEND_URL") or "",
            cors_allowed_origins=frozenset(origins),
        )
