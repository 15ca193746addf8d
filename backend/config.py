"""
Process-wide configuration.

Settings are read once at startup from the environment (and a local .env
file) and handed to the application factory. Nothing else in the backend
reads os.environ directly.
"""

import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

DEFAULT_UPLOAD_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "uploads")


@dataclass(frozen=True)
class Settings:
    jwt_secret: str
    database_url: str
    token_expiration_minutes: int = 1440  # 24 hours
    upload_dir: str = DEFAULT_UPLOAD_DIR
    max_upload_mb: int = 5
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    port: int = 5050


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"{name} is missing. Set it in the environment or .env")
    return value


def load_settings() -> Settings:
    """
    Build Settings from environment variables.

    Raises:
        RuntimeError: If JWT_SECRET or DATABASE_URL is not set. The signing
            secret is never generated on the fly.
    """
    load_dotenv()

    origins = os.getenv("CORS_ORIGINS", "*")

    return Settings(
        jwt_secret=_require("JWT_SECRET"),
        database_url=_require("DATABASE_URL"),
        token_expiration_minutes=int(os.getenv("TOKEN_EXPIRATION_MINUTES", 1440)),
        upload_dir=os.getenv("UPLOAD_DIR", DEFAULT_UPLOAD_DIR),
        max_upload_mb=int(os.getenv("MAX_UPLOAD_MB", 5)),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        port=int(os.getenv("GATEWAY_PORT", 5050)),
    )
