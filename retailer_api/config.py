# retailer_api/config.py
"""
Process configuration for the retailer credential service.

Settings are read once from the environment at startup and passed
explicitly into every component. Nothing in the flows reads os.environ.

Environment Variables:
- JWT_SECRET: Random 32+ character string (REQUIRED for login)
- JWT_EXPIRY_DAYS: Token lifetime in days (default: 7)
- BCRYPT_ROUNDS: bcrypt cost factor (default: 10)
- STORE_BACKEND: "supabase" (default) or "memory"
- SUPABASE_URL / SUPABASE_KEY: Supabase project credentials
- STORE_POOL_SIZE: Max concurrent store connections (default: 10)
- EMAIL_PROVIDER: "stub" (default), "resend" or "sendgrid"
- EMAIL_API_KEY / EMAIL_FROM: Provider credentials and sender address
- UPLOAD_DIR: Directory for uploaded logos and profile images
- ALLOWED_ORIGINS: Comma-separated CORS origins (default: "*")
"""

from __future__ import annotations

import os
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

log = logging.getLogger("retailer.config")

DEFAULT_JWT_EXPIRY_DAYS = 7
DEFAULT_BCRYPT_ROUNDS = 10
DEFAULT_STORE_POOL_SIZE = 10
DEFAULT_EMAIL_FROM = "noreply@retailer-dashboard.local"


def _int_env(name: str, default: int) -> int:
    """Read an integer env var, falling back to default on bad input."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning("%s=%r is not an integer, using %d", name, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    """Immutable process-wide configuration."""

    jwt_secret: str = ""
    jwt_expiry_days: int = DEFAULT_JWT_EXPIRY_DAYS
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS
    store_backend: str = "supabase"
    supabase_url: str = ""
    supabase_key: str = ""
    store_pool_size: int = DEFAULT_STORE_POOL_SIZE
    email_provider: str = "stub"
    email_api_key: str = ""
    email_from: str = DEFAULT_EMAIL_FROM
    upload_dir: str = "uploads"
    allowed_origins: Tuple[str, ...] = ("*",)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        secret = os.getenv("JWT_SECRET", "").strip()
        if not secret:
            log.error("JWT_SECRET not set - login will fail")
        elif len(secret) < 32:
            log.warning("JWT_SECRET should be at least 32 characters")

        rounds = _int_env("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS)
        if not 4 <= rounds <= 31:
            log.warning("BCRYPT_ROUNDS=%d out of range 4-31, using %d", rounds, DEFAULT_BCRYPT_ROUNDS)
            rounds = DEFAULT_BCRYPT_ROUNDS

        pool_size = max(1, _int_env("STORE_POOL_SIZE", DEFAULT_STORE_POOL_SIZE))
        origins = os.getenv("ALLOWED_ORIGINS", "*")

        return cls(
            jwt_secret=secret,
            jwt_expiry_days=max(1, _int_env("JWT_EXPIRY_DAYS", DEFAULT_JWT_EXPIRY_DAYS)),
            bcrypt_rounds=rounds,
            store_backend=os.getenv("STORE_BACKEND", "supabase").strip().lower(),
            supabase_url=os.getenv("SUPABASE_URL", "").strip(),
            supabase_key=os.getenv("SUPABASE_KEY", "").strip(),
            store_pool_size=pool_size,
            email_provider=os.getenv("EMAIL_PROVIDER", "stub").strip().lower(),
            email_api_key=os.getenv("EMAIL_API_KEY", "").strip(),
            email_from=os.getenv("EMAIL_FROM", DEFAULT_EMAIL_FROM).strip() or DEFAULT_EMAIL_FROM,
            upload_dir=os.getenv("UPLOAD_DIR", "uploads").strip() or "uploads",
            allowed_origins=tuple(o.strip() for o in origins.split(",") if o.strip()) or ("*",),
        )

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings for this process, read from the environment on first call."""
    return Settings.from_env()
