from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta

from config import settings
from utils.dates import utcnow

TOKEN_BYTES = 32


def generate_approval_token(now: datetime | None = None, ttl_days: int | None = None) -> tuple[str, datetime]:
    """Return a 64-char hex token (256 random bits) and the instant it stops being valid."""
    issued_at = now or utcnow()
    days = settings.guarantor_token_ttl_days if ttl_days is None else ttl_days
    return secrets.token_hex(TOKEN_BYTES), issued_at + timedelta(days=days)


def token_digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
