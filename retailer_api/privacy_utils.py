# retailer_api/privacy_utils.py
"""
Masking for retailer identifiers in log lines.

Flows, stores and gateways log a retailer by masked email or by a short
id digest, never by the raw value. Passwords, plaintext or hashed, are
not passed to either helper; they are simply never logged.
"""

from __future__ import annotations

from hashlib import sha256
from typing import Optional

MASKED = "***"
ANONYMOUS = "anon"

# Characters of the local part left visible by mask_email
_VISIBLE_LOCAL_CHARS = 2


def mask_email(email: Optional[str]) -> str:
    """
    Keep the domain and the first two characters of the local part.

    "alice@x.com" → "al**@x.com"; local parts of two characters or fewer
    are hidden entirely. Anything that is not an address gives "***".
    """
    if not isinstance(email, str) or "@" not in email:
        return MASKED

    local, domain = email.strip().rsplit("@", 1)
    if len(local) <= _VISIBLE_LOCAL_CHARS:
        return f"**@{domain}"
    return f"{local[:_VISIBLE_LOCAL_CHARS]}**@{domain}"


def hash_user_id(retailer_id: Optional[str]) -> str:
    """Short, stable digest of a retailer id (8 hex chars), "anon" if blank."""
    if not isinstance(retailer_id, str) or not retailer_id.strip():
        return ANONYMOUS
    return sha256(retailer_id.strip().encode("utf-8")).hexdigest()[:8]
