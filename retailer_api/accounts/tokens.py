# retailer_api/accounts/tokens.py
"""
Bearer token issuing and verification (PyJWT, HS256).

Token Payload:
- id: Retailer UUID
- email: Retailer email
- iat: Issued at timestamp
- exp: Expiry timestamp

verify() never raises. Anything that is not a well-formed, correctly
signed, unexpired token with both id and email collapses to None.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from retailer_api.privacy_utils import hash_user_id

log = logging.getLogger("retailer.tokens")

ALGORITHM = "HS256"


@dataclass(frozen=True)
class TokenClaims:
    """Identity asserted by a verified token."""

    retailer_id: str
    email: str
    expires_at: datetime


class TokenIssuer:
    """Signs and verifies identity tokens with a process-wide secret."""

    def __init__(self, secret: str, default_ttl: timedelta = timedelta(days=7)):
        self._secret = secret
        self.default_ttl = default_ttl

    def issue(self, retailer_id: str, email: str, ttl: Optional[timedelta] = None) -> str:
        """
        Create a signed token for a retailer.

        Raises:
            ValueError: If no signing secret is configured.
        """
        if not self._secret:
            raise ValueError("JWT_SECRET not configured")

        now = datetime.now(timezone.utc)
        expires_at = now + (ttl if ttl is not None else self.default_ttl)
        payload = {
            "id": retailer_id,
            "email": email,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        log.info("Token issued for retailer %s", hash_user_id(retailer_id))
        return token

    def verify(self, token: str) -> Optional[TokenClaims]:
        """Return the token's claims, or None if it is not acceptable."""
        if not self._secret:
            log.error("Cannot verify token: JWT_SECRET not configured")
            return None
        if not token or not isinstance(token, str):
            return None

        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError:
            log.info("Token expired")
            return None
        except jwt.InvalidTokenError as e:
            log.warning("Invalid token: %s", str(e)[:50])
            return None

        retailer_id = payload.get("id")
        email = payload.get("email")
        exp = payload.get("exp")
        if not isinstance(retailer_id, str) or not isinstance(email, str) or not retailer_id or not email:
            log.warning("Token missing id or email claim")
            return None
        if not isinstance(exp, (int, float)):
            return None

        return TokenClaims(
            retailer_id=retailer_id,
            email=email,
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
