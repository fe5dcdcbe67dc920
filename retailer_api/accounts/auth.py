# retailer_api/accounts/auth.py
"""
FastAPI dependencies for authenticated routes.

Token Usage:
- Clients send `Authorization: Bearer <token>` on /profile and /change-password
- Missing header → 401 "Access token required"
- Bad, foreign or expired token → 401 "Invalid or expired token"

Both checks run before any flow logic. The identity is the token's claims;
whether the retailer still exists is the flow's concern (404).
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from retailer_api.accounts.errors import AuthenticationError
from retailer_api.accounts.flows import AccountServices
from retailer_api.accounts.tokens import TokenClaims

log = logging.getLogger("retailer.auth")

# HTTP Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


def get_services(request: Request) -> AccountServices:
    """The AccountServices bundle created at app startup."""
    return request.app.state.services


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: AccountServices = Depends(get_services),
) -> TokenClaims:
    """
    Resolve the caller's identity from the bearer token (required).

    Usage:
        @router.put("/profile")
        async def update(identity: TokenClaims = Depends(get_current_identity)):
            ...
    """
    if not credentials or not credentials.credentials:
        raise AuthenticationError("Access token required")

    claims = services.tokens.verify(credentials.credentials)
    if claims is None:
        raise AuthenticationError("Invalid or expired token")

    return claims
