# retailer_api/accounts/__init__.py
"""
Retailer accounts package.

This package provides:
- Registration with a server-generated, emailed password
- Password login with bearer tokens
- Partial profile updates
- Forgot-password reset and authenticated password change

Submodules:
- models: Retailer row, public profile, field patch, request schemas
- passwords: generation, bcrypt hashing, strength policy
- tokens: JWT issuing and verification
- store: Credential Store interface, in-memory and Supabase backends
- mailer: Email Gateway interface and providers
- flows: the five credential flows and their wiring
- auth: bearer-token FastAPI dependency
- auth_routes: /register, /login, /forgot-password, /change-password
- routes: /profile
"""

from __future__ import annotations

__all__ = [
    # Models
    "Retailer",
    "RetailerProfile",
    "build_profile_patch",
    # Passwords / tokens
    "PasswordHasher",
    "generate_password",
    "check_password_strength",
    "TokenIssuer",
    "TokenClaims",
    # Flows
    "RegistrationFlow",
    "LoginFlow",
    "ProfileUpdateFlow",
    "PasswordResetFlow",
    "PasswordChangeFlow",
    "build_account_services",
    # Routes
    "auth_router",
    "profile_router",
]


# Lazy imports to avoid circular dependencies
def __getattr__(name: str):
    """Lazy import pattern for clean module loading."""

    if name in ("Retailer", "RetailerProfile", "build_profile_patch"):
        from . import models
        return getattr(models, name)

    if name in ("PasswordHasher", "generate_password", "check_password_strength"):
        from . import passwords
        return getattr(passwords, name)

    if name in ("TokenIssuer", "TokenClaims"):
        from . import tokens
        return getattr(tokens, name)

    if name in ("RegistrationFlow", "LoginFlow", "ProfileUpdateFlow",
                "PasswordResetFlow", "PasswordChangeFlow", "build_account_services"):
        from . import flows
        return getattr(flows, name)

    if name == "auth_router":
        from .auth_routes import router
        return router

    if name == "profile_router":
        from .routes import router
        return router

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
