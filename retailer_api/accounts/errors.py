# retailer_api/accounts/errors.py
"""
Error taxonomy for the credential flows.

Every flow failure is one of these. The HTTP layer renders them as
{"error": message} with the attached status code, so messages must be
safe to show to the caller.
"""

from __future__ import annotations


class CredentialError(Exception):
    """Base class for all flow failures."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(CredentialError):
    """Malformed or missing input. Raised before any side effect."""

    status_code = 400
    default_message = "Invalid input"


class DuplicateError(CredentialError):
    status_code = 400
    default_message = "Email already registered"


class PolicyError(CredentialError):
    """New password fails the strength policy."""

    status_code = 400
    default_message = (
        "Password must be at least 8 characters and include uppercase, "
        "lowercase, number, and special character"
    )


class AuthenticationError(CredentialError):
    status_code = 401
    default_message = "Invalid email or password"


class NotFoundError(CredentialError):
    status_code = 404
    default_message = "Retailer not found"


class DeliveryError(CredentialError):
    """Email gateway reported failure."""

    status_code = 500
    default_message = "Failed to send email"


class StorageError(CredentialError):
    status_code = 500
    default_message = "Storage operation failed"


class InternalError(CredentialError):
    status_code = 500
    default_message = "Internal server error"
