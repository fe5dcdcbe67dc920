# retailer_api/accounts/models.py
"""
Pydantic models for the retailers table.

Tables (1):
1. retailers: one row per retailer account, unique by email

Design Decisions:
- Pydantic v2 syntax (ConfigDict, field_validator)
- Column names are snake_case; the public projection is camelCase
- password_hash never leaves this layer: RetailerProfile has no such field
- Profile updates go through an allow-listed field patch, never ad hoc SQL
"""

from __future__ import annotations

import re
import logging
from datetime import datetime, timezone
from typing import Optional, Mapping, Any

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

log = logging.getLogger("retailer.models")

# ============================================================
# Constants
# ============================================================

TABLE_RETAILERS = "retailers"

# Columns a profile update may touch. id, email, password_hash and the
# timestamps are never patched.
PATCHABLE_FIELDS = frozenset({
    "first_name",
    "last_name",
    "company_name",
    "phone",
    "address",
    "company_logo",
    "profile_image",
})

# Text fields, keyed by the camelCase name used on the wire
PROFILE_TEXT_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "companyName": "company_name",
    "phone": "phone",
    "address": "address",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return utcnow()


# ============================================================
# Retailer
# ============================================================

class Retailer(BaseModel):
    """A stored retailer account (database row)."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    first_name: str
    last_name: str
    company_name: str
    phone: str
    address: str
    company_logo: Optional[str] = None
    profile_image: Optional[str] = None
    password_hash: str = Field(repr=False)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @classmethod
    def from_db_row(cls, row: Mapping[str, Any]) -> "Retailer":
        """Build from a database row dict."""
        return cls(
            id=str(row["id"]),
            email=row["email"],
            first_name=row.get("first_name") or "",
            last_name=row.get("last_name") or "",
            company_name=row.get("company_name") or "",
            phone=row.get("phone") or "",
            address=row.get("address") or "",
            company_logo=row.get("company_logo"),
            profile_image=row.get("profile_image"),
            password_hash=row.get("password_hash") or "",
            created_at=_parse_ts(row.get("created_at")),
            updated_at=_parse_ts(row.get("updated_at")),
        )

    def to_db_row(self) -> dict:
        """Serialize for insert; timestamps as ISO 8601 strings."""
        row = self.model_dump()
        row["created_at"] = self.created_at.isoformat()
        row["updated_at"] = self.updated_at.isoformat()
        return row

    def to_profile(self) -> "RetailerProfile":
        return RetailerProfile(
            id=self.id,
            firstName=self.first_name,
            lastName=self.last_name,
            companyName=self.company_name,
            email=self.email,
            phone=self.phone,
            address=self.address,
            companyLogo=self.company_logo,
            profileImage=self.profile_image,
            createdAt=self.created_at,
            updatedAt=self.updated_at,
        )


class RetailerProfile(BaseModel):
    """Public projection of a retailer. Never carries the password hash."""

    id: str
    firstName: str
    lastName: str
    companyName: str
    email: str
    phone: str
    address: str
    companyLogo: Optional[str] = None
    profileImage: Optional[str] = None
    createdAt: datetime
    updatedAt: datetime


# ============================================================
# Field Patch
# ============================================================

def build_profile_patch(
    fields: Mapping[str, Optional[str]],
    company_logo: Optional[str] = None,
    profile_image: Optional[str] = None,
) -> dict:
    """
    Build a field patch from a partial profile update.

    Args:
        fields: camelCase text fields as received (missing or None allowed).
        company_logo: Newly resolved logo reference, if one was uploaded.
        profile_image: Newly resolved image reference, if one was uploaded.

    Returns:
        Mapping of column name to new value. Absent, None and
        whitespace-only values are left out, so the stored value is kept.

    Examples:
        build_profile_patch({"firstName": "Ann", "lastName": "  "})
            → {"first_name": "Ann"}
    """
    patch: dict = {}
    for wire_name, column in PROFILE_TEXT_FIELDS.items():
        value = fields.get(wire_name)
        if isinstance(value, str) and value.strip():
            patch[column] = value
    if company_logo:
        patch["company_logo"] = company_logo
    if profile_image:
        patch["profile_image"] = profile_image
    return patch


def validate_patch(patch: Mapping[str, Any]) -> None:
    """
    Reject patches that touch columns outside PATCHABLE_FIELDS.

    Raises:
        KeyError: Naming the first offending column.
    """
    unknown = sorted(set(patch) - PATCHABLE_FIELDS)
    if unknown:
        raise KeyError(f"Field(s) not patchable: {', '.join(unknown)}")


# ============================================================
# Request Schemas
# ============================================================

PHONE_RE = re.compile(r"^[0-9]{10,}$")


def _required(value: Any, message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise PydanticCustomError("required", message)
    return value


def _valid_email(value: Any) -> str:
    value = _required(value, "Email is required").strip()
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise PydanticCustomError("email", "Valid email is required")
    return value.lower()


def first_error_message(exc: PydanticValidationError) -> str:
    """First human-readable message of a pydantic validation error."""
    errors = exc.errors()
    if not errors:
        return "Invalid input"
    return errors[0].get("msg") or "Invalid input"


class RegisterInput(BaseModel):
    """Registration form fields (files arrive separately)."""

    model_config = ConfigDict(populate_by_name=True, validate_default=True)

    first_name: str = Field(default=None, alias="firstName")
    last_name: str = Field(default=None, alias="lastName")
    company_name: str = Field(default=None, alias="companyName")
    email: str = None
    phone: str = None
    address: str = None

    @field_validator("first_name", mode="before")
    @classmethod
    def check_first_name(cls, v):
        return _required(v, "First name is required")

    @field_validator("last_name", mode="before")
    @classmethod
    def check_last_name(cls, v):
        return _required(v, "Last name is required")

    @field_validator("company_name", mode="before")
    @classmethod
    def check_company_name(cls, v):
        return _required(v, "Company name is required")

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v):
        return _valid_email(v)

    @field_validator("phone", mode="before")
    @classmethod
    def check_phone(cls, v):
        v = _required(v, "Phone is required").strip()
        if not PHONE_RE.match(v):
            raise PydanticCustomError("phone", "Phone must contain only numbers (minimum 10 digits)")
        return v

    @field_validator("address", mode="before")
    @classmethod
    def check_address(cls, v):
        return _required(v, "Address is required")


class LoginInput(BaseModel):
    model_config = ConfigDict(validate_default=True)

    email: str = None
    password: str = None

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v):
        return _valid_email(v)

    @field_validator("password", mode="before")
    @classmethod
    def check_password(cls, v):
        if not isinstance(v, str) or not v:
            raise PydanticCustomError("required", "Password is required")
        return v


class ForgotPasswordInput(BaseModel):
    email: Optional[str] = None


class ChangePasswordInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: Optional[str] = Field(default=None, alias="currentPassword")
    new_password: Optional[str] = Field(default=None, alias="newPassword")
