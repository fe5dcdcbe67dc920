# tests/test_models.py
"""
Model tests: profile projection, field patch, request schemas.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from retailer_api.accounts.models import (
    LoginInput,
    RegisterInput,
    Retailer,
    build_profile_patch,
    first_error_message,
    validate_patch,
)


def make_retailer(**overrides) -> Retailer:
    data = dict(
        id="r-1",
        email="Alice@X.com",
        first_name="Alice",
        last_name="Ng",
        company_name="Ng Traders",
        phone="9876543210",
        address="12 Market Road",
        password_hash="$2b$04$secret-hash",
    )
    data.update(overrides)
    return Retailer(**data)


def register_error(**form) -> str:
    with pytest.raises(PydanticValidationError) as exc:
        RegisterInput(**form)
    return first_error_message(exc.value)


# ============================================================
# Retailer / Profile
# ============================================================

class TestRetailer:

    def test_email_normalized(self):
        assert make_retailer().email == "alice@x.com"

    def test_repr_hides_hash(self):
        assert "secret-hash" not in repr(make_retailer())

    def test_profile_has_no_credential(self):
        profile = make_retailer().to_profile().model_dump()
        assert "password_hash" not in profile
        assert "passwordHash" not in profile
        assert "$2b$04$secret-hash" not in str(profile)

    def test_profile_is_camel_case(self):
        profile = make_retailer(company_logo="companyLogo-1.png").to_profile()
        assert profile.firstName == "Alice"
        assert profile.companyName == "Ng Traders"
        assert profile.companyLogo == "companyLogo-1.png"
        assert profile.profileImage is None

    def test_db_row_round_trip_keeps_timestamps(self):
        retailer = make_retailer()
        restored = Retailer.from_db_row(retailer.to_db_row())
        assert restored == retailer

    def test_from_db_row_accepts_z_suffix(self):
        row = make_retailer().to_db_row()
        row["created_at"] = "2024-01-02T03:04:05Z"
        assert Retailer.from_db_row(row).created_at.year == 2024


# ============================================================
# Field Patch
# ============================================================

class TestProfilePatch:

    def test_only_present_fields(self):
        assert build_profile_patch({"firstName": "Ann"}) == {"first_name": "Ann"}

    def test_blank_and_none_are_skipped(self):
        patch = build_profile_patch({
            "firstName": "",
            "lastName": "   ",
            "companyName": None,
            "phone": "5550001111",
        })
        assert patch == {"phone": "5550001111"}

    def test_file_references_only_when_uploaded(self):
        assert build_profile_patch({}) == {}
        patch = build_profile_patch({}, company_logo="companyLogo-a.png")
        assert patch == {"company_logo": "companyLogo-a.png"}

    def test_email_is_not_a_profile_field(self):
        assert build_profile_patch({"email": "new@x.com"}) == {}

    def test_validate_patch_rejects_unknown(self):
        with pytest.raises(KeyError):
            validate_patch({"first_name": "Ann", "password_hash": "x"})
        validate_patch({"first_name": "Ann", "company_logo": "a.png"})


# ============================================================
# Request Schemas
# ============================================================

class TestRegisterInput:

    def test_accepts_camel_case(self, registration_form):
        data = RegisterInput(**registration_form)
        assert data.first_name == "Alice"
        assert data.email == "alice@x.com"

    def test_email_lowercased(self, registration_form):
        registration_form["email"] = "Alice@X.COM"
        assert RegisterInput(**registration_form).email == "alice@x.com"

    def test_missing_first_name(self, registration_form):
        del registration_form["firstName"]
        assert register_error(**registration_form) == "First name is required"

    def test_blank_company_name(self, registration_form):
        registration_form["companyName"] = "  "
        assert register_error(**registration_form) == "Company name is required"

    def test_invalid_email(self, registration_form):
        registration_form["email"] = "not-an-email"
        assert register_error(**registration_form) == "Valid email is required"

    @pytest.mark.parametrize("phone", ["12345", "98765-43210", "+919876543210", "abcdefghij"])
    def test_bad_phone(self, registration_form, phone):
        registration_form["phone"] = phone
        assert register_error(**registration_form) == "Phone must contain only numbers (minimum 10 digits)"

    def test_missing_address(self, registration_form):
        del registration_form["address"]
        assert register_error(**registration_form) == "Address is required"


class TestLoginInput:

    def test_missing_password(self):
        with pytest.raises(PydanticValidationError) as exc:
            LoginInput(email="alice@x.com")
        assert first_error_message(exc.value) == "Password is required"

    def test_bad_email(self):
        with pytest.raises(PydanticValidationError) as exc:
            LoginInput(email="nope", password="x")
        assert first_error_message(exc.value) == "Valid email is required"
