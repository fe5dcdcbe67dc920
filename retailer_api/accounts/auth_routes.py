# retailer_api/accounts/auth_routes.py
"""
Credential routes.

Endpoints:
- POST /register: Create account, password sent by email (multipart)
- POST /login: Email + password → bearer token
- POST /forgot-password: Replace password with a generated one, sent by email
- POST /change-password: Authenticated password change

┌──────────────────────┬────────┬──────────────────────────────────────────┐
│ Endpoint             │ Auth   │ Failures                                 │
├──────────────────────┼────────┼──────────────────────────────────────────┤
│ /register            │ none   │ 400 validation/duplicate, 500 email      │
│ /login               │ none   │ 400 validation, 401 invalid credentials  │
│ /forgot-password     │ none   │ 400 missing email, 404 unknown, 500      │
│ /change-password     │ bearer │ 400 missing/weak, 401 wrong current, 404 │
└──────────────────────┴────────┴──────────────────────────────────────────┘

Security:
- Unknown email and wrong password on /login give identical responses
- Passwords are never echoed back or logged
- /forgot-password does reveal whether an email is registered (404)
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from retailer_api.accounts.auth import get_current_identity, get_services
from retailer_api.accounts.errors import ValidationError
from retailer_api.accounts.flows import AccountServices
from retailer_api.accounts.models import (
    ChangePasswordInput,
    ForgotPasswordInput,
    LoginInput,
    RegisterInput,
    RetailerProfile,
    first_error_message,
)
from retailer_api.accounts.tokens import TokenClaims

log = logging.getLogger("retailer.auth_routes")

# ============================================================
# Router Setup
# ============================================================

router = APIRouter(tags=["Authentication"])


# ============================================================
# Response Schemas
# ============================================================

class MessageResponse(BaseModel):
    message: str


class RegisterResponse(BaseModel):
    message: str
    retailerId: str = Field(..., description="New retailer UUID")


class LoginResponse(BaseModel):
    message: str
    token: str = Field(..., description="Bearer token for authenticated requests")
    retailer: RetailerProfile


class ErrorResponse(BaseModel):
    """Standard error body."""

    error: str = Field(..., description="Human-readable error message")


# ============================================================
# Endpoints
# ============================================================

@router.post(
    "/register",
    status_code=201,
    response_model=RegisterResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Validation error or email already registered"},
        500: {"model": ErrorResponse, "description": "Email delivery or storage failure"},
    },
    summary="Register retailer",
)
async def register_endpoint(
    first_name: Optional[str] = Form(None, alias="firstName"),
    last_name: Optional[str] = Form(None, alias="lastName"),
    company_name: Optional[str] = Form(None, alias="companyName"),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    company_logo: Optional[UploadFile] = File(None, alias="companyLogo"),
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    services: AccountServices = Depends(get_services),
) -> RegisterResponse:
    """
    Register a retailer.

    A password is generated and emailed to the applicant. The account is
    only created once that email has been accepted for delivery.
    """
    try:
        data = RegisterInput(
            first_name=first_name,
            last_name=last_name,
            company_name=company_name,
            email=email,
            phone=phone,
            address=address,
        )
    except PydanticValidationError as e:
        raise ValidationError(first_error_message(e))

    result = await services.registration.run(data, company_logo=company_logo, profile_image=profile_image)

    return RegisterResponse(
        message="Retailer registered successfully. Check your email for login details.",
        retailerId=result.retailer_id,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Malformed email or missing password"},
        401: {"model": ErrorResponse, "description": "Invalid email or password"},
    },
    summary="Login",
)
async def login_endpoint(
    body: LoginInput,
    services: AccountServices = Depends(get_services),
) -> LoginResponse:
    result = await services.login.run(body.email, body.password)
    return LoginResponse(message="Login successful", token=result.token, retailer=result.retailer)


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Email missing"},
        404: {"model": ErrorResponse, "description": "No retailer with this email"},
        500: {"model": ErrorResponse, "description": "Reset or delivery failed"},
    },
    summary="Forgot password",
)
async def forgot_password_endpoint(
    body: Optional[ForgotPasswordInput] = None,
    services: AccountServices = Depends(get_services),
) -> MessageResponse:
    """
    Replace the password with a generated one and email it.

    The new password is stored before the email is sent.
    """
    body = body or ForgotPasswordInput()
    await services.password_reset.run(body.email)
    return MessageResponse(message="A new password has been sent to your email address")


@router.post(
    "/change-password",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing fields or weak new password"},
        401: {"model": ErrorResponse, "description": "Missing/invalid token or wrong current password"},
        404: {"model": ErrorResponse, "description": "Retailer no longer exists"},
    },
    summary="Change password",
)
async def change_password_endpoint(
    body: Optional[ChangePasswordInput] = None,
    identity: TokenClaims = Depends(get_current_identity),
    services: AccountServices = Depends(get_services),
) -> MessageResponse:
    body = body or ChangePasswordInput()
    await services.password_change.run(identity.retailer_id, body.current_password, body.new_password)
    return MessageResponse(message="Password updated successfully")
