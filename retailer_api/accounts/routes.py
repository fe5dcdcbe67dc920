# retailer_api/accounts/routes.py
"""
Profile routes.

Endpoints:
- PUT /profile: Partial update of the authenticated retailer's profile

Update Semantics:
- Only non-blank text fields are applied; blank or absent fields keep their value
- companyLogo / profileImage change only when a new file is uploaded
- email and password cannot be changed here
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel

from retailer_api.accounts.auth import get_current_identity, get_services
from retailer_api.accounts.auth_routes import ErrorResponse
from retailer_api.accounts.flows import AccountServices
from retailer_api.accounts.models import RetailerProfile
from retailer_api.accounts.tokens import TokenClaims

log = logging.getLogger("retailer.profile_routes")

router = APIRouter(tags=["Profile"])


class ProfileResponse(BaseModel):
    message: str
    retailer: RetailerProfile


@router.put(
    "/profile",
    response_model=ProfileResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid token"},
        404: {"model": ErrorResponse, "description": "Retailer not found"},
    },
    summary="Update profile",
)
async def update_profile_endpoint(
    first_name: Optional[str] = Form(None, alias="firstName"),
    last_name: Optional[str] = Form(None, alias="lastName"),
    company_name: Optional[str] = Form(None, alias="companyName"),
    phone: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    company_logo: Optional[UploadFile] = File(None, alias="companyLogo"),
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    identity: TokenClaims = Depends(get_current_identity),
    services: AccountServices = Depends(get_services),
) -> ProfileResponse:
    fields = {
        "firstName": first_name,
        "lastName": last_name,
        "companyName": company_name,
        "phone": phone,
        "address": address,
    }
    profile = await services.profile_update.run(
        identity.retailer_id,
        fields,
        company_logo=company_logo,
        profile_image=profile_image,
    )
    return ProfileResponse(message="Profile updated successfully", retailer=profile)
