# retailer_api/accounts/flows.py
"""
Credential lifecycle flows.

Flows (one request each, steps strictly sequential):
- RegistrationFlow: validate, check duplicate, generate, EMAIL, then persist
- LoginFlow: verify password, issue token
- ProfileUpdateFlow: partial update of profile fields
- PasswordResetFlow: generate, persist, then email
- PasswordChangeFlow: verify current password, store new one

Ordering:
┌──────────────────┬──────────────────────────────────────────────────────┐
│ Flow             │ Side-effect order                                    │
├──────────────────┼──────────────────────────────────────────────────────┤
│ Registration     │ email → insert   (no record if delivery fails)       │
│ Password reset   │ update → email   (new hash kept if delivery fails)   │
└──────────────────┴──────────────────────────────────────────────────────┘

Neither ordering is transactional. A crash between the two steps of
registration leaves a delivered password for an account that does not
exist; RegistrationFlow.on_persist_failure is the hook for that case.

Every flow holds one pooled store connection for its duration and
releases it on every exit path. Nothing is retried.
"""

from __future__ import annotations

import enum
import uuid
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Iterator, Mapping, Optional

from fastapi import UploadFile

from retailer_api.config import Settings
from retailer_api.db import StoreFactory, StorePool, create_store_pool
from retailer_api.accounts.errors import (
    AuthenticationError,
    CredentialError,
    DeliveryError,
    DuplicateError,
    InternalError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from retailer_api.accounts.mailer import (
    EmailGateway,
    EmailMessage,
    account_details_message,
    get_email_gateway,
    password_reset_message,
)
from retailer_api.accounts.models import (
    RegisterInput,
    Retailer,
    RetailerProfile,
    build_profile_patch,
    utcnow,
)
from retailer_api.accounts.passwords import PasswordHasher, check_password_strength, generate_password
from retailer_api.accounts.tokens import TokenIssuer
from retailer_api.privacy_utils import hash_user_id, mask_email
from retailer_api.uploads import FileReferenceResolver, LocalUploadResolver

log = logging.getLogger("retailer.flows")

PasswordSource = Callable[[], str]
PersistFailureHook = Callable[[str, str], None]


# ============================================================
# Shared Helpers
# ============================================================

@contextmanager
def flow_boundary(flow: str, failure_message: str) -> Iterator[None]:
    """
    Map failures leaving a flow to caller-safe errors.

    Storage failures keep their type but get the flow's generic message.
    Unexpected exceptions become InternalError. Everything is logged here
    with detail; callers only ever see failure_message.
    """
    try:
        yield
    except StorageError as e:
        log.error("%s: storage failure: %s", flow, e.__cause__ or e.message)
        raise StorageError(failure_message) from e
    except CredentialError:
        raise
    except Exception as e:
        log.exception("%s: unexpected failure", flow)
        raise InternalError(failure_message) from e


async def deliver(gateway: EmailGateway, message: EmailMessage) -> bool:
    """Send a message; a raising gateway counts as a failed delivery."""
    try:
        return bool(await gateway.send(message))
    except Exception:
        log.exception("Email gateway %s raised while sending to %s",
                      gateway.get_provider_name(), mask_email(message.to))
        return False


def log_orphaned_delivery(retailer_id: str, email: str) -> None:
    """Default persist-failure hook: the password went out but no account exists."""
    log.error(
        "Account details delivered to %s but retailer %s was not persisted; "
        "the applicant must register again",
        mask_email(email), hash_user_id(retailer_id),
    )


# ============================================================
# Registration
# ============================================================

class RegistrationState(str, enum.Enum):
    VALIDATING = "validating"
    CHECKING_DUPLICATE = "checking_duplicate"
    GENERATING_CREDENTIAL = "generating_credential"
    DELIVERING_EMAIL = "delivering_email"
    PERSISTING = "persisting"
    DONE = "done"


@dataclass(frozen=True)
class RegistrationResult:
    retailer_id: str


class RegistrationFlow:
    """
    Create a retailer with a server-generated password.

    The account-details email is sent BEFORE the row is inserted: an account
    whose only credential never reached its owner must not exist.
    """

    FAILURE_MESSAGE = "Registration failed"
    DELIVERY_FAILURE_MESSAGE = "Failed to send email. Please check your email configuration."

    def __init__(
        self,
        pool: StorePool,
        hasher: PasswordHasher,
        gateway: EmailGateway,
        resolver: FileReferenceResolver,
        password_source: PasswordSource = generate_password,
        on_persist_failure: PersistFailureHook = log_orphaned_delivery,
    ):
        self.pool = pool
        self.hasher = hasher
        self.gateway = gateway
        self.resolver = resolver
        self.password_source = password_source
        self.on_persist_failure = on_persist_failure

    def _enter(self, state: RegistrationState, email: str) -> None:
        log.debug("Registration %s: %s", mask_email(email), state.value)

    async def run(
        self,
        data: RegisterInput,
        company_logo: Optional[UploadFile] = None,
        profile_image: Optional[UploadFile] = None,
    ) -> RegistrationResult:
        email = data.email.strip().lower()
        self._enter(RegistrationState.VALIDATING, email)

        with flow_boundary("register", self.FAILURE_MESSAGE):
            async with self.pool.acquire() as store:
                self._enter(RegistrationState.CHECKING_DUPLICATE, email)
                if await store.get_by_email(email) is not None:
                    log.info("Registration rejected, email exists: %s", mask_email(email))
                    raise DuplicateError()

                logo_ref = await self.resolver.resolve(company_logo, "companyLogo")
                image_ref = await self.resolver.resolve(profile_image, "profileImage")

                self._enter(RegistrationState.GENERATING_CREDENTIAL, email)
                plaintext = self.password_source()
                password_hash = await self.hasher.hash(plaintext)
                now = utcnow()
                retailer = Retailer(
                    id=str(uuid.uuid4()),
                    email=email,
                    first_name=data.first_name,
                    last_name=data.last_name,
                    company_name=data.company_name,
                    phone=data.phone,
                    address=data.address,
                    company_logo=logo_ref,
                    profile_image=image_ref,
                    password_hash=password_hash,
                    created_at=now,
                    updated_at=now,
                )

                self._enter(RegistrationState.DELIVERING_EMAIL, email)
                message = account_details_message(data.first_name, data.last_name, email, plaintext)
                del plaintext
                if not await deliver(self.gateway, message):
                    log.error("Registration aborted, delivery failed for %s", mask_email(email))
                    raise DeliveryError(self.DELIVERY_FAILURE_MESSAGE)

                self._enter(RegistrationState.PERSISTING, email)
                try:
                    await store.insert(retailer)
                except Exception:
                    self.on_persist_failure(retailer.id, email)
                    raise

        self._enter(RegistrationState.DONE, email)
        log.info("Retailer registered: %s (%s)", mask_email(email), hash_user_id(retailer.id))
        return RegistrationResult(retailer_id=retailer.id)


# ============================================================
# Login
# ============================================================

@dataclass(frozen=True)
class LoginResult:
    token: str
    retailer: RetailerProfile


class LoginFlow:
    """
    Password login.

    Unknown email and wrong password raise the same AuthenticationError.
    """

    FAILURE_MESSAGE = "Login failed"
    INVALID_MESSAGE = "Invalid email or password"

    def __init__(self, pool: StorePool, hasher: PasswordHasher, tokens: TokenIssuer):
        self.pool = pool
        self.hasher = hasher
        self.tokens = tokens
        # Verified against when the email is unknown so both paths cost one bcrypt check
        self._dummy_hash = hasher.hash_sync(generate_password())

    async def run(self, email: str, password: str) -> LoginResult:
        email = email.strip().lower()

        with flow_boundary("login", self.FAILURE_MESSAGE):
            async with self.pool.acquire() as store:
                retailer = await store.get_by_email(email)

            if retailer is None:
                await self.hasher.verify(password, self._dummy_hash)
                log.info("Login failed for %s", mask_email(email))
                raise AuthenticationError(self.INVALID_MESSAGE)

            if not await self.hasher.verify(password, retailer.password_hash):
                log.info("Login failed for %s", mask_email(email))
                raise AuthenticationError(self.INVALID_MESSAGE)

            token = self.tokens.issue(retailer.id, retailer.email)

        log.info("Login successful: %s", hash_user_id(retailer.id))
        return LoginResult(token=token, retailer=retailer.to_profile())


# ============================================================
# Profile Update
# ============================================================

class ProfileUpdateFlow:
    """
    Partial profile update for the authenticated retailer.

    Absent or whitespace-only fields keep their stored value. File
    references change only when a new file was uploaded in this request.
    updated_at is refreshed even when nothing else changes.
    """

    FAILURE_MESSAGE = "Failed to update profile"

    def __init__(self, pool: StorePool, resolver: FileReferenceResolver):
        self.pool = pool
        self.resolver = resolver

    async def run(
        self,
        retailer_id: str,
        fields: Mapping[str, Optional[str]],
        company_logo: Optional[UploadFile] = None,
        profile_image: Optional[UploadFile] = None,
    ) -> RetailerProfile:
        with flow_boundary("update_profile", self.FAILURE_MESSAGE):
            async with self.pool.acquire() as store:
                if await store.get_by_id(retailer_id) is None:
                    raise NotFoundError("Retailer not found")

                logo_ref = await self.resolver.resolve(company_logo, "companyLogo")
                image_ref = await self.resolver.resolve(profile_image, "profileImage")

                patch = build_profile_patch(fields, company_logo=logo_ref, profile_image=image_ref)
                updated = await store.update_profile(retailer_id, patch)
                if updated is None:
                    raise NotFoundError("Retailer not found")

        log.info("Profile updated for %s (fields: %s)",
                 hash_user_id(retailer_id), ",".join(sorted(patch)) or "none")
        return updated.to_profile()


# ============================================================
# Password Reset ("forgot password")
# ============================================================

class PasswordResetFlow:
    """
    Replace a retailer's password with a generated one and email it.

    The new hash is stored BEFORE delivery is attempted. If delivery
    fails the caller gets a 500 but the old password is already gone.
    """

    FAILURE_MESSAGE = "Failed to reset password"

    def __init__(
        self,
        pool: StorePool,
        hasher: PasswordHasher,
        gateway: EmailGateway,
        password_source: PasswordSource = generate_password,
    ):
        self.pool = pool
        self.hasher = hasher
        self.gateway = gateway
        self.password_source = password_source

    async def run(self, email: Optional[str]) -> None:
        if not email or not email.strip():
            raise ValidationError("Email is required")
        email = email.strip().lower()

        with flow_boundary("forgot_password", self.FAILURE_MESSAGE):
            async with self.pool.acquire() as store:
                retailer = await store.get_by_email(email)
                if retailer is None:
                    log.info("Password reset for unknown email %s", mask_email(email))
                    raise NotFoundError("No retailer found with this email")

                plaintext = self.password_source()
                password_hash = await self.hasher.hash(plaintext)
                if not await store.set_password_hash(retailer.id, password_hash):
                    raise NotFoundError("No retailer found with this email")

            # TODO: registration delivers before persisting; confirm with product
            # whether reset should do the same before changing this order.
            message = password_reset_message(retailer.first_name, retailer.last_name, retailer.email, plaintext)
            del plaintext
            if not await deliver(self.gateway, message):
                log.error("Password for %s was reset but delivery failed; old password no longer valid",
                          hash_user_id(retailer.id))
                raise DeliveryError(self.FAILURE_MESSAGE)

        log.info("Password reset for %s", hash_user_id(retailer.id))


# ============================================================
# Password Change
# ============================================================

class PasswordChangeFlow:
    """Authenticated password change. Sends no email."""

    FAILURE_MESSAGE = "Failed to change password"

    def __init__(self, pool: StorePool, hasher: PasswordHasher):
        self.pool = pool
        self.hasher = hasher

    async def run(self, retailer_id: str, current_password: Optional[str], new_password: Optional[str]) -> None:
        if not current_password or not new_password:
            raise ValidationError("Current password and new password are required")
        check_password_strength(new_password)

        with flow_boundary("change_password", self.FAILURE_MESSAGE):
            async with self.pool.acquire() as store:
                retailer = await store.get_by_id(retailer_id)
                if retailer is None:
                    raise NotFoundError("Retailer not found")

                if not await self.hasher.verify(current_password, retailer.password_hash):
                    log.info("Password change rejected for %s: wrong current password",
                             hash_user_id(retailer_id))
                    raise AuthenticationError("Current password is incorrect")

                password_hash = await self.hasher.hash(new_password)
                if not await store.set_password_hash(retailer_id, password_hash):
                    raise NotFoundError("Retailer not found")

        log.info("Password changed for %s", hash_user_id(retailer_id))


# ============================================================
# Service Assembly
# ============================================================

@dataclass
class AccountServices:
    """Everything the HTTP layer needs, built once at startup."""

    settings: Settings
    pool: StorePool
    tokens: TokenIssuer
    gateway: EmailGateway
    registration: RegistrationFlow
    login: LoginFlow
    profile_update: ProfileUpdateFlow
    password_reset: PasswordResetFlow
    password_change: PasswordChangeFlow


def build_account_services(
    settings: Settings,
    *,
    store_factory: Optional[StoreFactory] = None,
    email_gateway: Optional[EmailGateway] = None,
    upload_resolver: Optional[FileReferenceResolver] = None,
) -> AccountServices:
    """
    Wire flows to their collaborators.

    Args:
        settings: Process configuration.
        store_factory: Override the store backend (tests).
        email_gateway: Override the gateway chosen by EMAIL_PROVIDER.
        upload_resolver: Override the local upload resolver.
    """
    pool = create_store_pool(settings, store_factory)
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    tokens = TokenIssuer(settings.jwt_secret, default_ttl=timedelta(days=settings.jwt_expiry_days))
    gateway = email_gateway or get_email_gateway(settings)
    resolver = upload_resolver or LocalUploadResolver(settings.upload_dir)

    log.info(
        "Account services ready (email=%s, pool=%d, bcrypt_rounds=%d)",
        gateway.get_provider_name(), pool.size, hasher.rounds,
    )

    return AccountServices(
        settings=settings,
        pool=pool,
        tokens=tokens,
        gateway=gateway,
        registration=RegistrationFlow(pool, hasher, gateway, resolver),
        login=LoginFlow(pool, hasher, tokens),
        profile_update=ProfileUpdateFlow(pool, resolver),
        password_reset=PasswordResetFlow(pool, hasher, gateway),
        password_change=PasswordChangeFlow(pool, hasher),
    )
