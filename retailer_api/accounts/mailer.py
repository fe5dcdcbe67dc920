# retailer_api/accounts/mailer.py
"""
Email Gateway for credential delivery.

This module provides:
- EmailMessage and builders for the two credential emails
- Abstract EmailGateway interface (send → bool)
- Stub implementation (records in memory, for development)
- Resend and SendGrid implementations (httpx)

Provider selection via EMAIL_PROVIDER: "stub" (default), "resend", "sendgrid".

Security:
- Credential emails carry a plaintext password by product requirement.
  That text lives only in the message body; it is never logged.
- Recipient addresses are masked in logs.
"""

from __future__ import annotations

import html
import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Deque

import httpx

from retailer_api.config import Settings
from retailer_api.privacy_utils import mask_email

log = logging.getLogger("retailer.email")

SEND_TIMEOUT_SECONDS = 10.0

ACCOUNT_DETAILS_SUBJECT = "Your Retailer Account Details"
PASSWORD_RESET_SUBJECT = "Your new retailer account password"


# ============================================================
# Messages
# ============================================================

@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str

    def __repr__(self) -> str:
        return f"EmailMessage(to={mask_email(self.to)!r}, subject={self.subject!r})"


def account_details_message(first_name: str, last_name: str, email: str, password: str) -> EmailMessage:
    """Welcome email carrying the generated login password."""
    body = f"""
      <h2>Welcome to Retailer Dashboard</h2>
      <p>Dear {html.escape(first_name)} {html.escape(last_name)},</p>
      <p>Your account has been successfully created.</p>
      <p><strong>Login Details:</strong></p>
      <p>Email: {html.escape(email)}</p>
      <p>Password: {html.escape(password)}</p>
      <p>Please change your password after logging in.</p>
    """
    return EmailMessage(to=email, subject=ACCOUNT_DETAILS_SUBJECT, html=body)


def password_reset_message(first_name: str, last_name: str, email: str, password: str) -> EmailMessage:
    """Reset email carrying the newly generated password."""
    body = f"""
      <h2>Password Reset</h2>
      <p>Dear {html.escape(first_name)} {html.escape(last_name or '')},</p>
      <p>Your retailer account password has been reset.</p>
      <p><strong>New password:</strong> {html.escape(password)}</p>
      <p>Please log in with this password and change it after logging in.</p>
    """
    return EmailMessage(to=email, subject=PASSWORD_RESET_SUBJECT, html=body)


# ============================================================
# Abstract Gateway
# ============================================================

class EmailGateway(ABC):
    """
    Abstract base class for email delivery.

    Implementations:
    - StubEmailGateway: Keeps messages in memory (development)
    - ResendEmailGateway: Sends via Resend API (production)
    - SendGridEmailGateway: Sends via SendGrid API (production)
    """

    @abstractmethod
    async def send(self, message: EmailMessage) -> bool:
        """
        Deliver a message.

        Returns:
            True if the provider accepted the message, False otherwise.
        """
        pass

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return provider name for logging."""
        pass


# ============================================================
# Stub Implementation (Development)
# ============================================================

class StubEmailGateway(EmailGateway):
    """
    Stub gateway that keeps the last messages in memory.

    Use in development. Never use in production.
    """

    def __init__(self, max_messages: int = 100):
        self.outbox: Deque[EmailMessage] = deque(maxlen=max_messages)

    async def send(self, message: EmailMessage) -> bool:
        self.outbox.append(message)
        log.info("[STUB EMAIL] Would send %r to %s", message.subject, mask_email(message.to))
        return True

    def get_provider_name(self) -> str:
        return "stub"


# ============================================================
# HTTP Providers (Production)
# ============================================================

class _HttpEmailGateway(EmailGateway):
    """Shared plumbing for JSON-over-HTTPS providers."""

    url = ""
    accepted_statuses = frozenset({200})

    def __init__(self, api_key: str, from_email: str):
        self.api_key = api_key
        self.from_email = from_email

        if not self.api_key:
            log.warning("EMAIL_API_KEY not set for %s provider", self.get_provider_name())

    def build_payload(self, message: EmailMessage) -> dict:
        raise NotImplementedError

    async def send(self, message: EmailMessage) -> bool:
        if not self.api_key:
            log.error("Cannot send email: EMAIL_API_KEY not configured")
            return False

        try:
            async with httpx.AsyncClient(timeout=SEND_TIMEOUT_SECONDS) as client:
                response = await client.post(
                    self.url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=self.build_payload(message),
                )
        except httpx.HTTPError as e:
            log.error("Failed to send email via %s: %s", self.get_provider_name(), str(e)[:100])
            return False

        if response.status_code in self.accepted_statuses:
            log.info("Email sent via %s to %s", self.get_provider_name(), mask_email(message.to))
            return True

        log.error(
            "%s API error: %s %s",
            self.get_provider_name(), response.status_code, response.text[:100],
        )
        return False


class ResendEmailGateway(_HttpEmailGateway):
    url = "https://api.resend.com/emails"

    def build_payload(self, message: EmailMessage) -> dict:
        return {
            "from": self.from_email,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }

    def get_provider_name(self) -> str:
        return "resend"


class SendGridEmailGateway(_HttpEmailGateway):
    url = "https://api.sendgrid.com/v3/mail/send"
    accepted_statuses = frozenset({200, 202})

    def build_payload(self, message: EmailMessage) -> dict:
        return {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {"email": self.from_email},
            "subject": message.subject,
            "content": [{"type": "text/html", "value": message.html}],
        }

    def get_provider_name(self) -> str:
        return "sendgrid"


# ============================================================
# Gateway Factory
# ============================================================

def get_email_gateway(settings: Settings) -> EmailGateway:
    """
    Build the gateway named by EMAIL_PROVIDER.

    Providers:
    - "stub" (default): Keeps messages in memory
    - "resend": Sends via Resend API
    - "sendgrid": Sends via SendGrid API
    """
    provider = settings.email_provider

    if provider == "resend":
        return ResendEmailGateway(settings.email_api_key, settings.email_from)
    elif provider == "sendgrid":
        return SendGridEmailGateway(settings.email_api_key, settings.email_from)
    else:
        if provider != "stub":
            log.warning("Unknown EMAIL_PROVIDER '%s', falling back to stub", provider)
        return StubEmailGateway()
