# tests/conftest.py
"""
Pytest configuration and shared fixtures.

- Settings with a test secret and a cheap bcrypt cost
- In-memory Credential Store shared by every pooled connection
- RecordingGateway: captures sent emails, can be told to fail
- AccountServices and a TestClient wired to the above
"""

import re
import asyncio
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from retailer_api.config import Settings
from retailer_api.accounts.flows import build_account_services
from retailer_api.accounts.mailer import EmailGateway, EmailMessage
from retailer_api.accounts.models import RegisterInput
from retailer_api.accounts.store import InMemoryCredentialStore, InMemoryRetailerTable
from retailer_api.main import create_app
from retailer_api.uploads import LocalUploadResolver

TEST_SECRET = "test-secret-for-testing-only-not-production"

_PASSWORD_RE = re.compile(r"(?:Password:|New password:</strong>)\s*([0-9a-f]+)")


# ============================================================
# Email Gateway Double
# ============================================================

class RecordingGateway(EmailGateway):
    """Records every message; `fail` / `error` simulate delivery problems."""

    def __init__(self):
        self.sent: List[EmailMessage] = []
        self.attempts: List[EmailMessage] = []
        self.fail = False
        self.error: Optional[Exception] = None

    async def send(self, message: EmailMessage) -> bool:
        self.attempts.append(message)
        if self.error is not None:
            raise self.error
        if self.fail:
            return False
        self.sent.append(message)
        return True

    def get_provider_name(self) -> str:
        return "recording"

    def last_password(self) -> str:
        """Plaintext password carried by the most recent delivered email."""
        assert self.sent, "no email was delivered"
        match = _PASSWORD_RE.search(self.sent[-1].html)
        assert match, "delivered email carries no password"
        return match.group(1)


def run(coro):
    """Drive a coroutine from a sync test."""
    return asyncio.run(coro)


# ============================================================
# Core Fixtures
# ============================================================

@pytest.fixture
def settings(tmp_path):
    return Settings(
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
        store_backend="memory",
        store_pool_size=3,
        upload_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def table():
    return InMemoryRetailerTable()


@pytest.fixture
def store_factory(table):
    return lambda: InMemoryCredentialStore(table)


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def resolver(settings):
    return LocalUploadResolver(settings.upload_dir)


@pytest.fixture
def services(settings, store_factory, gateway, resolver):
    return build_account_services(
        settings,
        store_factory=store_factory,
        email_gateway=gateway,
        upload_resolver=resolver,
    )


@pytest.fixture
def client(settings, store_factory, gateway, resolver):
    """TestClient against an app wired to the in-memory store."""
    app = create_app(
        settings,
        store_factory=store_factory,
        email_gateway=gateway,
        upload_resolver=resolver,
    )
    with TestClient(app) as c:
        yield c


# ============================================================
# Sample Data
# ============================================================

@pytest.fixture
def registration_form():
    return {
        "firstName": "Alice",
        "lastName": "Ng",
        "companyName": "Ng Traders",
        "email": "alice@x.com",
        "phone": "9876543210",
        "address": "12 Market Road",
    }


@pytest.fixture
def registration_input(registration_form):
    return RegisterInput(**registration_form)


@pytest.fixture
def registered(services, gateway, registration_input):
    """A registered retailer: (retailer_id, plaintext password)."""
    result = run(services.registration.run(registration_input))
    return result.retailer_id, gateway.last_password()


# ============================================================
# Markers
# ============================================================

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "integration: exercises the HTTP app end to end"
    )
