# retailer_api/accounts/passwords.py
"""
Password generation, hashing and strength policy.

This module provides:
- generate_password(): server-issued temporary credential
- PasswordHasher: bcrypt hash/verify, run on a worker thread
- check_password_strength(): policy for user-chosen passwords

Security:
- Generated passwords carry 128 bits from the secrets module
- bcrypt.checkpw compares digests in constant time
- Plaintext passwords are never logged
"""

from __future__ import annotations

import re
import secrets
import logging

import bcrypt
from fastapi.concurrency import run_in_threadpool

from retailer_api.accounts.errors import PolicyError

log = logging.getLogger("retailer.passwords")

# 16 bytes = 128 bits, rendered as 32 hex characters
GENERATED_PASSWORD_BYTES = 16

MIN_PASSWORD_LENGTH = 8

# bcrypt only reads the first 72 bytes; newer releases reject longer input
MAX_PASSWORD_BYTES = 72

_STRENGTH_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[^A-Za-z0-9]).{8,}$", re.DOTALL)


def generate_password() -> str:
    """
    Generate a random temporary password.

    Returns:
        32-character lowercase hex string.
    """
    return secrets.token_hex(GENERATED_PASSWORD_BYTES)


def is_strong_password(password: str) -> bool:
    """True if password has 8+ chars and lower, upper, digit and symbol."""
    if not password:
        return False
    return bool(_STRENGTH_RE.match(password))


def check_password_strength(password: str) -> None:
    """
    Enforce the strength policy on a user-chosen password.

    Raises:
        PolicyError: If the password is too short or misses a character class.
    """
    if not is_strong_password(password):
        raise PolicyError()
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise PolicyError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


class PasswordHasher:
    """
    bcrypt hasher with a fixed cost factor.

    Hashing is CPU-bound, so both operations are dispatched to the
    threadpool and never block the event loop.
    """

    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash_sync(self, plaintext: str) -> str:
        if not plaintext:
            raise ValueError("Cannot hash an empty password")
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("utf-8")

    def verify_sync(self, plaintext: str, hashed: str) -> bool:
        if not plaintext or not hashed:
            return False
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            log.warning("bcrypt rejected password check input")
            return False

    async def hash(self, plaintext: str) -> str:
        return await run_in_threadpool(self.hash_sync, plaintext)

    async def verify(self, plaintext: str, hashed: str) -> bool:
        return await run_in_threadpool(self.verify_sync, plaintext, hashed)
