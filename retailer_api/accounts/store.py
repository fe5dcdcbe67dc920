# retailer_api/accounts/store.py
"""
Credential Store implementations.

This module provides:
- CredentialStore: abstract interface consumed by the flows
- InMemoryCredentialStore: dict-backed store (development, tests)
- SupabaseCredentialStore: retailers table via supabase-py

Contract:
- get_by_email / get_by_id return None when absent
- insert rejects a second live record for an email (DuplicateError)
- update_profile applies an allow-listed field patch and always bumps updated_at
- set_password_hash replaces the credential and bumps updated_at
- Any backend failure surfaces as StorageError
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional, Any

from fastapi.concurrency import run_in_threadpool

from retailer_api.accounts.errors import DuplicateError, StorageError
from retailer_api.accounts.models import Retailer, TABLE_RETAILERS, utcnow, validate_patch
from retailer_api.privacy_utils import hash_user_id, mask_email

log = logging.getLogger("retailer.store")

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


class CredentialStore(ABC):
    """Durable retailer records keyed by id and by unique email."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[Retailer]:
        pass

    @abstractmethod
    async def get_by_id(self, retailer_id: str) -> Optional[Retailer]:
        pass

    @abstractmethod
    async def insert(self, retailer: Retailer) -> None:
        pass

    @abstractmethod
    async def update_profile(self, retailer_id: str, patch: Mapping[str, Any]) -> Optional[Retailer]:
        """Apply a field patch. Returns the updated record, None if absent."""
        pass

    @abstractmethod
    async def set_password_hash(self, retailer_id: str, password_hash: str) -> bool:
        """Replace the stored credential. Returns False if absent."""
        pass


def _checked_patch(patch: Mapping[str, Any]) -> dict:
    try:
        validate_patch(patch)
    except KeyError as e:
        raise StorageError(str(e).strip("'\"")) from e
    return dict(patch)


# ============================================================
# In-Memory Implementation
# ============================================================

class InMemoryRetailerTable:
    """Shared backing rows for every InMemoryCredentialStore connection."""

    def __init__(self):
        self.rows: Dict[str, Retailer] = {}
        self.lock = threading.Lock()

    def __len__(self) -> int:
        return len(self.rows)


class InMemoryCredentialStore(CredentialStore):
    """
    Dict-backed store.

    Several instances may share one InMemoryRetailerTable so that a pool
    of "connections" sees the same data.
    """

    def __init__(self, table: Optional[InMemoryRetailerTable] = None):
        self.table = table if table is not None else InMemoryRetailerTable()

    async def get_by_email(self, email: str) -> Optional[Retailer]:
        email = (email or "").strip().lower()
        with self.table.lock:
            for row in self.table.rows.values():
                if row.email == email:
                    return row
        return None

    async def get_by_id(self, retailer_id: str) -> Optional[Retailer]:
        with self.table.lock:
            return self.table.rows.get(retailer_id)

    async def insert(self, retailer: Retailer) -> None:
        with self.table.lock:
            if retailer.id in self.table.rows:
                raise StorageError("Retailer id already exists")
            if any(r.email == retailer.email for r in self.table.rows.values()):
                raise DuplicateError()
            self.table.rows[retailer.id] = retailer
        log.info("Retailer inserted: %s", mask_email(retailer.email))

    async def update_profile(self, retailer_id: str, patch: Mapping[str, Any]) -> Optional[Retailer]:
        changes = _checked_patch(patch)
        changes["updated_at"] = utcnow()
        with self.table.lock:
            current = self.table.rows.get(retailer_id)
            if current is None:
                return None
            updated = current.model_copy(update=changes)
            self.table.rows[retailer_id] = updated
        return updated

    async def set_password_hash(self, retailer_id: str, password_hash: str) -> bool:
        with self.table.lock:
            current = self.table.rows.get(retailer_id)
            if current is None:
                return False
            self.table.rows[retailer_id] = current.model_copy(
                update={"password_hash": password_hash, "updated_at": utcnow()}
            )
        return True


# ============================================================
# Supabase Implementation
# ============================================================

class SupabaseCredentialStore(CredentialStore):
    """
    Store backed by the Supabase retailers table.

    supabase-py is synchronous, so every call runs on the threadpool.
    All filters go through the query builder; no string-built SQL.
    """

    def __init__(self, client):
        self.client = client

    def _table(self):
        return self.client.table(TABLE_RETAILERS)

    def _first(self, result) -> Optional[Retailer]:
        if result.data:
            return Retailer.from_db_row(result.data[0])
        return None

    def _get_by_email_sync(self, email: str) -> Optional[Retailer]:
        result = self._table()\
            .select("*")\
            .eq("email", email.strip().lower())\
            .limit(1)\
            .execute()
        return self._first(result)

    def _get_by_id_sync(self, retailer_id: str) -> Optional[Retailer]:
        result = self._table()\
            .select("*")\
            .eq("id", retailer_id)\
            .limit(1)\
            .execute()
        return self._first(result)

    def _insert_sync(self, retailer: Retailer) -> None:
        self._table().insert(retailer.to_db_row()).execute()

    def _update_sync(self, retailer_id: str, changes: dict) -> Optional[Retailer]:
        result = self._table()\
            .update(changes)\
            .eq("id", retailer_id)\
            .execute()
        return self._first(result)

    async def _call(self, op: str, fn, *args):
        try:
            return await run_in_threadpool(fn, *args)
        except Exception as e:
            if getattr(e, "code", None) == UNIQUE_VIOLATION:
                raise DuplicateError() from e
            log.error("Supabase %s failed: %s", op, str(e)[:100])
            raise StorageError() from e

    async def get_by_email(self, email: str) -> Optional[Retailer]:
        return await self._call("get_by_email", self._get_by_email_sync, email)

    async def get_by_id(self, retailer_id: str) -> Optional[Retailer]:
        return await self._call("get_by_id", self._get_by_id_sync, retailer_id)

    async def insert(self, retailer: Retailer) -> None:
        await self._call("insert", self._insert_sync, retailer)
        log.info("Retailer inserted: %s", mask_email(retailer.email))

    async def update_profile(self, retailer_id: str, patch: Mapping[str, Any]) -> Optional[Retailer]:
        changes = _checked_patch(patch)
        changes["updated_at"] = utcnow().isoformat()
        return await self._call("update_profile", self._update_sync, retailer_id, changes)

    async def set_password_hash(self, retailer_id: str, password_hash: str) -> bool:
        changes = {"password_hash": password_hash, "updated_at": utcnow().isoformat()}
        updated = await self._call("set_password_hash", self._update_sync, retailer_id, changes)
        if updated is None:
            log.info("Password update matched no retailer %s", hash_user_id(retailer_id))
            return False
        return True
