# retailer_api/db.py
"""
Storage setup for the retailer credential service.

This module provides:
- Supabase client creation from Settings
- StorePool: bounded pool of Credential Store connections
- Store factory selection (supabase / memory)
- Health check for /health

Infrastructure Decision:
- Database Client: supabase-py directly (no SQLAlchemy/ORM)
- One Supabase client per pooled connection, created lazily

Pool Contract:
- At most `size` connections are checked out at once
- Callers beyond that suspend until a connection is released
- A connection is returned on every exit path of `acquire()`
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, List, Optional

from retailer_api.config import Settings
from retailer_api.accounts.store import (
    CredentialStore,
    InMemoryCredentialStore,
    InMemoryRetailerTable,
    SupabaseCredentialStore,
)
from retailer_api.accounts.models import TABLE_RETAILERS

log = logging.getLogger("retailer.db")

StoreFactory = Callable[[], CredentialStore]


# ============================================================
# Supabase Client
# ============================================================

def create_supabase_client(settings: Settings):
    """
    Create a Supabase client.

    Raises:
        RuntimeError: If SUPABASE_URL or SUPABASE_KEY is not configured.
    """
    if not settings.supabase_configured:
        raise RuntimeError("Supabase credentials not configured")

    from supabase import create_client

    client = create_client(settings.supabase_url, settings.supabase_key)
    log.info("Supabase client initialized")
    return client


def build_store_factory(settings: Settings) -> StoreFactory:
    """
    Pick the store backend from settings.

    Backends:
    - "supabase" (default): one client per connection
    - "memory": all connections share one in-process table

    Falls back to memory when Supabase is requested but not configured.
    """
    backend = settings.store_backend

    if backend == "supabase" and not settings.supabase_configured:
        log.warning("SUPABASE_URL/SUPABASE_KEY not set, falling back to in-memory store")
        backend = "memory"

    if backend == "supabase":
        return lambda: SupabaseCredentialStore(create_supabase_client(settings))

    if backend != "memory":
        log.warning("Unknown STORE_BACKEND '%s', falling back to in-memory store", backend)

    table = InMemoryRetailerTable()
    return lambda: InMemoryCredentialStore(table)


# ============================================================
# Store Pool
# ============================================================

class StorePool:
    """Bounded pool of reusable Credential Store connections."""

    def __init__(self, factory: StoreFactory, size: int = 10):
        if size < 1:
            raise ValueError("Pool size must be at least 1")
        self._factory = factory
        self.size = size
        self._idle: List[CredentialStore] = []
        self._created = 0
        self._semaphore = asyncio.Semaphore(size)

    @property
    def in_use(self) -> int:
        return self._created - len(self._idle)

    @property
    def created(self) -> int:
        return self._created

    def _checkout(self) -> CredentialStore:
        if self._idle:
            return self._idle.pop()
        store = self._factory()
        self._created += 1
        return store

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[CredentialStore]:
        """
        Check out a connection for the duration of the block.

        Usage:
            async with pool.acquire() as store:
                retailer = await store.get_by_email(email)
        """
        async with self._semaphore:
            store = self._checkout()
            try:
                yield store
            finally:
                self._idle.append(store)


# ============================================================
# Health Check
# ============================================================

async def check_db_health(pool: StorePool) -> dict:
    """
    Check storage connectivity for /health.

    Returns:
        Dict with database status and optional error message.
    """
    try:
        async with pool.acquire() as store:
            await store.get_by_email("healthcheck@invalid.local")
        return {"database": "ok", "table": TABLE_RETAILERS}
    except Exception as e:
        error_msg = str(e)[:100]
        log.warning("Database health check failed: %s", error_msg)
        return {"database": "degraded", "error": error_msg}


def create_store_pool(settings: Settings, factory: Optional[StoreFactory] = None) -> StorePool:
    return StorePool(factory or build_store_factory(settings), size=settings.store_pool_size)
