"""
Ledger lock.

Single mutation gateway for the deposit ledger: serializes deposits and
withdrawals inside one process with an asyncio lock and, on PostgreSQL,
across processes with a transaction-scoped advisory lock.
"""

import asyncio
import hashlib
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

LEDGER_LOCK_KEY = "accrual:ledger"

# Locks are per event loop: asyncio.Lock binds to the loop it first waits on
_local_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[str, asyncio.Lock]]" = (
    weakref.WeakKeyDictionary()
)


def _get_local_lock(key: str) -> asyncio.Lock:
    locks = _local_locks.setdefault(asyncio.get_running_loop(), {})
    lock = locks.get(key)
    if lock is None:
        lock = locks[key] = asyncio.Lock()
    return lock


class LedgerLock:
    """
    Serializes ledger mutations.

    The PostgreSQL advisory lock is taken with pg_advisory_xact_lock, so it
    is released by the commit or rollback that ends the caller's
    transaction. The local lock is released when the context exits.
    """

    def __init__(
        self, session: AsyncSession, key: str = LEDGER_LOCK_KEY
    ) -> None:
        """
        Initialize ledger lock.

        Args:
            session: Database session the mutation runs in
            key: Lock key
        """
        self.session = session
        self.key = key

    @staticmethod
    def _key_to_advisory_id(key: str) -> int:
        """
        Convert lock key to PostgreSQL advisory lock ID.

        PostgreSQL advisory locks use int8, so the first 8 bytes of the
        key's SHA-256 digest are read as a signed 64-bit integer.
        """
        hash_bytes = hashlib.sha256(key.encode()).digest()[:8]
        return int.from_bytes(hash_bytes, byteorder="big", signed=True)

    def _is_postgresql(self) -> bool:
        bind = self.session.get_bind()
        return bind.dialect.name == "postgresql"

    async def _acquire_postgresql_lock(self) -> None:
        advisory_id = self._key_to_advisory_id(self.key)
        await self.session.execute(
            text("SELECT pg_advisory_xact_lock(:lock_id)"),
            {"lock_id": advisory_id},
        )
        logger.debug(
            f"PostgreSQL advisory lock acquired: {self.key} (id={advisory_id})"
        )

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        """Hold the lock for the duration of the block."""
        async with _get_local_lock(self.key):
            if self._is_postgresql():
                await self._acquire_postgresql_lock()
            yield
