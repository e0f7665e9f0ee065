"""Per-transaction locks.

Every mutation of a transaction's category links runs while holding the
lock for that transaction id, so a bulk sweep and an interactive override
never interleave their writes on the same transaction.
"""
import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID


class TransactionLocks:
    """Registry of asyncio locks keyed by transaction id.

    Locks are created on first use and dropped once nobody holds or waits
    for them. They are not re-entrant.
    """

    def __init__(self) -> None:
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._users: dict[UUID, int] = {}

    @asynccontextmanager
    async def hold(self, transaction_id: UUID) -> AsyncIterator[None]:
        lock = self._locks.setdefault(transaction_id, asyncio.Lock())
        self._users[transaction_id] = self._users.get(transaction_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[transaction_id] -= 1
            if self._users[transaction_id] == 0:
                del self._users[transaction_id]
                del self._locks[transaction_id]

    def is_locked(self, transaction_id: UUID) -> bool:
        lock = self._locks.get(transaction_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)


transaction_locks = TransactionLocks()
