"""
Per-Order Lock Registry

Serializes every mutation of one order while letting different orders
proceed in parallel. Locks are created on first use and discarded once
nobody holds or waits for them, so the registry only ever holds locks
for orders that are being touched right now.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class OrderLockRegistry:
    """asyncio.Lock per order id, reference counted."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, order_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(order_id, asyncio.Lock())
        self._users[order_id] = self._users.get(order_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[order_id] -= 1
            if self._users[order_id] == 0:
                del self._users[order_id]
                del self._locks[order_id]

    def is_locked(self, order_id: str) -> bool:
        lock = self._locks.get(order_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
