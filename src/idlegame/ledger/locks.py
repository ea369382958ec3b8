"""Per-user mutual exclusion for units of work.

Operations on different users never share a lock; operations on the same user
queue behind one ``asyncio.Lock``. Locks are held in a weak-value map so the
registry only keeps locks that somebody is currently holding or waiting on.
"""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class UserLockRegistry:
    """Hands out one ``asyncio.Lock`` per user id."""

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        lock = self.lock_for(user_id)
        async with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
