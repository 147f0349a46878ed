"""
Per-key asyncio locks.

Serializes read-compute-write cycles on the same ingredient while leaving
different ingredients free to proceed concurrently. Locks exist only while
some task holds or waits for them.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from inventory_ledger.config import get_logger, get_settings
from inventory_ledger.core.exceptions import LockTimeoutError

logger = get_logger(__name__)


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class KeyedLockRegistry:
    """Exclusive asyncio locks keyed by string (ingredient id)."""

    def __init__(self, default_timeout: float | None = None):
        self.default_timeout = default_timeout
        self._entries: dict[str, _LockEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def is_locked(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    @asynccontextmanager
    async def hold(self, key: str, timeout: float | None = None) -> AsyncIterator[None]:
        """
        Hold the lock for ``key``.

        Raises:
            LockTimeoutError: the lock was not acquired within ``timeout`` seconds
        """
        timeout = self.default_timeout if timeout is None else timeout
        entry = self._entries.setdefault(key, _LockEntry())
        entry.users += 1
        try:
            try:
                async with asyncio.timeout(timeout):
                    await entry.lock.acquire()
            except TimeoutError:
                logger.warning("ingredient_lock_timeout", ingredient_id=key, timeout=timeout)
                raise LockTimeoutError(key, timeout or 0.0) from None

            try:
                yield
            finally:
                entry.lock.release()
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._entries.pop(key, None)


# Process-wide registry
_registry: KeyedLockRegistry | None = None


def get_lock_registry() -> KeyedLockRegistry:
    """Get or create the process-wide ingredient lock registry."""
    global _registry
    if _registry is None:
        _registry = KeyedLockRegistry(default_timeout=get_settings().ledger.lock_timeout)
    return _registry


def reset_lock_registry() -> None:
    """Drop the process-wide registry (for testing)."""
    global _registry
    _registry = None
