"""Key-value stores shared by circuit breakers.

Storage is intentionally decoupled from breaker logic. Breakers only rely on
four atomic primitives (read, write with optional TTL, delete and
auto-initialising increment), so custom backends (for example Redis or
memcached) can implement the interface for multi-process coordination.
"""

import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass


class AbstractCircuitStore(ABC):
    """Abstract circuit store interface."""

    @abstractmethod
    async def read(self, key: str) -> object | None:
        """Return the value stored at ``key`` or ``None`` when absent."""

    @abstractmethod
    async def write(
        self,
        key: str,
        value: object,
        *,
        ttl: float | None = None,
        raw: bool = False,
    ) -> None:
        """Store ``value`` at ``key``.

        Args:
            key: Storage key.
            value: Value to store.
            ttl: Seconds until the key expires. ``None`` keeps it forever.
            raw: Hint that ``value`` is a plain counter that ``increment`` may
                later operate on.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    async def increment(self, key: str) -> int:
        """Atomically increment ``key``, initialising it to 1 when absent."""


@dataclass(slots=True)
class _Entry:
    value: object
    expires_at: float | None


class InMemoryCircuitStore(AbstractCircuitStore):
    """Process-local store with TTL support and atomic increments.

    Expiry is evaluated lazily on access against ``now_fn`` so tests can drive
    time with a fake clock.
    """

    def __init__(self, *, now_fn: Callable[[], float] = time.time) -> None:
        """Initialize an empty store.

        Args:
            now_fn: Clock returning epoch seconds, used for TTL expiry.
        """
        self._now_fn = now_fn
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def _live_entry(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._now_fn():
            del self._entries[key]
            return None
        return entry

    async def read(self, key: str) -> object | None:
        """Return the live value for ``key``."""
        with self._lock:
            entry = self._live_entry(key)
            return None if entry is None else entry.value

    async def write(
        self,
        key: str,
        value: object,
        *,
        ttl: float | None = None,
        raw: bool = False,
    ) -> None:
        """Store ``value``, replacing any previous value and expiry."""
        expires_at = None if ttl is None else self._now_fn() + ttl
        if raw:
            value = int(value)  # type: ignore[call-overload]
        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=expires_at)

    async def delete(self, key: str) -> None:
        """Remove ``key``."""
        with self._lock:
            self._entries.pop(key, None)

    async def increment(self, key: str) -> int:
        """Increment a counter, keeping the expiry of an existing entry."""
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                self._entries[key] = _Entry(value=1, expires_at=None)
                return 1
            updated = int(entry.value) + 1  # type: ignore[call-overload]
            entry.value = updated
            return updated

    def keys(self) -> list[str]:
        """Return live keys, mostly useful for debugging and tests."""
        with self._lock:
            return [key for key in list(self._entries) if self._live_entry(key)]

    def clear(self) -> None:
        """Drop every entry. Intended for deterministic tests."""
        with self._lock:
            self._entries.clear()
