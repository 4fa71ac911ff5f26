"""Process-wide cache of circuit breakers."""

import hashlib
import threading
from collections.abc import Awaitable, Callable, Mapping
from typing import TypeVar

from breakerbox.circuit_breaker.breaker import CircuitBreaker
from breakerbox.circuit_breaker.config import CircuitBreakerConfig
from breakerbox.circuit_breaker.notifier import CircuitNotifier
from breakerbox.circuit_breaker.storage import (
    AbstractCircuitStore,
    InMemoryCircuitStore,
)

T = TypeVar("T")


def options_fingerprint(config: CircuitBreakerConfig) -> str:
    """Return a stable hash of a configuration.

    Providers hash by identity, so two configs built from the same callable
    share a fingerprint.
    """
    parts: Mapping[str, object] = {
        "sleep_window": config.sleep_window,
        "volume_threshold": config.volume_threshold,
        "error_threshold": config.error_threshold,
        "timeout_seconds": config.timeout_seconds,
        "time_window": config.time_window,
        "exceptions": config.exceptions,
    }
    rendered = ";".join(f"{name}={_render(value)}" for name, value in parts.items())
    return hashlib.sha1(rendered.encode("utf-8")).hexdigest()


def _render(value: object) -> str:
    if isinstance(value, tuple):
        return ",".join(_render(item) for item in value)
    if isinstance(value, type):
        return f"{value.__module__}.{value.__qualname__}"
    if callable(value):
        return f"callable@{id(value):x}"
    return repr(value)


class CircuitRegistry:
    """Hand out one breaker per service and configuration.

    Breakers created by the registry share the registry's stores and notifier,
    so state is shared between every caller going through the same registry.
    """

    def __init__(
        self,
        *,
        circuit_store: AbstractCircuitStore | None = None,
        stat_store: AbstractCircuitStore | None = None,
        notifier: CircuitNotifier | None = None,
    ) -> None:
        self.circuit_store = (
            InMemoryCircuitStore() if circuit_store is None else circuit_store
        )
        self.stat_store = self.circuit_store if stat_store is None else stat_store
        self.notifier = notifier
        self._breakers: dict[tuple[str, str], CircuitBreaker] = {}
        self._lock = threading.Lock()

    def get(
        self,
        service: str,
        config: CircuitBreakerConfig | None = None,
    ) -> CircuitBreaker:
        """Return the cached breaker for ``service``, creating it if needed."""
        resolved = CircuitBreakerConfig() if config is None else config
        cache_key = (service, options_fingerprint(resolved))
        with self._lock:
            breaker = self._breakers.get(cache_key)
            if breaker is None:
                breaker = CircuitBreaker(
                    service,
                    config=resolved,
                    circuit_store=self.circuit_store,
                    stat_store=self.stat_store,
                    notifier=self.notifier,
                )
                self._breakers[cache_key] = breaker
            return breaker

    async def guard(
        self,
        service: str,
        func: Callable[[], Awaitable[T]],
        *,
        config: CircuitBreakerConfig | None = None,
        partition: str | None = None,
        timeout_seconds: float | None = None,
    ) -> T | None:
        """Run ``func`` through the cached breaker, returning None on breaker errors."""
        breaker = self.get(service, config)
        return await breaker.guard_or_none(
            func, partition=partition, timeout_seconds=timeout_seconds
        )

    def reset(self) -> None:
        """Forget every cached breaker. Stored state is left untouched."""
        with self._lock:
            self._breakers.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._breakers)
