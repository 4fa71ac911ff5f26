"""Time-bucketed event counters and error-rate computation."""

import time
from collections.abc import Callable

from breakerbox.circuit_breaker.config import CircuitBreakerConfig
from breakerbox.circuit_breaker.keys import CircuitKeys, align_time
from breakerbox.circuit_breaker.state import CircuitEvent, StatsBucket
from breakerbox.circuit_breaker.storage import AbstractCircuitStore

REPORT_RESOLUTION_SECONDS = 60
REPORT_SPAN_SECONDS = 48 * 60 * 60
REPORT_BUCKET_COUNT = REPORT_SPAN_SECONDS // REPORT_RESOLUTION_SECONDS

_REPORTED_EVENTS = (CircuitEvent.SUCCESS, CircuitEvent.FAILURE, CircuitEvent.OPEN)


def calculate_error_rate(failures: int, successes: int) -> float:
    """Return the failure percentage, or ``0.0`` when nothing was observed."""
    total = failures + successes
    if total <= 0:
        return 0.0
    return failures / total * 100


def _as_count(value: object | None) -> int:
    if value is None:
        return 0
    return int(value)  # type: ignore[call-overload]


class CircuitStats:
    """Record and read counters for one ``(service, partition)`` scope.

    Trip decisions read ``window`` counters from ``circuit_store`` bucketed on
    the configured ``time_window``. Reporting ``stats`` counters go to
    ``stat_store`` (the circuit store unless given) on fixed 60-second
    buckets, both with and without the partition segment. The two series use
    distinct key segments, so one store can hold both.
    """

    def __init__(
        self,
        keys: CircuitKeys,
        *,
        config: CircuitBreakerConfig,
        circuit_store: AbstractCircuitStore,
        stat_store: AbstractCircuitStore | None = None,
        now_fn: Callable[[], float] = time.time,
    ) -> None:
        self.keys = keys
        self._config = config
        self._circuit_store = circuit_store
        self._stat_store = circuit_store if stat_store is None else stat_store
        self._now_fn = now_fn

    def window_bucket(self, timestamp: float | None = None) -> int:
        """Return the ``time_window``-aligned bucket for ``timestamp``."""
        now = self._now_fn() if timestamp is None else timestamp
        return align_time(now, self._config.option_value("time_window"))

    def _counter_key(self, event: CircuitEvent) -> str:
        return self.keys.window_key(event, self.window_bucket())

    async def record_event(self, event: CircuitEvent) -> None:
        """Increment the decision counter and both reporting counters."""
        await self._circuit_store.increment(self._counter_key(event))

        report_bucket = align_time(self._now_fn(), REPORT_RESOLUTION_SECONDS)
        await self._stat_store.increment(self.keys.stat_key(event, report_bucket))
        if self.keys.partition:
            await self._stat_store.increment(
                self.keys.stat_key(event, report_bucket, without_partition=True)
            )

    async def failure_count(self) -> int:
        return _as_count(
            await self._circuit_store.read(self._counter_key(CircuitEvent.FAILURE))
        )

    async def success_count(self) -> int:
        return _as_count(
            await self._circuit_store.read(self._counter_key(CircuitEvent.SUCCESS))
        )

    async def error_rate(
        self,
        failures: int | None = None,
        successes: int | None = None,
    ) -> float:
        """Return the error rate, reading any count that is not supplied."""
        if failures is None:
            failures = await self.failure_count()
        if successes is None:
            successes = await self.success_count()
        return calculate_error_rate(failures, successes)

    async def report(self) -> list[StatsBucket]:
        """Return 60-second buckets covering the trailing 48 hours.

        The list is ordered oldest first, ends with the bucket holding "now"
        and always has ``REPORT_BUCKET_COUNT`` entries.
        """
        without_partition = not self.keys.partition
        end = align_time(self._now_fn(), REPORT_RESOLUTION_SECONDS)
        start = end - (REPORT_BUCKET_COUNT - 1) * REPORT_RESOLUTION_SECONDS

        buckets: list[StatsBucket] = []
        for bucket in range(start, end + 1, REPORT_RESOLUTION_SECONDS):
            counts: dict[str, int] = {}
            for event in _REPORTED_EVENTS:
                key = self.keys.stat_key(
                    event, bucket, without_partition=without_partition
                )
                counts[event.value] = _as_count(await self._stat_store.read(key))
            buckets.append(StatsBucket(time=bucket, **counts))
        return buckets
