"""Core circuit breaker implementation."""

import asyncio
import dataclasses
import time
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import TypeVar

import structlog

from breakerbox.circuit_breaker.config import (
    CircuitBreakerConfig,
    OptionName,
    matches_failure,
)
from breakerbox.circuit_breaker.exceptions import (
    CircuitBreakerError,
    OpenCircuitError,
    ServiceFailureError,
)
from breakerbox.circuit_breaker.keys import CircuitKeys
from breakerbox.circuit_breaker.notifier import CircuitNotifier, NullNotifier
from breakerbox.circuit_breaker.state import (
    CircuitEvent,
    CircuitFlag,
    CircuitState,
    StatsBucket,
)
from breakerbox.circuit_breaker.stats import CircuitStats, calculate_error_rate
from breakerbox.circuit_breaker.storage import (
    AbstractCircuitStore,
    InMemoryCircuitStore,
)
from breakerbox.logging import (
    StructuredLogger,
    circuit_log_context,
    log_debug,
    log_exception,
)

T = TypeVar("T")


def _consume_task_outcome(task: asyncio.Future[object]) -> None:
    # Abandoned work may finish after the caller gave up waiting.
    with suppress(asyncio.CancelledError, Exception):
        task.exception()


class CircuitBreaker:
    """Guard calls to one service using state shared through a store.

    The breaker keeps no state of its own between calls: every evaluation
    re-reads flags and counters from ``circuit_store``, so instances in other
    threads or processes pointed at the same store cooperate.
    """

    def __init__(
        self,
        service: str,
        *,
        config: CircuitBreakerConfig | None = None,
        partition: str | None = None,
        circuit_store: AbstractCircuitStore | None = None,
        stat_store: AbstractCircuitStore | None = None,
        notifier: CircuitNotifier | None = None,
        logger: StructuredLogger | None = None,
        now_fn: Callable[[], float] = time.time,
    ) -> None:
        """Build a circuit breaker with optional custom dependencies.

        Args:
            service: Service name used for storage keys and notifications.
            config: Breaker behavior configuration. Defaults to
                ``CircuitBreakerConfig()``.
            partition: Default partition for calls that do not pass one.
            circuit_store: Store holding state flags and decision counters.
                Defaults to a process-local in-memory store.
            stat_store: Store holding reporting counters. Defaults to
                ``circuit_store``.
            notifier: Event sink. Defaults to ``NullNotifier``.
            logger: Structured logger for debug events.
            now_fn: Clock returning epoch seconds.
        """
        self.service = service
        self.partition = partition
        self.config = CircuitBreakerConfig() if config is None else config
        self.circuit_store = (
            InMemoryCircuitStore(now_fn=now_fn)
            if circuit_store is None
            else circuit_store
        )
        self.stat_store = self.circuit_store if stat_store is None else stat_store
        self.notifier: CircuitNotifier = (
            NullNotifier() if notifier is None else notifier
        )
        self._logger: StructuredLogger = (
            structlog.stdlib.get_logger(__name__) if logger is None else logger
        )
        self._now_fn = now_fn
        self._sanitize_options()

    def option_value(self, name: OptionName) -> float:
        """Return the current value of a numeric option."""
        return self.config.option_value(name)

    def _sanitize_options(self) -> None:
        sleep_window = self.option_value("sleep_window")
        time_window = self.option_value("time_window")
        if sleep_window >= time_window:
            return
        self._emit_warning(
            CircuitKeys(self.service, self.partition),
            f"sleep_window:{sleep_window:g} is shorter than "
            f"time_window:{time_window:g}, the error_rate could not be reset "
            "properly after a sleep. sleep_window has been set to equal "
            "time_window.",
        )
        self.config = dataclasses.replace(
            self.config, sleep_window=self.config.time_window
        )

    def _stats_for(self, partition: str | None) -> CircuitStats:
        return self._stats_for_keys(
            CircuitKeys(
                self.service,
                self.partition if partition is None else partition,
            )
        )

    def _stats_for_keys(self, keys: CircuitKeys) -> CircuitStats:
        return CircuitStats(
            keys,
            config=self.config,
            circuit_store=self.circuit_store,
            stat_store=self.stat_store,
            now_fn=self._now_fn,
        )

    def _emit_event(self, keys: CircuitKeys, event: CircuitEvent) -> None:
        try:
            self.notifier.notify(keys.circuit_name, event)
        except Exception:
            log_exception(
                self._logger, "circuit.notifier_failed", service=self.service
            )

    def _emit_warning(self, keys: CircuitKeys, message: str) -> None:
        try:
            self.notifier.notify_warning(keys.circuit_name, message)
        except Exception:
            log_exception(
                self._logger, "circuit.notifier_failed", service=self.service
            )

    def _emit_gauges(
        self,
        keys: CircuitKeys,
        error_rate: float,
        failures: int,
        successes: int,
    ) -> None:
        gauges = (
            ("error_rate", error_rate),
            ("failure_count", failures),
            ("success_count", successes),
        )
        for gauge, value in gauges:
            try:
                self.notifier.metric_gauge(keys.circuit_name, gauge, value)
            except Exception:
                log_exception(
                    self._logger, "circuit.notifier_failed", service=self.service
                )

    async def _flag_set(self, keys: CircuitKeys, flag: CircuitFlag) -> bool:
        return bool(await self.circuit_store.read(keys.storage_key(flag)))

    async def _passed_thresholds(self, stats: CircuitStats) -> bool:
        failures = await stats.failure_count()
        successes = await stats.success_count()
        if failures + successes <= self.option_value("volume_threshold"):
            return False
        rate = calculate_error_rate(failures, successes)
        self._emit_gauges(stats.keys, rate, failures, successes)
        return rate >= self.option_value("error_threshold")

    async def _record(self, stats: CircuitStats, event: CircuitEvent) -> None:
        self._emit_event(stats.keys, event)
        await stats.record_event(event)

    async def _open(self, stats: CircuitStats) -> None:
        keys = stats.keys
        await self._record(stats, CircuitEvent.OPEN)
        log_debug(self._logger, "circuit.opening", service=self.service)
        await self.circuit_store.write(
            keys.storage_key(CircuitFlag.ASLEEP),
            True,
            ttl=self.option_value("sleep_window"),
        )
        await self.circuit_store.write(keys.storage_key(CircuitFlag.HALF_OPEN), True)
        await self.circuit_store.write(keys.storage_key(CircuitFlag.WAS_OPEN), True)

    async def _close(self, stats: CircuitStats) -> None:
        await self._record(stats, CircuitEvent.CLOSE)
        await self.circuit_store.delete(stats.keys.storage_key(CircuitFlag.WAS_OPEN))

    async def _execute(
        self,
        func: Callable[[], Awaitable[T]],
        timeout_seconds: float | None,
    ) -> T:
        if not self.config.matches_timeouts:
            return await func()
        if timeout_seconds is None:
            timeout_seconds = self.option_value("timeout_seconds")
        task = asyncio.ensure_future(func())
        task.add_done_callback(_consume_task_outcome)
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout_seconds)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if not done:
            # Stop waiting; work that ignores cancellation keeps running.
            task.cancel()
            raise TimeoutError(f"guarded call exceeded {timeout_seconds:g}s")
        return task.result()

    async def guard(
        self,
        func: Callable[[], Awaitable[T]],
        *,
        partition: str | None = None,
        timeout_seconds: float | None = None,
    ) -> T:
        """Invoke an async callable under circuit breaker protection.

        Args:
            func: Zero-argument async callable doing the guarded work.
            partition: Partition overriding the breaker default for this call.
            timeout_seconds: Timeout overriding the configured one for this
                call. Only applied when timeouts are matched failures.

        Returns:
            The result of ``func`` when allowed and successful.

        Raises:
            OpenCircuitError: When the circuit is open. ``func`` is not called.
            ServiceFailureError: When ``func`` fails with a matched exception
                (including a timeout). The original exception is chained.
            Exception: Any unmatched exception from ``func``, unchanged.
        """
        stats = self._stats_for(partition)
        keys = stats.keys
        with circuit_log_context(self.service, keys.partition):
            asleep = await self._flag_set(keys, CircuitFlag.ASLEEP)
            if asleep or await self._passed_thresholds(stats):
                log_debug(self._logger, "circuit.skipped", service=self.service)
                if not asleep:
                    await self._open(stats)
                raise OpenCircuitError(self.service)

            if await self._flag_set(keys, CircuitFlag.WAS_OPEN):
                await self._close(stats)
            log_debug(self._logger, "circuit.querying", service=self.service)

            try:
                result = await self._execute(func, timeout_seconds)
            except Exception as exc:
                if not matches_failure(self.config.exceptions, exc):
                    raise
                log_debug(
                    self._logger,
                    "circuit.failure",
                    service=self.service,
                    error=exc.__class__.__name__,
                )
                await self._record(stats, CircuitEvent.FAILURE)
                if await self._flag_set(keys, CircuitFlag.HALF_OPEN):
                    await self._open(stats)
                raise ServiceFailureError(self.service, exc) from exc

            log_debug(self._logger, "circuit.success", service=self.service)
            await self._record(stats, CircuitEvent.SUCCESS)
            await self.circuit_store.delete(keys.storage_key(CircuitFlag.HALF_OPEN))
            return result

    async def guard_or_none(
        self,
        func: Callable[[], Awaitable[T]],
        *,
        partition: str | None = None,
        timeout_seconds: float | None = None,
    ) -> T | None:
        """Like ``guard`` but return ``None`` instead of raising breaker errors.

        Unmatched exceptions from ``func`` and store errors still propagate.
        """
        try:
            return await self.guard(
                func, partition=partition, timeout_seconds=timeout_seconds
            )
        except CircuitBreakerError:
            return None

    async def is_open(self, partition: str | None = None) -> bool:
        """Return True when the next call would be skipped."""
        stats = self._stats_for(partition)
        if await self._flag_set(stats.keys, CircuitFlag.ASLEEP):
            return True
        return await self._passed_thresholds(stats)

    async def state(self, partition: str | None = None) -> CircuitState:
        """Return the effective state for the next evaluation."""
        stats = self._stats_for(partition)
        if await self.is_open(partition):
            return CircuitState.OPEN
        if await self._flag_set(stats.keys, CircuitFlag.HALF_OPEN):
            return CircuitState.HALF_OPEN
        return CircuitState.CLOSED

    async def try_close_next_time(self, partition: str | None = None) -> None:
        """Drop the sleep flag so the next call skips the rest of the cooldown."""
        keys = self._stats_for(partition).keys
        await self.circuit_store.delete(keys.storage_key(CircuitFlag.ASLEEP))

    async def failure_count(self, partition: str | None = None) -> int:
        return await self._stats_for(partition).failure_count()

    async def success_count(self, partition: str | None = None) -> int:
        return await self._stats_for(partition).success_count()

    async def error_rate(
        self,
        failures: int | None = None,
        successes: int | None = None,
        *,
        partition: str | None = None,
    ) -> float:
        return await self._stats_for(partition).error_rate(failures, successes)

    async def stats(self, partition: str | None = None) -> list[StatsBucket]:
        """Return per-minute event counts for the trailing 48 hours.

        Without a partition the aggregate counters across partitions are read,
        even when the breaker was built with a default partition.
        """
        keys = CircuitKeys(self.service, partition)
        return await self._stats_for_keys(keys).report()
