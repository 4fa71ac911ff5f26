"""Observability hooks for circuit breakers."""

import logging
from typing import Protocol

import structlog

from breakerbox.circuit_breaker.state import CircuitEvent
from breakerbox.logging import StructuredLogger, log_info, log_warning


class CircuitNotifier(Protocol):
    """Sink for circuit events, configuration warnings and gauges.

    Notes:
        ``circuit`` is the ``service:partition`` label of the emitting breaker.
    """

    def notify(self, circuit: str, event: CircuitEvent) -> None:
        """Handle an open, close, success or failure event."""

    def notify_warning(self, circuit: str, message: str) -> None:
        """Handle a non-fatal configuration warning."""

    def metric_gauge(self, circuit: str, gauge: str, value: float) -> None:
        """Handle a gauge sample such as ``error_rate``."""


class NullNotifier:
    """Notifier that discards everything."""

    def notify(self, circuit: str, event: CircuitEvent) -> None:
        return

    def notify_warning(self, circuit: str, message: str) -> None:
        return

    def metric_gauge(self, circuit: str, gauge: str, value: float) -> None:
        return


class LoggingNotifier:
    """Notifier that emits structured log events.

    Events are named ``circuit_<event>``, ``circuit_warning`` and
    ``circuit_gauge`` and carry the circuit label as a field.
    """

    def __init__(
        self, logger: StructuredLogger | logging.Logger | None = None
    ) -> None:
        self._logger: StructuredLogger | logging.Logger = (
            structlog.stdlib.get_logger(__name__) if logger is None else logger
        )

    def notify(self, circuit: str, event: CircuitEvent) -> None:
        log_info(self._logger, f"circuit_{event}", circuit=circuit)

    def notify_warning(self, circuit: str, message: str) -> None:
        log_warning(
            self._logger, "circuit_warning", circuit=circuit, detail=message
        )

    def metric_gauge(self, circuit: str, gauge: str, value: float) -> None:
        log_info(
            self._logger,
            "circuit_gauge",
            circuit=circuit,
            gauge=gauge,
            value=value,
        )
