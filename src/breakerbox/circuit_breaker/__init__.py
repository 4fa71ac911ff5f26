"""Store-backed circuit breaker shared across processes.

Key behavior notes:
  - All state lives in an external key-value store. Breakers keep nothing
    between calls and take no locks, so any number of instances pointed at the
    same store act as one circuit.
  - ``asleep`` (with a TTL of ``sleep_window``) forces calls to be skipped.
    ``half_open`` outlives it and marks the next call as a trial: a failed
    trial trips the circuit again without waiting for ``volume_threshold``.
  - Trip decisions read success/failure counters bucketed on ``time_window``.
    Reporting counters use fixed 60-second buckets over the last 48 hours.
  - Exceptions that are not matched failures pass through untouched and are
    not counted.
"""

from breakerbox.circuit_breaker.breaker import CircuitBreaker
from breakerbox.circuit_breaker.config import (
    CircuitBreakerConfig,
    FailureMatcher,
    Option,
    matches_failure,
    resolve_option,
)
from breakerbox.circuit_breaker.exceptions import (
    CircuitBreakerError,
    OpenCircuitError,
    ServiceFailureError,
)
from breakerbox.circuit_breaker.keys import CircuitKeys, align_time
from breakerbox.circuit_breaker.notifier import (
    CircuitNotifier,
    LoggingNotifier,
    NullNotifier,
)
from breakerbox.circuit_breaker.registry import CircuitRegistry
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

__all__ = [
    "AbstractCircuitStore",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitEvent",
    "CircuitFlag",
    "CircuitKeys",
    "CircuitNotifier",
    "CircuitRegistry",
    "CircuitState",
    "CircuitStats",
    "FailureMatcher",
    "InMemoryCircuitStore",
    "LoggingNotifier",
    "NullNotifier",
    "OpenCircuitError",
    "Option",
    "ServiceFailureError",
    "StatsBucket",
    "align_time",
    "calculate_error_rate",
    "matches_failure",
    "resolve_option",
]
