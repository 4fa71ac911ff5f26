"""Circuit breaker state primitives."""

from dataclasses import dataclass
from enum import StrEnum


class CircuitState(StrEnum):
    """Effective circuit state for one evaluation."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitEvent(StrEnum):
    """Events counted by the breaker and forwarded to notifiers."""

    OPEN = "open"
    CLOSE = "close"
    SUCCESS = "success"
    FAILURE = "failure"


class CircuitFlag(StrEnum):
    """State flags persisted in the circuit store."""

    ASLEEP = "asleep"
    HALF_OPEN = "half_open"
    WAS_OPEN = "was_open"


@dataclass(frozen=True)
class StatsBucket:
    """Event counts for one reporting bucket.

    Attributes:
        time: Epoch seconds at the start of the bucket.
        success: Successful calls recorded in the bucket.
        failure: Failed calls recorded in the bucket.
        open: Trips recorded in the bucket.
    """

    time: int
    success: int = 0
    failure: int = 0
    open: int = 0
