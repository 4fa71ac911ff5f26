"""Circuit breaker configuration and option resolution."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal, TypeVar

T = TypeVar("T")

Option = T | Callable[[], T]
FailureMatcher = type[BaseException] | Callable[[BaseException], bool]
OptionName = Literal[
    "sleep_window",
    "volume_threshold",
    "error_threshold",
    "timeout_seconds",
    "time_window",
]

DEFAULT_SLEEP_WINDOW = 300.0
DEFAULT_VOLUME_THRESHOLD = 5
DEFAULT_ERROR_THRESHOLD = 50.0
DEFAULT_TIMEOUT_SECONDS = 1.0
DEFAULT_TIME_WINDOW = 60.0
DEFAULT_EXCEPTIONS: tuple[FailureMatcher, ...] = (TimeoutError,)


def resolve_option(value: Option[T]) -> T:
    """Return a literal option value or call a zero-argument provider."""
    if callable(value):
        return value()
    return value


def matches_failure(
    matchers: tuple[FailureMatcher, ...],
    exc: BaseException,
) -> bool:
    """Return True when ``exc`` is classified as a failure by any matcher.

    Exception classes match by ``isinstance``; other callables are treated as
    predicates receiving the exception.
    """
    for matcher in matchers:
        if isinstance(matcher, type):
            if isinstance(exc, matcher):
                return True
        elif matcher(exc):
            return True
    return False


@dataclass(slots=True)
class CircuitBreakerConfig:
    """Circuit breaker configuration values.

    Numeric options accept either a literal or a zero-argument callable that
    is evaluated every time the option is read.

    Attributes:
        sleep_window: Seconds a tripped circuit stays open before a trial.
        volume_threshold: Calls that must be observed before the error rate
            is evaluated.
        error_threshold: Failure percentage needed to trip the circuit.
        timeout_seconds: Seconds a guarded call may take when timeouts are
            matched failures.
        time_window: Seconds per counting bucket; also the lower bound of
            ``sleep_window``.
        exceptions: Exception classes or predicates classifying failures. An
            empty tuple falls back to timeouts only.
    """

    sleep_window: Option[float] = DEFAULT_SLEEP_WINDOW
    volume_threshold: Option[int] = DEFAULT_VOLUME_THRESHOLD
    error_threshold: Option[float] = DEFAULT_ERROR_THRESHOLD
    timeout_seconds: Option[float] = DEFAULT_TIMEOUT_SECONDS
    time_window: Option[float] = DEFAULT_TIME_WINDOW
    exceptions: tuple[FailureMatcher, ...] = DEFAULT_EXCEPTIONS

    def __post_init__(self) -> None:
        if not self.exceptions:
            self.exceptions = DEFAULT_EXCEPTIONS
        else:
            self.exceptions = tuple(self.exceptions)

        # Providers are only checked when read.
        if _is_literal(self.sleep_window) and self.sleep_window < 0:
            raise ValueError("sleep_window must be >= 0")
        if _is_literal(self.volume_threshold) and self.volume_threshold < 0:
            raise ValueError("volume_threshold must be >= 0")
        if _is_literal(self.error_threshold) and not (
            0 <= self.error_threshold <= 100
        ):
            raise ValueError("error_threshold must be between 0 and 100")
        if _is_literal(self.timeout_seconds) and self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        if _is_literal(self.time_window) and self.time_window <= 0:
            raise ValueError("time_window must be > 0")

    def option_value(self, name: OptionName) -> float:
        """Resolve one numeric option at the point of use."""
        return resolve_option(getattr(self, name))

    @property
    def matches_timeouts(self) -> bool:
        """Return True when timeouts of the guarded call count as failures.

        A timeout is raised as a plain ``TimeoutError``, so bounding is on
        whenever some matcher accepts one: ``TimeoutError`` itself, one of its
        base classes, or a predicate. A matcher for a ``TimeoutError``
        subclass only classifies errors raised by the guarded work.
        """
        return matches_failure(self.exceptions, TimeoutError())


def _is_literal(value: object) -> bool:
    return not callable(value)
