"""Circuit breaker exceptions.

Callers can distinguish between:
  - A call being skipped because the circuit is open.
  - A call being attempted and failing with a matched exception.
"""


class CircuitBreakerError(Exception):
    """Base exception for the circuit breaker package."""


class OpenCircuitError(CircuitBreakerError):
    """Raised when a call is skipped because the circuit is open.

    Attributes:
        service: Name of the service whose circuit rejected the call.
    """

    def __init__(self, service: str) -> None:
        self.service = service
        super().__init__(f"circuit_open: {service}")


class ServiceFailureError(CircuitBreakerError):
    """Raised when a guarded call fails with a matched exception.

    Attributes:
        service: Name of the service whose call failed.
        cause: Original exception raised by the guarded call.
    """

    def __init__(self, service: str, cause: BaseException) -> None:
        """Initialize a service-failure exception payload.

        Args:
            service: Service whose guarded call failed.
            cause: Exception raised by the guarded call.
        """
        self.service = service
        self.cause = cause
        super().__init__(
            f"service_failure: {service} cause={cause.__class__.__name__}: {cause}"
        )
