"""
Service layer exceptions.

`retryable` marks the failures the retry policy is allowed to re-issue:
timeouts, transport failures and 5xx responses.
"""


class ServiceError(Exception):
    """Base exception for service layer errors."""

    retryable = False

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class ConfigurationError(ServiceError):
    """Feature disabled or required configuration missing."""

    pass


class RequestTimeoutError(ServiceError):
    """Request deadline exceeded."""

    retryable = True

    def __init__(
        self,
        service_id: str,
        timeout: float,
        trace_id: str | None = None,
    ):
        self.timeout = timeout
        self.trace_id = trace_id
        super().__init__(
            f"Request to service '{service_id}' timed out after {timeout}s",
            service_id=service_id,
        )


class NetworkError(ServiceError):
    """Transport-level failure (DNS, connection refused, reset)."""

    retryable = True

    def __init__(
        self,
        message: str,
        service_id: str | None = None,
        trace_id: str | None = None,
    ):
        self.trace_id = trace_id
        super().__init__(message, service_id=service_id)


class HTTPStatusError(ServiceError):
    """Remote answered with a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        message: str,
        error: str | None = None,
        service_id: str | None = None,
        trace_id: str | None = None,
    ):
        self.status_code = status_code
        self.error = error
        self.trace_id = trace_id
        super().__init__(message, service_id=service_id)


class ServerError(HTTPStatusError):
    """5xx response."""

    retryable = True


class ClientError(HTTPStatusError):
    """4xx response. Never retried."""

    pass


class CircuitOpenError(ServiceError):
    """Backend is known to be unhealthy, request skipped."""

    def __init__(self, service_id: str, reset_after_seconds: float):
        self.reset_after_seconds = reset_after_seconds
        super().__init__(
            f"Service '{service_id}' is currently unhealthy, "
            f"next health check in {reset_after_seconds:.1f}s",
            service_id=service_id,
        )


class AuthenticationError(ServiceError):
    """Token missing, expired or rejected."""

    pass


class ShapeMismatchWarning(UserWarning):
    """Response body matched none of the known envelope shapes."""

    pass
