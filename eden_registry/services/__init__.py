"""
Service layer infrastructure - resilience patterns for Registry calls.

Provides:
- RegistryTransport: Timeout-bounded fetch with trace ids
- with_retries: Linear backoff retry for transient failures
- HealthMonitor: Health circuit breaker with cooldown window
- normalize: Response envelope normalization
- TokenCache: Expiring session token cache
"""

from eden_registry.services.errors import (
    AuthenticationError,
    CircuitOpenError,
    ClientError,
    ConfigurationError,
    HTTPStatusError,
    NetworkError,
    RequestTimeoutError,
    ServerError,
    ServiceError,
    ShapeMismatchWarning,
)
from eden_registry.services.health import HealthMonitor, HealthState, HealthVerdict
from eden_registry.services.normalizer import COLLECTION_KEYS, normalize
from eden_registry.services.retry import with_retries
from eden_registry.services.tokens import CachedToken, TokenCache, TokenCacheStats
from eden_registry.services.transport import (
    RegistryTransport,
    RequestContext,
    generate_trace_id,
)

__all__ = [
    # Errors
    "ServiceError",
    "ConfigurationError",
    "RequestTimeoutError",
    "NetworkError",
    "HTTPStatusError",
    "ServerError",
    "ClientError",
    "CircuitOpenError",
    "AuthenticationError",
    "ShapeMismatchWarning",
    # Transport
    "RegistryTransport",
    "RequestContext",
    "generate_trace_id",
    # Retry
    "with_retries",
    # Health
    "HealthMonitor",
    "HealthState",
    "HealthVerdict",
    # Normalizer
    "normalize",
    "COLLECTION_KEYS",
    # Tokens
    "CachedToken",
    "TokenCache",
    "TokenCacheStats",
]
