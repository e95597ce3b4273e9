"""
Eden Genesis Registry accessors.
"""

from eden_registry.registry.auth import (
    ROLE_HIERARCHY,
    AuthAttempt,
    RegistryAuth,
    TokenValidation,
    has_permission,
)
from eden_registry.registry.client import RegistryClient, RequestPhase
from eden_registry.registry.models import (
    Agent,
    AgentProfile,
    Artifact,
    AuthUser,
    Creation,
    CreationInput,
    DashboardProgress,
    ExperimentalApplication,
    FallbackResult,
    FetchOutcome,
    HealthStatus,
    IsrResult,
    Persona,
    RegistryResult,
)

__all__ = [
    # Client
    "RegistryClient",
    "RequestPhase",
    # Auth
    "RegistryAuth",
    "AuthAttempt",
    "TokenValidation",
    "ROLE_HIERARCHY",
    "has_permission",
    # Models
    "Agent",
    "AgentProfile",
    "Artifact",
    "AuthUser",
    "Creation",
    "CreationInput",
    "DashboardProgress",
    "ExperimentalApplication",
    "Persona",
    # Results
    "FallbackResult",
    "FetchOutcome",
    "HealthStatus",
    "IsrResult",
    "RegistryResult",
]
