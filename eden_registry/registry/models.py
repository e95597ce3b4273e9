"""
Registry resource and result types using Pydantic models.

Resource models accept unknown fields so upstream additions pass through.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class RegistryModel(BaseModel):
    """Base for resources returned by the Registry."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Agent(RegistryModel):
    """Agent record."""

    id: str | None = None
    handle: str | None = None
    name: str | None = None
    display_name: str | None = Field(default=None, alias="displayName")
    status: str | None = None
    cohort: str | None = None
    trainer: Any = None
    pfp_url: str | None = Field(default=None, alias="pfpUrl")
    cover_url: str | None = Field(default=None, alias="coverUrl")
    token_address: str | None = Field(default=None, alias="tokenAddress")
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")


class AgentProfile(RegistryModel):
    """Agent profile (statement, links)."""

    agent_id: str = Field(alias="agentId")
    statement: str | None = None
    links: dict[str, Any] = Field(default_factory=dict)


class Persona(RegistryModel):
    id: str | None = None
    name: str | None = None
    prompt: str | None = None
    version: str | None = None


class Artifact(RegistryModel):
    id: str | None = None
    kind: str | None = None
    uri: str | None = None


class Creation(RegistryModel):
    """Work published by an agent."""

    id: str | None = None
    title: str | None = None
    media_uri: str | None = Field(default=None, alias="mediaUri")
    status: str | None = None
    created_at: str | None = Field(default=None, alias="createdAt")


class CreationInput(BaseModel):
    """Body for publishing a creation."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    media_uri: str = Field(alias="mediaUri")
    status: Literal["draft", "published", "archived"] = "draft"
    metadata: dict[str, Any] = Field(default_factory=dict)


class DashboardProgress(RegistryModel):
    agent_id: str | None = Field(default=None, alias="agentId")
    handle: str | None = None
    progress: float | None = None


class ExperimentalApplication(RegistryModel):
    """Application form submission (trainer applications and the like)."""

    id: str | None = None
    application_type: str | None = Field(default=None, alias="applicationType")
    applicant: dict[str, Any] = Field(default_factory=dict)
    payload: dict[str, Any] = Field(default_factory=dict)
    status: str | None = None


class AuthUser(RegistryModel):
    id: str
    email: str | None = None
    wallet_address: str | None = Field(default=None, alias="walletAddress")
    role: str | None = None


class FetchOutcome(str, Enum):
    """How a fallback-aware fetch ended."""

    OK = "ok"
    DISABLED = "disabled"  # master switch off
    UNHEALTHY = "unhealthy"  # circuit open, no request made
    EMPTY = "empty"  # healthy backend returned nothing, possibly degraded
    ERROR = "error"  # request attempted and failed


class FallbackResult(BaseModel):
    """Agents plus enough context for the caller to pick the right UI state."""

    agents: list[Agent] = Field(default_factory=list)
    is_from_registry: bool = False
    outcome: FetchOutcome = FetchOutcome.OK
    error: str | None = None

    @property
    def is_degraded(self) -> bool:
        return self.outcome == FetchOutcome.EMPTY

    @property
    def is_unavailable(self) -> bool:
        return self.outcome in (
            FetchOutcome.DISABLED,
            FetchOutcome.UNHEALTHY,
            FetchOutcome.ERROR,
        )


class IsrResult(BaseModel):
    """Items plus the number of seconds until they should be refreshed."""

    items: list[Agent] = Field(default_factory=list)
    revalidate_after_seconds: int


class HealthStatus(BaseModel):
    is_enabled: bool
    is_healthy: bool
    last_check: str | None = None
    next_check: str | None = None


@dataclass
class RegistryResult(Generic[T]):
    """Result from a resource accessor."""

    data: T
    outcome: FetchOutcome = FetchOutcome.OK
    error: str | None = None
    attempts: int = 0
    trace_id: str | None = None

    @property
    def is_from_registry(self) -> bool:
        return self.outcome in (FetchOutcome.OK, FetchOutcome.EMPTY)

    @property
    def is_degraded(self) -> bool:
        """Circuit open or suspiciously empty; not an error, but not normal either."""
        return self.outcome in (FetchOutcome.UNHEALTHY, FetchOutcome.EMPTY)
