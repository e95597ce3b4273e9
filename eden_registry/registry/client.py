"""
RegistryClient - typed accessors for the Eden Genesis Registry.

Each accessor runs the same pipeline:

    NotStarted -> HealthChecking -> {HealthRejected | Attempting}
    Attempting -> {Succeeded | Retrying -> Attempting | Exhausted}

HealthRejected comes back as a degraded RegistryResult, never as an
exception. Exhausted re-raises the last transport error. A disabled
master switch raises ConfigurationError before any I/O.
"""

import asyncio
import uuid
from collections.abc import Mapping
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from eden_registry.registry.models import (
    Agent,
    AgentProfile,
    Artifact,
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
from eden_registry.services.errors import (
    CircuitOpenError,
    ConfigurationError,
    ServiceError,
)
from eden_registry.services.health import HealthMonitor
from eden_registry.services.normalizer import (
    ShapePredicate,
    has_agent_id,
    has_id,
    has_id_or_handle,
    is_list,
    is_object,
    normalize,
)
from eden_registry.services.retry import SleepFn, with_retries
from eden_registry.services.transport import (
    RegistryTransport,
    RequestContext,
    generate_trace_id,
)
from eden_registry.settings import Settings

M = TypeVar("M", bound=BaseModel)

DISABLED_MESSAGE = "Registry is not enabled. Set USE_REGISTRY=true"
UNHEALTHY_MESSAGE = "Registry is currently unhealthy - skipping to save time"
EMPTY_MESSAGE = "Registry returned empty results - service may be degraded"


class RequestPhase(str, Enum):
    """Lifecycle of a single logical request."""

    NOT_STARTED = "NotStarted"
    HEALTH_CHECKING = "HealthChecking"
    HEALTH_REJECTED = "HealthRejected"
    ATTEMPTING = "Attempting"
    RETRYING = "Retrying"
    SUCCEEDED = "Succeeded"
    EXHAUSTED = "Exhausted"


class RegistryClient:
    """
    Resilient Registry client.

    Usage:
        async with RegistryClient(load_settings()) as client:
            result = await client.get_agents(cohort="genesis")
            if result.is_degraded:
                ...
            for agent in result.data:
                ...
    """

    SERVICE_ID = "registry"

    def __init__(
        self,
        settings: Settings,
        transport: RegistryTransport | None = None,
        health: HealthMonitor | None = None,
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings
        self._base_url = settings.registry_base_url.rstrip("/")
        self._sleep = sleep
        self.transport = transport or RegistryTransport(
            api_key=settings.registry_api_key,
            client_id=settings.registry_client_id,
        )
        self.health = health or HealthMonitor(
            self.SERVICE_ID,
            check=self._check_health,
            cooldown=timedelta(milliseconds=settings.health_cooldown_ms),
            clock=clock,
        )

    # Core pipeline

    def is_enabled(self) -> bool:
        return self.settings.use_registry

    def _require_enabled(self) -> None:
        if not self.settings.use_registry:
            raise ConfigurationError(DISABLED_MESSAGE, service_id=self.SERVICE_ID)

    async def _check_health(self) -> bool:
        return await self.transport.check_health(
            f"{self._base_url}/health",
            deadline_ms=self.settings.health_timeout_ms,
        )

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def _phase(self, label: str, phase: RequestPhase) -> None:
        logger.debug(f"[Registry] {label}: {phase.value}")

    async def request(
        self,
        path: str,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        json_data: Any = None,
        headers: dict[str, str] | None = None,
        expected: ShapePredicate | None = None,
        empty: Any = None,
    ) -> RegistryResult[Any]:
        """
        Run one logical request through health check, retries and normalization.

        Args:
            path: Path relative to the base URL
            method: HTTP method
            params: Query parameters (None values are dropped)
            json_data: JSON body for mutations
            headers: Extra request headers
            expected: Predicate the payload should satisfy
            empty: Data to return when the health check rejects the request

        Returns:
            RegistryResult with the normalized payload

        Raises:
            ConfigurationError: Master switch is off
            ServiceError: Final failure after retries
        """
        self._require_enabled()

        label = f"{method} /{path.lstrip('/')}"
        self._phase(label, RequestPhase.NOT_STARTED)

        self._phase(label, RequestPhase.HEALTH_CHECKING)
        if not await self.health.is_healthy():
            self._phase(label, RequestPhase.HEALTH_REJECTED)
            error = CircuitOpenError(
                self.SERVICE_ID, self.health.get_time_until_recheck() or 0
            )
            logger.warning(f"[Registry] {label} skipped: {error}")
            return RegistryResult(
                data=empty, outcome=FetchOutcome.UNHEALTHY, error=str(error)
            )

        url = self._url(path)
        query = {k: v for k, v in (params or {}).items() if v is not None}
        headers = dict(headers or {})
        if method != "GET":
            # Same key on every attempt so a retried mutation is applied once
            headers.setdefault("idempotency-key", str(uuid.uuid4()))

        max_attempts = self.settings.max_attempts
        last_context: list[RequestContext] = []

        async def attempt(number: int) -> Any:
            ctx = RequestContext(
                trace_id=generate_trace_id(),
                deadline_ms=self.settings.request_timeout_ms,
                retries_remaining=max_attempts - number,
            )
            last_context.append(ctx)
            self._phase(
                label,
                RequestPhase.ATTEMPTING if number == 1 else RequestPhase.RETRYING,
            )
            return await self.transport.fetch_once(
                url,
                method=method,
                params=query or None,
                json_data=json_data,
                headers=headers or None,
                context=ctx,
            )

        try:
            raw = await with_retries(
                attempt,
                max_attempts=max_attempts,
                base_delay_ms=self.settings.retry_delay_ms,
                sleep=self._sleep,
            )
        except ServiceError as e:
            self._phase(label, RequestPhase.EXHAUSTED)
            if e.retryable:
                self.health.record_result(False)
            trace = last_context[-1].trace_id if last_context else None
            logger.error(
                f"[Registry] {label} failed after {len(last_context)} attempt(s) "
                f"- trace: {trace}: {e}"
            )
            raise

        self._phase(label, RequestPhase.SUCCEEDED)
        self.health.record_result(True)
        return RegistryResult(
            data=normalize(raw, expected),
            attempts=len(last_context),
            trace_id=last_context[-1].trace_id,
        )

    # Typing helpers

    def _as_list(
        self, result: RegistryResult[Any], model: type[M]
    ) -> RegistryResult[list[M]]:
        if result.outcome == FetchOutcome.UNHEALTHY:
            result.data = []
            return result

        data = result.data
        if not isinstance(data, list):
            logger.warning(
                f"[Registry] Expected a list of {model.__name__}, "
                f"got {type(data).__name__}"
            )
            data = []

        items = []
        for raw in data:
            if not isinstance(raw, Mapping):
                continue
            try:
                items.append(model.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"[Registry] Skipping invalid {model.__name__}: {e}")
        result.data = items
        return result

    def _as_model(
        self, result: RegistryResult[Any], model: type[M]
    ) -> RegistryResult[M | None]:
        if result.outcome == FetchOutcome.UNHEALTHY:
            result.data = None
            return result

        if not isinstance(result.data, Mapping):
            raise ServiceError(
                f"Unexpected {model.__name__} payload: {type(result.data).__name__}",
                service_id=self.SERVICE_ID,
            )
        try:
            result.data = model.model_validate(result.data)
        except ValidationError as e:
            raise ServiceError(
                f"Invalid {model.__name__} payload: {e}", service_id=self.SERVICE_ID
            ) from e
        return result

    # Agent endpoints

    async def get_agents(
        self,
        cohort: str | None = None,
        status: str | None = None,
        include: list[str] | None = None,
    ) -> RegistryResult[list[Agent]]:
        """List agents, optionally filtered by cohort and status."""
        result = await self.request(
            "agents",
            params={
                "cohort": cohort,
                "status": status,
                "include": ",".join(include) if include else None,
            },
            expected=is_list,
            empty=[],
        )
        return self._as_list(result, Agent)

    async def get_agent(
        self, agent_id: str, include: list[str] | None = None
    ) -> RegistryResult[Agent | None]:
        """Get a single agent by id or handle."""
        result = await self.request(
            f"agents/{agent_id}",
            params={"include": ",".join(include) if include else None},
            expected=has_id_or_handle,
        )
        return self._as_model(result, Agent)

    async def get_agent_by_handle(self, handle: str) -> RegistryResult[Agent | None]:
        """Find an agent by handle from the full listing."""
        result = await self.get_agents()
        match = next((a for a in result.data if a.handle == handle), None)
        return RegistryResult(
            data=match,
            outcome=result.outcome,
            error=result.error,
            attempts=result.attempts,
            trace_id=result.trace_id,
        )

    async def get_agent_profile(
        self, agent_id: str
    ) -> RegistryResult[AgentProfile | None]:
        result = await self.request(
            f"agents/{agent_id}/profile", expected=has_agent_id
        )
        return self._as_model(result, AgentProfile)

    async def get_agent_personas(self, agent_id: str) -> RegistryResult[list[Persona]]:
        result = await self.request(
            f"agents/{agent_id}/personas", expected=is_list, empty=[]
        )
        return self._as_list(result, Persona)

    async def get_agent_artifacts(
        self, agent_id: str
    ) -> RegistryResult[list[Artifact]]:
        result = await self.request(
            f"agents/{agent_id}/artifacts", expected=is_list, empty=[]
        )
        return self._as_list(result, Artifact)

    async def get_agent_creations(
        self, agent_id: str, status: str | None = None
    ) -> RegistryResult[list[Creation]]:
        result = await self.request(
            f"agents/{agent_id}/creations",
            params={"status": status},
            expected=is_list,
            empty=[],
        )
        return self._as_list(result, Creation)

    async def post_creation(
        self, agent_id: str, creation: CreationInput
    ) -> RegistryResult[Creation | None]:
        """Publish a creation for an agent."""
        result = await self.request(
            f"agents/{agent_id}/creations",
            method="POST",
            json_data=creation.model_dump(by_alias=True),
            expected=has_id,
        )
        return self._as_model(result, Creation)

    async def get_dashboard_progress(
        self, cohort: str | None = None
    ) -> RegistryResult[list[DashboardProgress]]:
        result = await self.request(
            "dashboard/progress",
            params={"cohort": cohort},
            expected=is_list,
            empty=[],
        )
        return self._as_list(result, DashboardProgress)

    # Application endpoints

    async def submit_experimental_application(
        self, application: dict[str, Any]
    ) -> RegistryResult[Any]:
        """Submit an experimental application form (e.g. trainer applications)."""
        return await self.request(
            "applications/experimental",
            method="POST",
            json_data=application,
            expected=has_id,
        )

    async def submit_application_through_gateway(
        self, application: dict[str, Any]
    ) -> RegistryResult[Any]:
        """Submit an application through the gateway's routing endpoint."""
        return await self.request(
            "applications/gateway",
            method="POST",
            json_data=application,
            expected=has_id,
        )

    async def get_experimental_applications(
        self, include_experimental: bool = True
    ) -> RegistryResult[list[ExperimentalApplication]]:
        result = await self.request(
            "applications/experimental",
            params={"experimental": "true" if include_experimental else None},
            expected=is_list,
            empty=[],
        )
        return self._as_list(result, ExperimentalApplication)

    async def get_system_health(self) -> RegistryResult[Any]:
        """Detailed health report from the Registry's monitoring endpoint."""
        return await self.request("monitoring/health", expected=is_object)

    # Composite helpers

    async def get_agents_with_isr(
        self,
        cohort: str | None = None,
        status: str | None = None,
        include: list[str] | None = None,
    ) -> IsrResult:
        """Agents for incremental refresh; short revalidate window on failure."""
        failed = IsrResult(
            items=[],
            revalidate_after_seconds=self.settings.isr_failure_revalidate_seconds,
        )
        try:
            result = await self.get_agents(cohort, status, include)
        except ConfigurationError:
            raise
        except ServiceError as e:
            logger.error(f"Failed to fetch agents from Registry: {e}")
            return failed

        if result.outcome == FetchOutcome.UNHEALTHY:
            return failed
        return IsrResult(
            items=result.data,
            revalidate_after_seconds=self.settings.isr_revalidate_seconds,
        )

    async def get_agents_with_fallback_detection(
        self,
        cohort: str | None = None,
        status: str | None = None,
        include: list[str] | None = None,
    ) -> FallbackResult:
        """
        Fetch agents and say why the list might be empty.

        Distinguishes a disabled integration, an unhealthy backend, a healthy
        backend that returned nothing, and a failed request.
        """
        if not self.is_enabled():
            return FallbackResult(outcome=FetchOutcome.DISABLED, error=DISABLED_MESSAGE)

        if not await self.health.is_healthy():
            return FallbackResult(
                outcome=FetchOutcome.UNHEALTHY, error=UNHEALTHY_MESSAGE
            )

        try:
            result = await self.get_agents(cohort, status, include)
        except ServiceError as e:
            logger.error(f"[Registry] Failed to fetch agents: {e}")
            return FallbackResult(outcome=FetchOutcome.ERROR, error=str(e))

        if result.outcome == FetchOutcome.UNHEALTHY:
            return FallbackResult(
                outcome=FetchOutcome.UNHEALTHY, error=UNHEALTHY_MESSAGE
            )

        if not result.data:
            logger.warning(
                "[Registry] Empty result - may indicate Registry service issues"
            )
            return FallbackResult(
                is_from_registry=True, outcome=FetchOutcome.EMPTY, error=EMPTY_MESSAGE
            )

        return FallbackResult(agents=result.data, is_from_registry=True)

    # Health and status methods

    def get_health_status(self) -> HealthStatus:
        status = self.health.get_status()
        return HealthStatus(
            is_enabled=self.is_enabled(),
            is_healthy=status["is_healthy"],
            last_check=status["last_check"],
            next_check=status["next_check"],
        )

    def reset_health(self) -> None:
        """Manually clear the unhealthy state (operator recovery)."""
        self.health.reset()

    async def close(self) -> None:
        await self.transport.close()
        logger.debug("RegistryClient closed")

    async def __aenter__(self) -> "RegistryClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
