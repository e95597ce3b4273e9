"""
HealthMonitor - health circuit breaker for a single backend.

States:
- HEALTHY: Requests pass through
- UNHEALTHY: Requests are skipped until the cooldown elapses
- UNKNOWN: Cooldown elapsed (or never checked), a check is required

Transitions:
- UNKNOWN → HEALTHY/UNHEALTHY: After a check
- HEALTHY/UNHEALTHY → UNKNOWN: When the cooldown window expires
- any → UNKNOWN: On manual reset

At most one check runs per cooldown window; concurrent callers wait for the
in-flight check and reuse its answer.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable

from loguru import logger


class HealthVerdict(str, Enum):
    """Health verdicts as seen by callers."""

    HEALTHY = "HEALTHY"
    UNHEALTHY = "UNHEALTHY"
    UNKNOWN = "UNKNOWN"


@dataclass
class HealthState:
    """Cached health signal."""

    is_healthy: bool = True
    last_checked_at: datetime | None = None
    cooldown: timedelta = timedelta(seconds=30)

    def is_fresh(self, now: datetime) -> bool:
        """Cached value is trusted only inside the cooldown window."""
        if self.last_checked_at is None:
            return False
        return now - self.last_checked_at < self.cooldown


class HealthMonitor:
    """
    Cached pass/fail health signal with a cooldown window.

    Usage:
        monitor = HealthMonitor("registry", check=lambda: transport.check_health(url))

        if not await monitor.is_healthy():
            return degraded_result()
    """

    def __init__(
        self,
        service_id: str,
        check: Callable[[], Awaitable[bool]],
        cooldown: timedelta = timedelta(seconds=30),
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.service_id = service_id
        self._check = check
        self._clock = clock
        self._state = HealthState(cooldown=cooldown)
        self._check_count = 0
        self._lock = asyncio.Lock()

    @property
    def state(self) -> HealthState:
        return self._state

    @property
    def verdict(self) -> HealthVerdict:
        """Current verdict without performing any I/O."""
        if not self._state.is_fresh(self._clock()):
            return HealthVerdict.UNKNOWN
        if self._state.is_healthy:
            return HealthVerdict.HEALTHY
        return HealthVerdict.UNHEALTHY

    @property
    def check_count(self) -> int:
        return self._check_count

    async def is_healthy(self) -> bool:
        """Return the cached verdict, probing only when the cooldown has elapsed."""
        if self._state.is_fresh(self._clock()):
            return self._state.is_healthy

        async with self._lock:
            # Another caller may have checked while we waited for the lock
            if self._state.is_fresh(self._clock()):
                return self._state.is_healthy

            self._check_count += 1
            try:
                healthy = await self._check()
            except Exception as e:
                logger.warning(
                    f"Health check for '{self.service_id}' raised "
                    f"{type(e).__name__}: {e}"
                )
                healthy = False

            self._set(healthy)
            if not healthy:
                logger.warning(
                    f"Health check failed for '{self.service_id}' - skipping "
                    f"requests for {self._state.cooldown.total_seconds():.0f}s"
                )
            return healthy

    def record_result(self, success: bool) -> None:
        """Feed an observed request outcome into the cached signal."""
        if success and self._state.is_healthy:
            return
        self._set(success)

    def reset(self) -> None:
        """Force-clear the unhealthy state; the next call re-checks."""
        self._state.is_healthy = True
        self._state.last_checked_at = None
        logger.info(
            f"Health status for '{self.service_id}' reset - will re-check on next request"
        )

    def _set(self, healthy: bool) -> None:
        now = self._clock()
        last = self._state.last_checked_at
        if last is not None and now < last:
            now = last
        if healthy and not self._state.is_healthy:
            logger.info(f"Service '{self.service_id}' is healthy again")
        self._state.is_healthy = healthy
        self._state.last_checked_at = now

    def get_time_until_recheck(self) -> float | None:
        """Seconds until the cached verdict expires."""
        last = self._state.last_checked_at
        if last is None:
            return None
        remaining = (last + self._state.cooldown - self._clock()).total_seconds()
        return max(0.0, remaining)

    def get_status(self) -> dict[str, Any]:
        """Get current status as dictionary."""
        last = self._state.last_checked_at
        return {
            "service_id": self.service_id,
            "verdict": self.verdict.value,
            "is_healthy": self._state.is_healthy,
            "last_check": last.isoformat() if last else None,
            "next_check": (
                (last + self._state.cooldown).isoformat() if last else None
            ),
            "check_count": self._check_count,
        }
