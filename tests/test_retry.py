"""Tests for the retry-with-backoff policy."""

from __future__ import annotations

import pytest

from eden_registry.services.errors import (
    ClientError,
    ConfigurationError,
    NetworkError,
    RequestTimeoutError,
    ServerError,
)
from eden_registry.services.retry import backoff_delay_ms, with_retries

from .conftest import SleepRecorder


class ScriptedAttempts:
    """Raises the queued errors in order, then returns `result`."""

    def __init__(self, *errors: Exception, result: object = "ok") -> None:
        self.errors = list(errors)
        self.result = result
        self.calls: list[int] = []

    async def __call__(self, attempt: int) -> object:
        self.calls.append(attempt)
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def _server_error() -> ServerError:
    return ServerError(503, "HTTP 503: Service Unavailable")


def test_backoff_is_linear_in_attempt_number() -> None:
    assert backoff_delay_ms(1, 1000) == 0
    assert backoff_delay_ms(2, 1000) == 2000
    assert backoff_delay_ms(3, 1000) == 3000


async def test_recovers_after_transient_failures(sleeps: SleepRecorder) -> None:
    attempts = ScriptedAttempts(_server_error(), NetworkError("reset"), result=[1])

    result = await with_retries(attempts, max_attempts=3, base_delay_ms=1000, sleep=sleeps)

    assert result == [1]
    assert attempts.calls == [1, 2, 3]
    assert sleeps.delays == [2.0, 3.0]


async def test_persistent_5xx_never_exceeds_max_attempts(sleeps: SleepRecorder) -> None:
    attempts = ScriptedAttempts(*[_server_error() for _ in range(10)])

    with pytest.raises(ServerError):
        await with_retries(attempts, max_attempts=3, base_delay_ms=10, sleep=sleeps)

    assert len(attempts.calls) == 3


async def test_last_failure_surfaces_verbatim(sleeps: SleepRecorder) -> None:
    last = RequestTimeoutError("registry", 3.0)
    attempts = ScriptedAttempts(_server_error(), _server_error(), last)

    with pytest.raises(RequestTimeoutError) as exc_info:
        await with_retries(attempts, max_attempts=3, base_delay_ms=10, sleep=sleeps)

    assert exc_info.value is last


@pytest.mark.parametrize("status", [400, 401, 404, 422])
async def test_client_error_is_not_retried(status: int, sleeps: SleepRecorder) -> None:
    attempts = ScriptedAttempts(ClientError(status, "nope"))

    with pytest.raises(ClientError):
        await with_retries(attempts, max_attempts=3, base_delay_ms=1000, sleep=sleeps)

    assert attempts.calls == [1]
    assert sleeps.delays == []


async def test_non_service_errors_propagate_immediately(sleeps: SleepRecorder) -> None:
    attempts = ScriptedAttempts(ConfigurationError("off"))

    with pytest.raises(ConfigurationError):
        await with_retries(attempts, max_attempts=3, base_delay_ms=1000, sleep=sleeps)

    assert attempts.calls == [1]


@pytest.mark.parametrize("succeeds", [True, False])
async def test_single_attempt_never_sleeps(succeeds: bool, sleeps: SleepRecorder) -> None:
    attempts = ScriptedAttempts() if succeeds else ScriptedAttempts(_server_error())

    if succeeds:
        assert await with_retries(attempts, max_attempts=1, sleep=sleeps) == "ok"
    else:
        with pytest.raises(ServerError):
            await with_retries(attempts, max_attempts=1, sleep=sleeps)

    assert attempts.calls == [1]
    assert sleeps.delays == []


async def test_attempt_budget_is_per_call(sleeps: SleepRecorder) -> None:
    first = ScriptedAttempts(_server_error(), _server_error())
    second = ScriptedAttempts(_server_error(), _server_error())

    await with_retries(first, max_attempts=3, base_delay_ms=1, sleep=sleeps)
    await with_retries(second, max_attempts=3, base_delay_ms=1, sleep=sleeps)

    assert first.calls == [1, 2, 3]
    assert second.calls == [1, 2, 3]


async def test_rejects_zero_attempts() -> None:
    with pytest.raises(ValueError):
        await with_retries(ScriptedAttempts(), max_attempts=0)
