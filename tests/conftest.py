"""Shared fixtures: a scripted fake Registry behind httpx.MockTransport."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Callable

import httpx
import pytest

from eden_registry.registry.client import RegistryClient
from eden_registry.services.transport import RegistryTransport
from eden_registry.settings import Settings

BASE_URL = "https://registry.test/api/v1"

Reply = httpx.Response | Exception | Callable[[httpx.Request], Any]


class FakeRegistry:
    """Scripted HTTP backend: each path replays its queued replies in order.

    The last reply for a path repeats once the queue is drained.
    """

    def __init__(self) -> None:
        self._replies: dict[str, list[Reply]] = defaultdict(list)
        self.requests: list[httpx.Request] = []

    def script(self, path: str, *replies: Reply) -> None:
        self._replies[path].extend(replies)

    def calls(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == f"/api/v1/{path}")

    def last(self, path: str) -> httpx.Request:
        return [r for r in self.requests if r.url.path == f"/api/v1/{path}"][-1]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api/v1/")
        queue = self._replies.get(path)
        if not queue:
            return httpx.Response(404, json={"error": "Not Found", "message": f"no route {path}"})

        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(request)
            if asyncio.iscoroutine(reply):
                reply = await reply
            return reply
        # Fresh copy so a repeated reply is never a consumed response
        return httpx.Response(
            reply.status_code, headers=reply.headers, content=reply.content
        )


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "registry_base_url": BASE_URL,
        "registry_api_key": "test-key",
        "use_registry": True,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def registry() -> FakeRegistry:
    fake = FakeRegistry()
    fake.script("health", httpx.Response(200, json={"status": "ok"}))
    return fake


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def build_client(registry: FakeRegistry, clock: FakeClock, sleeps: SleepRecorder):
    def _build(**overrides: Any) -> RegistryClient:
        settings = make_settings(**overrides)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(registry.handler))
        transport = RegistryTransport(
            api_key=settings.registry_api_key,
            client_id=settings.registry_client_id,
            http_client=http_client,
        )
        client = RegistryClient(settings, transport=transport, sleep=sleeps, clock=clock)
        return client

    return _build
