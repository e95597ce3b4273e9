"""
RegistryTransport - single timeout-bounded HTTP exchange.

Every call gets a fresh trace id sent as `x-trace-id` so that client and
server logs can be correlated. No retry logic lives here; see retry.py.
"""

import asyncio
import random
import string
import time
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from eden_registry.services.errors import (
    ClientError,
    HTTPStatusError,
    NetworkError,
    RequestTimeoutError,
    ServerError,
)

_TRACE_ALPHABET = string.digits + string.ascii_lowercase


def generate_trace_id() -> str:
    """Time-based prefix plus random base36 suffix, e.g. reg-1718000000000-k3j9x0a2b."""
    suffix = "".join(random.choices(_TRACE_ALPHABET, k=9))
    return f"reg-{int(time.time() * 1000)}-{suffix}"


@dataclass
class RequestContext:
    """Per-call bookkeeping, discarded once the call settles."""

    trace_id: str
    deadline_ms: int
    retries_remaining: int = 0


class RegistryTransport:
    """
    Thin async wrapper around httpx with a hard per-call deadline.

    Usage:
        transport = RegistryTransport(api_key="...", client_id="eden-academy")
        data = await transport.fetch_once(f"{base}/agents", deadline_ms=3000)
    """

    SERVICE_ID = "registry"

    def __init__(
        self,
        api_key: str = "",
        client_id: str = "eden-academy",
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._client_id = client_id
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(follow_redirects=True)
            self._owns_client = True
        return self._http_client

    def _build_headers(
        self, trace_id: str, extra: dict[str, str] | None
    ) -> dict[str, str]:
        headers = {
            "x-eden-api-key": self._api_key,
            "x-trace-id": trace_id,
            "x-eden-client": self._client_id,
            "accept": "application/json",
            "content-type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    async def fetch_once(
        self,
        url: str,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        json_data: Any = None,
        headers: dict[str, str] | None = None,
        deadline_ms: int = 3000,
        context: RequestContext | None = None,
    ) -> Any:
        """
        Perform exactly one HTTP request and decode its JSON body.

        Args:
            url: Full URL to request
            method: HTTP method
            params: Query parameters
            json_data: JSON body for POST requests
            headers: Extra headers, override the defaults
            deadline_ms: Hard deadline for the whole exchange
            context: Optional request context; a new one is created if missing

        Returns:
            Decoded JSON body (None for an empty body)

        Raises:
            RequestTimeoutError: Deadline exceeded
            NetworkError: Transport-level failure
            ServerError: 5xx response
            ClientError: Any other non-2xx response
        """
        ctx = context or RequestContext(
            trace_id=generate_trace_id(), deadline_ms=deadline_ms
        )
        client = await self._get_http_client()
        timeout = ctx.deadline_ms / 1000

        try:
            response = await asyncio.wait_for(
                client.request(
                    method=method,
                    url=url,
                    params=params,
                    headers=self._build_headers(ctx.trace_id, headers),
                    json=json_data,
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise RequestTimeoutError(
                self.SERVICE_ID, timeout, trace_id=ctx.trace_id
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(
                f"Registry network error: {e}",
                service_id=self.SERVICE_ID,
                trace_id=ctx.trace_id,
            ) from e

        if not response.is_success:
            raise self._status_error(response, ctx.trace_id)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ServerError(
                response.status_code,
                f"Registry returned a non-JSON body for {url}",
                service_id=self.SERVICE_ID,
                trace_id=ctx.trace_id,
            ) from e

    def _status_error(
        self, response: httpx.Response, trace_id: str
    ) -> HTTPStatusError:
        """Build the typed error for a non-2xx response."""
        status = response.status_code
        try:
            body = response.json()
            if not isinstance(body, dict):
                raise ValueError("error body is not an object")
        except ValueError:
            body = {
                "error": "Unknown error",
                "message": f"HTTP {status}: {response.reason_phrase}",
                "statusCode": status,
            }

        message = body.get("message") or f"Registry API error: {status}"
        logger.error(
            f"[Registry] Request failed - trace: {trace_id} "
            f"(status={status}, error={message})"
        )
        error_cls = ServerError if status >= 500 else ClientError
        return error_cls(
            status,
            message,
            error=body.get("error"),
            service_id=self.SERVICE_ID,
            trace_id=trace_id,
        )

    async def check_health(
        self,
        url: str,
        deadline_ms: int = 2000,
        client_tag: str = "eden-academy-health",
    ) -> bool:
        """Lightweight health GET. Any 2xx is healthy; never raises."""
        client = await self._get_http_client()
        try:
            response = await asyncio.wait_for(
                client.get(
                    url,
                    headers={"x-eden-client": client_tag},
                    timeout=deadline_ms / 1000,
                ),
                timeout=deadline_ms / 1000,
            )
        except (asyncio.TimeoutError, httpx.HTTPError) as e:
            logger.debug(f"[Registry] Health check request failed: {type(e).__name__}: {e}")
            return False

        if not response.is_success:
            logger.warning(f"[Registry] Health check failed: {response.status_code}")
        return response.is_success

    async def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
        self._http_client = None

    async def __aenter__(self) -> "RegistryTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
