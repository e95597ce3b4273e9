"""
RegistryAuth - session handling on top of the Registry auth endpoints.

Tokens returned by the Registry are kept in a TokenCache so repeated
validation of the same bearer token does not hit the network until it
expires.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable

from loguru import logger
from pydantic import ValidationError

from eden_registry.registry.client import RegistryClient
from eden_registry.registry.models import AuthUser, FetchOutcome
from eden_registry.services.errors import (
    AuthenticationError,
    ConfigurationError,
    ServiceError,
)
from eden_registry.services.normalizer import has_id
from eden_registry.services.tokens import CachedToken, TokenCache


@dataclass
class AuthAttempt:
    """Outcome of an authentication step."""

    success: bool
    message: str | None = None
    token: str | None = None
    user: AuthUser | None = None
    error: str | None = None


@dataclass
class TokenValidation:
    valid: bool
    user: CachedToken | None = None
    error: str | None = None


class RegistryAuth:
    """
    Magic-link authentication and bearer token validation.

    Usage:
        auth = RegistryAuth(client)
        attempt = await auth.complete_magic_auth(link_token)
        check = await auth.validate_token(attempt.token)
    """

    def __init__(
        self,
        client: RegistryClient,
        cache: TokenCache | None = None,
        token_expiry: timedelta | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.client = client
        self._clock = clock
        self.cache = cache or TokenCache(clock=clock)
        self.token_expiry = token_expiry or timedelta(
            seconds=client.settings.token_expiry_seconds
        )

    async def start_magic_auth(self, email: str) -> AuthAttempt:
        """Ask the Registry to email a magic link."""
        try:
            result = await self.client.request(
                "auth/magic/start",
                method="POST",
                json_data={"email": email},
                expected=lambda d: isinstance(d, dict) and "message" in d,
            )
        except ConfigurationError:
            raise
        except ServiceError as e:
            logger.error(f"[Auth] Magic link start failed: {e}")
            return AuthAttempt(success=False, message=str(e), error=str(e))

        if result.outcome == FetchOutcome.UNHEALTHY:
            return AuthAttempt(success=False, message=result.error, error=result.error)

        data = result.data if isinstance(result.data, dict) else {}
        return AuthAttempt(success=True, message=data.get("message"))

    async def complete_magic_auth(self, link_token: str) -> AuthAttempt:
        """Exchange a magic link token for a session token and cache it."""
        try:
            result = await self.client.request(
                "auth/magic/complete",
                method="POST",
                json_data={"token": link_token},
                expected=lambda d: isinstance(d, dict) and "token" in d,
            )
        except ConfigurationError:
            raise
        except ServiceError as e:
            logger.error(f"[Auth] Magic link completion failed: {e}")
            return AuthAttempt(success=False, error=str(e))

        if result.outcome == FetchOutcome.UNHEALTHY:
            return AuthAttempt(success=False, error=result.error)

        try:
            token, user = self._parse_session(result.data)
        except AuthenticationError as e:
            logger.error(f"[Auth] Magic link completion failed: {e}")
            return AuthAttempt(success=False, error=str(e))

        self._remember(token, user, auth_type="magic-link")
        return AuthAttempt(success=True, token=token, user=user)

    async def validate_token(self, token: str) -> TokenValidation:
        """
        Check a bearer token.

        Cached live tokens are answered locally. Expired cached tokens are
        evicted and rejected without asking the Registry. Unknown tokens are
        looked up via `auth/me` and cached on success.
        """
        if self.cache.is_expired(token):
            self.cache.delete(token)
            return TokenValidation(valid=False, error="Token expired")

        cached = self.cache.get(token)
        if cached is not None:
            return TokenValidation(valid=True, user=cached)

        try:
            result = await self.client.request(
                "auth/me",
                headers={"authorization": f"Bearer {token}"},
                expected=has_id,
            )
        except ConfigurationError:
            raise
        except ServiceError as e:
            logger.warning(f"[Auth] Token validation failed: {e}")
            return TokenValidation(valid=False, error="Invalid token")

        if result.outcome == FetchOutcome.UNHEALTHY:
            return TokenValidation(valid=False, error=result.error)

        try:
            user = AuthUser.model_validate(result.data)
        except ValidationError:
            return TokenValidation(valid=False, error="Invalid token")

        entry = self._remember(token, user, auth_type="bearer")
        return TokenValidation(valid=True, user=entry)

    async def authenticate_request(self, headers: dict[str, str]) -> TokenValidation:
        """
        Validate the `Authorization` header of a request.

        Accepts `Bearer <token>` or a bare token. Any other scheme is rejected.
        """
        auth_header = next(
            (v for k, v in headers.items() if k.lower() == "authorization"), ""
        )
        token = self._extract_token(auth_header)
        if token is None:
            return TokenValidation(valid=False, error="Missing authentication token")
        return await self.validate_token(token)

    async def get_current_user(self, token: str) -> CachedToken | None:
        """The session behind a token, or None if it does not validate."""
        validation = await self.validate_token(token)
        return validation.user if validation.valid else None

    def logout(self, token: str) -> bool:
        """Drop a session from the cache."""
        removed = self.cache.delete(token)
        if removed:
            logger.info("[Auth] Session logged out")
        return removed

    def clear_expired_tokens(self) -> int:
        removed = self.cache.purge_expired()
        if removed:
            logger.info(f"[Auth] Cleared {removed} expired tokens")
        return removed

    def get_auth_stats(self) -> dict[str, Any]:
        return self.cache.get_stats().to_dict()

    @staticmethod
    def _extract_token(auth_header: str) -> str | None:
        auth_header = auth_header.strip()
        if not auth_header:
            return None
        scheme, _, rest = auth_header.partition(" ")
        if not rest:
            return auth_header
        if scheme.lower() != "bearer" or not rest.strip():
            return None
        return rest.strip()

    def _parse_session(self, data: Any) -> tuple[str, AuthUser]:
        if not isinstance(data, dict) or not data.get("token"):
            raise AuthenticationError("Registry did not return a session token")
        try:
            user = AuthUser.model_validate(data.get("user") or {})
        except ValidationError as e:
            raise AuthenticationError(f"Invalid user in session: {e}") from e
        return data["token"], user

    def _remember(self, token: str, user: AuthUser, auth_type: str) -> CachedToken:
        entry = CachedToken(
            token=token,
            user_id=user.id,
            email=user.email,
            wallet_address=user.wallet_address,
            role=user.role,
            auth_type=auth_type,
            expires_at=self._clock() + self.token_expiry,
        )
        self.cache.put(entry)
        return entry


ROLE_HIERARCHY: dict[str, int] = {
    "guest": 0,
    "trainer": 1,
    "curator": 2,
    "admin": 3,
}


def has_permission(user: CachedToken | AuthUser | None, required_role: str) -> bool:
    """
    True if the user's role ranks at or above `required_role`.

    Unknown or missing roles rank as guest.
    """
    if user is None:
        return False
    user_level = ROLE_HIERARCHY.get(user.role or "guest", 0)
    return user_level >= ROLE_HIERARCHY.get(required_role, 0)
