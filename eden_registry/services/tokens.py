"""
TokenCache - in-memory cache of authenticated session tokens.

A token past its `expires_at` is treated as absent: lookups evict it and
return None rather than handing back a stale entry.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from loguru import logger


@dataclass
class CachedToken:
    """An authenticated session."""

    token: str
    user_id: str
    expires_at: datetime
    email: str | None = None
    wallet_address: str | None = None
    role: str | None = None
    auth_type: str = "magic-link"

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class TokenCache:
    """
    Token cache keyed by token string.

    Usage:
        cache = TokenCache()
        cache.put(CachedToken(token="t", user_id="u", expires_at=...))
        entry = cache.get("t")  # None once expired
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = datetime.now,
        debug: bool = False,
    ):
        self._tokens: dict[str, CachedToken] = {}
        self._clock = clock
        self._debug = debug

    def put(self, entry: CachedToken) -> None:
        self._tokens[entry.token] = entry
        self._log(f"SET: user={entry.user_id} until {entry.expires_at.isoformat()}")

    def get(self, token: str) -> CachedToken | None:
        """Look up a live token, evicting it if it has expired."""
        entry = self._tokens.get(token)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._tokens[token]
            self._log(f"EXPIRED: user={entry.user_id}")
            return None
        return entry

    def is_expired(self, token: str) -> bool:
        """True only for a token that is cached but past its expiry."""
        entry = self._tokens.get(token)
        return entry is not None and entry.is_expired(self._clock())

    def delete(self, token: str) -> bool:
        if token in self._tokens:
            del self._tokens[token]
            self._log("DELETE: token removed")
            return True
        return False

    def purge_expired(self) -> int:
        """Remove all expired entries. Returns count of removed entries."""
        now = self._clock()
        expired = [k for k, v in self._tokens.items() if v.is_expired(now)]
        for key in expired:
            del self._tokens[key]

        if expired:
            self._log(f"CLEANUP: {len(expired)} expired tokens removed")
        return len(expired)

    def get_stats(self) -> "TokenCacheStats":
        """Count cached tokens without evicting anything."""
        now = self._clock()
        expired = sum(1 for v in self._tokens.values() if v.is_expired(now))
        return TokenCacheStats(cached=len(self._tokens), expired=expired)

    def __len__(self) -> int:
        return len(self._tokens)

    def _log(self, message: str) -> None:
        if self._debug:
            logger.debug(f"[TokenCache] {message}")


@dataclass
class TokenCacheStats:
    """Token cache statistics."""

    cached: int = 0
    expired: int = 0

    @property
    def valid(self) -> int:
        return self.cached - self.expired

    def to_dict(self) -> dict[str, Any]:
        return {
            "cached_tokens": self.cached,
            "valid_tokens": self.valid,
            "expired_tokens": self.expired,
        }
