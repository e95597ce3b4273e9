"""Tests for the expiring token cache."""

from __future__ import annotations

from datetime import timedelta

from eden_registry.services.tokens import CachedToken, TokenCache

from .conftest import FakeClock


def _token(clock: FakeClock, name: str = "t1", ttl_seconds: int = 60) -> CachedToken:
    return CachedToken(
        token=name,
        user_id=f"user-{name}",
        expires_at=clock.now + timedelta(seconds=ttl_seconds),
    )


def test_live_token_is_returned(clock: FakeClock) -> None:
    cache = TokenCache(clock=clock)
    cache.put(_token(clock))

    entry = cache.get("t1")

    assert entry is not None
    assert entry.user_id == "user-t1"


def test_token_past_expiry_is_absent_and_evicted(clock: FakeClock) -> None:
    cache = TokenCache(clock=clock)
    cache.put(_token(clock))

    clock.advance(seconds=60)

    assert cache.is_expired("t1")
    assert cache.get("t1") is None
    assert len(cache) == 0
    assert not cache.is_expired("t1")


def test_delete_and_purge(clock: FakeClock) -> None:
    cache = TokenCache(clock=clock)
    cache.put(_token(clock, "short", ttl_seconds=10))
    cache.put(_token(clock, "long", ttl_seconds=100))
    cache.put(_token(clock, "gone"))

    assert cache.delete("gone") is True
    assert cache.delete("gone") is False

    clock.advance(seconds=30)
    assert cache.purge_expired() == 1
    assert cache.get("long") is not None
    assert len(cache) == 1


def test_stats_count_expired_without_evicting(clock: FakeClock) -> None:
    cache = TokenCache(clock=clock)
    cache.put(_token(clock, "short", ttl_seconds=10))
    cache.put(_token(clock, "long", ttl_seconds=100))

    clock.advance(seconds=30)
    stats = cache.get_stats()

    assert (stats.cached, stats.valid, stats.expired) == (2, 1, 1)
    assert len(cache) == 2
