"""Tests for environment-driven settings."""

from __future__ import annotations

from eden_registry.settings import Settings, load_settings


def test_defaults() -> None:
    settings = Settings()

    assert settings.use_registry is False
    assert settings.request_timeout_ms == 3000
    assert settings.health_timeout_ms < settings.request_timeout_ms
    assert settings.health_cooldown_ms == 30000
    assert settings.max_attempts == 3
    assert settings.retry_delay_ms == 1000


def test_load_settings_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("USE_REGISTRY", "true")
    monkeypatch.setenv("REGISTRY_BASE_URL", "https://registry.example/api/v1")
    monkeypatch.setenv("REGISTRY_API_KEY", "secret")
    monkeypatch.setenv("REGISTRY_MAX_ATTEMPTS", "1")

    settings = load_settings()

    assert settings.use_registry is True
    assert settings.registry_base_url == "https://registry.example/api/v1"
    assert settings.registry_api_key == "secret"
    assert settings.max_attempts == 1


def test_master_switch_off_unless_true(monkeypatch) -> None:
    monkeypatch.setenv("USE_REGISTRY", "false")
    assert load_settings().use_registry is False
