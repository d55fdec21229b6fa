"""Tests for Settings validation and derived properties."""

import pytest
from pydantic import ValidationError

from authguard.core.config import Settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_defaults_are_valid() -> None:
    settings = _settings()
    assert settings.cache_backend == "memory"
    assert settings.session_max_per_user == 5
    assert settings.risk_threshold_low < settings.risk_threshold_medium < settings.risk_threshold_high


def test_rejects_unknown_cache_backend() -> None:
    with pytest.raises(ValidationError, match="cache_backend"):
        _settings(cache_backend="memcached")


def test_rejects_zero_session_limit() -> None:
    with pytest.raises(ValidationError, match="session_max_per_user"):
        _settings(session_max_per_user=0)


def test_rejects_negative_weight() -> None:
    with pytest.raises(ValidationError, match="risk_weight_ip_change"):
        _settings(risk_weight_ip_change=-1)


@pytest.mark.parametrize(
    "low,medium,high",
    [(50, 50, 80), (20, 90, 80), (-1, 50, 80), (20, 50, 101)],
)
def test_rejects_unordered_thresholds(low: int, medium: int, high: int) -> None:
    with pytest.raises(ValidationError, match="Risk thresholds"):
        _settings(risk_threshold_low=low, risk_threshold_medium=medium, risk_threshold_high=high)


def test_rejects_fingerprint_length_out_of_range() -> None:
    with pytest.raises(ValidationError, match="fingerprint_length"):
        _settings(fingerprint_length=4)


def test_csv_lists_are_lowercased_and_trimmed() -> None:
    settings = _settings(risk_high_risk_markers=" TOR, Proxy ,,vpn", risk_local_markers="Local,LAN")
    assert settings.high_risk_markers == ("tor", "proxy", "vpn")
    assert settings.local_markers == ("local", "lan")
    assert "curl" in settings.bot_signatures


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SESSION_MAX_PER_USER", "3")
    monkeypatch.setenv("CACHE_BACKEND", "redis")
    settings = _settings()
    assert settings.session_max_per_user == 3
    assert settings.cache_backend == "redis"
