from datetime import timedelta

import pytest
from pydantic import ValidationError

from session.config import CookieConfig, SameSite, SessionConfig


def test_defaults():
    config = SessionConfig()

    assert config.lifetime == timedelta(hours=24)
    assert config.idle_timeout is None
    assert config.cookie.name == "session"
    assert config.cookie.path == "/"
    assert config.cookie.http_only is True
    assert config.cookie.secure is False
    assert config.cookie.persist is True
    assert config.cookie.same_site is SameSite.lax


def test_config_is_immutable():
    config = SessionConfig()

    with pytest.raises(ValidationError):
        config.lifetime = timedelta(minutes=1)


@pytest.mark.parametrize("name", ["", "my session", "a;b", "a=b"])
def test_invalid_cookie_name(name):
    with pytest.raises(ValidationError):
        CookieConfig(name=name)


@pytest.mark.parametrize("field", ["lifetime", "idle_timeout"])
def test_non_positive_durations_rejected(field):
    with pytest.raises(ValidationError):
        SessionConfig(**{field: timedelta(0)})


def test_from_env(monkeypatch):
    monkeypatch.setenv("SESSION_LIFETIME_SECONDS", "3600")
    monkeypatch.setenv("SESSION_IDLE_TIMEOUT_SECONDS", "600")
    monkeypatch.setenv("SESSION_COOKIE_NAME", "sid")
    monkeypatch.setenv("COOKIE_DOMAIN", ".example.com")
    monkeypatch.setenv("SECURE_COOKIES", "true")
    monkeypatch.setenv("SESSION_COOKIE_PERSIST", "false")
    monkeypatch.setenv("SESSION_COOKIE_SAMESITE", "Strict")

    config = SessionConfig.from_env()

    assert config.lifetime == timedelta(hours=1)
    assert config.idle_timeout == timedelta(minutes=10)
    assert config.cookie.name == "sid"
    assert config.cookie.domain == ".example.com"
    assert config.cookie.secure is True
    assert config.cookie.persist is False
    assert config.cookie.same_site is SameSite.strict


def test_from_env_empty_samesite_omits_attribute(monkeypatch):
    monkeypatch.setenv("SESSION_COOKIE_SAMESITE", "")

    assert SessionConfig.from_env().cookie.same_site is None
