"""
Tests for settings and the signing-secret policy.
"""

from datetime import timedelta

import pytest

from rbacd.api.app import create_app
from rbacd.config import DEV_JWT_SECRET, Settings
from rbacd.errors import ConfigurationError


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.access_token_ttl == timedelta(minutes=5)
    assert settings.refresh_token_ttl == timedelta(days=7)
    assert settings.dev_mode is False


def test_configured_secret_is_used():
    settings = Settings(_env_file=None, jwt_secret="configured-secret")

    assert settings.resolve_jwt_secret() == "configured-secret"


def test_missing_secret_fails_outside_dev_mode():
    settings = Settings(_env_file=None, jwt_secret=None, dev_mode=False)

    with pytest.raises(ConfigurationError):
        settings.resolve_jwt_secret()


def test_dev_mode_falls_back_to_weak_default_secret():
    """The fallback secret is public; it must only ever be reachable in dev mode."""
    settings = Settings(_env_file=None, jwt_secret=None, dev_mode=True)

    assert settings.resolve_jwt_secret() == DEV_JWT_SECRET


def test_app_refuses_to_start_without_secret(tmp_path):
    settings = Settings(_env_file=None, database_path=tmp_path / "x.db")

    with pytest.raises(ConfigurationError):
        create_app(settings)


def test_env_variables(monkeypatch):
    monkeypatch.setenv("RBACD_JWT_SECRET", "from-env")
    monkeypatch.setenv("RBACD_PORT", "9090")

    settings = Settings(_env_file=None)

    assert settings.resolve_jwt_secret() == "from-env"
    assert settings.port == 9090
