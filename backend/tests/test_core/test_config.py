"""Tests for environment-driven settings"""
import pytest
from pydantic import ValidationError

from app.core.config import Settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "APNS_KEY_FILE", "APNS_KEY_ID", "APNS_TEAM_ID", "APNS_BUNDLE_ID",
        "MAILGUN_API_KEY", "MAILGUN_DOMAIN", "LOG_LEVEL", "CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def _settings(**overrides):
    return Settings(_env_file=None, **overrides)


class TestSettings:
    """Tests for Settings defaults and derived properties."""

    def test_defaults(self, clean_env):
        settings = _settings()

        assert settings.API_V1_PREFIX == "/api/v1"
        assert settings.APNS_FEEDBACK_INTERVAL_SECONDS == 3600
        assert settings.APNS_DEFAULT_BADGE == 1
        assert settings.APNS_DEFAULT_SOUND == "ping.aiff"
        assert settings.apns_ready is False
        assert settings.mailgun_ready is False

    def test_log_level_normalized(self, clean_env):
        assert _settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_invalid_log_level(self, clean_env):
        with pytest.raises(ValidationError):
            _settings(LOG_LEVEL="LOUD")

    def test_cors_origins_list(self, clean_env):
        settings = _settings(CORS_ORIGINS="http://a.test, http://b.test ,")

        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_apns_ready_requires_existing_key(self, clean_env, tmp_path):
        key_file = tmp_path / "AuthKey.p8"
        fields = dict(
            APNS_KEY_FILE=str(key_file),
            APNS_KEY_ID="KEYID12345",
            APNS_TEAM_ID="TEAMID1234",
            APNS_BUNDLE_ID="com.example.gateway",
        )

        assert _settings(**fields).apns_ready is False

        key_file.write_text("key")
        assert _settings(**fields).apns_ready is True

    def test_apns_from_environment(self, clean_env, tmp_path):
        key_file = tmp_path / "AuthKey.p8"
        key_file.write_text("key")
        clean_env.setenv("APNS_KEY_FILE", str(key_file))
        clean_env.setenv("APNS_KEY_ID", "KEYID12345")
        clean_env.setenv("APNS_TEAM_ID", "TEAMID1234")
        clean_env.setenv("APNS_BUNDLE_ID", "com.example.gateway")
        clean_env.setenv("APNS_USE_SANDBOX", "true")

        settings = _settings()

        assert settings.apns_ready is True
        assert settings.APNS_USE_SANDBOX is True

    def test_mailgun_ready(self, clean_env):
        assert _settings(MAILGUN_API_KEY="key-1", MAILGUN_DOMAIN="mg.example.com").mailgun_ready is True
        assert _settings(MAILGUN_API_KEY="key-1").mailgun_ready is False
