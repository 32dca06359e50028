"""
Module: test_settings.py
Description: Unit tests for application settings validation.
"""

import pytest
from pydantic import ValidationError

from courier_webhooks.config.settings import Settings


def make_settings(**overrides):
    return Settings(_env_file=None, **overrides)


class TestSettings:
    """Test cases for Settings validators."""

    def test_defaults(self):
        config = make_settings()

        assert config.max_processing_attempts == 3
        assert config.retry_intervals_seconds == [60, 300, 1800]
        assert config.doordash_signature_tolerance_seconds == 300
        assert config.webhook_verification_bypass is False
        assert config.status_sink_url is None

    def test_log_level_is_normalized(self):
        assert make_settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError, match="log_level"):
            make_settings(log_level="verbose")

    def test_invalid_table_name(self):
        with pytest.raises(ValidationError):
            make_settings(webhooks_table_name="bad table!")

    @pytest.mark.parametrize("intervals", [[], [60, -1]])
    def test_invalid_retry_intervals(self, intervals):
        with pytest.raises(ValidationError, match="retry_intervals_seconds"):
            make_settings(retry_intervals_seconds=intervals)

    def test_status_sink_url_must_be_http(self):
        with pytest.raises(ValidationError, match="status_sink_url"):
            make_settings(status_sink_url="ftp://status.example.test")

        assert make_settings(status_sink_url="").status_sink_url is None

    @pytest.mark.parametrize("stage", ["prod", "Production"])
    def test_bypass_forbidden_in_production(self, stage):
        with pytest.raises(ValidationError, match="production stage"):
            make_settings(stage=stage, webhook_verification_bypass=True)

    def test_bypass_allowed_in_dev(self):
        config = make_settings(stage="dev", webhook_verification_bypass=True)

        assert config.webhook_verification_bypass is True

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MAX_PROCESSING_ATTEMPTS", "5")
        monkeypatch.setenv("RETRY_INTERVALS_SECONDS", "[1, 2]")

        config = make_settings()

        assert config.max_processing_attempts == 5
        assert config.retry_intervals_seconds == [1, 2]
