"""Unit tests for service settings."""

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from gitlab_access.config import Settings, create_settings
from gitlab_access.logging_config import EventLogAdapter, configure_logging


class TestSettings:
    """Test cases for Settings defaults and validation."""

    def test_defaults(self, monkeypatch):
        for name in ("GITLAB_ACCESS_PORT", "GITLAB_ACCESS_USER_AGENT", "GITLAB_ACCESS_DRAIN_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)

        s = Settings(_env_file=None)

        assert s.port == 8888
        assert s.webhook_path == "/gitlab-access"
        assert s.user_agent == "Robot-Gitlab-Hook-Delivery"
        assert s.outbound_user_agent == "Robot-Gitlab-Access"
        assert s.forward_retry_attempts == 3
        assert s.reload_interval == 60
        assert s.drain_timeout is None

    def test_environment_overrides(self, monkeypatch):
        """Test that GITLAB_ACCESS_* variables are read."""
        monkeypatch.setenv("GITLAB_ACCESS_PORT", "9001")
        monkeypatch.setenv("GITLAB_ACCESS_CONFIG_FILE", "/etc/gitlab-access/config.yaml")
        monkeypatch.setenv("GITLAB_ACCESS_DRAIN_TIMEOUT", "30")

        s = Settings(_env_file=None)

        assert s.port == 9001
        assert s.config_file == Path("/etc/gitlab-access/config.yaml")
        assert s.drain_timeout == 30

    def test_log_level_is_normalised(self):
        assert Settings(_env_file=None, log_level=" debug ").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="LOUD")

    @pytest.mark.parametrize("path", ["gitlab-access", "/"])
    def test_invalid_webhook_path(self, path):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, webhook_path=path)

    @pytest.mark.parametrize("field,value", [
        ("forward_retry_attempts", 0),
        ("reload_interval", 0),
        ("forward_retry_delay", -1),
    ])
    def test_out_of_range_values(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_create_settings_exits_on_invalid_environment(self, monkeypatch):
        """Test that invalid settings stop the process with status 1."""
        monkeypatch.setenv("GITLAB_ACCESS_PORT", "not-a-port")

        with pytest.raises(SystemExit) as exc_info:
            create_settings()
        assert exc_info.value.code == 1


class TestLogging:
    """Test cases for logging helpers."""

    def test_httpx_logging_level_is_warning(self):
        """Test that httpx logger is set to WARNING level."""
        configure_logging()
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_debug_sets_root_level(self):
        configure_logging(debug=True)
        try:
            assert logging.getLogger().level == logging.DEBUG
        finally:
            configure_logging()

    def test_adapter_prefixes_fields(self):
        adapter = EventLogAdapter(logging.getLogger("t"), {"event-type": "Push Hook"})
        msg, _ = adapter.with_fields(org="robot").process("hello", {})

        assert msg == "[event-type=Push Hook org=robot] hello"

    def test_adapter_without_fields(self):
        msg, _ = EventLogAdapter(logging.getLogger("t"), {}).process("hello", {})
        assert msg == "hello"
