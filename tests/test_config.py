"""Tests for the configuration module."""

import pytest
from pydantic import ValidationError

from agent_access.core.config import OrchestratorConfig, Settings
from agent_access.core.types import AgentTool


class TestSettings:
    """Tests for the Settings class."""

    def test_settings_defaults(self, app_settings):
        """Test Settings with default values."""
        assert app_settings.enable_access_patterns is True
        assert app_settings.pattern_cache_enabled is True
        assert app_settings.pattern_cache_max_size == 1000
        assert app_settings.pattern_cache_ttl_seconds == 300.0
        assert app_settings.audit_logging_enabled is True
        assert app_settings.max_audit_entries == 1000
        assert app_settings.max_history_entries == 1000
        assert app_settings.security_audit_enabled is False
        assert app_settings.max_security_events == 10000
        assert app_settings.log_level == "INFO"

    def test_settings_from_env(self, app_settings, monkeypatch):
        """Test Settings loads values from prefixed environment variables."""
        monkeypatch.setenv("AGENT_ACCESS_ENABLE_ACCESS_PATTERNS", "false")
        monkeypatch.setenv("AGENT_ACCESS_MAX_AUDIT_ENTRIES", "50")
        monkeypatch.setenv("AGENT_ACCESS_PATTERN_CACHE_TTL_SECONDS", "2.5")

        settings = Settings(_env_file=None)

        assert settings.enable_access_patterns is False
        assert settings.max_audit_entries == 50
        assert settings.pattern_cache_ttl_seconds == 2.5

    def test_unprefixed_variables_are_ignored(self, app_settings, monkeypatch):
        """Test that variables without the prefix do not leak in."""
        monkeypatch.setenv("MAX_AUDIT_ENTRIES", "5")
        assert Settings(_env_file=None).max_audit_entries == 1000

    def test_env_file(self, app_settings, tmp_path):
        """Test Settings reads an explicit .env file."""
        env_file = tmp_path / ".env"
        env_file.write_text("AGENT_ACCESS_MAX_HISTORY_ENTRIES=7\n")
        assert Settings(_env_file=env_file).max_history_entries == 7

    @pytest.mark.parametrize(
        "field",
        [
            "pattern_cache_max_size",
            "pattern_cache_ttl_seconds",
            "max_audit_entries",
            "max_history_entries",
            "max_security_events",
        ],
    )
    def test_non_positive_values_rejected(self, app_settings, field):
        """Test that sizes and durations must be positive."""
        with pytest.raises(ValidationError, match="must be positive"):
            Settings(_env_file=None, **{field: 0})

    def test_log_level_normalized(self, app_settings):
        """Test that log levels are upper-cased."""
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level(self, app_settings):
        """Test that unknown log levels are rejected."""
        with pytest.raises(ValidationError, match="Unknown log level"):
            Settings(_env_file=None, log_level="chatty")


class TestOrchestratorConfig:
    """Tests for OrchestratorConfig."""

    def test_defaults(self):
        """Test the default configuration is empty with standard default tools."""
        config = OrchestratorConfig()
        assert config.agents == []
        assert config.rules == []
        assert config.global_patterns == []
        assert config.default_tools == {AgentTool.READ_LOCAL, AgentTool.INTER_AGENT_COMMUNICATION}
        assert config.log_communications is True

    def test_default_tools_not_shared(self):
        """Test that each config gets its own default tool set."""
        first = OrchestratorConfig()
        first.default_tools.add(AgentTool.DELETE)
        assert AgentTool.DELETE not in OrchestratorConfig().default_tools
