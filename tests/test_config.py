"""Integration tests for configuration module."""

from pathlib import Path

import pytest

from app.config import (
    ConfigurationError,
    LogFormat,
    load_config,
    parse_app_config,
    validate_config_file,
)
from app.config.duration import (
    DurationParseError,
    format_duration,
    parse_duration,
    validate_duration_range,
)
from app.config.environment import load_environment_config
from app.config.validators import check_for_warnings

# Test fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"


class TestConfigurationLoading:
    """Test configuration loading from YAML files."""

    def test_load_valid_config(self, mock_env_vars):
        """Test loading a fully specified configuration file."""
        app_config, env_config = load_config(FIXTURES_DIR / "valid_config.yaml")

        assert app_config.matching.recheck_delay == "PT10S"
        assert app_config.matching.recheck_delay_seconds == 10
        assert app_config.matching.page_contexts == ["home", "dashboard"]
        assert app_config.messaging.whatsapp_number == "919746725111"
        assert app_config.logging.level == "DEBUG"
        assert app_config.logging.format == LogFormat.JSON.value

        assert env_config.database_url == "sqlite:///:memory:"
        assert env_config.profile_id == "test-profile"

    def test_load_minimal_config_uses_defaults(self, mock_env_vars):
        """Missing sections fall back to defaults."""
        with pytest.warns(UserWarning, match="whatsapp_number"):
            app_config, _ = load_config(FIXTURES_DIR / "minimal_config.yaml")

        assert app_config.matching.recheck_delay_seconds == 5
        assert app_config.matching.page_contexts == ["home", "dashboard"]
        assert app_config.messaging.whatsapp_number is None
        assert app_config.logging.format == "key-value"

    def test_empty_file_uses_defaults(self, tmp_path, mock_env_vars):
        """An empty YAML file is a valid all-defaults configuration."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")

        with pytest.warns(UserWarning):
            app_config, _ = load_config(config_file)

        assert app_config.matching.recheck_delay == "5s"

    def test_recheck_delay_out_of_range(self, mock_env_vars):
        """Delays above one hour are rejected with a readable error."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(FIXTURES_DIR / "invalid_delay_config.yaml")

        assert any("Recheck delay too long" in e for e in exc_info.value.errors)

    def test_unknown_page_context(self, mock_env_vars):
        """Unknown page contexts are rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(FIXTURES_DIR / "invalid_context_config.yaml")

        assert "checkout" in str(exc_info.value)

    def test_malformed_yaml(self, mock_env_vars):
        """YAML syntax errors become ConfigurationError."""
        with pytest.raises(ConfigurationError, match="Failed to parse YAML"):
            load_config(FIXTURES_DIR / "malformed_config.yaml")

    def test_missing_explicit_file(self, tmp_path):
        """An explicit path that does not exist fails with suggestions."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(tmp_path / "nope.yaml")

        assert exc_info.value.suggestions

    def test_top_level_must_be_mapping(self, tmp_path):
        """A YAML list at the top level is rejected."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("- home\n- dashboard\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(config_file)

    def test_invalid_whatsapp_number(self):
        """Numbers without enough digits are rejected."""
        with pytest.raises(ConfigurationError):
            parse_app_config({"messaging": {"whatsapp_number": "12-34"}})

    def test_validate_config_file(self, capsys):
        """validate_config_file reports valid and invalid files."""
        assert validate_config_file(FIXTURES_DIR / "valid_config.yaml") is True
        assert validate_config_file(FIXTURES_DIR / "invalid_delay_config.yaml") is False
        assert "validation failed" in capsys.readouterr().out


class TestEnvironmentConfig:
    """Tests for environment variable loading."""

    def test_defaults(self, monkeypatch):
        """Unset variables fall back to defaults."""
        for name in ("DATABASE_URL", "LOG_LEVEL", "PROFILE_ID"):
            monkeypatch.delenv(name, raising=False)

        env_config = load_environment_config()

        assert env_config.database_url == "sqlite:///./data/marketplace.db"
        assert env_config.profile_id == "default"
        assert env_config.log_level is None

    def test_log_level_normalized(self, monkeypatch):
        """LOG_LEVEL is case-insensitive."""
        monkeypatch.setenv("LOG_LEVEL", "debug")

        assert load_environment_config().log_level == "DEBUG"

    def test_invalid_values_collected(self, monkeypatch):
        """Every invalid variable is reported at once."""
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        monkeypatch.setenv("PROFILE_ID", "has spaces")
        monkeypatch.setenv("DATABASE_URL", "not-a-url")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert len(exc_info.value.errors) == 3


class TestConfigWarnings:
    """Tests for non-fatal configuration warnings."""

    def test_unknown_section(self):
        warnings = check_for_warnings({"sources": [], "messaging": {"whatsapp_number": "91"}})

        assert warnings == ["Unknown configuration section 'sources' is ignored"]

    def test_empty_page_contexts(self):
        warnings = check_for_warnings(
            {"matching": {"page_contexts": []}, "messaging": {"whatsapp_number": "91"}}
        )

        assert any("never be re-checked" in w for w in warnings)

    def test_long_delay(self):
        warnings = check_for_warnings(
            {"matching": {"recheck_delay": "5m"}, "messaging": {"whatsapp_number": "91"}}
        )

        assert any("Long recheck_delay" in w for w in warnings)


class TestDurationParsing:
    """Tests for duration parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [("5s", 5), ("1m30s", 90), ("1h", 3600), ("PT5S", 5), ("pt1m", 60), ("P1D", 86400)],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "5", "5x", "0s", "PT", "P", "PT0S"])
    def test_invalid(self, value):
        with pytest.raises(DurationParseError):
            parse_duration(value)

    def test_range(self):
        """Range limits are inclusive."""
        validate_duration_range(1, min_seconds=1, max_seconds=3600)
        validate_duration_range(3600, min_seconds=1, max_seconds=3600)
        with pytest.raises(DurationParseError, match="too long"):
            validate_duration_range(3601, min_seconds=1, max_seconds=3600)

    def test_format_duration(self):
        assert format_duration(5) == "5 seconds"
        assert format_duration(60) == "1 minute"
        assert format_duration(90) == "90 seconds"
        assert format_duration(7200) == "2 hours"
