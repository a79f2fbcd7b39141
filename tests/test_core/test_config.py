"""
Tests for conductor_harness.core.config
=========================================

These tests verify the configuration system:
    - Default values allow a zero-configuration run
    - Environment variables (HARNESS_ prefix) override defaults
    - YAML files are parsed; keys in the file beat env vars
    - Validation rejects nonsensical values

All tests are unit tests: no conductor, no network.
"""

from pathlib import Path

import pytest
import yaml

from conductor_harness.core.config import (
    HarnessConfig,
    HttpTransportConfig,
    SimulatedConductorConfig,
    get_default_config,
    load_config,
)


# =============================================================================
# Test: Default Configuration
# =============================================================================
class TestDefaultConfig:
    """Tests for default configuration values."""

    def test_default_config_creates_successfully(self) -> None:
        """HarnessConfig() works with no arguments."""
        config = HarnessConfig()
        assert config.log_level == "INFO"
        assert config.log_format == "console"

    def test_default_suite_policy(self) -> None:
        """No minimum, no startup delay, failures fail the suite."""
        config = HarnessConfig()
        assert config.min_expected_scenarios == 0
        assert config.startup_delay_seconds == 0.0
        assert config.fail_on_scenario_failure is True

    def test_default_http_config(self) -> None:
        config = HarnessConfig()
        assert isinstance(config.http, HttpTransportConfig)
        assert config.http.timeout_seconds == 30.0
        assert config.http.rpc_path == "/"
        assert config.http.signal_path == "/signals"
        assert config.http.settled_signal_type == "settled"

    def test_default_simulated_config(self) -> None:
        config = HarnessConfig()
        assert isinstance(config.simulated, SimulatedConductorConfig)
        assert config.simulated.gossip_delay_seconds == 0.01

    def test_get_default_config_convenience(self) -> None:
        assert get_default_config() == HarnessConfig()


# =============================================================================
# Test: Validation
# =============================================================================
class TestConfigValidation:
    """Invalid values are rejected at construction time."""

    def test_negative_minimum_rejected(self) -> None:
        with pytest.raises(Exception):
            HarnessConfig(min_expected_scenarios=-1)

    def test_negative_startup_delay_rejected(self) -> None:
        with pytest.raises(Exception):
            HarnessConfig(startup_delay_seconds=-0.5)

    def test_unknown_log_format_rejected(self) -> None:
        with pytest.raises(Exception):
            HarnessConfig(log_format="xml")

    def test_zero_timeout_rejected(self) -> None:
        with pytest.raises(Exception):
            HttpTransportConfig(timeout_seconds=0)


# =============================================================================
# Test: Environment Variable Overrides
# =============================================================================
class TestEnvOverrides:
    """HARNESS_-prefixed variables override defaults."""

    def test_env_var_overrides_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HARNESS_LOG_LEVEL", "DEBUG")
        assert HarnessConfig().log_level == "DEBUG"

    def test_env_var_overrides_minimum(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HARNESS_MIN_EXPECTED_SCENARIOS", "49")
        assert HarnessConfig().min_expected_scenarios == 49

    def test_nested_env_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """HARNESS_HTTP__TIMEOUT_SECONDS reaches config.http.timeout_seconds."""
        monkeypatch.setenv("HARNESS_HTTP__TIMEOUT_SECONDS", "5")
        assert HarnessConfig().http.timeout_seconds == 5.0


# =============================================================================
# Test: YAML Loading
# =============================================================================
class TestLoadConfig:
    """load_config() reads YAML and falls back to defaults."""

    def test_load_valid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "harness.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "min_expected_scenarios": 3,
                    "startup_delay_seconds": 5,
                    "http": {"signal_path": "/events"},
                }
            )
        )
        config = load_config(str(path))
        assert config.min_expected_scenarios == 3
        assert config.startup_delay_seconds == 5.0
        assert config.http.signal_path == "/events"

    def test_missing_explicit_path_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_auto_detects_harness_yaml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "harness.yaml").write_text("log_format: json\n")
        monkeypatch.chdir(tmp_path)
        assert load_config().log_format == "json"

    def test_no_file_gives_defaults(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        assert load_config() == HarnessConfig()

    def test_empty_yaml_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)) == HarnessConfig()

    def test_yaml_keys_win_over_env(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Env vars fill in what the file leaves out, but never override it."""
        path = tmp_path / "harness.yaml"
        path.write_text("log_level: WARNING\n")
        monkeypatch.setenv("HARNESS_LOG_LEVEL", "ERROR")
        monkeypatch.setenv("HARNESS_MIN_EXPECTED_SCENARIOS", "7")
        config = load_config(str(path))
        assert config.log_level == "WARNING"
        assert config.min_expected_scenarios == 7
