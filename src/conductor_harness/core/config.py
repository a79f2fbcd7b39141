"""
conductor_harness.core.config - Configuration Management
==========================================================

Harness settings can be loaded from several sources. Priority, highest
first:

    1. Explicit constructor arguments (load_config() passes the keys of
       the YAML file, harness.yaml, this way)
    2. Environment variables (prefixed with HARNESS_)
    3. Default values defined in the models below

Architecture Context:
    HarnessConfig is created once by the suite driver (or the Orchestrator)
    and handed down:

        HarnessConfig
            ├── HttpTransportConfig      → HttpConductorTransport
            ├── SimulatedConductorConfig → SimulatedConductor
            └── (other settings)         → ScenarioRunner, ScenarioSuite

    Conductor topologies (instances, bridges) are NOT part of this file.
    They are per-orchestrator data, see ``core.models.ConductorConfig``.

Environment Variables:
    HARNESS_LOG_LEVEL=DEBUG
    HARNESS_MIN_EXPECTED_SCENARIOS=49
    HARNESS_STARTUP_DELAY_SECONDS=5
    HARNESS_HTTP__TIMEOUT_SECONDS=60
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


# =============================================================================
# HTTP Transport Configuration
# =============================================================================
# Used when attaching to an externally spawned conductor over the network.
# Calls go out as JSON-RPC requests on rpc_path; completion notifications
# arrive as newline-delimited JSON on a long-lived stream at signal_path.
# =============================================================================
class HttpTransportConfig(BaseModel):
    """Settings for talking to an attached conductor over HTTP.

    Attributes:
        timeout_seconds: Per-request timeout for JSON-RPC calls.
        rpc_path: Path receiving JSON-RPC POST requests.
        signal_path: Path streaming completion signals (NDJSON).
        settled_signal_type: ``signal_type`` value that marks "all pending
            work has drained".
        reconnect_delay_seconds: Pause before re-opening a dropped signal
            stream.
    """

    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for a single JSON-RPC request",
    )
    rpc_path: str = Field(
        default="/",
        description="Path for JSON-RPC requests",
    )
    signal_path: str = Field(
        default="/signals",
        description="Path of the streaming completion-signal channel",
    )
    settled_signal_type: str = Field(
        default="settled",
        description="signal_type announcing that pending work has drained",
    )
    reconnect_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Delay before reconnecting a closed signal stream",
    )


class SimulatedConductorConfig(BaseModel):
    """Settings for the in-process simulated conductor."""

    gossip_delay_seconds: float = Field(
        default=0.01,
        ge=0,
        description="Delay before pending writes propagate to other instances",
    )


# =============================================================================
# Main Configuration
# =============================================================================
class HarnessConfig(BaseSettings):
    """Top-level configuration for a scenario run.

    Attributes:
        log_level: Minimum structlog level.
        log_format: "console" for humans, "json" for CI log collectors.
        min_expected_scenarios: The suite refuses to run (exit code 1) when
            fewer scenarios than this were registered. Keep it as close as
            possible to the real count, but never over.
        startup_delay_seconds: Fixed pause before the first scenario of an
            orchestrator, letting freshly spawned conductors find each
            other on the network.
        fail_on_scenario_failure: Whether a failed scenario makes the suite
            exit non-zero.
        http: Transport settings for attached conductors.
        simulated: Settings for the in-process conductor.

    Example:
        >>> config = HarnessConfig(min_expected_scenarios=49, log_level="DEBUG")
    """

    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_format: Literal["console", "json"] = Field(
        default="console",
        description="Log renderer: console or json",
    )
    min_expected_scenarios: int = Field(
        default=0,
        ge=0,
        description="Lower bound on registered scenarios",
    )
    startup_delay_seconds: float = Field(
        default=0.0,
        ge=0,
        description="Settling delay before the first scenario runs",
    )
    fail_on_scenario_failure: bool = Field(
        default=True,
        description="Exit non-zero when any scenario failed",
    )

    http: HttpTransportConfig = Field(
        default_factory=HttpTransportConfig,
        description="Attached-conductor transport configuration",
    )
    simulated: SimulatedConductorConfig = Field(
        default_factory=SimulatedConductorConfig,
        description="Simulated conductor configuration",
    )

    # HARNESS_HTTP__TIMEOUT_SECONDS maps to config.http.timeout_seconds
    model_config = {
        "env_prefix": "HARNESS_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }


# =============================================================================
# Configuration Loader
# =============================================================================
def load_config(path: Optional[str] = None) -> HarnessConfig:
    """Load harness configuration from a YAML file and/or environment variables.

    Keys present in the file take precedence; environment variables supply
    everything else.

    Args:
        path: Path to a YAML file. If None, ``harness.yaml`` in the current
            directory is used when present, otherwise defaults + env vars.

    Returns:
        A validated HarnessConfig.

    Raises:
        FileNotFoundError: If an explicit path is given but doesn't exist.
    """
    if path is None:
        default_path = Path("harness.yaml")
        if default_path.exists():
            path = str(default_path)

    yaml_data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(config_path) as f:
            raw_data = yaml.safe_load(f)
            if isinstance(raw_data, dict):
                yaml_data = raw_data

    return HarnessConfig(**yaml_data)


def get_default_config() -> HarnessConfig:
    """Create a HarnessConfig from defaults and environment variables."""
    return HarnessConfig()
