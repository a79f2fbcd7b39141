"""
conductor_harness.core - Foundation Layer
===========================================

Building blocks every other module depends on:

    - config:      HarnessConfig, transport settings, YAML loader
    - enums:       ScenarioStatus, ConductorStatus, SignalState
    - models:      Conductor topology models and builder helpers
    - state:       ScenarioRun state machine, RunReport
    - exceptions:  HarnessError hierarchy
    - logging:     structlog setup

Dependency Rule:
    core/ depends on NOTHING else in the conductor_harness package.
"""

from conductor_harness.core.config import (
    HarnessConfig,
    HttpTransportConfig,
    SimulatedConductorConfig,
)
from conductor_harness.core.enums import ConductorStatus, ScenarioStatus, SignalState
from conductor_harness.core.exceptions import (
    CallError,
    ConductorError,
    ConfigurationError,
    DuplicateInstanceError,
    HarnessError,
    InvalidTransitionError,
    RegistrationClosedError,
    ScenarioAssertionError,
    ScenarioCountError,
    SettleError,
)
from conductor_harness.core.models import (
    AgentConfig,
    BridgeConfig,
    ConductorConfig,
    ConductorEndpoint,
    DnaConfig,
    InstanceConfig,
    ScenarioDefinition,
    agent,
    bridge,
    conductor,
    dna,
    instance,
    make_instance_id,
)
from conductor_harness.core.state import RunReport, ScenarioRun

__all__ = [
    # Config
    "HarnessConfig",
    "HttpTransportConfig",
    "SimulatedConductorConfig",
    # Enums
    "ConductorStatus",
    "ScenarioStatus",
    "SignalState",
    # Models
    "AgentConfig",
    "BridgeConfig",
    "ConductorConfig",
    "ConductorEndpoint",
    "DnaConfig",
    "InstanceConfig",
    "ScenarioDefinition",
    "agent",
    "bridge",
    "conductor",
    "dna",
    "instance",
    "make_instance_id",
    # State
    "RunReport",
    "ScenarioRun",
    # Exceptions
    "HarnessError",
    "ConfigurationError",
    "DuplicateInstanceError",
    "RegistrationClosedError",
    "ScenarioCountError",
    "ConductorError",
    "CallError",
    "SettleError",
    "ScenarioAssertionError",
    "InvalidTransitionError",
]
