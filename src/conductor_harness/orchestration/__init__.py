"""
conductor_harness.orchestration - Scenario Orchestration Layer
================================================================

    - conductor_handle: ConductorHandle (lifecycle + calls for one conductor)
    - settle:           SettleSignal, SyncBridge (call now, observe later)
    - caller:           Caller, build_callers (instance name → bound caller)
    - middleware:       caller-map reshaping (compose, flatten, namespace)
    - executor:         ScenarioExecutor and the built-in executors
    - scenario_runner:  ScenarioRegistry, ScenarioRegistrar, StopControl,
                        ScenarioRunner
"""

from conductor_harness.orchestration.caller import Caller, build_callers
from conductor_harness.orchestration.conductor_handle import ConductorHandle
from conductor_harness.orchestration.executor import (
    AssertionExecutor,
    ReportingExecutor,
    ScenarioAssertions,
    ScenarioExecutor,
)
from conductor_harness.orchestration.middleware import (
    Middleware,
    backward_compatibility_middleware,
    compose,
    flatten_conductors,
    identity,
    namespace_instances,
)
from conductor_harness.orchestration.scenario_runner import (
    ScenarioRegistrar,
    ScenarioRegistry,
    ScenarioRunner,
    StopControl,
)
from conductor_harness.orchestration.settle import SettleSignal, SyncBridge

__all__ = [
    "AssertionExecutor",
    "Caller",
    "ConductorHandle",
    "Middleware",
    "ReportingExecutor",
    "ScenarioAssertions",
    "ScenarioExecutor",
    "ScenarioRegistrar",
    "ScenarioRegistry",
    "ScenarioRunner",
    "SettleSignal",
    "StopControl",
    "SyncBridge",
    "backward_compatibility_middleware",
    "build_callers",
    "compose",
    "flatten_conductors",
    "identity",
    "namespace_instances",
]
