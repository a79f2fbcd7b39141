"""
conductor-harness - Scenario Orchestration for Conductor-Hosted Apps
======================================================================

Drives end-to-end scenarios against one or more conductors: registers
scenarios, starts fresh conductors per scenario, hands each scenario bound
callers for its instances, and lets it wait until distributed effects have
settled before asserting on other instances.

Layers (top to bottom):
    1. Suite / Orchestrator  - run driver, exit codes, facade
    2. Orchestration         - runner, handles, settle bridge, callers
    3. Integrations          - conductor transports (simulated, HTTP)
    4. Core                  - config, models, state, errors, logging

Quick Start:
    >>> from conductor_harness import Orchestrator, ScenarioSuite
    >>> app = Orchestrator.dna("dist/app.dna.json", "app")
    >>> orchestrator = Orchestrator({"conductor": {"instances": {"alice": app}}})
    >>> suite = ScenarioSuite()
    >>> register = suite.registrar(orchestrator)
    >>> register("alice commits", my_scenario)
    >>> exit_code = await suite.run()
"""

__version__ = "0.1.0"

from conductor_harness.orchestration.middleware import (
    backward_compatibility_middleware,
    compose,
    namespace_instances,
)
from conductor_harness.orchestrator import Orchestrator
from conductor_harness.suite import ScenarioSuite

__all__ = [
    "Orchestrator",
    "ScenarioSuite",
    "backward_compatibility_middleware",
    "compose",
    "namespace_instances",
    "__version__",
]
