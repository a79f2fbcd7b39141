"""
conductor_harness.orchestrator - Orchestrator Facade
======================================================

The single object a scenario file talks to. It ties the layers together:

    ┌──────────────────────────────────────────────────────┐
    │                 Orchestrator (Facade)                 │
    │                                                      │
    │  register_scenario ──→ ScenarioRegistry              │
    │  register_conductor ─→ endpoints (attach by url)     │
    │  run() ──────────────→ ScenarioRunner                │
    │                          │                           │
    │                          ├── ConductorHandle × N     │
    │                          ├── SyncBridge / Callers    │
    │                          ├── Middleware              │
    │                          └── ScenarioExecutor        │
    │                                  │                   │
    │  transport factory ──→ SimulatedConductor | HTTP     │
    └──────────────────────────────────────────────────────┘

Usage:
    >>> app = Orchestrator.dna("dist/app_spec.dna.json", "app-spec")
    >>> orchestrator = Orchestrator(
    ...     conductors={"conductor": {"instances": {"alice": app, "bob": app}}},
    ...     middleware=backward_compatibility_middleware,
    ... )
    >>>
    >>> async def replicate(stop, callers):
    ...     alice, bob = callers["alice"], callers["bob"]
    ...     await alice.call_sync("entries", "main", "commit_entry", {"entry": {...}})
    ...     stop()
    >>>
    >>> orchestrator.register_scenario("entries replicate", replicate)
    >>> report = await orchestrator.run()
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

import structlog

from conductor_harness.core import models
from conductor_harness.core.config import HarnessConfig
from conductor_harness.core.exceptions import ConfigurationError
from conductor_harness.core.models import ConductorConfig, ConductorEndpoint, coerce_conductor
from conductor_harness.core.state import RunReport
from conductor_harness.integrations.conductor.base import ConductorTransport
from conductor_harness.integrations.conductor.factory import create_transport
from conductor_harness.orchestration.executor import ReportingExecutor, ScenarioExecutor
from conductor_harness.orchestration.middleware import Middleware, identity
from conductor_harness.orchestration.scenario_runner import (
    ScenarioRegistrar,
    ScenarioRegistry,
    ScenarioRunner,
    TransportFactory,
)

logger = structlog.get_logger()


class Orchestrator:
    """Registers scenarios against a conductor topology and runs them.

    Attributes:
        _conductors: Topology every scenario runs against, by name.
        _executor: Adapts closures and collects outcomes.
        _middleware: Applied to the caller map of every scenario.
        _config: Harness settings (startup delay, transport settings).
        _endpoints: Externally spawned conductors to attach to, by name.
        _registry: Scenarios registered so far.
        register_scenario: ``register_scenario(desc, closure)`` and
            ``register_scenario.only(desc, closure)``.
    """

    agent = staticmethod(models.agent)
    dna = staticmethod(models.dna)
    instance = staticmethod(models.instance)
    bridge = staticmethod(models.bridge)

    def __init__(
        self,
        conductors: Mapping[str, Any],
        executor: Optional[ScenarioExecutor] = None,
        middleware: Optional[Middleware] = None,
        config: Optional[HarnessConfig] = None,
        transport_factory: Optional[TransportFactory] = None,
    ) -> None:
        self._conductors: dict[str, ConductorConfig] = {
            name: coerce_conductor(name, value) for name, value in conductors.items()
        }
        self._executor = executor or ReportingExecutor()
        self._middleware = middleware or identity
        self._config = config or HarnessConfig()
        self._transport_factory = transport_factory or self._default_transport
        self._endpoints: dict[str, ConductorEndpoint] = {}
        self._registry = ScenarioRegistry(default_conductors=self._conductors.values())
        self.register_scenario = ScenarioRegistrar(self._registry)
        self._logger = logger.bind(component="orchestrator")

        self._logger.info("orchestrator_created", conductors=list(self._conductors))

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def conductors(self) -> dict[str, ConductorConfig]:
        return dict(self._conductors)

    @property
    def endpoints(self) -> dict[str, ConductorEndpoint]:
        return dict(self._endpoints)

    @property
    def executor(self) -> ScenarioExecutor:
        return self._executor

    @property
    def registry(self) -> ScenarioRegistry:
        return self._registry

    @property
    def scenario_count(self) -> int:
        return self._registry.count

    # =========================================================================
    # Registration
    # =========================================================================

    def register_conductor(self, name: str, url: str) -> ConductorEndpoint:
        """Attach conductor ``name`` to an externally spawned process at ``url``.

        Raises:
            ConfigurationError: No conductor called ``name`` is configured.
        """
        if name not in self._conductors:
            raise ConfigurationError(
                message=f"Unknown conductor '{name}'",
                error_code="UNKNOWN_CONDUCTOR",
                details={"conductor": name, "known": sorted(self._conductors)},
            )
        endpoint = ConductorEndpoint(name=name, url=url)
        self._endpoints[name] = endpoint
        self._logger.info("conductor_registered", conductor=name, url=url)
        return endpoint

    def seal(self) -> None:
        self._registry.seal()

    # =========================================================================
    # Execution
    # =========================================================================

    async def run(self) -> RunReport:
        """Run every selected scenario and return their outcomes.

        Raises:
            RegistrationClosedError: A scenario registered another scenario
                while running.
        """
        runner = ScenarioRunner(
            registry=self._registry,
            executor=self._executor,
            transport_factory=self._transport_factory,
            middleware=self._middleware,
            startup_delay=self._config.startup_delay_seconds,
        )
        return await runner.run()

    def _default_transport(self, config: ConductorConfig) -> ConductorTransport:
        return create_transport(config, self._endpoints.get(config.name), self._config)
