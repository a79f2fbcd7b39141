"""
conductor_harness.orchestration.scenario_runner - Scenario Registry & Runner
==============================================================================

Collects scenarios, then runs them one after another, each against freshly
started conductors.

Two Phases:
    1. Registration: ``registry.register(...)`` (usually through a
       ScenarioRegistrar) appends scenarios. Synchronous, no I/O.
    2. Execution: ``runner.run()`` seals the registry and executes the
       selected scenarios sequentially. Registering after the seal raises
       RegistrationClosedError, which aborts the whole run.

Per-Scenario Flow:
    ┌───────────────────────────────────────────────────────────────────┐
    │  PENDING → STARTING                                               │
    │     ├── one ConductorHandle per conductor config, start() each    │
    │     ├── build_callers() → {conductor: {instance: Caller}}         │
    │     └── middleware(callers), executor.prepare(closure)            │
    │  RUNNING                                                          │
    │     └── body(stop, callers) ... until it returns OR stop()        │
    │  COMPLETED | FAILED                                               │
    │     └── teardown: stop() every handle (always)                    │
    │  STOPPED → executor.report(run)                                   │
    └───────────────────────────────────────────────────────────────────┘

A failing scenario is reported and the queue moves on. Nothing in one
scenario's handles survives into the next.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Sequence
from typing import Any, Optional

import structlog

from conductor_harness.core.enums import ScenarioStatus
from conductor_harness.core.exceptions import (
    ConductorError,
    RegistrationClosedError,
    SettleError,
)
from conductor_harness.core.models import ConductorConfig, ScenarioClosure, ScenarioDefinition
from conductor_harness.core.state import RunReport, ScenarioRun
from conductor_harness.integrations.conductor.base import ConductorTransport
from conductor_harness.orchestration.caller import build_callers
from conductor_harness.orchestration.conductor_handle import ConductorHandle
from conductor_harness.orchestration.executor import ScenarioBody, ScenarioExecutor
from conductor_harness.orchestration.middleware import Middleware, identity
from conductor_harness.orchestration.settle import SyncBridge

logger = structlog.get_logger()

TransportFactory = Callable[[ConductorConfig], ConductorTransport]

# Errors a closure hits only because it kept going after calling stop().
_STOP_CONSEQUENCES = frozenset({"CONDUCTOR_STOPPED", "CONDUCTOR_NOT_RUNNING"})


# =============================================================================
# Registry
# =============================================================================
class ScenarioRegistry:
    """Ordered, two-phase collection of ScenarioDefinitions.

    Attributes:
        _default_conductors: Topology given to scenarios that name none.
        _scenarios: Registered definitions, in registration order.
        _sealed: True once execution has begun.
        _rejected: Registrations refused because the registry was sealed.
    """

    def __init__(self, default_conductors: Iterable[ConductorConfig] = ()) -> None:
        self._default_conductors = tuple(default_conductors)
        self._scenarios: list[ScenarioDefinition] = []
        self._sealed = False
        self._rejected = 0
        self._logger = logger.bind(component="scenario_registry")

    def register(
        self,
        description: str,
        closure: ScenarioClosure,
        *,
        conductors: Optional[Sequence[ConductorConfig]] = None,
        only: bool = False,
    ) -> ScenarioDefinition:
        """Append a scenario.

        Raises:
            RegistrationClosedError: The registry has been sealed.
        """
        if self._sealed:
            self._rejected += 1
            self._logger.error("late_scenario_registration", description=description)
            raise RegistrationClosedError(description)

        definition = ScenarioDefinition(
            description=description,
            closure=closure,
            conductors=tuple(conductors) if conductors is not None else self._default_conductors,
            only=only,
        )
        self._scenarios.append(definition)
        self._logger.debug(
            "scenario_registered",
            description=description,
            only=only,
            position=len(self._scenarios),
        )
        return definition

    def seal(self) -> tuple[ScenarioDefinition, ...]:
        """End registration. Safe to call more than once."""
        if not self._sealed:
            self._sealed = True
            self._logger.info("registry_sealed", scenarios=len(self._scenarios))
        return tuple(self._scenarios)

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def count(self) -> int:
        return len(self._scenarios)

    @property
    def rejected(self) -> int:
        """Registrations refused after sealing, whether or not the caller saw the error."""
        return self._rejected

    @property
    def scenarios(self) -> tuple[ScenarioDefinition, ...]:
        return tuple(self._scenarios)

    def selected(self) -> tuple[ScenarioDefinition, ...]:
        """Scenarios that will run: the ``only`` ones if there are any, else all."""
        only = tuple(s for s in self._scenarios if s.only)
        return only or tuple(self._scenarios)


class ScenarioRegistrar:
    """The ``register_scenario`` callable scenario files use.

    ``registrar(description, closure)`` registers a scenario and
    ``registrar.only(description, closure)`` registers an exclusive one.
    ``on_register`` sees every registration, ``only`` ones included.
    """

    def __init__(
        self,
        registry: ScenarioRegistry,
        on_register: Optional[Callable[[ScenarioDefinition], None]] = None,
    ) -> None:
        self._registry = registry
        self._on_register = on_register

    def __call__(self, description: str, closure: ScenarioClosure) -> ScenarioDefinition:
        return self._register(description, closure, only=False)

    def only(self, description: str, closure: ScenarioClosure) -> ScenarioDefinition:
        return self._register(description, closure, only=True)

    def _register(self, description: str, closure: ScenarioClosure, only: bool) -> ScenarioDefinition:
        definition = self._registry.register(description, closure, only=only)
        if self._on_register is not None:
            self._on_register(definition)
        return definition


# =============================================================================
# Stop Control
# =============================================================================
class StopControl:
    """The ``stop`` callable handed to a scenario closure.

    Calling it marks every conductor of the scenario STOPPING at once, so
    calls issued afterwards fail and pending settle signals are rejected.
    The runner then cancels the rest of the closure and tears down.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._handles: list[ConductorHandle] = []

    def attach(self, handle: ConductorHandle) -> None:
        self._handles.append(handle)
        if self.requested:
            handle.begin_stop()

    def __call__(self) -> None:
        if self._event.is_set():
            return
        self._event.set()
        for handle in self._handles:
            handle.begin_stop()

    @property
    def requested(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


# =============================================================================
# Runner
# =============================================================================
class ScenarioRunner:
    """Executes a sealed registry's scenarios sequentially.

    Attributes:
        _registry: Where scenarios come from.
        _executor: Adapts closures and receives outcomes.
        _transport_factory: Builds a fresh transport per conductor per scenario.
        _middleware: Reshapes the caller map before the closure sees it.
        _startup_delay: Seconds to wait before the first scenario.

    Example:
        >>> runner = ScenarioRunner(registry, ReportingExecutor(), create_transport)
        >>> report = await runner.run()
        >>> report.all_passed
        True
    """

    def __init__(
        self,
        registry: ScenarioRegistry,
        executor: ScenarioExecutor,
        transport_factory: TransportFactory,
        middleware: Middleware = identity,
        startup_delay: float = 0.0,
    ) -> None:
        self._registry = registry
        self._executor = executor
        self._transport_factory = transport_factory
        self._middleware = middleware
        self._startup_delay = startup_delay
        self._logger = logger.bind(component="scenario_runner")

    async def run(self) -> RunReport:
        """Seal the registry and run every selected scenario, in order.

        Raises:
            RegistrationClosedError: A scenario tried to register another
                one while running. It is reported and torn down first.
        """
        registered = self._registry.seal()
        selected = self._registry.selected()
        self._logger.info(
            "run_started",
            registered=len(registered),
            selected=len(selected),
            skipped=len(registered) - len(selected),
        )

        if selected and self._startup_delay > 0:
            self._logger.info("startup_delay", seconds=self._startup_delay)
            await asyncio.sleep(self._startup_delay)

        report = RunReport()
        for definition in selected:
            report.add(await self.run_scenario(definition))

        self._logger.info(
            "run_finished",
            total=report.total,
            passed=report.passed,
            failed=report.failed,
        )
        return report

    async def run_scenario(self, definition: ScenarioDefinition) -> ScenarioRun:
        """Run one scenario from PENDING to STOPPED and report it."""
        log = self._logger.bind(description=definition.description)
        run = ScenarioRun(scenario_id=definition.scenario_id, description=definition.description)
        run = run.advance(ScenarioStatus.STARTING)
        log.info("scenario_starting", conductors=len(definition.conductors))

        handles: list[ConductorHandle] = []
        stop = StopControl()
        fatal: Optional[RegistrationClosedError] = None
        try:
            callers: dict[str, Any] = {}
            for config in definition.conductors:
                handle = ConductorHandle(config, self._transport_factory(config))
                handles.append(handle)
                stop.attach(handle)
                await handle.start()
                callers[handle.name] = build_callers(handle, SyncBridge(handle))

            shaped = self._middleware(callers)
            body = self._executor.prepare(definition.description, definition.closure)

            run = run.advance(ScenarioStatus.RUNNING)
            await self._drive(body, stop, shaped)
            run = run.advance(ScenarioStatus.COMPLETED)
        except asyncio.CancelledError as exc:
            run = run.fail(exc)
            raise
        except Exception as exc:
            log.error("scenario_error", error=str(exc), error_type=type(exc).__name__)
            run = run.fail(exc)
            if isinstance(exc, RegistrationClosedError):
                fatal = exc
        finally:
            await self._teardown(handles)
            run = run.advance(ScenarioStatus.STOPPED)
            self._report(run)

        if fatal is not None:
            raise fatal
        return run

    async def _drive(self, body: ScenarioBody, stop: StopControl, callers: Any) -> None:
        """Run ``body`` until it returns or ``stop()`` is called."""
        closure_task = asyncio.ensure_future(body(stop, callers))
        stop_task = asyncio.ensure_future(stop.wait())
        try:
            await asyncio.wait({closure_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (closure_task, stop_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(closure_task, stop_task, return_exceptions=True)

        if closure_task.cancelled():
            self._logger.debug("closure_cancelled_by_stop")
            return
        error = closure_task.exception()
        if error is None:
            return
        if stop.requested and _is_stop_consequence(error):
            self._logger.debug("closure_error_after_stop", error=str(error))
            return
        raise error

    def _report(self, run: ScenarioRun) -> None:
        try:
            self._executor.report(run)
        except Exception as exc:
            self._logger.error(
                "executor_report_failed",
                description=run.description,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    async def _teardown(self, handles: list[ConductorHandle]) -> None:
        for handle in handles:
            try:
                await handle.stop()
            except Exception as exc:
                self._logger.error(
                    "conductor_teardown_failed",
                    conductor=handle.name,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )


def _is_stop_consequence(error: BaseException) -> bool:
    return isinstance(error, (SettleError, ConductorError)) and error.error_code in _STOP_CONSEQUENCES
