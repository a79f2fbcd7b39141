"""
conductor_harness.suite - Suite Run Driver
============================================

Runs one or more orchestrators as a test suite and turns the outcome into a
process exit code.

    suite = ScenarioSuite(min_expected_scenarios=3)
    register = suite.registrar(orchestrator)
    register("alice commits", ...)
    register.only("bob reads", ...)          # counted too
    sys.exit(asyncio.run(suite.run()))

Exit Codes:
    1  fewer scenarios registered than expected (nothing is started), or
       a scenario was registered after run() began (even if the error was
       caught), or
       a scenario failed and ``fail_on_scenario_failure`` is set
    0  otherwise

The minimum-count check exists because a scenario file that crashes half
way through registration would otherwise produce a short, green run.
"""

from __future__ import annotations

from typing import Optional

import structlog

from conductor_harness.core.config import HarnessConfig
from conductor_harness.core.exceptions import RegistrationClosedError, ScenarioCountError
from conductor_harness.core.logging import setup_logging
from conductor_harness.core.models import ScenarioDefinition
from conductor_harness.core.state import RunReport
from conductor_harness.orchestration.scenario_runner import ScenarioRegistrar
from conductor_harness.orchestrator import Orchestrator

logger = structlog.get_logger()


class ScenarioSuite:
    """Counts registrations, enforces the minimum and runs orchestrators in order.

    Attributes:
        _config: Harness settings (logging, exit code policy).
        _minimum: Scenarios that must be registered before anything runs.
        _orchestrators: Orchestrators handed to ``registrar()``, in order.
        _registered: Registrations seen through this suite's registrars.
        _running: True once run() has begun; registration is closed.
        _report: Outcomes of the last ``run()``.
    """

    def __init__(
        self,
        min_expected_scenarios: Optional[int] = None,
        config: Optional[HarnessConfig] = None,
        configure_logging: bool = True,
    ) -> None:
        self._config = config or HarnessConfig()
        self._minimum = (
            min_expected_scenarios
            if min_expected_scenarios is not None
            else self._config.min_expected_scenarios
        )
        self._configure_logging = configure_logging
        self._orchestrators: list[Orchestrator] = []
        self._registered = 0
        self._running = False
        self._report = RunReport()
        self._logger = logger.bind(component="scenario_suite")

    @property
    def registered_count(self) -> int:
        return self._registered

    @property
    def min_expected_scenarios(self) -> int:
        return self._minimum

    @property
    def report(self) -> RunReport:
        return self._report

    def registrar(self, orchestrator: Orchestrator) -> ScenarioRegistrar:
        """A ``register_scenario`` for ``orchestrator`` that the suite counts.

        Once ``run()`` has begun the orchestrator is sealed on the spot, so
        anything registered through the returned registrar is refused and
        fails the suite.
        """
        if orchestrator not in self._orchestrators:
            self._orchestrators.append(orchestrator)
        if self._running:
            orchestrator.seal()
        return ScenarioRegistrar(orchestrator.registry, on_register=self._count)

    def _count(self, definition: ScenarioDefinition) -> None:
        self._registered += 1

    def check_minimum(self) -> None:
        """Raise ScenarioCountError if too few scenarios were registered."""
        if self._registered < self._minimum:
            raise ScenarioCountError(self._registered, self._minimum)

    def _rejected_registrations(self) -> int:
        return sum(orchestrator.registry.rejected for orchestrator in self._orchestrators)

    async def run(self) -> int:
        """Run every orchestrator and return the process exit code."""
        self._running = True
        if self._configure_logging:
            setup_logging(self._config.log_level, self._config.log_format)

        orchestrators = tuple(self._orchestrators)
        for orchestrator in orchestrators:
            orchestrator.seal()

        try:
            self.check_minimum()
        except ScenarioCountError as exc:
            self._logger.error(
                "scenario_count_below_minimum",
                registered=exc.registered,
                minimum=exc.minimum,
            )
            return 1

        self._report = RunReport()
        for orchestrator in orchestrators:
            try:
                self._report.extend(await orchestrator.run())
            except RegistrationClosedError as exc:
                self._logger.error(
                    "late_scenario_registration",
                    description=exc.description,
                    error=str(exc),
                )
                return 1

        self._logger.info(
            "suite_finished",
            total=self._report.total,
            passed=self._report.passed,
            failed=self._report.failed,
        )
        rejected = self._rejected_registrations()
        if rejected:
            self._logger.error("late_registrations_refused", count=rejected)
            return 1
        if self._report.failed and self._config.fail_on_scenario_failure:
            return 1
        return 0
