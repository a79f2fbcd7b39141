"""
Tests for conductor_harness.suite - Suite Run Driver
======================================================

These tests verify the exit-code policy of ScenarioSuite:
    - Registrations (``only`` included) are counted
    - Below the minimum → exit 1 before any conductor exists
    - A late registration → exit 1, even when the error is caught
    - A registrar requested after run() began refuses registrations
    - Failed scenarios → exit 1 unless fail_on_scenario_failure is off
    - Otherwise → exit 0
"""

import asyncio

import pytest
import structlog

from conductor_harness.core.config import HarnessConfig
from conductor_harness.core.exceptions import RegistrationClosedError, ScenarioCountError
from conductor_harness.integrations.conductor.simulated import SimulatedConductor
from conductor_harness.orchestrator import Orchestrator
from conductor_harness.suite import ScenarioSuite


def _stop_at_once(stop, callers) -> None:
    stop()


async def _failing(stop, callers) -> None:
    raise ValueError("scenario bug")


@pytest.fixture
def built() -> list:
    return []


@pytest.fixture
def orchestrator(app_dna, built) -> Orchestrator:
    def factory(config):
        transport = SimulatedConductor(config)
        built.append(transport)
        return transport

    return Orchestrator(
        conductors={"conductor": {"instances": {"alice": app_dna, "bob": app_dna}}},
        transport_factory=factory,
    )


def _suite(**kwargs) -> ScenarioSuite:
    return ScenarioSuite(configure_logging=False, **kwargs)


class TestCounting:

    def test_counts_every_registration(self, orchestrator) -> None:
        suite = _suite()
        register = suite.registrar(orchestrator)
        register("a", _stop_at_once)
        register.only("b", _stop_at_once)
        assert suite.registered_count == 2
        assert orchestrator.scenario_count == 2

    def test_check_minimum(self, orchestrator) -> None:
        suite = _suite(min_expected_scenarios=2)
        suite.registrar(orchestrator)("a", _stop_at_once)
        with pytest.raises(ScenarioCountError) as exc_info:
            suite.check_minimum()
        assert exc_info.value.registered == 1
        assert exc_info.value.minimum == 2

    def test_minimum_from_config(self) -> None:
        suite = _suite(config=HarnessConfig(min_expected_scenarios=5))
        assert suite.min_expected_scenarios == 5

    def test_explicit_minimum_wins(self) -> None:
        suite = _suite(min_expected_scenarios=1, config=HarnessConfig(min_expected_scenarios=5))
        assert suite.min_expected_scenarios == 1


class TestExitCodes:

    async def test_all_passed(self, orchestrator) -> None:
        suite = _suite(min_expected_scenarios=1)
        suite.registrar(orchestrator)("a", _stop_at_once)
        assert await suite.run() == 0
        assert suite.report.total == 1

    async def test_below_minimum_starts_nothing(self, orchestrator, built) -> None:
        suite = _suite(min_expected_scenarios=1)
        suite.registrar(orchestrator)
        assert await suite.run() == 1
        assert built == []

    async def test_failure_fails_suite(self, orchestrator) -> None:
        suite = _suite()
        register = suite.registrar(orchestrator)
        register("bad", _failing)
        register("good", _stop_at_once)
        assert await suite.run() == 1
        assert suite.report.failed == 1
        assert suite.report.passed == 1

    async def test_failure_tolerated_when_configured(self, orchestrator) -> None:
        suite = _suite(config=HarnessConfig(fail_on_scenario_failure=False))
        suite.registrar(orchestrator)("bad", _failing)
        assert await suite.run() == 0

    async def test_late_registration(self, orchestrator) -> None:
        suite = _suite()
        register = suite.registrar(orchestrator)

        async def registers(stop, callers):
            register("late", _stop_at_once)

        register("registers", registers)
        assert await suite.run() == 1

    async def test_caught_late_registration_still_fails(self, orchestrator) -> None:
        suite = _suite()
        register = suite.registrar(orchestrator)
        refused: list[str] = []

        async def registers_in_background():
            await asyncio.sleep(0)
            try:
                register("late", _stop_at_once)
            except RegistrationClosedError as exc:
                refused.append(exc.description)

        register("a", _stop_at_once)
        task = asyncio.ensure_future(registers_in_background())
        assert await suite.run() == 1
        await task

        assert refused == ["late"]
        assert suite.report.passed == 1
        assert orchestrator.scenario_count == 1

    async def test_registrar_requested_after_run_began(self, orchestrator, app_dna) -> None:
        other = Orchestrator({"c": {"instances": {"carol": app_dna}}})
        suite = _suite()
        ran: list[str] = []

        def sneaked(stop, callers):
            ran.append("sneaked")
            stop()

        async def registers_elsewhere(stop, callers):
            suite.registrar(other)("sneaked in", sneaked)

        suite.registrar(orchestrator)("registers elsewhere", registers_elsewhere)

        assert await suite.run() == 1
        assert ran == []
        assert other.registry.sealed
        assert other.scenario_count == 0
        assert suite.registered_count == 1

    async def test_caught_registration_on_new_registrar_still_fails(self, orchestrator, app_dna) -> None:
        other = Orchestrator({"c": {"instances": {"carol": app_dna}}})
        suite = _suite()

        async def registers_elsewhere(stop, callers):
            try:
                suite.registrar(other)("sneaked in", _stop_at_once)
            except RegistrationClosedError:
                pass
            stop()

        suite.registrar(orchestrator)("registers elsewhere", registers_elsewhere)

        assert await suite.run() == 1
        assert suite.report.total == 1
        assert suite.report.passed == 1

    async def test_orchestrators_run_in_order(self, app_dna) -> None:
        order: list[str] = []

        def make(name):
            def closure(stop, callers):
                order.append(name)
                stop()
            return closure

        first = Orchestrator({"c": {"instances": {"alice": app_dna}}})
        second = Orchestrator({"c": {"instances": {"bob": app_dna}}})
        suite = _suite(min_expected_scenarios=2)
        suite.registrar(first)("one", make("one"))
        suite.registrar(second)("two", make("two"))

        assert await suite.run() == 0
        assert order == ["one", "two"]
        assert suite.report.total == 2

    async def test_configures_logging(self, orchestrator) -> None:
        suite = ScenarioSuite(config=HarnessConfig(log_format="json"))
        suite.registrar(orchestrator)("a", _stop_at_once)
        assert await suite.run() == 0
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
