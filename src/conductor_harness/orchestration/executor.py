"""
conductor_harness.orchestration.executor - Injected Test Executors
====================================================================

The runner owns conductor lifecycles. The executor owns "what a test is":
how a registered closure is invoked and where outcomes are reported.

    ScenarioExecutor (abstract)
        ├── ReportingExecutor  - closures take (stop, callers); outcomes are
        │                        logged and collected into a RunReport
        └── AssertionExecutor  - closures take (t, callers); ``t`` records
                                 assertions, failures fail the scenario and
                                 stop() is called for the closure afterwards
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any, Optional

import structlog

from conductor_harness.core.exceptions import ScenarioAssertionError
from conductor_harness.core.models import ScenarioClosure
from conductor_harness.core.state import RunReport, ScenarioRun

if TYPE_CHECKING:
    from conductor_harness.orchestration.scenario_runner import StopControl

logger = structlog.get_logger()

ScenarioBody = Callable[["StopControl", Mapping[str, Any]], Awaitable[None]]


async def invoke(closure: ScenarioClosure, *args: Any) -> None:
    """Call ``closure`` and await its result if it returned an awaitable."""
    result = closure(*args)
    if inspect.isawaitable(result):
        await result


class ScenarioExecutor(ABC):
    """Adapts closures into runnable bodies and receives every outcome."""

    @abstractmethod
    def prepare(self, description: str, closure: ScenarioClosure) -> ScenarioBody:
        """Return the coroutine function the runner calls as ``body(stop, callers)``."""
        ...

    @abstractmethod
    def report(self, run: ScenarioRun) -> None:
        """Receive a scenario run once it has reached STOPPED.

        An error raised here is logged by the runner and does not change the
        run or stop the queue.
        """
        ...


class ReportingExecutor(ScenarioExecutor):
    """Runs closures unchanged and collects their outcomes.

    Attributes:
        report_: Every run reported so far.
    """

    def __init__(self) -> None:
        self.report_ = RunReport()
        self._logger = logger.bind(component="executor")

    def prepare(self, description: str, closure: ScenarioClosure) -> ScenarioBody:
        async def body(stop: StopControl, callers: Mapping[str, Any]) -> None:
            await invoke(closure, stop, callers)

        return body

    def report(self, run: ScenarioRun) -> None:
        self.report_.add(run)
        if run.passed:
            self._logger.info(
                "scenario_passed",
                description=run.description,
                duration_seconds=run.duration_seconds,
            )
        else:
            self._logger.error(
                "scenario_failed",
                description=run.description,
                error=run.error,
                error_type=run.error_type,
            )


# =============================================================================
# Assertion-Style Executor
# =============================================================================
class ScenarioAssertions:
    """Assertion recorder handed to closures as their first argument.

    Assertions never raise on the spot; the scenario fails after the closure
    returns if any assertion failed, listing all of them.
    """

    def __init__(self, description: str) -> None:
        self.description = description
        self.passed: list[str] = []
        self.failures: list[str] = []

    def _record(self, condition: bool, message: str) -> bool:
        if condition:
            self.passed.append(message)
        else:
            self.failures.append(message)
        return condition

    def ok(self, value: Any, message: Optional[str] = None) -> bool:
        return self._record(bool(value), message or f"expected truthy value, got {value!r}")

    def equal(self, actual: Any, expected: Any, message: Optional[str] = None) -> bool:
        return self._record(
            actual == expected, message or f"expected {expected!r}, got {actual!r}"
        )

    def not_equal(self, actual: Any, unexpected: Any, message: Optional[str] = None) -> bool:
        return self._record(
            actual != unexpected, message or f"expected a value other than {unexpected!r}"
        )

    def fail(self, message: str) -> bool:
        return self._record(False, message)

    def raise_for_failures(self) -> None:
        if self.failures:
            raise ScenarioAssertionError(self.description, self.failures)


class AssertionExecutor(ReportingExecutor):
    """Closures take ``(t, callers)``; ``stop()`` is called for them at the end."""

    def prepare(self, description: str, closure: ScenarioClosure) -> ScenarioBody:
        async def body(stop: StopControl, callers: Mapping[str, Any]) -> None:
            t = ScenarioAssertions(description)
            await invoke(closure, t, callers)
            t.raise_for_failures()
            stop()

        return body
