"""
Tests for conductor_harness.core.state
========================================

These tests verify the ScenarioRun state machine and RunReport:
    - Legal transitions and the timestamps/outcome they record
    - Illegal transitions raise InvalidTransitionError
    - RunReport counting

All tests are unit tests: pure data, no I/O.
"""

import pytest

from conductor_harness.core.enums import ScenarioStatus
from conductor_harness.core.exceptions import InvalidTransitionError
from conductor_harness.core.state import RunReport, ScenarioRun


def _run(description: str = "scenario") -> ScenarioRun:
    return ScenarioRun(scenario_id="id-1", description=description)


def _finished(passed: bool) -> ScenarioRun:
    run = _run().advance(ScenarioStatus.STARTING).advance(ScenarioStatus.RUNNING)
    if passed:
        run = run.advance(ScenarioStatus.COMPLETED)
    else:
        run = run.fail(RuntimeError("boom"))
    return run.advance(ScenarioStatus.STOPPED)


# =============================================================================
# Test: Transitions
# =============================================================================
class TestScenarioRunTransitions:
    """PENDING → STARTING → RUNNING → (COMPLETED | FAILED) → STOPPED."""

    def test_starts_pending(self) -> None:
        run = _run()
        assert run.status == ScenarioStatus.PENDING
        assert run.history == [ScenarioStatus.PENDING]
        assert run.outcome is None

    def test_happy_path(self) -> None:
        run = _finished(passed=True)
        assert run.history == [
            ScenarioStatus.PENDING,
            ScenarioStatus.STARTING,
            ScenarioStatus.RUNNING,
            ScenarioStatus.COMPLETED,
            ScenarioStatus.STOPPED,
        ]
        assert run.outcome == ScenarioStatus.COMPLETED
        assert run.passed
        assert run.is_terminal

    def test_advance_returns_copy(self) -> None:
        run = _run()
        started = run.advance(ScenarioStatus.STARTING)
        assert run.status == ScenarioStatus.PENDING
        assert started.status == ScenarioStatus.STARTING

    def test_timestamps(self) -> None:
        run = _run()
        assert run.started_at is None
        started = run.advance(ScenarioStatus.STARTING)
        assert started.started_at is not None
        assert started.duration_seconds is None
        done = _finished(passed=True)
        assert done.finished_at is not None
        assert done.duration_seconds >= 0

    def test_fail_records_error(self) -> None:
        run = _finished(passed=False)
        assert run.outcome == ScenarioStatus.FAILED
        assert run.error == "boom"
        assert run.error_type == "RuntimeError"
        assert not run.passed

    def test_starting_may_fail(self) -> None:
        """A conductor that never came up fails the scenario before RUNNING."""
        run = _run().advance(ScenarioStatus.STARTING).fail(OSError("no conductor"))
        assert run.status == ScenarioStatus.FAILED
        assert run.advance(ScenarioStatus.STOPPED).is_terminal

    @pytest.mark.parametrize(
        "path",
        [
            [ScenarioStatus.RUNNING],
            [ScenarioStatus.STARTING, ScenarioStatus.COMPLETED],
            [ScenarioStatus.STARTING, ScenarioStatus.STOPPED],
        ],
    )
    def test_illegal_transitions(self, path) -> None:
        run = _run()
        with pytest.raises(InvalidTransitionError):
            for status in path:
                run = run.advance(status)

    def test_stopped_is_final(self) -> None:
        with pytest.raises(InvalidTransitionError) as exc_info:
            _finished(passed=True).advance(ScenarioStatus.RUNNING)
        assert exc_info.value.error_code == "INVALID_TRANSITION"


# =============================================================================
# Test: RunReport
# =============================================================================
class TestRunReport:

    def test_empty_report(self) -> None:
        report = RunReport()
        assert report.total == 0
        assert report.all_passed

    def test_counts(self) -> None:
        report = RunReport()
        report.add(_finished(passed=True))
        report.add(_finished(passed=False))
        report.add(_finished(passed=True))
        assert report.total == 3
        assert report.passed == 2
        assert report.failed == 1
        assert not report.all_passed
        assert [r.error for r in report.failures()] == ["boom"]

    def test_extend(self) -> None:
        a = RunReport(runs=[_finished(passed=True)])
        b = RunReport(runs=[_finished(passed=False)])
        a.extend(b)
        assert a.total == 2
        assert a.failed == 1
