"""
conductor_harness.core.state - Scenario Execution State
=========================================================

Runtime state produced while scenarios execute, as opposed to the static
topology in ``core.models``.

    ScenarioRun → the lifecycle record of ONE scenario execution
    RunReport   → every ScenarioRun an executor has been told about

ScenarioRun is immutable: each transition returns an updated copy, the same
way the rest of the harness treats its models as snapshots.

State Machine:
    PENDING → STARTING → RUNNING → COMPLETED ─┐
                  │          └───→ FAILED ────┼──→ STOPPED
                  └──────────────→ FAILED ────┘
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from conductor_harness.core.enums import ScenarioStatus
from conductor_harness.core.exceptions import InvalidTransitionError


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Allowed Transitions
# =============================================================================
_TRANSITIONS: dict[ScenarioStatus, frozenset[ScenarioStatus]] = {
    ScenarioStatus.PENDING: frozenset({ScenarioStatus.STARTING}),
    ScenarioStatus.STARTING: frozenset({ScenarioStatus.RUNNING, ScenarioStatus.FAILED}),
    ScenarioStatus.RUNNING: frozenset({ScenarioStatus.COMPLETED, ScenarioStatus.FAILED}),
    ScenarioStatus.COMPLETED: frozenset({ScenarioStatus.STOPPED}),
    ScenarioStatus.FAILED: frozenset({ScenarioStatus.STOPPED}),
    ScenarioStatus.STOPPED: frozenset(),
}


class ScenarioRun(BaseModel):
    """Lifecycle record of one scenario execution.

    Attributes:
        scenario_id: Id of the ScenarioDefinition that was executed.
        description: Scenario description, used in every report line.
        status: Current state.
        outcome: COMPLETED or FAILED once known; survives the move to STOPPED
            so reports can tell how a stopped scenario ended.
        error: Message of the error that failed the scenario, if any.
        error_type: Class name of that error.
        history: Every status the run has been in, in order.
        started_at: When the run left PENDING.
        finished_at: When the run reached STOPPED.
    """

    scenario_id: str
    description: str
    status: ScenarioStatus = Field(default=ScenarioStatus.PENDING)
    outcome: Optional[ScenarioStatus] = Field(default=None)
    error: Optional[str] = Field(default=None)
    error_type: Optional[str] = Field(default=None)
    history: list[ScenarioStatus] = Field(default_factory=lambda: [ScenarioStatus.PENDING])
    started_at: Optional[datetime] = Field(default=None)
    finished_at: Optional[datetime] = Field(default=None)

    def advance(self, target: ScenarioStatus) -> ScenarioRun:
        """Return a copy moved to ``target``.

        Raises:
            InvalidTransitionError: If the state machine has no such edge.
        """
        if target not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status.value, target.value)

        update: dict[str, object] = {
            "status": target,
            "history": [*self.history, target],
        }
        if target == ScenarioStatus.STARTING:
            update["started_at"] = _now()
        elif target in (ScenarioStatus.COMPLETED, ScenarioStatus.FAILED):
            update["outcome"] = target
        elif target == ScenarioStatus.STOPPED:
            update["finished_at"] = _now()
        return self.model_copy(update=update)

    def fail(self, error: BaseException) -> ScenarioRun:
        """Return a copy moved to FAILED, recording ``error``."""
        failed = self.advance(ScenarioStatus.FAILED)
        return failed.model_copy(
            update={"error": str(error), "error_type": type(error).__name__}
        )

    @property
    def passed(self) -> bool:
        return self.outcome == ScenarioStatus.COMPLETED

    @property
    def is_terminal(self) -> bool:
        return self.status == ScenarioStatus.STOPPED

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()


class RunReport(BaseModel):
    """Collected outcomes of every scenario run reported to an executor."""

    runs: list[ScenarioRun] = Field(default_factory=list)

    def add(self, run: ScenarioRun) -> None:
        self.runs.append(run)

    def extend(self, other: RunReport) -> None:
        self.runs.extend(other.runs)

    @property
    def total(self) -> int:
        return len(self.runs)

    @property
    def passed(self) -> int:
        return sum(1 for run in self.runs if run.passed)

    @property
    def failed(self) -> int:
        return self.total - self.passed

    @property
    def all_passed(self) -> bool:
        return self.failed == 0

    def failures(self) -> list[ScenarioRun]:
        return [run for run in self.runs if not run.passed]
