"""
conductor_harness.core.enums - Type-Safe Enumerations
=======================================================

All enums inherit from both ``str`` and ``Enum`` so they log and serialize
as plain strings and compare equal to them: ``ScenarioStatus.RUNNING ==
"running"``.

    ┌─────────────────────────────────────────────────────────────────┐
    │  SCENARIO LIFECYCLE                                              │
    │    ScenarioStatus: PENDING → STARTING → RUNNING → ... → STOPPED  │
    ├─────────────────────────────────────────────────────────────────┤
    │  CONDUCTOR LIFECYCLE                                             │
    │    ConductorStatus: CREATED → STARTING → RUNNING → STOPPED       │
    ├─────────────────────────────────────────────────────────────────┤
    │  SYNCHRONIZATION                                                 │
    │    SignalState: PENDING → (RESOLVED | REJECTED)                  │
    └─────────────────────────────────────────────────────────────────┘
"""

from enum import Enum


# =============================================================================
# Scenario Status
# =============================================================================
# Per-scenario execution state machine:
#
#   PENDING → STARTING → RUNNING → (COMPLETED | FAILED) → STOPPED
#                 └──────────────→ FAILED (conductor failed to start)
#
# STOPPED is terminal and is reached once every conductor handle of the
# scenario has been stopped, whatever preceded it.
# =============================================================================
class ScenarioStatus(str, Enum):
    """Lifecycle states of one scenario execution."""

    PENDING = "pending"         # Registered, not yet picked up by the runner
    STARTING = "starting"       # Conductor handles are being brought up
    RUNNING = "running"         # The closure is executing
    COMPLETED = "completed"     # Closure returned (or stop() was called) cleanly
    FAILED = "failed"           # Start-up or closure raised
    STOPPED = "stopped"         # Handles released; terminal


# =============================================================================
# Conductor Status
# =============================================================================
class ConductorStatus(str, Enum):
    """Lifecycle states of a ConductorHandle."""

    CREATED = "created"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"       # stop() requested; calls are refused from here on
    STOPPED = "stopped"
    FAILED = "failed"           # start() raised


class SignalState(str, Enum):
    """States of a one-shot SettleSignal."""

    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"
