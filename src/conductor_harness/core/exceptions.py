"""
conductor_harness.core.exceptions - Custom Exception Hierarchy
================================================================

Every error the harness raises on purpose is a ``HarnessError`` carrying a
machine-readable ``error_code`` and a ``details`` dict, so the run driver and
executors can log structured context instead of bare strings.

Exception Hierarchy:
    HarnessError (base)
        ├── ConfigurationError           - Fatal setup problems
        │     ├── DuplicateInstanceError - Two instances share a name
        │     ├── RegistrationClosedError - Scenario registered after run()
        │     └── ScenarioCountError     - Fewer scenarios than the minimum
        ├── ConductorError               - Conductor process / transport failures
        │     └── CallError              - A single zome call failed
        ├── SettleError                  - Settle signal rejected (conductor stopped)
        ├── ScenarioAssertionError       - Assertions inside a scenario failed
        └── InvalidTransitionError       - Illegal ScenarioRun state change

Error Handling Flow:
    Topology errors           → raised while building configs, before any run
    Count / late registration → fatal; the suite exits non-zero
    Conductor / call errors   → logged, propagated to the awaiting closure
    Closure errors            → caught per scenario, reported to the executor
    Teardown errors           → logged, never mask the scenario outcome
"""

from __future__ import annotations

from typing import Any, Optional


# =============================================================================
# Base Exception
# =============================================================================
class HarnessError(Exception):
    """Base exception for all conductor-harness errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable code, UPPER_SNAKE_CASE.
        details: Extra debugging context (instance ids, counts, urls...).
    """

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize this exception for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


# =============================================================================
# Configuration Errors
# =============================================================================
# All of these are fatal: the suite reports them and exits non-zero. None of
# them is ever retried.
# =============================================================================
class ConfigurationError(HarnessError):
    """Raised when a conductor topology or harness setting is invalid.

    Example:
        >>> raise ConfigurationError(
        ...     message="Bridge 'b1' references unknown instance 'dave'",
        ...     error_code="UNKNOWN_BRIDGE_INSTANCE",
        ...     details={"bridge": "b1", "instance": "dave"},
        ... )
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIG_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class DuplicateInstanceError(ConfigurationError):
    """Raised when two instances in one caller map share the same name.

    Detected when a conductor topology is built, or when callers are routed.
    Either way this happens before any call is attempted.

    Attributes:
        instance_name: The name that appeared more than once.
    """

    def __init__(
        self,
        instance_name: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["instance_name"] = instance_name

        super().__init__(
            message=(
                f"instance with duplicate name '{instance_name}', please give "
                f"one of these instances a new name, e.g. "
                f"instance(agent, dna, \"newName\")"
            ),
            error_code="DUPLICATE_INSTANCE",
            details=enriched_details,
        )

        self.instance_name = instance_name


class RegistrationClosedError(ConfigurationError):
    """Raised when a scenario is registered after its registry was sealed.

    All scenarios must be declared up front, before any orchestrator starts
    running. A late registration is a fatal, process-level error.
    """

    def __init__(
        self,
        description: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["description"] = description

        super().__init__(
            message=(
                f"Cannot register scenario '{description}': registration is "
                f"closed because run() has already begun"
            ),
            error_code="REGISTRATION_CLOSED",
            details=enriched_details,
        )

        self.description = description


class ScenarioCountError(ConfigurationError):
    """Raised when fewer scenarios are registered than the configured minimum.

    This guards against accidentally disabling test coverage.

    Attributes:
        registered: How many scenarios were actually registered.
        minimum: The configured lower bound.
    """

    def __init__(self, registered: int, minimum: int) -> None:
        super().__init__(
            message=(
                f"Expected at least {minimum} scenarios, but only "
                f"{registered} were registered!"
            ),
            error_code="SCENARIO_COUNT_BELOW_MINIMUM",
            details={"registered": registered, "minimum": minimum},
        )

        self.registered = registered
        self.minimum = minimum


# =============================================================================
# Conductor Errors
# =============================================================================
class ConductorError(HarnessError):
    """Raised when a conductor process or its connection misbehaves.

    Attributes:
        conductor_name: Name of the conductor the error came from.
    """

    def __init__(
        self,
        message: str,
        conductor_name: str,
        error_code: str = "CONDUCTOR_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["conductor_name"] = conductor_name

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.conductor_name = conductor_name


class CallError(ConductorError):
    """Raised when a single zome function call fails inside the conductor.

    Example:
        >>> raise CallError(
        ...     message="zome 'blog' has no function 'create_post'",
        ...     conductor_name="conductor",
        ...     instance_id="alice::app-spec",
        ...     zome="blog",
        ...     function="create_post",
        ...     error_code="UNKNOWN_FUNCTION",
        ... )
    """

    def __init__(
        self,
        message: str,
        conductor_name: str,
        instance_id: str,
        zome: str,
        function: str,
        error_code: str = "CALL_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details.update(
            {"instance_id": instance_id, "zome": zome, "function": function}
        )

        super().__init__(
            message=message,
            conductor_name=conductor_name,
            error_code=error_code,
            details=enriched_details,
        )

        self.instance_id = instance_id
        self.zome = zome
        self.function = function


class SettleError(HarnessError):
    """Raised by a settle signal that can no longer resolve."""

    def __init__(
        self,
        message: str,
        error_code: str = "SETTLE_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Scenario Errors
# =============================================================================
class ScenarioAssertionError(HarnessError):
    """Raised when one or more assertions inside a scenario closure failed.

    Attributes:
        failures: The failed assertion messages, in the order they were made.
    """

    def __init__(self, description: str, failures: list[str]) -> None:
        super().__init__(
            message=(
                f"Scenario '{description}' had {len(failures)} failed "
                f"assertion(s): " + "; ".join(failures)
            ),
            error_code="ASSERTION_FAILED",
            details={"description": description, "failures": list(failures)},
        )

        self.failures = list(failures)


class InvalidTransitionError(HarnessError):
    """Raised when a ScenarioRun is moved along an edge its state machine lacks."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            message=f"Invalid scenario state transition: {current} -> {target}",
            error_code="INVALID_TRANSITION",
            details={"current": current, "target": target},
        )
