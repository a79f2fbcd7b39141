"""
conductor_harness.core.models - Topology and Scenario Models
==============================================================

Pydantic models describing WHAT a scenario runs against: which agents, which
application packages (DNAs), which instances bind the two, which bridges
connect instances, and which conductor hosts them.

Model Hierarchy:
    AgentConfig        → A cryptographic actor, identified by name
    DnaConfig          → An application package + optional uniqueness qualifier
    InstanceConfig     → (agent, dna, name): one running binding
    BridgeConfig       → Authorized cross-instance call path
    ConductorConfig    → Everything one conductor hosts
    ConductorEndpoint  → Where an externally spawned conductor listens
    ScenarioDefinition → A registered test closure plus its topology

All models are frozen: a topology is built once and only read afterwards,
so several scenarios can share the same ConductorConfig safely.

Builder helpers (``agent``, ``dna``, ``instance``, ``bridge``,
``conductor``) mirror how scenario files are usually written::

    app = dna("dist/app_spec.dna.json", "app-spec")
    config = conductor("conductor", {"alice": app, "bob": app, "carol": app})
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from conductor_harness.core.exceptions import ConfigurationError, DuplicateInstanceError


def make_instance_id(agent_name: str, dna_name: str) -> str:
    """Build the conductor-side instance id for an agent/DNA pair."""
    return f"{agent_name}::{dna_name}"


# =============================================================================
# Agents, DNAs, Instances
# =============================================================================
class AgentConfig(BaseModel):
    """An agent identity, unique by name within a conductor."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Agent name")


class DnaConfig(BaseModel):
    """Reference to a packaged application.

    Attributes:
        path: Filesystem path (or identifier) of the package.
        name: Logical name; defaults to the path.
        uuid: Optional uniqueness qualifier. The same package loaded with two
            different uuids forms two separate networks.
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(min_length=1, description="Path or identifier of the package")
    name: str = Field(min_length=1, description="Logical DNA name")
    uuid: Optional[str] = Field(default=None, description="Network uniqueness qualifier")

    @property
    def network_id(self) -> str:
        """Instances with equal network ids share one network."""
        if self.uuid is None:
            return self.name
        return f"{self.name}:{self.uuid}"


class InstanceConfig(BaseModel):
    """One application package bound to one agent, addressable by name."""

    model_config = ConfigDict(frozen=True)

    agent: AgentConfig
    dna: DnaConfig
    name: str = Field(min_length=1, description="Name used by scenario closures")

    @property
    def instance_id(self) -> str:
        return make_instance_id(self.agent.name, self.dna.name)


class BridgeConfig(BaseModel):
    """Authorizes ``caller_id`` to call into ``callee_id`` under ``handle``."""

    model_config = ConfigDict(frozen=True)

    handle: str = Field(min_length=1)
    caller_id: str = Field(min_length=1, description="Calling instance name")
    callee_id: str = Field(min_length=1, description="Called instance name")


# =============================================================================
# Conductor Configuration
# =============================================================================
# Validation happens here, once, at configuration time. The router checks
# name uniqueness again when it builds callers, but a topology that reaches a
# running conductor is already known to be consistent.
# =============================================================================
class ConductorConfig(BaseModel):
    """Everything one conductor process hosts during a scenario.

    Attributes:
        name: Conductor name; the key of the caller map handed to closures.
        instances: Hosted instances. Names must be unique.
        bridges: Cross-instance call paths between hosted instances.
        port: Optional local port of an already-listening conductor.
        debug_log: Ask the conductor for verbose call logging.

    Raises:
        DuplicateInstanceError: Two instances share a name.
        ConfigurationError: A bridge references an unknown instance, or the
            same caller declares one bridge handle twice.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    instances: tuple[InstanceConfig, ...] = Field(default=())
    bridges: tuple[BridgeConfig, ...] = Field(default=())
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    debug_log: bool = Field(default=False)

    @model_validator(mode="after")
    def _check_topology(self) -> ConductorConfig:
        names: set[str] = set()
        ids: set[str] = set()
        for inst in self.instances:
            if inst.name in names:
                raise DuplicateInstanceError(inst.name, details={"conductor": self.name})
            if inst.instance_id in ids:
                raise ConfigurationError(
                    message=(
                        f"Instance '{inst.name}' binds agent '{inst.agent.name}' "
                        f"to DNA '{inst.dna.name}' a second time"
                    ),
                    error_code="DUPLICATE_INSTANCE_ID",
                    details={"conductor": self.name, "instance_id": inst.instance_id},
                )
            names.add(inst.name)
            ids.add(inst.instance_id)

        handles: set[tuple[str, str]] = set()
        for br in self.bridges:
            for side in (br.caller_id, br.callee_id):
                if side not in names:
                    raise ConfigurationError(
                        message=(
                            f"Bridge '{br.handle}' references unknown "
                            f"instance '{side}'"
                        ),
                        error_code="UNKNOWN_BRIDGE_INSTANCE",
                        details={"conductor": self.name, "bridge": br.handle, "instance": side},
                    )
            key = (br.caller_id, br.handle)
            if key in handles:
                raise ConfigurationError(
                    message=(
                        f"Instance '{br.caller_id}' declares bridge handle "
                        f"'{br.handle}' more than once"
                    ),
                    error_code="DUPLICATE_BRIDGE",
                    details={"conductor": self.name, "bridge": br.handle},
                )
            handles.add(key)
        return self

    def instance(self, name: str) -> InstanceConfig:
        """Look up a hosted instance by name."""
        for inst in self.instances:
            if inst.name == name:
                return inst
        raise ConfigurationError(
            message=f"Conductor '{self.name}' hosts no instance named '{name}'",
            error_code="UNKNOWN_INSTANCE",
            details={"conductor": self.name, "instance": name},
        )


class ConductorEndpoint(BaseModel):
    """Network address of an externally spawned conductor."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    url: str = Field(min_length=1)


# =============================================================================
# Scenario Definition
# =============================================================================
# The closure receives (stop, callers). When an executor adapts the closure
# (e.g. AssertionExecutor passes an assertion object first) the adaptation
# happens at run time; the definition keeps the closure exactly as written.
# =============================================================================
ScenarioClosure = Callable[..., Union[Awaitable[None], None]]


def _generate_id() -> str:
    return str(uuid4())


class ScenarioDefinition(BaseModel):
    """A registered scenario: description, closure and conductor topology."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    scenario_id: str = Field(default_factory=_generate_id)
    description: str = Field(min_length=1)
    closure: ScenarioClosure
    conductors: tuple[ConductorConfig, ...] = Field(default=())
    only: bool = Field(default=False, description="Run exclusively with other 'only' scenarios")


# =============================================================================
# Builder Helpers
# =============================================================================
def agent(name: str) -> AgentConfig:
    return AgentConfig(name=name)


def dna(path: str, name: Optional[str] = None, uuid: Optional[str] = None) -> DnaConfig:
    """Reference a DNA package. ``name`` defaults to ``path``."""
    return DnaConfig(path=path, name=name or path, uuid=uuid)


def instance(agent: AgentConfig, dna: DnaConfig, name: Optional[str] = None) -> InstanceConfig:
    """Bind ``dna`` to ``agent``. ``name`` defaults to the agent's name."""
    return InstanceConfig(agent=agent, dna=dna, name=name or agent.name)


def bridge(handle: str, caller: str, callee: str) -> BridgeConfig:
    return BridgeConfig(handle=handle, caller_id=caller, callee_id=callee)


def conductor(
    name: str,
    instances: Union[Mapping[str, Union[DnaConfig, InstanceConfig]], Sequence[InstanceConfig]],
    bridges: Sequence[BridgeConfig] = (),
    port: Optional[int] = None,
    debug_log: bool = False,
) -> ConductorConfig:
    """Build a ConductorConfig from a name → DNA mapping or an instance list.

    In the mapping form each entry becomes an instance whose agent is named
    after the instance::

        conductor("conductor", {"alice": app, "bob": app})
    """
    resolved: list[InstanceConfig] = []
    if isinstance(instances, Mapping):
        for inst_name, value in instances.items():
            if isinstance(value, InstanceConfig):
                resolved.append(value.model_copy(update={"name": inst_name}))
            else:
                resolved.append(InstanceConfig(agent=agent(inst_name), dna=value, name=inst_name))
    else:
        resolved.extend(instances)

    return ConductorConfig(
        name=name,
        instances=tuple(resolved),
        bridges=tuple(bridges),
        port=port,
        debug_log=debug_log,
    )


def coerce_conductor(name: str, value: Any) -> ConductorConfig:
    """Accept a ConductorConfig or a ``{"instances": ..., "bridges": ...}`` dict."""
    if isinstance(value, ConductorConfig):
        if value.name != name:
            return value.model_copy(update={"name": name})
        return value
    if isinstance(value, Mapping):
        return conductor(
            name,
            value.get("instances", {}),
            bridges=value.get("bridges", ()),
            port=value.get("port"),
            debug_log=value.get("debug_log", False),
        )
    raise ConfigurationError(
        message=f"Conductor '{name}' must be a ConductorConfig or a mapping",
        error_code="INVALID_CONDUCTOR_CONFIG",
        details={"conductor": name, "type": type(value).__name__},
    )
