"""
conductor_harness.orchestration.caller - Call Router
======================================================

Turns the instance names a scenario author chose ("alice", "bob") into
bound Callers. A Caller is a capability to call one instance on one
conductor, and nothing else: no lifecycle, no access to the handle.

    build_callers(handle, bridge)
        alice ──→ Caller(instance_id="alice::app-spec", conductor="conductor")
        bob   ──→ Caller(instance_id="bob::app-spec",   conductor="conductor")

Callers are built once per scenario run, after the conductor is up, and
become unusable when the scenario stops the conductor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from conductor_harness.core.exceptions import DuplicateInstanceError
from conductor_harness.orchestration.conductor_handle import ConductorHandle
from conductor_harness.orchestration.settle import SettleSignal, SyncBridge


@dataclass(frozen=True)
class Caller:
    """Calls into one instance. Derived by ``build_callers``, never built by hand.

    Attributes:
        name: Instance name as written in the conductor config.
        instance_id: Conductor-side id of the instance.
        conductor_name: Conductor hosting the instance.
        agent_id: Agent address, looked up once when the caller is built.
    """

    name: str
    instance_id: str
    conductor_name: str
    agent_id: str
    _bridge: SyncBridge = field(repr=False, compare=False)

    async def call(self, zome: str, capability: str, function: str, params: Any) -> Any:
        """Call and return the result as soon as this instance has it."""
        return await self._bridge.handle.call(self.instance_id, zome, capability, function, params)

    async def call_sync(self, zome: str, capability: str, function: str, params: Any) -> Any:
        """Call, wait for the call's effects to settle, then return the result."""
        return await self._bridge.call_and_wait_for_settle(
            self.instance_id, zome, capability, function, params
        )

    async def call_with_promise(
        self, zome: str, capability: str, function: str, params: Any
    ) -> tuple[Any, SettleSignal]:
        """Call and return ``(result, settle_signal)``; await the signal when ready."""
        return await self._bridge.call_with_signal(
            self.instance_id, zome, capability, function, params
        )


def build_callers(handle: ConductorHandle, bridge: SyncBridge) -> dict[str, Caller]:
    """Build one Caller per instance hosted by ``handle``.

    Raises:
        DuplicateInstanceError: Two instances share a name. Raised before any
            caller exists, so no call can be attempted.
    """
    callers: dict[str, Caller] = {}
    for inst in handle.config.instances:
        if inst.name in callers:
            raise DuplicateInstanceError(inst.name, details={"conductor": handle.name})
        callers[inst.name] = Caller(
            name=inst.name,
            instance_id=inst.instance_id,
            conductor_name=handle.name,
            agent_id=handle.agent_id(inst.instance_id),
            _bridge=bridge,
        )
    return callers
