"""
conductor_harness.integrations.conductor.simulated - In-Process Conductor
===========================================================================

A conductor stand-in that runs inside the test process. It reproduces the
one property scenarios care about: a call returns its local result at once,
while the call's effects reach OTHER instances only later, after which the
conductor pushes a "settled" notification.

How It Works:
    1. Every instance owns a local view (address → entry).
    2. ``commit_entry`` writes into the author's view immediately and queues
       the entry for gossip.
    3. Any call schedules a drain task. After ``gossip_delay_seconds`` the
       queue is delivered to every instance on the same network
       (``DnaConfig.network_id``), then the one-shot settle listeners fire.

    alice.commit_entry ──→ alice view ✔      bob view ✘
                             │
                      (gossip delay)
                             ▼
                         bob view ✔  ──→  settled notification

Zome functions are pluggable. A handler receives an ``InstanceContext`` and
the decoded params, and returns any JSON-serializable value (or a
``RawResponse`` to emit text that is not JSON)::

    def greet(ctx, params):
        return {"Ok": f"hello from {ctx.name}"}

    SimulatedConductor(config, zomes={"greeter": {"greet": greet}})
"""

from __future__ import annotations

import asyncio
import hashlib
import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Optional

from conductor_harness.core.config import SimulatedConductorConfig
from conductor_harness.core.exceptions import CallError, ConductorError
from conductor_harness.core.models import ConductorConfig, InstanceConfig
from conductor_harness.integrations.conductor.base import ConductorTransport


@dataclass(frozen=True)
class RawResponse:
    """A zome result that is returned to the caller verbatim, not JSON-encoded."""

    text: str


def entry_address(entry: Any) -> str:
    """Content address of an entry: the same entry always hashes the same."""
    digest = hashlib.sha256(json.dumps(entry, sort_keys=True).encode()).hexdigest()
    return f"Qm{digest[:44]}"


def agent_address(agent_name: str) -> str:
    digest = hashlib.sha256(agent_name.encode()).hexdigest()
    return f"HcS{digest[:40]}"


# =============================================================================
# Instance Context
# =============================================================================
class InstanceContext:
    """What a zome function can see and do from inside one instance."""

    def __init__(self, conductor: SimulatedConductor, config: InstanceConfig) -> None:
        self._conductor = conductor
        self._config = config

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def instance_id(self) -> str:
        return self._config.instance_id

    @property
    def agent_id(self) -> str:
        return agent_address(self._config.agent.name)

    @property
    def network_id(self) -> str:
        return self._config.dna.network_id

    def commit_entry(self, entry: Any) -> str:
        """Store ``entry`` locally and queue it for gossip. Returns its address."""
        return self._conductor._commit(self._config, entry)

    def get_entry(self, address: str) -> Optional[Any]:
        """Read from THIS instance's view; None until gossip has delivered it."""
        return self._conductor._views[self.instance_id].get(address)

    def call_bridge(self, handle: str, zome: str, function: str, params: dict[str, Any]) -> Any:
        """Call into the instance on the other end of bridge ``handle``."""
        for br in self._conductor.config.bridges:
            if br.caller_id == self.name and br.handle == handle:
                callee = self._conductor.config.instance(br.callee_id)
                return self._conductor._dispatch(callee, zome, function, params)
        raise CallError(
            message=f"Instance '{self.name}' has no bridge named '{handle}'",
            conductor_name=self._conductor.name,
            instance_id=self.instance_id,
            zome=zome,
            function=function,
            error_code="UNKNOWN_BRIDGE",
        )


# =============================================================================
# Default Zomes
# =============================================================================
ZomeFunction = Callable[[InstanceContext, dict[str, Any]], Any]


def _commit_entry(ctx: InstanceContext, params: dict[str, Any]) -> Any:
    return {"Ok": ctx.commit_entry(params["entry"])}


def _get_entry(ctx: InstanceContext, params: dict[str, Any]) -> Any:
    return {"Ok": ctx.get_entry(params["address"])}


DEFAULT_ZOMES: dict[str, dict[str, ZomeFunction]] = {
    "entries": {
        "commit_entry": _commit_entry,
        "get_entry": _get_entry,
    },
}


# =============================================================================
# Simulated Conductor
# =============================================================================
class SimulatedConductor(ConductorTransport):
    """In-process conductor with delayed gossip and settle notifications.

    Testing Support:
        - ``call_log`` records every call (instance, zome, function, params).
        - ``fail_next_call()`` makes the next call raise CallError, like a
          conductor process error would.
        - ``view()`` exposes an instance's local entries for assertions.

    Attributes:
        _zomes: zome name → function name → handler.
        _views: instance id → local entries.
        _pending: Entries committed but not yet gossiped.
        _drain_task: The running gossip/settle task, if any.
    """

    def __init__(
        self,
        config: ConductorConfig,
        sim_config: Optional[SimulatedConductorConfig] = None,
        zomes: Optional[Mapping[str, Mapping[str, ZomeFunction]]] = None,
    ) -> None:
        super().__init__(config)
        self._sim_config = sim_config or SimulatedConductorConfig()
        self._zomes: dict[str, dict[str, ZomeFunction]] = {
            name: dict(funcs) for name, funcs in (zomes or DEFAULT_ZOMES).items()
        }
        self._instances = {inst.instance_id: inst for inst in config.instances}
        self._views: dict[str, dict[str, Any]] = {}
        self._pending: list[tuple[str, str, Any]] = []
        self._drain_task: Optional[asyncio.Task[None]] = None
        self._running = False
        self._fail_next: Optional[str] = None
        self._call_log: list[dict[str, Any]] = []
        self._logger = self._logger.bind(impl="simulated")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def call_log(self) -> list[dict[str, Any]]:
        return list(self._call_log)

    def view(self, instance_id: str) -> dict[str, Any]:
        return dict(self._views.get(instance_id, {}))

    def fail_next_call(self, message: str = "Simulated conductor failure") -> None:
        self._fail_next = message

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        self._views = {instance_id: {} for instance_id in self._instances}
        self._pending = []
        self._running = True
        self._logger.info("simulated_conductor_started", instances=len(self._instances))

    async def stop(self) -> None:
        self._running = False
        task, self._drain_task = self._drain_task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self._logger.info("simulated_conductor_stopped")

    # =========================================================================
    # Calls
    # =========================================================================

    async def call_raw(
        self,
        instance_id: str,
        zome: str,
        capability: str,
        function: str,
        params_json: str,
    ) -> str:
        if not self._running:
            raise ConductorError(
                message=f"Simulated conductor '{self.name}' is not running",
                conductor_name=self.name,
                error_code="CONDUCTOR_NOT_RUNNING",
            )

        params = json.loads(params_json) if params_json else {}
        self._call_log.append(
            {
                "instance_id": instance_id,
                "zome": zome,
                "capability": capability,
                "function": function,
                "params": params,
            }
        )
        if self._config.debug_log:
            self._logger.debug(
                "simulated_call",
                instance_id=instance_id,
                zome=zome,
                capability=capability,
                function=function,
            )

        if self._fail_next is not None:
            message, self._fail_next = self._fail_next, None
            raise CallError(
                message=message,
                conductor_name=self.name,
                instance_id=instance_id,
                zome=zome,
                function=function,
                error_code="SIMULATED_FAILURE",
            )

        inst = self._instances.get(instance_id)
        if inst is None:
            raise CallError(
                message=f"No instance with id '{instance_id}'",
                conductor_name=self.name,
                instance_id=instance_id,
                zome=zome,
                function=function,
                error_code="UNKNOWN_INSTANCE",
            )

        try:
            result = self._dispatch(inst, zome, function, params)
        finally:
            self._schedule_drain()

        if isinstance(result, RawResponse):
            return result.text
        return json.dumps(result)

    def agent_id(self, instance_id: str) -> str:
        inst = self._instances.get(instance_id)
        if inst is None:
            raise ConductorError(
                message=f"No instance with id '{instance_id}'",
                conductor_name=self.name,
                error_code="UNKNOWN_INSTANCE",
                details={"instance_id": instance_id},
            )
        return agent_address(inst.agent.name)

    def _dispatch(
        self,
        inst: InstanceConfig,
        zome: str,
        function: str,
        params: dict[str, Any],
    ) -> Any:
        handler = self._zomes.get(zome, {}).get(function)
        if handler is None:
            raise CallError(
                message=f"zome '{zome}' has no function '{function}'",
                conductor_name=self.name,
                instance_id=inst.instance_id,
                zome=zome,
                function=function,
                error_code="UNKNOWN_FUNCTION",
            )
        try:
            return handler(InstanceContext(self, inst), params)
        except CallError:
            raise
        except Exception as exc:
            raise CallError(
                message=f"{zome}/{function} raised: {exc}",
                conductor_name=self.name,
                instance_id=inst.instance_id,
                zome=zome,
                function=function,
                error_code="ZOME_FUNCTION_ERROR",
                details={"error_type": type(exc).__name__},
            ) from exc

    # =========================================================================
    # Gossip and Settling
    # =========================================================================

    def _commit(self, author: InstanceConfig, entry: Any) -> str:
        address = entry_address(entry)
        self._views[author.instance_id][address] = entry
        self._pending.append((author.dna.network_id, address, entry))
        return address

    def _schedule_drain(self) -> None:
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while True:
            await asyncio.sleep(self._sim_config.gossip_delay_seconds)
            pending, self._pending = self._pending, []
            for network_id, address, entry in pending:
                for inst in self._instances.values():
                    if inst.dna.network_id == network_id:
                        self._views[inst.instance_id].setdefault(address, entry)
            if not self._pending:
                break
        self._notify_settled()
