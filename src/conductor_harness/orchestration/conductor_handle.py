"""
conductor_harness.orchestration.conductor_handle - Conductor Handle
=====================================================================

Lifecycle and call surface for ONE conductor during ONE scenario.

The handle wraps a ConductorTransport by composition: it adds status
tracking, JSON encoding/decoding and error logging around the transport's
raw primitives, and never patches or reaches into the transport itself.

Lifecycle:
    CREATED → STARTING → RUNNING → STOPPING → STOPPED
                 └─────→ FAILED ──────────────→ STOPPED

    - start() twice is a programmer error (ConductorError ALREADY_STARTED).
    - stop() is always callable, including after a failed start, and is
      idempotent.
    - Once stopping has begun, calls are refused and outstanding settle
      signals are rejected so nobody waits on a conductor that is gone.

Call Results:
    The conductor answers with text. JSON text is decoded; anything else is
    handed back verbatim with a warning. Callers must handle either shape.
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from conductor_harness.core.enums import ConductorStatus
from conductor_harness.core.exceptions import ConductorError, SettleError
from conductor_harness.core.models import ConductorConfig
from conductor_harness.integrations.conductor.base import ConductorTransport
from conductor_harness.orchestration.settle import SettleSignal

logger = structlog.get_logger()


class ConductorHandle:
    """Owns one conductor process or connection for the length of a scenario.

    Attributes:
        _config: Topology the conductor hosts.
        _transport: Raw RPC surface (simulated or attached).
        _status: Current lifecycle state.
        _listeners: Settle signals registered and not yet done.

    Example:
        >>> handle = ConductorHandle(config, create_transport(config))
        >>> await handle.start()
        >>> result = await handle.call("alice::app", "entries", "main", "get_entry", {...})
        >>> await handle.stop()
    """

    def __init__(self, config: ConductorConfig, transport: ConductorTransport) -> None:
        self._config = config
        self._transport = transport
        self._status = ConductorStatus.CREATED
        self._listeners: list[SettleSignal] = []
        self._logger = logger.bind(component="conductor_handle", conductor=config.name)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def config(self) -> ConductorConfig:
        return self._config

    @property
    def transport(self) -> ConductorTransport:
        return self._transport

    @property
    def status(self) -> ConductorStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status == ConductorStatus.RUNNING

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Bring the conductor up; returns once it reports ready.

        Raises:
            ConductorError: If the handle was already started, or the
                transport failed to start (status becomes FAILED).
        """
        if self._status != ConductorStatus.CREATED:
            raise ConductorError(
                message=f"Conductor '{self.name}' was already started",
                conductor_name=self.name,
                error_code="ALREADY_STARTED",
                details={"status": self._status.value},
            )

        self._status = ConductorStatus.STARTING
        self._logger.info("conductor_starting", instances=len(self._config.instances))
        try:
            await self._transport.start()
        except Exception as exc:
            self._status = ConductorStatus.FAILED
            self._logger.error(
                "conductor_start_failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise
        self._status = ConductorStatus.RUNNING
        self._logger.info("conductor_ready")

    def begin_stop(self) -> None:
        """Refuse further calls and reject pending settle signals, right now.

        Synchronous, so a scenario's ``stop()`` takes effect before the
        closure reaches its next await.
        """
        if self._status in (ConductorStatus.STOPPING, ConductorStatus.STOPPED):
            return
        self._status = ConductorStatus.STOPPING
        pending, self._listeners = self._listeners, []
        for signal in pending:
            signal.reject(
                SettleError(
                    message=f"Conductor '{self.name}' stopped before the call settled",
                    error_code="CONDUCTOR_STOPPED",
                    details={"conductor": self.name, "signal": signal.label},
                )
            )

    async def stop(self) -> None:
        """Shut the conductor down; returns once the transport has closed.

        Transport errors are logged and re-raised, but the handle ends in
        STOPPED either way.
        """
        if self._status == ConductorStatus.STOPPED:
            return
        self.begin_stop()
        try:
            await self._transport.stop()
        except Exception as exc:
            self._logger.error(
                "conductor_stop_failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise
        finally:
            self._status = ConductorStatus.STOPPED
            self._logger.info("conductor_stopped")

    # =========================================================================
    # Calls
    # =========================================================================

    async def call(
        self,
        instance_id: str,
        zome: str,
        capability: str,
        function: str,
        params: Any,
    ) -> Any:
        """Call a zome function and return its decoded result.

        Returns:
            The decoded JSON value, or the raw response text if it is not
            valid JSON.

        Raises:
            ConductorError: The handle is not running, or the transport
                failed. Transport errors are logged before propagating.
        """
        if not self.is_running:
            raise ConductorError(
                message=f"Conductor '{self.name}' is not running ({self._status.value})",
                conductor_name=self.name,
                error_code="CONDUCTOR_NOT_RUNNING",
                details={"instance_id": instance_id, "zome": zome, "function": function},
            )

        params_json = json.dumps(params)
        try:
            raw = await self._transport.call_raw(
                instance_id, zome, capability, function, params_json
            )
        except Exception as exc:
            self._logger.error(
                "zome_call_exception",
                instance_id=instance_id,
                zome=zome,
                capability=capability,
                function=function,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise

        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            self._logger.warning(
                "call_result_not_json",
                instance_id=instance_id,
                zome=zome,
                function=function,
                raw=raw,
            )
            return raw

    def agent_id(self, instance_id: str) -> str:
        """Agent address of ``instance_id``. Pure lookup."""
        return self._transport.agent_id(instance_id)

    # =========================================================================
    # Settle Listeners
    # =========================================================================

    def register_settle_listener(self, signal: SettleSignal) -> None:
        """Resolve ``signal`` on the conductor's next settled notification."""
        self._listeners = [s for s in self._listeners if not s.done]
        if self._listeners:
            self._logger.warning(
                "overlapping_settle_listeners",
                pending=len(self._listeners),
                signal=signal.label,
            )
        self._listeners.append(signal)
        self._transport.register_callback(signal.resolve)
