"""
conductor_harness.orchestration.settle - Synchronization Bridge
=================================================================

Decouples "the call returned a local value" from "the call's effects are
observable on other instances".

A zome call returns as soon as the calling instance has run the function.
Gossip and validation of whatever the call wrote finish later, and the
conductor announces it with a single "settled" notification. The bridge
pairs each call with a ``SettleSignal`` that resolves on that notification:

    call_with_signal(...)
        │ 1. register one-shot settle listener on the handle
        │ 2. issue the call           ──→ CallResult (available now)
        ▼
    (result, signal)
                    ...gossip...
    settled notification ──→ signal resolves

Ordering:
    The listener is registered BEFORE the call is issued, and the result is
    returned no later than the signal resolves, never the other way round.

Single-Flight Contract:
    One notification fires every listener registered on the handle. The
    bridge does not pair notifications with particular calls, so scenarios
    that keep several calls in flight on one conductor cannot tell which
    call a notification belongs to. Await each signal before issuing the
    next call whose effects you want to observe.
"""

from __future__ import annotations

import asyncio
from collections.abc import Generator
from typing import TYPE_CHECKING, Any, Optional

import structlog

from conductor_harness.core.enums import SignalState

if TYPE_CHECKING:
    from conductor_harness.orchestration.conductor_handle import ConductorHandle

logger = structlog.get_logger()


# =============================================================================
# SettleSignal
# =============================================================================
# A one-shot future with explicit states. Rejection is stored as data and only
# raised from wait(); a rejected signal nobody awaits produces no asyncio
# "exception was never retrieved" warning.
# =============================================================================
class SettleSignal:
    """Resolves once, when a call's distributed effects have settled.

    States:
        PENDING  → not resolved yet (possibly never: there is no timeout,
                   wrap ``wait()`` in ``asyncio.wait_for`` if you need one)
        RESOLVED → the settled notification arrived
        REJECTED → the call failed, or its conductor stopped first

    Only the first ``resolve()``/``reject()`` takes effect.

    Example:
        >>> result, signal = await bridge.call_with_signal(...)
        >>> await asyncio.wait_for(signal.wait(), timeout=10)
    """

    def __init__(self, label: str = "") -> None:
        self.label = label
        self._state = SignalState.PENDING
        self._error: Optional[BaseException] = None
        self._event = asyncio.Event()

    @classmethod
    def rejected(cls, error: BaseException, label: str = "") -> SettleSignal:
        signal = cls(label)
        signal.reject(error)
        return signal

    @property
    def state(self) -> SignalState:
        return self._state

    @property
    def done(self) -> bool:
        return self._state != SignalState.PENDING

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def resolve(self) -> bool:
        """Mark settled. Returns False if the signal was already done."""
        if self.done:
            return False
        self._state = SignalState.RESOLVED
        self._event.set()
        return True

    def reject(self, error: BaseException) -> bool:
        """Mark failed with ``error``. Returns False if already done."""
        if self.done:
            return False
        self._state = SignalState.REJECTED
        self._error = error
        self._event.set()
        return True

    async def wait(self) -> None:
        """Wait for the signal; raise its error if it was rejected."""
        await self._event.wait()
        if self._error is not None:
            raise self._error

    def __await__(self) -> Generator[Any, None, None]:
        return self.wait().__await__()

    def __repr__(self) -> str:
        return f"SettleSignal(label={self.label!r}, state={self._state.value})"


# =============================================================================
# SyncBridge
# =============================================================================
class SyncBridge:
    """Issues calls through a ConductorHandle and pairs them with SettleSignals.

    Attributes:
        _handle: The conductor handle calls go through.
    """

    def __init__(self, handle: ConductorHandle) -> None:
        self._handle = handle
        self._logger = logger.bind(component="sync_bridge", conductor=handle.name)

    @property
    def handle(self) -> ConductorHandle:
        return self._handle

    async def call_with_signal(
        self,
        instance_id: str,
        zome: str,
        capability: str,
        function: str,
        params: Any,
    ) -> tuple[Any, SettleSignal]:
        """Call and return ``(result, signal)`` without waiting for settling.

        If the call raises, this does NOT raise: it logs the error and returns
        ``(None, signal)`` with the signal already rejected by that error, so
        a scenario can assert on the failure through the signal.
        """
        label = f"{instance_id}/{zome}/{function}"
        signal = SettleSignal(label)
        try:
            self._handle.register_settle_listener(signal)
            result = await self._handle.call(instance_id, zome, capability, function, params)
        except Exception as exc:
            self._logger.error(
                "scenario_call_failed",
                instance_id=instance_id,
                zome=zome,
                function=function,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            signal.reject(exc)
            return None, signal
        return result, signal

    async def call_and_wait_for_settle(
        self,
        instance_id: str,
        zome: str,
        capability: str,
        function: str,
        params: Any,
    ) -> Any:
        """Call, wait until the call's effects settled, then return the result.

        A rejected signal is logged and the (possibly None) result returned.
        """
        result, signal = await self.call_with_signal(
            instance_id, zome, capability, function, params
        )
        try:
            await signal.wait()
        except Exception as exc:
            self._logger.error(
                "settle_wait_failed",
                signal=signal.label,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        return result
