"""
conductor_harness.integrations.conductor.base - Conductor Transport Interface
===============================================================================

The contract between the harness and a conductor process. The harness never
knows whether it is talking to a real conductor over the network or to the
in-process simulation: ConductorHandle only ever sees this interface.

    ┌─────────────────┐   call_raw()    ┌─────────────────────┐
    │ ConductorHandle │ ──────────────→ │ ConductorTransport  │
    │                 │                 │   (abstract)        │
    │                 │ ←── settled ─── │                     │
    └─────────────────┘   callbacks     └──────────┬──────────┘
                                                   │
                                      ┌────────────┴────────────┐
                                 ┌────▼──────┐          ┌───────▼──────┐
                                 │ Simulated │          │    HTTP      │
                                 │ Conductor │          │ (attached)   │
                                 └───────────┘          └──────────────┘

Completion Notifications:
    A conductor pushes one "settled" notification each time all network and
    validation work triggered by calls has drained. Listeners registered via
    ``register_callback()`` are one-shot: the next notification fires every
    registered listener and clears the list.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable

import structlog

from conductor_harness.core.models import ConductorConfig

logger = structlog.get_logger()

SettledCallback = Callable[[], None]


class ConductorTransport(ABC):
    """Abstract raw RPC surface of one conductor.

    What the base class provides:
        - The conductor configuration and its name
        - One-shot settle listener bookkeeping (``register_callback``,
          ``_notify_settled``)

    What subclasses must implement:
        - start() / stop(): bring-up and tear-down of the process or connection
        - call_raw(): one request/response round trip, returning the
          conductor's raw (normally JSON) response text
        - agent_id(): static lookup of an instance's agent address

    Attributes:
        _config: The conductor topology this transport serves.
        _callbacks: Pending one-shot settle listeners.
    """

    def __init__(self, config: ConductorConfig) -> None:
        self._config = config
        self._callbacks: list[SettledCallback] = []
        self._logger = logger.bind(component="conductor_transport", conductor=config.name)

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def config(self) -> ConductorConfig:
        return self._config

    @property
    def pending_callbacks(self) -> int:
        return len(self._callbacks)

    # =========================================================================
    # Abstract Methods
    # =========================================================================

    @abstractmethod
    async def start(self) -> None:
        """Bring the conductor up (or connect to it) and return once ready."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Shut the conductor down (or disconnect). Safe to call repeatedly."""
        ...

    @abstractmethod
    async def call_raw(
        self,
        instance_id: str,
        zome: str,
        capability: str,
        function: str,
        params_json: str,
    ) -> str:
        """Call ``zome/function`` on ``instance_id`` and return the raw response.

        Raises:
            ConductorError: The conductor could not be reached.
            CallError: The conductor reported that the call failed.
        """
        ...

    @abstractmethod
    def agent_id(self, instance_id: str) -> str:
        """Return the agent address of ``instance_id``. No I/O."""
        ...

    # =========================================================================
    # Completion Notifications
    # =========================================================================

    def register_callback(self, callback: SettledCallback) -> None:
        """Register a listener for the NEXT settled notification only."""
        self._callbacks.append(callback)

    def _notify_settled(self) -> int:
        """Fire and clear every registered listener. Returns how many fired."""
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as exc:
                self._logger.error(
                    "settle_callback_error",
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
        if callbacks:
            self._logger.debug("settled_notified", listeners=len(callbacks))
        return len(callbacks)
