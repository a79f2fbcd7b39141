"""
conductor_harness.integrations.conductor - Conductor Transports
=================================================================

    - ConductorTransport:     abstract raw RPC + settle-notification surface
    - SimulatedConductor:     in-process conductor with delayed gossip
    - HttpConductorTransport: JSON-RPC client for an attached conductor
    - create_transport():     picks one from configuration
"""

from conductor_harness.integrations.conductor.base import ConductorTransport, SettledCallback
from conductor_harness.integrations.conductor.factory import create_transport
from conductor_harness.integrations.conductor.http import HttpConductorTransport
from conductor_harness.integrations.conductor.simulated import (
    DEFAULT_ZOMES,
    InstanceContext,
    RawResponse,
    SimulatedConductor,
    entry_address,
)

__all__ = [
    "ConductorTransport",
    "SettledCallback",
    "create_transport",
    "HttpConductorTransport",
    "SimulatedConductor",
    "InstanceContext",
    "RawResponse",
    "DEFAULT_ZOMES",
    "entry_address",
]
