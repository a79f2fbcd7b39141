"""
conductor_harness.integrations.conductor.factory - Transport Factory
======================================================================

Picks the transport for a conductor:

    - an attached endpoint          → HttpConductorTransport at endpoint.url
    - config.port without endpoint  → HttpConductorTransport at localhost:port
    - neither                       → SimulatedConductor (in-process)

Usage:
    >>> transport = create_transport(conductor_config)
    >>> type(transport)  # SimulatedConductor
"""

from __future__ import annotations

from typing import Optional

from conductor_harness.core.config import HarnessConfig
from conductor_harness.core.models import ConductorConfig, ConductorEndpoint
from conductor_harness.integrations.conductor.base import ConductorTransport


def create_transport(
    config: ConductorConfig,
    endpoint: Optional[ConductorEndpoint] = None,
    harness_config: Optional[HarnessConfig] = None,
) -> ConductorTransport:
    """Create the transport serving ``config``.

    Args:
        config: Topology of the conductor.
        endpoint: Where an externally spawned conductor listens, if any.
        harness_config: Supplies HTTP and simulation settings.

    Returns:
        A ConductorTransport that has not been started yet.
    """
    harness_config = harness_config or HarnessConfig()

    url: Optional[str] = None
    if endpoint is not None:
        url = endpoint.url
    elif config.port is not None:
        url = f"http://localhost:{config.port}"

    if url is not None:
        from conductor_harness.integrations.conductor.http import HttpConductorTransport
        return HttpConductorTransport(config, url, http_config=harness_config.http)

    from conductor_harness.integrations.conductor.simulated import SimulatedConductor
    return SimulatedConductor(config, sim_config=harness_config.simulated)
