"""
Shared Test Fixtures for conductor-harness
=============================================

Reusable pytest fixtures, organized by layer:

    1. Configuration fixtures
    2. Topology fixtures (DNA, conductor configs)
    3. Transport fixtures (SimulatedConductor)
    4. Orchestration fixtures (ConductorHandle, SyncBridge)
"""

from __future__ import annotations

import pytest
import structlog

from conductor_harness.core.config import HarnessConfig, SimulatedConductorConfig
from conductor_harness.core.models import ConductorConfig, DnaConfig, conductor, dna
from conductor_harness.integrations.conductor.simulated import SimulatedConductor
from conductor_harness.orchestration.conductor_handle import ConductorHandle
from conductor_harness.orchestration.settle import SyncBridge


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo any setup_logging() a test triggered."""
    yield
    structlog.reset_defaults()


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def harness_config():
    """HarnessConfig with a fast gossip delay and no startup delay."""
    return HarnessConfig(simulated=SimulatedConductorConfig(gossip_delay_seconds=0.01))


# =============================================================================
# Topology
# =============================================================================

@pytest.fixture
def app_dna() -> DnaConfig:
    """The DNA every test instance runs."""
    return dna("dist/app_spec.dna.json", "app-spec")


@pytest.fixture
def conductor_config(app_dna) -> ConductorConfig:
    """One conductor hosting alice, bob and carol on the same DNA."""
    return conductor("conductor", {"alice": app_dna, "bob": app_dna, "carol": app_dna})


# =============================================================================
# Transports
# =============================================================================

@pytest.fixture
def simulated(conductor_config, harness_config):
    """Unstarted SimulatedConductor for ``conductor_config``."""
    return SimulatedConductor(conductor_config, sim_config=harness_config.simulated)


@pytest.fixture
async def started_simulated(simulated):
    """Started SimulatedConductor, stopped after the test."""
    await simulated.start()
    yield simulated
    await simulated.stop()


# =============================================================================
# Orchestration
# =============================================================================

@pytest.fixture
async def handle(conductor_config, simulated):
    """Started ConductorHandle over the simulated conductor."""
    h = ConductorHandle(conductor_config, simulated)
    await h.start()
    yield h
    await h.stop()


@pytest.fixture
def bridge(handle) -> SyncBridge:
    """SyncBridge for the started handle."""
    return SyncBridge(handle)
