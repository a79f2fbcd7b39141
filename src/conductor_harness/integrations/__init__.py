"""
conductor_harness.integrations - External Collaborators
=========================================================

Adapters for the processes scenarios run against. Each sits behind an
interface so a scenario can move between the simulated conductor and a
real, attached one without changing.

Sub-packages:
    conductor/ - Conductor transports (simulated, HTTP)
"""
