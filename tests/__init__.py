"""
conductor-harness Test Suite
==============================

Test organization mirrors the source code structure:
    tests/
    ├── test_core/          → conductor_harness.core (config, models, state, logging)
    ├── test_integrations/  → conductor transports (simulated, HTTP, factory)
    ├── test_orchestration/ → handle, settle bridge, callers, middleware, runner
    ├── test_integration/   → end-to-end scenario runs
    ├── test_orchestrator.py, test_suite.py → facade and run driver
    └── conftest.py         → shared pytest fixtures

Running Tests:
    pytest                          # Run all tests
    pytest tests/test_core/         # Run only core tests
    pytest -m integration           # Run only end-to-end tests
"""
