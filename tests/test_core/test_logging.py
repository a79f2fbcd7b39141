"""
Tests for conductor_harness.core.logging
==========================================

setup_logging() configures structlog process-wide; the autouse fixture in
conftest.py resets it after each test.
"""

import structlog

from conductor_harness.core.logging import setup_logging


class TestSetupLogging:

    def test_console_renderer_by_default(self) -> None:
        setup_logging()
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_json_renderer(self) -> None:
        setup_logging(format="json")
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_level_filtering(self) -> None:
        """Below-threshold methods are no-ops on the filtering logger."""
        setup_logging(level="ERROR", format="json")
        wrapper = structlog.get_config()["wrapper_class"]
        assert wrapper is structlog.make_filtering_bound_logger(40)

    def test_unknown_level_falls_back_to_info(self) -> None:
        setup_logging(level="chatty")
        wrapper = structlog.get_config()["wrapper_class"]
        assert wrapper is structlog.make_filtering_bound_logger(20)
