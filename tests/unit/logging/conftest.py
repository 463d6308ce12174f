"""Fixtures for traffic_logger unit tests."""

from __future__ import annotations

from typing import List

import pytest

from traffic_logger import get_logger
from traffic_logger.config import load_settings
from traffic_logger.logger import LoggerManager
from traffic_logger.redaction import Redactor
from traffic_logger.sinks.memory import InMemorySink


def pytest_collection_modifyitems(config, items):  # pragma: no cover - Pytest hook
    """Tag every test in this directory with the `logging` marker."""

    for item in items:
        item.add_marker(pytest.mark.logging)


@pytest.fixture
def memory_sink_registry(monkeypatch):
    """Capture every in-memory sink instantiated by the logger manager."""

    registry: List[InMemorySink] = []
    original_init = InMemorySink.__init__

    def _tracking_init(self) -> None:  # type: ignore[override]
        original_init(self)
        registry.append(self)

    monkeypatch.setattr(InMemorySink, "__init__", _tracking_init)

    yield registry

    for sink in registry:
        sink.clear()


@pytest.fixture
def logging_settings():
    """Provide deterministic logging settings wired to the in-memory sink."""

    return load_settings(
        {
            "LOG_LEVEL": "DEBUG",
            "LOG_SINKS": "memory",
            "LOG_COLOR": "0",
            "LOG_LINE_WIDTH": "40",
        }
    )


@pytest.fixture
def redactor():
    """A fresh redactor seeded with the builtin vocabulary."""

    return Redactor()


@pytest.fixture
def logger_manager(monkeypatch, logging_settings, memory_sink_registry):
    """Test-scoped logger manager configured with deterministic settings."""

    import traffic_logger.config as config_module
    import traffic_logger.logger as logger_module

    manager = LoggerManager()

    monkeypatch.setattr(logger_module, "_MANAGER", manager)
    monkeypatch.setattr(config_module, "_SETTINGS", logging_settings, raising=False)

    manager.configure(logging_settings)

    yield manager

    manager.reset()


@pytest.fixture
def memory_sink(logger_manager, memory_sink_registry):
    """Return the primary in-memory sink registered during configuration."""

    if not memory_sink_registry:
        pytest.fail("Expected an InMemorySink to be registered during configuration")

    return memory_sink_registry[0]


@pytest.fixture
def memory_logger(logger_manager):
    """Convenience fixture for producing a logger bound to the in-memory sink."""

    return get_logger("memory-test")
