"""Top-level pytest configuration for traffic_logger tests.

Every test starts from a clean process state: no ``LOG_*`` variables from the
developer's shell, no cached settings, redactor or loggers, and zeroed metrics.
"""

from __future__ import annotations

import os

import pytest

from traffic_logger.config import reset_settings
from traffic_logger.logger import reset_loggers
from traffic_logger.redaction import reset_redactor

from tests.utils.logging import reset_logging_metrics


@pytest.fixture(autouse=True)
def _isolate_logging_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Strip ``LOG_*`` variables so settings only come from the test."""

    for name in list(os.environ):
        if name.startswith("LOG_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_process_state():
    """Reset cached settings, the default redactor, loggers and metrics."""

    reset_settings()
    reset_redactor()
    reset_loggers()
    reset_logging_metrics()
    yield
    reset_logging_metrics()
    reset_loggers()
    reset_redactor()
    reset_settings()
