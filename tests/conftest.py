# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import a11yfix  # noqa: F401
except ImportError:
    raise ImportError("a11yfix is not installed. Run: pip install -e '.[dev]'") from None

import pytest

from a11yfix import telemetry
from a11yfix.telemetry.collector import TelemetryConfig
from a11yfix.telemetry.writer import ListWriter


@pytest.fixture(autouse=True)
def _reset_telemetry():
    """No test leaks a configured collector into the next."""
    telemetry._reset_for_testing()
    yield
    telemetry._reset_for_testing()


@pytest.fixture
def telemetry_events():
    """Enable telemetry with an in-memory writer.

    Events reach the writer on flush; call ``telemetry.shutdown()`` before asserting.
    """
    writer = ListWriter()
    telemetry.configure(TelemetryConfig(enabled=True), writer=writer)
    return writer
