# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Telemetry: fire-and-forget remediation events.

Usage:
    from a11yfix import telemetry
    from a11yfix.telemetry import events

    telemetry.emit(events.VIOLATION_OUTCOME, events.violation_outcome(...))

Disabled by default.  Enable via ``configure()`` or the CLI ``--telemetry``
flag.
"""

from __future__ import annotations

import atexit
import contextlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .collector import TelemetryCollector, TelemetryConfig
    from .writer import Writer

_collector: TelemetryCollector | None = None


def configure(config: TelemetryConfig, *, writer: Writer | None = None) -> TelemetryCollector:
    """Initialize the process-wide collector.

    Idempotent: later calls return the existing collector unchanged.
    """
    global _collector
    if _collector is not None:
        return _collector

    from .collector import TelemetryCollector

    _collector = TelemetryCollector(config, writer=writer)
    atexit.register(shutdown)
    return _collector


def emit(event_type: str, payload: dict, *, session_id: str = "") -> None:
    """Emit one event.  No-op when telemetry is not configured; never raises."""
    try:
        if _collector is not None:
            _collector.emit(event_type, payload, session_id=session_id)
    except Exception:  # nosec B110
        pass


def shutdown() -> None:
    """Flush pending events and stop the collector."""
    try:
        if _collector is not None:
            _collector.shutdown()
    except Exception:  # nosec B110
        pass


def _reset_for_testing() -> None:
    global _collector
    if _collector is not None:
        with contextlib.suppress(Exception):
            _collector.shutdown()
    _collector = None
