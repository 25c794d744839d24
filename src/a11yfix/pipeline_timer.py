# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Per-violation stage timer: planning, validating, applying.

A timer is created before the planning timeout is armed, so it survives
cancellation and can still say which stage a violation got stuck in.
Re-entering a stage (re-planning after a content change) accumulates time.
"""

from __future__ import annotations

import time

STAGE_HINTS = {
    "planning": "Specialist or fix oracle is slow to answer.",
    "validating": "Safety validation should be instant; check for a pathological selector.",
    "integrity": "Reading the live element text is stalling; the page may be busy.",
    "applying": "DOM mutation is stalling; the page or browser may be unresponsive.",
}


class PipelineTimer:
    """Track stage transitions for one violation."""

    __slots__ = ("_totals", "_order", "_current", "_current_start", "_start_ns")

    def __init__(self) -> None:
        self._totals: dict[str, int] = {}
        self._order: list[str] = []
        self._current: str | None = None
        self._current_start = 0
        self._start_ns = time.monotonic_ns()

    def stage(self, name: str) -> None:
        """Close the running stage (if any) and open *name*."""
        now = time.monotonic_ns()
        self._close(now)
        self._current = name
        self._current_start = now
        if name not in self._totals:
            self._totals[name] = 0
            self._order.append(name)

    def finalize(self) -> None:
        self._close(time.monotonic_ns())

    def _close(self, now: int) -> None:
        if self._current is not None:
            self._totals[self._current] += now - self._current_start
            self._current = None

    @property
    def current_stage(self) -> str | None:
        return self._current

    def elapsed_per_stage(self) -> dict[str, float]:
        """``{stage: elapsed_ms}`` in first-entered order, including the running stage."""
        now = time.monotonic_ns()
        result: dict[str, float] = {}
        for name in self._order:
            ns = self._totals[name]
            if name == self._current:
                ns += now - self._current_start
            result[name] = round(ns / 1e6, 1)
        return result

    def total_ms(self) -> float:
        return round((time.monotonic_ns() - self._start_ns) / 1e6, 1)

    def timeout_report(self) -> dict:
        stage = self._current or "unknown"
        return {
            "error": "timeout",
            "timed_out_at": stage,
            "stages": self.elapsed_per_stage(),
            "total_ms": self.total_ms(),
            "hint": STAGE_HINTS.get(stage, f"Timed out during '{stage}' stage."),
        }
