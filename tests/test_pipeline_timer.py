# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for PipelineTimer."""

from __future__ import annotations

import time

from a11yfix.pipeline_timer import STAGE_HINTS, PipelineTimer


class TestPipelineTimer:
    def test_stage_tracking(self):
        timer = PipelineTimer()
        timer.stage("planning")
        timer.stage("validating")
        timer.stage("applying")
        timer.finalize()

        stages = timer.elapsed_per_stage()
        assert list(stages.keys()) == ["planning", "validating", "applying"]
        assert all(isinstance(v, float) for v in stages.values())

    def test_current_stage(self):
        timer = PipelineTimer()
        assert timer.current_stage is None

        timer.stage("planning")
        assert timer.current_stage == "planning"

        timer.finalize()
        assert timer.current_stage is None

    def test_reentered_stage_accumulates(self):
        timer = PipelineTimer()
        timer.stage("planning")
        time.sleep(0.01)
        timer.stage("integrity")
        timer.stage("planning")
        time.sleep(0.01)
        timer.finalize()

        stages = timer.elapsed_per_stage()
        assert list(stages) == ["planning", "integrity"]
        assert stages["planning"] >= 20.0

    def test_running_stage_included(self):
        timer = PipelineTimer()
        timer.stage("planning")
        time.sleep(0.01)
        assert timer.elapsed_per_stage()["planning"] >= 10.0


class TestTimeoutReport:
    def test_structure(self):
        timer = PipelineTimer()
        timer.stage("planning")
        report = timer.timeout_report()

        assert report["error"] == "timeout"
        assert report["timed_out_at"] == "planning"
        assert list(report["stages"]) == ["planning"]
        assert isinstance(report["total_ms"], float)
        assert report["hint"] == STAGE_HINTS["planning"]

    def test_no_stages(self):
        report = PipelineTimer().timeout_report()
        assert report["timed_out_at"] == "unknown"
        assert report["stages"] == {}

    def test_unknown_stage_hint(self):
        timer = PipelineTimer()
        timer.stage("warmup")
        assert "warmup" in timer.timeout_report()["hint"]
