# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for a11yfix.telemetry: collector, privacy filters, writers, payloads."""

from __future__ import annotations

import json
from datetime import UTC, datetime

from a11yfix import telemetry
from a11yfix.telemetry import events
from a11yfix.telemetry.collector import TelemetryCollector, TelemetryConfig, make_record
from a11yfix.telemetry.privacy import sanitize_payload, sanitize_url
from a11yfix.telemetry.writer import FileWriter, ListWriter, NullWriter

# ── Privacy ──────────────────────────────────────────────────────


class TestSanitizeUrl:
    def test_strips_query_fragment_and_credentials(self):
        assert sanitize_url("https://user:pw@shop.example.com:8443/cart?token=x#top") == (
            "https://shop.example.com:8443/cart"
        )

    def test_plain_url_unchanged(self):
        assert sanitize_url("https://example.com/a/b") == "https://example.com/a/b"

    def test_invalid_port(self):
        assert sanitize_url("http://example.com:99999/") == ""


class TestSanitizePayload:
    def test_drops_page_content(self):
        cleaned = sanitize_payload({"rule_id": "image-alt", "before_html": "<img>", "reasoning": "r"})
        assert cleaned == {"rule_id": "image-alt"}

    def test_nested_level(self):
        cleaned = sanitize_payload({"fix": {"type": "content", "value": "secret text"}})
        assert cleaned == {"fix": {"type": "content"}}

    def test_url_fields_cleaned(self):
        cleaned = sanitize_payload({"url": "https://example.com/p?q=1", "endpoint": "wss://u:p@cdp.io/x"})
        assert cleaned == {"url": "https://example.com/p", "endpoint": "wss://cdp.io/x"}


# ── Payloads ─────────────────────────────────────────────────────


class TestPayloads:
    def test_session_complete(self):
        payload = events.session_complete(total=3, fixed=1, skipped=1, errored=1, elapsed_ms=40)
        assert payload == {"total": 3, "fixed": 1, "skipped": 1, "errored": 1, "elapsed_ms": 40}

    def test_errors_truncated(self):
        assert len(events.browser_dead(url="u", error="x" * 500)["error"]) == 200
        assert len(events.connection_retry(attempt=1, delay_s=1.0, error="y" * 500)["error"]) == 200

    def test_event_names_namespaced(self):
        names = [v for k, v in vars(events).items() if k.isupper() and isinstance(v, str)]
        assert names
        assert all(n.startswith("a11yfix.") for n in names)


# ── Collector ────────────────────────────────────────────────────


class TestMakeRecord:
    def test_shape(self):
        record = make_record("a11yfix.test", {"n": 1}, session_id="s1", timestamp=1700000000.12345)
        assert record["ts"] == 1700000000.123
        assert record["event"] == "a11yfix.test"
        assert record["attributes"] == {"n": 1}
        assert record["session_id"] == "s1"
        assert "version" in record

    def test_no_session(self):
        assert "session_id" not in make_record("a11yfix.test", {})


class TestCollector:
    def test_emit_and_flush(self):
        writer = ListWriter()
        collector = TelemetryCollector(TelemetryConfig(enabled=True), writer=writer)
        collector.emit(events.FIX_ROLLED_BACK, {"url": "https://a.com/?x=1", "fix_type": "attribute"})
        assert writer.events == []

        collector.flush_sync()
        [record] = writer.events
        assert record["attributes"] == {"url": "https://a.com/", "fix_type": "attribute"}
        assert collector.meta.snapshot() == {"emitted": 1, "dropped": 0, "exported": 1}

    def test_queue_limit_drops(self):
        writer = ListWriter()
        collector = TelemetryCollector(TelemetryConfig(enabled=True, max_queue_size=2), writer=writer)
        for i in range(5):
            collector.emit("a11yfix.test", {"i": i})
        collector.shutdown()
        assert len(writer.events) == 2
        assert collector.meta.dropped == 3

    def test_no_emit_after_shutdown(self):
        writer = ListWriter()
        collector = TelemetryCollector(TelemetryConfig(enabled=True), writer=writer)
        collector.shutdown()
        collector.emit("a11yfix.test", {})
        collector.flush_sync()
        assert writer.events == []

    def test_disabled_uses_null_writer(self):
        collector = TelemetryCollector(TelemetryConfig(enabled=False))
        assert isinstance(collector._writer, NullWriter)

    async def test_background_flush_started_in_loop(self):
        writer = ListWriter()
        collector = TelemetryCollector(TelemetryConfig(enabled=True, flush_interval_s=60), writer=writer)
        collector.emit("a11yfix.test", {})
        assert collector._flush_task is not None
        collector.shutdown()
        assert len(writer.events) == 1


class TestModuleApi:
    def test_emit_without_configure_is_noop(self):
        telemetry.emit(events.SESSION_START, {"violations": 1})
        telemetry.shutdown()

    def test_configure_is_idempotent(self):
        writer = ListWriter()
        first = telemetry.configure(TelemetryConfig(enabled=True), writer=writer)
        second = telemetry.configure(TelemetryConfig(enabled=False))
        assert first is second

    def test_session_id_attached(self, telemetry_events):
        telemetry.emit(events.SESSION_START, {"violations": 2}, session_id="abc")
        telemetry.shutdown()
        [record] = telemetry_events.of_type(events.SESSION_START)
        assert record["session_id"] == "abc"


# ── Writers ──────────────────────────────────────────────────────


class TestFileWriter:
    def test_appends_jsonl(self, tmp_path):
        writer = FileWriter(tmp_path / "telemetry")
        writer.write_sync([{"event": "a"}])
        writer.write_sync([{"event": "b"}])

        path = writer.path_for(datetime.now(UTC))
        lines = path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["a", "b"]

    def test_daily_file_name(self, tmp_path):
        writer = FileWriter(tmp_path)
        assert writer.path_for(datetime(2026, 3, 1, tzinfo=UTC)).name == "events-2026-03-01.jsonl"

    def test_empty_batch_creates_nothing(self, tmp_path):
        FileWriter(tmp_path / "t").write_sync([])
        assert not (tmp_path / "t").exists()

    def test_unwritable_path_swallowed(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        FileWriter(blocker / "sub").write_sync([{"event": "a"}])


class TestListWriter:
    def test_of_type(self):
        writer = ListWriter()
        writer.write_sync([{"event": "a"}, {"event": "b"}, {"event": "a"}])
        assert len(writer.of_type("a")) == 2
