# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Telemetry collector: sanitize, enqueue, flush to a writer."""

from __future__ import annotations

import asyncio
import logging
import os
import queue
import time
from dataclasses import dataclass, field

from .privacy import sanitize_payload

logger = logging.getLogger(__name__)

try:
    from importlib.metadata import version as _pkg_version

    _A11YFIX_VERSION = _pkg_version("retio-a11yfix")
except Exception:
    _A11YFIX_VERSION = "unknown"


# ── Config ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class TelemetryConfig:
    """Immutable telemetry configuration."""

    enabled: bool = False
    export_path: str = field(default_factory=lambda: os.path.join(os.path.expanduser("~"), ".a11yfix", "telemetry"))
    flush_interval_s: float = 30.0
    max_queue_size: int = 10_000


# ── Meta ─────────────────────────────────────────────────────────


class TelemetryMeta:
    """Best-effort counters for emitted / dropped / exported records."""

    __slots__ = ("emitted", "dropped", "exported")

    def __init__(self) -> None:
        self.emitted: int = 0
        self.dropped: int = 0
        self.exported: int = 0

    def snapshot(self) -> dict:
        return {"emitted": self.emitted, "dropped": self.dropped, "exported": self.exported}


def make_record(event_type: str, payload: dict, *, session_id: str = "", timestamp: float | None = None) -> dict:
    """One JSONL record: ``{ts, event, version, session_id?, attributes}``."""
    record: dict = {
        "ts": round(timestamp if timestamp is not None else time.time(), 3),
        "event": event_type,
        "version": _A11YFIX_VERSION,
        "attributes": payload,
    }
    if session_id:
        record["session_id"] = session_id
    return record


# ── Collector ────────────────────────────────────────────────────


class TelemetryCollector:
    """Fire-and-forget collector with lazy background flush.

    ``emit()`` is safe to call from any thread and never raises.
    """

    def __init__(self, config: TelemetryConfig, writer: object | None = None) -> None:
        self.config = config
        self.meta = TelemetryMeta()
        self._queue: queue.SimpleQueue[dict] = queue.SimpleQueue()
        self._flush_task: asyncio.Task | None = None
        self._flush_started = False
        self._shutdown = False

        if writer is not None:
            self._writer = writer
        elif config.enabled:
            from .writer import FileWriter

            self._writer = FileWriter(config.export_path)
        else:
            from .writer import NullWriter

            self._writer = NullWriter()

    def emit(self, event_type: str, payload: dict, *, session_id: str = "") -> None:
        try:
            if self._shutdown:
                return
            if self._queue.qsize() >= self.config.max_queue_size:
                self.meta.dropped += 1
                return

            self._queue.put(make_record(event_type, sanitize_payload(payload), session_id=session_id))
            self.meta.emitted += 1

            if not self._flush_started:
                self._start_periodic_flush()
        except Exception:  # nosec B110
            pass

    def _start_periodic_flush(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return  # no loop: flush_sync() at shutdown picks the events up
        self._flush_task = loop.create_task(self._periodic_flush_loop())
        self._flush_started = True

    async def _periodic_flush_loop(self) -> None:
        try:
            while not self._shutdown:
                await asyncio.sleep(self.config.flush_interval_s)
                await self.flush_async()
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.debug("Telemetry flush loop stopped", exc_info=True)

    def flush_sync(self) -> None:
        """Drain the queue into the writer."""
        try:
            batch: list[dict] = []
            while True:
                try:
                    batch.append(self._queue.get_nowait())
                except queue.Empty:
                    break
            if batch:
                self._writer.write_sync(batch)  # type: ignore[union-attr]
                self.meta.exported += len(batch)
        except Exception:
            logger.debug("Telemetry flush failed", exc_info=True)

    async def flush_async(self) -> None:
        await asyncio.to_thread(self.flush_sync)

    def shutdown(self) -> None:
        self._shutdown = True
        if self._flush_task is not None:
            self._flush_task.cancel()
        self.flush_sync()
