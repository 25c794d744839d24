# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Telemetry writers: FileWriter (daily JSONL), NullWriter, ListWriter."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class Writer(Protocol):
    def write_sync(self, batch: list[dict]) -> None: ...


class FileWriter:
    """Append records to ``<export_path>/events-YYYY-MM-DD.jsonl`` (UTC date)."""

    def __init__(self, export_path: str | Path) -> None:
        self._export_path = Path(export_path)

    def path_for(self, when: datetime) -> Path:
        return self._export_path / f"events-{when.strftime('%Y-%m-%d')}.jsonl"

    def write_sync(self, batch: list[dict]) -> None:
        if not batch:
            return
        try:
            self._export_path.mkdir(parents=True, exist_ok=True)
            with open(self.path_for(datetime.now(UTC)), "a", encoding="utf-8") as f:
                for record in batch:
                    f.write(json.dumps(record, ensure_ascii=False, separators=(",", ":")))
                    f.write("\n")
        except OSError as exc:
            logger.debug("Telemetry write failed: %s", exc)


class NullWriter:
    """Discards everything (telemetry disabled)."""

    def write_sync(self, batch: list[dict]) -> None:
        pass


class ListWriter:
    """In-memory writer for tests."""

    def __init__(self) -> None:
        self.events: list[dict] = []

    def write_sync(self, batch: list[dict]) -> None:
        self.events.extend(batch)

    def of_type(self, event_type: str) -> list[dict]:
        return [e for e in self.events if e["event"] == event_type]
