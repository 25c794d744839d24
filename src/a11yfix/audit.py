# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Audit trail of fix decisions and pre-fix snapshots for rollback.

Every fix that reaches a decision point leaves an entry: ``applied`` when it
changed the page, ``rejected`` when the safety validator refused it, and
``rolled_back`` when an applied fix was later undone.
"""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from .instructions import AttributeFix, ContentFix, StyleFix


class AuditResult(StrEnum):
    APPLIED = "applied"
    REJECTED = "rejected"
    ROLLED_BACK = "rolled_back"


@dataclass(frozen=True, slots=True)
class AuditEntry:
    session_id: str
    violation_id: str
    result: AuditResult
    instruction: dict[str, Any]
    before_html: str = ""
    after_html: str = ""
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "sessionId": self.session_id,
            "violationId": self.violation_id,
            "result": self.result.value,
            "instruction": self.instruction,
            "beforeHtml": self.before_html,
            "afterHtml": self.after_html,
        }


class AuditLog:
    """Append-only, in-memory audit trail for one or more sessions."""

    def __init__(self) -> None:
        self._entries: list[AuditEntry] = []

    def record(
        self,
        session_id: str,
        fix: AttributeFix | ContentFix | StyleFix,
        result: AuditResult,
        *,
        before_html: str = "",
        after_html: str = "",
    ) -> AuditEntry:
        entry = AuditEntry(
            session_id=session_id,
            violation_id=fix.violation_id,
            result=result,
            instruction=fix.to_dict(),
            before_html=before_html,
            after_html=after_html,
        )
        self._entries.append(entry)
        return entry

    def entries(self, session_id: str | None = None) -> list[AuditEntry]:
        if session_id is None:
            return list(self._entries)
        return [e for e in self._entries if e.session_id == session_id]

    def for_violation(self, session_id: str, violation_id: str) -> list[AuditEntry]:
        return [e for e in self.entries(session_id) if e.violation_id == violation_id]

    def summary(self, session_id: str) -> dict[str, int]:
        counts = Counter(e.result for e in self.entries(session_id))
        return {
            "total": sum(counts.values()),
            "applied": counts[AuditResult.APPLIED],
            "rejected": counts[AuditResult.REJECTED],
            "rolledBack": counts[AuditResult.ROLLED_BACK],
        }

    def clear_session(self, session_id: str) -> None:
        self._entries = [e for e in self._entries if e.session_id != session_id]


# ---------------------------------------------------------------------------
# Rollback snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Element HTML captured just before a fix was applied."""

    violation_id: str
    url: str
    selector: str
    html: str
    fix: AttributeFix | ContentFix | StyleFix
    session_id: str = ""
    element: Any = field(default=None, compare=False, repr=False)  # live ElementHandle, if still held
    created_at: float = field(default_factory=time.monotonic)


class SnapshotStore:
    """One snapshot per applied violation; taking it back removes it."""

    def __init__(self) -> None:
        self._snapshots: dict[str, Snapshot] = {}

    def save(self, snapshot: Snapshot) -> None:
        self._snapshots[snapshot.violation_id] = snapshot

    def get(self, violation_id: str) -> Snapshot | None:
        return self._snapshots.get(violation_id)

    def discard(self, violation_id: str) -> None:
        self._snapshots.pop(violation_id, None)

    def __len__(self) -> int:
        return len(self._snapshots)

    def __contains__(self, violation_id: object) -> bool:
        return violation_id in self._snapshots
