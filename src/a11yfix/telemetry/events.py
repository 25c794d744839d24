# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Telemetry event names, TypedDict payloads and builder functions."""

from __future__ import annotations

from typing import TypedDict

# ── Event type constants ─────────────────────────────────────────

# Session
SESSION_START = "a11yfix.session.start"
SESSION_COMPLETE = "a11yfix.session.complete"
SESSION_ABORTED = "a11yfix.session.aborted"

# Per violation
VIOLATION_OUTCOME = "a11yfix.violation.outcome"
DESTRUCTIVE_REJECTED = "a11yfix.safety.destructive_rejected"
CONTENT_CHANGED = "a11yfix.integrity.content_changed"
FIX_ROLLED_BACK = "a11yfix.fix.rolled_back"

# Browser
CONNECTION_RETRY = "a11yfix.browser.connection_retry"
BROWSER_DEAD = "a11yfix.browser.dead"


# ── TypedDict payload definitions ────────────────────────────────


class SessionStartPayload(TypedDict):
    violations: int
    pages: int
    concurrency: int


class SessionCompletePayload(TypedDict):
    total: int
    fixed: int
    skipped: int
    errored: int
    elapsed_ms: int


class SessionAbortedPayload(TypedDict):
    completed: int
    error: str


class ViolationOutcomePayload(TypedDict):
    rule_id: str
    state: str
    reason_code: str
    specialist: str
    attempts: int
    stage_timings: dict[str, float]


class DestructiveRejectedPayload(TypedDict):
    rule_id: str
    fix_type: str
    specialist: str


class ContentChangedPayload(TypedDict):
    url: str
    replan: int


class FixRolledBackPayload(TypedDict):
    url: str
    fix_type: str


class ConnectionRetryPayload(TypedDict):
    attempt: int
    delay_s: float
    error: str


class BrowserDeadPayload(TypedDict):
    url: str
    error: str


# ── Payload builder functions ────────────────────────────────────


def session_start(*, violations: int, pages: int, concurrency: int) -> SessionStartPayload:
    return SessionStartPayload(violations=violations, pages=pages, concurrency=concurrency)


def session_complete(*, total: int, fixed: int, skipped: int, errored: int, elapsed_ms: int) -> SessionCompletePayload:
    return SessionCompletePayload(total=total, fixed=fixed, skipped=skipped, errored=errored, elapsed_ms=elapsed_ms)


def session_aborted(*, completed: int, error: str) -> SessionAbortedPayload:
    return SessionAbortedPayload(completed=completed, error=error[:200])


def violation_outcome(
    *,
    rule_id: str,
    state: str,
    reason_code: str,
    specialist: str,
    attempts: int,
    stage_timings: dict[str, float],
) -> ViolationOutcomePayload:
    return ViolationOutcomePayload(
        rule_id=rule_id,
        state=state,
        reason_code=reason_code,
        specialist=specialist,
        attempts=attempts,
        stage_timings=stage_timings,
    )


def destructive_rejected(*, rule_id: str, fix_type: str, specialist: str) -> DestructiveRejectedPayload:
    return DestructiveRejectedPayload(rule_id=rule_id, fix_type=fix_type, specialist=specialist)


def content_changed(*, url: str, replan: int) -> ContentChangedPayload:
    return ContentChangedPayload(url=url, replan=replan)


def fix_rolled_back(*, url: str, fix_type: str) -> FixRolledBackPayload:
    return FixRolledBackPayload(url=url, fix_type=fix_type)


def connection_retry(*, attempt: int, delay_s: float, error: str) -> ConnectionRetryPayload:
    return ConnectionRetryPayload(attempt=attempt, delay_s=delay_s, error=error[:200])


def browser_dead(*, url: str, error: str) -> BrowserDeadPayload:
    return BrowserDeadPayload(url=url, error=error[:200])
