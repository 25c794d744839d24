# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""FixApplicationPipeline: drives each violation to a terminal outcome.

Per violation::

    PENDING -> PLANNING -> VALIDATING -> APPLYING -> FIXED | SKIPPED | ERROR
                  ^                          |
                  +---- content changed -----+   (up to max_replans)

Violations run under a semaphore, started in impact-priority order.
Planning is free to overlap; DOM access is serialized per page URL, and the
integrity read and the mutation happen under one lock hold.  A browser
connection failure is fatal to the session: workers stop before applying and
``run()`` raises ``SessionAbortedError`` with the outcomes finished so far.

Usage::

    async with FixApplicationPipeline(default_registry(), create_connection_manager(cfg)) as pipeline:
        report = await pipeline.run([(violation, context), ...])
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Sequence
from contextlib import suppress
from dataclasses import dataclass, field
from enum import StrEnum
from types import TracebackType
from typing import Any

from playwright.async_api import BrowserContext, Page

from . import Outcome, OutcomeState, PageContext, ReasonCode, ReviewItem, Violation, telemetry
from .audit import AuditEntry, AuditLog, AuditResult, Snapshot, SnapshotStore
from .browser_connection import VIEWPORTS, BrowserConnectionManager, is_browser_dead_error
from .errors import (
    A11yFixError,
    ApplyFailedError,
    ConfigError,
    ContentChangedError,
    FixPlanningError,
    InjectorError,
    SessionAbortedError,
)
from .injector import apply_fix, restore_outer_html
from .integrity import ContentIntegrityGuard
from .pipeline_timer import PipelineTimer
from .safety_validator import SafetyValidator
from .specialists.base import Instruction, Specialist, SpecialistRegistry
from .telemetry import events

logger = logging.getLogger(__name__)

PageLoader = Callable[[Page, str], Awaitable[None]]

DESTRUCTIVE_REVIEW_ACTION = (
    "Fix the element by hand; the proposed change would remove its function or accessible name."
)


class ViolationState(StrEnum):
    PENDING = "pending"
    PLANNING = "planning"
    VALIDATING = "validating"
    APPLYING = "applying"
    FIXED = "fixed"
    SKIPPED = "skipped"
    ERROR = "error"


_TERMINAL = {
    OutcomeState.FIXED: ViolationState.FIXED,
    OutcomeState.SKIPPED: ViolationState.SKIPPED,
    OutcomeState.ERROR: ViolationState.ERROR,
}


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    concurrency: int = 3
    planning_timeout: float = 30.0  # seconds, per planning attempt
    max_replans: int = 2
    viewport: str | None = None  # None: the connection's configured viewport

    def __post_init__(self) -> None:
        if not 1 <= self.concurrency <= 16:
            raise ConfigError(f"concurrency must be between 1 and 16, got {self.concurrency}")
        if self.planning_timeout <= 0:
            raise ConfigError(f"planning_timeout must be > 0, got {self.planning_timeout}")
        if self.max_replans < 0:
            raise ConfigError(f"max_replans must be >= 0, got {self.max_replans}")
        if self.viewport is not None and self.viewport not in VIEWPORTS:
            raise ConfigError(f"viewport must be one of {sorted(VIEWPORTS)}, got {self.viewport!r}")


@dataclass(frozen=True, slots=True)
class RemediationReport:
    session_id: str
    outcomes: list[Outcome]
    review_items: list[ReviewItem] = field(default_factory=list)
    audit: list[AuditEntry] = field(default_factory=list)

    @property
    def summary(self) -> dict[str, int]:
        return summarize(self.outcomes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "summary": self.summary,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "reviewItems": [r.to_dict() for r in self.review_items],
            "audit": [e.to_dict() for e in self.audit],
        }


def summarize(outcomes: Sequence[Outcome]) -> dict[str, int]:
    return {
        "total": len(outcomes),
        "fixed": sum(1 for o in outcomes if o.state is OutcomeState.FIXED),
        "skipped": sum(1 for o in outcomes if o.state is OutcomeState.SKIPPED),
        "errored": sum(1 for o in outcomes if o.state is OutcomeState.ERROR),
    }


async def navigate(page: Page, url: str) -> None:
    """Default page loader: open *url* in *page*."""
    await page.goto(url, wait_until="domcontentloaded")


# ---------------------------------------------------------------------------
# Session bookkeeping
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _PageSlot:
    """One lazily opened page per URL, guarded by its own lock."""

    url: str
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    context: BrowserContext | None = None
    page: Page | None = None

    async def close(self) -> None:
        context, self.context, self.page = self.context, None, None
        if context is not None:
            with suppress(Exception):
                await context.close()


@dataclass(slots=True)
class _Session:
    session_id: str
    batch_ids: frozenset[str]
    outcomes: list[Outcome | None]
    semaphore: asyncio.Semaphore
    states: dict[str, ViolationState] = field(default_factory=dict)
    review_items: dict[int, list[ReviewItem]] = field(default_factory=dict)
    abort_error: BaseException | None = None

    @property
    def aborted(self) -> bool:
        return self.abort_error is not None

    def completed(self) -> list[Outcome]:
        return [o for o in self.outcomes if o is not None]


class _SessionAbort(Exception):
    """Internal: unwinds a worker once the connection has failed."""


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class FixApplicationPipeline:
    """Orchestrates planning, validation, integrity checks and application.

    The pipeline owns *connection* for its lifetime: ``close()`` (or leaving
    the ``async with`` block) closes every page and disconnects.
    """

    def __init__(
        self,
        registry: SpecialistRegistry,
        connection: BrowserConnectionManager,
        *,
        validator: SafetyValidator | None = None,
        guard: ContentIntegrityGuard | None = None,
        config: PipelineConfig | None = None,
        audit_log: AuditLog | None = None,
        page_loader: PageLoader | None = None,
    ) -> None:
        self.registry = registry
        self.connection = connection
        self.validator = validator or SafetyValidator()
        self.guard = guard or ContentIntegrityGuard()
        self.config = config or PipelineConfig()
        self.audit_log = audit_log or AuditLog()
        self.snapshots = SnapshotStore()
        self._page_loader = page_loader or navigate
        self._slots: dict[str, _PageSlot] = {}
        self._session: _Session | None = None

    # ── AsyncContextManager ──────────────────────────────────────────

    async def __aenter__(self) -> FixApplicationPipeline:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        for slot in list(self._slots.values()):
            await slot.close()
        self._slots.clear()
        await self.connection.disconnect()

    # ── Public API ───────────────────────────────────────────────────

    def state_of(self, violation_id: str) -> ViolationState | None:
        """Current state of *violation_id* in the latest session."""
        if self._session is None:
            return None
        return self._session.states.get(violation_id)

    async def run(self, items: Sequence[tuple[Violation, PageContext]]) -> RemediationReport:
        """Remediate every ``(violation, context)`` pair; outcomes come back in input order."""
        items = list(items)
        session = _Session(
            session_id=uuid.uuid4().hex[:16],
            batch_ids=frozenset(v.id for v, _ in items),
            outcomes=[None] * len(items),
            semaphore=asyncio.Semaphore(self.config.concurrency),
            states={v.id: ViolationState.PENDING for v, _ in items},
        )
        self._session = session
        if len(session.batch_ids) != len(items):
            logger.warning("Batch contains duplicate violation ids; snapshots keep the last fix per id")

        start = time.monotonic()
        pages = len({c.url for _, c in items})
        logger.info(
            "Remediation session %s: %d violation(s) on %d page(s), concurrency=%d",
            session.session_id,
            len(items),
            pages,
            self.config.concurrency,
        )
        telemetry.emit(
            events.SESSION_START,
            events.session_start(violations=len(items), pages=pages, concurrency=self.config.concurrency),
            session_id=session.session_id,
        )

        # Stable sort: equal impact keeps input order
        order = sorted(range(len(items)), key=lambda i: items[i][0].impact.priority)
        await asyncio.gather(*(self._worker(session, i, *items[i]) for i in order))

        if session.aborted:
            completed = session.completed()
            error = session.abort_error
            logger.error(
                "Session %s aborted after %d outcome(s): %s", session.session_id, len(completed), error
            )
            telemetry.emit(
                events.SESSION_ABORTED,
                events.session_aborted(completed=len(completed), error=str(error)),
                session_id=session.session_id,
            )
            raise SessionAbortedError(
                f"Browser connection failed; session aborted: {error}",
                outcomes=completed,
            ) from error

        outcomes = session.completed()
        summary = summarize(outcomes)
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Session %s complete: %d fixed, %d skipped, %d errored (%d ms)",
            session.session_id,
            summary["fixed"],
            summary["skipped"],
            summary["errored"],
            elapsed_ms,
        )
        telemetry.emit(
            events.SESSION_COMPLETE,
            events.session_complete(elapsed_ms=elapsed_ms, **summary),
            session_id=session.session_id,
        )
        return RemediationReport(
            session_id=session.session_id,
            outcomes=outcomes,
            review_items=[r for i in sorted(session.review_items) for r in session.review_items[i]],
            audit=self.audit_log.entries(session.session_id),
        )

    async def rollback(self, violation_id: str) -> AuditEntry:
        """Put back the element HTML captured before *violation_id*'s fix.

        Raises ``KeyError`` when no applied fix is on record and
        ``InjectorError`` when the page is gone or the restore fails.
        """
        snapshot = self.snapshots.get(violation_id)
        if snapshot is None:
            raise KeyError(f"No applied fix recorded for {violation_id!r}")
        slot = self._slots.get(snapshot.url)
        if slot is None:
            raise ApplyFailedError(f"Page {snapshot.url} is no longer open", selector=snapshot.selector)

        async with slot.lock:
            if slot.page is None or slot.page.is_closed():
                raise ApplyFailedError(f"Page {snapshot.url} is no longer open", selector=snapshot.selector)
            await restore_outer_html(slot.page, snapshot.selector, snapshot.html, element=snapshot.element)

        self.snapshots.discard(violation_id)
        entry = self.audit_log.record(
            snapshot.session_id,
            snapshot.fix,
            AuditResult.ROLLED_BACK,
            before_html=snapshot.html,
        )
        logger.info("Rolled back fix for %s on %s", violation_id, snapshot.selector)
        telemetry.emit(
            events.FIX_ROLLED_BACK,
            events.fix_rolled_back(url=snapshot.url, fix_type=snapshot.fix.type),
            session_id=snapshot.session_id,
        )
        return entry

    # ── Workers ──────────────────────────────────────────────────────

    async def _worker(self, session: _Session, index: int, violation: Violation, context: PageContext) -> None:
        async with session.semaphore:
            if session.aborted:
                return
            try:
                outcome = await self._remediate(session, index, violation, context)
            except _SessionAbort:
                return
            except Exception as exc:
                # One broken violation must not take the rest of the batch down
                logger.exception("Unexpected failure while remediating %s", violation.id)
                chosen = self.registry.route(violation)
                outcome = Outcome(
                    violation_id=violation.id,
                    state=OutcomeState.ERROR,
                    reason_code=ReasonCode.APPLY_FAILED,
                    specialist=chosen.name if chosen else "",
                    message=f"Unexpected error: {type(exc).__name__}: {exc}",
                )
        session.outcomes[index] = outcome
        session.states[violation.id] = _TERMINAL[outcome.state]
        logger.info(
            "Violation %s (%s) -> %s%s",
            violation.id,
            violation.rule_id,
            outcome.state.value,
            f" [{outcome.reason_code.value}]" if outcome.reason_code else "",
        )
        telemetry.emit(
            events.VIOLATION_OUTCOME,
            events.violation_outcome(
                rule_id=violation.rule_id,
                state=outcome.state.value,
                reason_code=outcome.reason_code.value if outcome.reason_code else "",
                specialist=outcome.specialist,
                attempts=outcome.attempts,
                stage_timings=outcome.stage_timings,
            ),
            session_id=session.session_id,
        )

    async def _remediate(
        self,
        session: _Session,
        index: int,
        violation: Violation,
        context: PageContext,
    ) -> Outcome:
        timer = PipelineTimer()

        def finish(state: OutcomeState, reason: ReasonCode | None = None, **kwargs: Any) -> Outcome:
            timer.finalize()
            return Outcome(
                violation_id=violation.id,
                state=state,
                reason_code=reason,
                specialist=chosen.name if chosen else "",
                attempts=attempts,
                stage_timings=timer.elapsed_per_stage(),
                **kwargs,
            )

        attempts = 0
        chosen = self.registry.route(violation)
        if chosen is None:
            return finish(
                OutcomeState.SKIPPED,
                ReasonCode.NO_SPECIALIST,
                message=f"No specialist handles rule {violation.rule_id!r}",
            )

        while True:
            attempts += 1
            session.states[violation.id] = ViolationState.PLANNING
            timer.stage("planning")
            try:
                fix = await self._plan(chosen, violation, context)
            except FixPlanningError as exc:
                if isinstance(exc.__cause__, TimeoutError):
                    logger.warning("Planning timed out for %s: %s", violation.id, timer.timeout_report())
                else:
                    logger.info("Planning failed for %s: %s", violation.id, exc)
                return finish(OutcomeState.SKIPPED, ReasonCode.PLANNING_FAILED, message=str(exc))
            if fix.violation_id not in session.batch_ids:
                return finish(
                    OutcomeState.SKIPPED,
                    ReasonCode.PLANNING_FAILED,
                    message=f"Fix references violation {fix.violation_id!r}, which is not in this batch",
                )

            session.states[violation.id] = ViolationState.VALIDATING
            timer.stage("validating")
            result = self.validator.validate(fix)
            if not result.valid:
                if self.validator.is_destructive(fix):
                    return finish(
                        OutcomeState.SKIPPED,
                        ReasonCode.DESTRUCTIVE,
                        flagged_for_review=True,
                        message=self._reject_destructive(session, index, violation, chosen, fix),
                    )
                return finish(
                    OutcomeState.SKIPPED,
                    ReasonCode.VALIDATION_FAILED,
                    message="; ".join(result.errors),
                )

            session.states[violation.id] = ViolationState.APPLYING
            slot = self._slot_for(context.url)
            async with slot.lock:
                if session.aborted:
                    raise _SessionAbort
                try:
                    page = await self._page_for(session, slot)
                    timer.stage("integrity")
                    await self.guard.verify(page, fix)
                    timer.stage("applying")
                    applied = await apply_fix(page, fix)
                except ContentChangedError as exc:
                    changed = exc
                except InjectorError as exc:
                    if is_browser_dead_error(exc):
                        await self._drop_dead_page(session, slot, exc)
                    logger.info("Could not apply fix for %s: %s", violation.id, exc.message)
                    return finish(OutcomeState.ERROR, ReasonCode.APPLY_FAILED, message=exc.message)
                else:
                    self.snapshots.save(
                        Snapshot(
                            violation_id=violation.id,
                            url=context.url,
                            selector=fix.selector,
                            html=applied.before_html,
                            fix=fix,
                            session_id=session.session_id,
                            element=applied.element,
                        )
                    )
                    self.audit_log.record(
                        session.session_id,
                        fix,
                        AuditResult.APPLIED,
                        before_html=applied.before_html,
                        after_html=applied.after_html,
                    )
                    review = chosen.review_item(violation)
                    if review is not None:
                        session.review_items.setdefault(index, []).append(review)
                    return finish(
                        OutcomeState.FIXED,
                        before_html=applied.before_html,
                        after_html=applied.after_html,
                        flagged_for_review=review is not None,
                    )

            # Page moved on since planning; re-plan against the live text
            replans = attempts - 1
            telemetry.emit(
                events.CONTENT_CHANGED,
                events.content_changed(url=context.url, replan=replans),
                session_id=session.session_id,
            )
            if replans >= self.config.max_replans:
                return finish(OutcomeState.SKIPPED, ReasonCode.CONTENT_CHANGED, message=changed.message)
            logger.info("Re-planning %s against live content (re-plan %d)", violation.id, replans + 1)
            context = context.with_element_text(changed.current_text)
            session.states[violation.id] = ViolationState.PENDING

    async def _plan(self, chosen: Specialist, violation: Violation, context: PageContext) -> Instruction:
        timeout = self.config.planning_timeout
        try:
            async with asyncio.timeout(timeout):
                return await chosen.plan_fix(violation, context)
        except TimeoutError as exc:
            raise FixPlanningError(
                f"{chosen.name} did not produce a fix within {timeout:g}s",
                violation_id=violation.id,
                specialist=chosen.name,
            ) from exc

    def _reject_destructive(
        self,
        session: _Session,
        index: int,
        violation: Violation,
        chosen: Specialist,
        fix: Instruction,
    ) -> str:
        error = self.validator.create_destructive_change_error(fix)
        self.audit_log.record(session.session_id, fix, AuditResult.REJECTED)
        session.review_items.setdefault(index, []).append(
            ReviewItem(
                violation_id=violation.id,
                rule_id=violation.rule_id,
                selector=error.selector,
                reason=error.message,
                suggested_action=DESTRUCTIVE_REVIEW_ACTION,
            )
        )
        logger.warning("Rejected destructive %s fix for %s: %s", fix.type, violation.id, error.message)
        telemetry.emit(
            events.DESTRUCTIVE_REJECTED,
            events.destructive_rejected(rule_id=violation.rule_id, fix_type=fix.type, specialist=chosen.name),
            session_id=session.session_id,
        )
        return error.message

    # ── Pages ────────────────────────────────────────────────────────

    def _slot_for(self, url: str) -> _PageSlot:
        slot = self._slots.get(url)
        if slot is None:
            slot = self._slots[url] = _PageSlot(url)
        return slot

    async def _page_for(self, session: _Session, slot: _PageSlot) -> Page:
        """The slot's page, opened and loaded on first use.  Caller holds ``slot.lock``."""
        if slot.page is not None and not slot.page.is_closed():
            return slot.page
        await slot.close()
        try:
            context = await self.connection.create_context(self.config.viewport)
            page = await self.connection.create_page(context)
        except Exception as exc:
            if session.abort_error is None:
                session.abort_error = exc
            raise _SessionAbort from exc
        slot.context = context
        try:
            await self._page_loader(page, slot.url)
        except Exception as exc:
            await slot.close()
            raise ApplyFailedError(f"Could not load {slot.url}: {exc}") from exc
        slot.page = page
        logger.debug("Opened page for %s", slot.url)
        return page

    async def _drop_dead_page(self, session: _Session, slot: _PageSlot, exc: A11yFixError) -> None:
        logger.warning("Browser died while working on %s: %s", slot.url, exc)
        telemetry.emit(
            events.BROWSER_DEAD,
            events.browser_dead(url=slot.url, error=str(exc)),
            session_id=session.session_id,
        )
        await slot.close()


__all__ = [
    "FixApplicationPipeline",
    "PipelineConfig",
    "RemediationReport",
    "ViolationState",
    "navigate",
    "summarize",
]
