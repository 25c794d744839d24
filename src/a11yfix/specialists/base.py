# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Specialist values and the ordered registry that dispatches to them.

A specialist is a name, a set of rule-id patterns and an async planning
function.  There is no class hierarchy: new strategies are plain values
built with ``specialist()``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

from .. import PageContext, ReviewItem, Violation
from ..errors import FixPlanningError, UnhandledViolationError
from ..instructions import AttributeFix, ContentFix, StyleFix

logger = logging.getLogger(__name__)

Instruction = AttributeFix | ContentFix | StyleFix
PlanFn = Callable[[Violation, PageContext], Awaitable[Instruction]]
ReviewFn = Callable[[Violation], ReviewItem | None]


@dataclass(frozen=True, slots=True)
class Specialist:
    name: str
    patterns: tuple[re.Pattern[str], ...]
    plan: PlanFn
    review: ReviewFn | None = None

    def can_handle(self, violation: Violation) -> bool:
        return any(p.search(violation.rule_id) for p in self.patterns)

    async def plan_fix(self, violation: Violation, context: PageContext) -> Instruction:
        """Run the planning function; any failure surfaces as ``FixPlanningError``."""
        try:
            return await self.plan(violation, context)
        except FixPlanningError:
            raise
        except Exception as exc:
            raise FixPlanningError(
                f"{self.name} failed to plan a fix for {violation.id}: {exc}",
                violation_id=violation.id,
                specialist=self.name,
            ) from exc

    def review_item(self, violation: Violation) -> ReviewItem | None:
        """Follow-up a person must do even when the fix applies cleanly."""
        if self.review is None:
            return None
        return self.review(violation)


def specialist(
    name: str,
    patterns: Iterable[str],
    plan: PlanFn,
    *,
    review: ReviewFn | None = None,
) -> Specialist:
    """Build a Specialist; *patterns* are case-insensitive regexes searched in ``rule_id``."""
    compiled = tuple(re.compile(p, re.IGNORECASE) for p in patterns)
    if not compiled:
        raise ValueError(f"specialist {name!r} needs at least one rule pattern")
    return Specialist(name=name, patterns=compiled, plan=plan, review=review)


class SpecialistRegistry:
    """Ordered specialists; the first whose patterns match a rule id wins."""

    def __init__(self, specialists: Iterable[Specialist] = ()) -> None:
        self._specialists: list[Specialist] = []
        for s in specialists:
            self.register(s)

    def register(self, specialist: Specialist) -> None:
        if any(s.name == specialist.name for s in self._specialists):
            raise ValueError(f"specialist {specialist.name!r} already registered")
        self._specialists.append(specialist)

    @property
    def specialists(self) -> tuple[Specialist, ...]:
        return tuple(self._specialists)

    def route(self, violation: Violation) -> Specialist | None:
        for s in self._specialists:
            if s.can_handle(violation):
                return s
        return None

    async def dispatch(self, violation: Violation, context: PageContext) -> Instruction:
        """Plan a fix with the first matching specialist.

        Raises ``UnhandledViolationError`` when nothing matches and
        ``FixPlanningError`` when the chosen specialist fails.
        """
        chosen = self.route(violation)
        if chosen is None:
            raise UnhandledViolationError(
                f"No specialist handles rule {violation.rule_id!r}",
                violation_id=violation.id,
                rule_id=violation.rule_id,
            )
        logger.debug("Dispatching %s (%s) to %s", violation.id, violation.rule_id, chosen.name)
        return await chosen.plan_fix(violation, context)
