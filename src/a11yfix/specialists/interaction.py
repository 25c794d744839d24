# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""WCAG 2.2 pointer interaction: 2.5.8 target size and 2.5.7 dragging movements.

Target size is fixed with CSS.  Dragging needs a single-pointer alternative
that only a developer can build, so the fix merely marks the element and the
violation is handed off for human review.
"""

from __future__ import annotations

from .. import PageContext, ReviewItem, Violation
from ..instructions import AttributeFix, StyleFix, attribute_fix, style_fix
from .base import specialist

PATTERNS = (
    r"dragging",
    r"drag-movements",
    r"target-size",
    r"pointer",
    r"2\.5\.7",
    r"2\.5\.8",
)

NEEDS_ALTERNATIVE_ATTRIBUTE = "data-a11y-needs-alternative"

# WCAG 2.5.8 minimum is 24x24 CSS pixels
_TARGET_SIZE_STYLES = {
    "min-width": "24px",
    "min-height": "24px",
    "padding": "4px",
    "touch-action": "manipulation",
}


def is_target_size_rule(rule_id: str) -> bool:
    rule = rule_id.lower()
    return "target-size" in rule or "2.5.8" in rule


def dragging_alternative(violation: Violation) -> tuple[str, str]:
    """``(control type, description)`` of the suggested single-pointer alternative."""
    html = violation.html.lower()
    if "slider" in html or "range" in html:
        return "input", "Add a number input for precise value entry"
    if "sortable" in html or "draggable" in html or "kanban" in html:
        return "button", 'Add "Move up" and "Move down" buttons for each item'
    if "map" in html:
        return "button", "Add pan buttons and a location search input"
    return "button", "Provide click-based alternatives to the drag operation"


async def plan(violation: Violation, context: PageContext) -> AttributeFix | StyleFix:
    if is_target_size_rule(violation.rule_id):
        reasoning = (
            f'WCAG 2.2 target size (2.5.8): "{violation.selector}" is below 24x24 CSS pixels; '
            "applying minimum dimensions."
        )
        return style_fix(violation.selector, violation.id, _TARGET_SIZE_STYLES, reasoning, css_class="a11y-target-size")

    kind, description = dragging_alternative(violation)
    reasoning = (
        f'WCAG 2.2 dragging movements (2.5.7): "{violation.selector}" has no single-pointer alternative. '
        f"Requires human review: implement a {kind}-based alternative. Suggested: {description}"
    )
    return attribute_fix(violation.selector, violation.id, NEEDS_ALTERNATIVE_ATTRIBUTE, "true", reasoning)


def review(violation: Violation) -> ReviewItem | None:
    if is_target_size_rule(violation.rule_id):
        return None
    kind, description = dragging_alternative(violation)
    return ReviewItem(
        violation_id=violation.id,
        rule_id=violation.rule_id,
        selector=violation.selector,
        reason="Dragging functionality needs a scripted single-pointer alternative",
        suggested_action=f"Implement {kind}-based alternative: {description}",
    )


SPECIALIST = specialist("interaction", PATTERNS, plan, review=review)
