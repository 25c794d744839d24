# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""WCAG 2.2 focus visibility: 2.4.11/2.4.12 (not obscured) and 2.4.13 (appearance)."""

from __future__ import annotations

from .. import PageContext, Violation
from ..instructions import StyleFix, style_fix
from .base import specialist

PATTERNS = (
    r"focus-not-obscured",
    r"focus-obscured",
    r"focus-visible",
    r"focus-appearance",
    r"2\.4\.11",
    r"2\.4\.12",
    r"2\.4\.13",
)

# Room for typical sticky headers and footers
_OBSCURED_STYLES = {
    "scroll-margin-top": "80px",
    "scroll-margin-bottom": "80px",
    "position": "relative",
    "z-index": "1",
}
_APPEARANCE_STYLES = {
    "outline": "2px solid #005fcc",
    "outline-offset": "2px",
    "border-radius": "2px",
}
_DEFAULT_STYLES = {
    "scroll-margin-top": "80px",
    "outline": "2px solid currentColor",
    "outline-offset": "2px",
}


def choose_strategy(rule_id: str) -> tuple[str, dict[str, str], str]:
    """``(css_class, styles, description)`` for a focus rule."""
    rule = rule_id.lower()
    if "obscured" in rule or "2.4.11" in rule or "2.4.12" in rule:
        return (
            "a11y-focus-visible",
            _OBSCURED_STYLES,
            "Add scroll-margin so sticky content cannot cover the focused element",
        )
    if "appearance" in rule or "2.4.13" in rule:
        return "a11y-focus-indicator", _APPEARANCE_STYLES, "Add a visible focus indicator"
    return "a11y-focus-default", _DEFAULT_STYLES, "Add default focus visibility improvements"


async def plan(violation: Violation, context: PageContext) -> StyleFix:
    css_class, styles, description = choose_strategy(violation.rule_id)
    reasoning = (
        f"WCAG 2.2 focus fix: {description}. "
        f'Addresses "{violation.rule_id}" on "{violation.selector}" so keyboard focus stays visible.'
    )
    return style_fix(violation.selector, violation.id, styles, reasoning, css_class=css_class)


SPECIALIST = specialist("focus", PATTERNS, plan)
