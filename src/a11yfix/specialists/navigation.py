# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Keyboard navigation and accessible names for links and buttons."""

from __future__ import annotations

import re

from .. import PageContext, Violation
from ..instructions import AttributeFix, attribute_fix
from .base import specialist

PATTERNS = (
    r"focus",
    r"keyboard",
    r"tabindex",
    r"focusable",
    r"scrollable-region-focusable",
    r"skip-link",
    r"bypass",
    r"link-name",
    r"button-name",
)

MAX_LABEL_LENGTH = 50

_INTERACTIVE_HTML_RES = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"<button",
        r"<a\s",
        r"<input",
        r"<select",
        r"<textarea",
        r"onclick",
        r"role\s*=\s*[\"'](?:button|link|tab|menuitem)[\"']",
    )
)
_ARIA_LABEL_RE = re.compile(r"aria-label\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
_TITLE_RE = re.compile(r"title\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
_TEXT_RE = re.compile(r">([^<]+)<")

# Keyword in markup -> label, checked in order
_KEYWORD_LABELS = (
    ("search", "Search"),
    ("menu", "Menu"),
    ("close", "Close"),
    ("nav", "Navigation"),
    ("submit", "Submit"),
    ("cancel", "Cancel"),
    ("edit", "Edit"),
    ("delete", "Delete"),
    ("add", "Add"),
    ("remove", "Remove"),
)


def is_interactive_html(html: str) -> bool:
    return any(r.search(html) for r in _INTERACTIVE_HTML_RES)


def extract_label(html: str) -> str:
    for pattern in (_ARIA_LABEL_RE, _TITLE_RE):
        m = pattern.search(html)
        if m and m.group(1).strip():
            return m.group(1).strip()
    m = _TEXT_RE.search(html)
    if m and m.group(1).strip() and len(m.group(1).strip()) <= MAX_LABEL_LENGTH:
        return m.group(1).strip()
    lowered = html.lower()
    for keyword, label in _KEYWORD_LABELS:
        if keyword in lowered:
            return label
    return "Interactive element"


def choose_fix(violation: Violation) -> tuple[str, str]:
    """``(attribute, value)`` for a navigation rule."""
    rule = violation.rule_id.lower()
    html = violation.html.lower()
    if "tabindex" in rule:
        return "tabindex", "0"
    if "focus" in rule:
        if "scrollable" in rule or is_interactive_html(html):
            return "tabindex", "0"
        return "tabindex", "-1"
    if "keyboard" in rule:
        if "click" in html and "<button" not in html and "<a " not in html:
            return "role", "button"
        return "tabindex", "0"
    if "link-name" in rule or "button-name" in rule:
        return "aria-label", extract_label(violation.html)
    if "skip" in rule or "bypass" in rule:
        return "aria-label", "Skip to main content"
    return "tabindex", "0"


def _reasoning(violation: Violation, attribute: str, value: str) -> str:
    if attribute == "tabindex" and value == "0":
        why = "includes the element in the keyboard tab order"
    elif attribute == "tabindex":
        why = "allows programmatic focus without adding the element to the tab order"
    elif attribute == "role":
        why = "exposes the element's purpose to assistive technologies"
    else:
        why = "gives the element an accessible name"
    return f'Adding {attribute}="{value}" {why}. Rule: {violation.rule_id}'


async def plan(violation: Violation, context: PageContext) -> AttributeFix:
    attribute, value = choose_fix(violation)
    return attribute_fix(violation.selector, violation.id, attribute, value, _reasoning(violation, attribute, value))


SPECIALIST = specialist("navigation", PATTERNS, plan)
