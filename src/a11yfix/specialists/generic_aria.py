# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Catch-all ARIA fixer for rules no dedicated specialist recognizes.

Only registered on request (``default_registry(include_generic_fallback=True)``),
since its guesses are much weaker than the dedicated specialists'.
"""

from __future__ import annotations

import re

from .. import PageContext, Violation
from ..instructions import AttributeFix, attribute_fix
from .base import specialist

PATTERNS = (r".*",)

MAX_LABEL_LENGTH = 50

_TEXT_RE = re.compile(r">([^<]+)<")
_ENSURE_RE = re.compile(r"^ensure\s+", re.IGNORECASE)

_TAG_LABELS = (
    ("<button", "Button"),
    ("<a ", "Link"),
    ("<input", "Input field"),
    ("<select", "Selection"),
    ("<nav", "Navigation"),
    ("<main", "Main content"),
    ("<aside", "Sidebar"),
    ("<footer", "Footer"),
    ("<header", "Header"),
)

_ROLE_HINTS = (
    (("<nav", "navigation"), "navigation"),
    (("<main",), "main"),
    (("<aside",), "complementary"),
    (("<footer",), "contentinfo"),
    (("<header",), "banner"),
    (("<form",), "form"),
    (("<search",), "search"),
    (("onclick", "click"), "button"),
    (("menu",), "menu"),
    (("tab",), "tab"),
    (("dialog", "modal"), "dialog"),
    (("alert",), "alert"),
    (("list",), "list"),
    (("table",), "table"),
    (("img", "image"), "img"),
)

_STATE_ATTRIBUTES = ("pressed", "checked", "selected", "expanded", "disabled")


def extract_label(violation: Violation) -> str:
    if violation.help:
        label = _ENSURE_RE.sub("", violation.help).strip()
        if label and len(label) <= MAX_LABEL_LENGTH:
            return label
    m = _TEXT_RE.search(violation.html)
    if m and m.group(1).strip() and len(m.group(1).strip()) <= MAX_LABEL_LENGTH:
        return m.group(1).strip()
    html = violation.html.lower()
    for marker, label in _TAG_LABELS:
        if marker in html:
            return label
    return "Interactive element"


def infer_role(html: str) -> str:
    lowered = html.lower()
    for markers, role in _ROLE_HINTS:
        if any(m in lowered for m in markers):
            return role
    return "region"


def choose_fix(violation: Violation) -> tuple[str, str]:
    rule = violation.rule_id.lower()
    if "label" in rule or "name" in rule:
        return "aria-label", extract_label(violation)
    if "role" in rule or "landmark" in rule:
        return "role", infer_role(violation.html)
    if "aria-" in rule and "state" in rule:
        for state in _STATE_ATTRIBUTES:
            if state in rule:
                return f"aria-{state}", "false"
        return "aria-label", extract_label(violation)
    if "hidden" in rule or "visible" in rule:
        return "aria-hidden", "false"
    if "required" in rule:
        return "aria-required", "true"
    if "invalid" in rule or "error" in rule:
        return "aria-invalid", "true"
    if "expand" in rule:
        return "aria-expanded", "false"
    return "aria-label", extract_label(violation)


async def plan(violation: Violation, context: PageContext) -> AttributeFix:
    attribute, value = choose_fix(violation)
    reasoning = f'Generic ARIA fix: {attribute}="{value}" for rule {violation.rule_id}'
    return attribute_fix(violation.selector, violation.id, attribute, value, reasoning)


SPECIALIST = specialist("generic_aria", PATTERNS, plan)
