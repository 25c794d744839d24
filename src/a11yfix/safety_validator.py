# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SafetyValidator: rejects fixes that would break interactive elements.

Every proposed fix, whether it came from a built-in specialist or the oracle,
passes through ``validate()`` before it may touch the page.  All rules are
evaluated and every violated rule is reported, so a reviewer sees the full
picture for a rejected fix.

A fix is *destructive* when it targets an interactive element (button, link,
form control, form) and would either strip its accessible name, strip its
affordance (href/type/name/action/method), empty its text, or hide it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from .errors import DestructiveChangeError
from .instructions import AttributeFix, ContentFix, StyleFix, format_validation_errors, parse_instruction

logger = logging.getLogger(__name__)

INTERACTIVE_TAGS = frozenset({"button", "a", "input", "select", "textarea", "form"})

# Clearing any of these on an interactive element is destructive
ACCESSIBLE_NAME_ATTRIBUTES = frozenset({"aria-label", "aria-labelledby", "alt", "title"})
AFFORDANCE_ATTRIBUTES = frozenset({"href", "type", "name", "action", "method"})
CRITICAL_ATTRIBUTES = ACCESSIBLE_NAME_ATTRIBUTES | AFFORDANCE_ATTRIBUTES

_HIDING_STYLES = {"display": "none", "visibility": "hidden"}

_TAG_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9-]*)")
_IMPORTANT_RE = re.compile(r"\s*!\s*important\s*$", re.IGNORECASE)
_COMBINATORS = frozenset(" \t\n\r\f>+~,")


@dataclass(frozen=True, slots=True)
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors), "warnings": list(self.warnings)}


# ---------------------------------------------------------------------------
# Selector inspection
# ---------------------------------------------------------------------------


def split_compounds(selector: str) -> list[str]:
    """Split a selector list into compound selectors.

    Splits on ``,`` and on combinators (whitespace ``>`` ``+`` ``~``) that sit
    outside brackets, parentheses and quotes.
    """
    compounds: list[str] = []
    current: list[str] = []
    depth = 0
    quote = ""
    for ch in selector:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = ""
            continue
        if ch in "\"'":
            quote = ch
        elif ch in "[(":
            depth += 1
        elif ch in "])":
            depth = max(0, depth - 1)
        elif depth == 0 and ch in _COMBINATORS:
            if current:
                compounds.append("".join(current))
                current = []
            continue
        current.append(ch)
    if current:
        compounds.append("".join(current))
    return compounds


def is_interactive_selector(selector: str) -> bool:
    """True when any compound in *selector* names an interactive tag."""
    for compound in split_compounds(selector):
        m = _TAG_RE.match(compound)
        if m and m.group(1).lower() in INTERACTIVE_TAGS:
            return True
    return False


def _hides_element(styles: dict[str, str]) -> bool:
    for prop, raw in styles.items():
        hidden_value = _HIDING_STYLES.get(prop.strip().lower())
        if hidden_value is None:
            continue
        if _IMPORTANT_RE.sub("", raw).strip().lower() == hidden_value:
            return True
    return False


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------


def _targets(fix: AttributeFix | ContentFix | StyleFix) -> list[str]:
    """Selectors a fix touches.

    The injector mutates ``params.selector``; an untrusted fix may not keep it
    equal to the top-level ``selector``.
    """
    if fix.params.selector == fix.selector:
        return [fix.selector]
    return [fix.params.selector, fix.selector]


def _interactive_target(fix: AttributeFix | ContentFix | StyleFix) -> str:
    return next((s for s in _targets(fix) if is_interactive_selector(s)), fix.selector)


class SafetyValidator:
    """Stateless; one instance can be shared by all pipeline workers."""

    def is_destructive(self, fix: AttributeFix | ContentFix | StyleFix) -> bool:
        if not any(is_interactive_selector(s) for s in _targets(fix)):
            return False
        if isinstance(fix, ContentFix):
            return fix.params.inner_text.strip() == ""
        if isinstance(fix, AttributeFix):
            return fix.params.attribute.strip().lower() in CRITICAL_ATTRIBUTES and fix.params.value.strip() == ""
        return _hides_element(fix.params.styles)

    def validate(self, instruction: Any) -> ValidationResult:
        """Check a FixInstruction (or a raw mapping / JSON text to be coerced into one)."""
        try:
            fix = parse_instruction(instruction)
        except ValidationError as exc:
            return ValidationResult(valid=False, errors=format_validation_errors(exc))

        errors: list[str] = []
        warnings: list[str] = []

        if not fix.selector.strip():
            errors.append("selector: must not be blank")
        if fix.params.selector != fix.selector:
            errors.append(
                f'Selector mismatch: instruction targets "{fix.selector}" but params target "{fix.params.selector}"'
            )
        if self.is_destructive(fix):
            errors.append(
                f'Destructive change detected: Fix would modify interactive element "{_interactive_target(fix)}" '
                "in a way that could break functionality"
            )
        if any(is_interactive_selector(s) for s in _targets(fix)):
            target = _interactive_target(fix)
            warnings.append(f'Modifying interactive element "{target}" - verify functionality after fix')

        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    def create_destructive_change_error(self, fix: AttributeFix | ContentFix | StyleFix) -> DestructiveChangeError:
        target = _interactive_target(fix)
        return DestructiveChangeError(
            f"Fix would delete or break interactive element: {target}",
            selector=target,
            details={"fixType": fix.type, "violationId": fix.violation_id},
        )
