# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Insufficient colour contrast.

Computes a foreground colour that meets WCAG AA against the current
background (4.5:1 for normal text, 3:1 for large text, each with a 0.1
safety buffer) by stepping the foreground away from the background's
luminance.  Falls back to black or white when stepping cannot get there.
"""

from __future__ import annotations

import re

from .. import PageContext, Violation
from ..instructions import StyleFix, style_fix
from .base import specialist

PATTERNS = (r"contrast", r"color-contrast", r"link-in-text-block")

NORMAL_TEXT_RATIO = 4.5
LARGE_TEXT_RATIO = 3.0
RATIO_BUFFER = 0.1
CSS_CLASS = "a11y-contrast-fix"

RGB = tuple[int, int, int]

_BLACK: RGB = (0, 0, 0)
_WHITE: RGB = (255, 255, 255)
_DEFAULT_COLORS: tuple[RGB, RGB] = ((150, 150, 150), _WHITE)

_HEX_RE = re.compile(r"^#([0-9a-f]{3}|[0-9a-f]{6})$")
_RGB_RE = re.compile(r"rgba?\s*\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)")
_DESCRIPTION_COLORS_RE = re.compile(r"foreground[:\s]+([#\w(),.]+).*background[:\s]+([#\w(),.]+)", re.IGNORECASE)
_LARGE_TEXT_MARKERS = ("font-size: 18", "font-size: 24", "<h1", "<h2", "<h3")


# ── Colour math ──────────────────────────────────────────────────


def parse_color(value: str) -> RGB | None:
    """``#rgb``, ``#rrggbb`` or ``rgb()/rgba()``; None for anything else."""
    text = value.strip().lower()
    m = _HEX_RE.match(text)
    if m:
        digits = m.group(1)
        if len(digits) == 3:
            digits = "".join(c * 2 for c in digits)
        return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))
    m = _RGB_RE.search(text)
    if m:
        r, g, b = (min(255, int(x)) for x in m.groups())
        return (r, g, b)
    return None


def to_hex(rgb: RGB) -> str:
    return "#" + "".join(f"{max(0, min(255, round(c))):02x}" for c in rgb)


def relative_luminance(rgb: RGB) -> float:
    def channel(c: int) -> float:
        s = c / 255
        return s / 12.92 if s <= 0.03928 else ((s + 0.055) / 1.055) ** 2.4

    r, g, b = (channel(c) for c in rgb)
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def contrast_ratio(a: RGB, b: RGB) -> float:
    la, lb = relative_luminance(a), relative_luminance(b)
    lighter, darker = max(la, lb), min(la, lb)
    return (lighter + 0.05) / (darker + 0.05)


def adjust_for_contrast(foreground: RGB, background: RGB, target: float, *, step: int = 5) -> RGB:
    """Step *foreground* toward black or white until it reaches *target* against *background*."""
    darken = relative_luminance(foreground) <= relative_luminance(background)
    adjusted = foreground
    for _ in range(100):
        if contrast_ratio(adjusted, background) >= target:
            return adjusted
        if darken:
            adjusted = tuple(max(0, c - step) for c in adjusted)  # type: ignore[assignment]
        else:
            adjusted = tuple(min(255, c + step) for c in adjusted)  # type: ignore[assignment]
    if contrast_ratio(adjusted, background) >= target:
        return adjusted
    return _BLACK if contrast_ratio(_BLACK, background) > contrast_ratio(_WHITE, background) else _WHITE


# ── Planning ─────────────────────────────────────────────────────


def extract_colors(violation: Violation, context: PageContext) -> tuple[RGB, RGB]:
    if context.current_colors is not None:
        fg = parse_color(context.current_colors.foreground)
        bg = parse_color(context.current_colors.background)
        if fg and bg:
            return fg, bg
    m = _DESCRIPTION_COLORS_RE.search(violation.description)
    if m:
        fg, bg = parse_color(m.group(1)), parse_color(m.group(2))
        if fg and bg:
            return fg, bg
    return _DEFAULT_COLORS


def target_ratio(violation: Violation) -> float:
    description = violation.description.lower()
    html = violation.html.lower()
    large = "large text" in description or any(marker in html for marker in _LARGE_TEXT_MARKERS)
    return (LARGE_TEXT_RATIO if large else NORMAL_TEXT_RATIO) + RATIO_BUFFER


async def plan(violation: Violation, context: PageContext) -> StyleFix:
    fg, bg = extract_colors(violation, context)
    target = target_ratio(violation)
    original = contrast_ratio(fg, bg)
    new_fg = fg if original >= target else adjust_for_contrast(fg, bg, target)
    kind = "normal text (4.5:1)" if target > 4 else "large text (3:1)"
    reasoning = (
        f"Adjusting text color from {to_hex(fg)} to {to_hex(new_fg)} to meet WCAG AA {kind} contrast. "
        f"Original ratio {original:.2f}:1 against background {to_hex(bg)}, "
        f"new ratio {contrast_ratio(new_fg, bg):.2f}:1. Rule: {violation.rule_id}"
    )
    return style_fix(violation.selector, violation.id, {"color": to_hex(new_fg)}, reasoning, css_class=CSS_CLASS)


SPECIALIST = specialist("contrast", PATTERNS, plan)
