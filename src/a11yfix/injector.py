# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""DOM operations that apply a FixInstruction to a live Playwright page.

Every mutation captures the element's ``outerHTML`` before and after, so the
caller can report the diff and later roll the change back.  These functions
do not check content integrity; callers verify first while holding the
page lock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from playwright.async_api import ElementHandle, Page
from playwright.async_api import Error as PlaywrightError

from .errors import ApplyFailedError, SelectorNotFoundError
from .instructions import AttributeFix, ContentFix, StyleFix

logger = logging.getLogger(__name__)

# ── In-page scripts ──────────────────────────────────────────────

OUTER_HTML_JS = "el => el.outerHTML"
INNER_TEXT_JS = "el => el.innerText ?? el.textContent ?? ''"
SET_ATTRIBUTE_JS = "(el, [name, value]) => el.setAttribute(name, value)"
SET_INNER_TEXT_JS = "(el, text) => { el.innerText = text; }"
ADD_CLASS_JS = "(el, cls) => el.classList.add(cls)"
SET_STYLES_JS = """(el, styles) => {
  for (const [prop, raw] of Object.entries(styles)) {
    const important = /!important\\s*$/i.test(raw);
    const value = raw.replace(/\\s*!important\\s*$/i, '');
    el.style.setProperty(prop, value, important ? 'important' : '');
  }
}"""
RESTORE_OUTER_HTML_JS = "(el, html) => { el.outerHTML = html; }"


@dataclass(frozen=True, slots=True)
class FixResult:
    selector: str
    before_html: str
    after_html: str
    # Handle to the mutated element; the selector may stop matching after the fix
    element: ElementHandle | None = field(default=None, compare=False, repr=False)


# ---------------------------------------------------------------------------
# Element access
# ---------------------------------------------------------------------------


async def query_element(page: Page, selector: str) -> ElementHandle:
    """First element matching *selector*; ``SelectorNotFoundError`` if none."""
    try:
        element = await page.query_selector(selector)
    except PlaywrightError as exc:
        raise SelectorNotFoundError(f"Invalid selector: {selector} ({exc})", selector=selector) from exc
    if element is None:
        raise SelectorNotFoundError(f"Element not found: {selector}", selector=selector)
    return element


async def read_inner_text(page: Page, selector: str) -> str:
    element = await query_element(page, selector)
    text = await _evaluate(element, selector, INNER_TEXT_JS)
    # Elements without rendered text (SVG, detached) come back as null
    return "" if text is None else str(text)


async def _evaluate(element: ElementHandle, selector: str, script: str, arg: Any = None) -> Any:
    try:
        return await element.evaluate(script, arg)
    except PlaywrightError as exc:
        raise ApplyFailedError(f"DOM operation failed on {selector}: {exc}", selector=selector) from exc


async def _mutate(page: Page, selector: str, steps: list[tuple[str, Any]]) -> FixResult:
    element = await query_element(page, selector)
    before = await _evaluate(element, selector, OUTER_HTML_JS)
    for script, arg in steps:
        await _evaluate(element, selector, script, arg)
    after = await _evaluate(element, selector, OUTER_HTML_JS)
    return FixResult(selector=selector, before_html=before, after_html=after, element=element)


# ---------------------------------------------------------------------------
# Fix application
# ---------------------------------------------------------------------------


async def apply_attribute_fix(page: Page, fix: AttributeFix) -> FixResult:
    p = fix.params
    return await _mutate(page, p.selector, [(SET_ATTRIBUTE_JS, [p.attribute, p.value])])


async def apply_content_fix(page: Page, fix: ContentFix) -> FixResult:
    p = fix.params
    return await _mutate(page, p.selector, [(SET_INNER_TEXT_JS, p.inner_text)])


async def apply_style_fix(page: Page, fix: StyleFix) -> FixResult:
    p = fix.params
    steps: list[tuple[str, Any]] = []
    if p.css_class:
        steps.append((ADD_CLASS_JS, p.css_class))
    if p.styles:
        steps.append((SET_STYLES_JS, dict(p.styles)))
    return await _mutate(page, p.selector, steps)


async def apply_fix(page: Page, fix: AttributeFix | ContentFix | StyleFix) -> FixResult:
    """Apply *fix* and return the element's before/after HTML."""
    if isinstance(fix, AttributeFix):
        result = await apply_attribute_fix(page, fix)
    elif isinstance(fix, ContentFix):
        result = await apply_content_fix(page, fix)
    else:
        result = await apply_style_fix(page, fix)
    logger.debug("Applied %s fix to %s", fix.type, fix.params.selector)
    return result


async def restore_outer_html(page: Page, selector: str, html: str, *, element: ElementHandle | None = None) -> None:
    """Replace *element* (or the first match for *selector*) with *html*."""
    if element is None:
        element = await query_element(page, selector)
    await _evaluate(element, selector, RESTORE_OUTER_HTML_JS, html)
