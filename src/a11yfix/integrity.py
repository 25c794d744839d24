# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Optimistic-concurrency check for content fixes.

A content fix carries the hash of the element text it was planned against.
Before the fix is applied, the live text is hashed again; a mismatch means the
page moved on and the fix must be re-planned rather than applied blind.
"""

from __future__ import annotations

import logging

from playwright.async_api import Page

from .errors import ContentChangedError
from .hashing import content_hash
from .injector import read_inner_text
from .instructions import AttributeFix, ContentFix, StyleFix

logger = logging.getLogger(__name__)


class ContentIntegrityGuard:
    """Compares plan-time and apply-time content hashes.  Never mutates the page."""

    def check(self, fix: ContentFix, live_text: str) -> None:
        """Raise ``ContentChangedError`` if *live_text* does not match the fix's hash."""
        expected = fix.params.original_text_hash
        actual = content_hash(live_text)
        if actual != expected:
            raise ContentChangedError(
                f"Content has changed since audit. Expected hash: {expected}, got: {actual}",
                selector=fix.params.selector,
                expected_hash=expected,
                actual_hash=actual,
                current_text=live_text,
            )

    async def verify(self, page: Page, fix: AttributeFix | ContentFix | StyleFix) -> None:
        """Re-read the target's live text and check it.  Non-content fixes pass untouched."""
        if not isinstance(fix, ContentFix):
            return
        live_text = await read_inner_text(page, fix.params.selector)
        try:
            self.check(fix, live_text)
        except ContentChangedError:
            logger.info("Content changed under %s since planning", fix.params.selector)
            raise
