# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for ContentIntegrityGuard: plan-time vs apply-time content hashes."""

from __future__ import annotations

import pytest

from a11yfix.errors import ContentChangedError, SelectorNotFoundError
from a11yfix.hashing import content_hash
from a11yfix.instructions import attribute_fix, content_fix
from a11yfix.integrity import ContentIntegrityGuard
from tests._fakes import FakeElement, FakePage


@pytest.fixture
def guard():
    return ContentIntegrityGuard()


class TestCheck:
    def test_match_passes(self, guard):
        guard.check(content_fix("a", "v1", "New", "Read more", "r"), "Read more")

    def test_mismatch_raises(self, guard):
        fix = content_fix("a.more", "v1", "New", "Read more", "r")
        with pytest.raises(ContentChangedError) as info:
            guard.check(fix, "Continue reading")
        err = info.value
        assert err.code == "CONTENT_CHANGED"
        assert err.expected_hash == content_hash("Read more")
        assert err.actual_hash == content_hash("Continue reading")
        assert err.current_text == "Continue reading"
        assert str(err) == (
            f"Content has changed since audit. Expected hash: {err.expected_hash}, got: {err.actual_hash}"
        )
        assert err.details == {"expectedHash": err.expected_hash, "actualHash": err.actual_hash}

    def test_whitespace_matters(self, guard):
        with pytest.raises(ContentChangedError):
            guard.check(content_fix("a", "v1", "New", "Read more", "r"), "Read more\n")


class TestVerify:
    async def test_reads_live_text(self, guard):
        page = FakePage({"a.more": FakeElement("a", text="Read more")})
        await guard.verify(page, content_fix("a.more", "v1", "New", "Read more", "r"))

    async def test_live_change_detected(self, guard):
        page = FakePage({"a.more": FakeElement("a", text="Sold out")})
        with pytest.raises(ContentChangedError) as info:
            await guard.verify(page, content_fix("a.more", "v1", "New", "Read more", "r"))
        assert info.value.current_text == "Sold out"

    async def test_non_content_fix_skips_page(self, guard):
        page = FakePage()
        await guard.verify(page, attribute_fix("img.gone", "v1", "alt", "x", "r"))

    async def test_missing_element(self, guard):
        with pytest.raises(SelectorNotFoundError):
            await guard.verify(FakePage(), content_fix("a.gone", "v1", "New", "Old", "r"))

    async def test_never_mutates(self, guard):
        element = FakeElement("a", text="Sold out")
        page = FakePage({"a.more": element})
        with pytest.raises(ContentChangedError):
            await guard.verify(page, content_fix("a.more", "v1", "New", "Read more", "r"))
        assert element.text == "Sold out"

    async def test_element_without_text_hashes_as_empty(self, guard):
        page = FakePage({"svg text.label": FakeElement("text", text=None)})
        await guard.verify(page, content_fix("svg text.label", "v1", "Revenue", "", "r"))
        with pytest.raises(ContentChangedError) as info:
            await guard.verify(page, content_fix("svg text.label", "v1", "Revenue", "Q3", "r"))
        assert info.value.current_text == ""
