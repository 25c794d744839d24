# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Deterministic content fingerprinting.

Leaf module: no a11yfix imports.  The same function hashes element text at
plan time and at apply time, so it must never normalize its input.
"""

from __future__ import annotations

import hashlib
import re

EMPTY_HASH = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

_HASH_RE = re.compile(r"^[0-9a-f]{64}$")


def content_hash(text: str) -> str:
    """SHA-256 of the exact UTF-8 bytes of *text*, as 64 lowercase hex digits."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def is_content_hash(value: object) -> bool:
    """True if *value* looks like a ``content_hash`` result."""
    return isinstance(value, str) and _HASH_RE.fullmatch(value) is not None
