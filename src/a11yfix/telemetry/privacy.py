# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Privacy filters applied to every telemetry payload."""

from __future__ import annotations

from urllib.parse import urlparse, urlunparse

# Page content and credentials never leave the process
_BLOCKED_FIELDS = frozenset(
    {
        "html",
        "before_html",
        "after_html",
        "outer_html",
        "inner_text",
        "text",
        "element_text",
        "surrounding_text",
        "reasoning",
        "value",
        "token",
        "authorization",
    }
)

_URL_FIELDS = ("url", "endpoint")


def sanitize_url(url: str) -> str:
    """Strip query string, fragment and userinfo from *url*."""
    try:
        parsed = urlparse(url)
        netloc = parsed.hostname or ""
        if parsed.port is not None:
            netloc = f"{netloc}:{parsed.port}"
    except ValueError:
        return ""
    return urlunparse((parsed.scheme, netloc, parsed.path, "", "", ""))


def sanitize_payload(payload: dict) -> dict:
    """Drop blocked fields (top level and one nested level) and clean URL fields."""
    cleaned: dict = {}
    for key, value in payload.items():
        if key in _BLOCKED_FIELDS:
            continue
        if isinstance(value, dict):
            cleaned[key] = {k: v for k, v in value.items() if k not in _BLOCKED_FIELDS}
        elif key in _URL_FIELDS and isinstance(value, str):
            cleaned[key] = sanitize_url(value)
        else:
            cleaned[key] = value
    return cleaned
