# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Missing alternative text on images, image inputs, areas and objects.

Sources for the alt text, in order of preference:
1. the image filename, unless it is a camera/CMS default like ``IMG_0042``
2. text surrounding the image on the page
3. empty alt, when the markup or filename says the image is decorative
4. a keyword guess from the element's HTML (logo, avatar, banner ...)
"""

from __future__ import annotations

import re

from .. import PageContext, Violation
from ..instructions import AttributeFix, attribute_fix
from .base import specialist

PATTERNS = (
    r"image-alt",
    r"img-alt",
    r"input-image-alt",
    r"area-alt",
    r"object-alt",
    r"svg-img-alt",
)

MAX_ALT_LENGTH = 125
_SURROUNDING_PREFIX = "Image related to: "

_EXTENSION_RE = re.compile(r"\.[^/.]+$")
_CAMEL_RE = re.compile(r"([a-z])([A-Z])")
_GENERIC_FILENAME_RES = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^img\d*$",
        r"^img[-_]\d+$",
        r"^image\d*$",
        r"^photo\d*$",
        r"^picture\d*$",
        r"^untitled",
        r"^dsc[-_]?\d+$",
        r"^screenshot",
        r"^\d+$",
    )
)
_DECORATIVE_HTML_RES = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"role\s*=\s*[\"']presentation[\"']",
        r"aria-hidden\s*=\s*[\"']true[\"']",
        r"class\s*=\s*[\"'][^\"']*(?:icon|decoration|spacer|divider)[^\"']*[\"']",
    )
)
_DECORATIVE_FILENAME_RE = re.compile(r"spacer|divider|decoration|border|bullet|arrow|icon", re.IGNORECASE)


def alt_from_filename(filename: str) -> str | None:
    """Readable sentence-case text from a filename, or None for generic names."""
    stem = _EXTENSION_RE.sub("", filename.rsplit("/", 1)[-1])
    if any(r.search(stem) for r in _GENERIC_FILENAME_RES):
        return None
    readable = _CAMEL_RE.sub(r"\1 \2", stem.replace("-", " ").replace("_", " "))
    readable = " ".join(readable.lower().split())
    if not readable or len(readable) > 100:
        return None
    return readable[0].upper() + readable[1:]


def is_likely_decorative(violation: Violation, context: PageContext) -> bool:
    if any(r.search(violation.html) for r in _DECORATIVE_HTML_RES):
        return True
    return bool(context.image_filename and _DECORATIVE_FILENAME_RE.search(context.image_filename))


def generic_alt(violation: Violation, context: PageContext) -> str:
    html = violation.html.lower()
    if "logo" in html:
        return f"{context.title} logo" if context.title else "Company logo"
    if "avatar" in html or "profile" in html:
        return "User profile image"
    if "banner" in html or "hero" in html:
        return "Banner image"
    if "thumbnail" in html:
        return "Thumbnail image"
    return "Image"


def generate_alt_text(violation: Violation, context: PageContext) -> str:
    if context.image_filename:
        from_name = alt_from_filename(context.image_filename)
        if from_name:
            return from_name

    surrounding = (context.surrounding_text or "").strip()
    if surrounding:
        if len(surrounding) > MAX_ALT_LENGTH:
            surrounding = surrounding[: MAX_ALT_LENGTH - 3] + "..."
        return _SURROUNDING_PREFIX + surrounding

    if is_likely_decorative(violation, context):
        return ""
    return generic_alt(violation, context)


def _reasoning(violation: Violation, context: PageContext, alt: str) -> str:
    if alt == "":
        return (
            "Setting empty alt attribute to mark image as decorative; "
            f"it does not convey meaningful content. Rule: {violation.rule_id}"
        )
    sources = []
    if context.image_filename:
        sources.append("filename analysis")
    if context.surrounding_text:
        sources.append("surrounding text context")
    if not sources:
        sources.append("HTML structure analysis")
    return f'Generated alt text "{alt}" based on {" and ".join(sources)}. Rule: {violation.rule_id}'


async def plan(violation: Violation, context: PageContext) -> AttributeFix:
    alt = generate_alt_text(violation, context)
    return attribute_fix(violation.selector, violation.id, "alt", alt, _reasoning(violation, context, alt))


SPECIALIST = specialist("alt_text", PATTERNS, plan)
