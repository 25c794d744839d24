# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""a11yfix: automated remediation of accessibility violations.

Takes violations detected by an external scanner, plus the page context they
were found in, and for each one:
- dispatches it to a fix-planning specialist
- validates the proposed fix against destructive-change and integrity rules
- applies the fix through a shared Playwright browser connection
- records a terminal outcome
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class Impact(StrEnum):
    CRITICAL = "critical"
    SERIOUS = "serious"
    MODERATE = "moderate"
    MINOR = "minor"

    @property
    def priority(self) -> int:
        """0 = most urgent."""
        return _IMPACT_PRIORITY[self]


_IMPACT_PRIORITY = {
    Impact.CRITICAL: 0,
    Impact.SERIOUS: 1,
    Impact.MODERATE: 2,
    Impact.MINOR: 3,
}


@dataclass(frozen=True, slots=True)
class Violation:
    """A single accessibility defect reported by the scanner."""

    id: str
    rule_id: str
    impact: Impact
    selector: str
    html: str = ""
    description: str = ""
    help: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Violation:
        """Build from scanner JSON (camelCase ``ruleId`` or snake_case ``rule_id``)."""
        return cls(
            id=str(data["id"]),
            rule_id=str(data.get("ruleId", data.get("rule_id", ""))),
            impact=Impact(data.get("impact", "moderate")),
            selector=str(data["selector"]),
            html=str(data.get("html", "")),
            description=str(data.get("description", "")),
            help=str(data.get("help", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "ruleId": self.rule_id,
            "impact": self.impact.value,
            "selector": self.selector,
            "html": self.html,
            "description": self.description,
            "help": self.help,
        }


@dataclass(frozen=True, slots=True)
class ColorPair:
    foreground: str
    background: str


@dataclass(frozen=True, slots=True)
class PageContext:
    """Read-only page information supplied alongside a violation."""

    url: str
    title: str | None = None
    surrounding_text: str | None = None
    parent_element: str | None = None
    sibling_elements: tuple[str, ...] = ()
    image_src: str | None = None
    image_filename: str | None = None
    current_colors: ColorPair | None = None
    element_text: str | None = None  # live text observed at apply time (re-plan only)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PageContext:
        colors = data.get("currentColors") or data.get("current_colors")
        return cls(
            url=str(data.get("url", "")),
            title=data.get("title"),
            surrounding_text=data.get("surroundingText", data.get("surrounding_text")),
            parent_element=data.get("parentElement", data.get("parent_element")),
            sibling_elements=tuple(data.get("siblingElements", data.get("sibling_elements")) or ()),
            image_src=data.get("imageSrc", data.get("image_src")),
            image_filename=data.get("imageFilename", data.get("image_filename")),
            current_colors=ColorPair(colors["foreground"], colors["background"]) if colors else None,
            element_text=data.get("elementText", data.get("element_text")),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"url": self.url}
        optional = {
            "title": self.title,
            "surroundingText": self.surrounding_text,
            "parentElement": self.parent_element,
            "imageSrc": self.image_src,
            "imageFilename": self.image_filename,
            "elementText": self.element_text,
        }
        result.update({k: v for k, v in optional.items() if v is not None})
        if self.sibling_elements:
            result["siblingElements"] = list(self.sibling_elements)
        if self.current_colors is not None:
            result["currentColors"] = {
                "foreground": self.current_colors.foreground,
                "background": self.current_colors.background,
            }
        return result

    def with_element_text(self, text: str) -> PageContext:
        return dataclasses.replace(self, element_text=text)


class OutcomeState(StrEnum):
    FIXED = "fixed"
    SKIPPED = "skipped"
    ERROR = "error"


class ReasonCode(StrEnum):
    NO_SPECIALIST = "no_specialist"
    PLANNING_FAILED = "planning_failed"
    DESTRUCTIVE = "destructive"
    VALIDATION_FAILED = "validation_failed"
    CONTENT_CHANGED = "content_changed"
    APPLY_FAILED = "apply_failed"


@dataclass(frozen=True, slots=True)
class Outcome:
    """Terminal record for one violation."""

    violation_id: str
    state: OutcomeState
    reason_code: ReasonCode | None = None
    before_html: str | None = None
    after_html: str | None = None
    specialist: str = ""
    attempts: int = 0  # planning attempts made
    flagged_for_review: bool = False
    message: str = ""
    stage_timings: dict[str, float] = field(default_factory=dict)

    @property
    def fixed(self) -> bool:
        return self.state is OutcomeState.FIXED

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "violationId": self.violation_id,
            "state": self.state.value,
            "attempts": self.attempts,
        }
        if self.reason_code is not None:
            result["reasonCode"] = self.reason_code.value
        if self.specialist:
            result["specialist"] = self.specialist
        if self.before_html is not None:
            result["beforeHtml"] = self.before_html
        if self.after_html is not None:
            result["afterHtml"] = self.after_html
        if self.flagged_for_review:
            result["flaggedForReview"] = True
        if self.message:
            result["message"] = self.message
        if self.stage_timings:
            result["stageTimings"] = self.stage_timings
        return result


@dataclass(frozen=True, slots=True)
class ReviewItem:
    """A violation handed off to a person, with what they should do about it."""

    violation_id: str
    rule_id: str
    selector: str
    reason: str
    suggested_action: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "violationId": self.violation_id,
            "ruleId": self.rule_id,
            "selector": self.selector,
            "reason": self.reason,
            "suggestedAction": self.suggested_action,
        }


__all__ = [
    "ColorPair",
    "Impact",
    "Outcome",
    "OutcomeState",
    "PageContext",
    "ReasonCode",
    "ReviewItem",
    "Violation",
]
