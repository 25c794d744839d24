# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""a11yfix exception hierarchy.

All a11yfix errors inherit from A11yFixError, allowing callers to catch the
base class for any remediation failure or specific subclasses for targeted
handling.  DOM-level failures carry a machine-readable ``code`` and the
selector they were raised for.
"""

from __future__ import annotations

from typing import Any


class A11yFixError(Exception):
    """Base exception for all a11yfix errors."""


class ConfigError(A11yFixError, ValueError):
    """Invalid configuration value (environment or constructor argument)."""


class FixPlanningError(A11yFixError):
    """Specialist or fix-generation oracle failed to produce a usable fix."""

    def __init__(self, message: str, *, violation_id: str = "", specialist: str = "") -> None:
        super().__init__(message)
        self.violation_id = violation_id
        self.specialist = specialist


class UnhandledViolationError(A11yFixError):
    """No registered specialist accepts the violation's rule."""

    def __init__(self, message: str, *, violation_id: str = "", rule_id: str = "") -> None:
        super().__init__(message)
        self.violation_id = violation_id
        self.rule_id = rule_id


class BrowserConnectionError(A11yFixError):
    """Browser launch or remote dial failed."""


class SessionAbortedError(A11yFixError):
    """A remediation session stopped early because the browser connection failed.

    ``outcomes`` holds the terminal outcomes recorded before the abort.
    """

    def __init__(self, message: str, *, outcomes: list | None = None) -> None:
        super().__init__(message)
        self.outcomes = outcomes or []


# ---------------------------------------------------------------------------
# Injector errors (DOM level)
# ---------------------------------------------------------------------------


class InjectorError(A11yFixError):
    """Fix could not be applied to the page."""

    code = "INJECTOR_ERROR"

    def __init__(self, message: str, *, selector: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.selector = selector
        self.details = details

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"code": self.code, "message": self.message, "selector": self.selector}
        if self.details is not None:
            result["details"] = self.details
        return result


class DestructiveChangeError(InjectorError):
    """Fix would strip an interactive element's function or accessible name."""

    code = "DESTRUCTIVE_CHANGE"


class ContentChangedError(InjectorError):
    """Live element text no longer matches the hash captured at plan time."""

    code = "CONTENT_CHANGED"

    def __init__(
        self,
        message: str,
        *,
        selector: str = "",
        expected_hash: str = "",
        actual_hash: str = "",
        current_text: str = "",
    ) -> None:
        super().__init__(
            message,
            selector=selector,
            details={"expectedHash": expected_hash, "actualHash": actual_hash},
        )
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        self.current_text = current_text


class SelectorNotFoundError(InjectorError):
    """Selector does not resolve to any element on the page."""

    code = "SELECTOR_NOT_FOUND"


class ApplyFailedError(InjectorError):
    """DOM mutation raised inside the browser."""

    code = "APPLY_FAILED"
