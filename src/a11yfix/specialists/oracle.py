# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Fix-generation oracle: an external service that proposes fixes.

The oracle is untrusted.  Whatever it returns is coerced through the same
pydantic models as built-in fixes and still goes through the safety
validator; a response that claims to be safe gets no special treatment.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from types import TracebackType
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from .. import PageContext, Violation
from ..errors import FixPlanningError
from ..instructions import AttributeFix, ContentFix, StyleFix, format_validation_errors, parse_instruction
from .base import Specialist, specialist

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class FixOracle(Protocol):
    async def generate_fix(self, violation: Violation, context: PageContext) -> Any: ...


def coerce_instruction(raw: Any, violation: Violation) -> AttributeFix | ContentFix | StyleFix:
    """Validate an oracle response into a FixInstruction or raise ``FixPlanningError``.

    Accepts the instruction itself, JSON text, or an envelope
    ``{"instruction": {...}}``.
    """
    if isinstance(raw, dict) and "type" not in raw and isinstance(raw.get("instruction"), dict):
        raw = raw["instruction"]
    try:
        return parse_instruction(raw)
    except ValidationError as exc:
        problems = "; ".join(format_validation_errors(exc))
        raise FixPlanningError(
            f"Oracle returned an invalid fix for {violation.id}: {problems}",
            violation_id=violation.id,
        ) from exc


class HttpFixOracle:
    """POSTs ``{violation, context}`` as JSON and returns the decoded response body.

    Usable as an async context manager; a client passed in by the caller is
    never closed here.
    """

    def __init__(
        self,
        url: str,
        *,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self._token = token
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> HttpFixOracle:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def generate_fix(self, violation: Violation, context: PageContext) -> Any:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else {}
        payload = {"violation": violation.to_dict(), "context": context.to_dict()}
        try:
            resp = await self._get_client().post(self.url, json=payload, headers=headers)
            resp.raise_for_status()
        except httpx.TimeoutException as exc:
            raise FixPlanningError(f"Fix oracle timed out for {violation.id}", violation_id=violation.id) from exc
        except httpx.HTTPStatusError as exc:
            raise FixPlanningError(
                f"Fix oracle returned HTTP {exc.response.status_code} for {violation.id}",
                violation_id=violation.id,
            ) from exc
        except httpx.HTTPError as exc:
            raise FixPlanningError(f"Fix oracle request failed: {exc}", violation_id=violation.id) from exc
        try:
            return resp.json()
        except ValueError:
            return resp.text


def oracle_specialist(name: str, patterns: Iterable[str], oracle: FixOracle) -> Specialist:
    """Specialist that asks *oracle* for a fix and coerces the answer."""

    async def plan(violation: Violation, context: PageContext) -> AttributeFix | ContentFix | StyleFix:
        raw = await oracle.generate_fix(violation, context)
        fix = coerce_instruction(raw, violation)
        logger.debug("Oracle proposed %s fix for %s", fix.type, violation.id)
        return fix

    return specialist(name, patterns, plan)
