# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the fix oracle client and oracle-backed specialists.

The oracle is reached through httpx.MockTransport; no network access.
"""

from __future__ import annotations

import json

import httpx
import pytest

from a11yfix import Impact, PageContext, Violation
from a11yfix.errors import FixPlanningError
from a11yfix.instructions import AttributeFix
from a11yfix.safety_validator import SafetyValidator
from a11yfix.specialists import HttpFixOracle, coerce_instruction, oracle_specialist

VIOLATION = Violation(
    id="v7", rule_id="button-name", impact=Impact.CRITICAL, selector="button.buy", html="<button class='buy'></button>"
)
CONTEXT = PageContext(url="https://shop.example.com/p/1?utm=x", title="Product")


def _fix_payload(**overrides):
    payload = {
        "type": "attribute",
        "selector": "button.buy",
        "violationId": "v7",
        "reasoning": "Give the button a name",
        "params": {"selector": "button.buy", "attribute": "aria-label", "value": "Add to cart"},
    }
    payload.update(overrides)
    return payload


def _oracle(handler, **kwargs) -> HttpFixOracle:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpFixOracle("https://oracle.example.com/fix", client=client, **kwargs)


class TestCoerceInstruction:
    def test_plain_instruction(self):
        assert isinstance(coerce_instruction(_fix_payload(), VIOLATION), AttributeFix)

    def test_envelope(self):
        assert coerce_instruction({"instruction": _fix_payload()}, VIOLATION).violation_id == "v7"

    def test_json_text(self):
        assert coerce_instruction(json.dumps(_fix_payload()), VIOLATION).params.value == "Add to cart"

    def test_garbage_is_planning_error(self):
        with pytest.raises(FixPlanningError, match="invalid fix for v7") as info:
            coerce_instruction({"type": "attribute", "selector": "x"}, VIOLATION)
        assert info.value.violation_id == "v7"

    def test_free_text_is_planning_error(self):
        with pytest.raises(FixPlanningError):
            coerce_instruction("Sure! Here is your fix: add an aria-label.", VIOLATION)


class TestHttpFixOracle:
    async def test_posts_violation_and_context(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_fix_payload())

        oracle = _oracle(handler, token="tok")
        raw = await oracle.generate_fix(VIOLATION, CONTEXT)

        assert raw["violationId"] == "v7"
        assert seen["auth"] == "Bearer tok"
        assert seen["body"]["violation"]["ruleId"] == "button-name"
        assert seen["body"]["context"]["url"] == CONTEXT.url

    async def test_no_token_no_header(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json=_fix_payload())

        await _oracle(handler).generate_fix(VIOLATION, CONTEXT)
        assert seen["auth"] is None

    async def test_http_error_status(self):
        oracle = _oracle(lambda request: httpx.Response(503, text="overloaded"))
        with pytest.raises(FixPlanningError, match="HTTP 503"):
            await oracle.generate_fix(VIOLATION, CONTEXT)

    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(FixPlanningError, match="timed out"):
            await _oracle(handler).generate_fix(VIOLATION, CONTEXT)

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(FixPlanningError, match="request failed"):
            await _oracle(handler).generate_fix(VIOLATION, CONTEXT)

    async def test_non_json_body_returned_as_text(self):
        oracle = _oracle(lambda request: httpx.Response(200, text="not json"))
        assert await oracle.generate_fix(VIOLATION, CONTEXT) == "not json"

    async def test_borrowed_client_not_closed(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
        async with HttpFixOracle("https://oracle.example.com/fix", client=client):
            pass
        assert not client.is_closed
        await client.aclose()

    async def test_owned_client_closed(self):
        oracle = HttpFixOracle("https://oracle.example.com/fix")
        client = oracle._get_client()
        await oracle.aclose()
        assert client.is_closed


class TestOracleSpecialist:
    async def test_plans_through_oracle(self):
        oracle = _oracle(lambda request: httpx.Response(200, json={"instruction": _fix_payload()}))
        s = oracle_specialist("oracle", [".*"], oracle)
        fix = await s.plan_fix(VIOLATION, CONTEXT)
        assert fix.params.attribute == "aria-label"

    async def test_oracle_failure_is_planning_error(self):
        oracle = _oracle(lambda request: httpx.Response(500))
        s = oracle_specialist("oracle", [".*"], oracle)
        with pytest.raises(FixPlanningError):
            await s.plan_fix(VIOLATION, CONTEXT)

    async def test_claims_of_safety_are_ignored(self):
        payload = _fix_payload(safe=True, validated=True)
        payload["params"] = {"selector": "button.buy", "attribute": "aria-label", "value": ""}
        oracle = _oracle(lambda request: httpx.Response(200, json=payload))
        fix = await oracle_specialist("oracle", [".*"], oracle).plan_fix(VIOLATION, CONTEXT)

        result = SafetyValidator().validate(fix)
        assert not result.valid
        assert any("Destructive change detected" in e for e in result.errors)
