# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""FixInstruction tagged union and coercion of untrusted fix payloads.

Instructions arrive from two places: built-in specialists (trusted code) and
the fix-generation oracle (untrusted JSON).  Both go through the same pydantic
models, so an oracle response is held to exactly the shape a specialist would
produce.  Unknown keys are dropped, never interpreted.

Wire names are camelCase (``violationId``, ``innerText``); snake_case is
accepted on input too.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .hashing import content_hash

_MODEL_CONFIG = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Params
# ---------------------------------------------------------------------------


class AttributeFixParams(BaseModel):
    model_config = _MODEL_CONFIG

    selector: str = Field(min_length=1)
    attribute: str = Field(min_length=1)
    value: str


class ContentFixParams(BaseModel):
    model_config = _MODEL_CONFIG

    selector: str = Field(min_length=1)
    inner_text: str = Field(alias="innerText")
    original_text_hash: str = Field(alias="originalTextHash", pattern=r"^[0-9a-f]{64}$")


class StyleFixParams(BaseModel):
    model_config = _MODEL_CONFIG

    selector: str = Field(min_length=1)
    css_class: str = Field("", alias="cssClass")
    styles: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Instructions
# ---------------------------------------------------------------------------


class _FixBase(BaseModel):
    model_config = _MODEL_CONFIG

    selector: str = Field(min_length=1)
    violation_id: str = Field(alias="violationId", min_length=1)
    reasoning: str = Field(min_length=1)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class AttributeFix(_FixBase):
    type: Literal["attribute"] = "attribute"
    params: AttributeFixParams


class ContentFix(_FixBase):
    type: Literal["content"] = "content"
    params: ContentFixParams


class StyleFix(_FixBase):
    type: Literal["style"] = "style"
    params: StyleFixParams


FixInstruction = Annotated[AttributeFix | ContentFix | StyleFix, Field(discriminator="type")]

_ADAPTER: TypeAdapter[AttributeFix | ContentFix | StyleFix] = TypeAdapter(FixInstruction)


def parse_instruction(raw: Any) -> AttributeFix | ContentFix | StyleFix:
    """Validate *raw* (mapping, JSON text, or instruction) into a FixInstruction.

    Raises pydantic ``ValidationError`` on any shape problem.
    """
    if isinstance(raw, AttributeFix | ContentFix | StyleFix):
        return raw
    if isinstance(raw, str | bytes):
        return _ADAPTER.validate_json(raw)
    return _ADAPTER.validate_python(raw)


def format_validation_errors(exc: ValidationError) -> list[str]:
    """``path: message`` strings, one per pydantic error."""
    errors = []
    for err in exc.errors():
        path = ".".join(str(p) for p in err.get("loc", ())) or "instruction"
        errors.append(f"{path}: {err.get('msg', 'invalid')}")
    return errors


# ---------------------------------------------------------------------------
# Builders used by specialists
# ---------------------------------------------------------------------------


def attribute_fix(selector: str, violation_id: str, attribute: str, value: str, reasoning: str) -> AttributeFix:
    return AttributeFix(
        selector=selector,
        violation_id=violation_id,
        reasoning=reasoning,
        params=AttributeFixParams(selector=selector, attribute=attribute, value=value),
    )


def style_fix(
    selector: str, violation_id: str, styles: dict[str, str], reasoning: str, css_class: str = ""
) -> StyleFix:
    return StyleFix(
        selector=selector,
        violation_id=violation_id,
        reasoning=reasoning,
        params=StyleFixParams(selector=selector, css_class=css_class, styles=dict(styles)),
    )


def content_fix(selector: str, violation_id: str, inner_text: str, original_text: str, reasoning: str) -> ContentFix:
    """Content fix whose integrity hash is taken from *original_text* now."""
    return ContentFix(
        selector=selector,
        violation_id=violation_id,
        reasoning=reasoning,
        params=ContentFixParams(
            selector=selector,
            inner_text=inner_text,
            original_text_hash=content_hash(original_text),
        ),
    )


__all__ = [
    "AttributeFix",
    "AttributeFixParams",
    "ContentFix",
    "ContentFixParams",
    "FixInstruction",
    "StyleFix",
    "StyleFixParams",
    "attribute_fix",
    "content_fix",
    "format_validation_errors",
    "parse_instruction",
    "style_fix",
]
