# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Fix-planning specialists and the registry that routes violations to them."""

from __future__ import annotations

from collections.abc import Iterable

from . import alt_text, contrast, focus, generic_aria, interaction, navigation
from .base import Specialist, SpecialistRegistry, specialist
from .oracle import FixOracle, HttpFixOracle, coerce_instruction, oracle_specialist

# Focus before navigation: navigation's bare "focus" pattern would otherwise
# claim the WCAG 2.2 focus-obscured/appearance rules.
BUILTIN_SPECIALISTS: tuple[Specialist, ...] = (
    alt_text.SPECIALIST,
    focus.SPECIALIST,
    navigation.SPECIALIST,
    contrast.SPECIALIST,
    interaction.SPECIALIST,
)


def default_registry(
    *,
    include_generic_fallback: bool = False,
    extra: Iterable[Specialist] = (),
) -> SpecialistRegistry:
    """Built-in specialists, then *extra*, then (optionally) the generic ARIA fallback."""
    registry = SpecialistRegistry(BUILTIN_SPECIALISTS)
    for s in extra:
        registry.register(s)
    if include_generic_fallback:
        registry.register(generic_aria.SPECIALIST)
    return registry


__all__ = [
    "BUILTIN_SPECIALISTS",
    "FixOracle",
    "HttpFixOracle",
    "Specialist",
    "SpecialistRegistry",
    "coerce_instruction",
    "default_registry",
    "oracle_specialist",
    "specialist",
]
