# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for SafetyValidator: destructive-change detection and rule accumulation."""

from __future__ import annotations

import pytest

from a11yfix.errors import DestructiveChangeError
from a11yfix.instructions import attribute_fix, content_fix, style_fix
from a11yfix.safety_validator import SafetyValidator, is_interactive_selector, split_compounds


@pytest.fixture
def validator():
    return SafetyValidator()


class TestSelectorInspection:
    def test_split_on_combinators_and_commas(self):
        assert split_compounds("nav > a.item, button") == ["nav", "a.item", "button"]

    def test_quoted_and_bracketed_parts_kept_whole(self):
        assert split_compounds('a[title="x > y"] span') == ['a[title="x > y"]', "span"]
        assert split_compounds("div:not(.a, .b) ~ p") == ["div:not(.a, .b)", "p"]

    @pytest.mark.parametrize(
        "selector",
        ["button", "a.nav-link", "#main > a", "input[type=submit]", "form#checkout", "SELECT", "div, textarea"],
    )
    def test_interactive(self, selector):
        assert is_interactive_selector(selector)

    @pytest.mark.parametrize("selector", ["img", "p.intro", "#button", ".btn", "article", "abbr", "div[data-a]"])
    def test_not_interactive(self, selector):
        assert not is_interactive_selector(selector)


class TestDestructive:
    @pytest.mark.parametrize("attribute", ["aria-label", "alt", "title", "href", "type", "name", "action", "method"])
    def test_clearing_critical_attribute_on_interactive(self, validator, attribute):
        assert validator.is_destructive(attribute_fix("button.buy", "v1", attribute, "  ", "r"))

    def test_clearing_other_attribute_is_fine(self, validator):
        assert not validator.is_destructive(attribute_fix("button", "v1", "data-track", "", "r"))

    def test_setting_critical_attribute_is_fine(self, validator):
        assert not validator.is_destructive(attribute_fix("a", "v1", "aria-label", "Home", "r"))

    def test_clearing_alt_on_image_is_fine(self, validator):
        assert not validator.is_destructive(attribute_fix("img.logo", "v1", "alt", "", "decorative"))

    def test_emptying_interactive_text(self, validator):
        assert validator.is_destructive(content_fix("a.more", "v1", "   ", "Read more", "r"))

    def test_rewriting_interactive_text_is_fine(self, validator):
        assert not validator.is_destructive(content_fix("a.more", "v1", "Read the guide", "Read more", "r"))

    @pytest.mark.parametrize(
        "styles",
        [
            {"display": "none"},
            {"visibility": "hidden"},
            {"Display": " NONE !important"},
            {"visibility": "hidden!important"},
        ],
    )
    def test_hiding_interactive(self, validator, styles):
        assert validator.is_destructive(style_fix("button", "v1", styles, "r"))

    def test_visible_styles_are_fine(self, validator):
        fix = style_fix("button", "v1", {"display": "inline-flex", "outline": "none"}, "r")
        assert not validator.is_destructive(fix)

    def test_hiding_non_interactive_is_fine(self, validator):
        assert not validator.is_destructive(style_fix("div.banner", "v1", {"display": "none"}, "r"))

    def test_mismatched_params_selector_is_checked(self, validator):
        # The injector writes to params.selector, not the top-level selector
        fix = content_fix("button.submit", "v1", "", "Submit", "r").model_copy(update={"selector": "div.wrapper"})
        assert validator.is_destructive(fix)
        error = validator.create_destructive_change_error(fix)
        assert error.selector == "button.submit"
        assert "button.submit" in error.message


class TestValidate:
    def test_valid_fix(self, validator):
        result = validator.validate(attribute_fix("img", "v1", "alt", "Logo", "r"))
        assert result.valid
        assert result.errors == []
        assert result.warnings == []

    def test_interactive_warning(self, validator):
        result = validator.validate(attribute_fix("button", "v1", "aria-label", "Buy", "r"))
        assert result.valid
        assert result.warnings == ['Modifying interactive element "button" - verify functionality after fix']

    def test_destructive_error_message(self, validator):
        result = validator.validate(attribute_fix("button", "v1", "aria-label", "", "r"))
        assert not result.valid
        assert result.errors == [
            'Destructive change detected: Fix would modify interactive element "button" '
            "in a way that could break functionality"
        ]

    def test_accumulates_every_error(self, validator):
        raw = {
            "type": "attribute",
            "selector": "button",
            "violationId": "v1",
            "reasoning": "r",
            "params": {"selector": "a.other", "attribute": "aria-label", "value": ""},
        }
        result = validator.validate(raw)
        assert not result.valid
        assert len(result.errors) == 2
        assert result.errors[0].startswith("Selector mismatch")
        assert result.errors[1].startswith("Destructive change detected")

    def test_mismatched_destructive_fix_names_interactive_target(self, validator):
        fix = content_fix("button.submit", "v1", "", "Submit", "r").model_copy(update={"selector": "div.wrapper"})
        result = validator.validate(fix)
        assert not result.valid
        assert result.errors[0].startswith("Selector mismatch")
        assert '"button.submit"' in result.errors[1]

    def test_blank_selector(self, validator):
        raw = {
            "type": "style",
            "selector": "   ",
            "violationId": "v1",
            "reasoning": "r",
            "params": {"selector": "   ", "styles": {"color": "#000"}},
        }
        result = validator.validate(raw)
        assert "selector: must not be blank" in result.errors

    def test_malformed_input_reports_shape_errors(self, validator):
        result = validator.validate({"type": "attribute", "selector": "a"})
        assert not result.valid
        assert result.errors
        assert all(":" in e for e in result.errors)

    def test_json_text_input(self, validator):
        result = validator.validate(attribute_fix("img", "v1", "alt", "x", "r").model_dump_json(by_alias=True))
        assert result.valid

    def test_to_dict(self, validator):
        data = validator.validate(attribute_fix("img", "v1", "alt", "x", "r")).to_dict()
        assert data == {"valid": True, "errors": [], "warnings": []}


class TestDestructiveChangeError:
    def test_shape(self, validator):
        fix = attribute_fix("a.checkout", "v9", "href", "", "r")
        error = validator.create_destructive_change_error(fix)
        assert isinstance(error, DestructiveChangeError)
        assert error.code == "DESTRUCTIVE_CHANGE"
        assert error.selector == "a.checkout"
        assert "a.checkout" in error.message
        assert error.details == {"fixType": "attribute", "violationId": "v9"}
        assert error.to_dict()["code"] == "DESTRUCTIVE_CHANGE"
