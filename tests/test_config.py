# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for environment configuration loading."""

from __future__ import annotations

import pytest

from a11yfix.browser_connection import REMOTE_RETRY_POLICY
from a11yfix.config import AppConfig, load_config
from a11yfix.errors import ConfigError


class TestDefaults:
    def test_empty_environment(self):
        cfg = load_config({})
        assert cfg.browser.mode == "local"
        assert cfg.browser.headless is True
        assert cfg.browser.viewport == "desktop"
        assert cfg.browser.retry == REMOTE_RETRY_POLICY
        assert cfg.pipeline.concurrency == 3
        assert cfg.oracle_url is None

    def test_blank_values_use_defaults(self):
        cfg = load_config({"A11YFIX_CONCURRENCY": "  ", "A11YFIX_BROWSER_MODE": ""})
        assert cfg.pipeline.concurrency == 3
        assert cfg.browser.mode == "local"

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("A11YFIX_CONCURRENCY", "7")
        assert load_config().pipeline.concurrency == 7


class TestParsing:
    def test_remote_browser(self):
        cfg = load_config(
            {
                "A11YFIX_BROWSER_MODE": "REMOTE",
                "A11YFIX_BROWSER_ENDPOINT": "wss://cdp.example.com",
                "A11YFIX_BROWSER_TOKEN": "s3cret",
                "A11YFIX_CONNECT_ATTEMPTS": "5",
            }
        )
        assert cfg.browser.mode == "remote"
        assert cfg.browser.endpoint == "wss://cdp.example.com"
        assert cfg.browser.retry.max_attempts == 5
        assert cfg.browser.retry.base_delay == REMOTE_RETRY_POLICY.base_delay
        assert "s3cret" not in repr(cfg)

    def test_pipeline_numbers(self):
        cfg = load_config(
            {
                "A11YFIX_CONCURRENCY": "16",
                "A11YFIX_PLANNING_TIMEOUT": "2.5",
                "A11YFIX_MAX_REPLANS": "0",
                "A11YFIX_VIEWPORT": "Mobile",
            }
        )
        assert cfg.pipeline.concurrency == 16
        assert cfg.pipeline.planning_timeout == 2.5
        assert cfg.pipeline.max_replans == 0
        assert cfg.browser.viewport == "mobile"

    @pytest.mark.parametrize("raw,expected", [("1", True), ("yes", True), ("FALSE", False), ("no", False)])
    def test_headless_flag(self, raw, expected):
        assert load_config({"A11YFIX_HEADLESS": raw}).browser.headless is expected

    def test_oracle(self):
        cfg = load_config({"A11YFIX_ORACLE_URL": "https://oracle.internal/fix", "A11YFIX_ORACLE_TOKEN": "tok"})
        assert cfg.oracle_url == "https://oracle.internal/fix"
        assert cfg.oracle_token == "tok"
        assert "tok" not in repr(cfg)

    def test_app_config_defaults(self):
        assert AppConfig().browser.mode == "local"


class TestInvalid:
    @pytest.mark.parametrize(
        "env,match",
        [
            ({"A11YFIX_CONCURRENCY": "many"}, "CONCURRENCY"),
            ({"A11YFIX_CONCURRENCY": "0"}, "concurrency"),
            ({"A11YFIX_PLANNING_TIMEOUT": "-1"}, "planning_timeout"),
            ({"A11YFIX_MAX_REPLANS": "1.5"}, "MAX_REPLANS"),
            ({"A11YFIX_HEADLESS": "maybe"}, "HEADLESS"),
            ({"A11YFIX_VIEWPORT": "watch"}, "viewport"),
            ({"A11YFIX_BROWSER_MODE": "cloud"}, "mode"),
            ({"A11YFIX_BROWSER_MODE": "remote"}, "endpoint"),
            ({"A11YFIX_CONNECT_ATTEMPTS": "0"}, "CONNECT_ATTEMPTS"),
        ],
    )
    def test_raises_config_error(self, env, match):
        with pytest.raises(ConfigError, match=match):
            load_config(env)

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            load_config({"A11YFIX_CONCURRENCY": "x"})
