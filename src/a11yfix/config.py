# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Environment configuration (``A11YFIX_*``).

Unset or blank variables fall back to the dataclass defaults.  Anything set
but unparseable raises ``ConfigError`` instead of being silently ignored.

    A11YFIX_BROWSER_MODE       local | remote
    A11YFIX_BROWSER_ENDPOINT   CDP endpoint (remote)
    A11YFIX_BROWSER_TOKEN      bearer token (remote)
    A11YFIX_HEADLESS           1/true/yes | 0/false/no
    A11YFIX_VIEWPORT           mobile | desktop
    A11YFIX_CONCURRENCY        1-16
    A11YFIX_PLANNING_TIMEOUT   seconds
    A11YFIX_MAX_REPLANS        >= 0
    A11YFIX_CONNECT_ATTEMPTS   remote dial attempts
    A11YFIX_ORACLE_URL         fix oracle endpoint
    A11YFIX_ORACLE_TOKEN       fix oracle bearer token
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from .browser_connection import REMOTE_RETRY_POLICY, BrowserConfig
from .errors import ConfigError
from .pipeline import PipelineConfig

_TRUE = ("1", "true", "yes")
_FALSE = ("0", "false", "no")


@dataclass(frozen=True, slots=True)
class AppConfig:
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    oracle_url: str | None = None
    oracle_token: str | None = field(default=None, repr=False)


def _get(env: Mapping[str, str], name: str) -> str:
    return env.get(f"A11YFIX_{name}", "").strip()


def _flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = _get(env, name).lower()
    if not raw:
        return default
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ConfigError(f"A11YFIX_{name} must be one of {_TRUE + _FALSE}, got {raw!r}")


def _number(env: Mapping[str, str], name: str, cast: type[int] | type[float], default: int | float):
    raw = _get(env, name)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"A11YFIX_{name} must be a number, got {raw!r}") from None


def load_config(environ: Mapping[str, str] | None = None) -> AppConfig:
    """Build an AppConfig from *environ* (default: ``os.environ``)."""
    env = os.environ if environ is None else environ

    attempts = _number(env, "CONNECT_ATTEMPTS", int, REMOTE_RETRY_POLICY.max_attempts)
    try:
        retry = dataclasses.replace(REMOTE_RETRY_POLICY, max_attempts=attempts)
    except ValueError as exc:
        raise ConfigError(f"A11YFIX_CONNECT_ATTEMPTS: {exc}") from exc

    browser = BrowserConfig(
        mode=_get(env, "BROWSER_MODE").lower() or "local",
        endpoint=_get(env, "BROWSER_ENDPOINT") or None,
        token=_get(env, "BROWSER_TOKEN") or None,
        headless=_flag(env, "HEADLESS", True),
        viewport=_get(env, "VIEWPORT").lower() or "desktop",
        retry=retry,
    )
    defaults = PipelineConfig()
    pipeline = PipelineConfig(
        concurrency=_number(env, "CONCURRENCY", int, defaults.concurrency),
        planning_timeout=_number(env, "PLANNING_TIMEOUT", float, defaults.planning_timeout),
        max_replans=_number(env, "MAX_REPLANS", int, defaults.max_replans),
    )
    return AppConfig(
        browser=browser,
        pipeline=pipeline,
        oracle_url=_get(env, "ORACLE_URL") or None,
        oracle_token=_get(env, "ORACLE_TOKEN") or None,
    )
