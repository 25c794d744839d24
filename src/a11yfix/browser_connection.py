# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""BrowserConnectionManager: one shared Playwright browser per remediation session.

Two variants share the lifecycle and differ only in how the browser is opened:

- ``LocalBrowserConnection`` launches a hardened headless Chromium.
- ``RemoteBrowserConnection`` dials a hosted browser over CDP with bearer auth,
  retrying with exponential backoff.

Concurrent ``connect()`` callers share a single in-flight attempt::

    async with create_connection_manager(config) as conn:
        context = await conn.create_context("mobile")
        page = await conn.create_page(context)
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from contextlib import suppress
from dataclasses import dataclass, field
from enum import StrEnum
from types import TracebackType

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from . import telemetry
from .errors import BrowserConnectionError, ConfigError
from .retry import RetryPolicy, retry_async
from .telemetry import events

logger = logging.getLogger(__name__)


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


VIEWPORTS: dict[str, dict[str, int]] = {
    "mobile": {"width": 375, "height": 667},
    "desktop": {"width": 1920, "height": 1080},
}

DEFAULT_LOCALE = "en-US"

MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/17.0 Mobile/15E148 Safari/604.1"
)

REMOTE_RETRY_POLICY = RetryPolicy(max_attempts=3, base_delay=1.0, max_delay=10.0, backoff_factor=2.0)

_BROWSER_DEAD_PATTERNS = (
    "target closed",
    "target page",
    "browser has been closed",
    "connection closed",
    "browser disconnected",
)


def is_browser_dead_error(exc: BaseException) -> bool:
    """Detect browser crash/disconnect errors by message."""
    msg = str(exc).lower()
    return any(p in msg for p in _BROWSER_DEAD_PATTERNS)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BrowserConfig:
    """How to obtain the session browser."""

    mode: str = "local"  # "local" | "remote"
    endpoint: str | None = None
    token: str | None = field(default=None, repr=False)
    headless: bool = True
    viewport: str = "desktop"
    locale: str = DEFAULT_LOCALE
    timeout_ms: int = 30000
    retry: RetryPolicy = REMOTE_RETRY_POLICY

    def __post_init__(self) -> None:
        if self.mode not in ("local", "remote"):
            raise ConfigError(f"browser mode must be 'local' or 'remote', got {self.mode!r}")
        if self.viewport not in VIEWPORTS:
            raise ConfigError(f"viewport must be one of {sorted(VIEWPORTS)}, got {self.viewport!r}")
        if self.timeout_ms <= 0:
            raise ConfigError(f"timeout_ms must be > 0, got {self.timeout_ms}")
        if self.mode == "remote" and not (self.endpoint and self.token):
            raise ConfigError("remote browser mode requires both endpoint and token")


def chromium_launch_args(config: BrowserConfig) -> list[str]:
    """Hardened Chromium flags for local launches."""
    return [
        "--disable-blink-features=AutomationControlled",
        f"--lang={config.locale}",
        "--disable-extensions",
        "--disable-dev-shm-usage",
        "--disable-background-networking",
        "--disable-sync",
        "--disable-gpu",
        "--no-first-run",
        "--deny-permission-prompts",
        "--disable-breakpad",
        "--no-pings",
        "--disable-component-update",
        "--noerrdialogs",
    ]


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class BrowserConnectionManager(ABC):
    """Owns at most one live browser handle.

    State machine: DISCONNECTED -> CONNECTING -> CONNECTED, and back to
    DISCONNECTED on ``disconnect()`` or when the held browser is found dead.
    Subclasses implement ``_open(playwright)``.
    """

    def __init__(self, config: BrowserConfig | None = None) -> None:
        self.config = config or BrowserConfig()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._connecting: asyncio.Task[Browser] | None = None
        self._state = ConnectionState.DISCONNECTED

    @property
    def state(self) -> ConnectionState:
        return self._state

    def is_connected(self) -> bool:
        """Live status of the underlying browser handle."""
        return self._browser is not None and self._browser.is_connected()

    # ── AsyncContextManager ──────────────────────────────────────────

    async def __aenter__(self) -> BrowserConnectionManager:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.disconnect()

    # ── Connect / disconnect ─────────────────────────────────────────

    async def connect(self) -> Browser:
        """Return a live browser, opening one if needed.

        Callers arriving while an attempt is in flight await that attempt
        instead of starting their own.
        """
        if self._browser is not None:
            if self._browser.is_connected():
                return self._browser
            logger.warning("Browser connection lost (mode=%s), reconnecting", self.config.mode)
            await self._teardown()

        if self._connecting is None:
            self._state = ConnectionState.CONNECTING
            task = asyncio.ensure_future(self._establish())
            task.add_done_callback(self._on_attempt_done)
            self._connecting = task

        return await asyncio.shield(self._connecting)

    def _on_attempt_done(self, task: asyncio.Task[Browser]) -> None:
        failed = task.cancelled() or task.exception() is not None
        if self._connecting is task:
            self._connecting = None
            if failed:
                self._state = ConnectionState.DISCONNECTED

    async def _establish(self) -> Browser:
        playwright = await async_playwright().start()
        try:
            browser = await self._open(playwright)
        except BaseException:
            with suppress(Exception):
                await playwright.stop()
            raise
        self._playwright = playwright
        self._browser = browser
        self._state = ConnectionState.CONNECTED
        logger.info("Browser connected (mode=%s, headless=%s)", self.config.mode, self.config.headless)
        return browser

    @abstractmethod
    async def _open(self, playwright: Playwright) -> Browser:
        """Launch or dial the browser.  Called once per connection attempt."""

    async def disconnect(self) -> None:
        """Close the browser.  Safe to call repeatedly or mid-connect."""
        task, self._connecting = self._connecting, None
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError, Exception):
                await task
        await self._teardown()

    async def _teardown(self) -> None:
        had_browser = self._browser is not None
        if self._browser is not None:
            with suppress(Exception):
                await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            with suppress(Exception):
                await self._playwright.stop()
            self._playwright = None
        self._state = ConnectionState.DISCONNECTED
        if had_browser:
            logger.info("Browser disconnected (mode=%s)", self.config.mode)

    # ── Contexts and pages ───────────────────────────────────────────

    async def create_context(self, viewport: str | None = None) -> BrowserContext:
        """New isolated context sized for *viewport* (default: configured viewport)."""
        name = viewport or self.config.viewport
        if name not in VIEWPORTS:
            raise ValueError(f"unknown viewport {name!r}; expected one of {sorted(VIEWPORTS)}")
        browser = await self.connect()
        options: dict = {
            "viewport": dict(VIEWPORTS[name]),
            "locale": self.config.locale,
            "service_workers": "block",
            "permissions": [],
            "accept_downloads": False,
        }
        if name == "mobile":
            options.update(user_agent=MOBILE_USER_AGENT, is_mobile=True, has_touch=True)
        return await browser.new_context(**options)

    async def create_page(self, context: BrowserContext) -> Page:
        page = await context.new_page()
        page.set_default_timeout(self.config.timeout_ms)
        return page


class LocalBrowserConnection(BrowserConnectionManager):
    """Launches Chromium on this machine (single attempt)."""

    async def _open(self, playwright: Playwright) -> Browser:
        try:
            return await playwright.chromium.launch(
                headless=self.config.headless,
                args=chromium_launch_args(self.config),
                timeout=self.config.timeout_ms,
            )
        except Exception as exc:
            if "executable doesn't exist" in str(exc).lower():
                raise BrowserConnectionError(
                    "Chromium is not installed. Please run: playwright install chromium"
                ) from exc
            raise BrowserConnectionError(f"Chromium launch failed: {exc}") from exc


class RemoteBrowserConnection(BrowserConnectionManager):
    """Dials a hosted browser over CDP, retrying per ``config.retry``.

    When every attempt fails the error from the last attempt propagates.
    """

    def __init__(
        self,
        config: BrowserConfig,
        *,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        super().__init__(config)
        self._sleep = sleep

    async def _open(self, playwright: Playwright) -> Browser:
        headers = {"Authorization": f"Bearer {self.config.token}"}

        async def _dial() -> Browser:
            logger.debug("Dialing remote browser")
            return await playwright.chromium.connect_over_cdp(
                self.config.endpoint,
                headers=headers,
                timeout=self.config.timeout_ms,
            )

        return await retry_async(_dial, self.config.retry, sleep=self._sleep, on_retry=_report_retry)


def _report_retry(attempt: int, exc: Exception, delay: float) -> None:
    logger.warning("Remote browser dial attempt %d failed: %s (retry in %.1fs)", attempt, exc, delay)
    telemetry.emit(events.CONNECTION_RETRY, events.connection_retry(attempt=attempt, delay_s=delay, error=str(exc)))


def create_connection_manager(
    config: BrowserConfig,
    *,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> BrowserConnectionManager:
    """Pick the connection variant for ``config.mode``."""
    if config.mode == "remote":
        return RemoteBrowserConnection(config, sleep=sleep)
    return LocalBrowserConnection(config)


__all__ = [
    "REMOTE_RETRY_POLICY",
    "VIEWPORTS",
    "BrowserConfig",
    "BrowserConnectionManager",
    "ConnectionState",
    "LocalBrowserConnection",
    "RemoteBrowserConnection",
    "chromium_launch_args",
    "create_connection_manager",
    "is_browser_dead_error",
]
