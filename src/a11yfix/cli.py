# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""a11yfix CLI: remediate, validate, hash commands.

Usage:
    python -m a11yfix.cli remediate --violations FILE [--url URL] [--html FILE] [--output FILE]
    python -m a11yfix.cli validate FILE
    python -m a11yfix.cli hash TEXT

The report goes to stdout (or ``--output``); logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any

from . import PageContext, Violation
from .browser_connection import VIEWPORTS, create_connection_manager
from .config import AppConfig, load_config
from .errors import ConfigError, SessionAbortedError
from .hashing import content_hash
from .pipeline import FixApplicationPipeline, PageLoader, RemediationReport, summarize
from .safety_validator import SafetyValidator
from .specialists import HttpFixOracle, default_registry, oracle_specialist

logger = logging.getLogger(__name__)

BLANK_PAGE_URL = "about:blank"


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


def load_batch(data: Any, *, default_url: str = "") -> list[tuple[Violation, PageContext]]:
    """Turn a violations document into ``(violation, context)`` pairs.

    Accepted shapes:
        [violation, ...]
        [{"violation": {...}, "context": {...}}, ...]
        {"context": {...}, "violations": [...]}   shared context, per-entry overrides

    *default_url* fills in contexts that carry no ``url``.
    """
    if isinstance(data, dict):
        entries = data.get("violations", [])
        shared = data.get("context") or {}
    else:
        entries, shared = data, {}
    if not isinstance(entries, list):
        raise ValueError("violations must be a list")

    batch: list[tuple[Violation, PageContext]] = []
    for entry in entries:
        raw_violation = entry.get("violation", entry)
        context = {**shared, **(entry.get("context") or {})}
        if not context.get("url"):
            context["url"] = default_url
        batch.append((Violation.from_dict(raw_violation), PageContext.from_dict(context)))
    return batch


def _html_loader(html: str) -> PageLoader:
    async def load(page, url: str) -> None:
        await page.set_content(html, wait_until="domcontentloaded")

    return load


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _apply_overrides(app: AppConfig, args: argparse.Namespace) -> AppConfig:
    browser, pipeline = app.browser, app.pipeline
    if args.mode:
        browser = dataclasses.replace(browser, mode=args.mode)
    if args.viewport:
        browser = dataclasses.replace(browser, viewport=args.viewport)
    if args.concurrency is not None:
        pipeline = dataclasses.replace(pipeline, concurrency=args.concurrency)
    oracle_url = args.oracle_url or app.oracle_url
    return dataclasses.replace(app, browser=browser, pipeline=pipeline, oracle_url=oracle_url)


async def _run_remediation(
    app: AppConfig,
    batch: list[tuple[Violation, PageContext]],
    html: str | None,
) -> RemediationReport:
    oracle = HttpFixOracle(app.oracle_url, token=app.oracle_token) if app.oracle_url else None
    if oracle is not None:
        registry = default_registry(extra=[oracle_specialist("oracle", [".*"], oracle)])
    else:
        registry = default_registry(include_generic_fallback=True)

    connection = create_connection_manager(app.browser)
    loader = _html_loader(html) if html is not None else None
    try:
        async with FixApplicationPipeline(registry, connection, config=app.pipeline, page_loader=loader) as pipeline:
            return await pipeline.run(batch)
    finally:
        if oracle is not None:
            await oracle.aclose()


def _write_report(payload: dict, output: str | None) -> None:
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if output:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        print(f"Report saved to {path}", file=sys.stderr)
    else:
        print(text)


def cmd_remediate(args: argparse.Namespace) -> None:
    """Run the remediation pipeline over a violations file."""
    try:
        app = _apply_overrides(load_config(), args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    if args.telemetry:
        from . import telemetry
        from .telemetry.collector import TelemetryConfig

        telemetry.configure(TelemetryConfig(enabled=True))

    try:
        data = json.loads(Path(args.violations).read_text(encoding="utf-8"))
        html = Path(args.html).read_text(encoding="utf-8") if args.html else None
        default_url = args.url or (BLANK_PAGE_URL if html is not None else "")
        batch = load_batch(data, default_url=default_url)
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        print(f"Error: could not read violations: {e}", file=sys.stderr)
        sys.exit(2)

    missing = [v.id for v, c in batch if not c.url]
    if missing:
        print(
            f"Error: no page URL for {', '.join(missing)}. Pass --url or --html, or set context.url.",
            file=sys.stderr,
        )
        sys.exit(2)

    try:
        report = asyncio.run(_run_remediation(app, batch, html))
    except SessionAbortedError as e:
        print(f"Error: {e}", file=sys.stderr)
        _write_report(
            {"aborted": True, "summary": summarize(e.outcomes), "outcomes": [o.to_dict() for o in e.outcomes]},
            args.output,
        )
        sys.exit(1)

    _write_report(report.to_dict(), args.output)


def cmd_validate(args: argparse.Namespace) -> None:
    """Run the safety validator on a fix-instruction JSON file."""
    try:
        raw = Path(args.file).read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    result = SafetyValidator().validate(raw)
    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    if not result.valid:
        sys.exit(1)


def cmd_hash(args: argparse.Namespace) -> None:
    """Print the content hash used by content-fix integrity checks."""
    print(content_hash(args.text))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Accessibility violation remediation",
        prog="python -m a11yfix.cli",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    _remediate_epilog = """\
examples:
  %(prog)s --violations scan.json --url https://example.com
  %(prog)s --violations scan.json --html page.html -o report.json
  %(prog)s --violations scan.json --mode remote --concurrency 5
"""
    p_rem = subparsers.add_parser(
        "remediate",
        help="Plan, validate and apply fixes for scanned violations",
        epilog=_remediate_epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p_rem.add_argument("--violations", required=True, metavar="FILE", help="Violations JSON file")
    p_rem.add_argument("--url", metavar="URL", help="Page URL for violations whose context has none")
    p_rem.add_argument("--html", metavar="FILE", help="Load this HTML into each page instead of navigating")
    p_rem.add_argument("--mode", choices=["local", "remote"], help="Browser mode (default: A11YFIX_BROWSER_MODE)")
    p_rem.add_argument("--concurrency", type=int, metavar="N", help="Violations in flight (1-16)")
    p_rem.add_argument("--viewport", choices=sorted(VIEWPORTS), help="Page viewport")
    p_rem.add_argument("--oracle-url", metavar="URL", help="Fix oracle endpoint used for unmatched rules")
    p_rem.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    p_rem.add_argument("--telemetry", action="store_true", help="Record telemetry events to ~/.a11yfix")
    p_rem.add_argument("-o", "--output", metavar="FILE", help="Write the report here instead of stdout")

    p_val = subparsers.add_parser("validate", help="Check a fix instruction with the safety validator")
    p_val.add_argument("file", metavar="FILE", help="Fix instruction JSON file")

    p_hash = subparsers.add_parser("hash", help="Print the content hash of TEXT")
    p_hash.add_argument("text", metavar="TEXT")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    from .logging_config import configure

    args = build_parser().parse_args(argv)
    configure(json_output=getattr(args, "json_logs", False), level="DEBUG" if args.verbose else "INFO")

    commands = {"remediate": cmd_remediate, "validate": cmd_validate, "hash": cmd_hash}
    commands[args.command](args)


if __name__ == "__main__":
    main()
