"""CI gate: scan one URL and exit 1 if any actionable finding exists.

Env:
  TARGET_URL - URL to audit when --url is not given
  LIGHTHOUSE_MAX_WAIT_MS, A11Y_SETTLE_MS, WAVE_API_KEY - see ScanConfig.from_env
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .core.config import ScanConfig, load_config
from .core.errors import ConfigLoadError, ScanError, WaveThresholdError
from .core.log import configure_logging
from .core.models import AuditScore, Engine, ScanSession
from .report.writer import ReportWriter
from .runner import PAGE_ENGINES, scan_one

logger = logging.getLogger(__name__)

_ENGINES = {
    "axe": Engine.AXE,
    "tree": Engine.TREE,
    "lighthouse": Engine.LIGHTHOUSE,
    "wave": Engine.WAVE_API,
}


def gate_exit_code(session: ScanSession) -> int:
    return 1 if session.has_actionable() else 0


def describe(session: ScanSession) -> str:
    text = f"{session.engine.display_name}: {len(session.actionable)} actionable finding(s)"
    if isinstance(session.summary, AuditScore):
        score = session.summary.percent
        text += f", accessibility score: {'n/a' if score is None else score}"
    return text


def run_gate_scan(url: str, engine: Engine, config: ScanConfig) -> ScanSession:
    if engine not in PAGE_ENGINES:
        return scan_one(url, engine, config)
    with sync_playwright() as p:
        browser = p.chromium.launch(headless=config.headless)
        try:
            return scan_one(url, engine, config, browser)
        finally:
            browser.close()


def main() -> int:
    parser = argparse.ArgumentParser(prog="wcagscan-gate", description="Fail the pipeline on accessibility issues")
    parser.add_argument("--url", default=os.environ.get("TARGET_URL"), help="URL to audit (default: $TARGET_URL)")
    parser.add_argument("--engine", choices=list(_ENGINES), default="lighthouse", help="Engine (default: lighthouse)")
    parser.add_argument("--config", type=Path, help="Path to scan config YAML")
    parser.add_argument("--out-dir", type=Path, help="Also write reports to this directory")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = parser.parse_args()

    configure_logging(args.log_level)

    if not args.url:
        print("error: no URL; pass --url or set TARGET_URL", file=sys.stderr)
        return 1

    try:
        config = load_config(args.config)
    except ConfigLoadError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    engine = _ENGINES[args.engine]
    print(f"Accessibility gate: auditing {args.url} with {engine.display_name} ...")
    try:
        session = run_gate_scan(args.url, engine, config)
    except WaveThresholdError as e:
        if e.session is None:
            print(f"Gate failed: {e}", file=sys.stderr)
            return 1
        session = e.session
    except (ScanError, PlaywrightError) as e:
        print(f"Gate failed: scan error: {e}", file=sys.stderr)
        return 1

    if args.out_dir is not None:
        ReportWriter(args.out_dir).write(session)

    print(describe(session))
    code = gate_exit_code(session)
    if code:
        print(
            f"Gate failed: {len(session.actionable)} accessibility issue(s) need fixing.",
            file=sys.stderr,
        )
    else:
        print("Gate passed: no actionable accessibility findings.")
    return code


if __name__ == "__main__":
    sys.exit(main())
