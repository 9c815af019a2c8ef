"""WAVE browser capture -> ticket-ready issues grouped by WAVE tab.

Either parses an existing capture (--file, default the latest
wave-browser-capture-*.html in the report directory) or drives a new one
(--url) with the WAVE extension loaded in a headed Chromium.
"""
from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path

from bs4 import BeautifulSoup
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .adapters.wave import capture_to_findings, parse_capture
from .core.config import ScanConfig, load_config
from .core.errors import ConfigLoadError
from .core.log import configure_logging
from .core.models import Engine, ScanSession, utc_timestamp
from .report.writer import DEFAULT_REPORT_DIR, ReportPaths, ReportWriter
from .scanners.wave import WaveExtensionLocator, capture_wave_markup

logger = logging.getLogger(__name__)

_CAPTURE_NAME_RE = re.compile(r"wave-browser-capture-(.+?)-\d{4}-\d{2}-\d{2}T")

DEFAULT_PROFILE_DIR = Path(".wave-profile")


def url_from_filename(filename: str) -> str:
    """Best-effort source URL from a capture file name (the slug is lossy)."""
    match = _CAPTURE_NAME_RE.search(filename)
    if not match:
        return "https://example.com"
    return "https://" + match.group(1).replace("-", ".")


def page_title(markup: str) -> str:
    title = BeautifulSoup(markup, "html.parser").title
    return " ".join(title.get_text().split()) if title else ""


def session_from_capture(markup: str, url: str, actionable_only: bool = False) -> ScanSession:
    captures = parse_capture(markup)
    logger.info("%s: %d distinct WAVE icon(s) in capture", url, len(captures))
    return ScanSession(
        url=url,
        engine=Engine.WAVE_CAPTURE,
        timestamp=utc_timestamp(),
        findings=capture_to_findings(captures, actionable_only=actionable_only),
        actionable_only=actionable_only,
        page_title=page_title(markup),
    )


def _wait_for_enter() -> None:
    print("\n--- WAVE browser flow ---")
    print('WAVE is loaded. Click the WAVE icon in the toolbar and choose "Evaluate".')
    print("When the evaluation is visible, press Enter here.\n")
    try:
        input("Press Enter after WAVE has run... ")
    except EOFError:
        pass


def capture_new(url: str, extension: Path, profile: Path, config: ScanConfig, writer: ReportWriter) -> Path:
    with sync_playwright() as p:
        markup = capture_wave_markup(p, url, extension, profile, config, wait_for_user=_wait_for_enter)
    path = writer.capture_path(url)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(markup, encoding="utf-8")
    print(f"Saved: {path}")
    return path


def _check(locator: WaveExtensionLocator) -> int:
    found = locator.resolve()
    if found is not None:
        print("Found WAVE at:")
        print(found)
        return 0
    print("WAVE not found.", file=sys.stderr)
    print(f"  searched: {', '.join(locator.searched_locations())}", file=sys.stderr)
    return 1


def _print_paths(paths: ReportPaths, session: ScanSession) -> None:
    print(f"CSV: {paths.tickets_csv}")
    print(f"Markdown: {paths.markdown}")
    print(f"HTML (copy for JIRA): {paths.html}")
    tabs = len(session.group_counts())
    print(f"\nTotal: {len(session.findings)} issue(s) across {tabs} tab(s).")


def main() -> int:
    parser = argparse.ArgumentParser(prog="wcagscan-capture", description="WAVE browser capture to ticket-ready issues")
    parser.add_argument("--file", type=Path, help="WAVE capture HTML (default: latest wave-browser-capture-*.html)")
    parser.add_argument("--url", help="Source URL; without --file a new capture of this URL is taken")
    parser.add_argument("--out-dir", type=Path, default=DEFAULT_REPORT_DIR, help="Report directory")
    parser.add_argument(
        "--actionable-only",
        action="store_true",
        help="Only report Errors, Contrast and Alerts (skip Features, Structure, ARIA)",
    )
    parser.add_argument("--check", action="store_true", help="Only locate the WAVE extension and exit")
    parser.add_argument("--extension-path", type=Path, help="Unpacked WAVE extension directory")
    parser.add_argument("--profile", type=Path, default=DEFAULT_PROFILE_DIR, help="Persistent Chromium profile dir")
    parser.add_argument("--config", type=Path, help="Path to scan config YAML")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = parser.parse_args()

    configure_logging(args.log_level)
    locator = WaveExtensionLocator(args.extension_path)
    if args.check:
        return _check(locator)

    writer = ReportWriter(args.out_dir)
    capture_path = args.file
    if capture_path is None and args.url:
        extension = locator.resolve()
        if extension is None:
            print("WAVE extension not found. Install WAVE in Chrome, then run this again.", file=sys.stderr)
            print("Or provide an unpacked WAVE folder: --extension-path ./wave-extension", file=sys.stderr)
            return 1
        try:
            config = load_config(args.config)
        except ConfigLoadError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1
        try:
            capture_path = capture_new(args.url, extension, args.profile, config, writer)
        except PlaywrightError as e:
            print(f"error: WAVE capture failed: {e}", file=sys.stderr)
            return 1

    if capture_path is None:
        capture_path = writer.latest_capture()
    if capture_path is None:
        print("No WAVE capture file found. Use --file <path> or --url <link> to take one.", file=sys.stderr)
        return 1

    try:
        markup = capture_path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"error: cannot read {capture_path}: {e}", file=sys.stderr)
        return 1

    url = args.url or url_from_filename(capture_path.name)
    session = session_from_capture(markup, url, args.actionable_only)
    paths = writer.write(session, capture_path=str(capture_path))
    _print_paths(paths, session)
    return 0


if __name__ == "__main__":
    sys.exit(main())
