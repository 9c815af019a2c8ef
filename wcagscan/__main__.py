"""Entry point: python -m wcagscan [--url URL ...] [--csv FILE] [--engine ENGINE]"""
from __future__ import annotations

import argparse
import json
import re
import sys
from dataclasses import asdict
from pathlib import Path

from . import __version__
from .core.config import load_config
from .core.errors import ConfigLoadError
from .core.log import configure_logging
from .core.models import Engine
from .report.writer import DEFAULT_REPORT_DIR, ReportWriter
from .runner import BATCH_ENGINES, format_summary_table, run_batch

_URL_RE = re.compile(r"https?://[^\s,]+")

_ENGINE_CHOICES = {
    "axe": [Engine.AXE],
    "tree": [Engine.TREE],
    "lighthouse": [Engine.LIGHTHOUSE],
    "wave": [Engine.WAVE_API],
    "all": list(BATCH_ENGINES),
}


def urls_from_text(text: str) -> list[str]:
    """Every http(s) URL in a CSV (or any text), in order of appearance."""
    return _URL_RE.findall(text)


def collect_urls(url_args: list[str], csv_path: Path | None) -> tuple[list[str], str | None]:
    """Returns (deduplicated urls, error)."""
    urls: list[str] = []
    if csv_path is not None:
        try:
            urls.extend(urls_from_text(csv_path.read_text(encoding="utf-8")))
        except OSError as e:
            return [], f"cannot read {csv_path}: {e}"
    urls.extend(u.strip() for u in url_args if u.strip())
    return list(dict.fromkeys(urls)), None


def _prompt_url() -> list[str]:
    if not sys.stdin.isatty():
        return []
    try:
        answer = input("Enter URL to test: ").strip()
    except EOFError:
        return []
    return [answer] if answer else []


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="wcagscan",
        description="WCAG 2.2 AA accessibility scans with axe-core, the accessibility tree, Lighthouse and WAVE",
    )
    parser.add_argument("--url", action="append", default=[], help="URL to scan (repeatable)")
    parser.add_argument("--csv", type=Path, help="CSV file; every http(s) URL in it is scanned")
    parser.add_argument("--engine", choices=list(_ENGINE_CHOICES), default="axe", help="Engine(s) to run (default: axe)")
    parser.add_argument(
        "--actionable-only",
        action="store_true",
        help="Drop informational findings (axe incomplete results) from reports",
    )
    parser.add_argument("--out-dir", type=Path, default=DEFAULT_REPORT_DIR, help="Report directory")
    parser.add_argument("--config", type=Path, help="Path to scan config YAML")
    parser.add_argument("--json", action="store_true", dest="json_output", help="Print outcomes as JSON")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args()

    configure_logging(args.log_level)

    try:
        config = load_config(args.config)
    except ConfigLoadError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    urls, error = collect_urls(args.url, args.csv)
    if error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    if not urls:
        urls = _prompt_url()
    if not urls:
        print("No URLs provided. Use --url <link>, --csv <path>, or enter a URL when prompted.", file=sys.stderr)
        return 1

    writer = ReportWriter(args.out_dir)
    outcomes = run_batch(
        urls, _ENGINE_CHOICES[args.engine], config, writer, args.actionable_only, echo=not args.json_output
    )

    if args.json_output:
        output = {
            "meta": {"tool_version": __version__, "out_dir": str(args.out_dir)},
            "outcomes": [asdict(o) for o in outcomes],
        }
        print(json.dumps(output, indent=2, default=str))
    else:
        print(format_summary_table(outcomes))

    return 1 if any(o.failed for o in outcomes) else 0


if __name__ == "__main__":
    sys.exit(main())
