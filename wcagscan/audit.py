"""Strict WCAG 2.2 AA / AODA audit on top of Lighthouse accessibility.

Accessibility audits are bucketed into failures, passes, manual checks and
not-applicable; failing node snippets are kept. No overall score is reported.
"""
from __future__ import annotations

import argparse
import re
import sys
from pathlib import Path

from .adapters.lighthouse import build_compliance_report
from .core.config import load_config
from .core.errors import ConfigLoadError, ScanError
from .core.log import configure_logging
from .core.models import ComplianceReport, utc_timestamp
from .report.writer import COMPLIANCE_FILENAME, ReportWriter
from .scanners.lighthouse import run_lighthouse

_NETWORK_ERROR_RE = re.compile(r"net::ERR|ENOTFOUND|ECONNREFUSED|ETIMEDOUT", re.IGNORECASE)

_TABLE_COLUMNS = ("auditTarget", "complianceTarget", "passes", "failures", "manualChecks", "notApplicable")


def format_summary(report: ComplianceReport) -> str:
    """Single-row table: target, compliance target and the four bucket counts."""
    row = {"auditTarget": report.audit_target, "complianceTarget": report.compliance_target, **report.summary()}
    widths = {c: max(len(c), len(str(row[c]))) for c in _TABLE_COLUMNS}
    header = " | ".join(c.ljust(widths[c]) for c in _TABLE_COLUMNS)
    values = " | ".join(str(row[c]).ljust(widths[c]) for c in _TABLE_COLUMNS)
    sep = "-+-".join("-" * widths[c] for c in _TABLE_COLUMNS)
    return "\n".join([header, sep, values])


def main() -> int:
    parser = argparse.ArgumentParser(prog="wcagscan-audit", description="Strict WCAG 2.2 AA / AODA Lighthouse audit")
    parser.add_argument("url", help="URL to audit")
    parser.add_argument("--output", type=Path, help=f"Report path (default: ./{COMPLIANCE_FILENAME})")
    parser.add_argument("--config", type=Path, help="Path to scan config YAML")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    args = parser.parse_args()

    configure_logging(args.log_level)

    if not re.match(r"^https?://", args.url, re.IGNORECASE):
        print("Usage: wcagscan-audit <url>", file=sys.stderr)
        print("Example: wcagscan-audit https://example.com", file=sys.stderr)
        return 1

    try:
        config = load_config(args.config)
    except ConfigLoadError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    try:
        lhr, artifacts = run_lighthouse(args.url, config)
    except ScanError as e:
        if _NETWORK_ERROR_RE.search(str(e)):
            print(f"Failed to reach URL {args.url}: {e}", file=sys.stderr)
        else:
            print(f"WCAG audit failed: {e}", file=sys.stderr)
        return 1

    report = build_compliance_report(args.url, lhr, artifacts, timestamp=utc_timestamp())
    out_path = ReportWriter(Path(".")).write_compliance(report, args.output or Path(COMPLIANCE_FILENAME))

    print(format_summary(report))
    print(f"\nWCAG audit report written to {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
