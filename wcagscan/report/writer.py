from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path

from ..adapters.lighthouse import compliance_to_dict
from ..core.models import ComplianceReport, Engine, ScanSession
from .html import render_html
from .markdown import render_markdown
from .rows import TICKET_COLUMNS, finding_rows, ticket_rows, write_csv

logger = logging.getLogger(__name__)

DEFAULT_REPORT_DIR = Path("a11y-reports")
COMPLIANCE_FILENAME = "wcag-audit-report.json"


@dataclass
class ReportPaths:
    html: Path
    csv: Path
    json: Path
    markdown: Path | None = None
    tickets_csv: Path | None = None


def url_slug(url: str, limit: int = 80) -> str:
    slug = re.sub(r"^https?://", "", url, flags=re.IGNORECASE)
    slug = re.sub(r"[^a-z0-9.-]", "-", slug, flags=re.IGNORECASE)
    return re.sub(r"-+", "-", slug).strip("-")[:limit]


def file_timestamp(now: datetime | None = None) -> str:
    return (now or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H-%M-%S")


class ReportWriter:
    """Writes report files for sessions as report-<engine>-<url-slug>-<timestamp><suffix>.*"""

    def __init__(self, out_dir: Path = DEFAULT_REPORT_DIR) -> None:
        self.out_dir = Path(out_dir)

    def base_name(self, session: ScanSession, suffix: str = "", now: datetime | None = None) -> str:
        engine_slug = re.sub(r"\s+", "-", session.engine.display_name).lower()
        return f"report-{engine_slug}-{url_slug(session.url)}-{file_timestamp(now)}{suffix}"

    def write(self, session: ScanSession, suffix: str = "", capture_path: str | None = None) -> ReportPaths:
        self.out_dir.mkdir(parents=True, exist_ok=True)
        base = self.out_dir / self.base_name(session, suffix)

        paths = ReportPaths(
            html=base.with_name(base.name + ".html"),
            csv=base.with_name(base.name + ".csv"),
            json=base.with_name(base.name + ".json"),
        )
        paths.html.write_text(render_html(session), encoding="utf-8")
        write_csv(paths.csv, finding_rows(session))
        paths.json.write_text(json.dumps(asdict(session), indent=2, default=str), encoding="utf-8")

        if session.engine is Engine.WAVE_CAPTURE:
            paths.markdown = base.with_name(base.name + ".md")
            paths.markdown.write_text(render_markdown(session, capture_path), encoding="utf-8")
            paths.tickets_csv = base.with_name(base.name + "-tickets.csv")
            write_csv(paths.tickets_csv, ticket_rows(session), TICKET_COLUMNS)

        logger.info("wrote %s report for %s to %s", session.engine.value, session.url, paths.html)
        return paths

    def write_compliance(self, report: ComplianceReport, path: Path | None = None) -> Path:
        target = path or self.out_dir / COMPLIANCE_FILENAME
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(compliance_to_dict(report), indent=2), encoding="utf-8")
        return target

    def capture_path(self, url: str) -> Path:
        """Where a raw WAVE capture for `url` is saved."""
        return self.out_dir / f"wave-browser-capture-{url_slug(url, 50)}-{file_timestamp()}.html"

    def latest_capture(self) -> Path | None:
        if not self.out_dir.is_dir():
            return None
        captures = sorted(
            self.out_dir.glob("wave-browser-capture-*.html"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )
        return captures[0] if captures else None
