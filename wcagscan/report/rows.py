"""Flat spreadsheet rows: one per affected element, at least one per finding."""
from __future__ import annotations

import csv
from pathlib import Path

from ..core.models import ScanSession
from ..core.wcag import format_criteria
from .ticket import render_ticket, ticket_summary

COLUMNS = ["Engine", "Identifier", "Severity", "Actionable", "Summary", "WCAG Tags", "Selector", "WCAG Source"]
TICKET_COLUMNS = ["Tab", "Actionable", "Summary", "Description", "Ticket Text"]


def finding_rows(session: ScanSession) -> list[dict[str, str]]:
    rows = []
    for f in session.findings:
        base = {
            "Engine": f.engine.display_name,
            "Identifier": f.identifier,
            "Severity": f.severity or "",
            "Actionable": "Yes" if f.actionable else "Informational",
            "Summary": f.title,
            "WCAG Tags": "; ".join(f.tags) if f.tags else format_criteria(f.wcag_criteria, "; "),
            "WCAG Source": f.wcag_source,
        }
        for element in f.elements or [None]:
            rows.append({**base, "Selector": element.selector if element else ""})
    return rows


def ticket_rows(session: ScanSession) -> list[dict[str, str]]:
    """One row per finding with the full ticket text flattened onto one line."""
    rows = []
    for f in session.findings:
        text = render_ticket(f, session.url, session.page_title or None)
        body = text.split("\n\n", 1)[1] if "\n\n" in text else ""
        rows.append({
            "Tab": f.group or f.engine.display_name,
            "Actionable": "Yes" if f.actionable else "Informational",
            "Summary": ticket_summary(f),
            "Description": body.replace("\n", " "),
            "Ticket Text": text.replace("\n", " "),
        })
    return rows


def write_csv(path: Path, rows: list[dict[str, str]], columns: list[str] | None = None) -> Path:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=columns or COLUMNS)
        writer.writeheader()
        writer.writerows(rows)
    return path
