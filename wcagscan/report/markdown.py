from __future__ import annotations

from ..adapters.wave import group_by_tab
from ..core.models import Engine, Finding, ScanSession
from .ticket import render_ticket


def render_markdown(session: ScanSession, capture_path: str | None = None) -> str:
    """Tickets in fenced blocks, grouped by WAVE tab (captures) or by rule (other engines)."""
    lines = [
        f"# {session.engine.display_name}: ticket-ready issues",
        f"Source: {session.url}",
    ]
    if capture_path:
        lines.append(f"Capture: {capture_path}")
    lines += ["", "---"]

    for heading, findings in _groups(session):
        lines += [f"## {heading}", ""]
        for idx, finding in enumerate(findings, 1):
            lines += [
                f"### Issue {idx}",
                "```",
                render_ticket(finding, session.url, session.page_title or None),
                "```",
                "",
            ]
    return "\n".join(lines)


def _groups(session: ScanSession) -> list[tuple[str, list[Finding]]]:
    if session.engine is Engine.WAVE_CAPTURE:
        return [(f"{tab} tab", findings) for tab, findings in group_by_tab(session.findings)]
    return [(group.identifier, group.findings) for group in session.group_by_rule()]
