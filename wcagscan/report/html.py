"""Self-contained HTML report for one ScanSession."""
from __future__ import annotations

from html import escape

from ..adapters.wave import group_by_tab
from ..core.models import (
    SEVERITIES,
    AuditScore,
    Engine,
    Finding,
    ScanSession,
    TreeInventory,
    WaveCounts,
)
from ..core.wcag import format_criteria
from .ticket import render_ticket

SECTION_TITLES = (
    "Title",
    "Description",
    "Element(s)",
    "Where located",
    "WCAG number",
    "WCAG cause of failure",
    "Actual",
    "Expected + proposed fix",
)

_SNIPPET_LIMIT = 300

_CSS = """
* { box-sizing: border-box; }
body { font-family: 'Segoe UI', system-ui, sans-serif; margin: 0 auto; padding: 2rem; max-width: 960px;
       background: #0d1117; color: #e6edf3; line-height: 1.6; }
a { color: #58a6ff; text-decoration: none; }
h1 { margin: 0 0 .5rem; font-size: 1.5rem; color: #fff; }
h2 { color: #58a6ff; font-size: 1.1rem; border-bottom: 1px solid #30363d; padding-bottom: .5rem; }
.meta { color: #8b949e; font-size: .875rem; }
.badge { display: inline-block; padding: .2rem .6rem; border-radius: 6px; font-weight: 600; font-size: .75rem;
         margin-left: .5rem; background: #30363d; color: #fff; }
.badge-axe { background: #238636; }
.badge-tree { background: #8957e5; }
.badge-lighthouse { background: #f9ab00; color: #0d1117; }
.badge-wave, .badge-wave-capture { background: #1f6feb; }
.panel, .summary-box, .issue-card { background: #161b22; border: 1px solid #30363d; border-radius: 8px;
                                    padding: 1rem 1.25rem; margin-bottom: 1.25rem; }
.summary-box { background: #3d1f1f; border-color: #8b2c2c; }
.summary-box.pass { background: #1a2e1a; border-color: #2d5a2d; }
.summary-box h3 { margin: 0; font-size: 1rem; }
.counts { margin-top: .5rem; font-size: .875rem; }
.issue-card h4 { margin: 0 0 .75rem; display: flex; align-items: center; gap: .5rem; flex-wrap: wrap; }
.issue-actionable { border-left: 3px solid #f85149; }
.issue-informational { border-left: 3px solid #3fb950; }
.rule-id, code { font-family: ui-monospace, monospace; }
code { background: #0d1117; padding: .1rem .3rem; border-radius: 4px; font-size: .85em; }
.pill { padding: .15rem .5rem; border-radius: 999px; font-size: .7rem; font-weight: 600; }
.severity-critical { background: #da3633; color: #fff; }
.severity-serious, .status-actionable { background: #f85149; color: #fff; }
.severity-moderate { background: #d29922; color: #0d1117; }
.severity-minor { background: #8b949e; color: #0d1117; }
.status-informational { background: #3fb950; color: #0d1117; }
.section { margin-top: .75rem; font-size: .875rem; }
.section-title { font-weight: 600; color: #8b949e; margin-bottom: .25rem; }
button.copy-ticket { margin-left: auto; padding: .4rem .75rem; cursor: pointer; background: #238636; color: #fff;
                     border: none; border-radius: 6px; font-size: .8rem; }
.pass { color: #3fb950; }
"""

_SCRIPT = """
document.querySelectorAll('button.copy-ticket').forEach(function (btn) {
  btn.addEventListener('click', function () {
    var text = btn.closest('.issue-card').getAttribute('data-ticket') || '';
    navigator.clipboard.writeText(text).then(function () {
      btn.textContent = 'Copied!';
      setTimeout(function () { btn.textContent = 'Copy for JIRA'; }, 1500);
    });
  });
});
"""

_HEADINGS = {
    Engine.AXE: "Accessibility Report (WCAG 2.2 AA)",
    Engine.TREE: "Accessibility Report: component inventory and tree issues",
    Engine.LIGHTHOUSE: "Accessibility Report: Lighthouse",
    Engine.WAVE_API: "Accessibility Report (WCAG 2.2 AA)",
    Engine.WAVE_CAPTURE: "WAVE capture: ticket-ready issues",
}


def render_html(session: ScanSession) -> str:
    engine = session.engine
    if engine is Engine.WAVE_CAPTURE:
        body = _tab_sections(session)
    else:
        body = _by_rule(session) + _cards(session.findings, session)

    mode = ""
    if session.actionable_only:
        mode = ' <span class="badge">Actionable only</span>'
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8"/>
  <title>A11y Report: {escape(engine.display_name)}</title>
  <style>{_CSS}</style>
</head>
<body>
  <div class="header">
    <h1>{_HEADINGS[engine]}</h1>
    <div class="meta"><a href="{escape(session.url)}">{escape(session.url)}</a></div>
    <div class="meta">{escape(session.timestamp)} <span class="badge badge-{engine.value}">{escape(engine.display_name)}</span>{mode}</div>
  </div>
  {_summary_box(session)}
  {body}
  <script>{_SCRIPT}</script>
</body>
</html>
"""


def section(title: str, content: str) -> str:
    """One labeled card section; empty content (or a bare dash) renders nothing."""
    value = (content or "").strip()
    if not value or value == "—":
        return ""
    return (
        f'<div class="section"><div class="section-title">{escape(title)}</div>'
        f'<div class="section-content">{value}</div></div>'
    )


def card_sections(finding: Finding) -> list[str]:
    """Values for the eight fixed sections, already HTML-escaped, in SECTION_TITLES order."""
    return [
        escape(finding.title),
        escape(finding.description),
        _elements_html(finding),
        escape(finding.where_located),
        escape(format_criteria(finding.wcag_criteria)),
        escape(finding.wcag_cause),
        escape(finding.actual),
        escape(finding.expected_fix),
    ]


def render_card(idx: int, finding: Finding, session: ScanSession) -> str:
    ticket = render_ticket(finding, session.url, session.page_title or None)
    sections = "".join(section(t, c) for t, c in zip(SECTION_TITLES, card_sections(finding)))
    state = "actionable" if finding.actionable else "informational"
    return f"""
  <div class="issue-card issue-{state}" data-rule-id="{escape(finding.identifier)}" data-actionable="{str(finding.actionable).lower()}" data-ticket="{_attr(ticket)}">
    <h4>
      <span>#{idx}</span>
      <span class="rule-id">{escape(finding.identifier)}</span>
      {_pill(finding)}
      <button class="copy-ticket" type="button">Copy for JIRA</button>
    </h4>
    {sections}
  </div>"""


def _cards(findings: list[Finding], session: ScanSession) -> str:
    if not findings:
        return '<p class="pass">No issues.</p>'
    cards = "".join(render_card(i, f, session) for i, f in enumerate(findings, 1))
    return f'<h3>Detailed issues</h3>{cards}'


def _by_rule(session: ScanSession) -> str:
    items = []
    for group in session.group_by_rule():
        label = "" if group.actionable else ' <span class="pill status-informational">Informational</span>'
        items.append(
            f"<li><code>{escape(group.identifier)}</code>: {len(group.findings)} finding(s){label}</li>"
        )
    listing = "".join(items) or "<li>No issues.</li>"
    return f'<div class="panel"><h3>Issues grouped by rule</h3><ul>{listing}</ul></div>'


def _tab_sections(session: ScanSession) -> str:
    parts = []
    for tab, findings in group_by_tab(session.findings):
        cards = "".join(render_card(i, f, session) for i, f in enumerate(findings, 1))
        parts.append(f'<section class="tab-section" data-tab="{escape(tab)}"><h2>{escape(tab)} tab</h2>{cards}</section>')
    return "".join(parts) or '<p class="pass">No issues.</p>'


def _summary_box(session: ScanSession) -> str:
    actionable = len(session.actionable)
    informational = len(session.informational)
    total = actionable + informational
    summary = session.summary
    counts = ""

    if session.engine is Engine.AXE:
        line = f"<strong>{total}</strong> finding(s): <strong>{actionable} actionable</strong>"
        if informational:
            line += f", <strong>{informational} informational</strong> (manual review)"
        sev = session.severity_counts()
        counts = " · ".join(f"<strong>{sev[s]} {s}</strong>" for s in SEVERITIES)
    elif isinstance(summary, TreeInventory):
        line = f"<strong>{total}</strong> issue(s): <strong>{actionable} actionable</strong>, {informational} informational"
        counts = "Inventory: " + " · ".join(
            f"<strong>{getattr(summary, name)} {name}</strong>"
            for name in ("links", "buttons", "images", "videos", "audio", "iframes")
        )
    elif isinstance(summary, AuditScore):
        score = "n/a" if summary.percent is None else str(summary.percent)
        line = f"<strong>{total}</strong> failed audit(s) · Accessibility score: <strong>{score}</strong>"
    elif isinstance(summary, WaveCounts):
        line = f"<strong>{summary.error + summary.contrast}</strong> issue(s) (errors + contrast)"
        counts = (
            f"Errors: <strong>{summary.error}</strong> · Contrast: <strong>{summary.contrast}</strong> · "
            f"Alerts: <strong>{summary.alert}</strong> · Features: {summary.feature} · "
            f"Structure: {summary.structure} · ARIA: {summary.aria}"
        )
    else:
        tabs = len({f.group for f in session.findings})
        line = (
            f"<strong>{total}</strong> issue(s) across <strong>{tabs}</strong> tab(s): "
            f"<strong>{actionable} actionable</strong>, {informational} informational"
        )

    state = "" if session.has_actionable() else " pass"
    counts_html = f'<div class="counts">{counts}</div>' if counts else ""
    return f'<div class="summary-box{state}"><h3>{line}</h3>{counts_html}</div>'


def _pill(finding: Finding) -> str:
    if not finding.actionable:
        return '<span class="pill status-informational">Informational</span>'
    if finding.severity:
        sev = finding.severity.lower()
        cls = sev if sev in SEVERITIES else "moderate"
        return f'<span class="pill severity-{cls}">{escape(finding.severity)}</span>'
    if finding.engine is Engine.LIGHTHOUSE:
        return '<span class="pill severity-serious">Failed</span>'
    return '<span class="pill status-actionable">Actionable</span>'


def _elements_html(finding: Finding) -> str:
    parts = []
    for el in finding.elements:
        text = el.snippet or el.selector
        if not text:
            continue
        clipped = text[:_SNIPPET_LIMIT] + ("…" if len(text) > _SNIPPET_LIMIT else "")
        parts.append(f"<code>{escape(clipped)}</code>")
    return "<br/>".join(parts)


def _attr(text: str) -> str:
    return escape(text, quote=True).replace("\n", "&#10;")
