"""Plain-text ticket (JIRA wiki markup) for a single finding."""
from __future__ import annotations

from ..core.models import Engine, Finding
from ..core.wcag import format_criteria

INFORMATIONAL_STATUS = "*Status:* Informational (no action required unless incorrect or missing)"

_TITLE_LIMIT = 80


def ticket_summary(finding: Finding) -> str:
    """First line of the ticket: [engine][rule or tab] short title."""
    if finding.engine is Engine.WAVE_CAPTURE:
        return f"[WAVE][{finding.group}] {_clip(finding.description)}"
    return f"[{finding.engine.display_name}][{finding.identifier}] {_clip(finding.title)}"


def render_ticket(finding: Finding, source_url: str, page_title: str | None = None) -> str:
    if finding.engine is Engine.WAVE_CAPTURE:
        body = _capture_body(finding, source_url, page_title)
    else:
        body = _standard_body(finding, source_url, page_title)
    if not finding.actionable:
        body = f"{INFORMATIONAL_STATUS}\n\n{body}"
    return f"{ticket_summary(finding)}\n\n{body}"


def _capture_body(finding: Finding, source_url: str, page_title: str | None) -> str:
    if finding.wcag_cause and finding.wcag_criteria:
        why_block = "\n".join([
            "",
            "*Why this fails (WCAG 2.2 AA):*",
            finding.wcag_cause,
            "",
            f"*Fails:* {' | '.join(finding.wcag_criteria)}",
        ])
    elif finding.wcag_criteria:
        why_block = f"\n\n*Fails:* {' | '.join(finding.wcag_criteria)}"
    else:
        why_block = ""

    snippet = finding.elements[0].snippet if finding.elements else ""
    lines = [
        f"*Source:* {source_url}",
        f"*Page:* {page_title}" if page_title else "",
        f"*WAVE tab:* {finding.group}",
        f"*Category:* {finding.category}",
        f"*Description:* {finding.description}",
        f"*Element:* {{code}}{snippet}{{code}}" if snippet else "",
        why_block,
        "h3. Reproduction",
        "(Steps to reproduce and verify the issue.)",
        *_reproduction(finding),
    ]
    return "\n".join(line for line in lines if line)


def _standard_body(finding: Finding, source_url: str, page_title: str | None) -> str:
    lines = [f"*Source:* {source_url}"]
    if page_title:
        lines.append(f"*Page:* {page_title}")
    lines += [f"*Engine:* {finding.engine.display_name}", f"*Rule:* {finding.identifier}"]
    if finding.severity:
        lines.append(f"*Severity:* {finding.severity}")
    if finding.category:
        lines.append(f"*Category:* {finding.category}")
    lines.append(f"*Description:* {finding.description}")

    selectors = [e.selector for e in finding.elements if e.selector]
    if selectors:
        lines.append(f"*Element(s):* {'; '.join(selectors)}")
    lines.append(f"*WCAG:* {format_criteria(finding.wcag_criteria)}")
    if finding.wcag_cause and finding.wcag_cause != finding.description:
        lines += ["", "*Why this fails (WCAG 2.2 AA):*", finding.wcag_cause]
    if finding.actual and finding.actual != finding.title:
        lines.append(f"*Actual:* {finding.actual}")
    if finding.expected_fix:
        lines.append(f"*Expected fix:* {finding.expected_fix}")
    lines += ["", "h3. Reproduction", *_reproduction(finding)]
    return "\n".join(lines)


def _reproduction(finding: Finding) -> list[str]:
    if finding.engine is Engine.AXE:
        return [
            "# Open the page in a browser and run axe DevTools (WCAG 2.2 AA tags).",
            f"# Locate the element(s) above and confirm rule '{finding.identifier}' is reported.",
            "# Apply the fix and re-run the scan to confirm the rule passes.",
        ]
    if finding.engine is Engine.TREE:
        return [
            "# Open the page in Chrome and open DevTools > Elements > Accessibility.",
            "# Inspect the node(s) above in the full accessibility tree.",
            "# Confirm the computed name or media alternative, fix, and re-run the tree scan.",
        ]
    if finding.engine is Engine.LIGHTHOUSE:
        return [
            "# Run Lighthouse with only the Accessibility category against the page.",
            f"# Open the failed audit '{finding.identifier}' and review the listed elements.",
            "# Apply the fix and re-run Lighthouse to confirm the audit passes.",
        ]
    if finding.engine is Engine.WAVE_API:
        return [
            "# Run WAVE against the page.",
            f"# Open the {finding.category or 'Details'} items and locate '{finding.identifier}'.",
            "# Fix the underlying cause and re-run WAVE to confirm it is gone.",
        ]
    return [
        "# Run the WAVE browser extension on the page.",
        f"# Open the WAVE sidebar → {finding.group} tab.",
        '# Locate this finding and fix the underlying cause (see "Why this fails" and WCAG link).',
        "# Re-run WAVE to confirm the issue is resolved.",
    ]


def _clip(text: str) -> str:
    return text[:_TITLE_LIMIT] + ("…" if len(text) > _TITLE_LIMIT else "")
