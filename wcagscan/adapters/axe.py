"""axe-core results -> Finding list.

One finding per (violation, node). Violations with no nodes produce nothing.
"""
from __future__ import annotations

from ..core.models import Element, Engine, Finding
from ..core.wcag import criteria_for_tags, is_wcag_tag

TARGET_SIZE_RULE = "target-size-minimum"
_TARGET_SIZE_HELP_URL = "https://www.w3.org/WAI/WCAG22/Understanding/target-size-minimum.html"


def adapt_axe_results(results: dict, actionable_only: bool = False) -> list[Finding]:
    """Flatten an axe `{violations, passes, incomplete}` response.

    Violations become actionable findings. Incomplete ("needs review") entries
    become informational ones unless `actionable_only` is set. Passes are ignored.
    """
    findings: list[Finding] = []
    for entry in results.get("violations", []):
        findings.extend(_fan_out(entry, actionable=True))
    if not actionable_only:
        for entry in results.get("incomplete", []):
            findings.extend(_fan_out(entry, actionable=False))
    return findings


def target_size_violation(targets: list[dict], min_size: int = 24) -> dict | None:
    """Build a synthetic axe-shaped violation for interactive elements under min_size px.

    `targets` are the measurements taken in the page: {selector, html, width, height}.
    Returns None when every target is large enough.
    """
    nodes = []
    for t in targets:
        width = t.get("width", 0)
        height = t.get("height", 0)
        if width >= min_size and height >= min_size:
            continue
        nodes.append({
            "target": [t.get("selector", "")],
            "html": t.get("html", ""),
            "impact": "serious",
            "failureSummary": (
                f"Rendered size is {round(width)}×{round(height)} CSS pixels; "
                f"minimum is {min_size}×{min_size}."
            ),
        })
    if not nodes:
        return None
    return {
        "id": TARGET_SIZE_RULE,
        "impact": "serious",
        "description": (
            f"WCAG 2.5.8: Interactive elements must have a minimum size of "
            f"{min_size}×{min_size} CSS pixels."
        ),
        "help": f"Ensure touch targets are at least {min_size}×{min_size} pixels.",
        "helpUrl": _TARGET_SIZE_HELP_URL,
        "tags": ["wcag2aa", "wcag22aa", "wcag258"],
        "nodes": nodes,
    }


def _fan_out(entry: dict, actionable: bool) -> list[Finding]:
    rule_id = entry.get("id", "")
    help_text = entry.get("help") or ""
    description = entry.get("description") or help_text
    help_url = entry.get("helpUrl") or ""
    tags = [t for t in entry.get("tags", []) if is_wcag_tag(t)]
    criteria = criteria_for_tags(tags)
    expected = description + (f" See: {help_url}" if help_url else "")

    findings = []
    for node in entry.get("nodes", []):
        selector = _selector(node.get("target"))
        findings.append(Finding(
            engine=Engine.AXE,
            identifier=rule_id,
            title=help_text or rule_id,
            description=description,
            elements=[Element(selector=selector, snippet=node.get("html") or "")],
            wcag_criteria=list(criteria),
            wcag_source="tags" if criteria else "unmapped",
            actionable=actionable,
            severity=entry.get("impact") or node.get("impact"),
            where_located=selector,
            wcag_cause=description,
            actual=node.get("failureSummary") or help_text,
            expected_fix=expected,
            tags=list(tags),
            help_url=help_url,
        ))
    return findings


def _selector(target) -> str:
    """axe targets are a list of selectors; frames and shadow roots nest further lists."""
    if not target:
        return ""
    parts = []
    for part in target:
        if isinstance(part, list):
            parts.append(" >>> ".join(str(p) for p in part))
        else:
            parts.append(str(part))
    return " ".join(parts)
