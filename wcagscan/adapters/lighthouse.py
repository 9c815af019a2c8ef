"""Lighthouse LHR (+ optional raw artifacts) -> Finding list or a strict ComplianceReport."""
from __future__ import annotations

from ..core.models import AuditRecord, AuditScore, ComplianceReport, Element, Engine, Finding
from ..core.wcag import criteria_for_tags, is_wcag_tag, load_reference, resolve_audit_criteria

COMPLIANCE_TARGET = "WCAG 2.2 AA / AODA"


def artifact_tag_map(artifacts: dict | None) -> dict[str, list[str]]:
    """Audit id -> WCAG tags, taken from the raw axe payload Lighthouse gathers before formatting."""
    tag_map: dict[str, list[str]] = {}
    if not artifacts:
        return tag_map
    a11y = artifacts.get("Accessibility") or {}
    for bucket in ("violations", "incomplete", "passes"):
        for entry in a11y.get(bucket) or []:
            audit_id = entry.get("id")
            tags = [t for t in entry.get("tags") or [] if is_wcag_tag(t)]
            if audit_id and tags:
                tag_map.setdefault(audit_id, tags)
    return tag_map


def adapt_lighthouse_report(lhr: dict, artifacts: dict | None = None) -> tuple[AuditScore, list[Finding]]:
    """One finding per failed accessibility audit.

    Membership comes from the accessibility category's auditRefs. Failed means a
    score of exactly 0 or no score at all.
    """
    category = (lhr.get("categories") or {}).get("accessibility") or {}
    audits = lhr.get("audits") or {}
    tag_map = artifact_tag_map(artifacts)

    findings: list[Finding] = []
    for ref in category.get("auditRefs") or []:
        audit = audits.get(ref.get("id"))
        if not audit:
            continue
        score = audit.get("score")
        if score is not None and score != 0:
            continue
        findings.append(_failed_audit(audit, tag_map))

    return AuditScore(score=category.get("score")), findings


def build_compliance_report(
    url: str,
    lhr: dict,
    artifacts: dict | None = None,
    timestamp: str = "",
) -> ComplianceReport:
    """Sort every accessibility audit into pass / fail / manual / not-applicable.

    Bucketing uses scoreDisplayMode first (manual, notApplicable), then the
    score (0 fails, 1 passes). Anything else (informative, null) is left out.
    """
    report = ComplianceReport(
        audit_target=url,
        timestamp=timestamp or lhr.get("fetchTime", ""),
        compliance_target=COMPLIANCE_TARGET,
    )
    tag_map = artifact_tag_map(artifacts)

    for audit in _accessibility_audits(lhr):
        tags = list(audit.get("tags") or tag_map.get(audit.get("id", ""), []))
        mode = audit.get("scoreDisplayMode") or ""
        record = AuditRecord(
            id=audit.get("id", ""),
            title=audit.get("title", ""),
            description=audit.get("description") or "",
            score=audit.get("score"),
            score_display_mode=mode,
            tags=tags,
            wcag_criteria=_criteria(audit.get("id", ""), tags),
        )
        if mode == "manual":
            report.manual_checks.append(record)
        elif mode == "notApplicable":
            report.not_applicable.append(record)
        elif record.score == 0:
            record.nodes = _elements(audit)
            report.failures.append(record)
        elif record.score == 1:
            report.passes.append(record)
    return report


def compliance_to_dict(report: ComplianceReport) -> dict:
    """JSON shape of the strict audit file."""

    def _record(r: AuditRecord, with_nodes: bool = False) -> dict:
        out = {
            "id": r.id,
            "title": r.title,
            "description": r.description,
            "score": r.score,
            "scoreDisplayMode": r.score_display_mode,
            "tags": r.tags,
            "wcagCriteria": r.wcag_criteria,
        }
        if with_nodes:
            out["nodes"] = [{"selector": n.selector, "snippet": n.snippet} for n in r.nodes]
        return out

    return {
        "auditTarget": report.audit_target,
        "timestamp": report.timestamp,
        "complianceTarget": report.compliance_target,
        "summary": report.summary(),
        "findings": {
            "passes": [_record(r) for r in report.passes],
            "failures": [_record(r, with_nodes=True) for r in report.failures],
            "manualChecks": [_record(r) for r in report.manual_checks],
            "notApplicable": [_record(r) for r in report.not_applicable],
        },
    }


def _accessibility_audits(lhr: dict) -> list[dict]:
    """Audits in the accessibility category, plus any tagged 'accessibility', category order first."""
    audits = lhr.get("audits") or {}
    category = (lhr.get("categories") or {}).get("accessibility") or {}
    ordered: dict[str, dict] = {}
    for ref in category.get("auditRefs") or []:
        audit = audits.get(ref.get("id"))
        if audit:
            ordered[ref["id"]] = audit
    for audit_id, audit in audits.items():
        if audit_id not in ordered and "accessibility" in (audit.get("tags") or []):
            ordered[audit_id] = audit
    return list(ordered.values())


def _criteria(audit_id: str, tags: list[str]) -> list[str]:
    from_tags = criteria_for_tags(tags)
    if from_tags:
        return from_tags
    return list(resolve_audit_criteria(audit_id).criteria)


def _failed_audit(audit: dict, tag_map: dict[str, list[str]]) -> Finding:
    audit_id = audit.get("id", "")
    artifact_tags = tag_map.get(audit_id, [])
    match = resolve_audit_criteria(audit_id, artifact_tags)
    if match.source == "artifacts":
        tags = artifact_tags
    else:
        tags = list(load_reference().lighthouse_audits.get(audit_id, []))

    title = audit.get("title") or audit_id
    description = audit.get("description") or ""
    elements = _elements(audit)
    return Finding(
        engine=Engine.LIGHTHOUSE,
        identifier=audit_id,
        title=title,
        description=description,
        elements=elements,
        wcag_criteria=list(match.criteria),
        wcag_source=match.source,
        actionable=True,
        where_located="; ".join(e.selector for e in elements if e.selector),
        wcag_cause=description,
        actual=audit.get("displayValue") or title,
        expected_fix=f"{description} See Lighthouse accessibility docs for this audit.".strip(),
        tags=tags,
    )


def _elements(audit: dict) -> list[Element]:
    items = (audit.get("details") or {}).get("items") or []
    elements = []
    for item in items:
        if not isinstance(item, dict):
            continue
        node = item.get("node") if isinstance(item.get("node"), dict) else {}
        selector = item.get("selector") or node.get("selector") or ""
        snippet = (
            item.get("snippet") or node.get("snippet")
            or item.get("nodeLabel") or node.get("nodeLabel") or ""
        )
        if selector or snippet:
            elements.append(Element(selector=selector, snippet=snippet))
    return elements
