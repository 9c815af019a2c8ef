from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Union


class Engine(str, Enum):
    """Scanner that produced a finding. Decided once, at scan time."""

    AXE = "axe"
    TREE = "tree"
    LIGHTHOUSE = "lighthouse"
    WAVE_API = "wave"
    WAVE_CAPTURE = "wave-capture"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    Engine.AXE: "Axe-core",
    Engine.TREE: "A11y Tree",
    Engine.LIGHTHOUSE: "Lighthouse",
    Engine.WAVE_API: "WAVE API",
    Engine.WAVE_CAPTURE: "WAVE Capture",
}

SEVERITIES = ("critical", "serious", "moderate", "minor")


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass
class Element:
    selector: str  # CSS selector, AX role, or tag hint
    snippet: str = ""  # outer HTML or accessible name


@dataclass
class Finding:
    engine: Engine
    identifier: str
    title: str
    description: str
    elements: list[Element] = field(default_factory=list)
    wcag_criteria: list[str] = field(default_factory=list)
    wcag_source: str = "unmapped"
    actionable: bool = True
    severity: str | None = None
    where_located: str = ""
    wcag_cause: str = ""
    actual: str = ""
    expected_fix: str = ""
    tags: list[str] = field(default_factory=list)
    category: str = ""
    group: str = ""
    help_url: str = ""


@dataclass
class TreeInventory:
    links: int = 0
    buttons: int = 0
    images: int = 0
    videos: int = 0
    audio: int = 0
    iframes: int = 0

    def total(self) -> int:
        return self.links + self.buttons + self.images + self.videos + self.audio + self.iframes


@dataclass
class AuditScore:
    score: float | None

    @property
    def percent(self) -> int | None:
        return None if self.score is None else round(self.score * 100)


@dataclass
class WaveCounts:
    error: int = 0
    contrast: int = 0
    alert: int = 0
    feature: int = 0
    structure: int = 0
    aria: int = 0


Summary = Union[TreeInventory, AuditScore, WaveCounts, None]


@dataclass(frozen=True)
class ScanSession:
    """Everything one engine produced for one URL. Never mutated after construction."""

    url: str
    engine: Engine
    timestamp: str
    findings: list[Finding]
    summary: Summary = None
    actionable_only: bool = False
    page_title: str = ""

    @property
    def actionable(self) -> list[Finding]:
        return [f for f in self.findings if f.actionable]

    @property
    def informational(self) -> list[Finding]:
        return [f for f in self.findings if not f.actionable]

    def has_actionable(self) -> bool:
        return any(f.actionable for f in self.findings)

    def severity_counts(self) -> dict[str, int]:
        """Count actionable findings per severity; missing or unknown impact counts as moderate."""
        counts = dict.fromkeys(SEVERITIES, 0)
        for f in self.actionable:
            sev = (f.severity or "moderate").lower()
            counts[sev if sev in counts else "moderate"] += 1
        return counts

    def group_by_rule(self) -> list[RuleGroup]:
        """Group the flat finding list by (identifier, actionable), keeping first-seen order."""
        groups: dict[tuple[str, bool], RuleGroup] = {}
        for f in self.findings:
            key = (f.identifier, f.actionable)
            if key not in groups:
                groups[key] = RuleGroup(identifier=f.identifier, actionable=f.actionable, findings=[])
            groups[key].findings.append(f)
        return list(groups.values())

    def group_counts(self) -> Counter:
        return Counter(f.group for f in self.findings if f.group)


@dataclass
class RuleGroup:
    identifier: str
    actionable: bool
    findings: list[Finding]


@dataclass
class AuditRecord:
    id: str
    title: str
    description: str
    score: float | None
    score_display_mode: str
    tags: list[str]
    wcag_criteria: list[str]
    nodes: list[Element] = field(default_factory=list)


@dataclass
class ComplianceReport:
    """Strict accessibility view of one Lighthouse run: every audit sorted into a bucket."""

    audit_target: str
    timestamp: str
    compliance_target: str
    passes: list[AuditRecord] = field(default_factory=list)
    failures: list[AuditRecord] = field(default_factory=list)
    manual_checks: list[AuditRecord] = field(default_factory=list)
    not_applicable: list[AuditRecord] = field(default_factory=list)

    def summary(self) -> dict[str, int]:
        return {
            "passes": len(self.passes),
            "failures": len(self.failures),
            "manualChecks": len(self.manual_checks),
            "notApplicable": len(self.not_applicable),
        }
