"""WAVE results -> Finding list.

Two inputs: the stand-alone API JSON, and the page markup captured after the
WAVE browser extension has injected its overlay.

Capture grammar: an overlay icon is an <img> whose class contains
``wave5icon``. Its alt text reads ``"<CATEGORY>: <description>"`` where
CATEGORY is one of ERRORS, CONTRAST ERRORS, ALERTS, FEATURES, STRUCTURAL
ELEMENTS or ARIA (singular forms too, any case). Anything else is "Other".

Known limitation: captures are deduplicated by exact alt text, so the same
issue at several places on the page is reported once. Counting is per
description type, not per instance, and informational categories are
reported too, so totals run higher than the extension's own counters.
Use the actionable-only view to approximate them.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag

from ..core.models import Element, Engine, Finding, WaveCounts
from ..core.wcag import UNMAPPED, WcagMatch, lookup

TAB_DETAILS = "Details"
TAB_CONTRAST = "Contrast"
TAB_STRUCTURE = "Structure"
TAB_ORDER = "Tab Order"
TAB_REFERENCE = "Reference"
TABS = (TAB_DETAILS, TAB_CONTRAST, TAB_STRUCTURE, TAB_ORDER, TAB_REFERENCE)

TAB_ORDER_CHECK = (
    "Manual check: Verify keyboard tab order matches visual order and all "
    "interactive elements are reachable."
)
FALLBACK_FIX = "Fix per WAVE recommendation and WCAG criteria. Re-run WAVE to verify."

WAVE_CATEGORIES = ("error", "contrast", "alert", "feature", "structure", "aria")

_ALT_CATEGORY_RE = re.compile(
    r"^(ERRORS?|CONTRAST\s+ERRORS?|ALERTS?|FEATURES?|STRUCTURAL\s+ELEMENTS?|ARIA):\s*(.+)$",
    re.IGNORECASE | re.DOTALL,
)
_SNIPPET_MAX = 300

_HEADING_LEVEL_RE = re.compile(r"heading level (\d)", re.IGNORECASE)

# first keyword found in the description wins
_ELEMENT_HINTS = (
    ("noscript", "noscript"),
    ("form label", "input / label"),
    ("label", "input / label"),
    ("button", "button"),
    ("link", "a"),
    ("alternative text", "img"),
    ("image", "img"),
    ("alt", "img"),
    ("video", "video / audio"),
    ("audio", "video / audio"),
    ("language", "html"),
    ("contrast", "text"),
    ("heading", "h1-h6"),
    ("unordered list", "ul"),
    ("list", "ul / ol"),
    ("navigation", "nav"),
    ("main content", "main"),
    ("header", "header"),
    ("footer", "footer"),
    ("table", "table"),
    ("iframe", "iframe"),
    ("tabindex", "[tabindex]"),
    ("aria", "[aria-*]"),
)


@dataclass
class CaptureFinding:
    category: str
    description: str
    tab: str
    alt: str = ""
    snippet: str = ""
    element_hint: str = ""
    wcag: WcagMatch = field(default_factory=lambda: UNMAPPED)

    @property
    def actionable(self) -> bool:
        return is_actionable_category(self.category)


def is_actionable_category(category: str) -> bool:
    """Errors, contrast errors and alerts need action. Features, structure and ARIA are inventory."""
    c = category.upper()
    return "ERROR" in c or "CONTRAST" in c or "ALERT" in c


def tab_for_category(category: str) -> str:
    c = category.upper()
    if "CONTRAST" in c:
        return TAB_CONTRAST
    if "STRUCTURAL" in c or "HEADING" in c or "STRUCTURE" in c:
        return TAB_STRUCTURE
    if "ARIA" in c or "ERROR" in c or "ALERT" in c:
        return TAB_DETAILS
    if "FEATURE" in c:
        return TAB_STRUCTURE
    return TAB_DETAILS


def parse_capture(markup: str) -> list[CaptureFinding]:
    """Extract one CaptureFinding per distinct icon alt text, in document order."""
    captures: list[CaptureFinding] = []
    seen: set[str] = set()
    soup = BeautifulSoup(markup, "html.parser")
    for icon in soup.select("img.wave5icon"):
        alt = (icon.attrs.get("alt") or "").strip()
        if not alt or alt in seen:
            continue
        seen.add(alt)

        parsed = _ALT_CATEGORY_RE.match(alt)
        if parsed:
            category = re.sub(r"\s+", " ", parsed.group(1).strip())
            description = parsed.group(2).strip()
        else:
            category, description = "Other", alt

        captures.append(CaptureFinding(
            category=category,
            description=description,
            tab=tab_for_category(category),
            alt=alt,
            snippet=_recover_snippet(icon),
            element_hint=element_hint(description),
            wcag=lookup(description, category),
        ))
    return captures


def filter_actionable(captures: list[CaptureFinding]) -> list[CaptureFinding]:
    return [c for c in captures if is_actionable_category(c.category)]


def capture_to_findings(captures: list[CaptureFinding], actionable_only: bool = False) -> list[Finding]:
    """Findings grouped by tab (first-seen order), plus the tab-order check and reference summary.

    The reference summary draws on every capture, including ones hidden by the
    actionable-only filter.
    """
    selected = filter_actionable(captures) if actionable_only else list(captures)
    by_tab: dict[str, list[Finding]] = {}
    for c in selected:
        by_tab.setdefault(c.tab, []).append(_capture_finding(c))

    if TAB_ORDER not in by_tab:
        by_tab[TAB_ORDER] = [_tab_order_finding()]

    refs: dict[str, None] = {}
    for c in captures:
        for criterion in c.wcag.criteria:
            refs.setdefault(criterion, None)
    if refs and TAB_REFERENCE not in by_tab:
        by_tab[TAB_REFERENCE] = [_reference_finding(list(refs))]

    return [f for tab_findings in by_tab.values() for f in tab_findings]


def adapt_wave_response(data: dict) -> tuple[WaveCounts, list[Finding]]:
    """WAVE API (reporttype 2+) -> counts and one finding per category item.

    Categories without items but with a nonzero count get one summary finding.
    """
    categories = data.get("categories") or {}
    counts = WaveCounts(**{name: _count(categories.get(name)) for name in WAVE_CATEGORIES})

    findings: list[Finding] = []
    for name in WAVE_CATEGORIES:
        cat = categories.get(name) or {}
        items = cat.get("items") or []
        if isinstance(items, dict):
            items = [{"id": key, **value} for key, value in items.items()]
        if items:
            findings.extend(_api_item_finding(name, item) for item in items)
        elif _count(cat):
            findings.append(_api_summary_finding(name, _count(cat)))
    return counts, findings


def element_hint(description: str) -> str:
    """Generic element guess from the description text ("heading level 1" -> "h1")."""
    m = _HEADING_LEVEL_RE.search(description)
    if m:
        return f"h{m.group(1)}"
    lowered = description.lower()
    for keyword, hint in _ELEMENT_HINTS:
        if keyword in lowered:
            return hint
    return "page"


def group_by_tab(findings: list[Finding]) -> list[tuple[str, list[Finding]]]:
    """Findings per WAVE tab, in sidebar order; unknown tabs follow in first-seen order."""
    by_tab: dict[str, list[Finding]] = {}
    for f in findings:
        by_tab.setdefault(f.group, []).append(f)
    order = [t for t in TABS if t in by_tab] + [t for t in by_tab if t not in TABS]
    return [(tab, by_tab[tab]) for tab in order]


def _capture_finding(c: CaptureFinding) -> Finding:
    return Finding(
        engine=Engine.WAVE_CAPTURE,
        identifier=_slug(c.description),
        title=c.description,
        description=c.description,
        elements=[Element(selector=c.element_hint, snippet=c.snippet)],
        wcag_criteria=list(c.wcag.criteria),
        wcag_source=c.wcag.source,
        actionable=c.actionable,
        where_located=f"WAVE tab: {c.tab}",
        wcag_cause=c.wcag.why,
        actual=c.description,
        expected_fix=_expected_fix(c.wcag),
        category=c.category,
        group=c.tab,
    )


def _tab_order_finding() -> Finding:
    match = lookup(TAB_ORDER_CHECK, TAB_ORDER)
    return Finding(
        engine=Engine.WAVE_CAPTURE,
        identifier="tab-order",
        title=TAB_ORDER_CHECK,
        description=TAB_ORDER_CHECK,
        wcag_criteria=list(match.criteria),
        wcag_source=match.source,
        actionable=True,
        where_located=f"WAVE tab: {TAB_ORDER}",
        wcag_cause=match.why,
        actual=TAB_ORDER_CHECK,
        expected_fix=_expected_fix(match),
        category=TAB_ORDER,
        group=TAB_ORDER,
    )


def _reference_finding(criteria: list[str]) -> Finding:
    description = " | ".join(criteria)
    return Finding(
        engine=Engine.WAVE_CAPTURE,
        identifier="reference",
        title="WCAG criteria referenced by this capture",
        description=description,
        wcag_criteria=criteria,
        wcag_source="reference",
        actionable=False,
        where_located=f"WAVE tab: {TAB_REFERENCE}",
        actual=description,
        category=TAB_REFERENCE,
        group=TAB_REFERENCE,
    )


def _api_item_finding(category: str, item: dict) -> Finding:
    description = str(item.get("description") or item.get("id") or category)
    count = item.get("count", 0)
    match = lookup(description, category)
    selectors = item.get("selectors") or []
    elements = [Element(selector=_flatten_selector(s)) for s in selectors]
    return Finding(
        engine=Engine.WAVE_API,
        identifier=str(item.get("id") or _slug(description)),
        title=description,
        description=description,
        elements=elements,
        wcag_criteria=list(match.criteria),
        wcag_source=match.source,
        actionable=is_actionable_category(category),
        where_located="; ".join(e.selector for e in elements),
        wcag_cause=match.why,
        actual=f"{count} instance(s) reported by WAVE",
        expected_fix=_expected_fix(match),
        category=category,
        group=category,
    )


def _api_summary_finding(category: str, count: int) -> Finding:
    title = f"{category.capitalize()} (summary)"
    description = f"WAVE reported {count} {category} item(s); item details were not returned."
    match = lookup(description, category)
    return Finding(
        engine=Engine.WAVE_API,
        identifier=f"{category}-summary",
        title=title,
        description=description,
        wcag_criteria=list(match.criteria),
        wcag_source=match.source,
        actionable=is_actionable_category(category),
        wcag_cause=match.why,
        actual=f"{count} instance(s) reported by WAVE",
        expected_fix=_expected_fix(match),
        category=category,
        group=category,
    )


def _expected_fix(match: WcagMatch) -> str:
    if not match.mapped:
        return FALLBACK_FIX
    return f"{match.why} Fix per WCAG: {', '.join(match.criteria)}."


def _recover_snippet(icon: Tag) -> str:
    """Opening tag of the next page element after an icon, skipping further icons and wave5text labels."""
    for node in icon.next_elements:
        if not isinstance(node, Tag):
            continue
        classes = node.get("class") or []
        if "wave5icon" in classes or "wave5text" in classes:
            continue
        if node.find_parent(class_="wave5text") is not None:
            continue
        return _open_tag(node)[:_SNIPPET_MAX]
    return ""


def _open_tag(tag: Tag) -> str:
    parts = [tag.name]
    for name, value in tag.attrs.items():
        if isinstance(value, list):
            value = " ".join(value)
        value = str(value).replace('"', "&quot;")
        parts.append(f'{name}="{value}"')
    return "<" + " ".join(parts) + ">"


def _count(category: dict | None) -> int:
    if not category:
        return 0
    try:
        return int(category.get("count") or 0)
    except (TypeError, ValueError):
        return 0


def _flatten_selector(selector) -> str:
    if isinstance(selector, list):
        return " ".join(str(s) for s in selector)
    return str(selector)


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")[:60] or "finding"
