"""WCAG tag parsing and the static reference tables.

Every lookup here is total: a miss yields a WcagMatch with source "unmapped",
never an exception and never a silent empty list.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

import yaml

from .errors import ConfigLoadError

NOT_MAPPED = "Not mapped"

_REFERENCE_PATH = Path(__file__).resolve().parent.parent / "data" / "wcag_reference.yaml"
_REQUIRED_SECTIONS = ("tags", "lighthouse_audits", "tree_kinds", "wave_reference")

_WCAG_TAG_RE = re.compile(r"^wcag\d+[a-z]*$", re.IGNORECASE)
_CRITERION_TAG_RE = re.compile(r"^wcag(\d)(\d)(\d{1,2})$", re.IGNORECASE)


@dataclass(frozen=True)
class WcagMatch:
    """Resolved criteria plus where they came from (tags, artifacts, audit-map, reference, kind-map, unmapped)."""

    criteria: list[str] = field(default_factory=list)
    source: str = "unmapped"
    why: str = ""

    @property
    def mapped(self) -> bool:
        return bool(self.criteria)


UNMAPPED = WcagMatch()


@dataclass(frozen=True)
class ReferenceEntry:
    key: str
    why: str
    criteria: list[str]


@dataclass(frozen=True)
class TreeKind:
    criteria: list[str]
    fix: str


class WcagReference:
    """Loaded form of wcag_reference.yaml."""

    def __init__(self, path: Path) -> None:
        with open(path) as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ConfigLoadError(f"{path}: expected a YAML mapping at top level")
        missing = [s for s in _REQUIRED_SECTIONS if s not in data]
        if missing:
            raise ConfigLoadError(f"{path}: missing sections: {', '.join(missing)}")

        self.tags: dict[str, str] = {str(k).lower(): str(v) for k, v in data["tags"].items()}
        self.lighthouse_audits: dict[str, list[str]] = {
            str(k): list(v) for k, v in data["lighthouse_audits"].items()
        }
        self.tree_kinds: dict[str, TreeKind] = {
            kind: TreeKind(criteria=self.labels(entry.get("tags", [])), fix=entry.get("fix", ""))
            for kind, entry in data["tree_kinds"].items()
        }
        self.wave_reference: list[ReferenceEntry] = []
        for entry in data["wave_reference"]:
            if not isinstance(entry, dict) or "key" not in entry:
                raise ConfigLoadError(f"{path}: wave_reference entries need a 'key'")
            self.wave_reference.append(ReferenceEntry(
                key=entry["key"].lower(),
                why=entry.get("why", ""),
                criteria=self.labels(entry.get("criteria", [])),
            ))
        self._by_key = {e.key: e for e in self.wave_reference}

    def label(self, tag: str) -> str:
        key = tag.lower()
        if key in self.tags:
            return self.tags[key]
        m = _CRITERION_TAG_RE.match(key)
        if m:
            return f"WCAG {m.group(1)}.{m.group(2)}.{m.group(3)}"
        return re.sub(r"\b\w", lambda c: c.group(0).upper(), re.sub(r"[-_]", " ", tag))

    def labels(self, tags: list[str]) -> list[str]:
        return [self.label(t) for t in tags]

    def entry(self, key: str) -> ReferenceEntry | None:
        return self._by_key.get(key)


@lru_cache(maxsize=None)
def load_reference(path: Path = _REFERENCE_PATH) -> WcagReference:
    return WcagReference(path)


def is_wcag_tag(tag: str) -> bool:
    """wcag2aa, wcag21aa, wcag143, wcag1410 ... (not best-practice, cat.*, ACT ids)."""
    return bool(_WCAG_TAG_RE.match(tag))


def is_criterion_tag(tag: str) -> bool:
    return bool(_CRITERION_TAG_RE.match(tag))


def label_for_tag(tag: str) -> str:
    return load_reference().label(tag)


def criteria_for_tags(tags: list[str]) -> list[str]:
    """Success-criterion labels for the criterion tags in `tags`, in order, without duplicates."""
    seen: dict[str, None] = {}
    for tag in tags:
        if is_criterion_tag(tag):
            seen.setdefault(label_for_tag(tag), None)
    return list(seen)


def resolve_audit_criteria(audit_id: str, artifact_tags: list[str] | None = None) -> WcagMatch:
    """Priority: tags recovered from raw artifacts, then the static audit map, then unmapped."""
    from_artifacts = criteria_for_tags(artifact_tags or [])
    if from_artifacts:
        return WcagMatch(criteria=from_artifacts, source="artifacts")

    mapped = load_reference().lighthouse_audits.get(audit_id)
    if mapped:
        criteria = criteria_for_tags(mapped)
        if criteria:
            return WcagMatch(criteria=criteria, source="audit-map")

    return UNMAPPED


def lookup_reference(description: str, category: str) -> ReferenceEntry | None:
    """Best-matching reference entry for a WAVE finding, or None.

    Order: first key contained in "<category> <description>", then category
    defaults (contrast, aria), then description keywords (heading, label, alt/image).
    """
    ref = load_reference()
    desc = description.lower()
    normalized = f"{category} {description}".lower()
    for entry in ref.wave_reference:
        if entry.key in normalized or entry.key in desc:
            return entry

    cat = category.upper()
    if "CONTRAST" in cat:
        return ref.entry("contrast")
    if "ARIA" in cat:
        return ref.entry("aria")
    if "heading" in desc:
        return ref.entry("heading level")
    if "label" in desc:
        return ref.entry("missing form label")
    if "alt" in desc or "image" in desc:
        return ref.entry("missing alternative text")
    return None


def lookup(description: str, category: str) -> WcagMatch:
    entry = lookup_reference(description, category)
    if entry is None or not entry.criteria:
        return UNMAPPED
    return WcagMatch(criteria=list(entry.criteria), source="reference", why=entry.why)


def tree_kind(kind: str) -> TreeKind | None:
    return load_reference().tree_kinds.get(kind)


def format_criteria(criteria: list[str], sep: str = ", ") -> str:
    return sep.join(criteria) if criteria else NOT_MAPPED
