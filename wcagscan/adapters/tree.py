"""CDP accessibility tree (flat AXNode list) -> inventory + Finding list."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from ..core.models import Element, Engine, Finding, TreeInventory
from ..core.wcag import tree_kind

_NAMED_INPUT_ROLES = {"textbox", "searchbox", "combobox"}

_ROLE_COUNTERS = {
    "link": "links",
    "button": "buttons",
    "image": "images",
    "img": "images",
    "video": "videos",
    "audio": "audio",
    "iframe": "iframes",
    "embed": "iframes",
}


@dataclass
class AXNode:
    node_id: str
    ignored: bool = False
    role: str | None = None
    name: str | None = None
    description: str | None = None
    parent_id: str | None = None
    child_ids: list[str] = field(default_factory=list)


@dataclass
class TreeNode:
    role: str | None
    name: str | None
    description: str | None = None
    node_id: str | None = None
    children: list[TreeNode] = field(default_factory=list)
    virtual: bool = False


def parse_ax_nodes(raw: list[dict]) -> list[AXNode]:
    """Convert CDP `Accessibility.getFullAXTree` nodes. AXValue wrappers are unwrapped and trimmed."""
    nodes = []
    for item in raw:
        if "nodeId" not in item:
            continue
        parent = item.get("parentId")
        nodes.append(AXNode(
            node_id=str(item["nodeId"]),
            ignored=bool(item.get("ignored", False)),
            role=_ax_value(item.get("role")),
            name=_ax_value(item.get("name")),
            description=_ax_value(item.get("description")),
            parent_id=str(parent) if parent is not None else None,
            child_ids=[str(c) for c in item.get("childIds") or []],
        ))
    return nodes


def build_tree(nodes: list[AXNode]) -> TreeNode | None:
    """Rebuild the tree, eliding ignored nodes.

    Children of an ignored node are attached to its nearest non-ignored
    ancestor. Each non-ignored node is placed at most once (first parent in
    list order wins), so the result stays a tree even if childIds repeat or cycle.
    Several top-level nodes are held by a virtual root in list order; a kept
    cycle that nothing else leads into becomes one more top-level node.
    """
    by_id: dict[str, AXNode] = {}
    for n in nodes:
        by_id.setdefault(n.node_id, n)

    kept: dict[str, TreeNode] = {}
    for nid, n in by_id.items():
        if not n.ignored:
            kept[nid] = TreeNode(role=n.role, name=n.name, description=n.description, node_id=nid)
    if not kept:
        return None

    placed: set[str] = set()
    for nid, tnode in kept.items():
        tnode.children = _visible_children(by_id[nid], by_id, kept, placed, {nid})

    tops = [tnode for nid, tnode in kept.items() if nid not in placed]
    reached = {n.node_id for top in tops for n in iter_preorder(top)}
    for nid, tnode in kept.items():
        # kept nodes in a cycle no top-level node leads into
        if nid not in reached:
            tops.append(tnode)
            reached.update(n.node_id for n in iter_preorder(tnode))
    if len(tops) == 1:
        return tops[0]
    return TreeNode(role=None, name=None, children=tops, virtual=True)


def _visible_children(
    node: AXNode,
    by_id: dict[str, AXNode],
    kept: dict[str, TreeNode],
    placed: set[str],
    trail: set[str],
) -> list[TreeNode]:
    out: list[TreeNode] = []
    for cid in node.child_ids:
        if cid in trail:
            continue
        if cid in kept:
            if cid not in placed:
                placed.add(cid)
                out.append(kept[cid])
        elif cid in by_id:
            out.extend(_visible_children(by_id[cid], by_id, kept, placed, trail | {cid}))
    return out


def iter_preorder(root: TreeNode | None) -> Iterator[TreeNode]:
    """Depth-first preorder without recursion. The virtual root itself is not yielded."""
    if root is None:
        return
    seen: set[int] = set()
    stack = [root]
    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        if not node.virtual:
            yield node
        stack.extend(reversed(node.children))


def walk(root: TreeNode | None) -> tuple[TreeInventory, list[Finding]]:
    """Count roles into the inventory and flag nameless links, buttons and text inputs."""
    inventory = TreeInventory()
    findings: list[Finding] = []
    for node in iter_preorder(root):
        role = (node.role or "").lower()
        counter = _ROLE_COUNTERS.get(role)
        if counter:
            setattr(inventory, counter, getattr(inventory, counter) + 1)

        if not _is_empty_name(node.name):
            continue
        if role == "link":
            findings.append(_nameless(
                "nameless-link", role, node,
                "Link has no accessible name (screen reader will not announce purpose).",
            ))
        elif role == "button":
            findings.append(_nameless(
                "nameless-button", role, node,
                "Button has no accessible name (e.g. icon-only with no aria-label or text).",
            ))
        elif role in _NAMED_INPUT_ROLES:
            findings.append(_nameless(
                "nameless-input", role, node,
                f"Input ({role}) has no accessible name/label.",
            ))
    return inventory, findings


def media_advisories(inventory: TreeInventory) -> list[Finding]:
    """One manual-review finding per media type present. Iframes are informational."""
    findings = []
    if inventory.videos:
        findings.append(_advisory(
            "media-video-review", "video", True,
            f"Video component(s) detected ({inventory.videos}). Manual verification required: "
            "accurate Closed Captions and Audio Descriptions (WCAG 1.2).",
        ))
    if inventory.audio:
        findings.append(_advisory(
            "media-audio-review", "audio", True,
            f"Audio component(s) detected ({inventory.audio}). Manual verification required: "
            "captions/transcript or alternative.",
        ))
    if inventory.iframes:
        findings.append(_advisory(
            "media-iframe-review", "iframe", False,
            f"Embed/iframe(s) detected ({inventory.iframes}). If they contain video/audio, "
            "verify captions and accessibility.",
        ))
    return findings


def adapt_ax_tree(raw_nodes: list[dict]) -> tuple[TreeInventory, list[Finding]]:
    root = build_tree(parse_ax_nodes(raw_nodes))
    inventory, findings = walk(root)
    findings.extend(media_advisories(inventory))
    return inventory, findings


def _nameless(kind: str, role: str, node: TreeNode, summary: str) -> Finding:
    finding = _tree_finding(kind, role, True, summary)
    finding.elements = [Element(selector=role, snippet=node.name or "")]
    finding.actual = f"{role} with no accessible name"
    if node.description:
        finding.actual += f" (description: {node.description})"
    return finding


def _advisory(kind: str, role: str, actionable: bool, summary: str) -> Finding:
    finding = _tree_finding(kind, role, actionable, summary)
    finding.elements = [Element(selector=role)]
    finding.actual = summary
    return finding


def _tree_finding(kind: str, role: str, actionable: bool, summary: str) -> Finding:
    entry = tree_kind(kind)
    criteria = list(entry.criteria) if entry else []
    return Finding(
        engine=Engine.TREE,
        identifier=kind,
        title=summary,
        description=summary,
        wcag_criteria=criteria,
        wcag_source="kind-map" if criteria else "unmapped",
        actionable=actionable,
        where_located=f"Accessibility tree, role={role} (see page for context)",
        wcag_cause=summary,
        expected_fix=entry.fix if entry and entry.fix else summary,
    )


def _ax_value(value) -> str | None:
    if not isinstance(value, dict) or value.get("value") is None:
        return None
    text = str(value["value"]).strip()
    return text or None


def _is_empty_name(name: str | None) -> bool:
    return name is None or not name.strip()
