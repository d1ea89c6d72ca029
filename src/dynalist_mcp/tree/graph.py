"""Structural queries over a document's flat node list.

Dynalist returns a document as a flat array; the tree is implied by each
node's ``children`` list. The remote side does not enforce that this really
is a tree, so every structural assumption (one root, one parent per node, no
cycles) lives here and nowhere else.

All functions take the node list explicitly. Nothing is cached between calls.
"""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from ..models import DynalistNode


@dataclass(frozen=True)
class ParentRef:
    """Where a node sits: its parent's id and its index among the siblings."""

    parent_id: str
    index: int


def build_node_map(nodes: Sequence[DynalistNode]) -> dict[str, DynalistNode]:
    """Index nodes by id. A duplicated id keeps its last occurrence."""
    node_map: dict[str, DynalistNode] = {}
    for node in nodes:
        node_map[node.id] = node
    return node_map


def find_root_node_id(nodes: Sequence[DynalistNode]) -> str:
    """Return the id of the first node that no other node lists as a child.

    Falls back to the first node when every node is somebody's child (a
    cycle, or a response without the document root). Best effort only.
    """
    child_ids: set[str] = set()
    for node in nodes:
        child_ids.update(node.children)

    for node in nodes:
        if node.id not in child_ids:
            return node.id

    return nodes[0].id if nodes else ""


def find_node_parent(nodes: Sequence[DynalistNode], node_id: str) -> ParentRef | None:
    """Locate ``node_id`` in some node's children. None for the root or an unknown id."""
    for node in nodes:
        try:
            index = node.children.index(node_id)
        except ValueError:
            continue
        return ParentRef(parent_id=node.id, index=index)
    return None


def get_ancestors(nodes: Sequence[DynalistNode], node_id: str, levels: int = 1) -> list[ParentRef]:
    """Walk up at most ``levels`` parents, nearest first.

    Each entry also records the index of the previous node within that
    ancestor. Stops early at the root.
    """
    ancestors: list[ParentRef] = []
    seen = {node_id}
    current = node_id
    while len(ancestors) < levels:
        ref = find_node_parent(nodes, current)
        if ref is None or ref.parent_id in seen:
            break
        ancestors.append(ref)
        seen.add(ref.parent_id)
        current = ref.parent_id
    return ancestors


def collect_descendants(nodes: Sequence[DynalistNode], node_id: str) -> list[str]:
    """Pre-order ids of ``node_id`` and everything reachable below it.

    Ids already collected are not revisited, so an accidental cycle cannot
    loop forever. Ids missing from the document are skipped.
    """
    node_map = build_node_map(nodes)
    if node_id not in node_map:
        return []

    collected: list[str] = []
    visited: set[str] = set()
    stack = [node_id]
    while stack:
        current = stack.pop()
        if current in visited:
            continue
        node = node_map.get(current)
        if node is None:
            continue
        visited.add(current)
        collected.append(current)
        stack.extend(reversed(node.children))
    return collected


def get_subtree(nodes: Sequence[DynalistNode], node_id: str) -> list[DynalistNode]:
    """Node objects for :func:`collect_descendants`, same order."""
    node_map = build_node_map(nodes)
    return [node_map[nid] for nid in collect_descendants(nodes, node_id)]


class NodeGraph:
    """Read-only, id-indexed view over one fetched document."""

    def __init__(self, nodes: Sequence[DynalistNode]) -> None:
        self.nodes: list[DynalistNode] = list(nodes)
        self._by_id = build_node_map(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[DynalistNode]:
        return iter(self.nodes)

    def get(self, node_id: str) -> DynalistNode | None:
        return self._by_id.get(node_id)

    def children_of(self, node_id: str) -> list[DynalistNode]:
        """Known children in sibling order. Dangling child ids are skipped."""
        node = self._by_id.get(node_id)
        if node is None:
            return []
        return [self._by_id[cid] for cid in node.children if cid in self._by_id]

    @property
    def root_id(self) -> str:
        return find_root_node_id(self.nodes)

    def parent_of(self, node_id: str) -> ParentRef | None:
        return find_node_parent(self.nodes, node_id)

    def ancestors(self, node_id: str, levels: int = 1) -> list[ParentRef]:
        return get_ancestors(self.nodes, node_id, levels)

    def descendants(self, node_id: str) -> list[str]:
        return collect_descendants(self.nodes, node_id)
