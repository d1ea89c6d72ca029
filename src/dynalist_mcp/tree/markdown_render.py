"""Render Dynalist nodes as indented Markdown bullets."""

from collections.abc import Sequence
from dataclasses import dataclass

from ..models import DynalistNode
from .graph import build_node_map, find_root_node_id


@dataclass(frozen=True)
class RenderOptions:
    """Traversal and formatting options.

    ``max_depth`` None means unlimited; depth 0 is the first rendered level.
    """

    max_depth: int | None = None
    include_notes: bool = True
    include_checked: bool = True
    indent: str = "    "


DEFAULT_OPTIONS = RenderOptions()


def format_bullet(node: DynalistNode) -> str:
    """Bullet prefix: checkbox first, then heading, else a plain dash."""
    if node.checkbox:
        return "- [x] " if node.checked else "- [ ] "
    if node.heading and node.heading > 0:
        return "#" * node.heading + " "
    return "- "


def _render_node(
    node_map: dict[str, DynalistNode],
    node_id: str,
    depth: int,
    options: RenderOptions,
    lines: list[str],
    path: set[str],
) -> None:
    node = node_map.get(node_id)
    if node is None or node_id in path:
        return

    # A checked item counts as resolved, together with everything under it.
    if not options.include_checked and node.checked:
        return

    if options.max_depth is not None and depth > options.max_depth:
        return

    indent = options.indent * depth
    if node.content or node.children:
        lines.append(f"{indent}{format_bullet(node)}{node.content}")

    if options.include_notes and node.note and node.note.strip():
        note_indent = options.indent * (depth + 1)
        for note_line in node.note.split("\n"):
            if note_line.strip():
                lines.append(f"{note_indent}- {note_line.strip()}")

    path.add(node_id)
    for child_id in node.children:
        _render_node(node_map, child_id, depth + 1, options, lines, path)
    path.discard(node_id)


def _join(lines: list[str]) -> str:
    return "".join(f"{line}\n" for line in lines)


def node_to_markdown(
    nodes: Sequence[DynalistNode],
    start_node_id: str,
    options: RenderOptions | None = None,
) -> str:
    """Render ``start_node_id`` and its subtree, the start node at depth 0.

    Sibling order is the stored ``children`` order. An unknown start id
    renders as an empty string.
    """
    options = options or DEFAULT_OPTIONS
    lines: list[str] = []
    _render_node(build_node_map(nodes), start_node_id, 0, options, lines, set())
    return _join(lines)


def document_to_markdown(
    nodes: Sequence[DynalistNode],
    options: RenderOptions | None = None,
) -> str:
    """Render a whole document.

    The root only anchors the top-level list and is never rendered itself;
    each of its children becomes a depth-0 tree.
    """
    if not nodes:
        return ""
    options = options or DEFAULT_OPTIONS
    node_map = build_node_map(nodes)
    root = node_map.get(find_root_node_id(nodes))
    if root is None:
        return ""

    lines: list[str] = []
    path = {root.id}
    for child_id in root.children:
        _render_node(node_map, child_id, 0, options, lines, path)
    return _join(lines)
