"""Parse indented bullet text into a tree of pending nodes.

Accepts Markdown bullets (``- text``, ``* text``, ``1. text``), quotes and
plain indented text. Indentation is relative: the smallest indent seen in
the input is taken as one level.
"""

import re
from dataclasses import dataclass, field

DEFAULT_INDENT_UNIT = 4
TAB_WIDTH = 4

# Exactly one list marker, followed by whitespace or the end of the line.
_MARKER_RE = re.compile(r"^(?P<marker>[-*•]|\d+[.)]|>)(?:\s+|$)")
_CHECKBOX_RE = re.compile(r"^\[(?P<mark>[ xX])\](?:\s+|$)")
_HEADING_RE = re.compile(r"^(?P<hashes>#{1,3})\s+")


@dataclass
class PendingNode:
    """Parsed content waiting to be inserted. Has no id yet."""

    content: str
    children: list["PendingNode"] = field(default_factory=list)
    checkbox: bool = False
    checked: bool = False
    heading: int = 0


@dataclass(frozen=True)
class FlatEntry:
    """One node of a DFS flattening; ``parent_index`` is -1 for roots."""

    content: str
    parent_index: int


def leading_width(line: str) -> int:
    """Width of the leading whitespace, a tab counting as four spaces."""
    width = 0
    for char in line:
        if char == " ":
            width += 1
        elif char == "\t":
            width += TAB_WIDTH
        else:
            break
    return width


def detect_indent_unit(lines: list[str]) -> int:
    """Smallest positive indent over the non-blank lines, default 4."""
    widths = [leading_width(line) for line in lines if line.strip()]
    positive = [w for w in widths if w > 0]
    return min(positive) if positive else DEFAULT_INDENT_UNIT


def _parse_line(stripped: str) -> PendingNode | None:
    content = stripped
    node = PendingNode(content="")

    match = _MARKER_RE.match(content)
    if match:
        content = content[match.end():]
        if match.group("marker") in ("-", "*", "•"):
            box = _CHECKBOX_RE.match(content)
            if box:
                node.checkbox = True
                node.checked = box.group("mark") in ("x", "X")
                content = content[box.end():]
    else:
        heading = _HEADING_RE.match(content)
        if heading:
            node.heading = len(heading.group("hashes"))
            content = content[heading.end():]

    content = content.strip()
    if not content:
        return None
    node.content = content
    return node


def parse_markdown_bullets(text: str) -> list[PendingNode]:
    """Parse ``text`` into root pending nodes with full subtrees.

    Blank lines are dropped and never reset indentation. A jump of several
    levels nests one step under the nearest open ancestor.
    """
    lines = [line for line in text.split("\n") if line.strip()]
    if not lines:
        return []

    unit = detect_indent_unit(lines)
    roots: list[PendingNode] = []
    stack: list[tuple[int, PendingNode]] = []

    for line in lines:
        level = leading_width(line) // unit
        node = _parse_line(line.strip())
        if node is None:
            continue

        while stack and stack[-1][0] >= level:
            stack.pop()

        if stack:
            stack[-1][1].children.append(node)
        else:
            roots.append(node)
        stack.append((level, node))

    return roots


def flatten_tree(roots: list[PendingNode]) -> list[FlatEntry]:
    """DFS order, each entry pointing at its parent's position in the result."""
    result: list[FlatEntry] = []

    def traverse(node: PendingNode, parent_index: int) -> None:
        current = len(result)
        result.append(FlatEntry(content=node.content, parent_index=parent_index))
        for child in node.children:
            traverse(child, current)

    for root in roots:
        traverse(root, -1)
    return result


def count_nodes(roots: list[PendingNode]) -> int:
    total = 0
    stack = list(roots)
    while stack:
        node = stack.pop()
        total += 1
        stack.extend(node.children)
    return total
