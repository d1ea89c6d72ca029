"""Document-tree transcoding: node graph, text rendering, parsing, level inserts."""

from .graph import (
    NodeGraph,
    ParentRef,
    build_node_map,
    collect_descendants,
    find_node_parent,
    find_root_node_id,
    get_ancestors,
    get_subtree,
)
from .level_insert import (
    InsertResult,
    LevelNode,
    build_level_changes,
    group_by_level,
    insert_tree_under_parent,
)
from .markdown_parser import FlatEntry, PendingNode, flatten_tree, parse_markdown_bullets
from .markdown_render import RenderOptions, document_to_markdown, format_bullet, node_to_markdown

__all__ = [
    "FlatEntry",
    "InsertResult",
    "LevelNode",
    "NodeGraph",
    "ParentRef",
    "PendingNode",
    "RenderOptions",
    "build_level_changes",
    "build_node_map",
    "collect_descendants",
    "document_to_markdown",
    "find_node_parent",
    "find_root_node_id",
    "flatten_tree",
    "format_bullet",
    "get_ancestors",
    "get_subtree",
    "group_by_level",
    "insert_tree_under_parent",
    "node_to_markdown",
    "parse_markdown_bullets",
]
