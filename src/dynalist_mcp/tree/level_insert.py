"""Insert a parsed tree with one batch edit per depth level.

``/doc/edit`` takes a flat list of changes and only reports the ids of new
nodes once the call returns. A child therefore cannot be inserted until its
parent's id is known, but all nodes of one depth are independent of each
other. The tree is grouped by level and each level becomes one call whose
returned ids are the parent ids of the next level.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from ..models import EditDocumentResponse, InsertChange, RemoteRejectionError
from .markdown_parser import PendingNode

logger = logging.getLogger(__name__)

ROOT_PARENT = -1

EditFunc = Callable[[str, Sequence[InsertChange]], Awaitable[EditDocumentResponse]]


@dataclass
class LevelNode:
    """A pending node placed in its level.

    ``parent_level_index`` indexes the previous level (and hence the ids that
    level's call returned); ROOT_PARENT attaches to the insertion root.
    """

    content: str
    local_index: int
    parent_level_index: int
    source: PendingNode | None = field(default=None, repr=False, compare=False)


@dataclass
class InsertResult:
    total_created: int = 0
    root_node_ids: list[str] = field(default_factory=list)


def group_by_level(roots: Sequence[PendingNode]) -> list[list[LevelNode]]:
    """Breadth-wise grouping; within a level, order follows the parents' order."""
    levels: list[list[LevelNode]] = []
    current: list[PendingNode] = list(roots)
    parent_indices = [ROOT_PARENT] * len(current)

    while current:
        levels.append([
            LevelNode(
                content=node.content,
                local_index=idx,
                parent_level_index=parent_idx,
                source=node,
            )
            for idx, (node, parent_idx) in enumerate(zip(current, parent_indices))
        ])

        next_nodes: list[PendingNode] = []
        next_parents: list[int] = []
        for idx, node in enumerate(current):
            for child in node.children:
                next_nodes.append(child)
                next_parents.append(idx)
        current, parent_indices = next_nodes, next_parents

    return levels


def build_level_changes(
    level: Sequence[LevelNode],
    root_parent_id: str,
    previous_ids: Sequence[str],
    start_index: int = 0,
    checkbox: bool = False,
) -> list[InsertChange]:
    """Insert entries for one level.

    Positions count up per distinct parent from ``start_index``. Only level 0
    can have a non-zero start; parents created by earlier levels are empty.
    """
    changes: list[InsertChange] = []
    placed: dict[str, int] = {}

    for node in level:
        if node.parent_level_index == ROOT_PARENT:
            parent_id = root_parent_id
        else:
            parent_id = previous_ids[node.parent_level_index]

        count = placed.get(parent_id, 0)
        placed[parent_id] = count + 1

        source = node.source
        changes.append(InsertChange(
            parent_id=parent_id,
            index=start_index + count,
            content=node.content,
            checkbox=True if (checkbox or (source and source.checkbox)) else None,
            checked=True if (source and source.checked) else None,
            heading=source.heading if (source and source.heading) else None,
        ))

    return changes


async def insert_tree_under_parent(
    edit: EditFunc,
    file_id: str,
    parent_id: str,
    tree: Sequence[PendingNode],
    start_index: int | None = None,
    checkbox: bool = False,
) -> InsertResult:
    """Insert ``tree`` under ``parent_id``, one awaited edit call per level.

    ``start_index`` positions the first top-level node; callers wanting to
    append pass the parent's current child count. A failed call aborts the
    remaining levels and propagates; levels already written stay written.
    """
    result = InsertResult()
    if not tree:
        return result

    previous_ids: list[str] = []
    for depth, level in enumerate(group_by_level(tree)):
        changes = build_level_changes(
            level,
            parent_id,
            previous_ids,
            start_index=(start_index or 0) if depth == 0 else 0,
            checkbox=checkbox,
        )
        logger.info(f"Inserting level {depth}: {len(changes)} node(s) into {file_id}")
        response = await edit(file_id, changes)
        new_ids = list(response.new_node_ids)

        if len(new_ids) != len(changes):
            raise RemoteRejectionError(
                "IncompleteInsert",
                f"level {depth}: sent {len(changes)} insert(s), got {len(new_ids)} id(s) back; "
                f"{result.total_created} node(s) from earlier levels remain in the document",
            )

        if depth == 0:
            result.root_node_ids = new_ids
        result.total_created += len(new_ids)
        previous_ids = new_ids

    return result
