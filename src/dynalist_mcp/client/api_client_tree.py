"""Dynalist API client - reading documents as text and writing text as trees."""

from collections.abc import Sequence
from typing import Any, Literal

from ..models import (
    EmptyContentError,
    InboxAddRequest,
    NodeNotFoundError,
)
from ..tree import (
    InsertResult,
    NodeGraph,
    PendingNode,
    RenderOptions,
    document_to_markdown,
    insert_tree_under_parent,
    node_to_markdown,
    parse_markdown_bullets,
)
from ..urls import build_dynalist_url
from .api_client_core import DynalistClientCore, _ClientLogger

InsertPosition = Literal["as_first_child", "as_last_child"]


class DynalistClientTree(DynalistClientCore):
    """Tree read/write operations - extends Core."""

    def url_for(self, document_id: str, node_id: str | None = None) -> str:
        return build_dynalist_url(document_id, node_id, self.document_base_url)

    async def read_node_as_markdown(
        self,
        file_id: str,
        node_id: str | None = None,
        max_depth: int | None = None,
        include_notes: bool = True,
        include_checked: bool = True,
    ) -> dict[str, Any]:
        """Render a document, or one node's subtree, as indented bullets.

        Args:
            file_id: Document to read.
            node_id: Start node. Omit to render the whole document.
            max_depth: Deepest level rendered (0 = start level only).
            include_notes: Render notes as sub-bullets.
            include_checked: Keep checked items (and their subtrees).

        Raises:
            NodeNotFoundError: ``node_id`` is not in the document.
        """
        doc = await self.read_document(file_id)
        graph = NodeGraph(doc.nodes)
        options = RenderOptions(
            max_depth=max_depth,
            include_notes=include_notes,
            include_checked=include_checked,
        )

        if node_id:
            if node_id not in graph:
                raise NodeNotFoundError(node_id, message=f"Node not found in document {file_id}")
            markdown = node_to_markdown(graph.nodes, node_id, options)
        else:
            markdown = document_to_markdown(graph.nodes, options)

        return {
            "file_id": doc.file_id,
            "title": doc.title,
            "node_id": node_id or graph.root_id,
            "markdown": markdown.strip(),
        }

    async def insert_tree(
        self,
        file_id: str,
        parent_id: str,
        tree: Sequence[PendingNode],
        start_index: int | None = None,
        checkbox: bool = False,
    ) -> InsertResult:
        """Level-batched insertion of an already parsed tree."""
        return await insert_tree_under_parent(
            self.edit_document,
            file_id,
            parent_id,
            tree,
            start_index=start_index,
            checkbox=checkbox,
        )

    async def insert_nodes_from_markdown(
        self,
        file_id: str,
        content: str,
        parent_id: str | None = None,
        position: InsertPosition = "as_last_child",
    ) -> dict[str, Any]:
        """Parse indented text and insert it under a node (default: the document root)."""
        logger = _ClientLogger("TREE")

        tree = parse_markdown_bullets(content)
        if not tree:
            raise EmptyContentError("No content to insert (empty or invalid format)")

        doc = await self.read_document(file_id)
        graph = NodeGraph(doc.nodes)
        target_id = parent_id or graph.root_id
        parent = graph.get(target_id)
        if parent is None:
            raise NodeNotFoundError(target_id, message=f"Parent node not found in document {file_id}")

        start_index = 0 if position == "as_first_child" else len(parent.children)
        result = await self.insert_tree(file_id, target_id, tree, start_index=start_index)
        logger.info(f"Inserted {result.total_created} node(s) under {target_id} in {file_id}")

        first_url = self.url_for(file_id, result.root_node_ids[0]) if result.root_node_ids else ""
        return {
            "success": True,
            "file_id": file_id,
            "parent_id": target_id,
            "total_created": result.total_created,
            "root_node_ids": result.root_node_ids,
            "first_node_url": first_url,
        }

    async def send_to_inbox(
        self,
        content: str,
        note: str | None = None,
        checkbox: bool = False,
    ) -> dict[str, Any]:
        """Add indented text to the inbox.

        The inbox document is only known once the inbox endpoint has
        answered, so the first top-level item goes through /inbox/add and
        everything else is level-inserted around it.
        """
        logger = _ClientLogger("INBOX")

        tree = parse_markdown_bullets(content)
        if not tree:
            raise EmptyContentError("No content to add (empty input)")

        first, rest = tree[0], tree[1:]
        added = await self.add_to_inbox(InboxAddRequest(
            content=first.content,
            note=note or None,
            checkbox=True if (checkbox or first.checkbox) else None,
            checked=True if first.checked else None,
            heading=first.heading or None,
        ))
        inbox_id, first_id = added.file_id, added.node_id
        total_created = 1

        if first.children:
            result = await self.insert_tree(inbox_id, first_id, first.children, checkbox=checkbox)
            total_created += result.total_created

        if rest:
            # The inbox location may be any node, so follow the first item's parent.
            doc = await self.read_document(inbox_id)
            graph = NodeGraph(doc.nodes)
            placed = graph.parent_of(first_id)
            if placed is not None:
                target_id, start_index = placed.parent_id, placed.index + 1
            else:
                target_id = graph.root_id
                root = graph.get(target_id)
                siblings = root.children if root else []
                start_index = added.index + 1 if added.index >= 0 else len(siblings)

            result = await self.insert_tree(
                inbox_id, target_id, rest, start_index=start_index, checkbox=checkbox
            )
            total_created += result.total_created

        logger.info(f"Added {total_created} item(s) to inbox {inbox_id}")
        return {
            "success": True,
            "file_id": inbox_id,
            "total_created": total_created,
            "first_node_id": first_id,
            "first_node_url": self.url_for(inbox_id, first_id),
        }
