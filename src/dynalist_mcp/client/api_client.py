"""Dynalist API client - node edits, moves, deletes and queries."""

from typing import Any, Literal

from ..models import (
    ArgumentError,
    CrossDocumentError,
    DeleteChange,
    EditChange,
    InsertChange,
    InvalidUrlError,
    MissingParentError,
    MoveChange,
    NodeNotFoundError,
    permission_label,
)
from ..tree import NodeGraph
from ..urls import parse_dynalist_url
from .api_client_core import _ClientLogger
from .api_client_tree import DynalistClientTree

RelativePosition = Literal["after", "before", "as_first_child", "as_last_child"]
TimestampKind = Literal["created", "modified"]


class DynalistClient(DynalistClientTree):
    """Full Dynalist client used by the MCP server."""

    async def list_documents(self) -> dict[str, Any]:
        """Documents and folders in the account, with deep links."""
        response = await self.list_files()

        documents = [
            {
                "id": f.id,
                "title": f.title,
                "url": self.url_for(f.id),
                "permission": permission_label(f.permission),
            }
            for f in response.files
            if f.type == "document"
        ]
        folders = [
            {"id": f.id, "title": f.title, "children": f.children or []}
            for f in response.files
            if f.type == "folder"
        ]
        return {
            "documents": documents,
            "folders": folders,
            "root_file_id": response.root_file_id,
        }

    async def edit_node(
        self,
        file_id: str,
        node_id: str,
        content: str | None = None,
        note: str | None = None,
        checked: bool | None = None,
        checkbox: bool | None = None,
        heading: int | None = None,
        color: int | None = None,
    ) -> dict[str, Any]:
        """Overwrite the given fields of one node; fields left as None are untouched."""
        change = EditChange(
            node_id=node_id,
            content=content,
            note=note,
            checked=checked,
            checkbox=checkbox,
            heading=heading,
            color=color,
        )
        await self.edit_document(file_id, [change])
        return {
            "success": True,
            "file_id": file_id,
            "node_id": node_id,
            "url": self.url_for(file_id, node_id),
        }

    async def insert_node(
        self,
        file_id: str,
        parent_id: str,
        content: str,
        note: str | None = None,
        index: int = -1,
        checkbox: bool = False,
        heading: int | None = None,
        color: int | None = None,
    ) -> dict[str, Any]:
        """Insert a single node. ``index`` -1 appends, 0 puts it first."""
        change = InsertChange(
            parent_id=parent_id,
            index=index,
            content=content,
            note=note or None,
            checkbox=checkbox or None,
            heading=heading or None,
            color=color or None,
        )
        response = await self.edit_document(file_id, [change])
        new_id = response.new_node_ids[0] if response.new_node_ids else None
        return {
            "success": True,
            "file_id": file_id,
            "parent_id": parent_id,
            "node_id": new_id,
            "url": self.url_for(file_id, new_id) if new_id else None,
        }

    async def delete_node(
        self,
        file_id: str,
        node_id: str,
        include_children: bool = False,
    ) -> dict[str, Any]:
        """Delete a node.

        Dynalist promotes the children of a deleted node to its parent. With
        ``include_children`` every descendant is deleted too, innermost first,
        in the same batch.
        """
        logger = _ClientLogger()

        if include_children:
            doc = await self.read_document(file_id)
            graph = NodeGraph(doc.nodes)
            if node_id not in graph:
                raise NodeNotFoundError(node_id, message=f"Node not found in document {file_id}")
            if node_id == graph.root_id:
                raise ArgumentError("Refusing to delete the document root")
            doomed = list(reversed(graph.descendants(node_id)))
        else:
            doomed = [node_id]

        await self.edit_document(file_id, [DeleteChange(node_id=nid) for nid in doomed])
        logger.info(f"Deleted {len(doomed)} node(s) from {file_id}")
        return {
            "success": True,
            "file_id": file_id,
            "node_id": node_id,
            "deleted_count": len(doomed),
        }

    async def move_node(
        self,
        file_id: str,
        node_id: str,
        parent_id: str,
        index: int = -1,
    ) -> dict[str, Any]:
        """Move a node (with its subtree) under ``parent_id`` at ``index``."""
        await self.edit_document(file_id, [MoveChange(node_id=node_id, parent_id=parent_id, index=index)])
        return {
            "success": True,
            "file_id": file_id,
            "node_id": node_id,
            "parent_id": parent_id,
            "url": self.url_for(file_id, node_id),
        }

    async def move_node_relative(
        self,
        source_url: str,
        reference_url: str,
        position: RelativePosition,
    ) -> dict[str, Any]:
        """Move the node at ``source_url`` next to, or into, the node at ``reference_url``.

        Raises:
            InvalidUrlError: a URL lacks the ``#z=`` node fragment.
            CrossDocumentError: the two nodes are in different documents.
            NodeNotFoundError: either node is missing from the document.
            MissingParentError: before/after relative to the document root.
        """
        source = parse_dynalist_url(source_url)
        reference = parse_dynalist_url(reference_url)

        if not source.node_id:
            raise InvalidUrlError("source_url must include a node deep link (#z=nodeId)")
        if not reference.node_id:
            raise InvalidUrlError("reference_url must include a node deep link (#z=nodeId)")
        if source.document_id != reference.document_id:
            raise CrossDocumentError(source.document_id, reference.document_id)

        file_id = source.document_id
        doc = await self.read_document(file_id)
        graph = NodeGraph(doc.nodes)

        for nid in (source.node_id, reference.node_id):
            if nid not in graph:
                raise NodeNotFoundError(nid, message=f"Node not found in document {file_id}")

        if position == "as_first_child":
            target_parent, target_index = reference.node_id, 0
        elif position == "as_last_child":
            target_parent, target_index = reference.node_id, -1
        else:
            ref = graph.parent_of(reference.node_id)
            if ref is None:
                raise MissingParentError(reference.node_id)
            target_parent = ref.parent_id
            target_index = ref.index + 1 if position == "after" else ref.index

        await self.edit_document(file_id, [
            MoveChange(node_id=source.node_id, parent_id=target_parent, index=target_index)
        ])
        return {
            "success": True,
            "file_id": file_id,
            "node_id": source.node_id,
            "position": position,
            "parent_id": target_parent,
            "index": target_index,
            "url": self.url_for(file_id, source.node_id),
        }

    async def search_in_document(
        self,
        file_id: str,
        query: str,
        search_notes: bool = True,
    ) -> dict[str, Any]:
        """Case-insensitive substring search over content (and notes)."""
        doc = await self.read_document(file_id)
        needle = query.lower()

        matches = []
        for node in doc.nodes:
            hit = needle in node.content.lower()
            if not hit and search_notes:
                hit = needle in node.note.lower()
            if hit:
                matches.append({
                    "id": node.id,
                    "content": node.content,
                    "note": node.note or None,
                    "url": self.url_for(file_id, node.id),
                })

        return {"file_id": file_id, "query": query, "count": len(matches), "matches": matches}

    async def get_node_ancestors(
        self,
        file_id: str,
        node_id: str,
        levels: int = 1,
    ) -> dict[str, Any]:
        """Up to ``levels`` ancestors of a node, nearest first."""
        doc = await self.read_document(file_id)
        graph = NodeGraph(doc.nodes)
        if node_id not in graph:
            raise NodeNotFoundError(node_id, message=f"Node not found in document {file_id}")

        ancestors = []
        for ref in graph.ancestors(node_id, levels):
            parent = graph.get(ref.parent_id)
            ancestors.append({
                "id": ref.parent_id,
                "content": parent.content if parent else "",
                "child_index": ref.index,
                "url": self.url_for(file_id, ref.parent_id),
            })
        return {"file_id": file_id, "node_id": node_id, "ancestors": ancestors}

    async def get_recent_changes(
        self,
        file_id: str,
        since: int | None = None,
        until: int | None = None,
        kind: TimestampKind = "modified",
        limit: int = 50,
        include_checked: bool = True,
    ) -> dict[str, Any]:
        """Nodes created or modified in ``[since, until]`` (epoch ms), newest first."""
        if kind not in ("created", "modified"):
            raise ArgumentError(f"kind must be 'created' or 'modified', got {kind!r}")

        doc = await self.read_document(file_id)
        graph = NodeGraph(doc.nodes)
        root_id = graph.root_id

        picked = []
        for node in graph:
            if node.id == root_id:
                continue
            if not include_checked and node.checked:
                continue
            stamp = getattr(node, kind)
            if since is not None and stamp < since:
                continue
            if until is not None and stamp > until:
                continue
            picked.append(node)

        picked.sort(key=lambda n: getattr(n, kind), reverse=True)
        changes = [
            {
                "id": n.id,
                "content": n.content,
                "created": n.created,
                "modified": n.modified,
                "url": self.url_for(file_id, n.id),
            }
            for n in picked[:max(limit, 0)]
        ]
        return {"file_id": file_id, "kind": kind, "count": len(changes), "changes": changes}
