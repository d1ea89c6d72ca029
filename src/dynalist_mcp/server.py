"""Dynalist MCP server implementation using FastMCP."""

import logging
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, Literal, TypeVar

from fastmcp import FastMCP

from .client import AdaptiveRateLimiter, DynalistClient
from .config import ServerConfig, setup_logging
from .models import ArgumentError, RateLimitError
from .urls import parse_dynalist_url

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Global client instance
_client: DynalistClient | None = None
_rate_limiter: AdaptiveRateLimiter | None = None


def get_client() -> DynalistClient:
    """Get the global Dynalist client instance."""
    if _client is None:
        raise RuntimeError("Dynalist client not initialized. Server not started properly.")
    return _client


def resolve_target(
    url: str | None,
    file_id: str | None,
    node_id: str | None = None,
) -> tuple[str, str | None]:
    """Turn the url/file_id/node_id tool arguments into (document id, node id).

    An explicit ``node_id`` wins over the URL's ``#z=`` fragment.
    """
    if url:
        parsed = parse_dynalist_url(url)
        return parsed.document_id, node_id or parsed.node_id
    if file_id:
        return file_id, node_id
    raise ArgumentError("Either 'url' or 'file_id' must be provided")


async def _call(operation: Callable[[DynalistClient], Awaitable[T]]) -> T:
    """Run one client operation behind the shared rate limiter."""
    client = get_client()

    if _rate_limiter:
        await _rate_limiter.acquire()

    try:
        result = await operation(client)
    except RateLimitError as e:
        if _rate_limiter:
            _rate_limiter.on_rate_limit(e.retry_after)
        raise

    if _rate_limiter:
        _rate_limiter.on_success()
    return result


@asynccontextmanager
async def lifespan(_app: FastMCP):  # type: ignore[no-untyped-def]
    """Manage server lifecycle."""
    global _client, _rate_limiter

    logger.info("Starting Dynalist MCP server")

    config = ServerConfig()  # type: ignore[call-arg]
    setup_logging(config.log_level)
    api_config = config.get_api_config()

    _rate_limiter = AdaptiveRateLimiter(
        initial_rate=config.rate_limit,
        min_rate=min(0.5, config.rate_limit),
        max_rate=config.rate_limit * 4,
    )
    _client = DynalistClient(api_config)
    logger.info(f"Dynalist client initialized with base URL: {api_config.base_url}")

    try:
        yield
    finally:
        logger.info("Shutting down Dynalist MCP server")
        if _client:
            await _client.close()
            _client = None
        _rate_limiter = None


mcp = FastMCP(
    "Dynalist MCP Server",
    version="0.1.0",
    instructions=(
        "Read and write Dynalist outlines. Documents are addressed by URL "
        "(https://dynalist.io/d/{document}#z={node}) or by file_id/node_id. "
        "Content is exchanged as indented '- ' bullets."
    ),
    lifespan=lifespan,
)


# Tool: List Documents
@mcp.tool(name="list_documents", description="List all documents and folders in your Dynalist account")
async def list_documents() -> dict:
    """List documents (with URLs and permission) and folders."""
    return await _call(lambda client: client.list_documents())


# Tool: Read Node As Markdown
@mcp.tool(
    name="read_node_as_markdown",
    description=(
        "Read a Dynalist document or a specific node and return it as indented Markdown. "
        "Provide either a URL (with optional #z=nodeId deep link) or file_id + node_id."
    ),
)
async def read_node_as_markdown(
    url: str | None = None,
    file_id: str | None = None,
    node_id: str | None = None,
    max_depth: int | None = None,
    include_notes: bool = True,
    include_checked: bool = True,
) -> dict:
    """Render a document or subtree as Markdown bullets.

    Args:
        url: Dynalist URL, e.g. https://dynalist.io/d/xxx#z=yyy
        file_id: Document ID (alternative to url)
        node_id: Start node; omit to read the whole document
        max_depth: Maximum depth to traverse (unlimited if omitted)
        include_notes: Render notes as sub-bullets
        include_checked: Include checked items and their children

    Returns:
        Dictionary with file_id, title, node_id and markdown
    """
    document_id, start_id = resolve_target(url, file_id, node_id)
    return await _call(lambda client: client.read_node_as_markdown(
        document_id,
        start_id,
        max_depth=max_depth,
        include_notes=include_notes,
        include_checked=include_checked,
    ))


# Tool: Send To Inbox
@mcp.tool(
    name="send_to_inbox",
    description="Send items to your Dynalist inbox. Indented '- bullets' become nested items.",
)
async def send_to_inbox(
    content: str,
    note: str | None = None,
    checkbox: bool = False,
) -> dict:
    """Add one item, or an indented tree of items, to the inbox.

    Args:
        content: Single line or indented Markdown bullets
        note: Note for the first top-level item
        checkbox: Add checkboxes to every item
    """
    return await _call(lambda client: client.send_to_inbox(content, note=note, checkbox=checkbox))


# Tool: Edit Node
@mcp.tool(name="edit_node", description="Edit an existing node in a Dynalist document")
async def edit_node(
    node_id: str,
    url: str | None = None,
    file_id: str | None = None,
    content: str | None = None,
    note: str | None = None,
    checked: bool | None = None,
    checkbox: bool | None = None,
    heading: int | None = None,
    color: int | None = None,
) -> dict:
    """Overwrite only the fields that are given.

    Args:
        node_id: Node to edit
        url: Dynalist URL of the document
        file_id: Document ID (alternative to url)
        content: New content text
        note: New note text
        checked: Checked status
        checkbox: Show a checkbox
        heading: Heading level 0-3
        color: Color label 0-6
    """
    document_id, _ = resolve_target(url, file_id)
    return await _call(lambda client: client.edit_node(
        document_id,
        node_id,
        content=content,
        note=note,
        checked=checked,
        checkbox=checkbox,
        heading=heading,
        color=color,
    ))


# Tool: Insert Node
@mcp.tool(name="insert_node", description="Insert a new node into a Dynalist document")
async def insert_node(
    parent_id: str,
    content: str,
    url: str | None = None,
    file_id: str | None = None,
    note: str | None = None,
    index: int = -1,
    checkbox: bool = False,
    heading: int | None = None,
) -> dict:
    """Insert one node.

    Args:
        parent_id: Parent node to insert under
        content: Content text
        url: Dynalist URL of the document
        file_id: Document ID (alternative to url)
        note: Note text
        index: Position under parent (-1 = end, 0 = top)
        checkbox: Add a checkbox
        heading: Heading level 0-3
    """
    document_id, _ = resolve_target(url, file_id)
    return await _call(lambda client: client.insert_node(
        document_id,
        parent_id,
        content,
        note=note,
        index=index,
        checkbox=checkbox,
        heading=heading,
    ))


# Tool: Insert Nodes From Markdown
@mcp.tool(
    name="insert_nodes_from_markdown",
    description=(
        "Insert multiple nodes from indented markdown/text under a document or node "
        "(#z=nodeId). Supports '- bullet' and plain indented text; preserves hierarchy."
    ),
)
async def insert_nodes_from_markdown(
    url: str,
    content: str,
    position: Literal["as_first_child", "as_last_child"] = "as_last_child",
) -> dict:
    """Parse indented text and insert the resulting tree, one batch per level.

    Args:
        url: Document URL, optionally with #z=nodeId for the parent node
        content: Indented text
        position: Insert before or after the parent's existing children
    """
    document_id, parent_id = resolve_target(url, None)
    return await _call(lambda client: client.insert_nodes_from_markdown(
        document_id, content, parent_id=parent_id, position=position
    ))


# Tool: Search In Document
@mcp.tool(
    name="search_in_document",
    description="Search for text in a Dynalist document and return matching nodes with their URLs",
)
async def search_in_document(
    query: str,
    url: str | None = None,
    file_id: str | None = None,
    search_notes: bool = True,
) -> dict:
    """Case-insensitive search over node content and notes."""
    document_id, _ = resolve_target(url, file_id)
    return await _call(lambda client: client.search_in_document(document_id, query, search_notes=search_notes))


# Tool: Delete Node
@mcp.tool(
    name="delete_node",
    description=(
        "Delete a node from a Dynalist document. Children are promoted to the parent "
        "unless include_children is true."
    ),
)
async def delete_node(
    node_id: str | None = None,
    url: str | None = None,
    file_id: str | None = None,
    include_children: bool = False,
) -> dict:
    """Delete one node, or a node with its whole subtree."""
    document_id, target_id = resolve_target(url, file_id, node_id)
    if not target_id:
        raise ArgumentError("node_id (or a URL with #z=nodeId) is required")
    return await _call(lambda client: client.delete_node(
        document_id, target_id, include_children=include_children
    ))


# Tool: Move Node
@mcp.tool(name="move_node", description="Move a node to a different parent in a Dynalist document")
async def move_node(
    node_id: str,
    parent_id: str,
    url: str | None = None,
    file_id: str | None = None,
    index: int = -1,
) -> dict:
    """Move a node and its subtree under a new parent (-1 = end, 0 = top)."""
    document_id, _ = resolve_target(url, file_id)
    return await _call(lambda client: client.move_node(document_id, node_id, parent_id, index=index))


# Tool: Move Node Relative
@mcp.tool(
    name="move_node_relative",
    description=(
        "Move a node relative to another node: 'after' or 'before' it on the same level, "
        "or 'as_first_child' / 'as_last_child' of it. The subtree moves along."
    ),
)
async def move_node_relative(
    source_url: str,
    reference_url: str,
    position: Literal["after", "before", "as_first_child", "as_last_child"],
) -> dict:
    """Both URLs need a #z=nodeId fragment and must point into the same document."""
    return await _call(lambda client: client.move_node_relative(source_url, reference_url, position))


# Tool: Get Node Ancestors
@mcp.tool(
    name="get_node_ancestors",
    description="Return up to `levels` ancestors of a node, nearest first, with URLs",
)
async def get_node_ancestors(
    node_id: str | None = None,
    url: str | None = None,
    file_id: str | None = None,
    levels: int = 1,
) -> dict:
    """Breadcrumb trail above a node."""
    document_id, target_id = resolve_target(url, file_id, node_id)
    if not target_id:
        raise ArgumentError("node_id (or a URL with #z=nodeId) is required")
    return await _call(lambda client: client.get_node_ancestors(document_id, target_id, levels=levels))


# Tool: Get Recent Changes
@mcp.tool(
    name="get_recent_changes",
    description="List nodes created or modified in a time window (epoch milliseconds), newest first",
)
async def get_recent_changes(
    url: str | None = None,
    file_id: str | None = None,
    since: int | None = None,
    until: int | None = None,
    kind: Literal["created", "modified"] = "modified",
    limit: int = 50,
    include_checked: bool = True,
) -> dict:
    """Recently touched nodes of one document."""
    document_id, _ = resolve_target(url, file_id)
    return await _call(lambda client: client.get_recent_changes(
        document_id,
        since=since,
        until=until,
        kind=kind,
        limit=limit,
        include_checked=include_checked,
    ))


def main() -> None:
    """Run the server over stdio."""
    setup_logging()
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
