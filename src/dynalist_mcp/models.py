"""Data models and exceptions for the Dynalist API."""

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


class APIConfiguration(BaseModel):
    """Settings handed to the API client."""

    api_token: SecretStr
    base_url: str = "https://dynalist.io/api/v1"
    document_base_url: str = "https://dynalist.io/d"
    timeout: float = 30.0
    max_retries: int = 3


# --- Remote payloads -------------------------------------------------------


class DynalistNode(BaseModel):
    """One outline entry as returned by /doc/read.

    Structure lives entirely in ``children``: a node knows its children's ids
    but not its parent. Order of ``children`` is the sibling order.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    content: str = ""
    note: str = ""
    created: int = 0
    modified: int = 0
    children: list[str] = Field(default_factory=list)
    checked: bool = False
    checkbox: bool = False
    heading: int = 0
    color: int = 0
    collapsed: bool = False

    @field_validator("content", "note", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("children", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("checked", "checkbox", "collapsed", mode="before")
    @classmethod
    def _none_to_false(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("heading", "color", "created", "modified", mode="before")
    @classmethod
    def _none_to_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


class DynalistFile(BaseModel):
    """A document or folder from /file/list."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str = ""
    type: str = "document"
    permission: int = 0
    collapsed: bool | None = None
    children: list[str] | None = None


class ListFilesResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    root_file_id: str = ""
    files: list[DynalistFile] = Field(default_factory=list)


class ReadDocumentResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    file_id: str
    title: str = ""
    version: int = 0
    nodes: list[DynalistNode] = Field(default_factory=list)


class EditDocumentResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    new_node_ids: list[str] = Field(default_factory=list)


class InboxAddResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    file_id: str
    node_id: str
    index: int = -1


# --- Requests ---------------------------------------------------------------


class InsertChange(BaseModel):
    """Insert a new node. ``index`` -1 appends."""

    action: Literal["insert"] = "insert"
    parent_id: str
    index: int = -1
    content: str
    note: str | None = None
    checkbox: bool | None = None
    checked: bool | None = None
    heading: int | None = Field(default=None, ge=0, le=3)
    color: int | None = Field(default=None, ge=0, le=6)


class EditChange(BaseModel):
    """Overwrite any subset of a node's fields."""

    action: Literal["edit"] = "edit"
    node_id: str
    content: str | None = None
    note: str | None = None
    checked: bool | None = None
    checkbox: bool | None = None
    heading: int | None = Field(default=None, ge=0, le=3)
    color: int | None = Field(default=None, ge=0, le=6)


class MoveChange(BaseModel):
    action: Literal["move"] = "move"
    node_id: str
    parent_id: str
    index: int = -1


class DeleteChange(BaseModel):
    """Delete one node. Its children are promoted unless deleted as well."""

    action: Literal["delete"] = "delete"
    node_id: str


Change = Union[InsertChange, EditChange, MoveChange, DeleteChange]


class InboxAddRequest(BaseModel):
    content: str
    note: str | None = None
    index: int | None = None
    checkbox: bool | None = None
    checked: bool | None = None
    heading: int | None = Field(default=None, ge=0, le=3)
    color: int | None = Field(default=None, ge=0, le=6)


PERMISSION_LABELS = {
    0: "none",
    1: "read",
    2: "edit",
    3: "manage",
    4: "owner",
}


def permission_label(permission: int) -> str:
    """Readable name for a Dynalist permission level."""
    return PERMISSION_LABELS.get(permission, "unknown")


# --- Exceptions -------------------------------------------------------------


class DynalistError(Exception):
    """Base exception for Dynalist operations."""


class AuthenticationError(DynalistError):
    """API token missing, invalid or revoked."""


class NetworkError(DynalistError):
    """Transport failure or unusable response."""


class TimeoutError(DynalistError):  # noqa: A001
    """Request timed out."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Operation timed out: {operation}")


class RateLimitError(DynalistError):
    """The service asked us to slow down."""

    def __init__(self, retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        message = "Rate limit exceeded"
        if retry_after is not None:
            message += f" (retry after {retry_after}s)"
        super().__init__(message)


class DocumentNotFoundError(DynalistError):
    def __init__(self, file_id: str | None = None, message: str = "Document not found") -> None:
        self.file_id = file_id
        super().__init__(f"{message}: {file_id}" if file_id else message)


class NodeNotFoundError(DynalistError):
    """A node id is absent from the fetched document."""

    def __init__(self, node_id: str | None = None, message: str = "Node not found") -> None:
        self.node_id = node_id
        super().__init__(f"{message}: {node_id}" if node_id else message)


class MissingParentError(DynalistError):
    """A positioning operation needed a parent the node does not have."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Could not find parent of node {node_id} (is it the document root?)")


class CrossDocumentError(DynalistError):
    """Two endpoints of one operation live in different documents."""

    def __init__(self, source_document_id: str, reference_document_id: str) -> None:
        self.source_document_id = source_document_id
        self.reference_document_id = reference_document_id
        super().__init__(
            "Both nodes must be in the same document "
            f"(source={source_document_id}, reference={reference_document_id})"
        )


class RemoteRejectionError(DynalistError):
    """The service answered with a non-Ok ``_code``."""

    def __init__(self, code: str, message: str = "") -> None:
        self.code = code
        self.remote_message = message
        super().__init__(f"Dynalist API error: {code} - {message}" if message else f"Dynalist API error: {code}")


class InvalidUrlError(DynalistError, ValueError):
    """A deep link could not be parsed."""


class EmptyContentError(DynalistError, ValueError):
    """Text input produced no nodes."""


class ArgumentError(DynalistError, ValueError):
    """Tool arguments are missing or inconsistent."""
