"""Dynalist API client - transport, retries and response handling."""

import asyncio
import json
import sys
from collections.abc import Sequence
from datetime import datetime
from typing import Any

import httpx
from pydantic import BaseModel

from ..models import (
    APIConfiguration,
    AuthenticationError,
    Change,
    DocumentNotFoundError,
    EditDocumentResponse,
    InboxAddRequest,
    InboxAddResponse,
    ListFilesResponse,
    NetworkError,
    NodeNotFoundError,
    RateLimitError,
    ReadDocumentResponse,
    RemoteRejectionError,
    TimeoutError,
)

# Dynalist allows bursts but throttles sustained traffic per endpoint.
API_RATE_LIMIT_DELAY = 0.1
BASE_RETRY_DELAY = 1.0


def log_event(message: str, component: str = "CLIENT") -> None:
    """Log an event to stderr with timestamp and component tag.

    stdout belongs to the stdio transport, and FastMCP reconfigures the
    logging module, so the client writes plain lines to stderr instead.
    """
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print(f"[{timestamp}] [{component}] {message}", file=sys.stderr, flush=True)


class _ClientLogger:
    """Minimal logger facade over log_event."""

    def __init__(self, component: str = "CLIENT") -> None:
        self._component = component

    def info(self, msg: object) -> None:
        log_event(str(msg), self._component)

    def warning(self, msg: object) -> None:
        log_event(f"WARNING: {msg}", self._component)

    def error(self, msg: object) -> None:
        log_event(f"ERROR: {msg}", self._component)

    def debug(self, msg: object) -> None:
        log_event(f"DEBUG: {msg}", self._component)


class DynalistClientCore:
    """Core Dynalist API client - the four remote endpoints."""

    def __init__(self, config: APIConfiguration):
        """Initialize the Dynalist API client."""
        self.config = config
        self.base_url = config.base_url
        self.document_base_url = config.document_base_url
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            headers = {
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=httpx.Timeout(self.config.timeout),
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "DynalistClientCore":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        """Map HTTP status and Dynalist ``_code`` onto exceptions."""
        if response.status_code == 401:
            raise AuthenticationError("Invalid API token or unauthorized access")

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(retry_after=float(retry_after) if retry_after else None)

        if response.status_code >= 500:
            raise NetworkError(f"Server error: {response.status_code}")

        if response.status_code >= 400:
            raise NetworkError(f"API error: {response.status_code}")

        try:
            data = response.json()
        except json.JSONDecodeError as err:
            raise NetworkError("Invalid response format from API") from err

        if not isinstance(data, dict):
            raise NetworkError("Invalid response format from API")

        code = str(data.get("_code", ""))
        message = str(data.get("_msg", "") or "")
        normalized = code.lower()

        if normalized == "ok":
            return data
        if normalized == "invalidtoken":
            raise AuthenticationError(message or "Invalid API token")
        if normalized == "toomanyrequests":
            raise RateLimitError()
        if normalized == "notfound":
            raise DocumentNotFoundError(message=message or "Document not found")
        if normalized == "nodenotfound":
            raise NodeNotFoundError(message=message or "Node not found")
        raise RemoteRejectionError(code or "Unknown", message)

    async def _post(
        self,
        endpoint: str,
        payload: dict[str, Any] | None = None,
        *,
        operation: str,
        idempotent: bool = True,
        max_retries: int | None = None,
    ) -> dict[str, Any]:
        """POST to an endpoint with exponential backoff retry.

        Rate-limit rejections are always retried since the server applied
        nothing. Network errors and timeouts are retried only for reads: a
        timed-out edit may already have been applied.
        """
        logger = _ClientLogger()
        max_retries = max_retries or self.config.max_retries
        body = {"token": self.config.api_token.get_secret_value(), **(payload or {})}

        retry_count = 0
        while True:
            await asyncio.sleep(API_RATE_LIMIT_DELAY)

            try:
                response = await self.client.post(endpoint, json=body)
                return await self._handle_response(response)

            except RateLimitError as e:
                retry_count += 1
                if retry_count >= max_retries:
                    raise
                retry_after = e.retry_after or (BASE_RETRY_DELAY * (2 ** retry_count))
                logger.warning(
                    f"Rate limited on {operation}. Retry after {retry_after}s. "
                    f"Attempt {retry_count}/{max_retries}"
                )
                await asyncio.sleep(retry_after)

            except NetworkError as e:
                retry_count += 1
                if not idempotent or retry_count >= max_retries:
                    raise
                logger.warning(f"Network error on {operation}: {e}. Retry {retry_count}/{max_retries}")
                await asyncio.sleep(BASE_RETRY_DELAY * (2 ** retry_count))

            except httpx.TimeoutException as err:
                retry_count += 1
                if not idempotent or retry_count >= max_retries:
                    raise TimeoutError(operation) from err
                logger.warning(f"Timeout on {operation}: {err}. Retry {retry_count}/{max_retries}")
                await asyncio.sleep(BASE_RETRY_DELAY * (2 ** retry_count))

            except httpx.TransportError as err:
                retry_count += 1
                if not idempotent or retry_count >= max_retries:
                    raise NetworkError(f"{operation} failed: {err}") from err
                logger.warning(f"Transport error on {operation}: {err}. Retry {retry_count}/{max_retries}")
                await asyncio.sleep(BASE_RETRY_DELAY * (2 ** retry_count))

    async def list_files(self) -> ListFilesResponse:
        """List every document and folder in the account."""
        data = await self._post("/file/list", operation="list_files")
        return ListFilesResponse(**data)

    async def read_document(self, file_id: str) -> ReadDocumentResponse:
        """Fetch a document's full flat node list."""
        try:
            data = await self._post("/doc/read", {"file_id": file_id}, operation="read_document")
        except DocumentNotFoundError as e:
            raise DocumentNotFoundError(file_id, message="Document not found") from e
        data.setdefault("file_id", file_id)
        return ReadDocumentResponse(**data)

    async def edit_document(
        self,
        file_id: str,
        changes: Sequence[Change | dict[str, Any]],
    ) -> EditDocumentResponse:
        """Apply one batch of changes.

        New ids for insert entries come back in the order the inserts
        appeared in ``changes``.
        """
        payload = [
            c.model_dump(exclude_none=True) if isinstance(c, BaseModel) else dict(c)
            for c in changes
        ]
        data = await self._post(
            "/doc/edit",
            {"file_id": file_id, "changes": payload},
            operation="edit_document",
            idempotent=False,
        )
        return EditDocumentResponse(**data)

    async def add_to_inbox(self, request: InboxAddRequest) -> InboxAddResponse:
        """Append one item to the account's inbox document."""
        data = await self._post(
            "/inbox/add",
            request.model_dump(exclude_none=True),
            operation="add_to_inbox",
            idempotent=False,
        )
        return InboxAddResponse(**data)
