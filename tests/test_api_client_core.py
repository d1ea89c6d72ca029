"""Tests for the transport layer of the Dynalist client."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from dynalist_mcp.client.api_client_core import DynalistClientCore
from dynalist_mcp.models import (
    AuthenticationError,
    DocumentNotFoundError,
    InboxAddRequest,
    InsertChange,
    NetworkError,
    NodeNotFoundError,
    RateLimitError,
    RemoteRejectionError,
    TimeoutError,
)


def make_client(api_config, handler) -> DynalistClientCore:
    """Client whose HTTP traffic goes to ``handler`` instead of the network."""
    client = DynalistClientCore(api_config)
    client._client = httpx.AsyncClient(
        base_url=api_config.base_url,
        transport=httpx.MockTransport(handler),
    )
    return client


class Recorder:
    """Answers with queued responses and records request bodies."""

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, httpx.Response):
            return answer
        return httpx.Response(200, json=answer)

    def body(self, i: int = 0) -> dict:
        return json.loads(self.requests[i].content)


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("dynalist_mcp.client.api_client_core.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


class TestRequests:
    @pytest.mark.asyncio
    async def test_token_and_payload_in_body(self, api_config) -> None:
        recorder = Recorder({"_code": "Ok", "file_id": "doc", "title": "T", "nodes": []})
        client = make_client(api_config, recorder)

        doc = await client.read_document("doc")

        assert recorder.requests[0].url.path == "/api/v1/doc/read"
        assert recorder.body() == {"token": "test-token", "file_id": "doc"}
        assert doc.title == "T"
        await client.close()

    @pytest.mark.asyncio
    async def test_read_document_fills_missing_file_id(self, api_config) -> None:
        client = make_client(api_config, Recorder({"_code": "Ok", "nodes": [{"id": "r", "content": None}]}))
        doc = await client.read_document("doc")
        assert doc.file_id == "doc"
        assert doc.nodes[0].content == ""

    @pytest.mark.asyncio
    async def test_edit_document_omits_unset_fields(self, api_config) -> None:
        recorder = Recorder({"_code": "Ok", "new_node_ids": ["n1"]})
        client = make_client(api_config, recorder)

        response = await client.edit_document("doc", [InsertChange(parent_id="p", index=0, content="x")])

        assert response.new_node_ids == ["n1"]
        assert recorder.body()["changes"] == [
            {"action": "insert", "parent_id": "p", "index": 0, "content": "x"}
        ]

    @pytest.mark.asyncio
    async def test_add_to_inbox(self, api_config) -> None:
        recorder = Recorder({"_code": "Ok", "file_id": "inbox", "node_id": "n9", "index": 4})
        client = make_client(api_config, recorder)

        added = await client.add_to_inbox(InboxAddRequest(content="hello"))

        assert recorder.requests[0].url.path == "/api/v1/inbox/add"
        assert recorder.body() == {"token": "test-token", "content": "hello"}
        assert (added.file_id, added.node_id, added.index) == ("inbox", "n9", 4)

    @pytest.mark.asyncio
    async def test_list_files(self, api_config) -> None:
        client = make_client(api_config, Recorder({
            "_code": "Ok",
            "root_file_id": "root",
            "files": [{"id": "d1", "title": "Notes", "type": "document", "permission": 4}],
        }))
        files = await client.list_files()
        assert files.root_file_id == "root"
        assert files.files[0].title == "Notes"


class TestResponseCodes:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "code, error",
        [
            ("InvalidToken", AuthenticationError),
            ("NodeNotFound", NodeNotFoundError),
            ("LockFail", RemoteRejectionError),
        ],
    )
    async def test_code_mapping(self, api_config, code, error) -> None:
        client = make_client(api_config, Recorder({"_code": code, "_msg": "nope"}))
        with pytest.raises(error):
            await client.edit_document("doc", [])

    @pytest.mark.asyncio
    async def test_code_is_case_insensitive(self, api_config) -> None:
        client = make_client(api_config, Recorder({"_code": "ok", "new_node_ids": []}))
        assert (await client.edit_document("doc", [])).new_node_ids == []

    @pytest.mark.asyncio
    async def test_not_found_carries_file_id(self, api_config) -> None:
        client = make_client(api_config, Recorder({"_code": "NotFound"}))
        with pytest.raises(DocumentNotFoundError) as exc_info:
            await client.read_document("missing-doc")
        assert exc_info.value.file_id == "missing-doc"

    @pytest.mark.asyncio
    async def test_remote_rejection_keeps_code_and_message(self, api_config) -> None:
        client = make_client(api_config, Recorder({"_code": "Unauthorized", "_msg": "read only"}))
        with pytest.raises(RemoteRejectionError) as exc_info:
            await client.edit_document("doc", [])
        assert exc_info.value.code == "Unauthorized"
        assert exc_info.value.remote_message == "read only"

    @pytest.mark.asyncio
    async def test_http_401(self, api_config) -> None:
        client = make_client(api_config, Recorder(httpx.Response(401)))
        with pytest.raises(AuthenticationError):
            await client.list_files()

    @pytest.mark.asyncio
    async def test_non_json_body(self, api_config) -> None:
        client = make_client(api_config, Recorder(httpx.Response(200, text="<html>")))
        with pytest.raises(NetworkError):
            await client.edit_document("doc", [])

    @pytest.mark.asyncio
    async def test_json_array_body(self, api_config) -> None:
        client = make_client(api_config, Recorder(httpx.Response(200, json=[1, 2])))
        with pytest.raises(NetworkError):
            await client.edit_document("doc", [])


class TestRetries:
    @pytest.mark.asyncio
    async def test_rate_limit_is_retried(self, api_config) -> None:
        recorder = Recorder(
            {"_code": "TooManyRequests"},
            {"_code": "Ok", "new_node_ids": ["n1"]},
        )
        client = make_client(api_config, recorder)

        response = await client.edit_document("doc", [InsertChange(parent_id="p", content="x")])

        assert response.new_node_ids == ["n1"]
        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_rate_limit_gives_up_after_max_retries(self, api_config) -> None:
        recorder = Recorder(httpx.Response(429, headers={"Retry-After": "2"}))
        client = make_client(api_config, recorder)

        with pytest.raises(RateLimitError) as exc_info:
            await client.list_files()
        assert exc_info.value.retry_after == 2.0
        assert len(recorder.requests) == api_config.max_retries

    @pytest.mark.asyncio
    async def test_server_error_retried_for_reads(self, api_config) -> None:
        recorder = Recorder(
            httpx.Response(503),
            {"_code": "Ok", "file_id": "doc", "nodes": []},
        )
        client = make_client(api_config, recorder)

        await client.read_document("doc")

        assert len(recorder.requests) == 2

    @pytest.mark.asyncio
    async def test_server_error_not_retried_for_edits(self, api_config) -> None:
        recorder = Recorder(httpx.Response(503), {"_code": "Ok", "new_node_ids": []})
        client = make_client(api_config, recorder)

        with pytest.raises(NetworkError):
            await client.edit_document("doc", [])
        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_timeout_becomes_timeout_error(self, api_config) -> None:
        recorder = Recorder(httpx.ReadTimeout("slow"))
        client = make_client(api_config, recorder)

        with pytest.raises(TimeoutError) as exc_info:
            await client.read_document("doc")
        assert exc_info.value.operation == "read_document"
        assert len(recorder.requests) == api_config.max_retries

    @pytest.mark.asyncio
    async def test_connect_error_on_edit_raises_network_error(self, api_config) -> None:
        recorder = Recorder(httpx.ConnectError("refused"))
        client = make_client(api_config, recorder)

        with pytest.raises(NetworkError):
            await client.add_to_inbox(InboxAddRequest(content="x"))
        assert len(recorder.requests) == 1


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self, api_config) -> None:
        async with DynalistClientCore(api_config) as client:
            assert isinstance(client.client, httpx.AsyncClient)
        assert client._client is None
