import json

import httpx
import pytest

from openapi_adapter.executors import (
    ExecutionError,
    RestExecutor,
    build_url,
    render_path,
    stringify_value,
)
from openapi_adapter.models import ApiRequest


def _request(**overrides):
    values = dict(
        tool_name="petstore_getPetById",
        base_url="https://api.example.com/v3/",
        path="/pet/{petId}",
        method="GET",
        path_params={"petId": 7},
        query_params={},
        header_params={},
        body=None,
    )
    values.update(overrides)
    return ApiRequest(**values)


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestStringify:
    def test_values(self):
        assert stringify_value(7) == "7"
        assert stringify_value("a") == "a"
        assert stringify_value(True) == "true"
        assert stringify_value(False) == "false"
        assert stringify_value(None) == "null"
        assert stringify_value([1, 2]) == "1,2"
        assert stringify_value({"a": 1}) == '{"a": 1}'


class TestBuildUrl:
    def test_path_substitution(self):
        assert render_path("/pet/{petId}", {"petId": 7}) == "/pet/7"

    def test_sequence_path_value(self):
        assert render_path("/pet/{petId}", {"petId": [1, 2]}) == "/pet/1,2"

    def test_unfilled_placeholder_is_left(self):
        assert render_path("/pet/{petId}", {}) == "/pet/{petId}"

    def test_base_url_trailing_slash_and_query(self):
        url = build_url("https://api.example.com/", "/pets", {}, {"limit": 5, "tags": ["a", "b"]})
        assert url == "https://api.example.com/pets?limit=5&tags=a,b"

    def test_query_appended_to_existing_query(self):
        url = build_url("https://api.example.com", "/pets?sort=asc", {}, {"limit": 5})
        assert url == "https://api.example.com/pets?sort=asc&limit=5"


class TestRestExecutor:
    @pytest.mark.asyncio
    async def test_get_returns_body_text(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["content_type"] = request.headers.get("content-type")
            seen["content"] = request.content
            return httpx.Response(200, text='{"id":7,"name":"Rex"}')

        async with _client(handler) as client:
            result = await RestExecutor(client=client).execute(
                _request(query_params={"verbose": True}, body={"ignored": 1})
            )

        assert result == '{"id":7,"name":"Rex"}'
        assert seen["url"] == "https://api.example.com/v3/pet/7?verbose=true"
        assert seen["content_type"] == "application/json"
        assert seen["content"] == b""

    @pytest.mark.asyncio
    async def test_post_sends_json_body_and_headers(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            seen["trace"] = request.headers.get("x-trace")
            return httpx.Response(200, text="created")

        async with _client(handler) as client:
            result = await RestExecutor(client=client).execute(
                _request(
                    method="POST",
                    path="/pet",
                    path_params={},
                    header_params={"X-Trace": "t1"},
                    body={"name": "Rex"},
                )
            )

        assert result == "created"
        assert seen == {"method": "POST", "body": {"name": "Rex"}, "trace": "t1"}

    @pytest.mark.asyncio
    async def test_http_error_status_raises(self):
        def handler(request):
            return httpx.Response(404, text="Pet not found")

        async with _client(handler) as client:
            with pytest.raises(ExecutionError, match="HTTP 404.*Pet not found"):
                await RestExecutor(client=client).execute(_request())

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with _client(handler) as client:
            with pytest.raises(ExecutionError, match="timed out after 2s"):
                await RestExecutor(timeout_seconds=2, client=client).execute(_request())

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(ExecutionError, match="connection refused"):
                await RestExecutor(client=client).execute(_request())

    @pytest.mark.asyncio
    async def test_single_attempt_per_call(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, text="unavailable")

        async with _client(handler) as client:
            with pytest.raises(ExecutionError):
                await RestExecutor(client=client).execute(_request())

        assert len(calls) == 1
