import json

import httpx
import pytest


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_post_without_body_sends_empty_payload_and_no_content_type(sink):
    from client.http_client import post_json

    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="ok")

    async with _client(handler) as client:
        text = await post_json(client, "http://example.test/register", sink=sink)

    assert text == "ok"
    assert seen[0].method == "POST"
    assert seen[0].content == b""
    assert "content-type" not in seen[0].headers
    assert sink.lines == ["yay!"]


@pytest.mark.asyncio
async def test_post_with_body_sends_json(sink):
    from client.http_client import post_json

    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="{}")

    async with _client(handler) as client:
        await post_json(client, "http://example.test/thing", {"foo": "bar", "n": 1}, sink=sink)

    assert seen[0].headers["content-type"] == "application/json"
    assert json.loads(seen[0].content) == {"foo": "bar", "n": 1}


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [201, 400, 404, 500])
async def test_non_200_logs_failure_and_returns_none(sink, status):
    from client.http_client import post_json

    async with _client(lambda request: httpx.Response(status, text="nope")) as client:
        text = await post_json(client, "http://example.test/register", sink=sink)

    assert text is None
    assert sink.lines == ["fail!"]


@pytest.mark.asyncio
async def test_transport_error_is_treated_as_failure(sink):
    from client.http_client import post_json

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        text = await post_json(client, "http://example.test/register", sink=sink)

    assert text is None
    assert sink.lines == ["fail!"]


@pytest.mark.asyncio
async def test_failure_without_sink_is_logged_once(record_logs):
    from client.http_client import post_json

    records = record_logs("client.http_client").records

    async with _client(lambda request: httpx.Response(404)) as client:
        assert await post_json(client, "http://example.test/register") is None

    assert [r.levelname for r in records] == ["WARNING"]
    assert "404" in records[0].getMessage()
