import io

import httpx
import pytest
from rich.console import Console

from conftest import serve_channel


@pytest.mark.asyncio
async def test_run_registers_then_listens_until_close(sink):
    from client.client import PLACEHOLDER, run
    from server.core.ChannelRegistry import ChannelRegistry
    from server.server import create_app

    registry = ChannelRegistry()
    transport = httpx.ASGITransport(app=create_app(registry))
    out = io.StringIO()
    paths = []

    async def handler(ws):
        paths.append(ws.request.path)
        await ws.send('{"msg":"hi!"}')
        await ws.close()

    async with serve_channel(handler) as url:
        channel = await run(
            "http://testserver",
            url,
            sink=sink,
            console=Console(file=out),
            transport=transport,
        )

    assert PLACEHOLDER in out.getvalue()
    assert channel is not None and channel.closed
    assert sink.lines == ["yay!", "channel opened", '{"msg":"hi!"}', "channel closed"]

    info = registry.current()
    assert info.client_id.startswith("ch-")
    assert paths == [f"/_ah/channel?token={info.token}"]


@pytest.mark.asyncio
async def test_run_stops_when_registration_is_refused(sink):
    from client.client import run

    transport = httpx.MockTransport(lambda request: httpx.Response(404))

    channel = await run(
        "http://testserver",
        "ws://127.0.0.1:1/_ah/channel",
        sink=sink,
        console=Console(file=io.StringIO()),
        transport=transport,
    )

    assert channel is None
    assert sink.lines == ["fail!"]


@pytest.mark.asyncio
async def test_fetch_token_does_not_open_channel(sink):
    from client.client import fetch_token

    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"token": "abc123"}))

    assert await fetch_token("http://testserver", sink=sink, transport=transport) == "abc123"
    assert sink.lines == ["yay!"]


def test_console_sink_prints_payload_verbatim():
    from client.client import ConsoleSink

    out = io.StringIO()
    ConsoleSink(Console(file=out, width=200)).log('[bold]{"foo":"bar"}[/]')

    assert out.getvalue() == '[bold]{"foo":"bar"}[/]\n'
