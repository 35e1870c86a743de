import logging
import re
import socket
import sys
from contextlib import asynccontextmanager
from pathlib import Path

import pytest
import websockets

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class ListSink:
    def __init__(self) -> None:
        self.lines: list[str] = []

    def log(self, message: str) -> None:
        self.lines.append(message)


class FakeConnection:
    """Stands in for a websockets client connection that replays fixed frames."""

    def __init__(self, frames) -> None:
        self.frames = list(frames)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for frame in self.frames:
            yield frame


class FakeConnector:
    def __init__(self, frames=()) -> None:
        self.frames = frames
        self.urls: list[str] = []

    def __call__(self, url: str) -> FakeConnection:
        self.urls.append(url)
        return FakeConnection(self.frames)


@asynccontextmanager
async def serve_channel(handler):
    """Run a throwaway WebSocket server on a free local port and yield its URL."""
    async with websockets.serve(handler, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        yield f"ws://127.0.0.1:{port}/_ah/channel"


def unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def is_client_id(value: str) -> bool:
    return re.fullmatch(r"ch-\d+", value) is not None


class RecordingHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def sink() -> ListSink:
    return ListSink()


@pytest.fixture
def record_logs():
    """Attach a recording handler to a named logger for the duration of a test."""
    attached = []

    def _attach(name: str) -> RecordingHandler:
        from shared.log import get_logger

        handler = RecordingHandler()
        get_logger(name).addHandler(handler)
        attached.append((name, handler))
        return handler

    yield _attach
    for name, handler in attached:
        logging.getLogger(name).removeHandler(handler)
