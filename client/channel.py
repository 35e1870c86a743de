from __future__ import annotations
import asyncio
from typing import Any, Callable, Optional, Protocol
from urllib.parse import urlencode

import websockets
from websockets.exceptions import WebSocketException

from shared.errors import ChannelStateError
from shared.log import LoggerSink, LogSink, get_logger

logger = get_logger(__name__)


class ChannelHandler(Protocol):
    def on_open(self) -> None: ...

    def on_message(self, payload: str) -> None: ...

    def on_error(self, error: str) -> None: ...

    def on_close(self) -> None: ...


class Channel:
    """
    Server push channel bound to one session token.

    The channel moves new -> opening -> open -> closed and never goes back.
    Each text frame from the server is one message. A binary frame that is
    not valid UTF-8 is reported through on_error and the channel stays open.
    A normal close reports only on_close; a failed connect or abnormal close
    reports on_error first.
    """

    def __init__(
        self,
        token: str,
        channel_url: str,
        *,
        connect: Optional[Callable[..., Any]] = None,
    ) -> None:
        if not token:
            raise ValueError("channel token must be a non-empty string")
        self.token = token
        self.channel_url = channel_url
        self.state = "new"
        self._connect = connect or websockets.connect
        self._task: Optional[asyncio.Task] = None
        self._handler: Optional[ChannelHandler] = None

    @property
    def url(self) -> str:
        return f"{self.channel_url}?{urlencode({'token': self.token})}"

    @property
    def closed(self) -> bool:
        return self.state == "closed"

    def open(self, handler: ChannelHandler) -> None:
        """Start listening in the background. Must be called from a running event loop."""
        if self.state != "new":
            raise ChannelStateError(f"channel already {self.state}")
        self._handler = handler
        self.state = "opening"
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def wait_closed(self) -> None:
        """Block until the channel has closed and on_close has fired."""
        if self._task is not None:
            await self._task

    async def _run(self) -> None:
        assert self._handler is not None
        try:
            async with self._connect(self.url) as ws:
                self.state = "open"
                logger.debug("Channel connected", extra={"token": self.token, "event": "open"})
                self._handler.on_open()
                async for raw in ws:
                    if isinstance(raw, bytes):
                        try:
                            raw = raw.decode("utf-8")
                        except UnicodeDecodeError as e:
                            logger.debug("Undecodable frame: %s", e, extra={"token": self.token, "event": "error"})
                            self._handler.on_error(str(e))
                            continue
                    self._handler.on_message(raw)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            logger.debug("Channel failed: %s", e, extra={"token": self.token, "event": "error"})
            self._handler.on_error(str(e))
        finally:
            if not self.closed:
                self.state = "closed"
                self._handler.on_close()


class SinkHandler:
    """Channel handler that writes every event to a log sink."""

    def __init__(self, sink: LogSink) -> None:
        self.sink = sink

    def on_open(self) -> None:
        self.sink.log("channel opened")

    def on_message(self, payload: str) -> None:
        self.sink.log(payload)

    def on_error(self, error: str) -> None:
        self.sink.log(error)

    def on_close(self) -> None:
        self.sink.log("channel closed")


class ChannelListener:
    """Opens the one channel of a run and logs whatever arrives on it."""

    def __init__(
        self,
        channel_url: str,
        sink: Optional[LogSink] = None,
        *,
        connect: Optional[Callable[..., Any]] = None,
    ) -> None:
        self.channel_url = channel_url
        self.sink = sink or LoggerSink(logger)
        self._connect = connect
        self.channel: Optional[Channel] = None

    def open(self, token: str) -> Channel:
        if self.channel is not None:
            raise ChannelStateError("a channel has already been opened")
        channel = Channel(token, self.channel_url, connect=self._connect)
        channel.open(SinkHandler(self.sink))
        self.channel = channel
        logger.info("Opening channel %s", self.channel_url, extra={"token": token})
        return channel
