#!/usr/bin/env python3
"""
Push channel client

Registers with the server, receives a session token and listens on the push
channel until the server closes it. Every event is written to a log sink.
"""

from __future__ import annotations
from typing import Optional

import httpx
from rich.console import Console

from shared.log import LogSink, get_logger
from shared.utils import channel_url_for
from .channel import Channel, ChannelListener
from .registrar import Registrar

logger = get_logger(__name__)

PLACEHOLDER = "so far so good"


class ConsoleSink:
    """LogSink that prints lines to a rich console without markup."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def log(self, message: str) -> None:
        self.console.print(message, markup=False, highlight=False)


async def run(
    server_url: str,
    channel_url: Optional[str] = None,
    *,
    sink: Optional[LogSink] = None,
    console: Optional[Console] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[Channel]:
    """
    Bootstrap: show the placeholder, register, then wait for the channel to close.

    Returns the channel once closed, or None if registration was refused.
    RegistrationError propagates to the caller.
    """
    console = console or Console()
    sink = sink or ConsoleSink(console)
    console.print(PLACEHOLDER)

    listener = ChannelListener(channel_url or channel_url_for(server_url), sink)
    async with httpx.AsyncClient(transport=transport) as client:
        channel = await Registrar(server_url, listener, client, sink=sink).register()

    if channel is None:
        return None
    await channel.wait_closed()
    return channel


async def fetch_token(
    server_url: str,
    *,
    sink: Optional[LogSink] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[str]:
    """Register without opening a channel."""
    listener = ChannelListener(channel_url_for(server_url), sink)
    async with httpx.AsyncClient(transport=transport) as client:
        return await Registrar(server_url, listener, client, sink=sink).request_token()
