from __future__ import annotations

import json
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from fastapi import WebSocket

from shared.log import get_logger

logger = get_logger(__name__)


@dataclass
class ChannelInfo:
    client_id: str
    token: str
    remote_addr: str
    created: float = field(default_factory=time.time)
    websocket: Optional[WebSocket] = None

    def is_connected(self) -> bool:
        return self.websocket is not None


class ChannelRegistry:
    """
    In-memory table of issued channels.

    Every token ever issued stays valid for connecting, but only the most
    recent registration receives pings.
    """

    def __init__(self) -> None:
        self._by_token: Dict[str, ChannelInfo] = {}
        self._current: Optional[ChannelInfo] = None

    def register(self, client_id: str, remote_addr: str) -> ChannelInfo:
        token = secrets.token_urlsafe(32)
        info = ChannelInfo(client_id=client_id, token=token, remote_addr=remote_addr)
        self._by_token[token] = info
        self._current = info
        return info

    def lookup(self, token: str) -> Optional[ChannelInfo]:
        return self._by_token.get(token)

    def current(self) -> Optional[ChannelInfo]:
        return self._current

    def attach(self, token: str, websocket: WebSocket) -> Optional[ChannelInfo]:
        info = self._by_token.get(token)
        if info is not None:
            info.websocket = websocket
        return info

    def detach(self, token: str, websocket: WebSocket) -> None:
        info = self._by_token.get(token)
        # A reconnect may already have replaced the socket
        if info is not None and info.websocket is websocket:
            info.websocket = None

    async def send(self, info: ChannelInfo, payload: Dict[str, Any]) -> bool:
        """Push a JSON payload down the channel. Returns False if it could not be delivered."""
        ws = info.websocket
        if ws is None:
            logger.warning("Channel %r is not connected", info.client_id, extra={"client_id": info.client_id})
            return False
        try:
            await ws.send_text(json.dumps(payload, separators=(",", ":")))
        except Exception as e:
            logger.error("Error sending to channel %r: %s", info.client_id, e)
            self.detach(info.token, ws)
            return False
        logger.debug("Sent %s", payload, extra={"client_id": info.client_id})
        return True
