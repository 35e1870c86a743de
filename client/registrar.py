from __future__ import annotations
import json
from typing import Callable, Optional, Protocol
from urllib.parse import urlencode

import httpx

from shared.errors import RegistrationError
from shared.log import LogSink, get_logger
from shared.utils import make_client_id, now_ms
from .channel import Channel
from .http_client import post_json

logger = get_logger(__name__)


class Opener(Protocol):
    def open(self, token: str) -> Channel: ...


class Registrar:
    """
    Registers this client with the server and hands the session token to the
    channel listener.

    The listener is only ever called from inside a successful registration,
    so a channel can never be opened without a token.
    """

    def __init__(
        self,
        server_url: str,
        listener: Opener,
        client: httpx.AsyncClient,
        *,
        sink: Optional[LogSink] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.server_url = server_url.rstrip("/")
        self.listener = listener
        self.client = client
        self.sink = sink
        self.clock = clock

    def register_url(self, client_id: str) -> str:
        return f"{self.server_url}/register?{urlencode({'clientId': client_id})}"

    async def request_token(self) -> Optional[str]:
        """
        POST the registration and return the session token.

        Returns None when the server refused the registration. Raises
        RegistrationError when it answered 200 with an unusable body.
        """
        client_id = make_client_id(self.clock())
        logger.debug("Registering", extra={"client_id": client_id})

        text = await post_json(self.client, self.register_url(client_id), sink=self.sink)
        if text is None:
            logger.warning("Registration failed", extra={"client_id": client_id})
            return None

        try:
            rsp = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error("Registration reply is not JSON: %s", e, extra={"client_id": client_id})
            raise RegistrationError(f"Invalid JSON: {e}") from e

        token = rsp.get("token") if isinstance(rsp, dict) else None
        if not isinstance(token, str) or not token:
            logger.error("Registration reply has no token", extra={"client_id": client_id})
            raise RegistrationError("Missing required field: 'token'")

        logger.info("Registered", extra={"client_id": client_id, "token": token})
        return token

    async def register(self) -> Optional[Channel]:
        """Register, then open the channel with the issued token."""
        token = await self.request_token()
        if token is None:
            return None
        return self.listener.open(token)
