#!/usr/bin/env python3

from __future__ import annotations
import os
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, PlainTextResponse

from server.core.ChannelRegistry import ChannelRegistry
from shared.log import configure_root_logging, get_logger
from shared.utils import CHANNEL_PATH

# Configure logging
logger = get_logger(__name__)

# Close code for a channel connect with an unknown token
CLOSE_UNKNOWN_TOKEN = 4403


def fail_and_log(code: int, fmt: str, *args: Any) -> PlainTextResponse:
    """Log at error for 5xx, warning otherwise, and answer with the same text."""
    if code >= 500:
        logger.error(fmt, *args)
    else:
        logger.warning(fmt, *args)
    return PlainTextResponse(fmt % args if args else fmt, status_code=code)


def create_app(registry: Optional[ChannelRegistry] = None) -> FastAPI:
    """
    Build the channel server.

    - POST /register issues a token for a clientId
    - WS /_ah/channel?token= is the push channel for that token
    - POST /ping pushes a notification to the latest registration
    """
    registry = registry or ChannelRegistry()
    app = FastAPI()
    app.state.registry = registry

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    @app.post("/register")
    async def register(request: Request, client_id: str = Query("", alias="clientId")):
        if not client_id:
            return fail_and_log(400, 'missing required query param "clientId"')

        remote_addr = request.client.host if request.client else ""
        info = registry.register(client_id, remote_addr)
        logger.debug("created channel %r with token %s", client_id, info.token, extra={"client_id": client_id})
        return JSONResponse({"token": info.token})

    @app.post("/ping")
    async def ping(msg: str = "hi!"):
        info = registry.current()
        if info is None:
            return fail_and_log(500, "no registered channel")

        logger.debug("fetched channel %r", info.client_id)
        sent = await registry.send(info, {"msg": msg})
        if not sent:
            logger.error("failed to send channel notification to %r", info.client_id)
        return {"sent": sent}

    @app.websocket(CHANNEL_PATH)
    async def channel(websocket: WebSocket, token: str = ""):
        info = registry.lookup(token)
        if info is None:
            logger.warning("Rejected channel connect with unknown token")
            await websocket.close(code=CLOSE_UNKNOWN_TOKEN)
            return

        registry.attach(token, websocket)
        await websocket.accept()
        logger.info("Channel %r connected", info.client_id, extra={"client_id": info.client_id})
        try:
            # Clients never send; wait for the disconnect
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.info("Channel %r closed", info.client_id, extra={"client_id": info.client_id})
        finally:
            registry.detach(token, websocket)

    return app


def main():
    """Main entry point"""
    configure_root_logging()
    host = os.getenv("PUSHCHANNEL_HOST", "localhost")
    port = int(os.getenv("PUSHCHANNEL_PORT", "8080"))
    logger.info(f"Starting channel server on {host}:{port}")
    uvicorn.run(create_app(), host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
