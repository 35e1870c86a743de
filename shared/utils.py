from __future__ import annotations
import time
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

# ========================================
#           CLIENT IDENTIFIERS
# ========================================

CHANNEL_PATH = "/_ah/channel"


def now_ms() -> int:
    """UNIX timestamp, in milliseconds"""
    return int(time.time() * 1000)


def make_client_id(ts: Optional[int] = None) -> str:
    """
    Build a client identifier of the form 'ch-<unix millis>'.

    Uses the current time when ts is not given.
    """
    return f"ch-{now_ms() if ts is None else ts}"


# ========================================
#           URL HELPERS
# ========================================

def channel_url_for(server_url: str) -> str:
    """
    Derive the channel WebSocket URL from the server's HTTP base URL.

    - http -> ws, https -> wss
    - path is replaced by the channel endpoint

    Examples: "http://localhost:8080" -> "ws://localhost:8080/_ah/channel"
    """
    parts = urlsplit(server_url)
    scheme = {"http": "ws", "https": "wss"}.get(parts.scheme, parts.scheme)
    return urlunsplit((scheme, parts.netloc, CHANNEL_PATH, "", ""))
