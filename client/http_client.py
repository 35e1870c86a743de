from __future__ import annotations
import json
from typing import Any, Optional

import httpx

from shared.log import LogSink, get_logger

logger = get_logger(__name__)


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    body: Optional[Any] = None,
    *,
    sink: Optional[LogSink] = None,
) -> Optional[str]:
    """
    Single-shot POST. No retries.

    With a body, it is sent as JSON with a JSON content type; without one the
    request carries an empty payload and no content type.

    Returns the raw response text on HTTP 200. Any other status, or a transport
    failure, is logged and returns None. The sink, when given, also gets a
    one-word outcome line.
    """
    if body is not None:
        request = client.build_request(
            "POST",
            url,
            content=json.dumps(body),
            headers={"Content-Type": "application/json"},
        )
    else:
        request = client.build_request("POST", url)

    try:
        rsp = await client.send(request)
    except httpx.HTTPError as e:
        logger.warning("POST %s failed: %s", url, e)
        _report(sink, "fail!")
        return None

    if rsp.status_code != httpx.codes.OK:
        logger.warning("POST %s returned %d", url, rsp.status_code)
        _report(sink, "fail!")
        return None

    _report(sink, "yay!")
    return rsp.text


def _report(sink: Optional[LogSink], message: str) -> None:
    if sink is not None:
        sink.log(message)
