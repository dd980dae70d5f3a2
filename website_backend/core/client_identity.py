"""Client identity resolution for rate limiting and logs."""

from __future__ import annotations

from starlette.requests import HTTPConnection

FORWARDED_FOR_HEADER = "X-Forwarded-For"


def client_ip(request: HTTPConnection) -> str:
    """Best-effort client address.

    Prefers the first comma-separated ``X-Forwarded-For`` value and falls back
    to the socket peer. The header is not validated: without a trusted proxy
    in front, clients can spoof it.
    """

    forwarded = request.headers.get(FORWARDED_FOR_HEADER, "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    if request.client and request.client.host:
        return request.client.host
    return "unknown"
