"""Header construction for upstream auth requests."""

from collections.abc import Mapping
from typing import Any

import httpx

from auth import session_cookies

# Inbound headers allowed to cross to the auth service, keyed by lowercase name.
PROXY_HEADERS = {
    "user-agent": "User-Agent",
    "authorization": "Authorization",
    "referer": "Referer",
}


class HeaderBuilder:
    """Build the outbound header set for the auth service.

    Only the safelisted headers and session-prefixed cookies are copied from
    the inbound request; everything else is dropped.
    """

    def build_auth_headers(
        self,
        headers: Mapping[str, Any],
        request_url: str,
    ) -> dict[str, str]:
        inbound = _lowercase_headers(headers)
        upstream: dict[str, str] = {"Content-Type": "application/json"}

        for key, name in PROXY_HEADERS.items():
            if inbound.get(key):
                upstream[name] = inbound[key]

        upstream["Origin"] = resolve_origin(inbound, request_url)
        # Always set, even when empty, so no stale session rides along.
        upstream["Cookie"] = ";".join(session_cookies(inbound.get("cookie")))
        return upstream


def resolve_origin(headers: Mapping[str, str], request_url: str) -> str:
    """Origin header, else scheme+host of the Referer, else the request's own origin.

    `headers` must be keyed by lowercase names.
    """
    origin = headers.get("origin")
    if origin:
        return origin

    referer = headers.get("referer")
    if referer:
        return "/".join(referer.split("/")[:3])

    try:
        url = httpx.URL(request_url)
    except httpx.InvalidURL:
        # Host header the URL parser rejects; keep scheme://host[:port] as sent
        return "/".join(request_url.split("/")[:3])
    return f"{url.scheme}://{url.netloc.decode('ascii')}"


def _lowercase_headers(headers: Mapping[str, Any]) -> dict[str, str]:
    """Collapse a (possibly multi-valued) header mapping to lowercase single values."""
    lowered: dict[str, str] = {}
    for key, value in headers.items():
        key = key.lower()
        if key in lowered:
            separator = "; " if key == "cookie" else ", "
            lowered[key] = f"{lowered[key]}{separator}{value}"
        else:
            lowered[key] = str(value)
    return lowered
