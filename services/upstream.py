"""HTTP proxying utilities for upstream auth requests."""

from collections.abc import AsyncIterator

import httpx
from fastapi import Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from core.exceptions import UpstreamConnectionError, UpstreamError, UpstreamTimeoutError
from core.protocols import RequestLogger
from core.request_types import PreparedRequest

INTERNAL_ERROR_BODY = "Internal Server Error"

# Connection-scoped headers, never re-emitted on the outward response
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}


class UpstreamClient:
    """Forward auth requests upstream with a single attempt and streamed relay."""

    def __init__(self, client: httpx.AsyncClient, timeout: float | None = None) -> None:
        self._client = client
        self._timeout = timeout

    async def forward(
        self,
        prepared: PreparedRequest,
        logger: RequestLogger,
    ) -> Response | StreamingResponse:
        """Send the request and relay the upstream response verbatim.

        Transport failures never propagate: they are logged and turned into a
        plain 500 response without any upstream headers.
        """
        try:
            response = await self._send(prepared)
        except UpstreamError as e:
            logger.log_error(prepared.method, prepared.target_url, e)
            return Response(
                content=INTERNAL_ERROR_BODY,
                status_code=500,
                media_type="text/plain",
            )

        logger.log_response(
            prepared.method,
            prepared.target_url,
            response.status_code,
            response.reason_phrase,
            response.headers,
        )
        return self._relay(response)

    async def _send(self, prepared: PreparedRequest) -> httpx.Response:
        """Issue exactly one upstream call, classifying transport failures."""
        extra = {"timeout": self._timeout} if self._timeout is not None else {}
        request = self._client.build_request(
            prepared.method,
            prepared.target_url,
            headers=prepared.headers,
            content=prepared.body,
            **extra,
        )
        try:
            return await self._client.send(request, stream=True)
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(f"Upstream timeout: {e}", url=prepared.target_url) from e
        except httpx.ConnectError as e:
            raise UpstreamConnectionError(
                f"Upstream connection error: {e}", url=prepared.target_url
            ) from e
        except httpx.RequestError as e:
            raise UpstreamError(f"Upstream request failed: {e}", url=prepared.target_url) from e

    def _relay(self, response: httpx.Response) -> StreamingResponse:
        """Re-emit status, headers (repeated Set-Cookie included) and raw body."""
        relayed = StreamingResponse(
            _iter_body(response),
            status_code=response.status_code,
            background=BackgroundTask(response.aclose),
        )
        relayed.raw_headers = [
            (name.lower(), value)
            for name, value in response.headers.raw
            if name.lower().decode("latin-1") not in HOP_BY_HOP_HEADERS
        ]
        return relayed


async def _iter_body(response: httpx.Response) -> AsyncIterator[bytes]:
    """Stream the upstream body undecoded; closes the upstream on exit or cancel."""
    try:
        async for chunk in response.aiter_raw():
            yield chunk
    finally:
        await response.aclose()
