"""FastAPI route handlers."""

from fastapi import Request, Response
from fastapi.responses import StreamingResponse

from core.protocols import RequestLogger
from ui.log_utils import write_incoming_log


async def _read_body(request: Request) -> bytes | None:
    """Buffer the inbound body; an empty body is forwarded as no body."""
    raw_body = await request.body()
    return raw_body or None


async def handle_auth_proxy(
    request: Request,
    path: str,
    logger: RequestLogger,
) -> Response | StreamingResponse:
    """Forward `<prefix>/<path>` to the auth service and relay its answer."""
    body = await _read_body(request)
    if request.app.state.config.proxy.debug:
        write_incoming_log(request.method, request.scope["path"], dict(request.headers))

    routing_service = request.app.state.routing_service
    prepared = routing_service.prepare(
        request.method,
        path,
        request.headers,
        str(request.url),
        query=request.scope.get("query_string", b"").decode("latin-1"),
        body=body,
    )
    upstream = request.app.state.upstream_client

    return await upstream.forward(prepared, logger)
