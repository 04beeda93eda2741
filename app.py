"""FastAPI application factory."""

from contextlib import asynccontextmanager
from http.cookiejar import CookieJar, DefaultCookiePolicy

import httpx
from fastapi import FastAPI, Request

from api.handlers import handle_auth_proxy
from auth import SessionGuard
from core.config import Config
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from services.routing_service import RoutingService
from services.upstream import UpstreamClient

PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH"]


def create_app(
    config: Config,
    logger: RequestLogger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        limits = httpx.Limits(max_connections=100, max_keepalive_connections=20)
        auth_client = httpx.AsyncClient(
            limits=limits,
            # Shared by every visitor: upstream Set-Cookie values are never stored
            cookies=CookieJar(policy=DefaultCookiePolicy(allowed_domains=[])),
            follow_redirects=False,
            transport=transport,
        )
        app.state.config = config
        app.state.upstream_client = UpstreamClient(auth_client, timeout=config.auth.timeout)
        app.state.routing_service = RoutingService(
            settings=config.auth,
            logger=logger,
            header_builder=HeaderBuilder(),
        )
        try:
            yield
        finally:
            await auth_client.aclose()

    app = FastAPI(title="Neon Auth Proxy", version="0.1.0", lifespan=lifespan)

    if config.auth.matched_routes:
        app.middleware("http")(SessionGuard(config.auth))

    prefix = config.auth.route_prefix

    @app.api_route(prefix, methods=PROXY_METHODS, include_in_schema=False)
    async def proxy_auth_root(request: Request):
        return await handle_auth_proxy(request, "", logger)

    @app.api_route(prefix + "/{path:path}", methods=PROXY_METHODS)
    async def proxy_auth(request: Request, path: str):
        return await handle_auth_proxy(request, path, logger)

    return app
