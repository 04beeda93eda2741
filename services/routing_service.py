"""Routing orchestration for proxy requests."""

from collections.abc import Mapping
from typing import Any

from core.config import AuthSettings
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from core.request_types import PreparedRequest
from core.router import build_target_url, join_path, split_path


class RoutingService:
    """Prepare inbound auth requests for forwarding upstream."""

    def __init__(
        self,
        settings: AuthSettings,
        logger: RequestLogger,
        header_builder: HeaderBuilder,
    ) -> None:
        self._settings = settings
        self._logger = logger
        self._headers = header_builder

    def prepare(
        self,
        method: str,
        path: str,
        headers: Mapping[str, Any],
        request_url: str,
        query: str = "",
        body: bytes | None = None,
    ) -> PreparedRequest:
        """Resolve the upstream URL and outbound headers for one request."""
        upstream_path = join_path(split_path(path))
        target_url = build_target_url(
            self._settings.base_url,
            upstream_path,
            query if self._settings.forward_query else "",
        )
        upstream_headers = self._headers.build_auth_headers(headers, request_url)
        self._logger.log_request(method, target_url, upstream_headers)
        return PreparedRequest(method, target_url, upstream_headers, body or None)
