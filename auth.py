"""Session cookie reader and protected-route guard."""

import re
from collections.abc import Awaitable, Callable, Mapping
from urllib.parse import urlencode

from fastapi import Request, Response
from fastapi.responses import RedirectResponse

from core.config import AuthSettings

# Only cookies with this prefix ever reach the auth service, and the same
# prefix decides whether a visitor has a session.
SESSION_COOKIE_PREFIX = "__Secure-neon-auth"


def session_cookies(cookie_header: str | None) -> list[str]:
    """Return the `name=value` entries of a Cookie header that carry the session prefix.

    Entries keep their original relative order and are returned trimmed.
    """
    if not cookie_header:
        return []

    result = []
    for cookie in cookie_header.split(";"):
        cookie = cookie.strip()
        name = cookie.split("=", 1)[0]
        if name.startswith(SESSION_COOKIE_PREFIX):
            result.append(cookie)
    return result


def has_session(cookies: Mapping[str, str]) -> bool:
    """Check whether any parsed cookie looks like a session cookie."""
    return any(
        name.startswith(SESSION_COOKIE_PREFIX) and value
        for name, value in cookies.items()
    )


class SessionGuard:
    """HTTP middleware redirecting visitors without a session away from protected routes."""

    def __init__(self, settings: AuthSettings) -> None:
        self._login_url = settings.login_url
        self._route_prefix = settings.route_prefix
        self._patterns = [re.compile(route) for route in settings.matched_routes]

    def is_protected(self, path: str) -> bool:
        if path == self._route_prefix or path.startswith(self._route_prefix + "/"):
            return False
        if path == self._login_url.split("?", 1)[0]:
            return False
        return any(pattern.fullmatch(path) for pattern in self._patterns)

    async def __call__(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        path = request.url.path
        if not self.is_protected(path) or has_session(request.cookies):
            return await call_next(request)

        separator = "&" if "?" in self._login_url else "?"
        location = f"{self._login_url}{separator}{urlencode({'redirect': path})}"
        return RedirectResponse(url=location, status_code=307)
