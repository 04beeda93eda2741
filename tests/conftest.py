import json

import httpx
import pytest

from core.config import AuthSettings, Config
from ui import log_utils

AUTH_BASE_URL = "https://auth.example.com"


class RecordingLogger:
    """RequestLogger that keeps every event in memory."""

    def __init__(self):
        self.requests = []
        self.responses = []
        self.errors = []

    def log_request(self, method, url, headers):
        self.requests.append((method, url, dict(headers)))

    def log_response(self, method, url, status, reason, headers):
        self.responses.append((method, url, status, reason))

    def log_error(self, method, url, error):
        self.errors.append((method, url, error))


class UpstreamRecorder:
    """MockTransport handler that records calls and replays a canned answer.

    The canned body is served from an unread stream, as a real transport would.
    """

    def __init__(
        self,
        status_code=200,
        headers=None,
        content=None,
        json_body=None,
        error=None,
    ):
        self.calls: list[httpx.Request] = []
        self.bodies: list[bytes] = []
        self.responses: list[httpx.Response] = []
        self._status_code = status_code
        self._headers = list(headers.items()) if isinstance(headers, dict) else list(headers or [])
        if content is None:
            content = json.dumps({"ok": True} if json_body is None else json_body).encode()
            self._headers.append(("Content-Type", "application/json"))
        self._content = content
        self._error = error

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        self.bodies.append(request.read())
        if self._error is not None:
            raise self._error(f"simulated {self._error.__name__}", request=request)
        response = httpx.Response(
            self._status_code,
            headers=self._headers,
            stream=httpx.ByteStream(self._content),
        )
        self.responses.append(response)
        return response


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path, monkeypatch):
    """Keep log files written during tests out of the working directory."""
    monkeypatch.setattr(log_utils, "LOG_ROOT", tmp_path / "logs")
    monkeypatch.setattr(log_utils, "CLI_LOG_FILE", tmp_path / "logs" / "proxy.log")
    return tmp_path / "logs"


@pytest.fixture
def logger():
    return RecordingLogger()


@pytest.fixture
def make_config():
    def _make(**auth_overrides) -> Config:
        auth = {"base_url": AUTH_BASE_URL, "route_prefix": "/auth"}
        auth.update(auth_overrides)
        return Config(auth=AuthSettings(**auth))

    return _make


@pytest.fixture
def make_upstream():
    return UpstreamRecorder
