import httpx
import pytest

from core.exceptions import UpstreamConnectionError, UpstreamError, UpstreamTimeoutError
from core.request_types import PreparedRequest
from services.upstream import INTERNAL_ERROR_BODY, UpstreamClient

TARGET = "https://auth.example.com/session"


def prepared(method="GET", body=None):
    return PreparedRequest(
        method=method,
        target_url=TARGET,
        headers={"Content-Type": "application/json", "Origin": "http://localhost", "Cookie": ""},
        body=body,
    )


async def read_body(response) -> bytes:
    return b"".join([chunk async for chunk in response.body_iterator])


@pytest.mark.asyncio
async def test_relays_status_headers_and_body(make_upstream, logger):
    upstream = make_upstream(
        headers=[
            ("Content-Type", "application/json"),
            ("Set-Cookie", "__Secure-neon-auth.session_token=abc; Path=/; Secure"),
            ("Set-Cookie", "__Secure-neon-auth.session_data=xyz; Path=/; Secure"),
            ("X-Upstream", "1"),
        ],
        content=b'{"session": null}',
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        response = await UpstreamClient(client).forward(prepared(), logger)
        body = await read_body(response)

    assert response.status_code == 200
    assert body == b'{"session": null}'
    set_cookies = [v for k, v in response.raw_headers if k == b"set-cookie"]
    assert set_cookies == [
        b"__Secure-neon-auth.session_token=abc; Path=/; Secure",
        b"__Secure-neon-auth.session_data=xyz; Path=/; Secure",
    ]
    assert (b"x-upstream", b"1") in response.raw_headers
    assert (b"content-type", b"application/json") in response.raw_headers
    assert logger.responses == [("GET", TARGET, 200, "OK")]
    assert logger.errors == []


@pytest.mark.asyncio
async def test_sends_method_headers_and_body(make_upstream, logger):
    upstream = make_upstream()
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        await UpstreamClient(client).forward(prepared("POST", b'{"email": "a@b.c"}'), logger)

    assert len(upstream.calls) == 1
    sent = upstream.calls[0]
    assert sent.method == "POST"
    assert str(sent.url) == TARGET
    assert sent.headers["content-type"] == "application/json"
    assert sent.headers["origin"] == "http://localhost"
    assert upstream.bodies == [b'{"email": "a@b.c"}']


@pytest.mark.asyncio
async def test_upstream_error_status_is_relayed(make_upstream, logger):
    upstream = make_upstream(401, json_body={"message": "Unauthorized"})
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        response = await UpstreamClient(client).forward(prepared(), logger)
        body = await read_body(response)

    assert response.status_code == 401
    assert b"Unauthorized" in body
    assert logger.errors == []


@pytest.mark.asyncio
async def test_redirects_are_not_followed(make_upstream, logger):
    upstream = make_upstream(302, headers={"Location": "https://idp.example.com/"}, content=b"")
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        response = await UpstreamClient(client).forward(prepared(), logger)

    assert response.status_code == 302
    assert (b"location", b"https://idp.example.com/") in response.raw_headers
    assert len(upstream.calls) == 1


@pytest.mark.asyncio
async def test_hop_by_hop_headers_are_dropped(make_upstream, logger):
    upstream = make_upstream(
        headers={"Connection": "keep-alive", "Keep-Alive": "timeout=5"}, content=b"ok"
    )
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        response = await UpstreamClient(client).forward(prepared(), logger)

    names = [k for k, _ in response.raw_headers]
    assert b"connection" not in names
    assert b"keep-alive" not in names


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (httpx.ConnectTimeout, UpstreamTimeoutError),
        (httpx.ReadTimeout, UpstreamTimeoutError),
        (httpx.ConnectError, UpstreamConnectionError),
        (httpx.RemoteProtocolError, UpstreamError),
    ],
)
async def test_transport_failure_becomes_500(make_upstream, logger, error, expected):
    upstream = make_upstream(error=error)
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        response = await UpstreamClient(client).forward(prepared(), logger)

    assert response.status_code == 500
    assert response.body == INTERNAL_ERROR_BODY.encode()
    assert response.headers["content-type"].startswith("text/plain")
    assert "set-cookie" not in response.headers
    assert len(upstream.calls) == 1

    assert len(logger.errors) == 1
    method, url, logged = logger.errors[0]
    assert (method, url) == ("GET", TARGET)
    assert type(logged) is expected
    assert logged.url == TARGET
    assert logger.responses == []


@pytest.mark.asyncio
async def test_explicit_timeout_is_passed_to_client(make_upstream, logger):
    upstream = make_upstream()
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        await UpstreamClient(client, timeout=1.5).forward(prepared(), logger)

    assert upstream.calls[0].extensions["timeout"]["read"] == 1.5


@pytest.mark.asyncio
async def test_client_default_timeout_when_unset(make_upstream, logger):
    upstream = make_upstream()
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        await UpstreamClient(client).forward(prepared(), logger)

    assert upstream.calls[0].extensions["timeout"]["read"] == 5.0


@pytest.mark.asyncio
async def test_aborted_relay_closes_upstream(make_upstream, logger):
    upstream = make_upstream(content=b"partial body")
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        response = await UpstreamClient(client).forward(prepared(), logger)
        first = await response.body_iterator.__anext__()
        assert first == b"partial body"
        assert not upstream.responses[0].is_closed

        await response.body_iterator.aclose()

    assert upstream.responses[0].is_closed


@pytest.mark.asyncio
async def test_drained_relay_closes_upstream(make_upstream, logger):
    upstream = make_upstream(content=b"whole body")
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        response = await UpstreamClient(client).forward(prepared(), logger)
        assert await read_body(response) == b"whole body"

    assert upstream.responses[0].is_closed
