"""Tests for wren.http.request: frozen Request with async body access."""

import asyncio
import json

import pytest

from wren.errors import BadRequest, ClientDisconnected
from wren.http.request import Request
from wren.security.principal import Claim, ClaimTypes, Principal
from wren.testing import encode_multipart


def _make_scope(**overrides: object) -> dict[str, object]:
    """Build a minimal valid ASGI HTTP scope."""
    base: dict[str, object] = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "path": "/",
        "raw_path": b"/",
        "query_string": b"",
        "root_path": "",
        "headers": [],
        "server": ("localhost", 8000),
        "client": ("127.0.0.1", 54321),
    }
    base.update(overrides)
    return base


def _make_receive(*bodies: bytes):
    """Create an ASGI receive callable that yields bodies."""
    messages = []
    for i, body in enumerate(bodies):
        is_last = i == len(bodies) - 1
        messages.append({"type": "http.request", "body": body, "more_body": not is_last})
    if not messages:
        messages.append({"type": "http.request", "body": b"", "more_body": False})
    it = iter(messages)

    async def receive():
        return next(it)

    return receive


class TestFromAsgi:
    def test_basic_fields(self) -> None:
        scope = _make_scope(
            method="POST",
            path="/items",
            query_string=b"page=2&tag=a&tag=b",
            headers=[(b"content-type", b"application/json"), (b"content-length", b"12")],
        )
        request = Request.from_asgi(scope, _make_receive())
        assert request.method == "POST"
        assert request.path == "/items"
        assert request.query["page"] == "2"
        assert request.query.get_list("tag") == ["a", "b"]
        assert request.content_type == "application/json"
        assert request.content_length == 12
        assert request.server == ("localhost", 8000)
        assert request.client == ("127.0.0.1", 54321)
        assert request.principal is None

    def test_cookies_first_occurrence_wins(self) -> None:
        scope = _make_scope(headers=[(b"cookie", b"a=1; b=2; a=3")])
        request = Request.from_asgi(scope, _make_receive())
        assert request.cookies == {"a": "1", "b": "2"}

    def test_scheme(self) -> None:
        assert not Request.from_asgi(_make_scope(), _make_receive()).is_secure
        secure = Request.from_asgi(_make_scope(scheme="https"), _make_receive())
        assert secure.is_secure

    def test_url(self) -> None:
        request = Request.from_asgi(
            _make_scope(path="/a", query_string=b"x=1"), _make_receive()
        )
        assert request.url == "/a?x=1"

    def test_has_form_content_type(self) -> None:
        form = _make_scope(headers=[(b"content-type", b"application/x-www-form-urlencoded")])
        assert Request.from_asgi(form, _make_receive()).has_form_content_type
        assert not Request.from_asgi(_make_scope(), _make_receive()).has_form_content_type

    def test_with_principal_keeps_body_cache(self) -> None:
        request = Request.from_asgi(_make_scope(), _make_receive(b"data"))
        principal = Principal.from_claims("Cookie", [Claim(ClaimTypes.NAME, "John")])
        signed_in = request.with_principal(principal)
        assert signed_in.principal is principal
        assert request.principal is None
        assert signed_in._cache is request._cache


class TestBody:
    async def test_body_joins_chunks(self) -> None:
        request = Request.from_asgi(_make_scope(), _make_receive(b"hel", b"lo"))
        assert await request.body() == b"hello"

    async def test_body_cached(self) -> None:
        request = Request.from_asgi(_make_scope(), _make_receive(b"once"))
        assert await request.body() == b"once"
        assert await request.body() == b"once"
        assert await request.text() == "once"

    async def test_json(self) -> None:
        payload = json.dumps({"a": 1}).encode()
        request = Request.from_asgi(_make_scope(), _make_receive(payload))
        assert await request.json() == {"a": 1}

    async def test_stream_twice_raises(self) -> None:
        request = Request.from_asgi(_make_scope(), _make_receive(b"a", b"b"))
        assert [c async for c in request.stream()] == [b"a", b"b"]
        with pytest.raises(RuntimeError, match="consumed"):
            [c async for c in request.stream()]

    async def test_disconnect_mid_body(self) -> None:
        messages = iter([
            {"type": "http.request", "body": b"part", "more_body": True},
            {"type": "http.disconnect"},
        ])

        async def receive():
            return next(messages)

        request = Request.from_asgi(_make_scope(), receive)
        with pytest.raises(ClientDisconnected):
            await request.body()

    async def test_cancellation_aborts_stream(self) -> None:
        started = asyncio.Event()

        async def receive():
            started.set()
            await asyncio.Event().wait()

        request = Request.from_asgi(_make_scope(), receive)
        task = asyncio.create_task(request.body())
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


class TestForms:
    async def test_form_urlencoded(self) -> None:
        scope = _make_scope(
            method="POST",
            headers=[(b"content-type", b"application/x-www-form-urlencoded")],
        )
        request = Request.from_asgi(scope, _make_receive(b"a=1&b=2"))
        form = await request.form()
        assert form["a"] == "1"
        assert await request.form() is form

    async def test_stream_form_multipart(self) -> None:
        body, content_type = encode_multipart(
            {"k": "v"}, [("f", "x.txt", b"x" * 10_000, "text/plain")]
        )
        chunks = [body[i : i + 512] for i in range(0, len(body), 512)]
        scope = _make_scope(method="POST", headers=[(b"content-type", content_type.encode())])
        request = Request.from_asgi(scope, _make_receive(*chunks))
        form = await request.stream_form()
        assert form["k"] == "v"
        assert form.files[0].size == 10_000
        assert "_body" not in request._cache

    async def test_form_rejects_non_form(self) -> None:
        scope = _make_scope(method="POST", headers=[(b"content-type", b"application/json")])
        request = Request.from_asgi(scope, _make_receive(b"{}"))
        with pytest.raises(BadRequest):
            await request.form()
