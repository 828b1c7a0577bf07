"""Tests for wren.server.sender: Response to ASGI messages."""

from typing import Any

from wren.http.response import Response
from wren.server.sender import encode_headers, send_response


async def _send(response: Response) -> list[dict[str, Any]]:
    sent: list[dict[str, Any]] = []

    async def send(message: dict[str, Any]) -> None:
        sent.append(message)

    await send_response(response, send)
    return sent


class TestEncodeHeaders:
    def test_content_type_and_length(self) -> None:
        headers = encode_headers(Response("hello"), b"hello")
        assert (b"content-type", b"text/plain; charset=utf-8") in headers
        assert headers[-1] == (b"content-length", b"5")

    def test_custom_headers_are_lowercased(self) -> None:
        headers = encode_headers(Response().with_header("X-Custom", "Value"), b"")
        assert (b"x-custom", b"Value") in headers

    def test_cookies_become_set_cookie(self) -> None:
        response = Response().with_cookie("a", "1").with_cookie("b", "2")
        cookies = [v for k, v in encode_headers(response, b"") if k == b"set-cookie"]
        assert len(cookies) == 2
        assert cookies[0].startswith(b"a=1;")


class TestSendResponse:
    async def test_start_then_body(self) -> None:
        sent = await _send(Response("hi", status=201))
        assert sent[0]["type"] == "http.response.start"
        assert sent[0]["status"] == 201
        assert sent[1] == {"type": "http.response.body", "body": b"hi"}

    async def test_not_modified_has_no_body(self) -> None:
        sent = await _send(Response("ignored", status=304))
        assert sent[1]["body"] == b""
        assert (b"content-length", b"0") in sent[0]["headers"]
