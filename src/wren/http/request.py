"""Immutable HTTP request.

Frozen metadata with async body access. The request is honest about
what it is: received data that doesn't change. The only thing added
after creation is the authenticated principal, and that produces a new
Request (``with_principal``).
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from wren._internal.asgi import Receive
from wren.errors import ClientDisconnected
from wren.http.cookies import parse_cookies
from wren.http.forms import FormParser, is_form_content_type
from wren.http.headers import Headers
from wren.http.query import QueryParams

if TYPE_CHECKING:
    from wren.http.forms import FormData
    from wren.security.principal import Principal


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, etc.) is frozen at creation.
    Body is accessed asynchronously via ``.body()``, ``.json()``,
    ``.form()`` or ``.stream_form()``.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    cookies: Mapping[str, str]
    scheme: str = "http"
    http_version: str = "1.1"
    server: tuple[str, int] | None = None
    client: tuple[str, int] | None = None
    principal: Principal | None = None

    # Private: ASGI receive callable for body streaming
    _receive: Receive | None = field(default=None, repr=False, compare=False)

    # Private: shared cache for body and parsed form data. The dict is
    # carried over by with_principal() so the body is read at most once.
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """The Content-Length header as int."""
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def has_form_content_type(self) -> bool:
        """True if the body is URL-encoded or multipart form data."""
        return is_form_content_type(self.content_type)

    @property
    def is_secure(self) -> bool:
        """True if the request arrived over TLS."""
        return self.scheme in ("https", "wss")

    @property
    def url(self) -> str:
        """Path plus query string."""
        qs = self.query.raw
        if qs:
            return f"{self.path}?{qs.decode('latin-1')}"
        return self.path

    def with_principal(self, principal: Principal | None) -> Request:
        """Return a copy of this request carrying *principal*."""
        return replace(self, principal=principal)

    # -- Async body access --

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks as they arrive.

        Raises ``ClientDisconnected`` if the client goes away mid-body.
        Cancelling the awaiting task aborts the read.
        """
        if "_body" in self._cache:
            yield self._cache["_body"]
            return
        if self._cache.get("_streamed"):
            msg = "Request body has already been consumed."
            raise RuntimeError(msg)
        self._cache["_streamed"] = True
        if self._receive is None:
            return

        while True:
            message = await self._receive()
            if message.get("type") == "http.disconnect":
                raise ClientDisconnected("Client disconnected while sending the body.")
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def body(self) -> bytes:
        """Read the full request body.

        Result is cached: the ASGI receive is consumed once, then
        the same bytes are returned on subsequent calls.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def json(self) -> Any:
        """Parse the body as JSON."""
        import json as json_module

        raw = await self.body()
        return json_module.loads(raw)

    async def text(self) -> str:
        """Read the body as text (UTF-8)."""
        raw = await self.body()
        return raw.decode("utf-8")

    async def form(self) -> FormData:
        """Read the whole body, then parse it as form data.

        Result is cached. Raises ``BadRequest`` if the Content-Type is
        not a form encoding.
        """
        if "_form" in self._cache:
            return self._cache["_form"]
        parser = FormParser(self.content_type)
        parser.write(await self.body())
        result = parser.finish()
        self._cache["_form"] = result
        return result

    async def stream_form(self) -> FormData:
        """Parse form data incrementally while the body streams in.

        Unlike ``form()``, the raw body is never buffered as a whole;
        each chunk goes straight into the multipart parser. Result is
        cached like ``form()``.
        """
        if "_form" in self._cache:
            return self._cache["_form"]
        parser = FormParser(self.content_type)
        async for chunk in self.stream():
            parser.write(chunk)
        result = parser.finish()
        self._cache["_form"] = result
        return result

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: Mapping[str, Any], receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        headers = Headers(tuple(scope.get("headers", ())))
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            cookies=parse_cookies(headers.get("cookie", "")),
            scheme=scope.get("scheme", "http"),
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            _receive=receive,
        )
