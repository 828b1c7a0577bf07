"""Responders and response-shaping stages.

Shaping stages (``set_status``, ``set_header``, ``clear_response``)
refine the draft response and call ``next``. Responders (``text``,
``html``, ``json``, ``redirect_to``) finish it and return ``Matched``
without calling ``next``.

Usage::

    access_denied = pipe(set_status(401), text("Access Denied"))
"""

import dataclasses
import json as json_module
from datetime import date, datetime
from typing import Any

from wren.context import Context, Handler, Matched, Next, Result
from wren.http.response import APPLICATION_JSON, TEXT_HTML, TEXT_PLAIN, Response


def set_status(status: int) -> Handler:
    """Set the status code of the draft response."""

    async def stage(ctx: Context, next: Next) -> Result:
        return await next(ctx.with_response(ctx.response.with_status(status)))

    return stage


def set_header(name: str, value: str) -> Handler:
    """Add a header to the draft response."""

    async def stage(ctx: Context, next: Next) -> Result:
        return await next(ctx.with_response(ctx.response.with_header(name, value)))

    return stage


async def clear_response(ctx: Context, next: Next) -> Result:
    """Discard everything staged so far and start from a blank 200."""
    return await next(ctx.with_response(Response()))


def set_body(body: str | bytes, content_type: str | None = None) -> Handler:
    """Finish with *body*, keeping the staged status and headers."""

    async def responder(ctx: Context, next: Next) -> Result:
        response = ctx.response.with_body(body)
        if content_type is not None:
            response = response.with_content_type(content_type)
        return Matched(response)

    return responder


def text(body: str) -> Handler:
    """Finish with a ``text/plain`` body."""
    return set_body(body, TEXT_PLAIN)


def html(body: str) -> Handler:
    """Finish with a ``text/html`` body."""
    return set_body(body, TEXT_HTML)


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def to_json(value: Any) -> str:
    """Serialize dataclasses, dates and plain containers to JSON text."""
    return json_module.dumps(value, default=_json_default)


def json(value: Any) -> Handler:
    """Finish with *value* serialized as ``application/json``."""
    return set_body(to_json(value), APPLICATION_JSON)


def redirect_to(location: str, *, permanent: bool = False) -> Handler:
    """Finish with a 302 (or 301) redirect to *location*."""

    async def responder(ctx: Context, next: Next) -> Result:
        response = (
            ctx.response.with_status(301 if permanent else 302)
            .with_header("Location", location)
            .with_body("")
        )
        return Matched(response)

    return responder
