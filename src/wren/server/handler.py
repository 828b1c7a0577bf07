"""ASGI handler: translates ASGI scope/messages to wren types.

The only component that touches raw ASGI directly. Converts scope dicts
to typed Request objects, dispatches through middleware and the router,
and sends the Response back through ASGI send().
"""

import logging
from collections.abc import Callable
from typing import Any

from kida import Environment

from wren._internal.asgi import Receive, Scope, Send
from wren.context import Context
from wren.errors import ClientDisconnected, HTTPError
from wren.http.request import Request
from wren.http.response import Response
from wren.middleware.protocol import Next
from wren.routing.router import Router
from wren.server.errors import ErrorHandler, handle_http_error, handle_internal_error
from wren.server.sender import send_response

logger = logging.getLogger("wren.server")


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    middleware: tuple[Callable[..., Any], ...],
    error_handler: ErrorHandler,
    views: Environment | None = None,
    debug: bool = False,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)
    # Latest request seen by the pipeline, so error handlers get the
    # principal attached by middleware.
    current = request

    async def dispatch(req: Request) -> Response:
        nonlocal current
        current = req
        return await router.route(Context(request=req, views=views))

    # Wrap middleware around the dispatch
    handler: Next = dispatch
    for mw in reversed(middleware):

        async def make_next(req: Request, _mw: Any = mw, _next: Next = handler) -> Response:
            return await _mw(req, _next)

        handler = make_next

    try:
        response = await handler(request)
    except ClientDisconnected:
        logger.info("Client disconnected: %s %s", request.method, request.path)
        return
    except HTTPError as exc:
        response = handle_http_error(exc, Context(request=current, views=views))
    except Exception as exc:
        response = await handle_internal_error(
            exc, Context(request=current, views=views), error_handler
        )

    if debug:
        logger.debug("%d %s %s", response.status, request.method, request.path)
    await send_response(response, send)
