"""Error boundary for wren requests.

Two paths out of a failed request:

- ``HTTPError`` raised by a stage or a body reader becomes a plain-text
  response with the error's status and detail.
- Anything else is an unhandled failure: it is logged, then the app's
  error handler, itself a stage, produces the response. The default
  handler answers 500 with the failure's message as the body.

An error handler is a factory ``(exc, logger) -> Handler``, so a custom
one composes from the same pieces as any route::

    def error_handler(exc: Exception, logger: logging.Logger) -> Handler:
        return pipe(clear_response, set_status(500), text("Oops"))

    app = App(web_app, error_handler=error_handler)

Note that the default surfaces raw exception text to clients. Supply a
custom handler in deployments where messages may leak internals.
"""

import logging
from collections.abc import Callable
from dataclasses import replace

from wren.context import Context, Denied, Handler, Matched, evaluate
from wren.errors import HTTPError
from wren.http.response import Response
from wren.responders import clear_response, set_status, text
from wren.routing.combinators import pipe
from wren.server.terminal_errors import log_error

logger = logging.getLogger("wren.server")

type ErrorHandler = Callable[[Exception, logging.Logger], Handler]


def default_error_handler(exc: Exception, log: logging.Logger) -> Handler:
    """Clear the response, set 500, answer with the exception message."""
    return pipe(clear_response, set_status(500), text(str(exc)))


def handle_http_error(exc: HTTPError, ctx: Context) -> Response:
    """Map an ``HTTPError`` to a plain-text response."""
    logger.debug("%d %s %s: %s", exc.status, ctx.request.method, ctx.request.path, exc.detail)
    response = Response(body=exc.detail or f"Error {exc.status}", status=exc.status)
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


async def handle_internal_error(
    exc: Exception,
    ctx: Context,
    error_handler: ErrorHandler,
) -> Response:
    """Log *exc* and let *error_handler* produce the response.

    If the error handler fails as well, answer a bare 500.
    """
    log_error(exc, ctx.request, log=logger)
    try:
        handler = error_handler(exc, logger)
        result = await evaluate(handler, replace(ctx, response=Response()))
    except Exception:
        logger.exception("Error handler failed for %s %s", ctx.request.method, ctx.request.path)
        return Response(body="Internal Server Error", status=500)

    if isinstance(result, (Matched, Denied)):
        return result.response
    return Response(body="Internal Server Error", status=500)
