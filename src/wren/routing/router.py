"""Router: ordered pipeline table with a not-found fallback.

The route table is a tuple of pipelines captured at construction and
never modified afterwards; evaluating it touches no shared mutable
state, so one Router serves any number of concurrent requests.
"""

import logging
from collections.abc import Iterable

from wren.context import UNMATCHED, Context, Denied, Handler, Matched, evaluate
from wren.http.response import Response
from wren.responders import set_status, text
from wren.routing.combinators import choose, pipe

logger = logging.getLogger("wren.routing")

NOT_FOUND_BODY = "Not Found"

default_not_found: Handler = pipe(set_status(404), text(NOT_FOUND_BODY))


class Router:
    """First-registered-wins router.

    Usage::

        router = Router([
            pipe(GET, route("/"), text("index")),
            pipe(POST, route("/upload"), upload_handler),
        ])
        response = await router.route(Context(request))

    Evaluation order is registration order, exactly. If a guard in a
    pipeline falls through, the next pipeline is tried; if it denies,
    its response is final; if every pipeline falls through,
    *not_found* answers.
    """

    __slots__ = ("_handler", "_not_found", "_pipelines")

    def __init__(
        self,
        pipelines: Iterable[Handler],
        *,
        not_found: Handler | None = None,
    ) -> None:
        self._pipelines: tuple[Handler, ...] = tuple(pipelines)
        self._handler = choose(self._pipelines)
        self._not_found = not_found or default_not_found

    @property
    def pipelines(self) -> tuple[Handler, ...]:
        return self._pipelines

    async def route(self, ctx: Context) -> Response:
        """Evaluate the table against *ctx* and return the final response."""
        result = await evaluate(self._handler, ctx)
        match result:
            case Matched(response=response):
                return response
            case Denied(response=response):
                logger.debug(
                    "%d %s %s (denied)", response.status, ctx.request.method, ctx.request.path
                )
                return response
            case _ if result is not UNMATCHED:
                msg = f"Pipeline returned {result!r}; expected Matched, Denied or UNMATCHED"
                raise TypeError(msg)

        fallback = await evaluate(self._not_found, ctx)
        if isinstance(fallback, (Matched, Denied)):
            return fallback.response
        return Response(body=NOT_FOUND_BODY, status=404)
