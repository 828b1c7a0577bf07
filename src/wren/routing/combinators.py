"""Stage combinators: sequencing and ordered alternation.

Two ways to put stages together:

``pipe(a, b, c)``
    Run ``a``; if it calls its continuation, run ``b`` with the context
    ``a`` passed along, and so on. A stage that returns without calling
    ``next`` short-circuits the rest of the pipe.

``choose([p1, p2, ...])``
    Try each pipeline in registration order. The first one whose result
    is not ``UNMATCHED`` wins, whether it ``Matched`` or was ``Denied``.
    No specificity scoring, no reordering.

Both return ordinary stages, so they nest freely::

    web_app = choose([
        pipe(GET, choose([
            pipe(route("/"), text("index")),
            pipe(route("/ping"), text("pong")),
        ])),
        pipe(route("/car"), submit_car),
    ])
"""

from collections.abc import Callable, Iterable

from wren._internal.invoke import invoke
from wren.context import UNMATCHED, Context, Handler, Next, Result


def compose(first: Handler, second: Handler) -> Handler:
    """Sequence two stages (``first >=> second``)."""

    async def composed(ctx: Context, next: Next) -> Result:
        async def continue_with_second(inner: Context) -> Result:
            return await second(inner, next)

        return await first(ctx, continue_with_second)

    return composed


async def _identity(ctx: Context, next: Next) -> Result:
    return await next(ctx)


def pipe(*stages: Handler) -> Handler:
    """Sequence any number of stages left to right.

    ``pipe()`` with no stages passes straight through.
    """
    if not stages:
        return _identity
    handler = stages[-1]
    for stage in reversed(stages[:-1]):
        handler = compose(stage, handler)
    return handler


def choose(pipelines: Iterable[Handler]) -> Handler:
    """Ordered alternation: first pipeline that does not fall through wins.

    The pipeline list is captured as a tuple, so later mutation of the
    caller's list has no effect on routing.
    """
    candidates = tuple(pipelines)

    async def chooser(ctx: Context, next: Next) -> Result:
        for candidate in candidates:
            result = await candidate(ctx, next)
            if result is not UNMATCHED:
                return result
        return UNMATCHED

    return chooser


def warbler(factory: Callable[[Context], Handler]) -> Handler:
    """Build the stage per request instead of once at construction.

    ``text(now())`` evaluates ``now()`` when the route table is built;
    ``warbler(lambda ctx: text(now()))`` evaluates it on every request.
    *factory* may be sync or async.
    """

    async def deferred(ctx: Context, next: Next) -> Result:
        handler = await invoke(factory, ctx)
        return await handler(ctx, next)

    return deferred
