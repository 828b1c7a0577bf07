"""Evaluation context and the three-way stage result.

Every stage receives a ``Context`` and a ``Next`` continuation and
returns a ``Result``:

- ``Matched(response)``: the pipeline produced its response.
- ``Denied(response)``: a guard short-circuited with a response
  (401 and friends). Stops the search exactly like ``Matched``.
- ``UNMATCHED``: this pipeline does not apply; try the next one.

Contexts are frozen. A stage that wants to change something downstream
(status code, headers, path params) passes ``replace(ctx, ...)`` to
``next``. The original is never touched, so concurrent requests
cannot observe each other.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Final, Literal

from wren.http.request import Request
from wren.http.response import Response

if TYPE_CHECKING:
    from kida import Environment

    from wren.security.principal import Principal


class _Unmatched(Enum):
    UNMATCHED = "unmatched"

    def __repr__(self) -> str:
        return "UNMATCHED"


UNMATCHED: Final = _Unmatched.UNMATCHED


@dataclass(frozen=True, slots=True)
class Matched:
    """The pipeline finished with *response*."""

    response: Response


@dataclass(frozen=True, slots=True)
class Denied:
    """A guard refused the request and answered with *response*."""

    response: Response


type Result = Matched | Denied | Literal[_Unmatched.UNMATCHED]

# The continuation handed to every stage
type Next = Callable[[Context], Awaitable[Result]]

# A stage: guard, responder, or a composition of both
type Handler = Callable[[Context, Next], Awaitable[Result]]


@dataclass(frozen=True, slots=True)
class Context:
    """Per-request evaluation state threaded through a pipeline.

    Attributes:
        request: The incoming request.
        response: Draft response refined by stages (status, headers,
            cookies) and finished by a responder.
        path_params: Values captured by ``routef`` templates, converted.
        route_prefix: Prefix consumed by enclosing ``sub_route`` stages.
        views: kida environment for template responders, if configured.
    """

    request: Request
    response: Response = field(default_factory=Response)
    path_params: Mapping[str, Any] = field(default_factory=dict)
    route_prefix: str = ""
    views: Environment | None = None

    @property
    def principal(self) -> Principal | None:
        return self.request.principal

    @property
    def path(self) -> str:
        """Request path with any ``sub_route`` prefix removed."""
        path = self.request.path
        if self.route_prefix and path.startswith(self.route_prefix):
            return path[len(self.route_prefix) :] or "/"
        return path

    def with_response(self, response: Response) -> Context:
        return replace(self, response=response)


async def finish(ctx: Context) -> Result:
    """Terminal continuation: whatever the draft response is, it's final."""
    return Matched(ctx.response)


async def evaluate(handler: Handler, ctx: Context) -> Result:
    """Run *handler* to completion against *ctx*."""
    return await handler(ctx, finish)
