"""Guards: stages that decide whether a pipeline applies or may proceed.

Two kinds of "no":

- **Structural** guards (method, path, Accept) return ``UNMATCHED`` when
  they don't match. The enclosing ``choose`` moves on to the next
  pipeline as if this one didn't exist.
- **Authorization** guards run their ``on_fail`` stage and return
  ``Denied``. The search stops there; no later pipeline is tried.

Usage::

    access_denied = pipe(set_status(401), text("Access Denied"))
    must_be_admin = pipe(
        requires_authentication(access_denied),
        requires_role("Admin", access_denied),
    )
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import Any

from wren._internal.invoke import invoke
from wren.context import UNMATCHED, Context, Denied, Handler, Matched, Next, Result, finish
from wren.routing.params import compile_template
from wren.security.audit import emit_security_event
from wren.security.principal import Principal

logger = logging.getLogger("wren.security")

# ---------------------------------------------------------------------------
# Method guards
# ---------------------------------------------------------------------------


def method(verb: str) -> Handler:
    """Pass only requests whose method equals *verb*."""
    expected = verb.upper()

    async def guard(ctx: Context, next: Next) -> Result:
        if ctx.request.method != expected:
            return UNMATCHED
        return await next(ctx)

    guard.__name__ = expected
    return guard


GET = method("GET")
POST = method("POST")
PUT = method("PUT")
PATCH = method("PATCH")
DELETE = method("DELETE")
HEAD = method("HEAD")
OPTIONS = method("OPTIONS")

# ---------------------------------------------------------------------------
# Path guards
# ---------------------------------------------------------------------------


def route(path: str) -> Handler:
    """Pass only if the request path equals *path* exactly."""

    async def guard(ctx: Context, next: Next) -> Result:
        if ctx.path != path:
            return UNMATCHED
        return await next(ctx)

    return guard


def route_ci(path: str) -> Handler:
    """Case-insensitive ``route``."""
    expected = path.lower()

    async def guard(ctx: Context, next: Next) -> Result:
        if ctx.path.lower() != expected:
            return UNMATCHED
        return await next(ctx)

    return guard


def route_starts_with(prefix: str) -> Handler:
    """Pass if the request path starts with *prefix*."""

    async def guard(ctx: Context, next: Next) -> Result:
        if not ctx.path.startswith(prefix):
            return UNMATCHED
        return await next(ctx)

    return guard


def sub_route(prefix: str, handler: Handler) -> Handler:
    """Scope *handler* under *prefix*.

    Inner path guards see the path with *prefix* removed, so
    ``sub_route("/api", route("/ping"))`` matches ``/api/ping``.
    """

    async def guard(ctx: Context, next: Next) -> Result:
        if not ctx.path.startswith(prefix):
            return UNMATCHED
        scoped = replace(ctx, route_prefix=ctx.route_prefix + prefix)

        async def unscoped(inner: Context) -> Result:
            return await next(replace(inner, route_prefix=ctx.route_prefix))

        return await handler(scoped, unscoped)

    return guard


def routef(template: str, factory: Callable[..., Handler]) -> Handler:
    """Match a typed path template and build the stage from its values.

    Parameters are converted according to their converter and passed to
    *factory* as keyword arguments; they're also merged into
    ``ctx.path_params`` for downstream stages::

        routef("/user/{id:int}", lambda id: text(f"User ID: {id}"))

    A segment that fails conversion counts as a structural mismatch.
    """
    compiled = compile_template(template)

    async def guard(ctx: Context, next: Next) -> Result:
        params = compiled.match(ctx.path)
        if params is None:
            return UNMATCHED
        handler = await invoke(factory, **params)
        scoped = replace(ctx, path_params={**ctx.path_params, **params})
        return await handler(scoped, next)

    return guard


def must_accept(mime_types: Iterable[str]) -> Handler:
    """Pass if the ``Accept`` header admits one of *mime_types*.

    A missing ``Accept`` header accepts anything.
    """
    wanted = tuple(t.lower() for t in mime_types)

    async def guard(ctx: Context, next: Next) -> Result:
        accept = ctx.request.headers.get("accept")
        if accept is None:
            return await next(ctx)
        offered = [item.split(";", 1)[0].strip().lower() for item in accept.split(",")]
        for mime in wanted:
            major = mime.split("/", 1)[0]
            if mime in offered or f"{major}/*" in offered or "*/*" in offered:
                return await next(ctx)
        return UNMATCHED

    return guard


# ---------------------------------------------------------------------------
# Authorization guards
# ---------------------------------------------------------------------------


async def _deny(ctx: Context, on_fail: Handler, reason: str) -> Result:
    """Run *on_fail* to completion and turn its answer into ``Denied``."""
    principal = ctx.principal
    logger.debug(
        "Denied %s %s (%s)", ctx.request.method, ctx.request.path, reason
    )
    emit_security_event(
        "authz.denied",
        request=ctx.request,
        user=principal.name if principal is not None else None,
        details={"reason": reason},
    )
    result = await on_fail(ctx, finish)
    if isinstance(result, Matched):
        return Denied(result.response)
    if isinstance(result, Denied):
        return result
    # on_fail itself fell through; deny with whatever was staged
    return Denied(ctx.response)


def requires_authentication(on_fail: Handler) -> Handler:
    """Pass if the request carries a principal, else deny via *on_fail*."""

    async def guard(ctx: Context, next: Next) -> Result:
        if ctx.principal is None:
            return await _deny(ctx, on_fail, "unauthenticated")
        return await next(ctx)

    return guard


def requires_role(role: str, on_fail: Handler) -> Handler:
    """Pass if the principal holds *role*, else deny via *on_fail*.

    Anonymous requests are denied too.
    """

    async def guard(ctx: Context, next: Next) -> Result:
        principal = ctx.principal
        if principal is None or not principal.is_in_role(role):
            return await _deny(ctx, on_fail, f"missing role {role}")
        return await next(ctx)

    return guard


def requires_role_of(roles: Iterable[str], on_fail: Handler) -> Handler:
    """Pass if the principal holds at least one of *roles*."""
    accepted = frozenset(roles)

    async def guard(ctx: Context, next: Next) -> Result:
        principal = ctx.principal
        if principal is None or not (principal.roles & accepted):
            return await _deny(ctx, on_fail, f"none of roles {sorted(accepted)}")
        return await next(ctx)

    return guard


def requires_auth_policy(
    policy: Callable[[Principal], Any],
    on_fail: Handler,
) -> Handler:
    """Pass if ``policy(principal)`` is truthy; *policy* may be async.

    Anonymous requests are denied without consulting the policy.
    """

    async def guard(ctx: Context, next: Next) -> Result:
        principal = ctx.principal
        if principal is None or not await invoke(policy, principal):
            name = getattr(policy, "__name__", "policy")
            return await _deny(ctx, on_fail, f"policy {name}")
        return await next(ctx)

    return guard
