"""Routing: guards, combinators, and the ordered Router.

Pipelines are plain stages composed with ``pipe`` and ``choose``; the
Router evaluates them in registration order.
"""

from wren.routing.combinators import choose, compose, pipe, warbler
from wren.routing.guards import (
    DELETE,
    GET,
    HEAD,
    OPTIONS,
    PATCH,
    POST,
    PUT,
    method,
    must_accept,
    requires_authentication,
    requires_auth_policy,
    requires_role,
    requires_role_of,
    route,
    route_ci,
    route_starts_with,
    routef,
    sub_route,
)
from wren.routing.router import Router

__all__ = [
    "DELETE",
    "GET",
    "HEAD",
    "OPTIONS",
    "PATCH",
    "POST",
    "PUT",
    "Router",
    "choose",
    "compose",
    "method",
    "must_accept",
    "pipe",
    "requires_auth_policy",
    "requires_authentication",
    "requires_role",
    "requires_role_of",
    "route",
    "route_ci",
    "route_starts_with",
    "routef",
    "sub_route",
    "warbler",
]
