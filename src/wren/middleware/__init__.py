"""Middleware: Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request: Request, next: Next) -> Response

Built-in middleware:
    CookieAuthentication -- Signed principal cookie (requires itsdangerous)
"""

from wren.middleware.auth import CookieAuthConfig, CookieAuthentication, CookieSecurePolicy
from wren.middleware.protocol import Middleware, Next

__all__ = [
    "CookieAuthConfig",
    "CookieAuthentication",
    "CookieSecurePolicy",
    "Middleware",
    "Next",
]
