"""Wren: a combinator web framework for ASGI.

Routes are pipelines of small async stages. Guards decide whether a
pipeline applies (or may proceed), responders finish the response, and
``pipe`` / ``choose`` put them together. The first pipeline that does
not fall through wins.

Basic usage::

    from wren import App, GET, choose, pipe, route, text

    app = App([
        pipe(GET, choose([
            pipe(route("/"), text("index")),
            pipe(route("/ping"), text("pong")),
        ])),
    ])

    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "DELETE",
    "GET",
    "POST",
    "PUT",
    "UNMATCHED",
    "App",
    "AppConfig",
    "BadRequest",
    "ConfigurationError",
    "Context",
    "Denied",
    "HTTPError",
    "Handler",
    "Matched",
    "Next",
    "NotFound",
    "Request",
    "Response",
    "Router",
    "WrenError",
    "choose",
    "pipe",
    "route",
    "routef",
    "text",
    "warbler",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import wren`` fast while providing a clean top-level API.
    """
    if name == "App":
        from wren.app import App

        return App

    if name == "AppConfig":
        from wren.config import AppConfig

        return AppConfig

    if name == "Request":
        from wren.http.request import Request

        return Request

    if name == "Response":
        from wren.http.response import Response

        return Response

    if name in ("Context", "Denied", "Handler", "Matched", "Next", "UNMATCHED"):
        from wren import context as _ctx

        return getattr(_ctx, name)

    if name in (
        "DELETE",
        "GET",
        "POST",
        "PUT",
        "Router",
        "choose",
        "pipe",
        "route",
        "routef",
        "warbler",
    ):
        from wren import routing as _routing

        return getattr(_routing, name)

    if name == "text":
        from wren.responders import text

        return text

    if name in ("BadRequest", "ConfigurationError", "HTTPError", "NotFound", "WrenError"):
        from wren import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
