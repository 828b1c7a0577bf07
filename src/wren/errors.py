"""Wren exception hierarchy.

Shared across the router, app, handler pipeline and middleware so every
module raises and catches the same types.

Note that a guard falling through is *not* an error: it is the
``UNMATCHED`` result and never leaves the router.
"""

from dataclasses import dataclass


class WrenError(Exception):
    """Base for all wren-specific errors."""


class ConfigurationError(WrenError):
    """Raised when app configuration is invalid.

    Typically surfaces during ``App._freeze()`` or middleware construction.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(WrenError):
    """An error that maps directly to an HTTP status code.

    Raised by stages or body readers. The ASGI handler catches these and
    answers with the status and detail as a plain-text body.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class BadRequest(HTTPError):  # noqa: N818
    """400: the request body could not be read or bound."""

    def __init__(self, detail: str = "Bad request") -> None:
        super().__init__(status=400, detail=detail)


class NotFound(HTTPError):  # noqa: N818
    """404: no pipeline matched the request."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class ClientDisconnected(WrenError):
    """The client went away while the request body was being read."""
