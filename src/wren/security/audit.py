"""Security audit events.

Sign-in, sign-out, rejected cookies and denied authorization each emit
a ``SecurityEvent``. Nothing is delivered until the application installs
a sink::

    from wren.security import set_security_event_sink

    set_security_event_sink(lambda event: audit_log.info("%s %s", event.name, event.user))

Sinks are process-wide and called synchronously on the request path.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from time import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from wren.http.request import Request


@dataclass(frozen=True, slots=True)
class SecurityEvent:
    """What happened, to whom, on which route."""

    name: str
    timestamp: float = field(default_factory=time)
    path: str | None = None
    method: str | None = None
    user: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


type SecurityEventSink = Callable[[SecurityEvent], None]

_lock = threading.Lock()
_current_sink: SecurityEventSink | None = None


def set_security_event_sink(sink: SecurityEventSink | None) -> None:
    """Install *sink* for every later event; ``None`` stops delivery."""
    global _current_sink
    with _lock:
        _current_sink = sink


def emit_security_event(
    name: str,
    *,
    request: Request | None = None,
    user: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Deliver an event named *name* to the installed sink, if any."""
    with _lock:
        sink = _current_sink
    if sink is None:
        return

    path = method = None
    if request is not None:
        path, method = request.path, request.method
    sink(SecurityEvent(name, path=path, method=method, user=user, details=dict(details or {})))
