"""Terminal error formatting for unhandled request failures.

Structured, readable log output instead of a raw ``logger.exception()``
dump.

For kida template errors (views), the engine's own compact rendering is
wrapped in a banner together with the route::

    -- Template Error -----------------------------------------------
    K-RUN-001: Undefined variable 'nme' in Person.html:3
    ...
      Route: GET /razor
    -----------------------------------------------------------------

Everything else uses a traceback verbosity chosen by the
``WREN_TRACEBACK`` environment variable: ``compact`` (default, app
frames only), ``full`` or ``minimal``.
"""

from __future__ import annotations

import logging
import os
import traceback as _traceback
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wren.http.request import Request

logger = logging.getLogger("wren.server")

# Width of the terminal error banner
_BANNER_WIDTH = 65

_STDLIB_PREFIX = os.path.dirname(os.__file__)


def _is_kida_error(exc: BaseException) -> bool:
    """Check if an exception originates from the kida template engine."""
    module = type(exc).__module__ or ""
    return module == "kida" or module.startswith("kida.")


def _is_app_frame(filename: str) -> bool:
    """True if the frame is application code (not stdlib/site-packages/wren)."""
    if "site-packages" in filename or filename.startswith("<"):
        return False
    if f"{os.sep}wren{os.sep}" in filename:
        return False
    return not filename.startswith(_STDLIB_PREFIX)


def format_template_error(exc: BaseException, request: Request | None = None) -> str:
    """Format a kida template error with a banner and the request route."""
    parts = [f"-- Template Error {'-' * (_BANNER_WIDTH - 18)}"]
    format_compact = getattr(exc, "format_compact", None)
    parts.append(format_compact() if callable(format_compact) else str(exc))
    if request is not None:
        parts.append("")
        parts.append(f"  Route: {request.method} {request.path}")
    parts.append("-" * _BANNER_WIDTH)
    return "\n".join(parts)


def format_compact_traceback(exc: BaseException) -> str:
    """Error summary plus at most five application frames.

    Falls back to the last three frames when none belong to the app.
    """
    tb = exc.__traceback__
    frames = _traceback.extract_tb(tb) if tb else []
    app_frames = [f for f in frames if _is_app_frame(f.filename)]
    display_frames = app_frames if app_frames else frames[-3:]

    parts = [f"{type(exc).__name__}: {exc}"]
    if display_frames:
        parts.append("  Trace (app frames):")
        for frame in display_frames[-5:]:
            parts.append(f"    {frame.filename}:{frame.lineno} in {frame.name}")
            if frame.line:
                parts.append(f"      {frame.line.strip()}")
    return "\n".join(parts)


def format_minimal_error(exc: BaseException) -> str:
    """One-line error summary with the innermost location."""
    tb = exc.__traceback__
    frames = _traceback.extract_tb(tb) if tb else []
    last = frames[-1] if frames else None
    location = f" at {last.filename}:{last.lineno}" if last else ""
    return f"{type(exc).__name__}{location}: {exc}"


def log_error(
    exc: BaseException,
    request: Request | None = None,
    *,
    log: logging.Logger | None = None,
) -> None:
    """Log an unhandled request failure with the configured verbosity."""
    log = log or logger
    prefix = (
        f"500 {request.method} {request.path}" if request is not None else "Server error"
    )

    if _is_kida_error(exc):
        log.error("%s\n%s", prefix, format_template_error(exc, request))
        return

    style = os.environ.get("WREN_TRACEBACK", "compact").lower()
    if style == "full":
        log.error(prefix, exc_info=exc)
    elif style == "minimal":
        log.error("%s: %s", prefix, format_minimal_error(exc))
    else:
        log.error("%s\n%s", prefix, format_compact_traceback(exc))
