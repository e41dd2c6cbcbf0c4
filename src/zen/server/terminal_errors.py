"""Terminal error formatting for the zen server.

Internal errors are logged as a compact summary instead of a raw
traceback: the exception line plus the application frames that led to
it. Kida template errors use kida's own compact format::

    -- Template Error -----------------------------------------------
    K-RUN-001: Undefined variable 'titel' in <string>:3
    ...
      Route: GET /books
    -----------------------------------------------------------------

Set ``ZEN_TRACEBACK=full`` for the whole traceback, or ``minimal`` for a
single line.
"""

from __future__ import annotations

import logging
import os
import traceback as _traceback
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from zen.http.request import Request

logger = logging.getLogger("zen.server")

_BANNER_WIDTH = 65


def _is_kida_error(exc: BaseException) -> bool:
    module = type(exc).__module__ or ""
    return "kida" in module


def _is_app_frame(filename: str) -> bool:
    """True if the frame is from the application (not stdlib/site-packages)."""
    if "site-packages" in filename or filename.startswith("<"):
        return False
    stdlib_prefix = os.path.dirname(os.__file__)
    return not filename.startswith(stdlib_prefix)


def error_location(exc: BaseException) -> tuple[str, int | None]:
    """File and line of the frame that raised *exc*, best effort.

    Returns ``("", None)`` for an exception without a traceback.
    """
    frames = _traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
    if not frames:
        return "", None
    last = frames[-1]
    return last.filename, last.lineno


def format_template_error(exc: BaseException, request: Request | None = None) -> str:
    parts = [f"-- Template Error {'-' * (_BANNER_WIDTH - 18)}"]
    if hasattr(exc, "format_compact"):
        parts.append(exc.format_compact())
    else:
        parts.append(str(exc))
    if request is not None:
        parts.append("")
        parts.append(f"  Route: {request.method} {request.path}")
    parts.append("-" * _BANNER_WIDTH)
    return "\n".join(parts)


def format_compact_traceback(exc: BaseException) -> str:
    """Exception summary plus at most five application frames.

    Falls back to the last three frames when none belong to the app.
    """
    frames = _traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
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
    filename, line = error_location(exc)
    location = f" at {filename}:{line}" if filename else ""
    return f"{type(exc).__name__}{location}: {exc}"


def log_error(exc: BaseException, request: Request | None = None, *, prefix: str | None = None) -> None:
    """Log an internal error in the configured verbosity."""
    if prefix is None:
        prefix = f"500 {request.method} {request.path}" if request is not None else "Server error"

    if _is_kida_error(exc):
        logger.error("%s\n%s", prefix, format_template_error(exc, request))
        return

    style = os.environ.get("ZEN_TRACEBACK", "compact").lower()
    if style == "full":
        logger.error("%s", prefix, exc_info=exc)
    elif style == "minimal":
        logger.error("%s: %s", prefix, format_minimal_error(exc))
    else:
        logger.error("%s\n%s", prefix, format_compact_traceback(exc))
