"""
Internal diagnostics for non-fatal errors in the shipping pipeline.

Diagnostics are structured JSON lines written to stderr. They never raise
into the caller and are rate limited per key so a failing endpoint retried
every few hundred milliseconds does not flood the stream.

``warn`` honours ``Settings.internal_logging_enabled``, either the value a
logger passes in or the environment default; ``error`` is always emitted.
"""

from __future__ import annotations

import sys
import time
from typing import Any, Callable

import orjson

Writer = Callable[[dict[str, Any]], None]

# Cached internal_logging_enabled; None means "not resolved yet"
_internal_logging_enabled: bool | None = None

_RATE_LIMIT_WINDOW_SECONDS = 5.0
_monotonic = time.monotonic
_last_emit: dict[str, float] = {}
_suppressed: dict[str, int] = {}


def _stderr_writer(payload: dict[str, Any]) -> None:
    data = orjson.dumps(payload, default=str)
    buf = sys.stderr
    buf.write(data.decode("utf-8"))
    buf.write("\n")
    buf.flush()


_writer: Writer = _stderr_writer


def set_writer_for_tests(writer: Writer) -> None:
    """Replace the diagnostics writer (tests capture payloads this way)."""
    global _writer
    _writer = writer


def _reset_for_tests() -> None:
    global _internal_logging_enabled, _writer
    _internal_logging_enabled = None
    _writer = _stderr_writer
    _last_emit.clear()
    _suppressed.clear()


def _is_enabled() -> bool:
    global _internal_logging_enabled
    if _internal_logging_enabled is None:
        try:
            from .settings import Settings

            _internal_logging_enabled = bool(Settings().internal_logging_enabled)
        except Exception:
            _internal_logging_enabled = True
    return _internal_logging_enabled


def _should_emit(key: str | None) -> tuple[bool, int]:
    if key is None:
        return True, 0
    now = _monotonic()
    last = _last_emit.get(key)
    if last is not None and now - last < _RATE_LIMIT_WINDOW_SECONDS:
        _suppressed[key] = _suppressed.get(key, 0) + 1
        return False, 0
    _last_emit[key] = now
    return True, _suppressed.pop(key, 0)


def _emit(
    level: str,
    component: str,
    message: str,
    rate_limit_key: str | None,
    fields: dict[str, Any],
) -> None:
    try:
        ok, suppressed = _should_emit(rate_limit_key)
        if not ok:
            return
        payload: dict[str, Any] = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "level": level,
            "logger": "humiolog",
            "component": component,
            "message": message,
        }
        if suppressed:
            payload["suppressed"] = suppressed
        payload.update(fields)
        _writer(payload)
    except Exception:
        # Diagnostics must never break the pipeline
        pass


def warn(
    component: str,
    message: str,
    *,
    _rate_limit_key: str | None = None,
    _enabled: bool | None = None,
    **fields: Any,
) -> None:
    """Emit a WARN line.

    ``_enabled`` carries a logger's own ``internal_logging_enabled``; when
    None the environment-wide setting applies.
    """
    enabled = _is_enabled() if _enabled is None else _enabled
    if not enabled:
        return
    _emit("WARN", component, message, _rate_limit_key, fields)


def error(
    component: str,
    message: str,
    *,
    _rate_limit_key: str | None = None,
    **fields: Any,
) -> None:
    _emit("ERROR", component, message, _rate_limit_key, fields)


def exception(component: str, message: str, exc: BaseException, **fields: Any) -> None:
    """Emit an error line describing ``exc``."""
    error(
        component,
        message,
        error_type=type(exc).__name__,
        error=str(exc),
        **fields,
    )
