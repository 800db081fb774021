"""Structured logging utilities for the fan-out engine.

Rationale:
- Central place to configure consistent JSON (or plain) logging.
- Streaming and orchestration code never configures handlers itself; it emits
  through an injected trace sink (``base.observability``) whose default
  implementation lands here.

``normalized_log_event`` wraps ``log_event`` and injects the canonical
structured keys ``structured`` (bool), ``phase`` (str), ``attempt`` (int|None),
``error_code`` (str|None), ``emitted`` (bool|None) and ``tokens``
(mapping|None), so every stream and orchestrator event can be aggregated the
same way.
"""
from __future__ import annotations

import contextlib
import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Mapping, Optional

from .log_support import JsonFormatter, LogContext

BASE_LOGGER_NAME = "fanout"
LOG_LEVEL_ENV = "FANOUT_LOG_LEVEL"
_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_BASE_LOGGER_ATTR = "_fanout_logger_initialized"
_CONSOLE_HANDLER_ATTR = "_fanout_console_handler"
_FILE_HANDLER_ATTR = "_fanout_file_handler"


def _make_formatter(json_mode: bool) -> logging.Formatter:
    return JsonFormatter() if json_mode else logging.Formatter(_PLAIN_FORMAT)


_LEVEL_ALIASES = {"WARN": logging.WARNING, "FATAL": logging.CRITICAL}


def _parse_level(value: str | None, default: int = logging.INFO) -> int:
    """Map a level name such as ``"debug"`` or ``"WARN"`` to its numeric value.

    Unknown or empty names yield ``default``.
    """
    name = (value or "").strip().upper()
    if not name:
        return default
    if name in _LEVEL_ALIASES:
        return _LEVEL_ALIASES[name]
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else default


def _console_handler(json_mode: bool, level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(_make_formatter(json_mode))
    setattr(handler, _CONSOLE_HANDLER_ATTR, True)
    return handler


def _drop_handler(logger: logging.Logger, handler: logging.Handler) -> None:
    logger.removeHandler(handler)
    with contextlib.suppress(OSError, ValueError):
        handler.close()


def _stream_closed(handler: logging.Handler) -> bool:
    stream = getattr(handler, "stream", None)
    return stream is None or bool(getattr(stream, "closed", False))


def _ensure_base_logger(json_mode: bool, level: int) -> logging.Logger:
    """Return the shared ``fanout`` logger, creating its console handler once.

    ``FANOUT_LOG_LEVEL`` overrides ``level`` and is re-read on every call.
    Console handlers whose stream has been closed underneath them (pytest's
    capture does that between tests) are swapped for fresh ones.
    """
    logger = logging.getLogger(BASE_LOGGER_NAME)
    desired = _parse_level(os.getenv(LOG_LEVEL_ENV), default=level)
    logger.setLevel(desired)
    if not getattr(logger, _BASE_LOGGER_ATTR, False):
        logger.handlers[:] = [_console_handler(json_mode, desired)]
        logger.propagate = False
        setattr(logger, _BASE_LOGGER_ATTR, True)
        return logger

    for handler in [h for h in logger.handlers if getattr(h, _CONSOLE_HANDLER_ATTR, False)]:
        if _stream_closed(handler):
            _drop_handler(logger, handler)
            logger.addHandler(_console_handler(json_mode, desired))
        else:
            handler.setLevel(desired)
    return logger


def get_logger(name: str = BASE_LOGGER_NAME, json_mode: bool = True, level: int = logging.INFO) -> logging.Logger:
    """Return the shared logger or a child that propagates into it.

    Child names should live under the ``fanout.`` namespace (e.g.
    ``fanout.orchestrator``) so their records reach the shared handler.
    """
    base_logger = _ensure_base_logger(json_mode=json_mode, level=level)
    if name == BASE_LOGGER_NAME:
        return base_logger
    child = logging.getLogger(name)
    for handler in [h for h in child.handlers if getattr(h, _CONSOLE_HANDLER_ATTR, False)]:
        _drop_handler(child, handler)
    child.setLevel(logging.NOTSET)
    child.propagate = True
    return child


def configure_logger(
    *,
    level: int | str | None = None,
    file_path: Optional[str] = None,
    json_mode: bool = True,
) -> logging.Logger:
    """Adjust the shared ``fanout`` logger at runtime.

    ``level`` accepts a number or a name and is pushed down to every handler;
    ``None`` keeps the current level. ``file_path`` attaches a rotating file
    handler (10MB x 5) at that path, replacing any file handler attached here
    earlier, and ``None`` detaches it. Foreign handlers are left alone.
    """
    logger = get_logger(BASE_LOGGER_NAME, json_mode=json_mode)
    if isinstance(level, str):
        level = _parse_level(level, default=logger.level)
    if level is not None:
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)

    target = os.path.abspath(os.path.expanduser(file_path)) if file_path else None
    keep: Optional[logging.Handler] = None
    for handler in [h for h in logger.handlers if getattr(h, _FILE_HANDLER_ATTR, False)]:
        if target is not None and getattr(handler, "baseFilename", None) == target:
            keep = handler
        else:
            _drop_handler(logger, handler)
    if target is None:
        return logger

    if keep is None:
        os.makedirs(os.path.dirname(target), exist_ok=True)
        keep = RotatingFileHandler(target, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")
        setattr(keep, _FILE_HANDLER_ATTR, True)
        logger.addHandler(keep)
    keep.setLevel(logger.level)
    keep.setFormatter(_make_formatter(json_mode))
    return logger


def log_event(
    logger: logging.Logger,
    event: str,
    ctx: LogContext | None = None,
    *,
    level: int = logging.INFO,
    keep_none: bool = False,
    **fields: Any,
) -> None:
    """Emit a structured log event as a single JSON line.

    Keys whose value is ``None`` are dropped unless ``keep_none`` is set;
    ``normalized_log_event`` relies on that to guarantee its required keys.
    """
    payload: Dict[str, Any] = {"event": event}
    if ctx:
        payload |= ctx.to_dict()
    if keep_none:
        payload.update(fields)
    else:
        payload.update({k: v for k, v in fields.items() if v is not None})
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))


# Keys every normalized event carries (``error_code`` only when set).
REQUIRED_NORMALIZED_KEYS = ("structured", "phase", "attempt", "error_code", "emitted", "tokens")


def _coerce_tokens(tokens: Any) -> Any:
    if tokens is None:
        return None
    if isinstance(tokens, Mapping):
        return dict(tokens)
    if hasattr(tokens, "model_dump"):
        return tokens.model_dump()
    try:
        return dict(tokens)
    except (TypeError, ValueError):
        return {"value": repr(tokens)}


def normalized_log_event(  # noqa: PLR0913
    logger: logging.Logger,
    event: str,
    ctx: LogContext | None = None,
    *,
    phase: str,
    attempt: int | None = None,
    error_code: str | None = None,
    emitted: bool | None = None,
    tokens: Any = None,
    structured: bool = True,
    level: int = logging.INFO,
    **extra_fields: Any,
) -> None:
    """Emit ``event`` with the normalized key set filled in.

    Extras are appended after the normalized keys and may only fill a slot
    that is still ``None``. ``None`` extras are skipped.
    """
    payload: Dict[str, Any] = dict(
        structured=structured,
        phase=phase,
        attempt=attempt,
        emitted=emitted,
        tokens=_coerce_tokens(tokens),
    )
    if error_code is not None:
        payload["error_code"] = error_code
    payload.update(
        (key, value)
        for key, value in extra_fields.items()
        if value is not None and payload.get(key) is None
    )
    log_event(logger, event, ctx, level=level, keep_none=True, **payload)


__all__ = [
    "BASE_LOGGER_NAME",
    "LOG_LEVEL_ENV",
    "LogContext",
    "get_logger",
    "configure_logger",
    "log_event",
    "normalized_log_event",
    "REQUIRED_NORMALIZED_KEYS",
]
