"""Auxiliary logging helpers (formatters, context) used by ``base.logging`` and the logging trace sink."""

from .json_formatter import JsonFormatter, ISO
from .logging_context import LogContext

__all__ = ["JsonFormatter", "ISO", "LogContext"]
