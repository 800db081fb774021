"""Focused tests for crux_fanout.base.logging and the logging trace sink.

Covers:
- _parse_level string parsing
- normalized_log_event emits required keys, drops a None error_code, coerces tokens
- JsonFormatter hoists JSON message keys to the top level
- LoggingTraceSink routes failures to WARNING
- LoggingTraceSink lifts request id and batch index into the log context
- configure_logger attaches and removes the rotating file handler
"""
from __future__ import annotations

import json
import logging

from crux_fanout.base.log_support import JsonFormatter, LogContext
from crux_fanout.base.logging import (
    REQUIRED_NORMALIZED_KEYS,
    _parse_level,  # type: ignore[attr-defined]
    configure_logger,
    get_logger,
    normalized_log_event,
)
from crux_fanout.base.observability import LoggingTraceSink, TraceEvent


class _ListHandler(logging.Handler):
    """Capture log records into a list for assertions."""

    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - exercised via tests
        self.records.append(record)

    def payloads(self) -> list[dict]:
        return [json.loads(r.getMessage()) for r in self.records]


def _capture(name: str) -> tuple[logging.Logger, _ListHandler]:
    logger = get_logger(name)
    handler = _ListHandler()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    return logger, handler


def test_parse_level_variants():
    assert _parse_level(None) == logging.INFO  # nosec B101
    assert _parse_level("debug") == logging.DEBUG  # nosec B101
    assert _parse_level("WARN") == logging.WARNING  # nosec B101
    assert _parse_level("unknown", default=logging.ERROR) == logging.ERROR  # nosec B101


def test_normalized_log_event_emits_required_keys():
    logger, handler = _capture("fanout.test.normalized")
    try:
        ctx = LogContext(provider="p", model="m", request_id="r1")
        normalized_log_event(
            logger,
            "stream.end",
            ctx,
            phase="finalize",
            error_code="timeout",
            emitted=True,
            tokens={"output": 5},
            chunk_count=3,
        )
        normalized_log_event(logger, "stream.open", ctx, phase="start", tokens=[("output", 1)])
    finally:
        logger.removeHandler(handler)

    first, second = handler.payloads()
    for key in REQUIRED_NORMALIZED_KEYS:
        assert key in first  # nosec B101
    assert first["event"] == "stream.end" and first["provider"] == "p"  # nosec B101
    assert first["tokens"] == {"output": 5} and first["chunk_count"] == 3  # nosec B101
    assert "error_code" not in second  # nosec B101
    assert second["tokens"] == {"output": 1}  # nosec B101


def test_json_formatter_hoists_payload():
    record = logging.LogRecord("fanout.x", logging.INFO, __file__, 1, json.dumps({"event": "e", "n": 1}), None, None)
    out = json.loads(JsonFormatter().format(record))
    assert out["event"] == "e" and out["n"] == 1 and out["level"] == "INFO"  # nosec B101

    plain = logging.LogRecord("fanout.x", logging.INFO, __file__, 1, "hello", None, None)
    assert json.loads(JsonFormatter().format(plain))["msg"] == "hello"  # nosec B101


def test_logging_trace_sink_levels():
    logger, handler = _capture("fanout.test.trace")
    try:
        sink = LoggingTraceSink(logger)
        sink.emit(TraceEvent(name="stream.open", phase="start", provider="p", model="m", fields={"tokens": None}))
        sink.emit(TraceEvent(name="stream.error", phase="finalize", error_code="timeout"))
    finally:
        logger.removeHandler(handler)

    levels = [r.levelno for r in handler.records]
    assert levels == [logging.INFO, logging.WARNING]  # nosec B101
    payloads = handler.payloads()
    assert payloads[0]["event"] == "stream.open" and payloads[0]["phase"] == "start"  # nosec B101
    assert payloads[1]["error_code"] == "timeout"  # nosec B101


def test_logging_trace_sink_lifts_request_and_batch_into_context():
    logger, handler = _capture("fanout.test.context")
    try:
        sink = LoggingTraceSink(logger)
        sink.emit(
            TraceEvent(
                name="orchestrator.unit.end",
                phase="unit",
                provider="p",
                model="m",
                fields={"request_id": "r9", "batch": 2, "success": True},
            )
        )
    finally:
        logger.removeHandler(handler)

    (payload,) = handler.payloads()
    assert payload["request_id"] == "r9" and payload["batch"] == 2  # nosec B101
    assert payload["provider"] == "p" and payload["success"] is True  # nosec B101
    assert LogContext(batch=0).to_dict() == {"batch": 0}  # nosec B101


def test_configure_logger_file_handler(tmp_path):
    target = tmp_path / "logs" / "fanout.log"
    logger = configure_logger(level="DEBUG", file_path=str(target))
    try:
        logger.debug(json.dumps({"event": "file.check"}))
        for h in logger.handlers:
            h.flush()
        assert "file.check" in target.read_text(encoding="utf-8")  # nosec B101
    finally:
        configure_logger(level="INFO", file_path=None)
    assert all(getattr(h, "baseFilename", None) is None for h in logger.handlers)  # nosec B101
