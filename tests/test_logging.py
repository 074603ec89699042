"""Tests for the structured logging system (posting_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from posting_kernel.domain.codes import ErrorCode
from posting_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "posting_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("posting_validated", extra={"line_count": 3, "currency": "MYR"})

        record = _parse_log(stream)
        assert record["line_count"] == 3
        assert record["currency"] == "MYR"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        LogContext.set(correlation_id="abc-123", document_id="inv-1")
        logger.info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["document_id"] == "inv-1"

    def test_decimal_and_enum_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.warning("posting_rejected", extra={"total": Decimal("110.00"), "code": ErrorCode.FORBIDDEN})

        record = _parse_log(stream)
        assert record["total"] == "110.00"
        assert record["code"] == "FORBIDDEN"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise ValueError("boom")
        except ValueError:
            logger.error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_kernel_exception_code_extracted(self):
        """Kernel exceptions carry a .code attribute and their context."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        from posting_kernel.exceptions import LookupFailedError

        try:
            raise LookupFailedError("accounts", "connection reset")
        except LookupFailedError:
            logger.error("posting_lookup_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "LOOKUP_FAILED"
        assert record["exc_type"] == "LookupFailedError"
        assert record["exc_resource"] == "accounts"
        assert record["exc_detail"] == "connection reset"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "document_id" not in record

    def test_uuid_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        uid = uuid4()
        logger.info("with_uuid", extra={"request_id": uid})

        record = _parse_log(stream)
        assert record["request_id"] == str(uid)

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # INFO is the default level, so the debug record is dropped
        assert len(logs) == 2
        for record in logs:
            assert {"ts", "level", "logger", "message"} <= record.keys()


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", actor_id="user-1")
        assert LogContext.get_all() == {"correlation_id": "x", "actor_id": "user-1"}

    def test_unknown_field_rejected(self):
        with pytest.raises(KeyError, match="event_id"):
            LogContext.set(event_id="y")

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(document_id="outer")
        with LogContext.bind(document_id="inner"):
            assert LogContext.get_all()["document_id"] == "inner"
        assert LogContext.get_all()["document_id"] == "outer"

    def test_bind_restores_none(self):
        """bind() restores to None if there was no previous value."""
        assert "tenant_id" not in LogContext.get_all()
        with LogContext.bind(tenant_id="temp"):
            assert LogContext.get_all()["tenant_id"] == "temp"
        assert "tenant_id" not in LogContext.get_all()

    def test_bind_skips_none_values(self):
        with LogContext.bind(company_id=None, document_type="INVOICE"):
            assert LogContext.get_all() == {"document_type": "INVOICE"}

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            actor_id="a",
            tenant_id="t",
            company_id="co",
            document_type="PAYMENT",
            document_id="pay-1",
        )
        ctx = LogContext.get_all()
        assert len(ctx) == 6
        assert ctx["document_type"] == "PAYMENT"


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)  # second call is no-op
        root = logging.getLogger("posting_kernel")
        assert len(root.handlers) == 1

    def test_get_logger_returns_child(self):
        logger = get_logger("services.posting_validator")
        assert logger.name == "posting_kernel.services.posting_validator"

    def test_logger_hierarchy(self):
        """Child loggers inherit the posting_kernel root config."""
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        child = get_logger("deep.nested.module")
        child.debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "posting_kernel.deep.nested.module"

    def test_reset_restores_propagation(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        assert logging.getLogger("posting_kernel").propagate is False
        reset_logging()
        root = logging.getLogger("posting_kernel")
        assert root.propagate is True
        assert root.handlers == []
