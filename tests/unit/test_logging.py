"""Tests for the structured logging system (gym_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from gym_kernel.exceptions import PartialFailureError
from gym_kernel.logging_config import (
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
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


class TestStructuredFormatter:
    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "gym_kernel.test"
        assert "ts" in record

    def test_extra_fields_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        contract_id = uuid4()
        get_logger("test").info(
            "contract_created",
            extra={"contract_id": contract_id, "price": Decimal("99.90")},
        )

        record = _parse_log(stream)
        assert record["contract_id"] == str(contract_id)
        assert record["price"] == "99.90"

    def test_exception_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise PartialFailureError("create_contract", ["create_contract"], "link_association", RuntimeError("x"))
        except PartialFailureError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "PartialFailureError"
        assert record["exc_code"] == "PARTIAL_FAILURE"
        assert record["exc_failed_step"] == "link_association"
        assert record["exc_completed_steps"] == ["create_contract"]


class TestLogContext:
    def test_bound_fields_appear_and_are_restored(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")

        with LogContext.bind(operation="cascade_from_client", root_id=uuid4()):
            logger.info("inside")
        logger.info("outside")

        lines = [json.loads(line) for line in stream.getvalue().strip().split("\n")]
        assert lines[0]["operation"] == "cascade_from_client"
        assert "root_id" in lines[0]
        assert "operation" not in lines[1]

    def test_configure_is_idempotent(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        configure_logging(handler=handler)
        assert len(logging.getLogger("gym_kernel").handlers) == 1
