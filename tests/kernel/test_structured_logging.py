"""
Tests for structured JSON logging and the log context.
"""

import json
import logging

from mfg_kernel.logging_config import LogContext, StructuredFormatter, get_logger


def _format(record_extra: dict | None = None, msg: str = "event_name") -> dict:
    logger = logging.getLogger("mfg_kernel.test")
    record = logger.makeRecord(
        logger.name, logging.INFO, __file__, 1, msg, (), None, extra=record_extra,
    )
    return json.loads(StructuredFormatter().format(record))


class TestStructuredFormatter:

    def test_core_fields(self):
        payload = _format()

        assert payload["message"] == "event_name"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "mfg_kernel.test"
        assert "ts" in payload

    def test_extra_fields_are_serialized(self):
        from decimal import Decimal
        from uuid import uuid4

        ident = uuid4()
        payload = _format({"sku": "BAR", "quantity": Decimal("1.5"), "movement_id": ident})

        assert payload["sku"] == "BAR"
        assert payload["quantity"] == "1.5"
        assert payload["movement_id"] == str(ident)


class TestLogContext:

    def test_bind_adds_and_restores_fields(self):
        with LogContext.bind(operation="issue_materials", work_order_id="wo-1"):
            payload = _format()
            assert payload["operation"] == "issue_materials"
            assert payload["work_order_id"] == "wo-1"

        assert "operation" not in _format()

    def test_none_values_are_not_bound(self):
        with LogContext.bind(actor_id=None):
            assert "actor_id" not in LogContext.get_all()


class TestGetLogger:

    def test_namespaced_under_kernel(self):
        assert get_logger("modules.inventory").name == "mfg_kernel.modules.inventory"
