from __future__ import annotations

import logging

from loguru import logger as loguru_logger

from marksync.core.logging_utils import InterceptHandler, generate_correlation_id, record_extra


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="marksync.sync.orchestrator",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="sync_cycle_finished",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_record_extra_keeps_only_custom_fields() -> None:
    extra = record_extra(_record(correlation_id="abc123", write_attempts=2, _private=1))
    assert extra == {"correlation_id": "abc123", "write_attempts": 2}


class TestInterceptHandler:
    def test_forwards_message_and_extra_to_loguru(self) -> None:
        captured: list[dict] = []
        sink_id = loguru_logger.add(lambda message: captured.append(message.record), level="DEBUG")
        try:
            InterceptHandler().emit(_record(correlation_id="abc123", state="done"))
        finally:
            loguru_logger.remove(sink_id)

        assert len(captured) == 1
        assert captured[0]["message"] == "sync_cycle_finished"
        assert captured[0]["level"].name == "INFO"
        assert captured[0]["extra"] == {"correlation_id": "abc123", "state": "done"}

    def test_unknown_level_falls_back_to_number(self) -> None:
        captured: list[dict] = []
        sink_id = loguru_logger.add(lambda message: captured.append(message.record), level=1)
        record = _record()
        record.levelname = "VERBOSE"
        record.levelno = 15
        try:
            InterceptHandler().emit(record)
        finally:
            loguru_logger.remove(sink_id)

        assert captured[0]["level"].no == 15


def test_correlation_ids_are_short_and_unique() -> None:
    ids = {generate_correlation_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(len(value) == 12 for value in ids)
