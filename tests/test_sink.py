"""Tests for forwarding entries to the sink logger."""

import io
import json
import logging
from datetime import datetime
from unittest.mock import Mock

import pytest

from src.tailwatch.logging_manager import JsonLineFormatter
from src.tailwatch.models import LogEntry
from src.tailwatch.sink import LoggerSink, map_level


class TestMapLevel:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("emergency", logging.CRITICAL),
            ("alert", logging.CRITICAL),
            ("critical", logging.CRITICAL),
            ("error", logging.ERROR),
            ("warning", logging.WARNING),
            ("warn", logging.WARNING),
            ("notice", logging.INFO),
            ("info", logging.INFO),
            ("debug", logging.DEBUG),
            ("ERROR", logging.ERROR),
            ("verbose", logging.INFO),
        ],
    )
    def test_mapping(self, name: str, expected: int) -> None:
        assert map_level(name) == expected


class TestLoggerSink:
    """Tests for LoggerSink."""

    def test_logs_message_with_entry_extras(self) -> None:
        logger = Mock()
        sink = LoggerSink(logger)
        entry = LogEntry(
            content='{"level": "error", "message": "boom"}',
            source_file="logstash-1.json",
            timestamp=datetime(2024, 1, 15, 10, 30, 0, 500000),
            metadata={"level": "error", "message": "boom"},
        )

        sink.log_entry(entry)

        logger.log.assert_called_once_with(
            logging.ERROR,
            "boom",
            extra={
                "source_file": "logstash-1.json",
                "timestamp": "2024-01-15 10:30:00",
                "metadata": {"level": "error", "message": "boom"},
            },
        )

    def test_entry_without_metadata(self) -> None:
        logger = Mock()
        sink = LoggerSink(logger)

        sink.log_entry(LogEntry(content="plain text", source_file="monitor", timestamp=datetime(2024, 1, 1)))

        level, message = logger.log.call_args.args
        assert level == logging.INFO
        assert message == "plain text"
        assert "metadata" not in logger.log.call_args.kwargs["extra"]

    def test_defaults_to_sink_logger(self) -> None:
        sink = LoggerSink()
        assert sink._logger.name == "tailwatch.sink"

    def test_json_line_carries_entry_fields_at_top_level(self) -> None:
        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(JsonLineFormatter())
        logger = logging.getLogger("tailwatch.sink.test")
        logger.setLevel(logging.INFO)
        logger.propagate = False
        logger.addHandler(handler)
        try:
            LoggerSink(logger).log_entry(
                LogEntry(
                    content='{"message": "hi", "user": 7}',
                    source_file="logstash-1.json",
                    timestamp=datetime(2024, 1, 15, 10, 30, 0),
                    metadata={"message": "hi", "user": 7},
                )
            )
        finally:
            logger.removeHandler(handler)

        data = json.loads(stream.getvalue())
        assert data["message"] == "hi"
        assert data["source_file"] == "logstash-1.json"
        assert data["timestamp"] == "2024-01-15 10:30:00"
        assert data["metadata"] == {"message": "hi", "user": 7}
        assert "context" not in data
