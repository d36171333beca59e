"""Tests for the tailwatch data models."""

import json
from datetime import datetime, timedelta

import pytest

from src.tailwatch.models import FilePosition, LogEntry, LogFile, position_key


def _log_file(name: str, modified_at: datetime, size: int = 0) -> LogFile:
    return LogFile(path=f"/logs/{name}", filename=name, modified_at=modified_at, size=size)


class TestLogFile:
    """Tests for LogFile."""

    def test_is_newer_than_is_strict(self) -> None:
        t = datetime(2024, 1, 15, 10, 0, 0)
        older = _log_file("a.json", t)
        newer = _log_file("b.json", t + timedelta(seconds=1))
        same = _log_file("c.json", t)

        assert newer.is_newer_than(older)
        assert not older.is_newer_than(newer)
        assert not same.is_newer_than(older)

    def test_is_immutable(self) -> None:
        log_file = _log_file("a.json", datetime.now())
        with pytest.raises(AttributeError):
            log_file.size = 10  # type: ignore[misc]


class TestFilePosition:
    """Tests for FilePosition validation and serialization."""

    def test_rejects_empty_file_path(self) -> None:
        with pytest.raises(ValueError, match="File path"):
            FilePosition(file_path="", offset=0, last_updated=datetime.now(), project_name="app")

    def test_rejects_negative_offset(self) -> None:
        with pytest.raises(ValueError, match="negative"):
            FilePosition(file_path="/a.log", offset=-1, last_updated=datetime.now(), project_name="app")

    def test_rejects_empty_project(self) -> None:
        with pytest.raises(ValueError, match="Project name"):
            FilePosition(file_path="/a.log", offset=0, last_updated=datetime.now(), project_name="")

    def test_key(self, sample_position: FilePosition) -> None:
        assert sample_position.key == "app:/var/log/app/logstash-2024-01-15.json"
        assert sample_position.key == position_key(sample_position.file_path, "app")

    def test_to_dict_wire_format(self, sample_position: FilePosition) -> None:
        assert sample_position.to_dict() == {
            "file_path": "/var/log/app/logstash-2024-01-15.json",
            "position": 1024,
            "last_updated": "2024-01-15 10:30:00",
            "project_name": "app",
        }

    def test_from_dict_round_trip(self, sample_position: FilePosition) -> None:
        restored = FilePosition.from_dict(json.loads(json.dumps(sample_position.to_dict())))
        assert restored == sample_position

    def test_from_dict_missing_field(self) -> None:
        with pytest.raises(ValueError, match="position"):
            FilePosition.from_dict(
                {"file_path": "/a.log", "last_updated": "2024-01-15 10:30:00", "project_name": "app"}
            )

    def test_from_dict_rejects_bool_position(self) -> None:
        with pytest.raises(ValueError, match="integer"):
            FilePosition.from_dict(
                {
                    "file_path": "/a.log",
                    "position": True,
                    "last_updated": "2024-01-15 10:30:00",
                    "project_name": "app",
                }
            )

    def test_from_dict_rejects_bad_timestamp(self) -> None:
        with pytest.raises(ValueError, match="Invalid date format"):
            FilePosition.from_dict(
                {
                    "file_path": "/a.log",
                    "position": 10,
                    "last_updated": "2024-01-15T10:30:00",
                    "project_name": "app",
                }
            )

    def test_from_dict_rejects_non_mapping(self) -> None:
        with pytest.raises(ValueError):
            FilePosition.from_dict(["not", "a", "dict"])  # type: ignore[arg-type]


class TestLogEntry:
    """Tests for LogEntry parsing."""

    def test_from_json_line_with_timestamp(self) -> None:
        line = json.dumps(
            {"@timestamp": "2024-01-15T10:30:00.123456Z", "level": "error", "message": "boom"}
        )
        entry = LogEntry.from_json_line(line, "logstash-1.json")

        assert entry is not None
        assert entry.timestamp == datetime(2024, 1, 15, 10, 30, 0, 123456)
        assert entry.source_file == "logstash-1.json"
        assert entry.content == line
        assert entry.level == "error"
        assert entry.message == "boom"

    def test_from_json_line_without_timestamp_uses_now(self) -> None:
        before = datetime.now()
        entry = LogEntry.from_json_line('{"message": "hi"}', "a.json")

        assert entry is not None
        assert entry.timestamp >= before

    def test_unparseable_timestamp_falls_back_to_now(self) -> None:
        before = datetime.now()
        entry = LogEntry.from_json_line('{"@timestamp": "yesterday"}', "a.json")

        assert entry is not None
        assert entry.timestamp >= before

    @pytest.mark.parametrize("line", ["not json", "[1, 2, 3]", '"just a string"', "42", "{broken"])
    def test_from_json_line_rejects_non_objects(self, line: str) -> None:
        assert LogEntry.from_json_line(line, "a.json") is None

    def test_defaults_without_level_or_message(self) -> None:
        entry = LogEntry.from_json_line('{"foo": "bar"}', "a.json")

        assert entry is not None
        assert entry.level == "info"
        assert entry.message == '{"foo": "bar"}'

    def test_entry_without_metadata(self) -> None:
        entry = LogEntry(content="plain", source_file="monitor", timestamp=datetime.now())

        assert entry.level == "info"
        assert entry.message == "plain"
