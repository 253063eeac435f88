"""
Tests for the in-memory record buffer and the record model.
"""

import dataclasses
import threading

import pytest

from nrlogs.core.buffer import RecordBuffer
from nrlogs.core.levels import Severity
from nrlogs.models.log_record import LogRecord


def make_record(message: str, level: Severity = Severity.INFO) -> LogRecord:
    return LogRecord(level=level, message=message, attributes={}, timestamp=1)


class TestRecordBuffer:
    """Test append and take-all semantics."""

    def test_take_all_preserves_order(self) -> None:
        buffer = RecordBuffer()
        for message in ["a", "b", "c"]:
            buffer.append(make_record(message))

        batch = buffer.take_all()

        assert [record.message for record in batch] == ["a", "b", "c"]
        assert isinstance(batch, tuple)

    def test_take_all_empties_buffer(self) -> None:
        buffer = RecordBuffer()
        buffer.append(make_record("a"))

        buffer.take_all()

        assert len(buffer) == 0
        assert buffer.take_all() == ()

    def test_empty_take_has_no_side_effects(self) -> None:
        buffer = RecordBuffer()
        assert buffer.take_all() == ()
        buffer.append(make_record("later"))
        assert len(buffer) == 1

    def test_batches_are_disjoint(self) -> None:
        """Test records appended after a take land only in the next batch."""
        buffer = RecordBuffer()
        buffer.append(make_record("first"))
        first = buffer.take_all()
        buffer.append(make_record("second"))
        second = buffer.take_all()

        assert [r.message for r in first] == ["first"]
        assert [r.message for r in second] == ["second"]

    def test_concurrent_appends_are_never_lost(self) -> None:
        """Test appends from other threads during repeated drains all land in some batch."""
        buffer = RecordBuffer()
        producers = 4
        per_producer = 2000

        def produce(worker: int) -> None:
            for i in range(per_producer):
                buffer.append(make_record(f"{worker}-{i}"))

        threads = [threading.Thread(target=produce, args=(n,)) for n in range(producers)]
        for thread in threads:
            thread.start()

        drained = []
        while any(thread.is_alive() for thread in threads):
            drained.extend(buffer.take_all())
        for thread in threads:
            thread.join()
        drained.extend(buffer.take_all())

        messages = [record.message for record in drained]
        assert len(messages) == producers * per_producer
        assert len(set(messages)) == len(messages)
        for worker in range(producers):
            own = [m for m in messages if m.startswith(f"{worker}-")]
            assert own == [f"{worker}-{i}" for i in range(per_producer)]

    def test_iteration_does_not_consume(self) -> None:
        buffer = RecordBuffer()
        buffer.append(make_record("a"))
        assert [r.message for r in buffer] == ["a"]
        assert len(buffer) == 1


class TestLogRecord:
    """Test record immutability and wire rendering."""

    def test_record_is_frozen(self) -> None:
        record = make_record("a")
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.message = "b"  # type: ignore[misc]

    def test_attributes_are_copied(self) -> None:
        attributes = {"user": 1}
        record = LogRecord(level=Severity.INFO, message="a", attributes=attributes)
        attributes["user"] = 2

        assert record.attributes == {"user": 1}

    def test_timestamp_defaults_to_epoch_millis(self) -> None:
        record = LogRecord(level=Severity.INFO, message="a")
        assert isinstance(record.timestamp, int)
        assert record.timestamp > 1_600_000_000_000

    def test_to_wire_sets_log_level_and_merges_attributes(self) -> None:
        record = LogRecord(level=Severity.WARN, message="b", attributes={"x": 1}, timestamp=10)

        assert record.to_wire() == {
            "timestamp": 10,
            "message": "b",
            "attributes": {"log_level": "warn", "x": 1},
        }

    def test_to_wire_json_encodes_non_string_messages(self) -> None:
        record = LogRecord(level=Severity.INFO, message={"k": [1, 2]}, timestamp=10)
        assert record.to_wire()["message"] == '{"k": [1, 2]}'
