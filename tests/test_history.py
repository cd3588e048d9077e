"""Tests for orthohr.history.BoundedLog."""

from dataclasses import dataclass

import pytest

from orthohr.history import BoundedLog


@dataclass(frozen=True)
class Record:
    n: int
    note: str = ""


class TestBoundedLog:
    def test_append_and_iterate(self):
        log = BoundedLog(3)
        for i in range(3):
            assert log.append(Record(i)) is None
        assert [r.n for r in log] == [0, 1, 2]

    def test_eviction_returns_oldest(self):
        log = BoundedLog(2)
        log.append(Record(0))
        log.append(Record(1))
        evicted = log.append(Record(2))
        assert evicted == Record(0)
        assert log.to_list() == [Record(1), Record(2)]

    def test_amend_last(self):
        log = BoundedLog(3)
        log.append(Record(0))
        log.append(Record(1))
        amended = log.amend_last(note="done")
        assert amended == Record(1, "done")
        assert log.last is amended
        assert log[0] == Record(0)

    def test_amend_empty_is_noop(self):
        log = BoundedLog(3)
        assert log.amend_last(note="x") is None
        assert len(log) == 0

    def test_last_and_clear(self):
        log = BoundedLog(3)
        assert log.last is None
        log.append(Record(5))
        assert log.last == Record(5)
        log.clear()
        assert len(log) == 0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            BoundedLog(0)

    def test_repr(self):
        log = BoundedLog(4)
        log.append(Record(1))
        assert repr(log) == "BoundedLog(1/4)"
