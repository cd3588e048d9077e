"""Bounded, append-only record logs.

Records stored here are frozen dataclasses.  The only mutation besides
``append`` is :meth:`BoundedLog.amend_last`, which replaces the newest slot
with a modified copy.
"""

from __future__ import annotations

import dataclasses
from collections import deque
from typing import Generic, Iterator, TypeVar

from loguru import logger

T = TypeVar("T")


class BoundedLog(Generic[T]):
    """FIFO log capped at ``capacity`` entries, oldest evicted first."""

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._items: deque[T] = deque(maxlen=capacity)

    def append(self, item: T) -> T | None:
        """Append *item*. Returns the evicted entry, if any."""
        evicted = self._items[0] if len(self._items) == self.capacity else None
        self._items.append(item)
        return evicted

    def amend_last(self, **changes) -> T | None:
        """Replace the newest record with ``dataclasses.replace(last, **changes)``.

        No-op returning None when the log is empty.
        """
        if not self._items:
            logger.debug("amend_last on empty log ignored")
            return None
        amended = dataclasses.replace(self._items[-1], **changes)
        self._items[-1] = amended
        return amended

    @property
    def last(self) -> T | None:
        return self._items[-1] if self._items else None

    def clear(self) -> None:
        self._items.clear()

    def to_list(self) -> list[T]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    def __repr__(self) -> str:
        return f"BoundedLog({len(self._items)}/{self.capacity})"
