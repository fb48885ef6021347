"""A FIFO event queue and a lock-protected map."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Hashable
from typing import Any


class EventQueue:
    """First-in, first-out queue of events."""

    def __init__(self) -> None:
        self._elements: deque[Any] = deque()

    def __len__(self) -> int:
        return len(self._elements)

    def empty(self) -> bool:
        """True when the queue holds nothing."""
        return not self._elements

    def push(self, value: Any) -> None:
        """Add ``value`` at the back of the queue."""
        self._elements.append(value)

    def pop(self) -> Any:
        """Remove and return the oldest value."""
        if not self._elements:
            raise IndexError("pop from an empty queue")
        return self._elements.popleft()

    def peek(self) -> Any:
        """Return the oldest value without removing it."""
        if not self._elements:
            raise IndexError("peek at an empty queue")
        return self._elements[0]


class SyncMap:
    """A dictionary whose reads and writes are serialised by a lock."""

    def __init__(self) -> None:
        self._data: dict[Hashable, Any] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._data

    def load(self, key: Hashable) -> Any:
        """Return the value stored for ``key``; raise KeyError if there is none."""
        with self._lock:
            return self._data[key]

    def store(self, key: Hashable, value: Any) -> None:
        """Set the value for ``key``."""
        with self._lock:
            self._data[key] = value

    def load_or_store(self, key: Hashable, value: Any) -> tuple[Any, bool]:
        """Return ``(existing, True)`` if ``key`` is present, else store ``value`` and return ``(value, False)``."""
        with self._lock:
            if key in self._data:
                return self._data[key], True
            self._data[key] = value
            return value, False

    def delete(self, key: Hashable) -> None:
        """Remove ``key`` if present."""
        with self._lock:
            self._data.pop(key, None)

    def items(self) -> list[tuple[Hashable, Any]]:
        """Return a snapshot of the key/value pairs."""
        with self._lock:
            return list(self._data.items())