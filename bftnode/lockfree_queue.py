"""A thread-safe FIFO queue of values shared between producers and consumers."""

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Generic, TypeVar

T = TypeVar("T")


class QueueEmpty(Exception):
    """Raised when a value is taken from an empty queue."""


class LockfreeQueue(Generic[T]):
    """A first-in first-out queue safe to use from many threads at once."""

    def __init__(self) -> None:
        self._entries: Deque[T] = deque()
        self._lock = threading.Lock()

    def enqueue(self, value: T) -> bool:
        """Append ``value`` at the tail; always succeeds."""
        with self._lock:
            self._entries.append(value)
        return True

    def dequeue(self) -> T:
        """Remove and return the oldest value; raise ``QueueEmpty`` when empty."""
        with self._lock:
            if not self._entries:
                raise QueueEmpty("queue is empty")
            return self._entries.popleft()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)