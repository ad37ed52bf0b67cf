"""Timers that notice client requests or batches that take too long."""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from bftnode.helper import get_server_clock

_UINT64_MASK = (1 << 64) - 1


@dataclass
class TimerEntry:
    """A pending request: when it started, its identifying hash and its message."""

    timestamp: int
    hash: str
    msg: Any


class ServerTimer:
    """Tracks client requests a replica is working on, oldest first."""

    def __init__(self, timeout: int, clock: Callable[[], int] = get_server_clock) -> None:
        self.timeout = timeout
        self._clock = clock
        self._entries: List[TimerEntry] = []
        self._paused = False
        self._lock = threading.Lock()

    @property
    def paused(self) -> bool:
        return self._paused

    def start(self, digest: str, message: Any) -> None:
        """Start timing the request identified by ``digest``."""
        entry = TimerEntry(self._clock(), digest, message)
        with self._lock:
            self._entries.append(entry)

    def end(self, digest: str) -> bool:
        """Stop timing the first request with ``digest``; return whether one was found."""
        with self._lock:
            for position, entry in enumerate(self._entries):
                if entry.hash == digest:
                    del self._entries[position]
                    return True
        return False

    def check(self) -> bool:
        """Return whether the oldest request has run past the timeout."""
        with self._lock:
            if self._paused or not self._entries:
                return False
            oldest = self._entries[0]
            return ((self._clock() - oldest.timestamp) & _UINT64_MASK) >= self.timeout

    def pause(self) -> None:
        with self._lock:
            self._paused = True

    def resume(self) -> None:
        with self._lock:
            self._paused = False

    def pending(self, idx: int) -> TimerEntry:
        """Return the pending request at position ``idx``."""
        return self._entries[idx]

    def clear(self) -> None:
        """Drop every pending request."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class ClientTimer:
    """Tracks batches a client has sent, keyed by their first request's timestamp."""

    def __init__(self, timeout: int, clock: Callable[[], int] = get_server_clock) -> None:
        self.timeout = timeout
        self._clock = clock
        self._entries: List[TimerEntry] = []
        self._lock = threading.Lock()

    def start(self, timestamp: int, batch: Any) -> None:
        """Start timing ``batch`` under ``timestamp``."""
        entry = TimerEntry(timestamp, "A", batch)
        with self._lock:
            self._entries.append(entry)

    def end(self, timestamp: int) -> bool:
        """Stop timing the first batch with ``timestamp``; return whether one was found."""
        with self._lock:
            for position, entry in enumerate(self._entries):
                if entry.timestamp == timestamp:
                    del self._entries[position]
                    return True
        return False

    def check(self) -> Optional[Any]:
        """Remove expired batches from the front and return a copy of the last one.

        Scanning stops at the first batch still within the timeout. After a
        batch is removed, the one that moved into its place is passed over.
        Returns ``None`` when nothing had expired.
        """
        expired: Optional[Any] = None
        with self._lock:
            now = self._clock()
            position = 0
            while position < len(self._entries):
                entry = self._entries[position]
                if ((now - entry.timestamp) & _UINT64_MASK) < self.timeout:
                    break
                expired = copy.deepcopy(entry.msg)
                del self._entries[position]
                position += 1
        return expired

    def pending(self) -> TimerEntry:
        """Return the oldest pending batch."""
        return self._entries[0]

    def clear(self) -> None:
        """Drop every pending batch."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)