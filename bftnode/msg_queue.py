"""Outgoing message queues, one per send thread, with per-destination signing."""

from __future__ import annotations

import copy
import enum
import hashlib
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from bftnode.helper import get_server_clock
from bftnode.lockfree_queue import LockfreeQueue, QueueEmpty

_UINT64_MASK = (1 << 64) - 1


class MessageType(enum.IntEnum):
    """Kinds of message exchanged between nodes."""

    INIT_DONE = 0
    READY = 1
    KEYEX = 2
    CL_QRY = 3
    CL_RSP = 4
    CL_BATCH = 5
    BATCH_REQ = 6
    EXECUTE_MSG = 7
    PBFT_CHKPT_MSG = 8
    PBFT_PREP_MSG = 9
    PBFT_COMMIT_MSG = 10
    VIEW_CHANGE = 11
    NEW_VIEW = 12


@dataclass
class Message:
    """A message with its routing data and the last signature made for it."""

    rtype: MessageType
    txn_id: int = 0
    batch_id: int = 0
    payload: object = None
    dest: List[int] = field(default_factory=list)
    signature: str = ""
    mq_time: int = 0
    wq_time: int = 0

    def sign(self, dest: int) -> str:
        """Compute and store the signature of this message for node ``dest``."""
        text = f"{int(self.rtype)}:{self.txn_id}:{self.batch_id}:{self.payload!r}:{dest}"
        self.signature = hashlib.sha256(text.encode("utf-8")).hexdigest()
        return self.signature


@dataclass
class MessageEntry:
    """A queued message, when it was queued and the signatures that go with it."""

    msg: Message
    starttime: int = 0
    allsign: List[str] = field(default_factory=list)


_SINGLE_DEST = frozenset(
    {
        MessageType.INIT_DONE,
        MessageType.READY,
        MessageType.KEYEX,
        MessageType.CL_RSP,
        MessageType.CL_BATCH,
    }
)
_BROADCAST = frozenset(
    {
        MessageType.BATCH_REQ,
        MessageType.PBFT_CHKPT_MSG,
        MessageType.PBFT_PREP_MSG,
        MessageType.PBFT_COMMIT_MSG,
    }
)
_SIGN_PER_DEST = frozenset(
    {
        MessageType.PBFT_CHKPT_MSG,
        MessageType.PBFT_PREP_MSG,
        MessageType.PBFT_COMMIT_MSG,
    }
)
_VIEW_TYPES = frozenset({MessageType.VIEW_CHANGE, MessageType.NEW_VIEW})


class MessageQueue:
    """Hands outgoing messages to the send threads.

    A message for a single destination goes to the queue of one send thread,
    chosen by that destination. A message for many destinations is copied so
    that every send thread gets one.
    """

    def __init__(
        self,
        send_thread_cnt: int,
        view_changes: bool = False,
        clock: Callable[[], int] = get_server_clock,
    ) -> None:
        if send_thread_cnt <= 0:
            raise ValueError("send_thread_cnt must be positive")
        self.send_thread_cnt = send_thread_cnt
        self.view_changes = view_changes
        self._clock = clock
        self._queues: List[LockfreeQueue[MessageEntry]] = [
            LockfreeQueue() for _ in range(send_thread_cnt)
        ]

    def _broadcast_types(self) -> frozenset:
        return _BROADCAST | _VIEW_TYPES if self.view_changes else _BROADCAST

    def _signed_types(self) -> frozenset:
        return _SIGN_PER_DEST | _VIEW_TYPES if self.view_changes else _SIGN_PER_DEST

    def enqueue(
        self,
        thd_id: int,
        msg: Optional[Message],
        ndsign: Sequence[str],
        dest: Sequence[int],
    ) -> None:
        """Sign ``msg`` as its type requires and queue it for ``dest``."""
        if msg is None:
            return
        rtype = msg.rtype
        broadcast = self._broadcast_types()
        if (rtype in _SINGLE_DEST or rtype in broadcast) and not dest:
            raise ValueError("at least one destination is required")

        entry = MessageEntry(msg)
        if rtype == MessageType.CL_RSP:
            entry.allsign.append(msg.sign(dest[0]))
        elif rtype == MessageType.CL_BATCH:
            msg.sign(dest[0])
            if not ndsign:
                raise ValueError("a client batch needs its signature")
            entry.allsign.append(ndsign[0])
        elif rtype == MessageType.BATCH_REQ:
            entry.allsign.extend(ndsign)
        elif rtype in self._signed_types():
            entry.allsign.extend(msg.sign(node) for node in dest)

        if rtype in _SINGLE_DEST:
            entry.starttime = self._clock()
            msg.dest.append(dest[0])
            self._queues[dest[0] % self.send_thread_cnt].enqueue(entry)
        elif rtype in broadcast:
            template = copy.deepcopy(msg)
            for queue in self._queues[:-1]:
                duplicate = copy.deepcopy(template)
                duplicate.dest.extend(dest)
                queue.enqueue(
                    MessageEntry(duplicate, self._clock(), list(entry.allsign))
                )
            msg.dest.extend(dest)
            entry.starttime = self._clock()
            self._queues[-1].enqueue(entry)

    def dequeue(self, thd_id: int) -> Optional[MessageEntry]:
        """Take the next entry for send thread ``thd_id``, or ``None`` if there is none.

        The message's ``dest`` holds its destinations and ``mq_time`` is set
        to how long it waited.
        """
        try:
            entry = self._queues[thd_id % self.send_thread_cnt].dequeue()
        except QueueEmpty:
            return None
        entry.msg.mq_time = (self._clock() - entry.starttime) & _UINT64_MASK
        return entry