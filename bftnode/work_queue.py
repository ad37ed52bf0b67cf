"""Incoming work queues that hand messages to the worker threads."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, List, Optional

from bftnode.helper import get_server_clock
from bftnode.lockfree_queue import LockfreeQueue, QueueEmpty
from bftnode.msg_queue import Message, MessageType

_UINT64_MASK = (1 << 64) - 1
_MAX_RTYPE = 100


class Priority(enum.Enum):
    """Orderings a work queue may use."""

    FCFS = "fcfs"
    ACTIVE = "active"
    HOME = "home"


@dataclass
class WorkQueueEntry:
    """A queued message with the fields used to order it."""

    msg: Message
    batch_id: int
    txn_id: int
    rtype: MessageType
    starttime: int


def sched_entry_before(lhs: WorkQueueEntry, rhs: WorkQueueEntry) -> bool:
    """Scheduler order: lower batch first; within a batch, later start first."""
    if lhs.batch_id == rhs.batch_id:
        return lhs.starttime > rhs.starttime
    return lhs.batch_id < rhs.batch_id


def wq_entry_before(
    lhs: WorkQueueEntry,
    rhs: WorkQueueEntry,
    priority: Priority,
    is_local: Callable[[int], bool],
) -> bool:
    """Return whether ``lhs`` is ordered before ``rhs`` under ``priority``."""
    if priority is Priority.ACTIVE:
        lhs_query = lhs.rtype == MessageType.CL_QRY
        rhs_query = rhs.rtype == MessageType.CL_QRY
        if lhs_query and not rhs_query:
            return True
        if rhs_query and not lhs_query:
            return False
    elif priority is Priority.HOME:
        lhs_local = is_local(lhs.txn_id)
        rhs_local = is_local(rhs.txn_id)
        if lhs_local and not rhs_local:
            return True
        if rhs_local and not lhs_local:
            return False
    return lhs.starttime < rhs.starttime


def _pop(queue: LockfreeQueue[WorkQueueEntry]) -> Optional[WorkQueueEntry]:
    try:
        return queue.dequeue()
    except QueueEmpty:
        return None


class WorkQueue:
    """Routes incoming messages to the queues that each worker thread reads.

    Queue 0 is read by worker thread 0, queues ``1..index_size`` hold execute
    messages and the last queue holds checkpoint messages. New client
    requests at the primary go to a separate queue read by batching threads.
    """

    def __init__(
        self,
        node_id: int,
        thread_cnt: int,
        index_size: int,
        batch_size: int,
        execute_thd: int = 1,
        btorder_thd: int = 1,
        pipeline: bool = True,
        execution_thread: bool = True,
        current_view: Callable[[int], int] = lambda thd_id: 0,
        expected_execute_count: Callable[[], int] = lambda: 0,
        clock: Callable[[], int] = get_server_clock,
    ) -> None:
        if index_size <= 0 or batch_size <= 0:
            raise ValueError("index_size and batch_size must be positive")
        self.node_id = node_id
        self.thread_cnt = thread_cnt
        self.index_size = index_size
        self.batch_size = batch_size
        self.execute_thd = execute_thd
        self.btorder_thd = btorder_thd
        self.pipeline = pipeline
        self.execution_thread = execution_thread
        self._current_view = current_view
        self._expected_execute_count = expected_execute_count
        self._clock = clock
        self._work_queues: List[LockfreeQueue[WorkQueueEntry]] = [
            LockfreeQueue() for _ in range(index_size + 2)
        ]
        self._new_txn_queue: LockfreeQueue[WorkQueueEntry] = LockfreeQueue()

    @property
    def _checkpoint_queue(self) -> LockfreeQueue[WorkQueueEntry]:
        return self._work_queues[self.index_size + 1]

    def _execute_queue(self, txn_id: int) -> LockfreeQueue[WorkQueueEntry]:
        bid = ((txn_id + 2 - self.batch_size) & _UINT64_MASK) // self.batch_size
        return self._work_queues[bid % self.index_size + 1]

    @staticmethod
    def _check_rtype(entry: WorkQueueEntry) -> None:
        if int(entry.rtype) >= _MAX_RTYPE:
            raise ValueError(f"invalid message type {entry.rtype!r}")

    def enqueue(self, thd_id: int, msg: Message, busy: bool = False) -> bool:
        """Queue ``msg`` for the thread that handles it; return whether it was kept."""
        if msg is None:
            raise ValueError("message required")
        entry = WorkQueueEntry(
            msg=msg,
            batch_id=msg.batch_id,
            txn_id=msg.txn_id,
            rtype=msg.rtype,
            starttime=self._clock(),
        )
        rtype = msg.rtype
        is_primary = self.node_id == self._current_view(thd_id)

        if rtype in (MessageType.CL_QRY, MessageType.CL_BATCH):
            if is_primary:
                self._new_txn_queue.enqueue(entry)
            else:
                self._check_rtype(entry)
                self._work_queues[0].enqueue(entry)
            return True

        if self.pipeline:
            if rtype == MessageType.BATCH_REQ:
                self._check_rtype(entry)
                if is_primary:
                    return False
                self._work_queues[0].enqueue(entry)
            elif rtype == MessageType.EXECUTE_MSG:
                self._execute_queue(msg.txn_id).enqueue(entry)
            elif rtype == MessageType.PBFT_CHKPT_MSG:
                self._checkpoint_queue.enqueue(entry)
            else:
                self._check_rtype(entry)
                self._work_queues[0].enqueue(entry)
            return True

        self._check_rtype(entry)
        if rtype in (MessageType.EXECUTE_MSG, MessageType.PBFT_CHKPT_MSG):
            self._checkpoint_queue.enqueue(entry)
        else:
            self._work_queues[0].enqueue(entry)
        return True

    def dequeue(self, thd_id: int) -> Optional[Message]:
        """Return the next message for worker ``thd_id``, or ``None``.

        The message's ``wq_time`` is set to how long it waited.
        """
        entry = self._work_queues[0].dequeue() if thd_id == 0 and len(
            self._work_queues[0]
        ) else None

        if self.pipeline:
            tcount = self.thread_cnt - self.execute_thd - self.btorder_thd
            if tcount <= thd_id < tcount + self.execute_thd:
                entry = _pop(self._execute_queue(self._expected_execute_count()))
            elif thd_id >= tcount + self.execute_thd:
                entry = _pop(self._checkpoint_queue)
            if entry is None and 0 < thd_id <= tcount - 1:
                entry = _pop(self._new_txn_queue)
        else:
            if self.execution_thread:
                tcount = self.thread_cnt - self.btorder_thd - self.execute_thd
                if thd_id >= tcount + self.btorder_thd:
                    entry = _pop(self._checkpoint_queue)
            if entry is None and thd_id == 0:
                entry = _pop(self._new_txn_queue)

        if entry is None:
            return None
        entry.msg.wq_time = (self._clock() - entry.starttime) & _UINT64_MASK
        return entry.msg

    def get_cnt(self) -> int:
        """Return how many messages are waiting in all queues."""
        return sum(len(queue) for queue in self._work_queues) + len(self._new_txn_queue)