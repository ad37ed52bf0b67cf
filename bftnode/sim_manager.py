"""Tracks the phases and shared counters of a simulation run."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from bftnode.helper import get_server_clock, get_wall_clock

logger = logging.getLogger(__name__)

BILLION = 1_000_000_000
_UINT64_MASK = (1 << 64) - 1


class SimManager:
    """Run state shared by all threads: start time, warm-up, completion and epochs."""

    def __init__(
        self,
        total_node_cnt: int,
        done_timer: int,
        warmup_timer: int = 0,
        seq_batch_time_limit: int = 0,
        clock: Callable[[], int] = get_server_clock,
        wall_clock: Callable[[], int] = get_wall_clock,
    ) -> None:
        self._lock = threading.RLock()
        self._clock = clock
        self.done_timer = done_timer
        self.warmup_timer = warmup_timer
        self.seq_batch_time_limit = seq_batch_time_limit

        self.sim_done = False
        self.warmup = False
        self.warmup_end_time = 0
        self.start_set = False
        self.sim_init_done = False
        self.txn_cnt = 0
        self.inflight_cnt = 0
        self.epoch_txn_cnt = 0
        self.worker_epoch = 1
        self.seq_epoch = 0
        self.rsp_cnt = (total_node_cnt - 1) & _UINT64_MASK
        self.total_runtime: Optional[int] = None

        self.run_starttime = clock()
        self.last_worker_epoch_time = self.run_starttime
        self.last_seq_epoch_time = wall_clock()

    def _elapsed(self) -> int:
        return (self._clock() - self.run_starttime) & _UINT64_MASK

    def set_starttime(self, starttime: int) -> None:
        """Set the run start time; only the first call has any effect."""
        with self._lock:
            if self.start_set:
                return
            self.start_set = True
            self.run_starttime = starttime
            self.last_worker_epoch_time = starttime
            self.sim_done = False
        logger.info("Starttime set to %d", starttime)

    def timeout(self) -> bool:
        """Return whether the run has lasted its warm-up plus its done time."""
        return self._elapsed() >= self.done_timer + self.warmup_timer

    def is_done(self) -> bool:
        """Return whether the run is over, marking it done on timeout."""
        done = self.sim_done or self.timeout()
        if done and not self.sim_done:
            self.set_done()
        return done

    def is_warmup_done(self) -> bool:
        """Return whether the warm-up period has passed."""
        if self.warmup:
            return True
        done = self._elapsed() >= self.warmup_timer
        if done:
            with self._lock:
                if self.warmup_end_time == 0:
                    self.warmup_end_time = self._clock()
                self.warmup = True
        return done

    def is_setup_done(self) -> bool:
        return self.sim_init_done

    def set_setup_done(self) -> None:
        with self._lock:
            self.sim_init_done = True

    def set_done(self) -> None:
        """Mark the run done and record the measured run time once."""
        with self._lock:
            if self.sim_done:
                return
            self.sim_done = True
            if self.warmup_end_time == 0:
                self.warmup_end_time = self.run_starttime
            if self.is_warmup_done():
                self.total_runtime = (self._clock() - self.warmup_end_time) & _UINT64_MASK

    def process_setup_msg(self) -> int:
        """Count one setup response; return how many are still awaited."""
        with self._lock:
            self.rsp_cnt = (self.rsp_cnt - 1) & _UINT64_MASK
            left = self.rsp_cnt
        if left == 0:
            self.set_setup_done()
        return left

    def inc_txn_cnt(self) -> None:
        with self._lock:
            self.txn_cnt += 1

    def inc_inflight_cnt(self) -> None:
        with self._lock:
            self.inflight_cnt += 1

    def dec_inflight_cnt(self) -> None:
        with self._lock:
            self.inflight_cnt = (self.inflight_cnt - 1) & _UINT64_MASK

    def inc_epoch_txn_cnt(self) -> None:
        with self._lock:
            self.epoch_txn_cnt += 1

    def decr_epoch_txn_cnt(self) -> None:
        with self._lock:
            self.epoch_txn_cnt -= 1

    def advance_seq_epoch(self) -> None:
        """Move to the next sequencer epoch."""
        with self._lock:
            self.seq_epoch += 1
            self.last_seq_epoch_time += self.seq_batch_time_limit

    def next_worker_epoch(self) -> None:
        """Move to the next worker epoch, stamping the time it began."""
        with self._lock:
            self.last_worker_epoch_time = self._clock()
            self.worker_epoch += 1

    def seconds_from_start(self, time: int) -> float:
        """Return seconds between the run start and ``time`` (nanoseconds)."""
        return (time - self.run_starttime) / BILLION