import pytest

from bftnode.sim_manager import SimManager


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def make(total_nodes=4, done=50, warmup=10, seq_limit=7, start=100):
    clock = FakeClock(start)
    wall = FakeClock(1000)
    sim = SimManager(total_nodes, done, warmup, seq_limit, clock=clock, wall_clock=wall)
    return sim, clock


def test_initial_state():
    sim, _ = make()
    assert sim.run_starttime == 100
    assert sim.worker_epoch == 1
    assert sim.seq_epoch == 0
    assert sim.rsp_cnt == 3
    assert sim.last_seq_epoch_time == 1000
    assert not sim.is_setup_done()


def test_timeout_after_done_plus_warmup():
    sim, clock = make(done=50, warmup=10, start=100)
    clock.now = 159
    assert not sim.timeout()
    assert not sim.is_done()
    clock.now = 160
    assert sim.timeout()
    assert sim.is_done()
    assert sim.sim_done


def test_set_starttime_only_once():
    sim, _ = make()
    sim.set_starttime(500)
    sim.set_starttime(900)
    assert sim.run_starttime == 500
    assert sim.last_worker_epoch_time == 500


def test_warmup_records_end_time_once():
    sim, clock = make(warmup=10, start=100)
    clock.now = 105
    assert not sim.is_warmup_done()
    clock.now = 112
    assert sim.is_warmup_done()
    clock.now = 130
    assert sim.is_warmup_done()
    assert sim.warmup_end_time == 112


def test_set_done_records_runtime():
    sim, clock = make(warmup=10, start=100)
    clock.now = 120
    assert sim.is_warmup_done()
    clock.now = 150
    sim.set_done()
    assert sim.total_runtime == 150 - 120
    clock.now = 400
    sim.set_done()
    assert sim.total_runtime == 150 - 120


def test_setup_done_after_all_responses():
    sim, _ = make(total_nodes=3)
    assert sim.process_setup_msg() == 1
    assert not sim.is_setup_done()
    assert sim.process_setup_msg() == 0
    assert sim.is_setup_done()


def test_counters():
    sim, _ = make()
    sim.inc_txn_cnt()
    sim.inc_inflight_cnt()
    sim.inc_inflight_cnt()
    sim.dec_inflight_cnt()
    sim.inc_epoch_txn_cnt()
    sim.decr_epoch_txn_cnt()
    sim.decr_epoch_txn_cnt()
    assert sim.txn_cnt == 1
    assert sim.inflight_cnt == 1
    assert sim.epoch_txn_cnt == -1


def test_epochs_advance():
    sim, clock = make(seq_limit=7)
    sim.advance_seq_epoch()
    sim.advance_seq_epoch()
    assert sim.seq_epoch == 2
    assert sim.last_seq_epoch_time == 1000 + 2 * 7
    clock.now = 333
    sim.next_worker_epoch()
    assert sim.worker_epoch == 2
    assert sim.last_worker_epoch_time == 333


def test_seconds_from_start():
    sim, _ = make(start=100)
    assert sim.seconds_from_start(100 + 1_000_000_000) == pytest.approx(1.0)