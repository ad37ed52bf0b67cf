import threading

import pytest

from bftnode.lockfree_queue import LockfreeQueue, QueueEmpty


def test_values_come_out_in_order():
    queue = LockfreeQueue()
    for value in (10, 20, 30):
        assert queue.enqueue(value) is True
    assert [queue.dequeue() for _ in range(3)] == [10, 20, 30]


def test_empty_queue_raises():
    queue = LockfreeQueue()
    with pytest.raises(QueueEmpty):
        queue.dequeue()


def test_drained_queue_raises_again():
    queue = LockfreeQueue()
    queue.enqueue("a")
    assert queue.dequeue() == "a"
    with pytest.raises(QueueEmpty):
        queue.dequeue()


def test_len_tracks_contents():
    queue = LockfreeQueue()
    queue.enqueue(1)
    queue.enqueue(2)
    assert len(queue) == 2
    queue.dequeue()
    assert len(queue) == 1


def test_concurrent_producers_lose_nothing():
    queue = LockfreeQueue()
    per_thread = 500

    def produce(base):
        for offset in range(per_thread):
            queue.enqueue(base + offset)

    threads = [threading.Thread(target=produce, args=(n * per_thread,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    drained = []
    while True:
        try:
            drained.append(queue.dequeue())
        except QueueEmpty:
            break
    assert sorted(drained) == list(range(4 * per_thread))