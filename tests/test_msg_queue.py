import pytest

from bftnode.msg_queue import Message, MessageEntry, MessageQueue, MessageType


class FakeClock:
    def __init__(self, value=0):
        self.value = value

    def __call__(self):
        return self.value


def drain(queue, thd_id):
    entries = []
    while True:
        entry = queue.dequeue(thd_id)
        if entry is None:
            return entries
        entries.append(entry)


def test_rejects_non_positive_send_thread_count():
    with pytest.raises(ValueError):
        MessageQueue(0)


def test_none_message_is_ignored():
    queue = MessageQueue(2)
    queue.enqueue(0, None, [], [1])
    assert queue.dequeue(0) is None
    assert queue.dequeue(1) is None


def test_sign_depends_on_destination():
    msg = Message(MessageType.PBFT_PREP_MSG, txn_id=5)
    first = msg.sign(1)
    assert msg.signature == first
    assert msg.sign(1) == first
    assert msg.sign(2) != first


def test_client_response_goes_to_destination_thread():
    queue = MessageQueue(3)
    msg = Message(MessageType.CL_RSP, txn_id=7)
    queue.enqueue(0, msg, [], [4])
    assert queue.dequeue(0) is None
    entry = queue.dequeue(4)
    assert isinstance(entry, MessageEntry)
    assert entry.msg is msg
    assert entry.msg.dest == [4]
    assert entry.allsign == [msg.sign(4)]


def test_client_batch_carries_given_signature():
    queue = MessageQueue(2)
    msg = Message(MessageType.CL_BATCH)
    queue.enqueue(0, msg, ["sig-a", "sig-b"], [3])
    entry = queue.dequeue(1)
    assert entry.allsign == ["sig-a"]
    assert entry.msg.dest == [3]


def test_single_destination_required():
    queue = MessageQueue(2)
    with pytest.raises(ValueError):
        queue.enqueue(0, Message(MessageType.INIT_DONE), [], [])


def test_batch_request_reaches_every_send_thread():
    queue = MessageQueue(3)
    msg = Message(MessageType.BATCH_REQ, txn_id=9, payload="batch")
    queue.enqueue(0, msg, ["s1", "s2"], [1, 2, 3])
    entries = [queue.dequeue(thd) for thd in range(3)]
    assert all(entry is not None for entry in entries)
    for entry in entries:
        assert entry.msg.dest == [1, 2, 3]
        assert entry.allsign == ["s1", "s2"]
        assert entry.msg.txn_id == 9
        assert entry.msg.payload == "batch"
    assert entries[-1].msg is msg
    assert entries[0].msg is not msg
    assert entries[0].msg is not entries[1].msg
    assert all(queue.dequeue(thd) is None for thd in range(3))


def test_prepare_signed_once_per_destination():
    queue = MessageQueue(2)
    msg = Message(MessageType.PBFT_PREP_MSG, txn_id=3)
    queue.enqueue(0, msg, [], [1, 2, 3])
    first = queue.dequeue(0)
    last = queue.dequeue(1)
    assert len(first.allsign) == 3
    assert len(set(first.allsign)) == 3
    assert first.allsign == last.allsign
    assert first.allsign[2] == msg.sign(3)


def test_view_change_needs_flag():
    off = MessageQueue(1)
    off.enqueue(0, Message(MessageType.VIEW_CHANGE), [], [1])
    assert off.dequeue(0) is None

    on = MessageQueue(1, view_changes=True)
    on.enqueue(0, Message(MessageType.VIEW_CHANGE), [], [1, 2])
    entry = on.dequeue(0)
    assert entry.msg.dest == [1, 2]
    assert len(entry.allsign) == 2


def test_unrouted_type_is_not_queued():
    queue = MessageQueue(2)
    queue.enqueue(0, Message(MessageType.EXECUTE_MSG), [], [0])
    assert drain(queue, 0) == []
    assert drain(queue, 1) == []


def test_queue_time_is_recorded():
    clock = FakeClock(100)
    queue = MessageQueue(1, clock=clock)
    queue.enqueue(0, Message(MessageType.READY), [], [0])
    clock.value = 250
    entry = queue.dequeue(0)
    assert entry.starttime == 100
    assert entry.msg.mq_time == 150


def test_fifo_order_within_a_thread():
    queue = MessageQueue(1)
    msgs = [Message(MessageType.KEYEX, txn_id=i) for i in range(4)]
    for msg in msgs:
        queue.enqueue(0, msg, [], [0])
    assert [entry.msg for entry in drain(queue, 0)] == msgs