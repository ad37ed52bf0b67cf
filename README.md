# bftnode

Building blocks for a PBFT (Practical Byzantine Fault Tolerance) replica node. The package needs nothing beyond the standard library.

## Modules

- `bftnode.helper`: `ItemId` and `DataType`. Key packing with `merge_keys`, `merge_key_pair` and `merge_key_triple`, which raise `ValueError` when a key does not fit. Partition helpers `key_to_part` and `get_part_id`, plus `get_thdid_from_txnid` and `client_layout`. Clocks in nanoseconds: `get_wall_clock`, `get_server_clock` and `get_sys_clock`. `MyRand`, a small linear congruential generator.
- `bftnode.lockfree_queue`: `LockfreeQueue`, a thread-safe FIFO queue. `dequeue` raises `QueueEmpty` when there is nothing to take.
- `bftnode.config`: the `Config` dataclass of node settings. `parse_args` applies command-line options to a `Config`, computes the derived thread and node totals, and raises `UsageRequested` for `-h` and `ValueError` for an unknown option. `usage` returns the help text, `format_settings` returns one `name value` line per setting, and `main` is the entry point for the command.
- `bftnode.sim_manager`: `SimManager`, the run state shared by all threads. It tracks the start time, warm-up, timeout and completion, the setup responses still awaited, the transaction and in-flight counters, and the worker and sequencer epochs.
- `bftnode.timer`: `ServerTimer` and `ClientTimer`, which record pending requests as `TimerEntry` items.
  - `ServerTimer.check` reports whether the oldest request has passed the timeout, and returns false while the timer is paused.
  - `ClientTimer.check` removes expired batches from the front of the list and returns a copy of the last one it removed, or `None` if none had expired.
- `bftnode.msg_queue`: `MessageType`, `Message`, `MessageEntry` and `MessageQueue`.
  - `MessageQueue` keeps one queue per send thread.
  - A message with a single destination (`INIT_DONE`, `READY`, `KEYEX`, `CL_RSP`, `CL_BATCH`) goes to the queue chosen by that destination.
  - Broadcast types (`BATCH_REQ` and the PBFT checkpoint, prepare and commit messages) are copied into every send thread's queue. So are `VIEW_CHANGE` and `NEW_VIEW` when `view_changes=True`.
  - Each message is signed with SHA-256 as its type requires.
- `bftnode.work_queue`: `WorkQueue`, which routes incoming messages to worker threads, with and without pipelining. It also provides the ordering functions `sched_entry_before` and `wq_entry_before`, the `Priority` enum and `WorkQueueEntry`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

`bftnode-config` parses node options and prints the resulting settings:

```
bftnode-config -nid0 -n4 -cn1 -t5 -ts2
```

Each option is a dash, a short name and the value written directly after it, with no space in between. For example, `-n4` sets the node count and `-zipf0.5` sets the Zipf theta. `bftnode-config -h` prints every option. An unknown option is reported on standard error and the command exits with status 1.

## Example

```python
from bftnode.config import Config, parse_args
from bftnode.msg_queue import Message, MessageQueue, MessageType

config = parse_args(["-n4", "-t3"], Config())
assert config.total_thread_cnt == 3 + config.rem_thread_cnt + config.send_thread_cnt

queue = MessageQueue(send_thread_cnt=2)
queue.enqueue(0, Message(MessageType.PBFT_PREP_MSG, txn_id=7), [], [1, 2, 3])

entry = queue.dequeue(1)          # the last send thread gets the original
assert entry.msg.dest == [1, 2, 3]
assert len(entry.allsign) == 3    # one signature per destination
assert queue.dequeue(0) is not None  # every other send thread gets a copy
```

## What it does not do

This package provides the parts of a replica node, not a running node:

- It sends and receives nothing over a network. The queues only hand messages between threads in one process.
- It does not execute transactions and keeps no storage.
- It starts no worker or send threads. `bftnode-config` only parses options and prints the settings.