"""Assorted helpers: item ids, key merging, partition lookup, clocks, PRNG."""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

logger = logging.getLogger(__name__)

PAGE_SIZE = 4096
RAND_MAX = 2147483647

_UINT64_BITS = 64
_UINT64_MASK = (1 << _UINT64_BITS) - 1
_LCG_MULTIPLIER = 1103515247
_LCG_INCREMENT = 12345
_LCG_MODULUS = 1 << 63
_LCG_DIVISOR = 65537


class DataType(enum.Enum):
    """Kind of storage an item id points to."""

    TABLE = 0
    PAGE = 1
    ROW = 2


@dataclass(eq=False)
class ItemId:
    """Reference to a table, page or row; equal when type and location match."""

    type: DataType = DataType.ROW
    location: Any = 0
    next: Optional["ItemId"] = field(default=None, repr=False)
    valid: bool = False

    def reset(self) -> None:
        """Mark the id invalid and clear its location and link."""
        self.valid = False
        self.location = 0
        self.next = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ItemId):
            return NotImplemented
        return self.type == other.type and self.location == other.location

    __hash__ = None  # type: ignore[assignment]


@dataclass(frozen=True)
class ClientLayout:
    """How a client node maps onto the server nodes."""

    servers_per_client: int
    clients_per_server: int
    server_start_node: int


def get_thdid_from_txnid(txn_id: int, thread_cnt: int) -> int:
    """Return the thread that owns ``txn_id``."""
    return txn_id % thread_cnt


def get_part_id(addr: int, part_cnt: int) -> int:
    """Return the partition of the page holding ``addr``."""
    return (addr // PAGE_SIZE) % part_cnt


def key_to_part(key: int, part_cnt: int, part_alloc: bool) -> int:
    """Return the partition of ``key``; always 0 without partitioned allocation."""
    if part_alloc:
        return key % part_cnt
    return 0


def merge_keys(keys: Sequence[int]) -> int:
    """Pack keys into one 64-bit key, each in an equal share of the bits."""
    if not keys:
        raise ValueError("at least one key is required")
    width = _UINT64_BITS // len(keys)
    merged = 0
    for key in keys:
        if not 0 <= key < (1 << width):
            raise ValueError(f"key {key} does not fit in {width} bits")
        merged = ((merged << width) | key) & _UINT64_MASK
    return merged


def merge_key_pair(key1: int, key2: int) -> int:
    """Pack two 32-bit keys into one 64-bit key."""
    for key in (key1, key2):
        if not 0 <= key < (1 << 32):
            raise ValueError(f"key {key} does not fit in 32 bits")
    return key1 << 32 | key2


def merge_key_triple(key1: int, key2: int, key3: int) -> int:
    """Pack three 21-bit keys into one 64-bit key."""
    for key in (key1, key2, key3):
        if not 0 <= key < (1 << 21):
            raise ValueError(f"key {key} does not fit in 21 bits")
    return key1 << 42 | key2 << 21 | key3


def client_layout(node_id: int, node_cnt: int, client_node_cnt: int) -> ClientLayout:
    """Work out which servers a client node talks to."""
    if node_cnt <= 0:
        raise ValueError("node_cnt must be positive")
    if node_cnt > client_node_cnt:
        clients_per_server = 1
    else:
        clients_per_server = client_node_cnt // node_cnt
    layout = ClientLayout(
        servers_per_client=node_cnt,
        clients_per_server=clients_per_server,
        server_start_node=0,
    )
    logger.info(
        "Node %d: servicing %d total nodes starting with node %d",
        node_id,
        layout.servers_per_client,
        layout.server_start_node,
    )
    return layout


def get_wall_clock() -> int:
    """Return wall-clock time in nanoseconds."""
    return time.time_ns()


def get_server_clock() -> int:
    """Return a high-resolution monotonic time in nanoseconds."""
    return time.perf_counter_ns()


def get_sys_clock(time_enable: bool) -> int:
    """Return the server clock in nanoseconds, or 0 when timing is off."""
    if time_enable:
        return get_server_clock()
    return 0


class MyRand:
    """A small linear congruential generator."""

    def __init__(self, seed: int = 0) -> None:
        self.seed = seed & _UINT64_MASK

    def next(self) -> int:
        """Advance the generator and return a value in ``[0, RAND_MAX)``."""
        self.seed = (self.seed * _LCG_MULTIPLIER + _LCG_INCREMENT) % _LCG_MODULUS
        return (self.seed // _LCG_DIVISOR) % RAND_MAX