"""Run-time settings and the command-line option parser for a node."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from bftnode.helper import ClientLayout, client_layout

_INT_RE = re.compile(r"\s*([+-]?\d+)")
_FLOAT_RE = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


class UsageRequested(Exception):
    """Raised when the help option is given."""


def _atoi(text: str) -> int:
    match = _INT_RE.match(text)
    return int(match.group(1)) if match else 0


def _atof(text: str) -> float:
    match = _FLOAT_RE.match(text)
    return float(match.group(1)) if match else 0.0


@dataclass
class Config:
    """Every setting a node reads from its command line, plus derived totals."""

    node_id: int = 0
    part_cnt: int = 1
    node_cnt: int = 4
    client_node_cnt: int = 1
    thread_cnt: int = 4
    rem_thread_cnt: int = 1
    send_thread_cnt: int = 1
    client_thread_cnt: int = 2
    client_rem_thread_cnt: int = 1
    client_send_thread_cnt: int = 1
    max_txn_per_part: int = 4000
    inflight_max: int = 20000
    load_per_server: int = 100
    mpr: float = 1.0
    mpitem: float = 0.01
    done_timer: int = 60_000_000_000
    seq_batch_time_limit: int = 5_000_000
    query_intvl: int = 1
    prt_lat_distr: int = 0
    part_alloc: int = 0
    mem_pad: int = 1
    repl_cnt: int = 0
    repl_type: int = 0
    network_delay: int = 0
    data_perc: float = 100.0
    access_perc: float = 0.03
    part_per_txn: int = 1
    strict_ppt: bool = False
    perc_multi_part: float = 0.0
    tup_write_perc: float = 0.5
    tup_read_perc: float = 0.5
    txn_write_perc: float = 0.5
    txn_read_perc: float = 0.5
    zipf_theta: float = 0.5
    synth_table_size: int = 524288
    req_per_query: int = 1
    field_per_tuple: int = 10
    logging: bool = False
    logger_thread_cnt: int = 1

    total_thread_cnt: int = field(default=0, init=False)
    total_client_thread_cnt: int = field(default=0, init=False)
    total_node_cnt: int = field(default=0, init=False)
    this_thread_cnt: int = field(default=0, init=False)
    this_rem_thread_cnt: int = field(default=0, init=False)
    this_send_thread_cnt: int = field(default=0, init=False)
    this_total_thread_cnt: int = field(default=0, init=False)
    client_layout: Optional[ClientLayout] = field(default=None, init=False)

    def finalize(self, is_client: bool) -> None:
        """Compute the totals and the thread counts that apply to this node."""
        self.total_thread_cnt = self.thread_cnt + self.rem_thread_cnt + self.send_thread_cnt
        if self.logging:
            self.total_thread_cnt += self.logger_thread_cnt
        self.total_client_thread_cnt = (
            self.client_thread_cnt + self.client_rem_thread_cnt + self.client_send_thread_cnt
        )
        self.total_node_cnt = (
            self.node_cnt + self.client_node_cnt + self.repl_cnt * self.node_cnt
        )
        if is_client:
            self.this_thread_cnt = self.client_thread_cnt
            self.this_rem_thread_cnt = self.client_rem_thread_cnt
            self.this_send_thread_cnt = self.client_send_thread_cnt
            self.this_total_thread_cnt = self.total_client_thread_cnt
        else:
            self.this_thread_cnt = self.thread_cnt
            self.this_rem_thread_cnt = self.rem_thread_cnt
            self.this_send_thread_cnt = self.send_thread_cnt
            self.this_total_thread_cnt = self.total_thread_cnt


def _set_int(name: str) -> Callable[[Config, str], None]:
    def apply(config: Config, text: str) -> None:
        setattr(config, name, _atoi(text))

    return apply


def _set_float(name: str) -> Callable[[Config, str], None]:
    def apply(config: Config, text: str) -> None:
        setattr(config, name, _atof(text))

    return apply


def _set_float_as_int(name: str) -> Callable[[Config, str], None]:
    def apply(config: Config, text: str) -> None:
        setattr(config, name, int(_atof(text)))

    return apply


def _set_strict_ppt(config: Config, text: str) -> None:
    config.strict_ppt = _atoi(text) == 1


def _set_txn_write(config: Config, text: str) -> None:
    config.txn_write_perc = _atof(text)
    config.txn_read_perc = 1.0 - _atof(text)


def _set_tup_write(config: Config, text: str) -> None:
    config.tup_write_perc = _atof(text)
    config.tup_read_perc = 1.0 - _atof(text)


def _help(config: Config, text: str) -> None:
    raise UsageRequested(usage())


# Checked in order: longer prefixes come before the shorter ones they start with.
_OPTIONS: Sequence[tuple[str, Callable[[Config, str], None]]] = (
    ("ndly", _set_int("network_delay")),
    ("done", _set_int("done_timer")),
    ("stmr", _set_int("seq_batch_time_limit")),
    ("sppt", _set_strict_ppt),
    ("prog", _set_int("thread_cnt")),
    ("zipf", _set_float("zipf_theta")),
    ("nid", _set_int("node_id")),
    ("ctr", _set_int("client_rem_thread_cnt")),
    ("cts", _set_int("client_send_thread_cnt")),
    ("lps", _set_int("load_per_server")),
    ("tpp", _set_int("max_txn_per_part")),
    ("tif", _set_int("inflight_max")),
    ("mpr", _set_float("mpr")),
    ("mpi", _set_float("mpitem")),
    ("ppt", _set_int("part_per_txn")),
    ("rpq", _set_int("req_per_query")),
    ("cn", _set_int("client_node_cnt")),
    ("tr", _set_int("rem_thread_cnt")),
    ("ts", _set_int("send_thread_cnt")),
    ("ct", _set_int("client_thread_cnt")),
    ("dp", _set_float("data_perc")),
    ("ap", _set_float("access_perc")),
    ("rn", _set_float_as_int("repl_cnt")),
    ("rt", _set_float_as_int("repl_type")),
    ("tw", _set_txn_write),
    ("p", _set_int("part_cnt")),
    ("n", _set_int("node_cnt")),
    ("t", _set_int("thread_cnt")),
    ("q", _set_int("query_intvl")),
    ("d", _set_int("prt_lat_distr")),
    ("a", _set_int("part_alloc")),
    ("m", _set_int("mem_pad")),
    ("e", _set_float("perc_multi_part")),
    ("w", _set_tup_write),
    ("s", _set_int("synth_table_size")),
    ("f", _set_int("field_per_tuple")),
    ("h", _help),
)


def usage() -> str:
    """Return the help text listing every option."""
    lines = [
        "[usage]:",
        "\t-nidINT       ; NODE_ID",
        "\t-pINT       ; PART_CNT",
        "\t-nINT       ; NODE_CNT",
        "\t-cnINT       ; CLIENT_NODE_CNT",
        "\t-vINT       ; VIRTUAL_PART_CNT",
        "\t-tINT       ; THREAD_CNT",
        "\t-trINT       ; REM_THREAD_CNT",
        "\t-tsINT       ; SEND_THREAD_CNT",
        "\t-ctINT       ; CLIENT_THREAD_CNT",
        "\t-ctrINT       ; CLIENT_REM_THREAD_CNT",
        "\t-ctsINT       ; CLIENT_SEND_THREAD_CNT",
        "\t-tppINT       ; MAX_TXN_PER_PART",
        "\t-tifINT       ; MAX_TXN_IN_FLIGHT",
        "\t-mprINT       ; MPR",
        "\t-mpiINT       ; MPIR",
        "\t-doneINT       ; DONE_TIMER",
        "\t-stmrINT       ; SEQ_BATCH_TIMER",
        "\t-progINT       ; PROG_TIMER",
        "\t-abrtINT       ; ABORT_PENALTY (ms)",
        "\t-qINT       ; QUERY_INTVL",
        "\t-dINT       ; PRT_LAT_DISTR",
        "\t-aINT       ; PART_ALLOC (0 or 1)",
        "\t-mINT       ; MEM_PAD (0 or 1)",
        "\t-rnINT       ; REPLICA_CNT (0+)",
        "\t-rtINT       ; REPL_TYPE (AA: 1, AP: 2)",
        "\t-o STRING   ; output file",
        "\t-i STRING   ; input file",
        "\t-cf STRING   ; txn file",
        "\t-ndly   ; NETWORK_DELAY",
        "  [YCSB]:",
        "\t-dpFLOAT       ; DATA_PERC",
        "\t-apFLOAT       ; ACCESS_PERC",
        "\t-pptINT       ; PART_PER_TXN",
        "\t-spptINT       ; STRICT_PPT",
        "\t-eINT       ; PERC_MULTI_PART",
        "\t-wFLOAT     ; WRITE_PERC",
        "\t-zipfFLOAT     ; ZIPF_THETA",
        "\t-sINT       ; SYNTH_TABLE_SIZE",
        "\t-rpqINT       ; REQ_PER_QUERY",
        "\t-fINT       ; FIELD_PER_TUPLE",
        "  [TPCC]:",
        "\t-whINT       ; NUM_WH",
        "\t-ppFLOAT    ; PERC_PAYMENT",
        "\t-upINT      ; WH_UPDATE",
    ]
    return "\n".join(lines) + "\n"


def parse_args(argv: Sequence[str], config: Optional[Config] = None) -> Config:
    """Apply the options in ``argv`` (program name excluded) to ``config``.

    Raises ``UsageRequested`` for ``-h`` and ``ValueError`` for anything
    that is not a known option.
    """
    if config is None:
        config = Config()
    for arg in argv:
        if not arg.startswith("-"):
            raise ValueError(f"expected an option, got {arg!r}")
        body = arg[1:]
        for prefix, apply in _OPTIONS:
            if body.startswith(prefix):
                apply(config, body[len(prefix):])
                break
        else:
            raise ValueError(f"unknown option {arg!r}")

    is_client = config.node_id >= config.node_cnt
    config.finalize(is_client)
    if is_client:
        config.client_layout = client_layout(
            config.node_id, config.node_cnt, config.client_node_cnt
        )
    return config


def format_settings(config: Config) -> str:
    """Return one ``name value`` line for each setting."""
    items = [
        ("done_timer", config.done_timer),
        ("thread_cnt", config.thread_cnt),
        ("zipf_theta", config.zipf_theta),
        ("node_id", config.node_id),
        ("client_rem_thread_cnt", config.client_rem_thread_cnt),
        ("client_send_thread_cnt", config.client_send_thread_cnt),
        ("max_txn_per_part", config.max_txn_per_part),
        ("load_per_server", config.load_per_server),
        ("inflight_max", config.inflight_max),
        ("mpr", config.mpr),
        ("mpitem", config.mpitem),
        ("part_per_txn", config.part_per_txn),
        ("req_per_query", config.req_per_query),
        ("client_node_cnt", config.client_node_cnt),
        ("rem_thread_cnt", config.rem_thread_cnt),
        ("send_thread_cnt", config.send_thread_cnt),
        ("client_thread_cnt", config.client_thread_cnt),
        ("part_cnt", config.part_cnt),
        ("node_cnt", config.node_cnt),
        ("query_intvl", config.query_intvl),
        ("prt_lat_distr", config.prt_lat_distr),
        ("part_alloc", config.part_alloc),
        ("mem_pad", config.mem_pad),
        ("perc_multi_part", config.perc_multi_part),
        ("tup_read_perc", config.tup_read_perc),
        ("tup_write_perc", config.tup_write_perc),
        ("txn_read_perc", config.txn_read_perc),
        ("txn_write_perc", config.txn_write_perc),
        ("synth_table_size", config.synth_table_size),
        ("field_per_tuple", config.field_per_tuple),
        ("data_perc", config.data_perc),
        ("access_perc", config.access_perc),
        ("strict_ppt", int(config.strict_ppt)),
        ("network_delay", config.network_delay),
        ("total_thread_cnt", config.total_thread_cnt),
        ("total_client_thread_cnt", config.total_client_thread_cnt),
        ("total_node_cnt", config.total_node_cnt),
        ("seq_batch_time_limit", config.seq_batch_time_limit),
    ]
    lines = []
    for name, value in items:
        text = f"{value:f}" if isinstance(value, float) else str(value)
        lines.append(f"{name} {text}")
    return "\n".join(lines) + "\n"


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse the command line and print the resulting settings."""
    if argv is None:
        argv = sys.argv[1:]
    try:
        config = parse_args(argv, Config())
    except UsageRequested as request:
        sys.stdout.write(str(request))
        return 0
    except ValueError as error:
        sys.stderr.write(f"{error}\n")
        return 1
    sys.stdout.write(format_settings(config))
    return 0