import pytest

from bftnode.config import Config, UsageRequested, format_settings, main, parse_args, usage


def test_node_id_and_counts():
    config = parse_args(["-nid2", "-n7", "-t3", "-tr2", "-ts5"], Config())
    assert config.node_id == 2
    assert config.node_cnt == 7
    assert config.thread_cnt == 3
    assert config.rem_thread_cnt == 2
    assert config.send_thread_cnt == 5


def test_longer_prefixes_win():
    config = parse_args(["-ppt3", "-p6", "-done900", "-d1", "-sppt1", "-s77"], Config())
    assert config.part_per_txn == 3
    assert config.part_cnt == 6
    assert config.done_timer == 900
    assert config.prt_lat_distr == 1
    assert config.strict_ppt is True
    assert config.synth_table_size == 77


def test_prog_option_sets_thread_count():
    config = parse_args(["-prog9"], Config())
    assert config.thread_cnt == 9


def test_write_percentages_set_read_complement():
    config = parse_args(["-w0.25", "-tw0.75"], Config())
    assert config.tup_write_perc == pytest.approx(0.25)
    assert config.tup_read_perc == pytest.approx(1.0 - 0.25)
    assert config.txn_write_perc == pytest.approx(0.75)
    assert config.txn_read_perc == pytest.approx(1.0 - 0.75)


def test_float_options_and_truncated_replica_count():
    config = parse_args(["-zipf0.9", "-mpr0.5", "-rn2.7"], Config())
    assert config.zipf_theta == pytest.approx(0.9)
    assert config.mpr == pytest.approx(0.5)
    assert config.repl_cnt == 2


def test_totals_for_server():
    config = parse_args(
        ["-nid0", "-n4", "-cn2", "-t3", "-tr1", "-ts2", "-rn1"], Config()
    )
    assert config.total_thread_cnt == 3 + 1 + 2
    assert config.total_node_cnt == 4 + 2 + 1 * 4
    assert config.this_thread_cnt == config.thread_cnt
    assert config.this_total_thread_cnt == config.total_thread_cnt
    assert config.client_layout is None


def test_client_node_uses_client_counts():
    config = parse_args(["-nid5", "-n4", "-cn8", "-ct6", "-ctr2", "-cts3"], Config())
    assert config.this_thread_cnt == 6
    assert config.this_rem_thread_cnt == 2
    assert config.this_send_thread_cnt == 3
    assert config.this_total_thread_cnt == 6 + 2 + 3
    assert config.client_layout.servers_per_client == 4
    assert config.client_layout.clients_per_server == 8 // 4


def test_finalize_adds_logger_threads():
    config = Config(thread_cnt=2, rem_thread_cnt=1, send_thread_cnt=1, logging=True, logger_thread_cnt=1)
    config.finalize(is_client=False)
    assert config.total_thread_cnt == 2 + 1 + 1 + 1


def test_help_raises_usage():
    with pytest.raises(UsageRequested):
        parse_args(["-h"], Config())


def test_argument_without_dash_rejected():
    with pytest.raises(ValueError):
        parse_args(["n4"], Config())


def test_unknown_option_rejected():
    with pytest.raises(ValueError):
        parse_args(["-x1"], Config())


def test_usage_mentions_node_id():
    assert "-nidINT" in usage()


def test_format_settings_lists_values():
    config = parse_args(["-nid3", "-zipf0.5"], Config())
    lines = format_settings(config).splitlines()
    assert "node_id 3" in lines
    assert "zipf_theta 0.500000" in lines


def test_main_prints_settings(capsys):
    assert main(["-nid1"]) == 0
    assert "node_id 1" in capsys.readouterr().out


def test_main_reports_bad_option(capsys):
    assert main(["bogus"]) == 1
    assert "bogus" in capsys.readouterr().err