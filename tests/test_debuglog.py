import pytest

from gossipmembership.debuglog import DBG_LOG, STATS_LOG, DebugLog
from gossipmembership.member import Address
from gossipmembership.params import Params


@pytest.fixture
def params():
    return Params(max_nnb=2)


def test_files_created_on_first_record(tmp_path, params):
    log = DebugLog(params, tmp_path)
    assert not (tmp_path / DBG_LOG).exists()
    log.log(Address(1, 0), "hello")
    log.close()
    assert (tmp_path / DBG_LOG).exists()
    assert (tmp_path / STATS_LOG).exists()


def test_magic_header_written_once(tmp_path, params):
    with DebugLog(params, tmp_path) as log:
        log.log(Address(1, 0), "one")
        log.log(Address(2, 0), "two")
    lines = (tmp_path / DBG_LOG).read_text().split("\n")
    assert lines[0] == "131"
    assert lines.count("131") == 1


def test_record_format(tmp_path, params):
    params.globaltime = 7
    address = Address(3, 0)
    with DebugLog(params, tmp_path) as log:
        log.log(address, "hello")
    text = (tmp_path / DBG_LOG).read_text()
    assert text.endswith(f"\n {address.dotted} [7] hello")


def test_records_are_flushed_immediately(tmp_path, params):
    log = DebugLog(params, tmp_path)
    log.log(Address(1, 0), "visible")
    try:
        assert "visible" in (tmp_path / DBG_LOG).read_text()
    finally:
        log.close()


def test_stats_records_go_to_stats_file(tmp_path, params):
    with DebugLog(params, tmp_path) as log:
        log.log(Address(1, 0), "#STATSLOG# counters")
        log.log(Address(1, 0), "plain")
    stats = (tmp_path / STATS_LOG).read_text()
    dbg = (tmp_path / DBG_LOG).read_text()
    assert "#STATSLOG# counters" in stats
    assert "#STATSLOG#" not in dbg
    assert "plain" in dbg and "plain" not in stats


def test_node_add_and_remove(tmp_path, params):
    params.globaltime = 42
    me, other = Address(1, 0), Address(2, 0)
    with DebugLog(params, tmp_path) as log:
        log.log_node_add(me, other)
        log.log_node_remove(me, other)
    text = (tmp_path / DBG_LOG).read_text()
    assert f" {me.dotted} [42] Node {other.dotted} joined at time 42" in text
    assert f" {me.dotted} [42] Node {other.dotted} removed at time 42" in text
    assert text.index("joined") < text.index("removed")


def test_log_after_close_raises(tmp_path, params):
    with DebugLog(params, tmp_path) as log:
        log.log(Address(1, 0), "x")
    with pytest.raises(ValueError):
        log.log(Address(1, 0), "y")