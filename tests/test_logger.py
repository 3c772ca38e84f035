import io
from datetime import datetime, timedelta

import pytest

from raftlog.logger import (
    DefaultLogger,
    RaftPanic,
    discard_logger,
    get_logger,
    reset_default_logger,
    set_logger,
)


def _logger(prefix=""):
    buf = io.StringIO()
    return buf, DefaultLogger(buf, prefix, False)


def _split_stamp(output, prefix, suffix):
    assert output.startswith(prefix)
    assert output.endswith(suffix)
    return output[len(prefix):-len(suffix)]


@pytest.mark.parametrize(
    "method,level",
    [("info", "INFO"), ("warning", "WARN"), ("error", "ERROR")],
)
def test_levels_write_header(method, level):
    buf, lg = _logger()
    getattr(lg, method)("hello %d", 3)
    assert buf.getvalue() == f"{level}: hello 3\n"


def test_message_without_args_is_not_formatted():
    buf, lg = _logger()
    lg.info("100%")
    assert buf.getvalue() == "INFO: 100%\n"


def test_debug_is_silent_until_enabled():
    buf, lg = _logger()
    lg.debug("x")
    assert buf.getvalue() == ""
    lg.enable_debug()
    lg.debug("x %s", "y")
    assert buf.getvalue() == "DEBUG: x y\n"


def test_prefix_is_prepended():
    buf, lg = _logger("raft")
    lg.info("x")
    assert buf.getvalue() == "raftINFO: x\n"


def test_timestamps_follow_prefix():
    buf = io.StringIO()
    lg = DefaultLogger(buf, "p", True)
    lg.info("x")
    stamp = _split_stamp(buf.getvalue(), "p", " INFO: x\n")
    assert len(stamp) == len("2000/01/01 00:00:00")
    parsed = datetime.strptime(stamp, "%Y/%m/%d %H:%M:%S")
    assert abs(parsed - datetime.now()) < timedelta(days=1)


def test_enable_timestamps():
    buf, lg = _logger("p")
    lg.enable_timestamps()
    lg.warning("w")
    stamp = _split_stamp(buf.getvalue(), "p", " WARN: w\n")
    assert len(stamp) == len("2000/01/01 00:00:00")
    parsed = datetime.strptime(stamp, "%Y/%m/%d %H:%M:%S")
    assert abs(parsed - datetime.now()) < timedelta(days=1)


def test_panic_logs_and_raises():
    buf, lg = _logger()
    with pytest.raises(RaftPanic) as excinfo:
        lg.panic("boom %d", 7)
    assert str(excinfo.value) == "boom 7"
    assert buf.getvalue() == "boom 7\n"


def test_fatal_exits_with_status_one():
    buf, lg = _logger()
    with pytest.raises(SystemExit) as excinfo:
        lg.fatal("bad")
    assert excinfo.value.code == 1
    assert buf.getvalue() == "FATAL: bad\n"


def test_default_stream_is_stderr(capsys):
    lg = DefaultLogger(None, "raft", False)
    lg.info("hi")
    assert capsys.readouterr().err == "raftINFO: hi\n"


def test_set_get_and_reset_logger():
    reset_default_logger()
    default = get_logger()
    _, custom = _logger()
    try:
        set_logger(custom)
        assert get_logger() is custom
    finally:
        reset_default_logger()
    assert get_logger() is default


def test_discard_logger_is_shared_and_still_panics():
    assert discard_logger() is discard_logger()
    with pytest.raises(RaftPanic):
        discard_logger().panic("stop")