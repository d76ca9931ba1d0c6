import datetime
import re

import pytest

from uptime_monitor.error_journal import async_error_log, error_log, format_error

LINE_RE = re.compile(r"^\[(?P<ts>[^\]]+)\] (?P<msg>.*)$")


def test_error_log_appends_timestamped_line(tmp_path, capsys):
    error_log("disk almost full", output_to_console=False, data_dir=str(tmp_path))

    lines = (tmp_path / "error.log").read_text().splitlines()
    assert len(lines) == 1
    match = LINE_RE.match(lines[0])
    assert match is not None
    assert match.group("msg") == "disk almost full"
    # ISO-8601, parseable
    datetime.datetime.fromisoformat(match.group("ts"))
    assert capsys.readouterr().err == ""


def test_error_log_appends_without_truncating(tmp_path):
    error_log("first", output_to_console=False, data_dir=str(tmp_path))
    error_log("second", output_to_console=False, data_dir=str(tmp_path))

    lines = (tmp_path / "error.log").read_text().splitlines()
    assert [LINE_RE.match(line).group("msg") for line in lines] == ["first", "second"]


def test_error_log_formats_exceptions_with_traceback(tmp_path):
    try:
        raise ValueError("bad monitor")
    except ValueError as e:
        error_log(e, output_to_console=False, data_dir=str(tmp_path))

    content = (tmp_path / "error.log").read_text()
    assert "Traceback" in content
    assert "ValueError: bad monitor" in content


def test_error_log_echoes_to_stderr(tmp_path, capsys):
    error_log("visible", output_to_console=True, data_dir=str(tmp_path))

    assert "visible" in capsys.readouterr().err


def test_broken_sink_does_not_raise_and_still_echoes(tmp_path, capsys, caplog):
    missing_dir = tmp_path / "does" / "not" / "exist"

    with caplog.at_level("INFO", logger="UptimeMonitor.ErrorJournal"):
        error_log(RuntimeError("boom"), output_to_console=True, data_dir=str(missing_dir))

    assert "boom" in capsys.readouterr().err
    assert "Cannot write to error.log" in caplog.text
    assert not missing_dir.exists()


def test_format_error_for_plain_objects():
    assert format_error({"code": 1}) == "{'code': 1}"


@pytest.mark.asyncio
async def test_async_error_log_writes_file(tmp_path):
    await async_error_log("from the loop", output_to_console=False, data_dir=str(tmp_path))

    assert "from the loop" in (tmp_path / "error.log").read_text()
