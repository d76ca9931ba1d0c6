"""
Unit tests for db_utils: lock retries and connection setup.
"""

import sqlite3
from unittest.mock import patch

import pytest

from uptime_monitor.db_utils import get_connection, retry_on_db_lock


class TestRetryOnDbLock:
    """Test suite for retry_on_db_lock decorator."""

    def test_success_first_attempt(self):
        call_count = {"count": 0}

        @retry_on_db_lock(max_attempts=3)
        def test_function():
            call_count["count"] += 1
            return "success"

        assert test_function() == "success"
        assert call_count["count"] == 1

    @patch("uptime_monitor.db_utils.time.sleep")
    def test_success_after_retry(self, mock_sleep):
        call_count = {"count": 0}

        @retry_on_db_lock(max_attempts=3, base_delay=0.1)
        def test_function():
            call_count["count"] += 1
            if call_count["count"] < 3:
                raise sqlite3.OperationalError("database is locked")
            return "success"

        assert test_function() == "success"
        assert call_count["count"] == 3
        assert mock_sleep.call_count == 2

    @patch("uptime_monitor.db_utils.time.sleep")
    def test_exhausted_retries_reraise(self, mock_sleep):
        @retry_on_db_lock(max_attempts=2, base_delay=0.1)
        def test_function():
            raise sqlite3.OperationalError("database is locked")

        with pytest.raises(sqlite3.OperationalError, match="database is locked"):
            test_function()
        assert mock_sleep.call_count == 1

    @patch("uptime_monitor.db_utils.time.sleep")
    def test_backoff_is_capped(self, mock_sleep):
        @retry_on_db_lock(max_attempts=4, base_delay=1.0, max_delay=1.5)
        def test_function():
            raise sqlite3.OperationalError("database is busy")

        with pytest.raises(sqlite3.OperationalError):
            test_function()
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 1.5, 1.5]

    def test_non_retryable_error(self):
        call_count = {"count": 0}

        @retry_on_db_lock(max_attempts=3)
        def test_function():
            call_count["count"] += 1
            raise sqlite3.OperationalError("no such table: monitor")

        with pytest.raises(sqlite3.OperationalError, match="no such table"):
            test_function()
        assert call_count["count"] == 1


def test_connection_rows_are_addressable_by_name(tmp_path):
    conn = get_connection(str(tmp_path / "test.db"))
    try:
        conn.execute("CREATE TABLE t (id INTEGER, name TEXT)")
        conn.execute("INSERT INTO t VALUES (1, 'x')")
        row = conn.execute("SELECT * FROM t").fetchone()
    finally:
        conn.close()

    assert row["name"] == "x"

