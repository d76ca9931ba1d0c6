"""
Shared fixtures for Uptime Monitor tests.
"""

from typing import Any, Dict

import pytest


class DummyWS:
    """
    Minimal async WebSocket-like stub recording what was sent.
    """

    def __init__(self, closed: bool = False, raise_exc: BaseException = None):
        self.closed = closed
        self._raise_exc = raise_exc
        self.sent: list[Dict[str, Any]] = []

    async def send_json(self, payload):
        if self._raise_exc:
            raise self._raise_exc
        self.sent.append(payload)

    async def close(self, **kwargs):
        self.closed = True


@pytest.fixture
def dummy_ws():
    """Factory for DummyWS instances."""
    return DummyWS


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary database with the full schema."""
    from uptime_monitor import database

    path = str(tmp_path / "kuma.db")
    database.init_db(path)
    yield path


@pytest.fixture
def index_html(tmp_path):
    path = tmp_path / "dist" / "index.html"
    path.parent.mkdir()
    path.write_text("<!DOCTYPE html><html><body><div id=\"app\"></div></body></html>")
    return str(path)


@pytest.fixture
def server_config(tmp_path, temp_db, index_html):
    from uptime_monitor.config import ServerConfig

    return ServerConfig(
        host="127.0.0.1",
        port=3001,
        data_dir=str(tmp_path),
        database_file=temp_db,
        index_html_path=index_html,
        static_dir=str(tmp_path / "dist"),
        environment="production",
    )


@pytest.fixture
def reset_singleton(monkeypatch):
    """Forget any server built by another test, and restore afterwards."""
    from uptime_monitor.cacheable_dns import CacheableDnsConnector
    from uptime_monitor.server import UptimeMonitorServer

    monkeypatch.setattr(UptimeMonitorServer, "_instance", None)
    monkeypatch.setattr(CacheableDnsConnector, "enabled", False)
    yield


@pytest.fixture
def server(reset_singleton, server_config):
    from uptime_monitor.server import UptimeMonitorServer

    return UptimeMonitorServer.get_instance(server_config)


@pytest.fixture
def seeded_monitors(temp_db):
    """User 1 owns three monitors, user 2 owns one."""
    from uptime_monitor.database import blocking_insert_monitor

    ids = {
        "b": blocking_insert_monitor(temp_db, 1, "b", weight=5, type="http", url="https://b.example"),
        "a": blocking_insert_monitor(temp_db, 1, "a", weight=5, type="http", url="https://a.example"),
        "c": blocking_insert_monitor(temp_db, 1, "c", weight=9, type="ping"),
        "other": blocking_insert_monitor(temp_db, 2, "other", weight=100, type="http"),
    }
    return ids
