import json
import logging
import os
from typing import Any, List, Optional

from .config import DATABASE_FILE, DB_CONNECTION_TIMEOUT, DEFAULT_MONITOR_WEIGHT
from .db_utils import get_connection, retry_on_db_lock
from .monitor import Monitor

log = logging.getLogger("UptimeMonitor.Database")


def init_db(db_path: str = None):
    db_path = db_path or DATABASE_FILE
    directory = os.path.dirname(db_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    log.info(f"Connecting to database '{db_path}' and checking schema...")
    conn = get_connection(db_path, timeout=DB_CONNECTION_TIMEOUT)
    try:
        cursor = conn.cursor()
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS monitor (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                name TEXT NOT NULL,
                weight INTEGER DEFAULT 2000,
                type TEXT,
                url TEXT,
                interval INTEGER DEFAULT 60,
                active INTEGER DEFAULT 1,
                description TEXT,
                created_date DATETIME DEFAULT CURRENT_TIMESTAMP
            )
        ''')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_monitor_user_id ON monitor (user_id);')
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS setting (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                key TEXT NOT NULL UNIQUE,
                value TEXT,
                type TEXT
            )
        ''')
        conn.commit()
    finally:
        conn.close()
    log.info("Database schema is up to date.")


@retry_on_db_lock()
def blocking_get_monitors_for_user(db_path: str, user_id: Any) -> List[Monitor]:
    """Return every monitor owned by ``user_id``, heaviest first, ties by name."""
    conn = get_connection(db_path, timeout=DB_CONNECTION_TIMEOUT)
    try:
        rows = conn.execute(
            "SELECT * FROM monitor WHERE user_id = ? ORDER BY weight DESC, name",
            (user_id,),
        ).fetchall()
    finally:
        conn.close()
    return [Monitor.from_row(row) for row in rows]


@retry_on_db_lock()
def blocking_insert_monitor(db_path: str, user_id: Any, name: str,
                            weight: int = DEFAULT_MONITOR_WEIGHT, **fields) -> int:
    columns = ['user_id', 'name', 'weight', *fields.keys()]
    placeholders = ', '.join('?' for _ in columns)
    conn = get_connection(db_path, timeout=DB_CONNECTION_TIMEOUT)
    try:
        cursor = conn.execute(
            f"INSERT INTO monitor ({', '.join(columns)}) VALUES ({placeholders})",
            (user_id, name, weight, *fields.values()),
        )
        conn.commit()
        return cursor.lastrowid
    finally:
        conn.close()


@retry_on_db_lock()
def blocking_get_setting(db_path: str, key: str) -> Optional[Any]:
    """Read one setting. Values are stored JSON encoded; None when unset."""
    conn = get_connection(db_path, timeout=DB_CONNECTION_TIMEOUT)
    try:
        row = conn.execute("SELECT value FROM setting WHERE key = ?", (key,)).fetchone()
    finally:
        conn.close()

    if row is None or row['value'] is None:
        return None
    try:
        return json.loads(row['value'])
    except ValueError:
        # Older rows were written as plain strings
        return row['value']


@retry_on_db_lock()
def blocking_set_setting(db_path: str, key: str, value: Any, setting_type: Optional[str] = None):
    conn = get_connection(db_path, timeout=DB_CONNECTION_TIMEOUT)
    try:
        conn.execute(
            "INSERT INTO setting (key, value, type) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value, type = excluded.type",
            (key, json.dumps(value), setting_type),
        )
        conn.commit()
    finally:
        conn.close()
