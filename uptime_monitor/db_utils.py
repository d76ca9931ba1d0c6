"""
Database Utilities

Lock-retry wrapper and connection setup shared by the blocking SQLite
helpers. Every helper is executed on the database thread pool, never on
the event loop.
"""

import functools
import logging
import sqlite3
import time
from typing import Any, Callable

from .config import DB_MAX_RETRIES, DB_RETRY_BASE_DELAY, DB_RETRY_MAX_DELAY

log = logging.getLogger("UptimeMonitor.DbUtils")

RETRYABLE_MESSAGES = ("locked", "busy")


def retry_on_db_lock(max_attempts: int = DB_MAX_RETRIES, base_delay: float = DB_RETRY_BASE_DELAY,
                     max_delay: float = DB_RETRY_MAX_DELAY):
    """
    Retry a blocking database call on lock/busy errors with exponential backoff.

    Any other error, including non-lock OperationalErrors, is raised on the
    first occurrence.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            delay = base_delay
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except sqlite3.OperationalError as e:
                    if not any(msg in str(e).lower() for msg in RETRYABLE_MESSAGES):
                        raise
                    if attempt == max_attempts:
                        log.error(f"{func.__name__} failed after {max_attempts} attempts: {e}")
                        raise
                    log.warning(f"{func.__name__} hit a locked database (attempt {attempt}/{max_attempts}). "
                                f"Retrying in {delay:.2f}s...")
                    time.sleep(delay)
                    delay = min(delay * 2, max_delay)

        return wrapper

    return decorator


def get_connection(db_path: str, timeout: float = 30.0) -> sqlite3.Connection:
    """Open a WAL-mode SQLite connection with row access by column name."""
    conn = sqlite3.connect(db_path, timeout=timeout)
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.row_factory = sqlite3.Row
    conn.execute(f"PRAGMA busy_timeout={int(timeout * 1000)};")
    return conn
