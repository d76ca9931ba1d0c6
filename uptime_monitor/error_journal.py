"""
Append-only error journal.

Every call opens ``<data dir>/error.log`` in append mode, writes one line and
closes it again. A broken sink is reported on a lower-priority log channel
and never raised: recording an error must not cause another one.
"""

import asyncio
import datetime
import logging
import os
import sys
import traceback
from typing import Any, Optional

from . import config

log = logging.getLogger("UptimeMonitor.ErrorJournal")


def format_error(error: Any) -> str:
    if isinstance(error, BaseException):
        return "".join(traceback.format_exception(type(error), error, error.__traceback__)).rstrip()
    return str(error)


def error_log(error: Any, output_to_console: bool = True, data_dir: Optional[str] = None) -> None:
    """Write ``error`` to error.log and, optionally, to stderr."""
    path = os.path.join(data_dir or config.DATA_DIR, config.ERROR_LOG_FILENAME)
    date_time = datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds")
    formatted = format_error(error)

    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(f"[{date_time}] {formatted}\n")
    except Exception as e:
        log.info(f"Cannot write to error.log: {e}")

    if output_to_console:
        try:
            print(formatted, file=sys.stderr, flush=True)
        except Exception:
            log.debug("Cannot echo error to stderr", exc_info=True)


async def async_error_log(error: Any, output_to_console: bool = True, data_dir: Optional[str] = None) -> None:
    """Same as error_log, with the file write moved off the event loop."""
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, error_log, error, output_to_console, data_dir)
