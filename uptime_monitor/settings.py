import asyncio
import logging
from concurrent.futures import Executor
from typing import Any, Optional

from .database import blocking_get_setting, blocking_set_setting

log = logging.getLogger("UptimeMonitor.Settings")


class Settings:
    """
    Async access to the ``setting`` table.

    Reads are never cached: values such as ``trustProxy`` can be changed from
    the dashboard while the server is running and must take effect on the
    next lookup.
    """

    def __init__(self, db_path: str, executor: Optional[Executor] = None):
        self.db_path = db_path
        self.executor = executor

    async def get(self, key: str, default: Any = None) -> Any:
        loop = asyncio.get_running_loop()
        value = await loop.run_in_executor(self.executor, blocking_get_setting, self.db_path, key)
        return default if value is None else value

    async def set(self, key: str, value: Any, setting_type: Optional[str] = None):
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self.executor, blocking_set_setting, self.db_path, key, value, setting_type)
        log.debug(f"Setting '{key}' updated.")
