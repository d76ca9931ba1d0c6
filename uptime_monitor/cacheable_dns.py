import asyncio
import logging
from typing import Optional

import aiohttp

from .config import DNS_CACHE_TTL_SECONDS, OUTBOUND_CONNECTION_LIMIT

log = logging.getLogger("UptimeMonitor.CacheableDns")


class CacheableDnsConnector:
    """
    Process-wide outbound HTTP settings.

    ``register_global_agent()`` only records that outbound requests should
    share one connector with DNS caching; the aiohttp objects are created
    lazily by ``get_session()`` because they need a running event loop.
    """

    enabled = False
    ttl = DNS_CACHE_TTL_SECONDS
    limit = OUTBOUND_CONNECTION_LIMIT
    _session: Optional[aiohttp.ClientSession] = None
    _lock: Optional[asyncio.Lock] = None

    @classmethod
    def register_global_agent(cls, ttl: int = DNS_CACHE_TTL_SECONDS, limit: int = OUTBOUND_CONNECTION_LIMIT):
        cls.enabled = True
        cls.ttl = ttl
        cls.limit = limit
        log.debug(f"Registered global DNS caching agent (ttl={ttl}s, limit={limit})")

    @classmethod
    def create_connector(cls) -> aiohttp.TCPConnector:
        if cls.enabled:
            return aiohttp.TCPConnector(use_dns_cache=True, ttl_dns_cache=cls.ttl, limit=cls.limit)
        return aiohttp.TCPConnector(use_dns_cache=False, limit=cls.limit)

    @classmethod
    async def get_session(cls) -> aiohttp.ClientSession:
        """Shared client session for outbound requests made by monitors."""
        if cls._lock is None:
            cls._lock = asyncio.Lock()
        async with cls._lock:
            if cls._session is None or cls._session.closed:
                cls._session = aiohttp.ClientSession(connector=cls.create_connector())
                log.info(f"Outbound HTTP session created (dns cache: {cls.enabled})")
        return cls._session

    @classmethod
    async def close(cls):
        if cls._session is not None and not cls._session.closed:
            await cls._session.close()
            log.info("Outbound HTTP session closed.")
        cls._session = None
        cls._lock = None
