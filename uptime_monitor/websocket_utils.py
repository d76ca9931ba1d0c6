import asyncio
import logging
from typing import Iterable

import aiohttp


log = logging.getLogger("UptimeMonitor.WebsocketUtils")


async def safe_send_json(ws, payload) -> bool:
    """Push one frame to a dashboard session. False means the browser tab is gone."""
    try:
        if ws.closed:
            return False
        await ws.send_json(payload)
        return True
    except (ConnectionResetError,
            aiohttp.client_exceptions.ClientConnectionResetError,
            RuntimeError) as e:
        log.debug(f"Dashboard session went away before the frame was sent: {type(e).__name__}")
        return False
    except Exception as e:
        log.warning(f"Failed to push frame to dashboard session: {e}", exc_info=True)
        return False


async def broadcast(sockets: Iterable, payload) -> int:
    """
    Push one payload to every session socket of a room at once.

    Returns how many sockets took it. A dead socket does not hold up the rest.
    """
    recipients = list(sockets)
    if not recipients:
        return 0

    results = await asyncio.gather(*(safe_send_json(ws, payload) for ws in recipients),
                                   return_exceptions=True)
    successful = sum(1 for r in results if r is True)
    if successful < len(results):
        log.debug(f"Room push reached {successful} of {len(results)} sessions")
    return successful
