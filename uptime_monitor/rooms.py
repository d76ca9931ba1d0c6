import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Mapping, Optional, Set

from .websocket_utils import broadcast, safe_send_json

log = logging.getLogger("UptimeMonitor.Rooms")


@dataclass(eq=False)
class Session:
    """One live dashboard connection."""
    ws: Any
    remote_address: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    user_id: Optional[Hashable] = None

    @property
    def closed(self) -> bool:
        return self.ws.closed

    async def send_json(self, payload) -> bool:
        return await safe_send_json(self.ws, payload)


class RoomRegistry:
    """
    Broadcast groups keyed by user id.

    A room holds the sessions of one user that are currently connected and
    logged in. Rooms are created on first join and dropped when empty.
    """

    def __init__(self):
        self._rooms: Dict[Hashable, Set[Session]] = {}

    def join(self, room: Hashable, session: Session):
        self._rooms.setdefault(room, set()).add(session)
        log.debug(f"Session joined room {room!r} ({len(self._rooms[room])} member(s))")

    def leave(self, room: Hashable, session: Session):
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(session)
        if not members:
            del self._rooms[room]

    def leave_all(self, session: Session):
        for room in [r for r, members in self._rooms.items() if session in members]:
            self.leave(room, session)

    def members(self, room: Hashable) -> Set[Session]:
        return set(self._rooms.get(room, ()))

    def rooms(self):
        return list(self._rooms.keys())

    def __len__(self):
        return len(self._rooms)

    async def emit(self, room: Hashable, event: str, data) -> int:
        """Publish ``{"type": event, "data": data}`` to every session in ``room``."""
        members = self.members(room)
        if not members:
            log.debug(f"No sessions in room {room!r}, '{event}' dropped")
            return 0
        return await broadcast((session.ws for session in members), {"type": event, "data": data})
