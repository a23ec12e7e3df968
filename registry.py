from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Set

from constants import ROOM_CAPACITY
from exceptions import RoomFull
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Connection:
    id: str
    room: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.display_name or self.id


@dataclass
class JoinResult:
    room: str
    peer_count: int
    # Members that were already in the room before this join
    peers: FrozenSet[str] = field(default_factory=frozenset)
    changed: bool = True
    # Room vacated by a cross-room re-join
    left_room: Optional[str] = None


class ConnectionRegistry:
    """In-memory room membership for live connections.

    Every connection occupies at most one room and every room holds at most
    ``capacity`` connections. Both directions of the mapping are only ever
    changed together inside this class. Rooms exist only while they have members.
    """

    def __init__(self, capacity: int = ROOM_CAPACITY):
        self.capacity = capacity
        self._connections: Dict[str, Connection] = {}
        self._rooms: Dict[str, Set[str]] = {}
        logger.info(f"Initializing ConnectionRegistry with room capacity {capacity or 'unbounded'}")

    def connect(self, connection_id: str, display_name: str = None) -> Connection:
        connection = self._connections.get(connection_id)
        if connection is None:
            connection = Connection(id=connection_id, display_name=display_name)
            self._connections[connection_id] = connection
            logger.debug(f"Registered connection {connection_id} (live connections: {len(self._connections)})")
        return connection

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def is_full(self, room_id: str) -> bool:
        if not self.capacity:
            return False
        return len(self._rooms.get(room_id, ())) >= self.capacity

    def join(self, connection_id: str, room_id: str, display_name: str = None) -> JoinResult:
        """Put a connection into a room.

        Joining the room the connection already occupies is a no-op. Raises
        RoomFull, without touching any state, when the room is at capacity.
        A connection that sits in another room is moved out of it first.
        """
        connection = self.connect(connection_id)
        members = self._rooms.get(room_id, set())

        if connection.room == room_id:
            logger.debug(f"Connection {connection_id} already in room {room_id}, ignoring join")
            return JoinResult(
                room=room_id,
                peer_count=len(members),
                peers=frozenset(members - {connection_id}),
                changed=False,
            )

        if self.is_full(room_id):
            logger.info(f"Join rejected: room {room_id} is full ({len(members)}/{self.capacity})")
            raise RoomFull()

        left_room = self.leave(connection_id)

        peers = frozenset(members)
        self._rooms.setdefault(room_id, set()).add(connection_id)
        connection.room = room_id
        connection.display_name = display_name or connection.display_name or connection_id

        peer_count = len(self._rooms[room_id])
        logger.info(f"Connection {connection_id} joined room {room_id}. Members: {peer_count}")
        return JoinResult(room=room_id, peer_count=peer_count, peers=peers, left_room=left_room)

    def leave(self, connection_id: str) -> Optional[str]:
        """Remove a connection from its room and return the room it left, if any."""
        connection = self._connections.get(connection_id)
        if connection is None or connection.room is None:
            return None

        room_id = connection.room
        connection.room = None
        members = self._rooms.get(room_id)
        if members is not None:
            members.discard(connection_id)
            if not members:
                del self._rooms[room_id]
                logger.info(f"Room {room_id} is empty, deleting it")
        logger.info(f"Connection {connection_id} left room {room_id}")
        return room_id

    def disconnect(self, connection_id: str) -> Optional[str]:
        """Forget a connection entirely. Safe to call more than once."""
        room_id = self.leave(connection_id)
        if self._connections.pop(connection_id, None) is not None:
            logger.debug(f"Unregistered connection {connection_id} (live connections: {len(self._connections)})")
        return room_id

    def room_of(self, connection_id: str) -> Optional[str]:
        connection = self._connections.get(connection_id)
        return connection.room if connection else None

    def resolve_target(self, explicit_room_id: Optional[str], connection_id: str) -> Optional[str]:
        if explicit_room_id is not None:
            return explicit_room_id
        return self.room_of(connection_id)

    def members(self, room_id: str) -> FrozenSet[str]:
        return frozenset(self._rooms.get(room_id, ()))

    def display_name_of(self, connection_id: str) -> Optional[str]:
        connection = self._connections.get(connection_id)
        return connection.label if connection else None

    def rooms(self) -> Dict[str, FrozenSet[str]]:
        return {room_id: frozenset(members) for room_id, members in self._rooms.items()}

    def connection_count(self) -> int:
        return len(self._connections)

    def reset(self):
        self._connections.clear()
        self._rooms.clear()
        logger.debug("Registry state cleared")


room_registry = ConnectionRegistry()
