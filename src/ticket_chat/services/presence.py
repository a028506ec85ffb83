"""In-memory presence bookkeeping for the chat gateway."""
from __future__ import annotations


class PresenceRegistry:
    """Tracks live connections per principal and room membership per ticket.

    Room presence is per principal: several tabs of one user count as a
    single participant, and the principal leaves a room only when the last of
    its connections in that room does. Empty sets are never kept.
    """

    def __init__(self) -> None:
        self._connections: dict[str, set[str]] = {}
        self._rooms: dict[str, dict[str, set[str]]] = {}

    def register_connection(self, principal_id: str, connection_id: str) -> None:
        self._connections.setdefault(principal_id, set()).add(connection_id)

    def unregister_connection(self, principal_id: str, connection_id: str) -> bool:
        """Drop a connection. Returns True when the principal is now offline."""
        conns = self._connections.get(principal_id)
        if conns is None:
            return False
        conns.discard(connection_id)
        if conns:
            return False
        del self._connections[principal_id]
        return True

    def join_room(self, ticket_id: str, principal_id: str, connection_id: str) -> bool:
        """Returns True when the principal was not present in the room before."""
        members = self._rooms.setdefault(ticket_id, {})
        first = principal_id not in members
        members.setdefault(principal_id, set()).add(connection_id)
        return first

    def leave_room(self, ticket_id: str, principal_id: str, connection_id: str) -> bool:
        """Returns True when the principal's last connection left the room."""
        members = self._rooms.get(ticket_id)
        if members is None:
            return False
        conns = members.get(principal_id)
        if conns is None or connection_id not in conns:
            return False

        conns.discard(connection_id)
        gone = not conns
        if gone:
            del members[principal_id]
        if not members:
            del self._rooms[ticket_id]
        return gone

    def is_connected(self, principal_id: str) -> bool:
        return bool(self._connections.get(principal_id))

    def connections_of(self, principal_id: str) -> set[str]:
        return set(self._connections.get(principal_id, ()))

    def subscribers_of(self, ticket_id: str) -> set[str]:
        return set(self._rooms.get(ticket_id, ()))

    def room_connections(self, ticket_id: str, principal_id: str) -> set[str]:
        return set(self._rooms.get(ticket_id, {}).get(principal_id, ()))

    def rooms(self) -> set[str]:
        return set(self._rooms)

    def online(self) -> set[str]:
        return set(self._connections)

    def clear(self) -> None:
        self._connections.clear()
        self._rooms.clear()
