"""Session Registry - which event-channel connections joined which post rooms.

Invariants:
    - join/leave are idempotent; they return True only when membership changed
    - Empty rooms are removed, never kept as empty sets
    - The two indexes (room -> connections, connection -> rooms) always mirror each other
    - Bookkeeping only: the event channel still broadcasts to every connection

Design Decisions:
    - Pure in-memory structure, no IO: owned by infrastructure/event_channel.py and mutated
      only from the event loop thread, so no locking
"""

from collections import defaultdict
from uuid import UUID


class SessionRegistry:
    """Room membership keyed by post id."""

    def __init__(self):
        self._rooms: dict[UUID, set[str]] = defaultdict(set)
        self._memberships: dict[str, set[UUID]] = defaultdict(set)

    def join(self, connection_id: str, post_id: UUID) -> bool:
        if connection_id in self._rooms.get(post_id, ()):
            return False
        self._rooms[post_id].add(connection_id)
        self._memberships[connection_id].add(post_id)
        return True

    def leave(self, connection_id: str, post_id: UUID) -> bool:
        members = self._rooms.get(post_id)
        if not members or connection_id not in members:
            return False
        members.discard(connection_id)
        if not members:
            del self._rooms[post_id]
        rooms = self._memberships.get(connection_id)
        if rooms is not None:
            rooms.discard(post_id)
            if not rooms:
                del self._memberships[connection_id]
        return True

    def drop_connection(self, connection_id: str) -> int:
        """Leave every room; returns how many rooms were left."""
        rooms = list(self._memberships.get(connection_id, ()))
        for post_id in rooms:
            self.leave(connection_id, post_id)
        return len(rooms)

    def members(self, post_id: UUID) -> frozenset[str]:
        return frozenset(self._rooms.get(post_id, ()))

    def rooms_of(self, connection_id: str) -> frozenset[UUID]:
        return frozenset(self._memberships.get(connection_id, ()))

    def room_sizes(self) -> dict[UUID, int]:
        return {post_id: len(members) for post_id, members in self._rooms.items()}
