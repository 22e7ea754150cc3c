from __future__ import annotations

import logging
import time
from threading import RLock
from typing import Callable

from .models import Room, RoomId


logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


# (room, now_ms) -> True when the room should be dropped
IdleEvictionPolicy = Callable[[Room, int], bool]


def idle_timeout_policy(ttl_sec: int) -> IdleEvictionPolicy:
    """Evict empty rooms that saw no activity for ``ttl_sec`` seconds (0 disables)."""

    def _policy(room: Room, now: int) -> bool:
        if ttl_sec <= 0 or room.players:
            return False
        return now - room.last_activity_ms >= ttl_sec * 1000

    return _policy


class RoomRegistry:
    def __init__(
        self,
        eviction_policy: IdleEvictionPolicy | None = None,
        clock: Callable[[], int] = now_ms,
        total_rounds: int = 3,
    ) -> None:
        self._lock = RLock()
        self._rooms: dict[str, Room] = {}
        # connection id -> ids of rooms it joined
        self._connections: dict[str, set[str]] = {}
        self.eviction_policy = eviction_policy or idle_timeout_policy(0)
        self.clock = clock
        self.total_rounds = total_rounds

    def get_or_create(self, room_id: str) -> tuple[Room, bool]:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is not None:
                return room, False

            now = self.clock()
            room = Room(
                id=RoomId(room_id),
                total_rounds=self.total_rounds,
                created_at_ms=now,
                last_activity_ms=now,
            )
            self._rooms[room_id] = room
            logger.info("room %s created", room_id)
            return room, True

    def get(self, room_id: str) -> Room | None:
        with self._lock:
            return self._rooms.get(room_id)

    def list_rooms(self) -> list[Room]:
        with self._lock:
            return list(self._rooms.values())

    def delete(self, room_id: str) -> bool:
        with self._lock:
            room = self._rooms.pop(room_id, None)
            if room is None:
                return False
            for sid in [p.id for p in room.players]:
                self.untrack(sid, room_id)
            return True

    def track(self, sid: str, room_id: str) -> None:
        with self._lock:
            self._connections.setdefault(sid, set()).add(room_id)

    def untrack(self, sid: str, room_id: str) -> None:
        with self._lock:
            rooms = self._connections.get(sid)
            if not rooms:
                return
            rooms.discard(room_id)
            if not rooms:
                del self._connections[sid]

    def rooms_for(self, sid: str) -> list[Room]:
        with self._lock:
            ids = sorted(self._connections.get(sid, ()))
            return [self._rooms[i] for i in ids if i in self._rooms]

    def evict_if_idle(self, room_id: str) -> bool:
        room = self.get(room_id)
        if room is None:
            return False

        # Lock order is room, then registry: the same order join takes them.
        with room.lock, self._lock:
            if self._rooms.get(room_id) is not room:
                return False
            if not self.eviction_policy(room, self.clock()):
                return False
            self.delete(room_id)
        logger.info("room %s evicted after inactivity", room_id)
        return True

    def evict_idle(self) -> list[str]:
        evicted = []
        for room in self.list_rooms():
            if self.evict_if_idle(room.id):
                evicted.append(room.id)
        return evicted
