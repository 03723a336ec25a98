from __future__ import annotations

import logging
import random
from threading import RLock

from .models import Room

logger = logging.getLogger(__name__)

CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"


class RoomRegistry:
    """Owns every live room, keyed by its short join code."""

    def __init__(self, code_length: int = 6, rng: random.Random | None = None):
        self.code_length = code_length
        self._rng = rng or random.Random()
        self._lock = RLock()
        self._rooms: dict[str, Room] = {}

    def _new_code(self) -> str:
        return "".join(self._rng.choice(CODE_ALPHABET) for _ in range(self.code_length))

    def create(self, total_sets: int = 1) -> Room:
        with self._lock:
            code = self._new_code()
            while code in self._rooms:
                code = self._new_code()

            room = Room(code=code, total_sets=total_sets)
            self._rooms[code] = room
            logger.info("room %s created (sets=%d)", code, total_sets)
            return room

    def get(self, code: str) -> Room | None:
        with self._lock:
            return self._rooms.get(code)

    def delete(self, code: str) -> bool:
        with self._lock:
            if code in self._rooms:
                del self._rooms[code]
                logger.info("room %s closed (no players left)", code)
                return True
            return False

    def list_rooms(self) -> list[Room]:
        with self._lock:
            return list(self._rooms.values())

    def rooms_for_player(self, player_id: str) -> list[Room]:
        # Room locks are taken after the registry lock is released; departures
        # hold a room lock while deleting from the registry.
        found = []
        for room in self.list_rooms():
            with room.lock:
                if room.get_player(player_id) is not None:
                    found.append(room)
        return found

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def __contains__(self, code: str) -> bool:
        with self._lock:
            return code in self._rooms
