"""Per-room exclusive sections for check-then-write booking operations"""
import asyncio
from typing import Dict


class RoomLocks:
    """Hands out one asyncio.Lock per room id.

    Operations on the same room queue behind each other, operations on
    different rooms never contend.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    def for_room(self, room_id: str) -> asyncio.Lock:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[room_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
