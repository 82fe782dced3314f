"""Per-room serialization for boundary adapters.

The pipeline engine gives no ordering guarantee between two concurrent requests
for the same conversation. Adapters that need strict per-room ordering wrap
`AgentFramework.process` in `RoomLocks.hold(room_id)`.
"""

import asyncio
from contextlib import asynccontextmanager


class RoomLocks:
    """Keyed `asyncio.Lock` registry; idle locks are dropped after release."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, room_id: str):
        lock = self._locks.setdefault(room_id, asyncio.Lock())
        self._waiters[room_id] = self._waiters.get(room_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[room_id] -= 1
            if self._waiters[room_id] == 0:
                del self._waiters[room_id]
                self._locks.pop(room_id, None)

    def __len__(self) -> int:
        return len(self._locks)
