"""Append-only conversational memory store.

Purpose of this abstraction:
    The pipeline only needs two operations from storage: `append` one turn and
    `query` the most recent turns for a user or room. Any backend implementing
    `MemoryStore` can be plugged into the load/persist stages and the route
    handlers.

Backends:
    - `InMemoryMemoryStore`: process-local list, lost on exit. Default.
    - `JsonFileMemoryStore`: same semantics, mirrored to a JSON file after every
      append so a restart keeps history. File I/O runs in a worker thread.

Ordering:
    `query` returns newest first (`created_at` descending). Ties keep insertion
    order reversed, so the last appended record of a timestamp comes first.

Failure handling:
    - Unreadable records in the JSON file are skipped with a log line; the rest
      of the history still loads.
    - Write failures raise `MemoryStoreError`; the calling stage decides how
      the request fails.
"""

import asyncio
import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

from conduit.core.errors import MemoryStoreError
from conduit.core.types import Input, Memory, MemoryGenerator


logger = logging.getLogger(__name__)


class MemoryStore(Protocol):

    async def append(self, memory: Memory) -> None:
        ...

    async def query(
        self,
        user_id: str | None = None,
        room_id: str | None = None,
        limit: int = 100,
    ) -> list[Memory]:
        ...


def new_memory(
    input: Input,
    generator: MemoryGenerator,
    content: dict[str, Any],
    type: str = "text",
    agent_id: str | None = None,
) -> Memory:
    """Create a memory record bound to the coordinates of `input`."""
    return Memory(
        id=uuid.uuid4().hex,
        user_id=input.user_id,
        agent_id=agent_id or input.agent_id,
        room_id=input.room_id,
        type=type,
        generator=generator,
        content=content,
        created_at=datetime.now(timezone.utc),
    )


async def remember_reply(
    store: MemoryStore,
    input: Input,
    text: str,
    type: str = "agent",
    agent_id: str | None = None,
) -> Memory:
    """Persist one agent-authored turn replying to `input`."""
    memory = new_memory(input, MemoryGenerator.LLM, {"text": text}, type=type, agent_id=agent_id)
    await store.append(memory)
    return memory


def _matches(memory: Memory, user_id: str | None, room_id: str | None) -> bool:
    if user_id is not None and memory.user_id != user_id:
        return False
    if room_id is not None and memory.room_id != room_id:
        return False
    return True


def _newest_first(records: list[Memory], user_id, room_id, limit: int) -> list[Memory]:
    indexed = [
        (memory.created_at, position, memory)
        for position, memory in enumerate(records)
        if _matches(memory, user_id, room_id)
    ]
    indexed.sort(key=lambda item: (item[0], item[1]), reverse=True)
    return [memory for _, _, memory in indexed[: max(0, limit)]]


class InMemoryMemoryStore:
    """Process-local memory store."""

    def __init__(self, records: list[Memory] | None = None):
        self._records: list[Memory] = list(records or [])
        self._lock = asyncio.Lock()

    async def append(self, memory: Memory) -> None:
        async with self._lock:
            self._records.append(memory)

    async def query(self, user_id=None, room_id=None, limit: int = 100) -> list[Memory]:
        async with self._lock:
            return _newest_first(self._records, user_id, room_id, limit)

    def __len__(self) -> int:
        return len(self._records)


# =========================================================
# JSON FILE BACKEND
# =========================================================

def memory_to_dict(memory: Memory) -> dict[str, Any]:
    return {
        "id": memory.id,
        "userId": memory.user_id,
        "agentId": memory.agent_id,
        "roomId": memory.room_id,
        "type": memory.type,
        "generator": memory.generator.value,
        "content": memory.content,
        "createdAt": memory.created_at.isoformat(),
    }


def memory_from_dict(data: dict[str, Any]) -> Memory:
    """Parse one stored record.

    Raises:
        KeyError / ValueError / TypeError: For records missing fields, with an
        unknown generator tag, or with an unparseable timestamp.
    """
    created_at = datetime.fromisoformat(str(data["createdAt"]).replace("Z", "+00:00"))
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)

    content = data["content"]
    if isinstance(content, str):
        content = json.loads(content)
    if not isinstance(content, dict):
        raise TypeError("memory content must be an object")

    return Memory(
        id=str(data["id"]),
        user_id=str(data["userId"]),
        agent_id=str(data["agentId"]),
        room_id=str(data["roomId"]),
        type=str(data.get("type", "text")),
        generator=MemoryGenerator(data["generator"]),
        content=content,
        created_at=created_at,
    )


class JsonFileMemoryStore:
    """Memory store mirrored to one JSON file.

    The whole record list is rewritten on each append. That keeps the file
    valid JSON at all times and is adequate for single-process deployments
    with modest history sizes.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        self._records: list[Memory] = self._load()

    def _load(self) -> list[Memory]:
        if not os.path.exists(self.path):
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise MemoryStoreError(f"Failed to read memory file {self.path}: {exc}") from exc

        if not isinstance(raw, list):
            raise MemoryStoreError(f"Memory file {self.path} does not contain a list")

        records = []
        for item in raw:
            try:
                records.append(memory_from_dict(item))
            except (KeyError, ValueError, TypeError):
                logger.warning("Failed to load a memory record from %s; skipping", self.path)
        return records

    def _append_sync(self, memory: Memory) -> None:
        with self._lock:
            records = self._records + [memory]
            tmp_path = f"{self.path}.tmp"
            try:
                directory = os.path.dirname(self.path)
                if directory:
                    os.makedirs(directory, exist_ok=True)
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(
                        [memory_to_dict(m) for m in records],
                        f,
                        ensure_ascii=False,
                        indent=2,
                    )
                os.replace(tmp_path, self.path)
            except (OSError, TypeError, ValueError) as exc:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise MemoryStoreError(f"Failed to write memory file {self.path}: {exc}") from exc
            self._records = records

    def _query_sync(self, user_id, room_id, limit) -> list[Memory]:
        with self._lock:
            return _newest_first(self._records, user_id, room_id, limit)

    async def append(self, memory: Memory) -> None:
        await asyncio.to_thread(self._append_sync, memory)

    async def query(self, user_id=None, room_id=None, limit: int = 100) -> list[Memory]:
        return await asyncio.to_thread(self._query_sync, user_id, room_id, limit)

    def __len__(self) -> int:
        return len(self._records)


def build_memory_store(settings) -> MemoryStore:
    if settings.memory_backend == "json":
        return JsonFileMemoryStore(settings.memory_path)
    if settings.memory_backend == "memory":
        return InMemoryMemoryStore()
    raise ValueError(f"Unknown MEMORY_BACKEND: {settings.memory_backend}")
