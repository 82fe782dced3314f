"""Memory stages: load recent history and persist the inbound turn.

Both stages are built by factories bound to one `MemoryStore`, so several
frameworks with different stores can coexist in a process.

Failure handling:
    Store failures are re-raised as `MemoryStoreError` naming the operation;
    the engine routes them to the error handlers. `advance()` is awaited
    outside the `try` so failures of later stages are not mislabelled as
    memory failures.
"""

import logging

from conduit.core.errors import MemoryStoreError
from conduit.core.types import MemoryGenerator
from conduit.memory.store import MemoryStore, new_memory


logger = logging.getLogger(__name__)

SCOPE_USER = "user"
SCOPE_ROOM = "room"


def create_load_memories_stage(store: MemoryStore, limit: int = 100, scope: str = SCOPE_USER):
    """Build the stage that loads the `limit` most recent turns.

    Args:
        store: Memory collaborator.
        limit: Maximum number of turns loaded.
        scope: `user` loads the user's turns across rooms; `room` only the
            current room.
    """
    if scope not in (SCOPE_USER, SCOPE_ROOM):
        raise ValueError(f"Unknown memory scope: {scope}")

    async def load_memories(request, response, advance) -> None:
        input = request.input
        try:
            if scope == SCOPE_ROOM:
                memories = await store.query(room_id=input.room_id, limit=limit)
            else:
                memories = await store.query(user_id=input.user_id, limit=limit)
        except Exception as exc:
            raise MemoryStoreError(f"Failed to load memories: {exc}") from exc

        request.memories = list(memories)
        logger.debug("Loaded %d memories for user=%s", len(request.memories), input.user_id)
        await advance()

    return load_memories


def create_persist_input_stage(store: MemoryStore):
    """Build the stage that appends the inbound message as an `external` turn."""

    async def create_memory_from_input(request, response, advance) -> None:
        input = request.input
        memory = new_memory(
            input,
            MemoryGenerator.EXTERNAL,
            input.model_dump(mode="json", by_alias=True),
            type="text",
        )
        try:
            await store.append(memory)
        except Exception as exc:
            raise MemoryStoreError(f"Failed to create memory: {exc}") from exc

        await advance()

    return create_memory_from_input
