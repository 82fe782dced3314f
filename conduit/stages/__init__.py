"""Standard middleware stages and the default chain.

Chain order (`standard_stages`):
    validate_input -> load_memories -> wrap_context -> create_memory_from_input -> router
"""

from conduit.nlp.intent_router import DEFAULT_CONFIDENCE_THRESHOLD, IntentRouter
from conduit.stages.context import create_wrap_context_stage
from conduit.stages.memories import create_load_memories_stage, create_persist_input_stage
from conduit.stages.validation import validate_input


def standard_stages(
    memory,
    completion,
    memory_limit: int = 100,
    memory_scope: str = "user",
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> list:
    return [
        validate_input,
        create_load_memories_stage(memory, limit=memory_limit, scope=memory_scope),
        create_wrap_context_stage(completion),
        create_persist_input_stage(memory),
        IntentRouter(completion, confidence_threshold=confidence_threshold),
    ]
