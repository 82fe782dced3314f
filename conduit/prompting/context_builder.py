"""Context assembly: history + persona + current input rendered as one string.

Architectural role:
    Produces the `context` string that the intent router classifies and that
    route handlers pass on to their own completion calls.

Section layout (fixed order, each section explicitly closed):
    <PREVIOUS_CONVERSATION> ... </PREVIOUS_CONVERSATION>
    <AGENT_CONTEXT> ... </AGENT_CONTEXT>
    <CURRENT_USER_INPUT> ... </CURRENT_USER_INPUT>

History rendering:
    - Memories are sorted oldest first by `created_at`, whatever order the
      store returned them in. The caller's list is not modified.
    - External turns render as `[<timestamp>] User <user_id>: <text>`, agent
      turns as `[<timestamp>] You: <text>`.
    - An empty history renders `NO_HISTORY_MARKER`, never an empty section.

Determinism:
    Every function here is pure: the same `(memories, persona, input,
    image_description)` always yields byte-identical output. Randomized persona
    excerpts are sampled before this module is called.
"""

from collections.abc import Sequence

from conduit.core.types import Input, Memory, MemoryGenerator


NO_HISTORY_MARKER = "No previous conversation history."


def format_memory(memory: Memory) -> str:
    timestamp = memory.created_at.isoformat()
    if memory.generator == MemoryGenerator.EXTERNAL:
        return f"[{timestamp}] User {memory.user_id}: {memory.text}"
    return f"[{timestamp}] You: {memory.text}"


def format_memories(memories: Sequence[Memory] | None) -> str:
    """Render loaded history oldest-first, or the no-history marker."""
    if not memories:
        return NO_HISTORY_MARKER

    ordered = sorted(memories, key=lambda memory: memory.created_at)
    return "\n\n".join(format_memory(memory) for memory in ordered)


def format_input(input: Input, image_description: str | None = None) -> str:
    """Render the current input section.

    Edge cases:
        - Missing `type` renders as `unknown`.
        - `image_description` is included only when enrichment succeeded.
    """
    parts = []

    if input.text:
        parts.append(f"Text: {input.text}")
    for url in input.image_urls:
        parts.append(f"Image: {url}")
    if image_description:
        parts.append(f"Image Description: {image_description.strip()}")
    if input.audio_url:
        parts.append(f"Audio: {input.audio_url}")
    if input.video_url:
        parts.append(f"Video: {input.video_url}")

    input_type = input.type.value if input.type else "unknown"
    return f"Current Input ({input_type}):\n" + "\n".join(parts)


def build_context(
    memories: Sequence[Memory] | None,
    persona: str,
    input: Input,
    image_description: str | None = None,
) -> str:
    return (
        "<PREVIOUS_CONVERSATION>\n"
        + format_memories(memories)
        + "\n</PREVIOUS_CONVERSATION>\n\n"
        "<AGENT_CONTEXT>\n"
        + (persona or "").strip()
        + "\n</AGENT_CONTEXT>\n\n"
        "<CURRENT_USER_INPUT>\n"
        + format_input(input, image_description)
        + "\n</CURRENT_USER_INPUT>"
    )
