"""Context stage: persona snapshot, best-effort enrichment, final assembly.

Processing flow:
    1. Snapshot the agent persona once for this request.
    2. If the input carries images, ask the completion service for a short
       description. Any failure is logged and the description omitted.
    3. Render `request.context` with `build_context`.
"""

import logging

from conduit.prompting.context_builder import build_context


logger = logging.getLogger(__name__)


async def describe_images(completion, image_urls) -> str | None:
    """Return an image description, or `None` when enrichment is unavailable."""
    if not image_urls or completion is None:
        return None
    try:
        description = await completion.describe_images(list(image_urls))
    except Exception as exc:
        logger.warning("Image description failed; continuing without it: %s", exc)
        return None
    if not isinstance(description, str) or not description.strip():
        return None
    return description.strip()


def create_wrap_context_stage(completion=None):
    """Build the context stage; `completion=None` disables image enrichment."""

    async def wrap_context(request, response, advance) -> None:
        request.persona = request.agent.get_agent_context()
        request.image_description = await describe_images(completion, request.input.image_urls)
        request.context = build_context(
            request.memories,
            request.persona,
            request.input,
            request.image_description,
        )
        await advance()

    return wrap_context
