"""Input validation stage.

Runs first in the standard chain. A failure raises `MissingFieldError`, so
the request halts before any storage or completion call.

Rules:
    - `user_id`, `agent_id`, `room_id` and `type` are required.
    - `text`: non-empty text (whitespace counts as text).
    - `text_and_image`: non-empty text and at least one image URL.
    - `image`: at least one image URL.
    - `audio` / `video`: the matching media URL.
"""

from conduit.core.errors import MissingFieldError
from conduit.core.types import Input, InputType


def _blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


def _empty(value: str | None) -> bool:
    return value is None or value == ""


def validate(input: Input) -> None:
    """Raise `MissingFieldError` when `input` violates the presence rules."""
    missing = [
        name for name, value in (
            ("userId", input.user_id),
            ("agentId", input.agent_id),
            ("roomId", input.room_id),
        )
        if _blank(value)
    ]
    if input.type is None:
        missing.append("type")
    if missing:
        raise MissingFieldError(
            f"Invalid input: missing required fields ({', '.join(missing)})",
            missing,
        )

    if input.type == InputType.TEXT:
        if _empty(input.text):
            raise MissingFieldError("Text input requires text field", ["text"])

    elif input.type == InputType.TEXT_AND_IMAGE:
        if _empty(input.text) or not input.image_urls:
            raise MissingFieldError(
                "Text and image input requires both text and imageUrls fields",
                [name for name, bad in (("text", _empty(input.text)),
                                        ("imageUrls", not input.image_urls)) if bad],
            )

    elif input.type == InputType.IMAGE:
        if not input.image_urls:
            raise MissingFieldError("Image input requires imageUrls field", ["imageUrls"])

    elif input.type == InputType.AUDIO:
        if _blank(input.audio_url):
            raise MissingFieldError("Audio input requires audioUrl field", ["audioUrl"])

    elif input.type == InputType.VIDEO:
        if _blank(input.video_url):
            raise MissingFieldError("Video input requires videoUrl field", ["videoUrl"])


async def validate_input(request, response, advance) -> None:
    validate(request.input)
    await advance()
