"""Data contracts shared by the pipeline engine, stages, router, and handlers.

Architectural role:
    Defines the inbound message (`Input`), persisted turns (`Memory`), the
    route capability (`Route`), the classifier answer (`RouteDecision`), and
    the per-request state bag (`AgentRequest`).

Ownership:
    - `Input` is built by a boundary adapter and never mutated afterwards.
    - `Memory` records are append-only; the core never edits or deletes them.
    - `Route` objects live in an agent's registry; the router only reads them.
    - `RouteDecision` is produced and consumed inside one routing call.
    - `AgentRequest` belongs to exactly one in-flight request.

Determinism:
    The types are purely structural. Validation of `RouteDecision` bounds is
    enforced by pydantic when the completion service parses model output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from conduit.agent.base_agent import BaseAgent
    from conduit.core.pipeline import AgentResponse


class InputSource(str, Enum):
    NETWORK = "network"
    CLI = "cli"
    API = "api"


class InputType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    TEXT_AND_IMAGE = "text_and_image"
    AUDIO = "audio"
    VIDEO = "video"


class MemoryGenerator(str, Enum):
    """Who authored a persisted turn."""

    EXTERNAL = "external"
    LLM = "llm"


class RouteState(str, Enum):
    """Router-local lifecycle of one request."""

    PENDING_CLASSIFICATION = "pending_classification"
    ROUTED = "routed"
    HANDLED = "handled"
    FAILED = "failed"


class Input(BaseModel):
    """One inbound message as produced by a boundary adapter.

    Field aliases follow the camelCase wire shape
    (`{source, userId, agentId, roomId, type, text?, imageUrls?}`); snake_case
    names are accepted as well.

    Presence rules that depend on `type` are not enforced here. They belong to
    the `validate_input` stage so that a malformed message still reaches the
    pipeline and fails through the normal error path.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source: InputSource = InputSource.API
    user_id: str = Field("", alias="userId")
    agent_id: str = Field("", alias="agentId")
    room_id: str = Field("", alias="roomId")
    type: InputType | None = None
    text: str | None = None
    image_urls: tuple[str, ...] = Field(default=(), alias="imageUrls")
    audio_url: str | None = Field(None, alias="audioUrl")
    video_url: str | None = Field(None, alias="videoUrl")

    @field_validator("image_urls", mode="before")
    @classmethod
    def _absent_image_urls(cls, value):
        return () if value is None else value


@dataclass(frozen=True)
class Memory:
    """One persisted conversational turn.

    Attributes:
        id: Store-assigned identifier.
        user_id / agent_id / room_id: Conversation coordinates.
        type: Free-form record kind (`text`, `agent`, `contract`, ...).
        generator: `external` for user-authored turns, `llm` for agent output.
        content: Payload; `content["text"]` is the rendered text when present.
        created_at: Timezone-aware creation time; the only ordering key.
    """

    id: str
    user_id: str
    agent_id: str
    room_id: str
    type: str
    generator: MemoryGenerator
    content: dict[str, Any]
    created_at: datetime

    @property
    def text(self) -> str:
        value = self.content.get("text") if isinstance(self.content, dict) else None
        return "" if value is None else str(value)


RouteHandler = Callable[[str, "AgentRequest", "AgentResponse"], Awaitable[None]]


@dataclass(frozen=True)
class Route:
    """A named capability the intent router can select.

    `description` is classifier input only; it is never matched structurally.
    """

    name: str
    description: str
    handler: RouteHandler


class RouteDecision(BaseModel):
    """Structured classifier output for one routing call."""

    model_config = ConfigDict(populate_by_name=True)

    selected_route: str = Field(
        alias="selectedRoute",
        description="The name of the selected route",
    )
    confidence: float = Field(
        ge=0.0,
        le=1.0,
        description="A number between 0 and 1 indicating confidence in the selection",
    )
    reasoning: str = Field(
        description="A brief explanation of why this route was selected",
    )


@dataclass
class AgentRequest:
    """Mutable per-request state threaded through the pipeline stages.

    Populated progressively: `memories` by the load stage, `persona`,
    `image_description` and `context` by the context stage, `route_decision`
    and `route_state` by the intent router. `state` is free space for custom
    stages.
    """

    input: Input
    agent: "BaseAgent"
    memories: list[Memory] | None = None
    persona: str | None = None
    image_description: str | None = None
    context: str | None = None
    route_decision: RouteDecision | None = None
    route_state: RouteState | None = None
    state: dict[str, Any] = field(default_factory=dict)
