"""Pipeline engine: ordered middleware chain with centralized error dispatch.

Architectural role:
    Owns the lifecycle of one request. Boundary adapters (HTTP, CLI) call
    `AgentFramework.process(input, agent, sink)`; the engine builds a fresh
    `AgentRequest`/`AgentResponse` pair and runs the registered stages.

Control-flow model:
    1. Stages run strictly in registration order.
    2. Each stage receives `(request, response, advance)`. Calling `advance()`
       runs the next stage; writing to the response terminates the chain.
    3. An exception escaping a stage is caught at that stage's call site,
       wrapped in `StageError`, and passed to `response.error(...)`. The chain
       is never resumed afterwards.
    4. `response.error(...)` fans out to every registered error handler in
       order. A failing handler is logged and the next one still runs.

Cursor model:
    Every stage gets its own `advance` continuation bound to its position in
    the chain of this request only. A continuation runs the next stage at most
    once, so no stage can run twice and none can be skipped.

Contract violation:
    A stage that neither advances nor writes a response leaves the request
    without a terminal response. The engine logs a warning when that happens;
    boundary adapters answer such requests with the generic failure message.

Response guarantees:
    Exactly one terminal emission reaches the sink: one `send`/`json` on
    success or one `error` on failure. A second success write raises
    `ResponseFinalizedError`; an `error` after finalization is logged only.
"""

import logging
from typing import Any, Awaitable, Callable, Protocol

from conduit.core.errors import (
    GENERIC_FAILURE_MESSAGE,
    ResponseFinalizedError,
    StageError,
)
from conduit.core.types import AgentRequest, Input


logger = logging.getLogger(__name__)


class ResponseSink(Protocol):
    """Transport-side receiver for the single terminal response."""

    async def send(self, content: Any) -> None:
        ...

    async def json(self, content: Any) -> None:
        ...

    async def error(self, message: str) -> None:
        ...


Advance = Callable[[], Awaitable[None]]
Stage = Callable[[AgentRequest, "AgentResponse", Advance], Awaitable[None]]
ErrorHandler = Callable[[BaseException, AgentRequest, "AgentResponse"], Awaitable[None]]


def stage_name(stage: Any) -> str:
    """Best-effort readable name for a stage callable."""
    name = getattr(stage, "stage_name", None) or getattr(stage, "__name__", None)
    if name:
        return str(name)
    return type(stage).__name__


class AgentResponse:
    """Funnel for all output of one request.

    Success output goes through `send` or `json`; failures through `error`.
    Whichever comes first finalizes the response.
    """

    def __init__(
        self,
        request: AgentRequest,
        sink: ResponseSink,
        error_handlers: list[ErrorHandler],
        failure_message: str = GENERIC_FAILURE_MESSAGE,
    ):
        self.request = request
        self._sink = sink
        self._error_handlers = error_handlers
        self._failure_message = failure_message
        self.finalized = False
        self.failed = False
        self.content: Any = None
        self.exception: BaseException | None = None
        self._error_delivered = False

    async def send(self, content: Any) -> None:
        self._finalize_success(content)
        await self._sink.send(content)

    async def json(self, content: Any) -> None:
        self._finalize_success(content)
        await self._sink.json(content)

    def _finalize_success(self, content: Any) -> None:
        if self.finalized:
            raise ResponseFinalizedError("Response already finalized; refusing a second write")
        self.finalized = True
        self.content = content

    async def error(self, error: BaseException) -> None:
        """Fail the request and notify every registered error handler.

        Args:
            error: Exception describing the failure.

        Important behavior:
            - Handlers run sequentially in registration order.
            - A handler's own exception is logged and swallowed.
            - If no handler delivered a user-facing message, the generic
              failure message is delivered once handlers finish.

        Edge cases:
            - Calling `error` on an already finalized response (including one
              that already succeeded) only logs the error.
        """
        if self.finalized:
            logger.error(
                "Error raised after response was finalized (room=%s): %s",
                self.request.input.room_id,
                error,
                exc_info=(type(error), error, error.__traceback__),
            )
            return

        self.finalized = True
        self.failed = True
        self.exception = error

        for handler in self._error_handlers:
            try:
                await handler(error, self.request, self)
            except Exception:
                logger.exception("Error in error handler %s", stage_name(handler))

        if not self._error_delivered:
            await self.reply_error(self._failure_message)

    async def reply_error(self, message: str) -> None:
        """Deliver the user-facing failure message; only the first call counts."""
        if self._error_delivered:
            return
        self._error_delivered = True
        await self._sink.error(message)


class _Cursor:
    """Per-request walk over a snapshot of the stage list."""

    def __init__(self, stages: list[Stage], request: AgentRequest, response: AgentResponse):
        self._stages = stages
        self._request = request
        self._response = response

    def continuation(self, position: int) -> Advance:
        called = False

        async def advance() -> None:
            nonlocal called
            if called:
                logger.warning(
                    "advance() called more than once by stage %s; ignoring",
                    stage_name(self._stages[position - 1]) if position else "<start>",
                )
                return
            called = True
            await self.run(position)

        return advance

    async def run(self, position: int) -> None:
        if position >= len(self._stages):
            return
        if self._response.failed:
            return

        stage = self._stages[position]
        try:
            await stage(self._request, self._response, self.continuation(position + 1))
        except Exception as exc:
            await self._response.error(StageError(stage_name(stage), exc))


class AgentFramework:
    """Ordered middleware chain shared by every request of the process.

    The chain is built once at startup with `use` and `on_error`; there is no
    removal API.
    """

    def __init__(self, failure_message: str = GENERIC_FAILURE_MESSAGE):
        self._stages: list[Stage] = []
        self._error_handlers: list[ErrorHandler] = []
        self.failure_message = failure_message

    @property
    def stages(self) -> tuple[Stage, ...]:
        return tuple(self._stages)

    def use(self, stage: Stage) -> "AgentFramework":
        self._stages.append(stage)
        return self

    def on_error(self, handler: ErrorHandler) -> "AgentFramework":
        self._error_handlers.append(handler)
        return self

    async def process(self, input: Input, agent, sink: ResponseSink) -> AgentResponse:
        """Run the full stage chain for one inbound message.

        Args:
            input: Validated-or-not inbound message from a boundary adapter.
            agent: Agent owning the route registry and persona.
            sink: Transport receiver for the terminal response.

        Returns:
            The finalized (or, on contract violation, unfinalized) response.

        Side effects:
            Seals the agent's route registry on first use.
        """
        agent.routes.seal()

        request = AgentRequest(input=input, agent=agent)
        response = AgentResponse(
            request,
            sink,
            list(self._error_handlers),
            failure_message=self.failure_message,
        )

        cursor = _Cursor(list(self._stages), request, response)
        try:
            await cursor.run(0)
        except Exception as exc:
            # Raised by error handling itself (for example a broken sink).
            logger.exception("Unhandled failure while processing request")
            await response.error(exc)

        if not response.finalized:
            logger.warning(
                "Stage chain ended without a response (user=%s, room=%s)",
                input.user_id,
                input.room_id,
            )

        return response
