"""
HTTP adapter for the agent pipeline.

Architectural role:
- Translate HTTP requests into `Input` objects and hand them to
  `AgentFramework.process`.
- Collect the single terminal response from the pipeline and shape it into an
  HTTP response.

Endpoint responsibilities:
- `GET /agents`: list registered agents and their routes.
- `POST /agent/input`: run one message through the pipeline.

API request lifecycle (`POST /agent/input`):
1. Parse the `{"input": {...}}` body (camelCase field names).
2. Resolve the agent by `agentId`; unknown agents get HTTP 404.
3. Stamp `source=network` and default `roomId` to `<agentId>_<userId>`.
4. Hold the per-room lock (when enabled) and run the pipeline.
5. Render the collected response.

Response formatting:
- `send(text)` -> `text/plain` body, HTTP 200.
- `json(obj)` -> JSON body, HTTP 200.
- Pipeline failure -> `{"error": <generic message>}`, HTTP 500.
- A pipeline that finished without any response is answered like a failure.

Error handling strategy:
- Malformed bodies follow FastAPI's default 422 handling.
- Raw exception text never reaches the client.
"""

import logging
from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel

from conduit.core.concurrency import RoomLocks
from conduit.core.types import Input, InputSource


logger = logging.getLogger(__name__)


class AgentInputRequest(BaseModel):
    input: Input


class CollectingSink:
    """Response sink that keeps the terminal emission for later rendering."""

    def __init__(self):
        self.kind: str | None = None
        self.content: Any = None

    async def send(self, content: Any) -> None:
        self.kind = "send"
        self.content = content

    async def json(self, content: Any) -> None:
        self.kind = "json"
        self.content = content

    async def error(self, message: str) -> None:
        self.kind = "error"
        self.content = message


def render(sink: CollectingSink, failure_message: str) -> Response:
    if sink.kind == "send":
        if isinstance(sink.content, str):
            return PlainTextResponse(sink.content)
        return JSONResponse(sink.content)
    if sink.kind == "json":
        return JSONResponse(sink.content)
    if sink.kind == "error":
        return JSONResponse({"error": sink.content}, status_code=500)
    return JSONResponse({"error": failure_message}, status_code=500)


def create_app(framework, agents, settings=None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        framework: Configured `AgentFramework`.
        agents: Iterable of agents; looked up by `agent_id`.
        settings: Optional `Settings`; only `serialize_rooms` is read.

    Returns:
        FastAPI app with the routes above registered.
    """
    app = FastAPI(title="conduit")
    by_id = {agent.agent_id: agent for agent in agents}
    serialize_rooms = True if settings is None else settings.serialize_rooms
    room_locks = RoomLocks()

    app.state.framework = framework
    app.state.agents = by_id
    app.state.room_locks = room_locks

    @app.get("/agents")
    def list_agents():
        return {
            "object": "list",
            "data": [
                {
                    "id": agent.agent_id,
                    "name": agent.name,
                    "routes": agent.routes.names(),
                }
                for agent in by_id.values()
            ],
        }

    @app.post("/agent/input")
    async def agent_input(body: AgentInputRequest):
        agent = by_id.get(body.input.agent_id)
        if agent is None:
            return JSONResponse({"error": "Agent not found"}, status_code=404)

        input = body.input.model_copy(
            update={
                "source": InputSource.NETWORK,
                "room_id": body.input.room_id or f"{agent.agent_id}_{body.input.user_id}",
            }
        )

        sink = CollectingSink()
        if serialize_rooms:
            async with room_locks.hold(input.room_id):
                await framework.process(input, agent, sink)
        else:
            await framework.process(input, agent, sink)

        if sink.kind is None:
            logger.error("No response produced for room=%s", input.room_id)

        return render(sink, framework.failure_message)

    return app
