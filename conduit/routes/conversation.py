"""Catch-all conversation route.

Generates an in-character reply from the assembled context (with the inbound
images attached when there are any), stores it as an `llm` memory, and sends
it.
"""

from conduit.core.types import Route
from conduit.memory.store import remember_reply
from conduit.prompting.prompt_builder import build_conversation_prompt


CONVERSATION_DESCRIPTION = (
    "Call if the user is just conversing or if none of the other routes apply"
)


class ConversationRoute:

    def __init__(self, completion, memory):
        self.completion = completion
        self.memory = memory

    async def __call__(self, context, request, response) -> None:
        image_urls = list(request.input.image_urls) or None
        reply = await self.completion.complete(
            build_conversation_prompt(context),
            image_urls=image_urls,
        )
        await remember_reply(self.memory, request.input, reply, agent_id=request.agent.agent_id)
        await response.send(reply)

    def route(self, name: str = "conversation", description: str = CONVERSATION_DESCRIPTION) -> Route:
        return Route(name=name, description=description, handler=self)
