"""Shared fakes and fixtures for pipeline tests."""

import random

import pytest

from conduit.agent.base_agent import BaseAgent
from conduit.agent.defaults import STERN
from conduit.core.types import Input, InputSource, InputType, RouteDecision
from conduit.memory.store import InMemoryMemoryStore


class FakeCompletion:
    """Completion service double.

    Structured answers are queued per schema name; text answers are queued in
    order. Every call is recorded.
    """

    def __init__(self, text_replies=None, structured=None, description="A photo of a running track."):
        self.text_replies = list(text_replies or [])
        self.structured = {name: list(values) for name, values in (structured or {}).items()}
        self.description = description
        self.calls = []

    async def complete(self, prompt, image_urls=None, model=None):
        self.calls.append(("complete", prompt, image_urls))
        if self.text_replies:
            reply = self.text_replies.pop(0)
        else:
            reply = "ok"
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def complete_structured(self, prompt, schema, size=None, image_urls=None):
        self.calls.append(("structured", prompt, schema.__name__, image_urls))
        queue = self.structured.get(schema.__name__)
        if not queue:
            raise AssertionError(f"No structured reply queued for {schema.__name__}")
        value = queue.pop(0)
        if isinstance(value, BaseException):
            raise value
        if isinstance(value, dict):
            return schema.model_validate(value)
        return value

    async def describe_images(self, image_urls):
        self.calls.append(("describe", None, image_urls))
        if isinstance(self.description, BaseException):
            raise self.description
        return self.description

    def prompts(self, kind):
        return [call[1] for call in self.calls if call[0] == kind]


class RecordingSink:

    def __init__(self):
        self.events = []

    async def send(self, content):
        self.events.append(("send", content))

    async def json(self, content):
        self.events.append(("json", content))

    async def error(self, message):
        self.events.append(("error", message))


def decision(route, confidence=0.9, reasoning="test"):
    return RouteDecision(selected_route=route, confidence=confidence, reasoning=reasoning)


def make_input(text="hello", user_id="u1", agent_id="stern", room_id="stern_u1", **extra):
    data = dict(
        source=InputSource.API,
        user_id=user_id,
        agent_id=agent_id,
        room_id=room_id,
        type=InputType.TEXT,
        text=text,
    )
    data.update(extra)
    return Input(**data)


@pytest.fixture
def memory():
    return InMemoryMemoryStore()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def agent():
    return BaseAgent(STERN, rng=random.Random(7))
