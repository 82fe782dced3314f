import random
from datetime import datetime, timedelta, timezone

import pytest

from conduit.agent.base_agent import BaseAgent
from conduit.agent.character import Character
from conduit.agent.defaults import STERN
from conduit.core.types import InputType, Memory, MemoryGenerator
from conduit.prompting.context_builder import (
    NO_HISTORY_MARKER,
    build_context,
    format_input,
    format_memories,
)
from conduit.stages.context import create_wrap_context_stage

from tests.conftest import FakeCompletion, make_input


T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def memory_at(minutes, text, generator=MemoryGenerator.EXTERNAL):
    return Memory(
        id=f"m{minutes}",
        user_id="u1",
        agent_id="stern",
        room_id="stern_u1",
        type="text",
        generator=generator,
        content={"text": text},
        created_at=T0 + timedelta(minutes=minutes),
    )


def test_memories_render_oldest_first_without_mutating_input():
    newest_first = [memory_at(2, "third"), memory_at(1, "second"), memory_at(0, "first")]
    snapshot = list(newest_first)

    rendered = format_memories(newest_first)

    assert rendered.index("first") < rendered.index("second") < rendered.index("third")
    assert newest_first == snapshot


def test_agent_turns_are_labelled():
    rendered = format_memories([memory_at(0, "hi"), memory_at(1, "hello", MemoryGenerator.LLM)])
    assert "User u1: hi" in rendered
    assert "You: hello" in rendered


@pytest.mark.parametrize("memories", [None, []])
def test_empty_history_uses_marker(memories):
    assert format_memories(memories) == NO_HISTORY_MARKER


def test_context_has_three_closed_sections():
    context = build_context([], "persona text", make_input("ping"))

    for tag in ("PREVIOUS_CONVERSATION", "AGENT_CONTEXT", "CURRENT_USER_INPUT"):
        assert context.count(f"<{tag}>") == 1
        assert context.count(f"</{tag}>") == 1
    assert context.index("<PREVIOUS_CONVERSATION>") < context.index("<AGENT_CONTEXT>")
    assert context.index("<AGENT_CONTEXT>") < context.index("<CURRENT_USER_INPUT>")


def test_input_rendering_includes_images_and_description():
    input = make_input(
        "see this",
        type=InputType.TEXT_AND_IMAGE,
        image_urls=("http://x/a.png",),
    )
    rendered = format_input(input, "A red bicycle.")

    assert rendered.startswith("Current Input (text_and_image):")
    assert "Image: http://x/a.png" in rendered
    assert "Image Description: A red bicycle." in rendered


def test_context_is_identical_for_identical_inputs():
    newest_first = [memory_at(2, "third"), memory_at(1, "second", MemoryGenerator.LLM), memory_at(0, "first")]
    input = make_input("ping")

    first = build_context(newest_first, "persona text", input)
    second = build_context(newest_first, "persona text", input)

    assert first == second
    assert first.index("first") < first.index("second") < first.index("third")


def test_seeded_agents_render_same_persona():
    one = BaseAgent(STERN, rng=random.Random(42))
    two = BaseAgent(STERN, rng=random.Random(42))

    assert one.get_agent_context() == two.get_agent_context()


def test_persona_sections_always_present():
    agent = BaseAgent(STERN, rng=random.Random(1))
    persona = agent.get_agent_context()

    for header in (
        "Bio Context:",
        "Lore Context:",
        "Example Interactions:",
        "Example Posts:",
        "Areas of Expertise:",
        "Style Guidelines:",
        "Character Traits:",
    ):
        assert header in persona


def test_persona_samples_at_most_three_entries():
    character = Character(
        name="Many",
        agent_id="many",
        system="x",
        bio=[f"bio-{i}" for i in range(10)],
    )
    persona = BaseAgent(character, rng=random.Random(3)).get_agent_context()

    assert sum(f"bio-{i}" in persona for i in range(10)) == 3


class TestWrapContextStage:

    @pytest.mark.asyncio
    async def test_image_description_failure_is_tolerated(self, agent):
        from conduit.core.types import AgentRequest

        completion = FakeCompletion(description=RuntimeError("vision down"))
        stage = create_wrap_context_stage(completion)
        request = AgentRequest(
            input=make_input("look", type=InputType.TEXT_AND_IMAGE, image_urls=("http://x/a.png",)),
            agent=agent,
            memories=[],
        )
        advanced = []

        async def advance():
            advanced.append(True)

        await stage(request, None, advance)

        assert advanced == [True]
        assert request.image_description is None
        assert "Image Description" not in request.context

    @pytest.mark.asyncio
    async def test_image_description_is_included(self, agent):
        from conduit.core.types import AgentRequest

        completion = FakeCompletion(description="  A finish line.  ")
        stage = create_wrap_context_stage(completion)
        request = AgentRequest(
            input=make_input(None, type=InputType.IMAGE, image_urls=("http://x/a.png",)),
            agent=agent,
            memories=[],
        )

        async def advance():
            return None

        await stage(request, None, advance)

        assert request.image_description == "A finish line."
        assert "Image Description: A finish line." in request.context
