"""Agent object: persona snapshotting plus an owned route registry.

Persona rendering:
    `get_agent_context` samples up to three entries from each persona pool
    (bio, lore, example conversations, posts, topics, style, adjectives) and
    renders them as labelled sections. Sampling uses the agent's own
    `random.Random`; pass a seeded one to make snapshots reproducible.

Determinism:
    Unseeded agents produce varying excerpts between calls, but the section
    headers are always present and always in the same order.
"""

import random
from collections.abc import Iterable

from conduit.agent.character import Character, MessageExample
from conduit.agent.registry import RouteRegistry
from conduit.core.types import Route


EXCERPTS_PER_SECTION = 3


class BaseAgent:

    def __init__(
        self,
        character: Character,
        routes: Iterable[Route] = (),
        rng: random.Random | None = None,
    ):
        self.character = character
        self.routes = RouteRegistry(routes)
        self._rng = rng or random.Random()

    @property
    def agent_id(self) -> str:
        return self.character.agent_id

    @property
    def name(self) -> str:
        return self.character.name

    @property
    def system_prompt(self) -> str:
        return self.character.system

    def add_route(self, route: Route) -> None:
        """Register a route; raises `DuplicateRouteError` on a name collision."""
        self.routes.add(route)

    def _sample(self, items: list, count: int = EXCERPTS_PER_SECTION) -> list:
        if len(items) <= count:
            shuffled = list(items)
            self._rng.shuffle(shuffled)
            return shuffled
        return self._rng.sample(items, count)

    def _format_message_examples(self, examples: list[list[MessageExample]]) -> str:
        return "\n\n".join(
            "\n".join(f"{msg.user}: {msg.text}" for msg in conversation)
            for conversation in self._sample(examples)
        )

    def get_agent_context(self) -> str:
        c = self.character
        return (
            "Bio Context:\n"
            + "\n".join(self._sample(c.bio))
            + "\n\nLore Context:\n"
            + "\n".join(self._sample(c.lore))
            + "\n\nExample Interactions:\n"
            + self._format_message_examples(c.message_examples)
            + "\n\nExample Posts:\n"
            + "\n".join(self._sample(c.post_examples))
            + "\n\nAreas of Expertise:\n"
            + "\n".join(self._sample(c.topics))
            + "\n\nStyle Guidelines:\n"
            + "General: " + "\n".join(self._sample(c.style.all))
            + "\nChat: " + "\n".join(self._sample(c.style.chat))
            + "\nPost: " + "\n".join(self._sample(c.style.post))
            + "\n\nCharacter Traits:\n"
            + ", ".join(self._sample(c.adjectives))
        ).strip()
