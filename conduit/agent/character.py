"""Persona data for an agent.

A `Character` is plain data: the system prompt used by the router, plus pools
of bio, lore, example and style snippets that `BaseAgent.get_agent_context`
samples from when rendering the persona section of the prompt context.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class MessageExample:
    user: str
    text: str


@dataclass
class StyleGuide:
    all: list[str] = field(default_factory=list)
    chat: list[str] = field(default_factory=list)
    post: list[str] = field(default_factory=list)


@dataclass
class Character:
    name: str
    agent_id: str
    system: str
    bio: list[str] = field(default_factory=list)
    lore: list[str] = field(default_factory=list)
    message_examples: list[list[MessageExample]] = field(default_factory=list)
    post_examples: list[str] = field(default_factory=list)
    topics: list[str] = field(default_factory=list)
    style: StyleGuide = field(default_factory=StyleGuide)
    adjectives: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Character":
        """Build a character from the camelCase JSON layout.

        Message examples use `{"user": ..., "content": {"text": ...}}` entries;
        missing pools default to empty lists.
        """
        examples = [
            [
                MessageExample(
                    user=str(msg.get("user", "")),
                    text=str((msg.get("content") or {}).get("text", "")),
                )
                for msg in conversation
            ]
            for conversation in data.get("messageExamples", [])
        ]
        style = data.get("style") or {}

        return cls(
            name=data["name"],
            agent_id=data.get("agentId") or data["name"].lower(),
            system=data.get("system", ""),
            bio=list(data.get("bio", [])),
            lore=list(data.get("lore", [])),
            message_examples=examples,
            post_examples=list(data.get("postExamples", [])),
            topics=list(data.get("topics", [])),
            style=StyleGuide(
                all=list(style.get("all", [])),
                chat=list(style.get("chat", [])),
                post=list(style.get("post", [])),
            ),
            adjectives=list(data.get("adjectives", [])),
        )


def load_character(path: str | Path) -> Character:
    with open(path, "r", encoding="utf-8") as f:
        return Character.from_dict(json.load(f))
