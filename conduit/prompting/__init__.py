"""Prompt construction package.

- `context_builder`: deterministic context assembly (history, persona, input).
- `prompt_builder`: routing and handler prompts built on top of that context.
"""
