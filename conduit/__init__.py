"""conduit: conversational-agent middleware pipeline.

Architectural role:
    Accepts one inbound message from a boundary adapter (HTTP, CLI), enriches it
    with stored conversational history, asks a language model to classify the
    message against the agent's registered routes, dispatches to the matching
    handler, and persists the exchange.

Package split:
    - `core`: pipeline engine, request/response types, error taxonomy.
    - `stages`: the standard middleware chain (validate, load, assemble, persist).
    - `nlp`: LLM-driven intent router.
    - `prompting`: context assembly and prompt construction.
    - `agent`: persona data, route registry, agent object.
    - `routes`: conversation and goal-contract handlers.
    - `memory`, `contracts`: storage collaborators.
    - `llm`: completion-service collaborator.
    - `api`: HTTP and CLI boundary adapters.
"""

__version__ = "0.1.0"
