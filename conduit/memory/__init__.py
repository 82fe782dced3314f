"""Memory subsystem package.

Architectural role:
    Provides the append-only conversational memory consumed by the load and
    persist stages and by route handlers that store their replies.
    - `store`: `MemoryStore` protocol, in-memory and JSON-file backends,
      record helpers (`new_memory`, `remember_reply`).
"""
