"""Route handlers invoked by the intent router.

- `conversation`: catch-all reply.
- `contract`: goal-contract lifecycle (create, formation help, verify, cancel).
- `catalog`: `default_routes` wiring all of them together.
"""
