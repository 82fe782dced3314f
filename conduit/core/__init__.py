"""Core request-lifecycle package.

Architectural role:
    Sits between boundary adapters (HTTP, CLI) and the stages, router, and
    handlers that do the actual work.

Composition:
    - `pipeline`: `AgentFramework` engine and the `AgentResponse` funnel.
    - `types`: shared data contracts (`Input`, `Memory`, `Route`, ...).
    - `errors`: exception taxonomy.
    - `error_handlers`: stock handlers for `AgentFramework.on_error`.
    - `concurrency`: optional per-room serialization.
"""
