"""Runtime settings for the pipeline, storage collaborators, and adapters.

Fields are read from environment variables (after `load_dotenv()`), so a local
`.env` file can provide them. LLM provider settings live separately in
`conduit.llm.provider_config`.

Relevant environment variables:
    - `HOST`, `PORT`: HTTP adapter bind address.
    - `LOG_LEVEL`: root logging level used by entrypoints.
    - `MEMORY_BACKEND`: `memory` (process-local) or `json` (file mirror).
    - `MEMORY_PATH`: JSON file used by the `json` backend.
    - `MEMORY_LIMIT`: number of past turns loaded per request.
    - `MEMORY_SCOPE`: `user` (all rooms of the user) or `room`.
    - `CONTRACTS_PATH`: JSON file for the contract ledger; empty keeps it in memory.
    - `ROUTER_CONFIDENCE_THRESHOLD`: below this score the router logs a warning.
    - `SERIALIZE_ROOMS`: serialize HTTP requests per room id.
    - `CONTRACT_CANCEL_WINDOW_HOURS`: how long after creation a contract can be cancelled.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "3000")))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    memory_backend: str = field(
        default_factory=lambda: os.getenv("MEMORY_BACKEND", "memory").strip().lower()
    )
    memory_path: str = field(default_factory=lambda: os.getenv("MEMORY_PATH", "memories.json"))
    memory_limit: int = field(default_factory=lambda: int(os.getenv("MEMORY_LIMIT", "100")))
    memory_scope: str = field(
        default_factory=lambda: os.getenv("MEMORY_SCOPE", "user").strip().lower()
    )

    contracts_path: str = field(default_factory=lambda: os.getenv("CONTRACTS_PATH", ""))
    contract_cancel_window_hours: float = field(
        default_factory=lambda: float(os.getenv("CONTRACT_CANCEL_WINDOW_HOURS", "2"))
    )

    router_confidence_threshold: float = field(
        default_factory=lambda: float(os.getenv("ROUTER_CONFIDENCE_THRESHOLD", "0.7"))
    )
    serialize_rooms: bool = field(default_factory=lambda: _env_bool("SERIALIZE_ROOMS", True))


def load_settings() -> Settings:
    """Read settings from the current process environment."""
    return Settings()
