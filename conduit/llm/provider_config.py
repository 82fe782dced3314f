"""LLM provider selection, model names and API key lookup.

Providers: `local`, `openai`, `openrouter`, `anthropic`, `gemini` (see
`PROVIDERS`). Every value is read from the environment once, at import, after
`load_dotenv()`.

Environment variables:
    - `PROVIDER`: key into `PROVIDERS` (default `openrouter`).
    - `MODEL_NAME`: free-form replies.
    - `STRUCTURED_MODEL_LARGE` / `STRUCTURED_MODEL_SMALL`: routing and extraction.
    - `VISION_MODEL`: image descriptions.
    - `LLM_TIMEOUT_SECONDS`, `LLM_MAX_TOKENS`, `APP_URL`.
    - `LOCAL_LLM_URL`: endpoint of the `local` provider.
    - `LLM_KEY_DIR`: directory holding `<provider>.key` files.
    - `<PROVIDER>_API_KEY`: overrides the key file.

A missing key is reported as `None`; `client.send_request` turns that into a
`CompletionError`.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Primary model routing controls.
PROVIDER = os.getenv("PROVIDER", "openrouter").strip().lower()
MODEL_NAME = os.getenv("MODEL_NAME", "anthropic/claude-3.5-sonnet")

# Models used for schema-constrained output (router, contract extraction).
STRUCTURED_MODEL_LARGE = os.getenv("STRUCTURED_MODEL_LARGE", "openai/gpt-4o")
STRUCTURED_MODEL_SMALL = os.getenv("STRUCTURED_MODEL_SMALL", "openai/gpt-4o-mini")

# Model used for best-effort image descriptions during context assembly.
VISION_MODEL = os.getenv("VISION_MODEL", "openai/gpt-4o")

REQUEST_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "120"))
MAX_OUTPUT_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "1000"))

# Sent as HTTP-Referer to providers that attribute traffic (OpenRouter).
APP_URL = os.getenv("APP_URL", "http://localhost:3000")

# Supported providers. `local` is any OpenAI-compatible server on this host;
# `openai` and `openrouter` share the OpenAI wire format; `anthropic` and
# `gemini` are remapped by the client.
LOCAL_URL = os.getenv("LOCAL_LLM_URL", "http://127.0.0.1:8080/v1/chat/completions")
KEY_DIR = os.getenv("LLM_KEY_DIR", "config")

PROVIDERS = {
    "local": {"url": LOCAL_URL, "key_file": None},
    "openai": {
        "url": "https://api.openai.com/v1/chat/completions",
        "key_file": os.path.join(KEY_DIR, "openai.key"),
    },
    "openrouter": {
        "url": "https://openrouter.ai/api/v1/chat/completions",
        "key_file": os.path.join(KEY_DIR, "openrouter.key"),
    },
    "anthropic": {
        "url": "https://api.anthropic.com/v1/messages",
        "key_file": os.path.join(KEY_DIR, "anthropic.key"),
    },
    "gemini": {
        "url": "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
        "key_file": os.path.join(KEY_DIR, "gemini.key"),
    },
}


def key_env_name(key_file: str) -> str:
    """`config/openrouter.key` -> `OPENROUTER_API_KEY`."""
    stem = os.path.splitext(os.path.basename(key_file))[0]
    return f"{stem.upper()}_API_KEY"


def load_key(key_file: str | None) -> str | None:
    """Return the API key for a provider, or `None` when none is configured.

    The environment variable named by `key_env_name` wins over the key file.
    """
    if not key_file:
        return None

    from_env = os.getenv(key_env_name(key_file))
    if from_env:
        return from_env.strip()

    try:
        with open(key_file, "r", encoding="utf-8") as f:
            return f.read().strip() or None
    except FileNotFoundError:
        return None
