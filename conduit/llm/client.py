"""Provider-specific transport client for LLM requests.

Architectural role:
    Executes one HTTP request against the configured model provider and returns
    the completion text. Callers build an OpenAI-style chat payload; this module
    remaps it for Anthropic and Gemini.

Model invocation flow:
    `service.LLMService` -> `send_request(payload)` -> provider branch
    (OpenAI-compatible / Anthropic / Gemini) -> completion text.

Message content:
    `messages[i]["content"]` is either a string or a list of OpenAI-style parts
    (`{"type": "text", ...}` / `{"type": "image_url", ...}` with base64 data
    URLs). Image parts are converted to each provider's inline-image format.

Retry behavior:
    No retry loop is implemented. Each HTTP call is attempted once with the
    configured timeout. Retrying belongs to whoever wraps the service.

Failure handling model:
    Every failure raises `CompletionError` carrying a sanitized,
    provider-labelled message. Raw response bodies are not included.
"""

import requests

from conduit.core.errors import CompletionError
from conduit.llm.provider_config import (
    APP_URL,
    PROVIDER,
    PROVIDERS,
    REQUEST_TIMEOUT_SECONDS,
    load_key,
)


def _build_sanitized_http_error(provider_name: str, err: requests.exceptions.RequestException) -> str:
    """Build provider-labeled HTTP error text without exposing raw internals."""
    status_code = None
    if getattr(err, "response", None) is not None:
        status_code = getattr(err.response, "status_code", None)

    label = str(provider_name or "provider").upper()
    if status_code:
        return f"{label} HTTP ERROR ({status_code})"
    return f"{label} HTTP ERROR"


def _split_data_url(url: str) -> tuple[str, str]:
    """Split `data:<mime>;base64,<data>` into `(mime, data)`."""
    header, _, data = url.partition(",")
    mime = header[len("data:"):].split(";", 1)[0] if header.startswith("data:") else ""
    return mime or "application/octet-stream", data


def _iter_parts(content):
    if isinstance(content, str):
        yield {"type": "text", "text": content}
        return
    for part in content or []:
        if isinstance(part, dict):
            yield part


def _to_anthropic_content(content):
    if isinstance(content, str):
        return content

    blocks = []
    for part in _iter_parts(content):
        if part.get("type") == "text":
            blocks.append({"type": "text", "text": part.get("text", "")})
        elif part.get("type") == "image_url":
            mime, data = _split_data_url(part["image_url"]["url"])
            blocks.append({
                "type": "image",
                "source": {"type": "base64", "media_type": mime, "data": data},
            })
    return blocks


def _to_gemini_parts(content):
    parts = []
    for part in _iter_parts(content):
        if part.get("type") == "text" and part.get("text"):
            parts.append({"text": str(part["text"])})
        elif part.get("type") == "image_url":
            mime, data = _split_data_url(part["image_url"]["url"])
            parts.append({"inline_data": {"mime_type": mime, "data": data}})
    return parts


def _extract_openai_text(data: dict) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None
    if not content:
        raise CompletionError("Invalid response format from provider")
    return str(content).strip()


def _send_openai_compatible(provider: str, payload: dict, timeout: float) -> str:
    config = PROVIDERS[provider]

    headers = {
        "Content-Type": "application/json"
    }

    if config["key_file"]:
        api_key = load_key(config["key_file"])
        if not api_key:
            raise CompletionError(f"{provider.upper()} KEY NOT FOUND")
        headers["Authorization"] = f"Bearer {api_key}"

    if provider == "openrouter":
        headers["HTTP-Referer"] = APP_URL

    response = requests.post(
        config["url"],
        headers=headers,
        json=payload,
        timeout=timeout,
    )

    response.raise_for_status()
    return _extract_openai_text(response.json())


def _send_anthropic(payload: dict, timeout: float) -> str:
    api_key = load_key(PROVIDERS["anthropic"]["key_file"])
    if not api_key:
        raise CompletionError("ANTHROPIC KEY NOT FOUND")

    headers = {
        "x-api-key": api_key,
        "anthropic-version": "2023-06-01",
        "Content-Type": "application/json",
    }

    system_prompt = None
    anthropic_messages = []

    for msg in payload.get("messages", []):
        if not isinstance(msg, dict):
            continue

        role = msg.get("role")
        content = msg.get("content", "")

        if role == "system":
            if isinstance(content, str) and content.strip():
                system_prompt = content.strip()
        elif role in ["user", "assistant"]:
            anthropic_messages.append({
                "role": role,
                "content": _to_anthropic_content(content),
            })

    anthropic_payload = {
        "model": payload["model"],
        "max_tokens": payload.get("max_tokens", 1024),
        "messages": anthropic_messages,
    }

    if system_prompt:
        anthropic_payload["system"] = system_prompt

    if "temperature" in payload:
        anthropic_payload["temperature"] = payload["temperature"]

    response = requests.post(
        PROVIDERS["anthropic"]["url"],
        headers=headers,
        json=anthropic_payload,
        timeout=timeout,
    )

    response.raise_for_status()
    data = response.json()

    try:
        return data["content"][0]["text"].strip()
    except (KeyError, IndexError, TypeError, AttributeError):
        raise CompletionError("Invalid response format from ANTHROPIC") from None


def _send_gemini(payload: dict, timeout: float) -> str:
    api_key = load_key(PROVIDERS["gemini"]["key_file"])
    if not api_key:
        raise CompletionError("GEMINI KEY NOT FOUND")

    url = PROVIDERS["gemini"]["url"].format(model=payload["model"])

    headers = {
        "x-goog-api-key": api_key,
        "Content-Type": "application/json",
    }

    gemini_contents = []

    for msg in payload.get("messages", []):
        if not isinstance(msg, dict):
            continue

        role = msg.get("role")
        parts = _to_gemini_parts(msg.get("content", ""))

        if not parts:
            continue

        if role == "assistant":
            gemini_role = "model"
        elif role in ["user", "system"]:
            gemini_role = "user"
        else:
            continue

        gemini_contents.append({"role": gemini_role, "parts": parts})

    gemini_payload = {
        "contents": gemini_contents,
    }

    generation_config = {}
    if "temperature" in payload:
        generation_config["temperature"] = payload["temperature"]
    if "response_format" in payload:
        generation_config["responseMimeType"] = "application/json"
    if generation_config:
        gemini_payload["generationConfig"] = generation_config

    response = requests.post(
        url,
        headers=headers,
        json=gemini_payload,
        timeout=timeout,
    )

    response.raise_for_status()
    data = response.json()

    try:
        return data["candidates"][0]["content"]["parts"][0]["text"].strip()
    except (KeyError, IndexError, TypeError, AttributeError):
        raise CompletionError("Invalid response format from GEMINI") from None


def send_request(payload: dict, provider: str | None = None, timeout: float | None = None) -> str:
    """Send one chat-completion request and return the completion text.

    Args:
        payload: OpenAI-style payload (`model`, `messages`, optional
            `response_format`, `temperature`, `max_tokens`).
        provider: Provider key; defaults to `PROVIDER`.
        timeout: Request timeout in seconds; defaults to `REQUEST_TIMEOUT_SECONDS`.

    Returns:
        Stripped completion text.

    Raises:
        CompletionError: Unknown provider, missing key, HTTP/transport failure,
            or unexpected response shape.
    """
    provider = (provider or PROVIDER).lower()
    timeout = REQUEST_TIMEOUT_SECONDS if timeout is None else timeout

    try:
        if provider == "anthropic":
            return _send_anthropic(payload, timeout)
        if provider == "gemini":
            return _send_gemini(payload, timeout)
        if provider in PROVIDERS:
            return _send_openai_compatible(provider, payload, timeout)
    except requests.exceptions.RequestException as err:
        raise CompletionError(_build_sanitized_http_error(provider, err)) from err
    except ValueError as err:
        # Non-JSON response body.
        raise CompletionError(f"{provider.upper()} RETURNED INVALID JSON") from err

    raise CompletionError(f"INVALID PROVIDER: {provider}")
