"""Completion service consumed by the router, the context stage, and handlers.

Architectural role:
    Bridges prompt strings produced by `conduit.prompting` to the provider
    transport in `conduit.llm.client`. The rest of the package depends only on
    the `CompletionService` protocol, so tests and alternative backends can
    substitute their own implementation.

Model call flow:
    prompt -> payload construction -> `asyncio.to_thread(send_request, ...)`.

Structured output:
    `complete_structured` derives a JSON schema from a pydantic model. It is
    sent as `response_format` (honoured by OpenAI-compatible providers) and
    repeated in the prompt for providers that ignore it. The reply is reduced
    to its JSON object and validated with `model_validate`; any mismatch
    raises `StructuredOutputError`.

Determinism:
    Payload construction is deterministic for fixed inputs and configuration.
    Generated output is not.
"""

import asyncio
import json
import re
from enum import Enum
from typing import Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from conduit.core.errors import CompletionError, StructuredOutputError
from conduit.llm import provider_config
from conduit.llm.client import send_request
from conduit.llm.images import fetch_images_as_data_urls


T = TypeVar("T", bound=BaseModel)

IMAGE_DESCRIPTION_PROMPT = (
    "Describe the image(s) in a couple of concise sentences that capture "
    "the most important elements of the image:"
)


class LLMSize(str, Enum):
    SMALL = "small"
    LARGE = "large"


class BooleanAnswer(BaseModel):
    result: bool
    explanation: str = ""


class CompletionService(Protocol):

    async def complete(self, prompt: str, image_urls: list[str] | None = None) -> str:
        ...

    async def complete_structured(
        self,
        prompt: str,
        schema: type[T],
        size: LLMSize = LLMSize.SMALL,
        image_urls: list[str] | None = None,
    ) -> T:
        ...

    async def describe_images(self, image_urls: list[str]) -> str:
        ...


def extract_json(text: str) -> str | None:
    """Extract the outermost JSON object candidate from raw model output."""
    if not text:
        return None

    text = text.strip()

    text = re.sub(r"^```json", "", text, flags=re.IGNORECASE).strip()
    text = re.sub(r"^```", "", text).strip()
    text = re.sub(r"```$", "", text).strip()

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def parse_structured(text: str, schema: type[T]) -> T:
    """Validate raw model output against `schema`.

    Raises:
        StructuredOutputError: No JSON object found, invalid JSON, or schema
            validation failure.
    """
    candidate = extract_json(text)
    if candidate is None:
        raise StructuredOutputError(f"No JSON object in model output for {schema.__name__}")
    try:
        return schema.model_validate(json.loads(candidate))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise StructuredOutputError(
            f"Model output does not match {schema.__name__}: {exc}"
        ) from exc


def _schema_instruction(schema: type[BaseModel]) -> str:
    return (
        "\n\nRespond only with a JSON object that matches this JSON schema:\n"
        + json.dumps(schema.model_json_schema(by_alias=True))
    )


def _user_content(prompt: str, data_urls: list[str]):
    if not data_urls:
        return prompt
    return [{"type": "text", "text": prompt}] + [
        {"type": "image_url", "image_url": {"url": url}} for url in data_urls
    ]


class LLMService:
    """Default `CompletionService` backed by the configured provider.

    Args:
        transport: Blocking `(payload) -> text` callable; defaults to
            `client.send_request`.
        image_loader: Async `(urls) -> data_urls` callable; defaults to
            `images.fetch_images_as_data_urls`.
    """

    def __init__(self, transport=None, image_loader=None, provider: str | None = None):
        self._transport = transport or send_request
        self._image_loader = image_loader or fetch_images_as_data_urls
        self.provider = provider or provider_config.PROVIDER

    async def _call(self, payload: dict) -> str:
        if self._transport is send_request:
            return await asyncio.to_thread(send_request, payload, self.provider)
        return await asyncio.to_thread(self._transport, payload)

    async def _load_images(self, image_urls: list[str] | None) -> list[str]:
        if not image_urls:
            return []
        data_urls = await self._image_loader(list(image_urls))
        if not data_urls:
            raise CompletionError("Failed to process images")
        return data_urls

    async def complete(
        self,
        prompt: str,
        image_urls: list[str] | None = None,
        model: str | None = None,
    ) -> str:
        data_urls = await self._load_images(image_urls)
        payload = {
            "model": model or provider_config.MODEL_NAME,
            "messages": [{"role": "user", "content": _user_content(prompt, data_urls)}],
            "max_tokens": provider_config.MAX_OUTPUT_TOKENS,
        }
        return await self._call(payload)

    async def complete_structured(
        self,
        prompt: str,
        schema: type[T],
        size: LLMSize = LLMSize.SMALL,
        image_urls: list[str] | None = None,
    ) -> T:
        data_urls = await self._load_images(image_urls)
        model = (
            provider_config.STRUCTURED_MODEL_LARGE
            if size == LLMSize.LARGE
            else provider_config.STRUCTURED_MODEL_SMALL
        )
        payload = {
            "model": model,
            "messages": [{
                "role": "user",
                "content": _user_content(prompt + _schema_instruction(schema), data_urls),
            }],
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": schema.__name__,
                    "schema": schema.model_json_schema(by_alias=True),
                },
            },
            "temperature": 0.0,
        }
        text = await self._call(payload)
        return parse_structured(text, schema)

    async def complete_boolean(
        self,
        prompt: str,
        size: LLMSize = LLMSize.SMALL,
        image_urls: list[str] | None = None,
    ) -> bool:
        answer = await self.complete_structured(
            f"{prompt}\n\nRespond with true or false. Include a brief explanation of your reasoning.",
            BooleanAnswer,
            size=size,
            image_urls=image_urls,
        )
        return answer.result

    async def describe_images(self, image_urls: list[str]) -> str:
        if not image_urls:
            raise CompletionError("No images provided")
        return await self.complete(
            IMAGE_DESCRIPTION_PROMPT,
            image_urls=image_urls,
            model=provider_config.VISION_MODEL,
        )
