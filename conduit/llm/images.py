"""Image download helpers for multimodal completion requests.

Processing flow:
    1. Fetch every URL concurrently with `httpx.AsyncClient`.
    2. Keep only supported content types (jpeg, png, gif, webp).
    3. Return base64 `data:` URLs ready for OpenAI-style `image_url` parts.

Error handling strategy:
    A failing or unsupported URL is logged and skipped; the caller decides
    whether an empty result is an error.
"""

import asyncio
import base64
import logging

import httpx


logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
FETCH_TIMEOUT_SECONDS = 20.0


async def _fetch_one(client: httpx.AsyncClient, url: str) -> str | None:
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("Error fetching image %s: %s", url, exc)
        return None

    content_type = response.headers.get("content-type", "").split(";", 1)[0].strip().lower()
    if content_type not in SUPPORTED_IMAGE_TYPES:
        logger.warning("Unsupported image type: %s, url: %s", content_type or "<none>", url)
        return None

    encoded = base64.b64encode(response.content).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


async def fetch_images_as_data_urls(
    image_urls: list[str],
    timeout: float = FETCH_TIMEOUT_SECONDS,
) -> list[str]:
    """Download images and return them as base64 data URLs, input order kept."""
    if not image_urls:
        return []

    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        results = await asyncio.gather(*(_fetch_one(client, url) for url in image_urls))

    return [item for item in results if item]
