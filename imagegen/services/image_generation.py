"""Image generation: proxy prompts to the upstream service and record results in user history."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
from sqlalchemy.orm import Session

from imagegen.models import Image
from imagegen.schemas.images import GenerateImageRequest

if TYPE_CHECKING:
    from imagegen.core.config import Settings

logger = logging.getLogger(__name__)

TITLE_PROMPT_CHARS = 30


class ImageServiceNotConfiguredError(Exception):
    """Raised when generation is requested but IMAGE_API_KEY is missing."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ImageServiceError(Exception):
    """Raised when the upstream service is unreachable or returns an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


@dataclass
class GenerationResult:
    """Image URLs returned by the upstream service for one request."""

    urls: list[str] = field(default_factory=list)
    seed: int | None = None


def _get_api_key(settings: Settings) -> str:
    if settings.IMAGE_API_KEY is None or not settings.IMAGE_API_KEY.get_secret_value().strip():
        raise ImageServiceNotConfiguredError(
            "Image generation is not configured; set IMAGE_API_KEY."
        )
    return settings.IMAGE_API_KEY.get_secret_value().strip()


def _error_detail(resp: httpx.Response) -> str:
    """Best-effort message from an upstream error body."""
    try:
        body = resp.json()
    except (json.JSONDecodeError, ValueError):
        return resp.text[:500] if resp.text else "Unknown error"
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])[:500]
        if body.get("message"):
            return str(body["message"])[:500]
    return json.dumps(body)[:500]


async def generate_images(body: GenerateImageRequest, settings: Settings) -> GenerationResult:
    """
    Call {IMAGE_API_BASE_URL}/images/generations and return the image URLs.

    Raises ImageServiceNotConfiguredError if no API key is set and
    ImageServiceError on transport failure or a non-2xx response.
    """
    api_key = _get_api_key(settings)
    url = f"{settings.IMAGE_API_BASE_URL}/images/generations"
    payload: dict[str, Any] = {
        "prompt": body.prompt,
        "model": body.model or settings.IMAGE_API_MODEL,
        "image_size": body.image_size,
        "batch_size": body.batch_size,
    }
    headers = {"Authorization": f"Bearer {api_key}"}
    timeout = httpx.Timeout(settings.IMAGE_API_TIMEOUT_SEC)
    start = time.perf_counter()

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.post(url, json=payload, headers=headers)
    except httpx.TimeoutException as e:
        raise ImageServiceError("Image generation service timed out.") from e
    except httpx.HTTPError as e:
        raise ImageServiceError("Image generation service is unreachable.") from e
    elapsed = time.perf_counter() - start

    if resp.status_code >= 400:
        detail = _error_detail(resp)
        logger.info(
            "Image generation request failed",
            extra={"latency_seconds": elapsed, "upstream_status": resp.status_code},
        )
        raise ImageServiceError(f"Image generation failed: {detail}", resp.status_code)

    try:
        data = resp.json()
    except (json.JSONDecodeError, ValueError) as e:
        raise ImageServiceError("Image generation response is not valid JSON.") from e

    items = data.get("data") or data.get("images") or []
    urls = [item["url"] for item in items if isinstance(item, dict) and item.get("url")]
    seed = data.get("seed") if isinstance(data.get("seed"), int) else None
    logger.info(
        "Image generation request completed",
        extra={
            "latency_seconds": elapsed,
            "image_count": len(urls),
            "model": payload["model"],
        },
    )
    return GenerationResult(urls=urls, seed=seed)


PROMPT_SYSTEM_MESSAGE = (
    "You are an expert prompt writer for AI image generation. Write one creative, "
    "detailed image prompt that covers subject, style, lighting and composition. "
    "Reply with the prompt only."
)
PROMPT_USER_MESSAGE = "Write a random, creative image prompt."


async def generate_prompt(settings: Settings) -> str:
    """
    Ask the chat model at {IMAGE_API_BASE_URL}/chat/completions for a random image prompt.

    Same key and errors as generate_images; a reply without message content is
    an ImageServiceError.
    """
    api_key = _get_api_key(settings)
    url = f"{settings.IMAGE_API_BASE_URL}/chat/completions"
    payload: dict[str, Any] = {
        "model": settings.PROMPT_API_MODEL,
        "messages": [
            {"role": "system", "content": PROMPT_SYSTEM_MESSAGE},
            {"role": "user", "content": PROMPT_USER_MESSAGE},
        ],
        "max_tokens": 200,
        "temperature": 0.8,
    }
    headers = {"Authorization": f"Bearer {api_key}"}
    timeout = httpx.Timeout(settings.PROMPT_API_TIMEOUT_SEC)

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.post(url, json=payload, headers=headers)
    except httpx.TimeoutException as e:
        raise ImageServiceError("Prompt generation service timed out.") from e
    except httpx.HTTPError as e:
        raise ImageServiceError("Prompt generation service is unreachable.") from e

    if resp.status_code >= 400:
        raise ImageServiceError(f"Prompt generation failed: {_error_detail(resp)}", resp.status_code)

    try:
        data = resp.json()
        content = data["choices"][0]["message"]["content"]
    except (json.JSONDecodeError, ValueError, KeyError, IndexError, TypeError) as e:
        raise ImageServiceError("Prompt generation response has an unexpected format.") from e
    if not isinstance(content, str) or not content.strip():
        raise ImageServiceError("Prompt generation returned an empty prompt.")
    return content.strip()


def save_generation(
    db: Session,
    user_id: int,
    body: GenerateImageRequest,
    result: GenerationResult,
    settings: Settings,
) -> list[Image]:
    """
    Persist one history row per returned image, or a single prompt-only row when
    the service returned no URLs. Width and height come from the requested size.
    """
    width, height = (int(part) for part in body.image_size.split("x"))
    title = f"AI image - {body.prompt[:TITLE_PROMPT_CHARS]}"
    model = body.model or settings.IMAGE_API_MODEL
    urls = result.urls or [""]
    rows = [
        Image(
            user_id=user_id,
            title=title,
            prompt=body.prompt,
            model=model,
            url=url,
            thumbnail=url,
            width=width,
            height=height,
            size=0,
        )
        for url in urls
    ]
    db.add_all(rows)
    db.commit()
    for row in rows:
        db.refresh(row)
    return rows
