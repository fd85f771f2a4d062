"""Schemas for image generation and the per-user image history."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

ImageSize = Literal["1024x1024", "1280x1280", "1024x1280", "1280x1024"]

PROMPT_MAX_LEN = 1000
BATCH_MAX = 4
BATCH_DELETE_MAX = 50
HISTORY_PAGE_MAX = 100


class GenerateImageRequest(BaseModel):
    """Parameters forwarded to the image generation service."""

    prompt: str = Field(..., min_length=1, max_length=PROMPT_MAX_LEN)
    model: str | None = Field(default=None, description="Upstream model; defaults to IMAGE_API_MODEL")
    image_size: ImageSize = "1280x1280"
    batch_size: int = Field(default=1, ge=1, le=BATCH_MAX)


class GeneratedImage(BaseModel):
    url: str
    image_id: int | None = Field(default=None, description="History id when the result was saved")


class GenerateImageData(BaseModel):
    """Result of one generation call; persisted only for authenticated callers."""

    images: list[GeneratedImage]
    persisted: bool
    seed: int | None = None
    notice: str | None = None


class HistoryItem(BaseModel):
    id: int
    title: str
    prompt: str
    model: str | None = None
    url: str
    thumbnail: str
    width: int | None = None
    height: int | None = None
    size: int = 0
    created_at: datetime | None = None


class HistoryPage(BaseModel):
    items: list[HistoryItem]
    page: int
    limit: int
    total: int
    total_pages: int


class BatchDeleteRequest(BaseModel):
    ids: list[int] = Field(..., min_length=1, max_length=BATCH_DELETE_MAX)


class DeleteFailure(BaseModel):
    id: int
    reason: str


class BatchDeleteData(BaseModel):
    deleted_ids: list[int]
    failed: list[DeleteFailure]


class GeneratedPrompt(BaseModel):
    prompt: str
    source: Literal["ai_generated"] = "ai_generated"
