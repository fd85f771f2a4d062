"""Image generation (anonymous or authenticated) and per-user image history."""

import logging
import math
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from imagegen.api.deps import optional_user, require_member
from imagegen.core.config import get_settings
from imagegen.core.database import get_db
from imagegen.core.errors import NotFoundError, ServiceUnavailableError, UpstreamServiceError
from imagegen.core.responses import success
from imagegen.models import Image
from imagegen.schemas.auth import CurrentUser
from imagegen.schemas.common import ApiResponse
from imagegen.schemas.images import (
    HISTORY_PAGE_MAX,
    BatchDeleteData,
    BatchDeleteRequest,
    DeleteFailure,
    GeneratedImage,
    GeneratedPrompt,
    GenerateImageData,
    GenerateImageRequest,
    HistoryItem,
    HistoryPage,
)
from imagegen.services.image_generation import (
    ImageServiceError,
    ImageServiceNotConfiguredError,
    generate_images,
    generate_prompt,
    save_generation,
)

logger = logging.getLogger(__name__)
router = APIRouter()

GUEST_NOTICE = "Guest mode: images are not saved on the server, download them now."


@router.post("/generate-image", response_model=ApiResponse[GenerateImageData])
async def post_generate_image(
    request: Request,
    body: GenerateImageRequest,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser | None, Depends(optional_user)],
) -> ApiResponse:
    """
    Generate images from a prompt.

    Anonymous callers get the upstream URLs only. Callers with a valid user
    token also get each image recorded in their history.
    """
    settings = get_settings()
    try:
        result = await generate_images(body, settings)
    except ImageServiceNotConfiguredError as e:
        raise ServiceUnavailableError(e.message) from e
    except ImageServiceError as e:
        logger.error(
            "Image generation failed",
            extra={"reason": e.message[:500], "upstream_status": e.status_code},
        )
        raise UpstreamServiceError(e.message) from e

    if user is None or user.role != "user":
        data = GenerateImageData(
            images=[GeneratedImage(url=url) for url in result.urls],
            persisted=False,
            seed=result.seed,
            notice=GUEST_NOTICE,
        )
        return success(request, data, "Images generated")

    rows = save_generation(db, user.id, body, result, settings)
    data = GenerateImageData(
        images=[GeneratedImage(url=row.url, image_id=row.id) for row in rows if row.url],
        persisted=True,
        seed=result.seed,
    )
    logger.info("Saved generated images", extra={"user_id": user.id, "image_count": len(rows)})
    return success(request, data, "Images generated")


@router.post("/generate-prompt", response_model=ApiResponse[GeneratedPrompt])
async def post_generate_prompt(request: Request) -> ApiResponse:
    """Suggest a random image prompt written by the upstream chat model. No login needed."""
    try:
        prompt = await generate_prompt(get_settings())
    except ImageServiceNotConfiguredError as e:
        raise ServiceUnavailableError(e.message) from e
    except ImageServiceError as e:
        logger.error(
            "Prompt generation failed",
            extra={"reason": e.message[:500], "upstream_status": e.status_code},
        )
        raise UpstreamServiceError(e.message) from e
    return success(request, GeneratedPrompt(prompt=prompt), "Prompt generated")


def _history_item(row: Image) -> HistoryItem:
    return HistoryItem(
        id=row.id,
        title=row.title or f"AI image - {row.prompt[:30]}",
        prompt=row.prompt,
        model=row.model,
        url=row.url or "",
        thumbnail=row.thumbnail or row.url or "",
        width=row.width,
        height=row.height,
        size=row.size or 0,
        created_at=row.created_at,
    )


@router.get("/image-history", response_model=ApiResponse[HistoryPage])
def get_image_history(
    request: Request,
    user: Annotated[CurrentUser, Depends(require_member)],
    db: Annotated[Session, Depends(get_db)],
    page: Annotated[int, Query()] = 1,
    limit: Annotated[int, Query()] = 10,
) -> ApiResponse:
    """Caller's images, newest first. page is at least 1; limit is clamped to 1-100."""
    page = max(1, page)
    limit = min(max(1, limit), HISTORY_PAGE_MAX)
    query = db.query(Image).filter(Image.user_id == user.id)
    total = query.count()
    rows = (
        query.order_by(Image.created_at.desc(), Image.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    data = HistoryPage(
        items=[_history_item(row) for row in rows],
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit),
    )
    return success(request, data)


# Registered before /image-history/{image_id} so "batch" is not parsed as an id.
@router.delete("/image-history/batch", response_model=ApiResponse[BatchDeleteData])
def delete_image_history_batch(
    request: Request,
    body: BatchDeleteRequest,
    user: Annotated[CurrentUser, Depends(require_member)],
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse:
    """Delete up to 50 of the caller's images; ids that are missing or not owned are reported back."""
    wanted = list(dict.fromkeys(body.ids))
    owned = {
        row.id: row
        for row in db.query(Image).filter(Image.user_id == user.id, Image.id.in_(wanted)).all()
    }
    deleted: list[int] = []
    failed: list[DeleteFailure] = []
    for image_id in wanted:
        row = owned.get(image_id)
        if row is None:
            failed.append(DeleteFailure(id=image_id, reason="Image not found or not owned by you"))
            continue
        db.delete(row)
        deleted.append(image_id)
    db.commit()
    data = BatchDeleteData(deleted_ids=deleted, failed=failed)
    return success(request, data, f"Deleted {len(deleted)} images")


@router.delete("/image-history/{image_id}", response_model=ApiResponse[BatchDeleteData])
def delete_image_history_item(
    request: Request,
    image_id: int,
    user: Annotated[CurrentUser, Depends(require_member)],
    db: Annotated[Session, Depends(get_db)],
) -> ApiResponse:
    row = db.query(Image).filter(Image.id == image_id, Image.user_id == user.id).first()
    if row is None:
        raise NotFoundError("Image not found or not owned by you")
    db.delete(row)
    db.commit()
    return success(request, BatchDeleteData(deleted_ids=[image_id], failed=[]), "Image deleted")
