"""Launch endpoints — single launch, sequential batch, confirmation lookup."""

import base64
import binascii
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ValidationError

from config.settings import settings
from src.api.app import limiter
from src.api.dependencies import get_pipeline, require_api_key
from src.launcher.models import LaunchRequest
from src.launcher.pipeline import LaunchPipeline

router = APIRouter(prefix="/api/v1", tags=["launch"], dependencies=[Depends(require_api_key)])

MAX_BATCH_SIZE = 20


class LaunchBody(BaseModel):
    name: str
    symbol: str
    description: str = ""
    twitter: str = ""
    telegram: str = ""
    website: str = ""
    initial_buy_sol: float
    total_fee_sol: float = 0.0
    image_base64: str | None = None
    image_url: str | None = None


class ConfirmationResponse(BaseModel):
    signature: str
    status: str
    error: str | None = None


def _to_request(body: LaunchBody) -> LaunchRequest:
    image_data = None
    if body.image_base64:
        try:
            image_data = base64.b64decode(body.image_base64, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="image_base64 is not valid base64",
            )
    try:
        return LaunchRequest(
            **body.model_dump(exclude={"image_base64"}),
            image_data=image_data,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False),
        )


@router.post("/launch")
@limiter.limit(settings.api_launch_rate_limit)
async def launch_token(
    request: Request,
    body: LaunchBody,
    pipeline: LaunchPipeline = Depends(get_pipeline),
) -> dict[str, Any]:
    """Create a token with an initial buy. Returns after broadcast, not settlement."""
    result = await pipeline.launch(_to_request(body))
    return result.to_dict()


@router.post("/launch/batch")
@limiter.limit(settings.api_launch_rate_limit)
async def launch_batch(
    request: Request,
    bodies: list[LaunchBody],
    pipeline: LaunchPipeline = Depends(get_pipeline),
) -> list[dict[str, Any]]:
    """Launch sequentially, pausing between requests."""
    if not bodies or len(bodies) > MAX_BATCH_SIZE:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Batch must contain 1-{MAX_BATCH_SIZE} launches",
        )
    # Validate everything before the first launch spends anything
    requests = [_to_request(b) for b in bodies]
    results = await pipeline.batch_launch(requests)
    return [r.to_dict() for r in results]


@router.get("/confirmations/{signature}", response_model=ConfirmationResponse)
async def confirmation_status(
    signature: str,
    pipeline: LaunchPipeline = Depends(get_pipeline),
) -> ConfirmationResponse:
    record = pipeline.monitor.status(signature)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Signature not tracked",
        )
    return ConfirmationResponse(
        signature=record.signature,
        status=record.status.value,
        error=record.error,
    )
