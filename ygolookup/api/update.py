"""
Dataset update endpoint.

Triggers one publish run. Only one run at a time, and not more often than
the configured cooldown.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ygolookup.api.deps import Runtime, get_runtime
from ygolookup.models.dataset import RunStatistics
from ygolookup.models.failure import UpdateError, UpdateRejected

logger = logging.getLogger(__name__)

router = APIRouter(tags=["update"])


class BanListCountsResponse(BaseModel):
    forbidden: int
    limited: int
    semi_limited: int


class UpdateResponse(BaseModel):
    """Result of a completed update."""

    message: str
    processed_files: int
    image_count: int
    card_count: int | None = None
    ban_lists: dict[str, BanListCountsResponse] = Field(default_factory=dict)
    download_seconds: dict[str, float] = Field(default_factory=dict)
    extract_seconds: dict[str, float] = Field(default_factory=dict)


def _to_response(stats: RunStatistics) -> UpdateResponse:
    return UpdateResponse(
        message=stats.summary(),
        processed_files=stats.processed_files,
        image_count=stats.image_count,
        card_count=stats.card_count,
        ban_lists={
            env: BanListCountsResponse(
                forbidden=counts.forbidden,
                limited=counts.limited,
                semi_limited=counts.semi_limited,
            )
            for env, counts in stats.ban_lists.items()
        },
        download_seconds=stats.download_seconds,
        extract_seconds=stats.extract_seconds,
    )


@router.post("/update", response_model=UpdateResponse)
async def update_dataset(
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> UpdateResponse:
    """
    Download and publish the latest dataset release.

    Returns 409 while another update runs, 429 during the cooldown and 502
    if the run failed. A failure before the swap leaves the previous dataset
    intact.
    """
    try:
        async with runtime.guard.run():
            stats = await runtime.publisher().publish()
    except UpdateRejected as e:
        headers = {"Retry-After": str(int(e.retry_after) + 1)} if e.retry_after else None
        raise HTTPException(status_code=e.status_code, detail=e.message, headers=headers) from e
    except UpdateError as e:
        logger.error("Update failed: %s", e.message)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "kind": e.kind.value,
                "phase": e.phase,
                "file": e.file_name,
                "message": e.message,
            },
        ) from e

    return _to_response(stats)
