"""
Health check endpoints.

Liveness, plus readiness based on whether a dataset has been published.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from ygolookup.api.deps import Runtime, get_runtime

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    dataset: str | None = None
    update_running: bool | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """
    Liveness probe.

    Returns healthy if the service is running.
    Does not check the dataset.
    """
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(
    response: Response,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> HealthResponse:
    """
    Readiness probe.

    Returns 503 until a card database has been published.
    """
    if runtime.paths.card_database.is_file():
        return HealthResponse(
            status="ready", dataset="present", update_running=runtime.guard.running
        )

    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthResponse(
        status="not ready", dataset="missing", update_running=runtime.guard.running
    )
