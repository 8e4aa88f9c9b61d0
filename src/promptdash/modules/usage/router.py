"""
PromptDash Usage - Router.

API endpoints for token usage and statistics cache.
"""

from fastapi import APIRouter, Depends, Query

from promptdash.config import get_settings
from promptdash.deps import require_usage
from promptdash.modules.usage.schemas import ClearResponse, UsageResponse
from promptdash.modules.usage.service import UsageService
from promptdash.observability import get_usage_ledger
from promptdash.schemas import ErrorResponse

router = APIRouter(
    prefix="/api",
    tags=["usage"],
    dependencies=[require_usage],
)


def get_service() -> UsageService:
    """Get usage service instance."""
    return UsageService(get_usage_ledger(), recent_limit=get_settings().ledger.recent_limit)


@router.get("/usage", response_model=UsageResponse, response_model_by_alias=True)
async def get_usage(service: UsageService = Depends(get_service)):
    """Usage stats, cache counters and the most recent calls (ISO timestamps)."""
    return service.get_usage()


@router.delete(
    "/usage",
    response_model=ClearResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid target"}},
)
async def clear_usage(
    target: str | None = Query(default=None, description="usage, cache or all"),
    service: UsageService = Depends(get_service),
):
    """Clear the usage log, the statistics cache, or both."""
    return service.clear(target)
