"""
Provider API Routes

Remaining request budget and cache efficiency per metadata provider, plus
ISBNdb's own account usage.
"""

from fastapi import APIRouter, Depends
from loguru import logger

from editionscout.api.dependencies import ServiceContainer, get_service_container
from editionscout.api.middleware import ProviderUnavailableError
from editionscout.api.schemas import ErrorResponse, ProviderStatusResponse, ProviderUsageResponse


router = APIRouter(prefix="/providers", tags=["providers"])


@router.get("/status", response_model=ProviderStatusResponse)
def provider_status(
    container: ServiceContainer = Depends(get_service_container),
):
    """Rate limiter headroom and cache statistics for each provider."""
    logger.info("Fetching provider status")
    return {"providers": container.provider_status()}


@router.get(
    "/isbndb/stats",
    response_model=ProviderUsageResponse,
    responses={502: {"model": ErrorResponse, "description": "ISBNdb unavailable"}},
)
async def isbndb_stats(
    container: ServiceContainer = Depends(get_service_container),
):
    """Account usage as reported by ISBNdb. Always fetched live."""
    result = await container.isbndb.stats()
    if not result.ok:
        raise ProviderUnavailableError([result.provider], detail=f"isbndb: {result.error.kind.value}")
    return {"provider": result.provider, "stats": result.data if isinstance(result.data, dict) else {}}
