from fastapi import APIRouter, Depends, Query, status

from cafeboard.api.dependencies import get_cache, get_cache_refresh
from cafeboard.core.logger import get_logger
from cafeboard.domain.timeframe import Timeframe
from cafeboard.services.cache_refresh import CacheRefreshService
from cafeboard.services.cache_service import CacheService

logger = get_logger("api.cache")

router = APIRouter(prefix="/cache", tags=["cache"])


@router.post("/refresh")
async def refresh_rankings(
    timeframe: Timeframe | None = Query(None),
    refresher: CacheRefreshService = Depends(get_cache_refresh),
):
    """Warm ranking caches for one timeframe, or for all when omitted."""
    logger.info(
        "cache_refresh_requested",
        extra={"timeframe": timeframe.value if timeframe else "all"},
    )
    if timeframe is None:
        results = await refresher.refresh_all_ranking_timeframes()
    else:
        results = {
            timeframe.value: await refresher.refresh_ranking_timeframe(timeframe)
        }
    return {"refreshed": results}


@router.post("/refresh/members")
async def refresh_members(
    refresher: CacheRefreshService = Depends(get_cache_refresh),
):
    return {"refreshed": {"members": await refresher.refresh_all_members()}}


@router.delete("", status_code=status.HTTP_200_OK)
async def clear_cache(cache: CacheService = Depends(get_cache)):
    await cache.clear()
    return {"status": "cleared"}
