from typing import Any

from fastapi import APIRouter, Depends, Query

from cafeboard.api.dependencies import get_aggregator, get_cache, get_member_service
from cafeboard.api.errors import to_http_error
from cafeboard.constants.cache_keys import CacheKeys
from cafeboard.core.errors import UpstreamNotFound
from cafeboard.core.logger import get_logger
from cafeboard.domain.models import MemberRankingRow, dump_models
from cafeboard.domain.timeframe import Timeframe
from cafeboard.services.cache_service import CacheService
from cafeboard.services.members import MemberService
from cafeboard.services.rankings import RankingAggregator

logger = get_logger("api.members")

router = APIRouter(prefix="/members", tags=["members"])


# static paths first so they are not captured by /{member_id}
@router.get("/rankings", response_model=list[MemberRankingRow])
async def member_rankings(
    timeframe: Timeframe = Query(Timeframe.MONTH),
    cache: CacheService = Depends(get_cache),
    aggregator: RankingAggregator = Depends(get_aggregator),
):
    async def compute() -> list[dict[str, Any]]:
        return dump_models(await aggregator.calculate_member_rankings(timeframe))

    try:
        return await cache.get_or_set(CacheKeys.member_rankings(timeframe), compute)
    except Exception as e:
        raise to_http_error(e, "members.rankings") from e


@router.get("")
async def list_members(
    cache: CacheService = Depends(get_cache),
    members: MemberService = Depends(get_member_service),
):
    async def compute() -> list[dict[str, Any]]:
        return dump_models(await members.get_all_members())

    try:
        return await cache.get_or_set(CacheKeys.members(), compute)
    except Exception as e:
        raise to_http_error(e, "members.list") from e


@router.get("/search")
async def search_members(
    query: str = Query(""),
    members: MemberService = Depends(get_member_service),
):
    if not query.strip():
        return []
    try:
        member = await members.get_member_by_account(query)
    except UpstreamNotFound:
        logger.info("member_search_no_match", extra={"query_length": len(query)})
        return []
    except Exception as e:
        raise to_http_error(e, "members.search") from e
    return dump_models([member])


@router.get("/{member_id}")
async def get_member(
    member_id: int, members: MemberService = Depends(get_member_service)
):
    try:
        member = await members.get_member_by_id(member_id)
    except Exception as e:
        raise to_http_error(e, "members.detail") from e
    return member.model_dump(mode="json")
