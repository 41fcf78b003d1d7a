from fastapi import Request

from cafeboard.services.cache_refresh import CacheRefreshService
from cafeboard.services.cache_service import CacheService
from cafeboard.services.members import MemberService
from cafeboard.services.pcs import PcService
from cafeboard.services.rankings import RankingAggregator


def get_cache(request: Request) -> CacheService:
    return request.app.state.cache  # type: ignore[return-value]


def get_aggregator(request: Request) -> RankingAggregator:
    return request.app.state.aggregator  # type: ignore[return-value]


def get_member_service(request: Request) -> MemberService:
    return request.app.state.members  # type: ignore[return-value]


def get_pc_service(request: Request) -> PcService:
    return request.app.state.pcs  # type: ignore[return-value]


def get_cache_refresh(request: Request) -> CacheRefreshService:
    return request.app.state.cache_refresh  # type: ignore[return-value]
