"""Periodic cache warming for rankings and the member list."""

from __future__ import annotations

import asyncio
import time

from cafeboard.constants.cache_keys import CacheKeys
from cafeboard.core.logger import get_logger
from cafeboard.core.metrics import (
    CACHE_REFRESH_FAILURES_TOTAL,
    CACHE_REFRESH_RUNS_TOTAL,
    CACHE_REFRESH_SKIPPED_TOTAL,
)
from cafeboard.domain.models import dump_models
from cafeboard.domain.timeframe import Timeframe

from .cache_service import CacheService
from .members import MemberService
from .rankings import RankingAggregator

logger = get_logger("cache.refresh")


class CacheRefreshService:
    """Recomputes cached payloads ahead of expiry.

    Every refresh is best-effort: failures are logged and reported as
    ``False``, never raised, so one bad target cannot stall the others.
    """

    def __init__(
        self,
        aggregator: RankingAggregator,
        member_service: MemberService,
        cache: CacheService,
        ttl_seconds: int | None = None,
    ):
        self.aggregator = aggregator
        self.member_service = member_service
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self._tick_in_flight = False

    async def refresh_ranking_timeframe(self, timeframe: Timeframe) -> bool:
        timeframe = Timeframe(timeframe)
        target = f"rankings:{timeframe.value}"
        start = time.monotonic()
        CACHE_REFRESH_RUNS_TOTAL.labels(target=target).inc()
        try:
            rows = await self.aggregator.calculate_member_rankings(timeframe)
            await self.cache.set(
                CacheKeys.member_rankings(timeframe), dump_models(rows), self.ttl_seconds
            )
        except Exception as e:
            CACHE_REFRESH_FAILURES_TOTAL.labels(target=target).inc()
            logger.error(
                "cache_refresh_failed",
                extra={"target": target, "error": str(e), "error_type": type(e).__name__},
            )
            return False
        logger.info(
            "cache_refreshed",
            extra={
                "target": target,
                "rows": len(rows),
                "duration_s": round(time.monotonic() - start, 3),
            },
        )
        return True

    async def refresh_monthly_member_rankings(self) -> bool:
        return await self.refresh_ranking_timeframe(Timeframe.MONTH)

    async def refresh_all_ranking_timeframes(self) -> dict[str, bool]:
        # sequential to keep upstream load to one page walk at a time
        results = {}
        for timeframe in Timeframe:
            results[timeframe.value] = await self.refresh_ranking_timeframe(timeframe)
        return results

    async def refresh_all_members(self) -> bool:
        target = "members"
        CACHE_REFRESH_RUNS_TOTAL.labels(target=target).inc()
        try:
            members = await self.member_service.get_all_members()
            await self.cache.set(
                CacheKeys.members(), dump_models(members), self.ttl_seconds
            )
        except Exception as e:
            CACHE_REFRESH_FAILURES_TOTAL.labels(target=target).inc()
            logger.error(
                "cache_refresh_failed",
                extra={"target": target, "error": str(e), "error_type": type(e).__name__},
            )
            return False
        logger.info("cache_refreshed", extra={"target": target, "rows": len(members)})
        return True

    async def run_tick(self) -> bool:
        """One scheduled refresh; returns False if a previous tick still runs."""
        if self._tick_in_flight:
            CACHE_REFRESH_SKIPPED_TOTAL.inc()
            logger.warning("cache_refresh_tick_skipped")
            return False
        self._tick_in_flight = True
        try:
            await self.refresh_monthly_member_rankings()
            await self.refresh_all_members()
        finally:
            self._tick_in_flight = False
        return True


async def cache_refresh_loop(
    service: CacheRefreshService,
    stop_event: asyncio.Event,
    interval_seconds: float,
    warm_on_startup: bool = True,
    ready_event: asyncio.Event | None = None,
):
    """Fire ``service.run_tick`` every ``interval_seconds`` until stopped.

    Ticks run as their own tasks so a slow tick never delays the schedule;
    overlapping ticks are skipped by the service. ``ready_event`` is set once
    the startup warm-up finishes, or at the first interval when warm-up
    is off.
    """
    pending: set[asyncio.Task] = set()

    def spawn() -> asyncio.Task:
        task = asyncio.create_task(service.run_tick())
        pending.add(task)
        task.add_done_callback(pending.discard)
        return task

    logger.info(
        "cache_refresh_loop_started",
        extra={"interval_seconds": interval_seconds, "warm_on_startup": warm_on_startup},
    )
    try:
        if warm_on_startup:
            await spawn()
            if ready_event is not None:
                ready_event.set()

        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), interval_seconds)
            except asyncio.TimeoutError:
                spawn()
                if ready_event is not None and not ready_event.is_set():
                    ready_event.set()
    finally:
        leftover = list(pending)
        for task in leftover:
            task.cancel()
        if leftover:
            await asyncio.gather(*leftover, return_exceptions=True)
        logger.info("cache_refresh_loop_stopped")
