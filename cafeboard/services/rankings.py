"""Member ranking aggregation over iCafeCloud billing logs.

Two sequential page walks over the billing log feed one accumulator map:
checkout events contribute play time and sessions, topup events contribute
money. The map lives only for the duration of one call.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Callable

from cafeboard.core.config import settings
from cafeboard.core.errors import AggregationAborted
from cafeboard.core.logger import get_logger
from cafeboard.core.metrics import (
    RANKING_DURATION_SECONDS,
    RANKING_PAGES_FETCHED_TOTAL,
)
from cafeboard.domain.models import (
    BillingEvent,
    BillingLogEntry,
    MemberRankingRow,
    MemberUsageAccumulator,
)
from cafeboard.domain.parsing import parse_amount, parse_time_to_seconds
from cafeboard.domain.timeframe import Timeframe, resolve_window
from cafeboard.infrastructure.icafe.billing import BillingLogFetcher, BillingLogQuery

logger = get_logger("rankings")

UsageMap = dict[str, MemberUsageAccumulator]


class RankingAggregator:
    def __init__(
        self,
        fetcher: BillingLogFetcher,
        clock: Callable[[], datetime] = datetime.now,
        max_pages: int | None = None,
    ):
        self.fetcher = fetcher
        self._clock = clock
        if max_pages is None:
            max_pages = settings.ranking_max_pages
        if max_pages < 1:
            raise ValueError(f"max_pages must be at least 1, got {max_pages}")
        self.max_pages = max_pages

    async def calculate_member_rankings(
        self, timeframe: Timeframe = Timeframe.MONTH
    ) -> list[MemberRankingRow]:
        """Rank members by hours played within ``timeframe``, most first.

        Raises AggregationAborted if any page fetch raises; a page that comes
        back empty or as None simply ends that walk.
        """
        timeframe = Timeframe(timeframe)
        start, end = resolve_window(timeframe, self._clock())
        started = time.monotonic()
        logger.info(
            "ranking_started",
            extra={
                "timeframe": timeframe.value,
                "window_start": start.isoformat(),
                "window_end": end.isoformat(),
            },
        )

        usage: UsageMap = {}
        await self._walk(BillingEvent.CHECKOUT, start, end, usage, _apply_checkout)
        await self._walk(BillingEvent.TOPUP, start, end, usage, _apply_topup)

        rows = [acc.to_ranking_row() for acc in usage.values()]
        # stable: equal totals keep first-seen order
        rows.sort(key=lambda row: row.total_hours, reverse=True)

        elapsed = time.monotonic() - started
        RANKING_DURATION_SECONDS.observe(elapsed)
        logger.info(
            "ranking_completed",
            extra={
                "timeframe": timeframe.value,
                "members": len(rows),
                "duration_s": round(elapsed, 3),
            },
        )
        return rows

    async def _walk(
        self,
        event: BillingEvent,
        start: datetime,
        end: datetime,
        usage: UsageMap,
        apply: Callable[[UsageMap, BillingLogEntry], None],
    ) -> None:
        page = 1
        while True:
            query = BillingLogQuery(
                date_start=start.date(), date_end=end.date(), event=event, page=page
            )
            try:
                result = await self.fetcher.get_billing_logs(query)
            except Exception as e:
                logger.error(
                    "ranking_aborted",
                    extra={"event": event.value, "page": page, "error": str(e)},
                )
                raise AggregationAborted(event.value, page) from e

            if result is None or not result.log_list:
                break
            info = result.paging_info
            reported = info.page if info is not None else None
            if reported is not None and reported < page:
                # upstream served an earlier page again; its rows were already counted
                logger.warning(
                    "ranking_page_regressed",
                    extra={
                        "event": event.value,
                        "requested_page": page,
                        "reported_page": reported,
                    },
                )
                break

            RANKING_PAGES_FETCHED_TOTAL.labels(event=event.value).inc()
            for entry in result.log_list:
                if _matches_event(entry, event):
                    apply(usage, entry)

            # without a reported page number, trust our own position
            current = reported if reported is not None else page
            if info is None or current >= info.pages:
                break
            if page >= self.max_pages:
                logger.warning(
                    "ranking_page_cap_reached",
                    extra={
                        "event": event.value,
                        "page": page,
                        "reported_pages": info.pages,
                    },
                )
                break
            page += 1


def _matches_event(entry: BillingLogEntry, event: BillingEvent) -> bool:
    # rows without an event name are trusted to match the request filter
    return not entry.log_event or entry.log_event.lower() == event.value


def _apply_checkout(usage: UsageMap, entry: BillingLogEntry) -> None:
    account = entry.log_member_account
    if not account:
        return
    seconds = parse_time_to_seconds(entry.log_used_secs)
    if seconds <= 0:
        return
    acc = usage.get(account)
    if acc is None:
        acc = usage[account] = MemberUsageAccumulator(member_account=account)
    acc.add_session(seconds, entry.timestamp)


def _apply_topup(usage: UsageMap, entry: BillingLogEntry) -> None:
    account = entry.log_member_account
    if not account:
        return
    amount = parse_amount(entry.log_money) + parse_amount(entry.log_card)
    if amount <= 0:
        return
    acc = usage.get(account)
    if acc is None:
        acc = usage[account] = MemberUsageAccumulator(member_account=account)
    acc.add_topup(amount, entry.timestamp)
