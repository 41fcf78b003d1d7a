from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from pydantic import ValidationError

from cafeboard.constants.policy import ICAFE_DATE_FORMAT, ICAFE_SUCCESS_CODE
from cafeboard.core.errors import UpstreamMalformed
from cafeboard.core.logger import get_logger
from cafeboard.domain.models import (
    BillingEvent,
    BillingLogEntry,
    BillingLogPage,
    PagingInfo,
)

from .client import IcafeClient

logger = get_logger("icafe.billing")

BILLING_LOGS_RESOURCE = "billingLogs"


@dataclass(frozen=True)
class BillingLogQuery:
    date_start: date
    date_end: date
    event: BillingEvent
    page: int = 1
    member: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "event", BillingEvent(self.event))

    def to_params(self) -> dict[str, Any]:
        return {
            "date_start": self.date_start.strftime(ICAFE_DATE_FORMAT),
            "date_end": self.date_end.strftime(ICAFE_DATE_FORMAT),
            "member": self.member,
            "event": self.event.value,
            "page": self.page,
        }


def parse_billing_log_page(data: Any) -> Optional[BillingLogPage]:
    """Build a page from the envelope's ``data``; None if it is not an object.

    Rows that are not objects are dropped; a missing or unreadable
    ``paging_info`` is left as None so callers stop paging.
    """
    if not isinstance(data, dict):
        return None
    raw_rows = data.get("log_list")
    rows: list[BillingLogEntry] = []
    if isinstance(raw_rows, list):
        for raw in raw_rows:
            if not isinstance(raw, dict):
                continue
            rows.append(BillingLogEntry.model_validate(raw))
    paging_info = None
    raw_paging = data.get("paging_info")
    if isinstance(raw_paging, dict):
        try:
            paging_info = PagingInfo.model_validate(raw_paging)
        except ValidationError:  # pragma: no cover - validators fall back
            paging_info = None
    return BillingLogPage(log_list=rows, paging_info=paging_info)


class BillingLogFetcher:
    """Reads one page of event-filtered billing logs per call.

    An error envelope (non-200 ``code``) or an absent ``data`` field is "no
    data" and yields None. Transport and HTTP errors propagate unchanged.
    """

    def __init__(self, client: IcafeClient):
        self.client = client

    async def get_billing_logs(self, query: BillingLogQuery) -> Optional[BillingLogPage]:
        try:
            raw = await self.client.fetch_page(BILLING_LOGS_RESOURCE, query.to_params())
        except UpstreamMalformed as e:
            logger.warning(
                "billing_logs_envelope_malformed",
                extra={"event": query.event.value, "page": query.page, "error": str(e)},
            )
            return None

        if raw.code != ICAFE_SUCCESS_CODE:
            logger.warning(
                "billing_logs_unexpected_code",
                extra={
                    "event": query.event.value,
                    "page": query.page,
                    "code": raw.code,
                    "upstream_message": raw.message,
                },
            )
            return None

        page = parse_billing_log_page(raw.data)
        if page is None:
            logger.warning(
                "billing_logs_data_missing",
                extra={"event": query.event.value, "page": query.page},
            )
        return page
