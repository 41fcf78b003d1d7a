from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from .parsing import parse_log_timestamp, round_half_up


class BillingEvent(str, Enum):
    """Billing log categories the ranking engine consumes."""

    CHECKOUT = "checkout"
    TOPUP = "topup"


# ----- Upstream payloads (parsed defensively at the client boundary) -----


class RawPageResponse(BaseModel):
    """iCafeCloud envelope: ``{"code": 200, "message": "...", "data": ...}``."""

    model_config = ConfigDict(extra="ignore")

    code: int | None = None
    message: str = ""
    data: Any = None

    @field_validator("code", mode="before")
    @classmethod
    def _coerce_code(cls, value: Any) -> int | None:
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value: Any) -> str:
        return "" if value is None else str(value)


class BillingLogEntry(BaseModel):
    """One billing log row. All fields are kept as stripped text."""

    model_config = ConfigDict(extra="ignore")

    log_id: str = ""
    log_date: str = ""
    log_date_local: str = ""
    log_member_account: str = ""
    log_pc_name: str = ""
    log_event: str = ""
    log_money: str = ""
    log_card: str = ""
    log_used_secs: str = ""
    log_details: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @property
    def timestamp(self) -> datetime | None:
        return parse_log_timestamp(self.log_date_local, self.log_date)


class PagingInfo(BaseModel):
    """Upstream paging block. ``page`` stays None when upstream omits it."""

    model_config = ConfigDict(extra="ignore")

    page: int | None = None
    pages: int = 1
    total_records: int = 0

    @field_validator("page", "pages", "total_records", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any, info) -> int | None:
        try:
            return int(float(str(value).strip()))
        except (TypeError, ValueError):
            return cls.model_fields[info.field_name].default


class BillingLogPage(BaseModel):
    log_list: list[BillingLogEntry] = []
    paging_info: PagingInfo | None = None


class Member(BaseModel):
    """Upstream member record; fields beyond the identifiers pass through."""

    model_config = ConfigDict(extra="allow")

    member_id: int
    member_account: str

    @field_validator("member_account", mode="before")
    @classmethod
    def _coerce_account(cls, value: Any) -> str:
        if value is None:
            raise ValueError("member_account is required")
        return str(value)


class Pc(BaseModel):
    model_config = ConfigDict(extra="allow")

    pc_name: str


# ----- Rankings -----


class MemberRankingRow(BaseModel):
    """One ranking line as served to the dashboard (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    member_account: str
    total_hours: float
    session_count: int
    avg_session_hours: float
    total_topups: float
    last_active: str | None = None


@dataclass
class MemberUsageAccumulator:
    """Running totals for one member during a single ranking computation."""

    member_account: str
    total_seconds: int = 0
    session_count: int = 0
    last_active: datetime | None = None
    total_topups: float = 0.0

    def touch(self, when: datetime | None) -> None:
        if when is None:
            return
        if self.last_active is None or when > self.last_active:
            self.last_active = when

    def add_session(self, seconds: int, when: datetime | None) -> None:
        self.total_seconds += seconds
        self.session_count += 1
        self.touch(when)

    def add_topup(self, amount: float, when: datetime | None) -> None:
        self.total_topups += amount
        self.touch(when)

    def to_ranking_row(self) -> MemberRankingRow:
        avg = 0.0
        if self.session_count > 0:
            avg = round_half_up(self.total_seconds / self.session_count / 3600, 1)
        return MemberRankingRow(
            member_account=self.member_account,
            total_hours=round_half_up(self.total_seconds / 3600, 1),
            session_count=self.session_count,
            avg_session_hours=avg,
            total_topups=self.total_topups,
            last_active=self.last_active.isoformat() if self.last_active else None,
        )


def dump_models(models: Iterable[BaseModel]) -> list[dict[str, Any]]:
    """JSON-ready dicts (wire aliases) suitable for caching and responses."""
    return [m.model_dump(by_alias=True, mode="json") for m in models]
