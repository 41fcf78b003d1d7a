from enum import Enum
from typing import Any, Mapping
from urllib.parse import urlencode

from cafeboard.core.config import settings
from cafeboard.domain.timeframe import Timeframe


def _query_value(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def build_cache_key(
    path: str,
    params: Mapping[str, Any] | None = None,
    prefix: str | None = None,
) -> str:
    """``<api-prefix><path>[?<sorted query>]``.

    The HTTP routes and the cache refresher both derive keys here, so a
    pre-warmed entry is exactly the one a request will read.
    """
    prefix = settings.api_prefix if prefix is None else prefix
    key = f"{prefix}{path}"
    if params:
        pairs = [
            (name, _query_value(value))
            for name, value in sorted(params.items())
            if value is not None
        ]
        if pairs:
            key = f"{key}?{urlencode(pairs)}"
    return key


class CacheKeys:
    """Centralised cache key definitions for cached routes."""

    MEMBERS_PATH = "/members"
    MEMBER_RANKINGS_PATH = "/members/rankings"

    @classmethod
    def member_rankings(cls, timeframe: Timeframe | str) -> str:
        return build_cache_key(
            cls.MEMBER_RANKINGS_PATH, {"timeframe": Timeframe(timeframe)}
        )

    @classmethod
    def members(cls) -> str:
        return build_cache_key(cls.MEMBERS_PATH)
