"""Error taxonomy shared by the upstream client, cache and ranking engine."""

from __future__ import annotations


class UpstreamError(Exception):
    """The iCafeCloud API answered with something we cannot use.

    Raised as-is for unexpected 4xx answers; the subclasses cover the cases
    callers handle differently.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        resource: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.resource = resource


class UpstreamUnavailable(UpstreamError):
    """Network failure, timeout or 5xx from the upstream API."""


class UpstreamNotFound(UpstreamError):
    """404 for a specific upstream resource (unknown member, PC...)."""


class UpstreamMalformed(UpstreamError):
    """Response body is not the expected ``{code, message, data}`` envelope."""


class CacheOperationFailed(Exception):
    """A cache backend call failed. Never escapes ``CacheService``."""

    def __init__(self, operation: str, key: str | None = None):
        detail = f" for key {key}" if key is not None else ""
        super().__init__(f"cache {operation} failed{detail}")
        self.operation = operation
        self.key = key


class AggregationAborted(Exception):
    """A billing-log page fetch raised mid-pagination; no rankings produced."""

    def __init__(self, event: str, page: int):
        super().__init__(f"billing log fetch failed (event={event}, page={page})")
        self.event = event
        self.page = page
