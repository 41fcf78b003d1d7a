"""Authenticated HTTP client for the iCafeCloud cafe API."""

from __future__ import annotations

import time
from typing import Any, Mapping

import httpx
from pydantic import ValidationError

from cafeboard.core.config import Settings
from cafeboard.core.errors import (
    UpstreamError,
    UpstreamMalformed,
    UpstreamNotFound,
    UpstreamUnavailable,
)
from cafeboard.core.logger import get_logger
from cafeboard.core.metrics import (
    UPSTREAM_ERRORS_TOTAL,
    UPSTREAM_LATENCY_SECONDS,
    UPSTREAM_REQUESTS_TOTAL,
)
from cafeboard.domain.models import RawPageResponse

logger = get_logger("icafe.client")


class IcafeClient:
    """Issues GET requests against ``<base_url>/<cafe_id>/<resource>``.

    One request per call, no retries. Transport failures, timeouts and 5xx
    surface as ``UpstreamUnavailable``, 404 as ``UpstreamNotFound`` and a body
    that is not a ``{code, message, data}`` object as ``UpstreamMalformed``.
    """

    def __init__(
        self,
        cafe_id: str,
        auth_token: str,
        base_url: str = "https://api.icafecloud.com/api/v2/cafe",
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not cafe_id or not auth_token:
            logger.error("icafe_credentials_missing")
            raise ValueError("Missing iCafeCloud credentials (cafe id / auth token)")
        self.cafe_id = cafe_id
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/{cafe_id}",
            headers={
                "Authorization": f"Bearer {auth_token}",
                "Accept": "application/json",
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "IcafeClient":
        return cls(
            cafe_id=settings.icafe_cafe_id,
            auth_token=settings.icafe_auth_token,
            base_url=settings.icafe_base_url,
            timeout_seconds=settings.icafe_request_timeout_seconds,
        )

    async def fetch_page(
        self, resource: str, params: Mapping[str, Any] | None = None
    ) -> RawPageResponse:
        query = {k: v for k, v in (params or {}).items() if v is not None}
        UPSTREAM_REQUESTS_TOTAL.labels(resource=_metric_resource(resource)).inc()
        start = time.monotonic()
        try:
            response = await self._client.get(f"/{resource.lstrip('/')}", params=query)
        except httpx.TimeoutException as e:
            raise self._fail(
                UpstreamUnavailable(f"iCafeCloud request timed out: {e}", None, resource)
            ) from e
        except httpx.TransportError as e:
            raise self._fail(
                UpstreamUnavailable(f"iCafeCloud unreachable: {e}", None, resource)
            ) from e
        finally:
            UPSTREAM_LATENCY_SECONDS.observe(time.monotonic() - start)

        status = response.status_code
        if status == 404:
            raise self._fail(
                UpstreamNotFound(f"{resource} not found on iCafeCloud", status, resource)
            )
        if status >= 500:
            raise self._fail(
                UpstreamUnavailable(
                    f"iCafeCloud server error: {_body_excerpt(response)}",
                    status,
                    resource,
                )
            )
        if status >= 400:
            raise self._fail(
                UpstreamError(
                    f"iCafeCloud rejected request: {_body_excerpt(response)}",
                    status,
                    resource,
                )
            )

        try:
            body = response.json()
        except ValueError as e:
            raise self._fail(
                UpstreamMalformed("response body is not JSON", status, resource)
            ) from e
        if not isinstance(body, dict) or "data" not in body:
            raise self._fail(
                UpstreamMalformed("response envelope lacks data", status, resource)
            )
        try:
            return RawPageResponse.model_validate(body)
        except ValidationError as e:  # pragma: no cover - validators are lenient
            raise self._fail(
                UpstreamMalformed("response envelope invalid", status, resource)
            ) from e

    async def aclose(self) -> None:
        await self._client.aclose()

    def _fail(self, error: UpstreamError) -> UpstreamError:
        UPSTREAM_ERRORS_TOTAL.labels(kind=type(error).__name__).inc()
        log = logger.warning if isinstance(error, UpstreamNotFound) else logger.error
        log(
            "icafe_request_failed",
            extra={
                "resource": error.resource,
                "status": error.status_code,
                "error": error.message,
                "error_type": type(error).__name__,
            },
        )
        return error


def _metric_resource(resource: str) -> str:
    # members/123 -> members, keeps label cardinality bounded
    return resource.strip("/").split("/", 1)[0] or "root"


def _body_excerpt(response: httpx.Response, limit: int = 200) -> str:
    text = response.text or ""
    return f"{response.status_code} {text[:limit]}".strip()
