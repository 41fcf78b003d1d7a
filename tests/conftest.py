import json
from typing import Any, Callable

import httpx
import pytest

from cafeboard.infrastructure.icafe.client import IcafeClient

CAFE_ID = "12345"
AUTH_TOKEN = "test-bearer"


def _envelope(data: Any, code: int = 200, message: str = "Success") -> dict:
    return {"code": code, "message": message, "data": data}


def _billing_data(rows: list[dict], page: int = 1, pages: int = 1) -> dict:
    return {
        "log_list": rows,
        "paging_info": {"page": page, "pages": pages, "total_records": len(rows)},
    }


@pytest.fixture
def envelope():
    """iCafeCloud response envelope builder."""
    return _envelope


@pytest.fixture
def billing_data():
    """``data`` payload of a billingLogs page."""
    return _billing_data


@pytest.fixture
def make_icafe_client() -> Callable[..., IcafeClient]:
    """Build an IcafeClient whose HTTP traffic is served by ``handler``."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> IcafeClient:
        return IcafeClient(
            cafe_id=CAFE_ID,
            auth_token=AUTH_TOKEN,
            base_url="https://icafe.test/api/v2/cafe",
            transport=httpx.MockTransport(handler),
        )

    return _make


@pytest.fixture
def json_response() -> Callable[..., httpx.Response]:
    def _respond(body: Any, status_code: int = 200) -> httpx.Response:
        return httpx.Response(
            status_code,
            content=json.dumps(body).encode(),
            headers={"Content-Type": "application/json"},
        )

    return _respond
