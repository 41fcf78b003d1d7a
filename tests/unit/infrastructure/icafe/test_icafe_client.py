import httpx
import pytest

from cafeboard.core.errors import (
    UpstreamError,
    UpstreamMalformed,
    UpstreamNotFound,
    UpstreamUnavailable,
)
from cafeboard.infrastructure.icafe.client import IcafeClient


class TestIcafeClientConstruction:
    def test_missing_credentials_rejected(self):
        with pytest.raises(ValueError):
            IcafeClient(cafe_id="", auth_token="tok")
        with pytest.raises(ValueError):
            IcafeClient(cafe_id="1", auth_token="")


class TestFetchPage:
    @pytest.mark.asyncio
    async def test_success_sends_auth_and_params(
        self, make_icafe_client, json_response, envelope
    ):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return json_response(envelope({"members": []}))

        client = make_icafe_client(handler)
        try:
            raw = await client.fetch_page("members", {"page": 2, "search_text": None})
        finally:
            await client.aclose()

        assert raw.code == 200
        assert raw.data == {"members": []}
        request = seen[0]
        assert request.url.path == "/api/v2/cafe/12345/members"
        assert request.url.params["page"] == "2"
        assert "search_text" not in request.url.params
        assert request.headers["Authorization"] == "Bearer test-bearer"
        assert request.headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_404_maps_to_not_found(self, make_icafe_client, json_response):
        client = make_icafe_client(lambda r: json_response({"message": "nope"}, 404))
        with pytest.raises(UpstreamNotFound) as exc:
            await client.fetch_page("members/9")
        assert exc.value.status_code == 404
        assert exc.value.resource == "members/9"

    @pytest.mark.asyncio
    async def test_5xx_maps_to_unavailable(self, make_icafe_client):
        client = make_icafe_client(lambda r: httpx.Response(502, text="bad gateway"))
        with pytest.raises(UpstreamUnavailable) as exc:
            await client.fetch_page("pcs")
        assert exc.value.status_code == 502

    @pytest.mark.asyncio
    async def test_other_4xx_maps_to_base_error(self, make_icafe_client):
        client = make_icafe_client(lambda r: httpx.Response(401, text="unauthorized"))
        with pytest.raises(UpstreamError) as exc:
            await client.fetch_page("pcs")
        assert type(exc.value) is UpstreamError
        assert exc.value.status_code == 401

    @pytest.mark.asyncio
    async def test_timeout_maps_to_unavailable(self, make_icafe_client):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        client = make_icafe_client(handler)
        with pytest.raises(UpstreamUnavailable):
            await client.fetch_page("billingLogs")

    @pytest.mark.asyncio
    async def test_connection_error_maps_to_unavailable(self, make_icafe_client):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = make_icafe_client(handler)
        with pytest.raises(UpstreamUnavailable):
            await client.fetch_page("billingLogs")

    @pytest.mark.asyncio
    async def test_non_json_body_is_malformed(self, make_icafe_client):
        client = make_icafe_client(lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(UpstreamMalformed):
            await client.fetch_page("pcs")

    @pytest.mark.asyncio
    async def test_missing_data_is_malformed(self, make_icafe_client, json_response):
        client = make_icafe_client(lambda r: json_response({"code": 200}))
        with pytest.raises(UpstreamMalformed):
            await client.fetch_page("pcs")

    @pytest.mark.asyncio
    async def test_non_object_body_is_malformed(self, make_icafe_client, json_response):
        client = make_icafe_client(lambda r: json_response([1, 2, 3]))
        with pytest.raises(UpstreamMalformed):
            await client.fetch_page("pcs")

    @pytest.mark.asyncio
    async def test_error_code_envelope_is_returned(
        self, make_icafe_client, json_response, envelope
    ):
        client = make_icafe_client(
            lambda r: json_response(envelope(None, code=401, message="bad token"))
        )
        raw = await client.fetch_page("pcs")
        assert raw.code == 401
        assert raw.message == "bad token"
