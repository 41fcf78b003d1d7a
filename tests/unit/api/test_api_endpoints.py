import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from cafeboard.api.dependencies import (
    get_aggregator,
    get_cache,
    get_cache_refresh,
    get_member_service,
    get_pc_service,
)
from cafeboard.constants.cache_keys import CacheKeys
from cafeboard.core.errors import (
    AggregationAborted,
    UpstreamMalformed,
    UpstreamNotFound,
    UpstreamUnavailable,
)
from cafeboard.domain.models import Member, MemberRankingRow, Pc
from cafeboard.domain.timeframe import Timeframe
from cafeboard.infrastructure.cache import MemoryCacheBackend
from cafeboard.main import app
from cafeboard.services.cache_service import CacheService

ROW = MemberRankingRow(
    member_account="alice",
    total_hours=1.5,
    session_count=2,
    avg_session_hours=0.8,
    total_topups=15.0,
    last_active="2024-05-03T18:00:00",
)


class Stubs:
    def __init__(self):
        self.backend = MemoryCacheBackend()
        self.cache = CacheService(self.backend, 300)
        self.aggregator = MagicMock()
        self.aggregator.calculate_member_rankings = AsyncMock(return_value=[ROW])
        self.members = MagicMock()
        self.members.get_all_members = AsyncMock(
            return_value=[Member(member_id=1, member_account="alice")]
        )
        self.members.get_member_by_id = AsyncMock(
            return_value=Member(member_id=1, member_account="alice", member_points=4)
        )
        self.members.get_member_by_account = AsyncMock(
            return_value=Member(member_id=1, member_account="alice")
        )
        self.pcs = MagicMock()
        self.pcs.get_pcs = AsyncMock(return_value=[Pc(pc_name="PC01")])
        self.pcs.get_console_detail = AsyncMock(return_value={"pc_name": "PC01"})
        self.refresher = MagicMock()
        self.refresher.refresh_all_ranking_timeframes = AsyncMock(
            return_value={"day": True, "week": True, "month": True, "all": False}
        )
        self.refresher.refresh_ranking_timeframe = AsyncMock(return_value=True)
        self.refresher.refresh_all_members = AsyncMock(return_value=True)


@pytest.fixture
def stubs():
    s = Stubs()
    app.dependency_overrides[get_cache] = lambda: s.cache
    app.dependency_overrides[get_aggregator] = lambda: s.aggregator
    app.dependency_overrides[get_member_service] = lambda: s.members
    app.dependency_overrides[get_pc_service] = lambda: s.pcs
    app.dependency_overrides[get_cache_refresh] = lambda: s.refresher
    app.state.cache = s.cache
    app.state.ready_event = asyncio.Event()
    app.state.ready_event.set()
    yield s
    app.dependency_overrides.clear()


@pytest.fixture
def client(stubs):
    return TestClient(app)


class TestRankingsRoute:
    def test_default_timeframe_is_month(self, client, stubs):
        resp = client.get("/api/v1/members/rankings")

        assert resp.status_code == 200
        assert resp.json() == [
            {
                "memberAccount": "alice",
                "totalHours": 1.5,
                "sessionCount": 2,
                "avgSessionHours": 0.8,
                "totalTopups": 15.0,
                "lastActive": "2024-05-03T18:00:00",
            }
        ]
        stubs.aggregator.calculate_member_rankings.assert_awaited_once_with(
            Timeframe.MONTH
        )

    def test_served_from_cache_under_shared_key(self, client, stubs):
        client.get("/api/v1/members/rankings?timeframe=week")
        client.get("/api/v1/members/rankings?timeframe=week")

        assert stubs.aggregator.calculate_member_rankings.await_count == 1
        assert asyncio.run(stubs.backend.get(CacheKeys.member_rankings("week")))

    def test_prewarmed_entry_is_read(self, client, stubs):
        asyncio.run(
            stubs.backend.set(
                CacheKeys.member_rankings(Timeframe.MONTH),
                [ROW.model_dump(by_alias=True)],
            )
        )

        resp = client.get("/api/v1/members/rankings?timeframe=month")

        assert resp.status_code == 200
        assert resp.json()[0]["memberAccount"] == "alice"
        stubs.aggregator.calculate_member_rankings.assert_not_awaited()

    def test_invalid_timeframe_is_400(self, client, stubs):
        resp = client.get("/api/v1/members/rankings?timeframe=year")

        assert resp.status_code == 400
        stubs.aggregator.calculate_member_rankings.assert_not_awaited()

    @pytest.mark.parametrize(
        "error,status",
        [
            (AggregationAborted("checkout", 2), 502),
            (UpstreamUnavailable("down"), 503),
            (UpstreamMalformed("bad"), 502),
        ],
    )
    def test_failures_mapped(self, client, stubs, error, status):
        stubs.aggregator.calculate_member_rankings.side_effect = error

        resp = client.get("/api/v1/members/rankings")

        assert resp.status_code == status
        assert asyncio.run(stubs.backend.get(CacheKeys.member_rankings("month"))) is None


class TestMemberRoutes:
    def test_list_members_cached(self, client, stubs):
        first = client.get("/api/v1/members")
        second = client.get("/api/v1/members")

        assert first.status_code == 200
        assert first.json() == [{"member_id": 1, "member_account": "alice"}]
        assert second.json() == first.json()
        assert stubs.members.get_all_members.await_count == 1

    def test_member_by_id(self, client, stubs):
        resp = client.get("/api/v1/members/1")
        assert resp.status_code == 200
        assert resp.json()["member_points"] == 4

    def test_member_not_found(self, client, stubs):
        stubs.members.get_member_by_id.side_effect = UpstreamNotFound("member 9", 404)
        assert client.get("/api/v1/members/9").status_code == 404

    def test_member_id_must_be_int(self, client, stubs):
        assert client.get("/api/v1/members/abc").status_code == 400

    def test_search(self, client, stubs):
        resp = client.get("/api/v1/members/search", params={"query": "alice"})
        assert resp.json() == [{"member_id": 1, "member_account": "alice"}]

    def test_search_blank_or_unknown(self, client, stubs):
        assert client.get("/api/v1/members/search?query=%20").json() == []
        stubs.members.get_member_by_account.assert_not_awaited()

        stubs.members.get_member_by_account.side_effect = UpstreamNotFound("nope")
        assert client.get("/api/v1/members/search?query=zed").json() == []


class TestPcRoutes:
    def test_list_pcs(self, client, stubs):
        assert client.get("/api/v1/pcs").json() == [{"pc_name": "PC01"}]

    def test_pc_detail(self, client, stubs):
        assert client.get("/api/v1/pcs/PC01").json() == {"pc_name": "PC01"}

    def test_pc_detail_absent(self, client, stubs):
        stubs.pcs.get_console_detail.return_value = None
        assert client.get("/api/v1/pcs/PC99").status_code == 404


class TestCacheRoutes:
    def test_refresh_all_timeframes(self, client, stubs):
        resp = client.post("/api/v1/cache/refresh")
        assert resp.status_code == 200
        assert resp.json()["refreshed"]["all"] is False
        stubs.refresher.refresh_all_ranking_timeframes.assert_awaited_once()

    def test_refresh_one_timeframe(self, client, stubs):
        resp = client.post("/api/v1/cache/refresh?timeframe=day")
        assert resp.json() == {"refreshed": {"day": True}}
        stubs.refresher.refresh_ranking_timeframe.assert_awaited_once_with(
            Timeframe.DAY
        )

    def test_refresh_invalid_timeframe(self, client, stubs):
        assert client.post("/api/v1/cache/refresh?timeframe=year").status_code == 400

    def test_refresh_members(self, client, stubs):
        resp = client.post("/api/v1/cache/refresh/members")
        assert resp.json() == {"refreshed": {"members": True}}

    def test_clear(self, client, stubs):
        asyncio.run(stubs.backend.set("k", 1))
        assert client.delete("/api/v1/cache").status_code == 200
        assert len(stubs.backend) == 0


class TestHealth:
    def test_health_ready(self, client):
        assert client.get("/healthz").status_code == 200
        assert client.get("/readyz").status_code == 200

    def test_readyz_not_ready(self, client):
        app.state.ready_event.clear()
        assert client.get("/readyz").status_code == 503

    def test_healthz_error(self, client, stubs):
        stubs.backend.ping = AsyncMock(side_effect=RuntimeError("redis down"))
        assert client.get("/healthz").status_code == 503

    def test_metrics_exposed(self, client):
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert "cafeboard_upstream_requests" in resp.text
