"""Tests for the warehouse client with the SQL layer mocked out."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from sitescore.data.warehouse import WarehouseClient, WarehouseError, _build_where
from sitescore.models.site import RecommendationTier, SupplyDemandStatus
from sitescore.models.warehouse import AccessType, ScoreLevel, SiteFilters


@pytest.fixture
def cache():
    cache = MagicMock()
    cache.get = AsyncMock(return_value=None)
    cache.get_stale = AsyncMock(return_value=None)
    cache.set = AsyncMock()
    cache.invalidate = AsyncMock(return_value=3)
    return cache


@pytest.fixture
def client(cache):
    return WarehouseClient(engine=MagicMock(), cache=cache, schema="test", shops_table="test.shops")


# ── Query building ───────────────────────────────────────────────

class TestBuildWhere:
    def test_no_filters(self):
        assert _build_where(SiteFilters()) == ("", {}, ())

    def test_scalar_filters_are_bound(self):
        where, params, expanding = _build_where(SiteFilters(station="Daan'; DROP TABLE x;--", min_score=70))
        assert where == "WHERE mrt_station = :station AND optimal_score >= :min_score"
        assert params == {"station": "Daan'; DROP TABLE x;--", "min_score": 70}
        assert expanding == ()

    def test_level_filter_matches_every_spelling(self):
        where, params, expanding = _build_where(SiteFilters(score_level=ScoreLevel.GOOD))
        assert "score_level IN :score_labels" in where
        assert params["score_labels"] == ["GOOD", "good", "Good", "良好"]
        assert expanding == ("score_labels",)

    def test_supply_demand_status(self):
        _, params, _ = _build_where(SiteFilters(supply_demand_status=SupplyDemandStatus.MARKET_SATURATED))
        assert "過度飽和" in params["sd_labels"]

    def test_access_type_falls_back_to_distance(self):
        where, params, expanding = _build_where(SiteFilters(access_type=AccessType.BIKE_SHARE))
        assert "distance_category IS NULL" in where
        assert params["access_lo"] == 500
        assert params["access_hi"] == 1500
        assert "access_labels" in expanding

    def test_far_has_no_upper_bound(self):
        _, params, _ = _build_where(SiteFilters(access_type=AccessType.FAR))
        assert params["access_lo"] == 2500
        assert "access_hi" not in params

    def test_recommended(self):
        where, params, expanding = _build_where(SiteFilters(is_recommended=False))
        assert "UPPER(CAST(is_recommended AS VARCHAR)) IN :rec_labels" in where
        assert "不推薦" in params["rec_labels"]
        assert expanding == ("rec_labels",)


# ── Reads ────────────────────────────────────────────────────────

class TestGetSites:
    async def test_cached_rows_skip_warehouse(self, client, cache, analysis_row):
        cache.get = AsyncMock(side_effect=lambda name, **params: [analysis_row] if name == "sites" else [])
        with patch.object(client, "_fetch", new_callable=AsyncMock) as fetch:
            sites = await client.get_sites()
        fetch.assert_not_called()
        assert sites[0].station == "Zhongshan"

    async def test_fetch_populates_cache_and_attaches_rent(self, client, cache, analysis_row):
        shop_rows = [{"station": "Zhongshan", "rent": 1300}, {"station": "Zhongshan", "rent": 1500}]

        async def fetch(sql, params=None, expanding=()):
            return shop_rows if "test.shops" in sql else [analysis_row]

        with patch.object(client, "_fetch", side_effect=fetch):
            sites = await client.get_sites()

        assert sites[0].rent == 1400.0
        assert sites[0].rent_score == 85.0
        assert sites[0].recommendation == RecommendationTier.STRONGLY_RECOMMENDED
        cache.set.assert_any_await("sites", [analysis_row])

    async def test_stale_cache_served_on_error(self, client, cache, analysis_row):
        cache.get_stale = AsyncMock(return_value=[analysis_row])
        with patch.object(client, "_fetch", new_callable=AsyncMock, side_effect=WarehouseError("timeout")):
            sites = await client.get_sites()
        assert len(sites) == 1
        assert sites[0].rent is None

    async def test_error_without_stale_entry(self, client):
        with patch.object(client, "_fetch", new_callable=AsyncMock, side_effect=WarehouseError("timeout")):
            with pytest.raises(WarehouseError):
                await client.get_sites()


class TestSearchSites:
    async def test_page(self, client, analysis_row):
        fetch = AsyncMock(side_effect=[[analysis_row], [{"total": 25}]])
        with patch.object(client, "_fetch", fetch):
            page = await client.search_sites(SiteFilters(min_score=80, limit=1, offset=0))

        assert page.total == 25
        assert page.has_more
        assert page.sites[0].composite_score == 88.5
        sql, params, _ = fetch.await_args_list[0].args
        assert "LIMIT :limit OFFSET :offset" in sql
        assert params == {"min_score": 80, "limit": 1, "offset": 0}


class TestStations:
    async def test_station_detail(self, client, analysis_row):
        fetch = AsyncMock(side_effect=[
            [{"station_name": "Zhongshan", "lat": 25.05, "lon": 121.52, "daily_flow": 80000}],
            [analysis_row],
        ])
        with patch.object(client, "_fetch", fetch):
            detail = await client.get_station_detail("Zhongshan")
        assert detail.station.name == "Zhongshan"
        assert len(detail.zones) == 1

    async def test_unknown_station(self, client):
        with patch.object(client, "_fetch", new_callable=AsyncMock, return_value=[]):
            assert await client.get_station_detail("Nowhere") is None

    async def test_list_stations(self, client):
        rows = [{"station_name": "Taipei Main", "daily_flow": 300000}]
        with patch.object(client, "_fetch", new_callable=AsyncMock, return_value=rows):
            assert await client.list_stations() == [{"name": "Taipei Main", "daily_flow": 300000}]


class TestStatistics:
    async def test_groups_are_normalised(self, client):
        totals = [{
            "total_locations": 4, "total_stations": 2, "total_cafes": 9,
            "avg_score": 70.5, "max_score": 90.0, "min_score": 50.0, "avg_supply_demand_ratio": 0.6,
        }]
        groups = [
            {"score_level": "優秀", "supply_demand_level": "LOW", "is_recommended": "推薦", "n": 1},
            {"score_level": "EXCELLENT", "supply_demand_level": "低競爭", "is_recommended": "YES", "n": 1},
            {"score_level": "差", "supply_demand_level": "飽和", "is_recommended": "不推薦", "n": 2},
        ]
        with patch.object(client, "_fetch", new_callable=AsyncMock, side_effect=[totals, groups]):
            stats = await client.get_statistics()

        assert stats.total_locations == 4
        assert stats.recommended_count == 2
        assert stats.not_recommended_count == 2
        assert stats.score_level_counts == {"excellent": 2, "poor": 2}
        assert stats.supply_demand_counts == {"undersupplied": 2, "market saturated": 2}


class TestMaintenance:
    async def test_invalidate_cache(self, client):
        assert await client.invalidate_cache() == 3

    async def test_connection_ok(self, client):
        with patch.object(client, "_fetch", new_callable=AsyncMock, return_value=[{"ok": 1}]):
            assert await client.test_connection() is True

    async def test_connection_failed(self, client):
        with patch.object(client, "_fetch", new_callable=AsyncMock, side_effect=WarehouseError("refused")):
            assert await client.test_connection() is False

    async def test_sqlalchemy_errors_wrapped(self, client):
        client.engine.connect = MagicMock(side_effect=OperationalError("SELECT 1", {}, Exception("refused")))
        with pytest.raises(WarehouseError):
            await client._fetch("SELECT 1")
