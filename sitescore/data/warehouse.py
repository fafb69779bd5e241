"""Warehouse client for analysed sites, transit stations and shops.

Every filter value is sent as a bound parameter. Table names come from
settings only. Reads of the full site, station and shop lists go through the
QueryCache; if the warehouse fails and a stale entry exists, it is served.
"""

import logging
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from sitescore.config import settings
from sitescore.data.cache import QueryCache
from sitescore.data.normalize import (
    ACCESS_TYPE_BY_DISTANCE,
    ACCESS_TYPE_LABELS,
    BIKE_SHARE_LEVEL_LABELS,
    FLOW_LEVEL_LABELS,
    NOT_RECOMMENDED_LABELS,
    RECOMMENDED_LABELS,
    SCORE_LEVEL_LABELS,
    SUPPLY_DEMAND_LABELS,
    attach_rents,
    labels_for,
    normalize_label,
    normalize_recommended,
    shop_from_row,
    site_from_row,
    station_from_row,
    station_median_rents,
)
from sitescore.models.warehouse import (
    AccessType,
    Shop,
    SiteFilters,
    SitePage,
    SiteRecord,
    SiteStatistics,
    StationDetail,
    TransitStation,
)

logger = logging.getLogger(__name__)

SITE_COLUMNS = """
    CONCAT(mrt_station, '_', zone_label) AS point_id,
    mrt_station, zone_label, zone_start_m, base_flow,
    distance_decay, distance_category, distance_score,
    flow_accessibility, flow_score, flow_level, youbike_bonus,
    cafe_count, total_competitors, supply_demand_ratio, supply_demand_level, competition_score,
    youbike_count, youbike_score, youbike_level,
    optimal_score, score_level, is_recommended
"""

# Shops used to derive station median rents
RENT_SHOP_LIMIT = 10_000


class WarehouseError(RuntimeError):
    pass


class WarehouseClient:
    def __init__(
        self,
        engine: AsyncEngine,
        cache: QueryCache | None = None,
        schema: str | None = None,
        shops_table: str | None = None,
    ):
        self.engine = engine
        self.cache = cache or QueryCache()
        schema = schema or settings.warehouse_schema
        self.analysis_table = f"{schema}.main_analysis"
        self.stations_table = f"{schema}.mrt_locations"
        self.shops_table = shops_table or settings.shops_table

    async def _fetch(self, sql: str, params: dict[str, Any] | None = None, expanding: tuple[str, ...] = ()) -> list[dict]:
        stmt = text(sql)
        for name in expanding:
            stmt = stmt.bindparams(bindparam(name, expanding=True))
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(stmt, params or {})
                return [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            raise WarehouseError(str(e)) from e

    async def _cached_rows(self, name: str, sql: str, **params: Any) -> list[dict]:
        cached = await self.cache.get(name, **params)
        if cached is not None:
            return cached
        try:
            rows = await self._fetch(sql, params)
        except WarehouseError as e:
            stale = await self.cache.get_stale(name, **params)
            if stale is not None:
                logger.warning("Warehouse query %s failed, returning stale cache: %s", name, e)
                return stale
            raise
        await self.cache.set(name, rows, **params)
        logger.info("Fetched %d rows for %s", len(rows), name)
        return rows

    # ── Sites ──────────────────────────────────────────────────────

    async def get_sites(self) -> list[SiteRecord]:
        """All analysed sites, best first, with station median rents attached."""
        rows = await self._cached_rows(
            "sites",
            f"SELECT {SITE_COLUMNS} FROM {self.analysis_table} ORDER BY optimal_score DESC",
        )
        sites = [site_from_row(row) for row in rows]
        try:
            shops = await self.get_shops(limit=RENT_SHOP_LIMIT)
        except WarehouseError as e:
            logger.warning("Failed to attach rents to sites: %s", e)
            return sites
        return attach_rents(sites, station_median_rents(shops))

    async def search_sites(self, filters: SiteFilters) -> SitePage:
        where, params, expanding = _build_where(filters)
        rows = await self._fetch(
            f"SELECT {SITE_COLUMNS} FROM {self.analysis_table} {where} "
            "ORDER BY optimal_score DESC LIMIT :limit OFFSET :offset",
            {**params, "limit": filters.limit, "offset": filters.offset},
            expanding,
        )
        count_rows = await self._fetch(
            f"SELECT COUNT(*) AS total FROM {self.analysis_table} {where}",
            params,
            expanding,
        )
        logger.debug("Site search %s matched %s rows", where or "(no filters)", count_rows[0]["total"])
        return SitePage(
            sites=[site_from_row(row) for row in rows],
            total=int(count_rows[0]["total"]),
            limit=filters.limit,
            offset=filters.offset,
        )

    # ── Stations ───────────────────────────────────────────────────

    async def get_transit_stations(self) -> list[TransitStation]:
        rows = await self._cached_rows(
            "stations",
            f"SELECT station_name, lat, lon, daily_flow FROM {self.stations_table} ORDER BY daily_flow DESC",
        )
        return [station_from_row(row) for row in rows]

    async def list_stations(self) -> list[dict]:
        """Station names and flows for filter dropdowns."""
        rows = await self._fetch(
            f"SELECT DISTINCT station_name, daily_flow FROM {self.stations_table} ORDER BY daily_flow DESC"
        )
        return [{"name": row["station_name"], "daily_flow": row["daily_flow"]} for row in rows]

    async def get_station_detail(self, station_name: str) -> StationDetail | None:
        station_rows = await self._fetch(
            f"SELECT station_name, lat, lon, daily_flow FROM {self.stations_table} "
            "WHERE station_name = :station",
            {"station": station_name},
        )
        if not station_rows:
            return None
        zone_rows = await self._fetch(
            f"SELECT {SITE_COLUMNS} FROM {self.analysis_table} "
            "WHERE mrt_station = :station ORDER BY optimal_score DESC",
            {"station": station_name},
        )
        return StationDetail(
            station=station_from_row(station_rows[0]),
            zones=[site_from_row(row) for row in zone_rows],
        )

    # ── Shops ──────────────────────────────────────────────────────

    async def get_shops(
        self,
        shop_type: str | None = None,
        category: str | None = None,
        limit: int = 1000,
    ) -> list[Shop]:
        conditions = []
        if shop_type:
            conditions.append("shop_type = :shop_type")
        if category:
            conditions.append("category = :category")
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        rows = await self._cached_rows(
            "shops",
            f"SELECT * FROM {self.shops_table} {where} LIMIT :limit",
            **{k: v for k, v in {"shop_type": shop_type, "category": category}.items() if v},
            limit=limit,
        )
        return [shop_from_row(row) for row in rows]

    # ── Statistics ─────────────────────────────────────────────────

    async def get_statistics(self) -> SiteStatistics:
        totals = (await self._fetch(
            f"""SELECT COUNT(*) AS total_locations,
                      COUNT(DISTINCT mrt_station) AS total_stations,
                      SUM(cafe_count) AS total_cafes,
                      AVG(optimal_score) AS avg_score,
                      MAX(optimal_score) AS max_score,
                      MIN(optimal_score) AS min_score,
                      AVG(supply_demand_ratio) AS avg_supply_demand_ratio
               FROM {self.analysis_table}"""
        ))[0]
        groups = await self._fetch(
            f"SELECT score_level, supply_demand_level, is_recommended, COUNT(*) AS n "
            f"FROM {self.analysis_table} GROUP BY score_level, supply_demand_level, is_recommended"
        )

        score_counts: dict[str, int] = {}
        supply_counts: dict[str, int] = {}
        recommended = not_recommended = 0
        for group in groups:
            n = int(group["n"])
            level = normalize_label(group["score_level"], SCORE_LEVEL_LABELS)
            if level is not None:
                score_counts[level.value] = score_counts.get(level.value, 0) + n
            status = normalize_label(group["supply_demand_level"], SUPPLY_DEMAND_LABELS)
            if status is not None:
                supply_counts[status.value] = supply_counts.get(status.value, 0) + n
            flag = normalize_recommended(group["is_recommended"])
            if flag is True:
                recommended += n
            elif flag is False:
                not_recommended += n

        return SiteStatistics(
            total_locations=int(totals["total_locations"] or 0),
            total_stations=int(totals["total_stations"] or 0),
            total_cafes=int(totals["total_cafes"] or 0),
            avg_score=_opt_float(totals["avg_score"]),
            max_score=_opt_float(totals["max_score"]),
            min_score=_opt_float(totals["min_score"]),
            avg_supply_demand_ratio=_opt_float(totals["avg_supply_demand_ratio"]),
            recommended_count=recommended,
            not_recommended_count=not_recommended,
            score_level_counts=score_counts,
            supply_demand_counts=supply_counts,
        )

    # ── Maintenance ────────────────────────────────────────────────

    async def invalidate_cache(self) -> int:
        return await self.cache.invalidate()

    async def test_connection(self) -> bool:
        try:
            await self._fetch("SELECT 1 AS ok")
        except WarehouseError as e:
            logger.error("Warehouse connection failed: %s", e)
            return False
        logger.info("Warehouse connection successful")
        return True


def _opt_float(value: Any) -> float | None:
    return None if value is None else float(value)


def _access_clause(kind: AccessType) -> tuple[str, dict[str, Any]]:
    """Match the stored category, or the zone distance when no category is stored."""
    lower = 0.0
    upper = None
    for limit, candidate in ACCESS_TYPE_BY_DISTANCE:
        if candidate is kind:
            upper = limit
            break
        lower = limit
    params: dict[str, Any] = {"access_labels": labels_for(kind, ACCESS_TYPE_LABELS), "access_lo": lower}
    distance = "zone_start_m >= :access_lo"
    if upper is not None:
        distance += " AND zone_start_m < :access_hi"
        params["access_hi"] = upper
    return f"(distance_category IN :access_labels OR (distance_category IS NULL AND {distance}))", params


def _build_where(filters: SiteFilters) -> tuple[str, dict[str, Any], tuple[str, ...]]:
    conditions: list[str] = []
    params: dict[str, Any] = {}
    expanding: list[str] = []

    if filters.station:
        conditions.append("mrt_station = :station")
        params["station"] = filters.station
    if filters.min_score is not None:
        conditions.append("optimal_score >= :min_score")
        params["min_score"] = filters.min_score
    if filters.max_score is not None:
        conditions.append("optimal_score <= :max_score")
        params["max_score"] = filters.max_score
    if filters.zone:
        conditions.append("zone_label = :zone")
        params["zone"] = filters.zone

    level_filters = [
        ("supply_demand_level", "sd_labels", filters.supply_demand_status, SUPPLY_DEMAND_LABELS),
        ("score_level", "score_labels", filters.score_level, SCORE_LEVEL_LABELS),
        ("flow_level", "flow_labels", filters.flow_level, FLOW_LEVEL_LABELS),
        ("youbike_level", "bike_labels", filters.bike_share_level, BIKE_SHARE_LEVEL_LABELS),
    ]
    for column, param, member, table in level_filters:
        if member is None:
            continue
        conditions.append(f"{column} IN :{param}")
        params[param] = labels_for(member, table)
        expanding.append(param)

    if filters.access_type is not None:
        clause, access_params = _access_clause(filters.access_type)
        conditions.append(clause)
        params.update(access_params)
        expanding.append("access_labels")

    if filters.is_recommended is not None:
        labels = RECOMMENDED_LABELS if filters.is_recommended else NOT_RECOMMENDED_LABELS
        conditions.append("UPPER(CAST(is_recommended AS VARCHAR)) IN :rec_labels")
        params["rec_labels"] = list(labels)
        expanding.append("rec_labels")

    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    return where, params, tuple(expanding)
