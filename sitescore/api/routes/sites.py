"""Site routes: warehouse reads and on-demand scoring."""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from sitescore.api.deps import get_warehouse
from sitescore.api.schemas import (
    BatchScoreRequest,
    BatchScoreResponse,
    MapDataResponse,
    PaginationResponse,
    ScoreResponse,
    ShopResponse,
    SiteListResponse,
    SiteResponse,
    SiteScoreRequest,
    StationDetailResponse,
    StationOption,
    StationResponse,
    StatisticsResponse,
)
from sitescore.data.warehouse import WarehouseClient
from sitescore.engine.batch import score_batch
from sitescore.engine.composite import score_site
from sitescore.engine.inputs import (
    REQUIRED_FIELDS,
    InvalidSiteInput,
    MissingRequiredFields,
    parse_site_input,
    require_fields,
)
from sitescore.models.site import SupplyDemandStatus
from sitescore.models.warehouse import (
    AccessType,
    BikeShareLevel,
    FlowLevel,
    ScoreLevel,
    SiteFilters,
    SiteRecord,
    TransitStation,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sites", tags=["sites"])


def _site_response(site: SiteRecord) -> SiteResponse:
    return SiteResponse(**site.as_dict())


def _station_response(station: TransitStation) -> StationResponse:
    return StationResponse(
        name=station.name,
        latitude=station.latitude,
        longitude=station.longitude,
        daily_flow=station.daily_flow,
    )


@router.get("", response_model=SiteListResponse)
async def list_sites(
    station: str | None = None,
    min_score: float | None = Query(None, ge=0, le=100),
    max_score: float | None = Query(None, ge=0, le=100),
    supply_demand_status: SupplyDemandStatus | None = None,
    score_level: ScoreLevel | None = None,
    flow_level: FlowLevel | None = None,
    bike_share_level: BikeShareLevel | None = None,
    access_type: AccessType | None = None,
    is_recommended: bool | None = None,
    zone: str | None = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    warehouse: WarehouseClient = Depends(get_warehouse),
):
    """Analysed sites, best first. Any filter switches to a paged warehouse search."""
    filters = SiteFilters(
        station=station,
        min_score=min_score,
        max_score=max_score,
        zone=zone,
        supply_demand_status=supply_demand_status,
        score_level=score_level,
        flow_level=flow_level,
        bike_share_level=bike_share_level,
        access_type=access_type,
        is_recommended=is_recommended,
        limit=limit,
        offset=offset,
    )
    if filters.is_empty:
        sites = await warehouse.get_sites()
        return SiteListResponse(
            data=[_site_response(s) for s in sites],
            pagination=PaginationResponse(total=len(sites), limit=len(sites), offset=0, has_more=False),
        )

    page = await warehouse.search_sites(filters)
    return SiteListResponse(
        data=[_site_response(s) for s in page.sites],
        pagination=PaginationResponse(
            total=page.total, limit=page.limit, offset=page.offset, has_more=page.has_more
        ),
    )


@router.get("/top", response_model=list[SiteResponse])
async def top_sites(
    n: int = Query(10, ge=1, le=100),
    station: str | None = None,
    warehouse: WarehouseClient = Depends(get_warehouse),
):
    """Top N sites flagged as recommended."""
    page = await warehouse.search_sites(SiteFilters(station=station, is_recommended=True, limit=n))
    return [_site_response(s) for s in page.sites]


@router.get("/stations", response_model=list[StationResponse])
async def transit_stations(warehouse: WarehouseClient = Depends(get_warehouse)):
    return [_station_response(s) for s in await warehouse.get_transit_stations()]


@router.get("/shops", response_model=list[ShopResponse])
async def shops(
    shop_type: str | None = None,
    category: str | None = None,
    limit: int = Query(1000, ge=1, le=10000),
    warehouse: WarehouseClient = Depends(get_warehouse),
):
    found = await warehouse.get_shops(shop_type=shop_type, category=category, limit=limit)
    return [ShopResponse(**vars(shop)) for shop in found]


@router.get("/station/{station_name}", response_model=StationDetailResponse)
async def station_detail(station_name: str, warehouse: WarehouseClient = Depends(get_warehouse)):
    detail = await warehouse.get_station_detail(station_name)
    if detail is None:
        raise HTTPException(status_code=404, detail=f"Station not found: {station_name}")
    return StationDetailResponse(
        station=_station_response(detail.station),
        zones=[_site_response(z) for z in detail.zones],
    )


@router.get("/meta/stations", response_model=list[StationOption])
async def station_options(warehouse: WarehouseClient = Depends(get_warehouse)):
    return [StationOption(**row) for row in await warehouse.list_stations()]


@router.get("/meta/stats", response_model=StatisticsResponse)
async def statistics(warehouse: WarehouseClient = Depends(get_warehouse)):
    return StatisticsResponse(**vars(await warehouse.get_statistics()))


@router.get("/map-data", response_model=MapDataResponse)
async def map_data(
    include_shops: bool = False,
    shop_type: str | None = None,
    shop_category: str | None = None,
    only_recommended: bool = False,
    warehouse: WarehouseClient = Depends(get_warehouse),
):
    """Everything the map needs in one call."""
    if only_recommended:
        sites_task = warehouse.search_sites(SiteFilters(is_recommended=True, limit=1000))
    else:
        sites_task = warehouse.get_sites()
    sites_result, stations = await asyncio.gather(sites_task, warehouse.get_transit_stations())
    sites = sites_result.sites if only_recommended else sites_result

    found_shops = []
    if include_shops:
        found_shops = await warehouse.get_shops(shop_type=shop_type, category=shop_category, limit=500)

    return MapDataResponse(
        sites=[_site_response(s) for s in sites],
        stations=[_station_response(s) for s in stations],
        shops=[ShopResponse(**vars(shop)) for shop in found_shops],
        counts={"sites": len(sites), "stations": len(stations), "shops": len(found_shops)},
    )


@router.post("/calculate", response_model=ScoreResponse)
async def calculate(req: SiteScoreRequest):
    """Score one site from raw measurements."""
    record = req.model_dump(exclude_none=True)
    try:
        require_fields(record)
        result = score_site(parse_site_input(record))
    except MissingRequiredFields as e:
        raise HTTPException(
            status_code=400,
            detail={"error": "Missing required fields", "missing": e.fields, "required": list(REQUIRED_FIELDS)},
        )
    except InvalidSiteInput as e:
        raise HTTPException(status_code=400, detail={"error": str(e), "field": e.field})
    return ScoreResponse(**result.as_dict())


@router.post("/calculate/batch", response_model=BatchScoreResponse)
async def calculate_batch(req: BatchScoreRequest):
    """Score many sites; each item succeeds or fails on its own, in input order."""
    result = score_batch(req.sites)
    return BatchScoreResponse(
        data=[item.as_dict() for item in result.items],
        total=result.total,
        succeeded=result.succeeded,
        failed=result.failed,
    )


@router.post("/clear-cache")
async def clear_cache(warehouse: WarehouseClient = Depends(get_warehouse)):
    cleared = await warehouse.invalidate_cache()
    return {"cleared": cleared}


@router.get("/test-connection")
async def test_connection(warehouse: WarehouseClient = Depends(get_warehouse)):
    connected = await warehouse.test_connection()
    return {
        "connected": connected,
        "message": "Warehouse connection successful" if connected else "Warehouse connection failed",
    }
