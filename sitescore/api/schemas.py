"""Pydantic schemas for API request/response models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---- Request schemas ----

class SiteScoreRequest(BaseModel):
    """One site to score.

    Location fields and daily flow are required, but they are checked by the
    route so that every missing field is reported together.
    """
    model_config = ConfigDict(extra="allow")

    latitude: float | None = None
    longitude: float | None = None
    station: str | None = None
    daily_flow: int | None = Field(None, ge=0)
    transit_distance: float | None = Field(None, ge=0, description="Metres to the nearest station")
    bike_share_distance: float | None = Field(None, ge=0, description="Metres to the nearest bike-share dock")
    competitor_count: int | None = Field(None, ge=0)
    bike_share_count: int | None = Field(None, ge=0)
    rent: float | None = Field(None, ge=0, description="Monthly rent; omit when unknown")


class BatchScoreRequest(BaseModel):
    # Items stay untyped so one malformed record fails alone
    sites: list[Any] = Field(..., min_length=1)


class SiteNarrativeRequest(BaseModel):
    """A site record as returned by the site endpoints."""
    model_config = ConfigDict(extra="allow")

    station: str = Field(..., min_length=1)
    zone_label: str | None = None
    composite_score: float | None = None
    supply_demand_ratio: float | None = None


class CompareRequest(BaseModel):
    sites: list[SiteNarrativeRequest] = Field(..., min_length=2)


class ActionPlanRequest(BaseModel):
    site: SiteNarrativeRequest
    budget: int = Field(1_000_000, gt=0)
    timeline: str = "3 months"


# ---- Response schemas ----

class ScoreResponse(BaseModel):
    flow_accessibility: int
    supply_demand_ratio: float
    supply_demand_status: str
    flow_score: float
    supply_score: float
    bike_share_score: float
    rent_score: float
    composite_score: float
    recommendation: str


class BatchScoreResponse(BaseModel):
    data: list[dict[str, Any]]
    total: int
    succeeded: int
    failed: int


class SiteResponse(BaseModel):
    point_id: str
    station: str
    zone_label: str
    zone_start_m: float | None = None
    base_flow: int | None = None
    distance_decay: float | None = None
    flow_accessibility: int | None = None
    flow_score: float | None = None
    supply_demand_ratio: float | None = None
    competition_score: float | None = None
    cafe_count: int = 0
    total_competitors: int = 0
    bike_share_count: int = 0
    bike_share_score: float | None = None
    composite_score: float
    score_level: str | None = None
    flow_level: str | None = None
    bike_share_level: str | None = None
    supply_demand_status: str | None = None
    access_type: str | None = None
    recommendation: str
    is_recommended: bool | None = None
    rent: float | None = None
    rent_score: float | None = None
    rent_source: str | None = None


class PaginationResponse(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class SiteListResponse(BaseModel):
    data: list[SiteResponse]
    pagination: PaginationResponse


class StationResponse(BaseModel):
    name: str
    latitude: float | None = None
    longitude: float | None = None
    daily_flow: int | None = None


class StationOption(BaseModel):
    name: str
    daily_flow: int | None = None


class ShopResponse(BaseModel):
    station: str | None = None
    shop_type: str | None = None
    shop_name: str | None = None
    distance: float | None = None
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    status: str | None = None
    rent: float | None = None


class StationDetailResponse(BaseModel):
    station: StationResponse
    zones: list[SiteResponse]


class StatisticsResponse(BaseModel):
    total_locations: int
    total_stations: int
    total_cafes: int
    avg_score: float | None = None
    max_score: float | None = None
    min_score: float | None = None
    avg_supply_demand_ratio: float | None = None
    recommended_count: int
    not_recommended_count: int
    score_level_counts: dict[str, int] = {}
    supply_demand_counts: dict[str, int] = {}


class MapDataResponse(BaseModel):
    sites: list[SiteResponse]
    stations: list[StationResponse]
    shops: list[ShopResponse] = []
    counts: dict[str, int]


class ExplanationResponse(BaseModel):
    explanation: str
    source: str


class NarrativeResponse(BaseModel):
    text: str
