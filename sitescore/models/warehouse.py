"""Warehouse-facing data types.

Rows are normalised into these types at the data-access boundary, so free-text
level labels never leave `sitescore.data`.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum

from sitescore.models.site import RecommendationTier, SupplyDemandStatus


class ScoreLevel(Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class FlowLevel(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class BikeShareLevel(Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class AccessType(Enum):
    WALK = "walk"  # within walking distance of the station
    BIKE_SHARE = "bike_share"  # bike share recommended
    TRANSIT = "transit"  # needs a transfer
    FAR = "far"


@dataclass(frozen=True)
class SiteRecord:
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
    composite_score: float = 0.0

    # Normalised categorical fields
    score_level: ScoreLevel | None = None
    flow_level: FlowLevel | None = None
    bike_share_level: BikeShareLevel | None = None
    supply_demand_status: SupplyDemandStatus | None = None
    access_type: AccessType | None = None
    recommendation: RecommendationTier = RecommendationTier.NOT_RECOMMENDED
    is_recommended: bool | None = None

    # Attached from shop data
    rent: float | None = None
    rent_score: float | None = None
    rent_source: str | None = None

    def as_dict(self) -> dict:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, Enum):
                data[key] = value.value
        return data


@dataclass(frozen=True)
class TransitStation:
    name: str
    latitude: float | None
    longitude: float | None
    daily_flow: int | None


@dataclass(frozen=True)
class Shop:
    station: str | None
    shop_type: str | None
    shop_name: str | None
    distance: float | None
    address: str | None
    latitude: float | None
    longitude: float | None
    status: str | None
    rent: float | None


@dataclass(frozen=True)
class StationDetail:
    station: TransitStation
    zones: list[SiteRecord] = field(default_factory=list)


@dataclass(frozen=True)
class SiteStatistics:
    total_locations: int = 0
    total_stations: int = 0
    total_cafes: int = 0
    avg_score: float | None = None
    max_score: float | None = None
    min_score: float | None = None
    avg_supply_demand_ratio: float | None = None
    recommended_count: int = 0
    not_recommended_count: int = 0
    score_level_counts: dict[str, int] = field(default_factory=dict)
    supply_demand_counts: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class SiteFilters:
    station: str | None = None
    min_score: float | None = None
    max_score: float | None = None
    zone: str | None = None
    supply_demand_status: SupplyDemandStatus | None = None
    score_level: ScoreLevel | None = None
    flow_level: FlowLevel | None = None
    bike_share_level: BikeShareLevel | None = None
    access_type: AccessType | None = None
    is_recommended: bool | None = None
    limit: int = 100
    offset: int = 0

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for key, value in asdict(self).items()
            if key not in ("limit", "offset")
        )


@dataclass(frozen=True)
class SitePage:
    sites: list[SiteRecord]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total
