"""Site scoring data types."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

# Distance used when no bike-share dock is known to be nearby.
NO_BIKE_SHARE_DISTANCE = Decimal("999")


class RecommendationTier(Enum):
    """Ordered best to worst."""
    STRONGLY_RECOMMENDED = "strongly recommended"
    RECOMMENDED = "recommended"
    CONSIDER_WITH_CAUTION = "consider with caution"
    NOT_RECOMMENDED = "not recommended"


class SupplyDemandStatus(Enum):
    """Ordered least to most competitive."""
    UNDERSUPPLIED = "undersupplied"
    MODERATE_COMPETITION = "moderate competition"
    NEAR_SATURATION = "near saturation"
    MARKET_SATURATED = "market saturated"


@dataclass(frozen=True)
class SiteInput:
    daily_flow: int
    transit_distance: Decimal | None = None  # metres; None = unknown
    bike_share_distance: Decimal = NO_BIKE_SHARE_DISTANCE
    competitor_count: int = 0
    bike_share_count: int = 0
    rent: Decimal | None = None  # monthly; None = unknown, not free

    # Identity (not used by the arithmetic)
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    station: str | None = None


@dataclass(frozen=True)
class SubScores:
    flow: Decimal
    supply_demand: Decimal
    bike_share: Decimal
    rent: Decimal


@dataclass(frozen=True)
class ScoreResult:
    flow_accessibility: int
    supply_demand_ratio: Decimal
    sub_scores: SubScores
    composite_score: Decimal  # 0-100
    recommendation_tier: RecommendationTier
    supply_demand_status: SupplyDemandStatus

    def as_dict(self) -> dict:
        """Flat, JSON-friendly view used by the API and the CLI."""
        return {
            "flow_accessibility": self.flow_accessibility,
            "supply_demand_ratio": float(self.supply_demand_ratio),
            "supply_demand_status": self.supply_demand_status.value,
            "flow_score": float(self.sub_scores.flow),
            "supply_score": float(self.sub_scores.supply_demand),
            "bike_share_score": float(self.sub_scores.bike_share),
            "rent_score": float(self.sub_scores.rent),
            "composite_score": float(self.composite_score),
            "recommendation": self.recommendation_tier.value,
        }
