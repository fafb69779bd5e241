"""Composite site score and categorical labels.

Composite (0-100) = weighted sum of four sub-scores:
  Flow:          40%
  Supply/demand: 30%
  Bike share:    20%
  Rent:          10%
"""

from decimal import Decimal, ROUND_HALF_UP

from sitescore.engine.accessibility import flow_accessibility, supply_demand_ratio
from sitescore.engine.subscores import bike_share_score, flow_score, rent_score, supply_score
from sitescore.models.site import (
    RecommendationTier,
    ScoreResult,
    SiteInput,
    SubScores,
    SupplyDemandStatus,
)

WEIGHTS: dict[str, Decimal] = {
    "flow": Decimal("0.40"),
    "supply_demand": Decimal("0.30"),
    "bike_share": Decimal("0.20"),
    "rent": Decimal("0.10"),
}

# (tier, min composite score, ratio ceiling or None), first match wins
TIER_RULES: list[tuple[RecommendationTier, Decimal, Decimal | None]] = [
    (RecommendationTier.STRONGLY_RECOMMENDED, Decimal("85"), Decimal("0.5")),
    (RecommendationTier.RECOMMENDED, Decimal("70"), Decimal("0.7")),
    (RecommendationTier.CONSIDER_WITH_CAUTION, Decimal("60"), None),
]

# (status, ratio ceiling), checked in order
STATUS_RULES: list[tuple[SupplyDemandStatus, Decimal]] = [
    (SupplyDemandStatus.UNDERSUPPLIED, Decimal("0.5")),
    (SupplyDemandStatus.MODERATE_COMPETITION, Decimal("0.7")),
    (SupplyDemandStatus.NEAR_SATURATION, Decimal("1.0")),
]


def tier_min_score(tier: RecommendationTier) -> Decimal:
    """Lowest composite score that can earn `tier`."""
    for rule_tier, min_score, _ in TIER_RULES:
        if rule_tier is tier:
            return min_score
    return Decimal("0")


def classify_recommendation(
    composite_score: Decimal, ratio: Decimal | None = None
) -> RecommendationTier:
    """Recommendation tier for a composite score and supply/demand ratio.

    When the ratio is unknown the ratio ceilings are not applied.
    """
    for tier, min_score, ceiling in TIER_RULES:
        if composite_score < min_score:
            continue
        if ceiling is not None and ratio is not None and ratio >= ceiling:
            continue
        return tier
    return RecommendationTier.NOT_RECOMMENDED


def classify_supply_demand(ratio: Decimal) -> SupplyDemandStatus:
    for status, ceiling in STATUS_RULES:
        if ratio < ceiling:
            return status
    return SupplyDemandStatus.MARKET_SATURATED


def composite_score(sub_scores: SubScores) -> Decimal:
    total = (
        sub_scores.flow * WEIGHTS["flow"]
        + sub_scores.supply_demand * WEIGHTS["supply_demand"]
        + sub_scores.bike_share * WEIGHTS["bike_share"]
        + sub_scores.rent * WEIGHTS["rent"]
    )
    return total.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def score_site(site: SiteInput) -> ScoreResult:
    """Score one site. Pure: no I/O, no shared state."""
    reach = flow_accessibility(site.daily_flow, site.transit_distance, site.bike_share_distance)
    ratio = supply_demand_ratio(site.competitor_count, site.daily_flow)

    sub_scores = SubScores(
        flow=flow_score(reach),
        supply_demand=supply_score(ratio),
        bike_share=bike_share_score(site.bike_share_count),
        rent=rent_score(site.rent),
    )
    total = composite_score(sub_scores)

    return ScoreResult(
        flow_accessibility=reach,
        supply_demand_ratio=ratio,
        sub_scores=sub_scores,
        composite_score=total,
        recommendation_tier=classify_recommendation(total, ratio),
        supply_demand_status=classify_supply_demand(ratio),
    )
