"""Flow accessibility and supply/demand ratio."""

from decimal import Decimal, ROUND_HALF_UP

from sitescore.engine.decay import combined_decay
from sitescore.models.site import NO_BIKE_SHARE_DISTANCE

# Returned when there is no flow to divide by. Large enough to floor the
# supply sub-score and force the "not recommended" tier.
UNDEFINED_DEMAND_RATIO = Decimal("999")

# Competitors are counted per 10,000 daily passers-by
FLOW_UNIT = 10_000


def flow_accessibility(
    daily_flow: int,
    transit_distance: Decimal | None,
    bike_share_distance: Decimal = NO_BIKE_SHARE_DISTANCE,
) -> int:
    """Estimated daily foot traffic that realistically reaches the site."""
    decay = combined_decay(transit_distance, bike_share_distance)
    reach = Decimal(daily_flow) * decay
    return int(reach.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def supply_demand_ratio(competitor_count: int, daily_flow: int) -> Decimal:
    """Competitors per 10,000 daily flow, rounded to 2 dp."""
    if daily_flow == 0:
        return UNDEFINED_DEMAND_RATIO
    ratio = Decimal(competitor_count) / (Decimal(daily_flow) / FLOW_UNIT)
    return ratio.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
