"""Sub-score normalisation: each raw metric maps to a 0-100 score (1 dp)."""

from decimal import Decimal, ROUND_HALF_UP

MAX_SCORE = Decimal("100")
MIN_SCORE = Decimal("0")

# Flow sub-score saturates at 100,000 reachable passers-by per day
FLOW_PER_POINT = Decimal("1000")
SUPPLY_PENALTY_PER_RATIO = Decimal("50")
POINTS_PER_BIKE_DOCK = Decimal("20")

# (max monthly rent, score), checked in order; above the last band scores 0
RENT_BANDS: list[tuple[Decimal, Decimal]] = [
    (Decimal("1200"), Decimal("100")),
    (Decimal("1400"), Decimal("85")),
    (Decimal("1600"), Decimal("70")),
    (Decimal("1800"), Decimal("55")),
    (Decimal("2000"), Decimal("40")),
]
NEUTRAL_RENT_SCORE = Decimal("50")


def _round1(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def flow_score(flow_accessibility: int) -> Decimal:
    return _round1(min(MAX_SCORE, Decimal(flow_accessibility) / FLOW_PER_POINT))


def supply_score(supply_demand_ratio: Decimal) -> Decimal:
    """100 with no competitors, 0 once the ratio reaches 2.0."""
    return _round1(max(MIN_SCORE, MAX_SCORE - supply_demand_ratio * SUPPLY_PENALTY_PER_RATIO))


def bike_share_score(bike_share_count: int) -> Decimal:
    return _round1(min(MAX_SCORE, Decimal(bike_share_count) * POINTS_PER_BIKE_DOCK))


def rent_score(rent: Decimal | None) -> Decimal:
    """Step score, cheaper is better. Unknown rent is neutral."""
    if rent is None:
        return _round1(NEUTRAL_RENT_SCORE)
    for limit, score in RENT_BANDS:
        if rent <= limit:
            return _round1(score)
    return _round1(MIN_SCORE)
