"""Distance decay coefficients.

A decay coefficient is the fraction of station-level foot traffic assumed to
reach a site. Walking and bike-share access are alternatives, so the combined
coefficient is the better of the two rather than their sum.
"""

from decimal import Decimal

# (max distance in metres, coefficient), checked in order
PEDESTRIAN_DECAY: list[tuple[Decimal, Decimal]] = [
    (Decimal("500"), Decimal("1.0")),
    (Decimal("1000"), Decimal("0.7")),
    (Decimal("1500"), Decimal("0.4")),
    (Decimal("2000"), Decimal("0.2")),
]
PEDESTRIAN_FLOOR = Decimal("0.05")

# Bike share only counts when a dock is this close to the site
BIKE_SHARE_MAX_DOCK_DISTANCE = Decimal("200")

BIKE_SHARE_DECAY: list[tuple[Decimal, Decimal]] = [
    (Decimal("2500"), Decimal("0.8")),
    (Decimal("3000"), Decimal("0.6")),
    (Decimal("4000"), Decimal("0.4")),
]


def pedestrian_decay(transit_distance: Decimal | None) -> Decimal:
    """Walking decay for a site `transit_distance` metres from the station."""
    if transit_distance is None:
        return PEDESTRIAN_FLOOR
    for limit, coefficient in PEDESTRIAN_DECAY:
        if transit_distance <= limit:
            return coefficient
    return PEDESTRIAN_FLOOR


def bike_share_decay(bike_share_distance: Decimal, transit_distance: Decimal | None) -> Decimal:
    """Bike-share decay; zero unless a dock is within 200 m of the site."""
    if transit_distance is None or bike_share_distance > BIKE_SHARE_MAX_DOCK_DISTANCE:
        return Decimal("0")
    for limit, coefficient in BIKE_SHARE_DECAY:
        if transit_distance <= limit:
            return coefficient
    return Decimal("0")


def combined_decay(transit_distance: Decimal | None, bike_share_distance: Decimal) -> Decimal:
    return max(
        pedestrian_decay(transit_distance),
        bike_share_decay(bike_share_distance, transit_distance),
    )
