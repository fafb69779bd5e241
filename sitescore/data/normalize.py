"""Map raw warehouse values into closed types.

The analysis tables were populated by several jobs over time, so level columns
hold a mix of English codes and Chinese labels. Matching happens here and only
here: ASCII codes must match exactly, other labels may appear anywhere in the
raw text. Each table is checked in order, so more specific labels come first.
"""

import logging
import math
import re
import statistics
from collections.abc import Iterable, Mapping
from dataclasses import replace
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar

from sitescore.engine.composite import classify_recommendation, classify_supply_demand
from sitescore.engine.subscores import rent_score
from sitescore.models.site import RecommendationTier, SupplyDemandStatus
from sitescore.models.warehouse import (
    AccessType,
    BikeShareLevel,
    FlowLevel,
    ScoreLevel,
    Shop,
    SiteRecord,
    TransitStation,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

SUPPLY_DEMAND_LABELS: list[tuple[SupplyDemandStatus, tuple[str, ...]]] = [
    (SupplyDemandStatus.UNDERSUPPLIED, ("LOW", "低競爭", "供給不足")),
    (SupplyDemandStatus.MODERATE_COMPETITION, ("MEDIUM", "中等競爭", "適度")),
    (SupplyDemandStatus.NEAR_SATURATION, ("HIGH", "高競爭", "接近飽和")),
    (SupplyDemandStatus.MARKET_SATURATED, ("SATURATED", "過度飽和", "飽和")),
]

SCORE_LEVEL_LABELS: list[tuple[ScoreLevel, tuple[str, ...]]] = [
    (ScoreLevel.EXCELLENT, ("EXCELLENT", "優秀")),
    (ScoreLevel.GOOD, ("GOOD", "良好")),
    (ScoreLevel.FAIR, ("FAIR", "普通")),
    (ScoreLevel.POOR, ("POOR", "差")),
]

FLOW_LEVEL_LABELS: list[tuple[FlowLevel, tuple[str, ...]]] = [
    (FlowLevel.HIGH, ("HIGH", "高")),
    (FlowLevel.MEDIUM, ("MEDIUM", "中")),
    (FlowLevel.LOW, ("LOW", "低")),
]

BIKE_SHARE_LEVEL_LABELS: list[tuple[BikeShareLevel, tuple[str, ...]]] = [
    (BikeShareLevel.EXCELLENT, ("EXCELLENT", "優秀")),
    (BikeShareLevel.GOOD, ("GOOD", "良好")),
    (BikeShareLevel.FAIR, ("FAIR", "普通")),
    (BikeShareLevel.POOR, ("POOR", "差")),
]

ACCESS_TYPE_LABELS: list[tuple[AccessType, tuple[str, ...]]] = [
    (AccessType.WALK, ("WALK", "近距離", "<500")),
    (AccessType.BIKE_SHARE, ("YOUBIKE", "BIKE_SHARE", "中距離", "500")),
    (AccessType.FAR, ("FAR", "極遠")),
    (AccessType.TRANSIT, ("TRANSIT", "遠距離")),
]

# (zone start below this many metres, access type) when no category is stored
ACCESS_TYPE_BY_DISTANCE: list[tuple[float, AccessType]] = [
    (500, AccessType.WALK),
    (1500, AccessType.BIKE_SHARE),
    (2500, AccessType.TRANSIT),
]

RECOMMENDED_LABELS = ("推薦", "YES", "Y", "TRUE", "1")
NOT_RECOMMENDED_LABELS = ("不推薦", "NO", "N", "FALSE", "0")

_NUMBER_RE = re.compile(r"(\d+(?:\.\d+)?)")


def _label_matches(raw: str, label: str) -> bool:
    if label.isascii():
        return raw.upper() == label.upper()
    return label in raw


def normalize_label(raw: Any, table: list[tuple[E, tuple[str, ...]]]) -> E | None:
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    for member, labels in table:
        if any(_label_matches(text, label) for label in labels):
            return member
    logger.debug("Unrecognised label %r", text)
    return None


def labels_for(member: Enum, table: list[tuple[Enum, tuple[str, ...]]]) -> list[str]:
    """Every raw spelling that normalises to `member`, for building filters."""
    for candidate, labels in table:
        if candidate is member:
            spellings: list[str] = []
            for label in labels:
                spellings.extend([label, label.lower(), label.title()] if label.isascii() else [label])
            return list(dict.fromkeys(spellings))
    return []


def normalize_recommended(raw: Any) -> bool | None:
    if raw is None or isinstance(raw, bool):
        return raw
    text = str(raw).strip().upper()
    if text in NOT_RECOMMENDED_LABELS:
        return False
    if text in RECOMMENDED_LABELS:
        return True
    return None


def access_type(category: Any, zone_start_m: float | None) -> AccessType | None:
    matched = normalize_label(category, ACCESS_TYPE_LABELS)
    if matched is not None or zone_start_m is None:
        return matched
    for limit, kind in ACCESS_TYPE_BY_DISTANCE:
        if zone_start_m < limit:
            return kind
    return AccessType.FAR


def _float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _int(value: Any, default: int | None = None) -> int | None:
    number = _float(value)
    return default if number is None else int(round(number))


def recommendation_for(
    score: float, ratio: float | None, is_recommended: bool | None
) -> RecommendationTier:
    """Tier for a warehouse row; an explicit "not recommended" flag wins."""
    if is_recommended is False:
        return RecommendationTier.NOT_RECOMMENDED
    return classify_recommendation(
        Decimal(str(score)),
        None if ratio is None else Decimal(str(ratio)),
    )


def site_from_row(row: Mapping[str, Any]) -> SiteRecord:
    """Normalise one `main_analysis` row."""
    station = str(row.get("mrt_station") or "")
    zone = str(row.get("zone_label") or "")
    score = _float(row.get("optimal_score")) or 0.0
    ratio = _float(row.get("supply_demand_ratio"))
    zone_start = _float(row.get("zone_start_m"))
    is_recommended = normalize_recommended(row.get("is_recommended"))

    status = normalize_label(row.get("supply_demand_level"), SUPPLY_DEMAND_LABELS)
    if status is None and ratio is not None:
        status = classify_supply_demand(Decimal(str(ratio)))

    return SiteRecord(
        point_id=row.get("point_id") or f"{station}_{zone}",
        station=station,
        zone_label=zone,
        zone_start_m=zone_start,
        base_flow=_int(row.get("base_flow")),
        distance_decay=_float(row.get("distance_decay")),
        flow_accessibility=_int(row.get("flow_accessibility")),
        flow_score=_float(row.get("flow_score")),
        supply_demand_ratio=ratio,
        competition_score=_float(row.get("competition_score")),
        cafe_count=_int(row.get("cafe_count"), 0),
        total_competitors=_int(row.get("total_competitors"), 0),
        bike_share_count=_int(row.get("youbike_count"), 0),
        bike_share_score=_float(row.get("youbike_score")),
        composite_score=score,
        score_level=normalize_label(row.get("score_level"), SCORE_LEVEL_LABELS),
        flow_level=normalize_label(row.get("flow_level"), FLOW_LEVEL_LABELS),
        bike_share_level=normalize_label(row.get("youbike_level"), BIKE_SHARE_LEVEL_LABELS),
        supply_demand_status=status,
        access_type=access_type(row.get("distance_category"), zone_start),
        recommendation=recommendation_for(score, ratio, is_recommended),
        is_recommended=is_recommended,
    )


def station_from_row(row: Mapping[str, Any]) -> TransitStation:
    return TransitStation(
        name=str(row.get("station_name") or ""),
        latitude=_float(row.get("lat")),
        longitude=_float(row.get("lon")),
        daily_flow=_int(row.get("daily_flow")),
    )


def _first_present(row: Mapping[str, Any], *keys: str) -> float | None:
    for key in keys:
        value = _float(row.get(key))
        if value is not None:
            return value
    return None


def shop_from_row(row: Mapping[str, Any]) -> Shop:
    """Normalise a shop row.

    The shops table carries misspelled duplicates of two columns (`disrtance`,
    `longtitude`); the correct spelling wins when both are present. When the
    rent column is empty the first number in the free-text status is used.
    """
    rent = _float(row.get("rent"))
    status = row.get("status")
    if rent is None and status:
        match = _NUMBER_RE.search(str(status))
        if match:
            rent = float(match.group(1))

    return Shop(
        station=row.get("station") or None,
        shop_type=row.get("shop_type") or None,
        shop_name=row.get("shop_name") or None,
        distance=_first_present(row, "distance", "disrtance"),
        address=row.get("address") or None,
        latitude=_float(row.get("latitude")),
        longitude=_first_present(row, "longitude", "longtitude"),
        status=status or None,
        rent=rent,
    )


def station_median_rents(shops: Iterable[Shop]) -> dict[str, float]:
    rents: dict[str, list[float]] = {}
    for shop in shops:
        if shop.station and shop.rent is not None:
            rents.setdefault(shop.station, []).append(shop.rent)
    return {station: statistics.median(values) for station, values in rents.items()}


def attach_rents(sites: list[SiteRecord], medians: Mapping[str, float]) -> list[SiteRecord]:
    """Copy each station's median shop rent (and its rent score) onto its sites."""
    attached = []
    for site in sites:
        median = medians.get(site.station)
        if median is None:
            attached.append(replace(site, rent=None, rent_score=None, rent_source=None))
            continue
        attached.append(replace(
            site,
            rent=median,
            rent_score=float(rent_score(Decimal(str(median)))),
            rent_source="station_median",
        ))
    return attached
