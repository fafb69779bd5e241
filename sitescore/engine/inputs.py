"""Coerce raw site records into SiteInput.

Records come from API bodies, warehouse rows and JSON files, so several key
spellings are accepted for each field.
"""

from collections.abc import Mapping, Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from sitescore.models.site import NO_BIKE_SHARE_DISTANCE, SiteInput

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "latitude": ("latitude", "lat"),
    "longitude": ("longitude", "lon", "lng"),
    "station": ("station", "mrt_station", "station_name"),
    "daily_flow": ("daily_flow", "dailyFlow", "base_flow"),
    "transit_distance": ("transit_distance", "transitDistance", "mrt_distance"),
    "bike_share_distance": ("bike_share_distance", "bikeShareDistance", "youbike_distance"),
    "competitor_count": ("competitor_count", "competitorCount", "competitors"),
    "bike_share_count": ("bike_share_count", "bikeShareCount", "youbike_count"),
    "rent": ("rent",),
}

# Checked by callers before the engine runs
REQUIRED_FIELDS: tuple[str, ...] = ("latitude", "longitude", "station", "daily_flow")

# Numeric inputs must stay below 10**15; larger values overflow quantize()
MAX_INPUT_EXPONENT = 14


class InvalidSiteInput(ValueError):
    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class MissingRequiredFields(InvalidSiteInput):
    def __init__(self, fields: list[str]):
        super().__init__(fields[0], f"Missing required fields: {', '.join(fields)}")
        self.fields = fields


def lookup(record: Mapping[str, Any], field: str) -> Any:
    """First non-empty value under any alias of `field`, else None."""
    for key in FIELD_ALIASES.get(field, (field,)):
        value = record.get(key)
        if value is not None and value != "":
            return value
    return None


def require_fields(record: Mapping[str, Any], fields: Sequence[str] = REQUIRED_FIELDS) -> None:
    missing = [f for f in fields if lookup(record, f) is None]
    if missing:
        raise MissingRequiredFields(missing)


def _to_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidSiteInput(field, f"{field} must be a number, got {value!r}")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidSiteInput(field, f"{field} must be a number, got {value!r}") from None
    if not number.is_finite():
        raise InvalidSiteInput(field, f"{field} must be finite, got {value!r}")
    if number < 0:
        raise InvalidSiteInput(field, f"{field} must be non-negative, got {value!r}")
    if number.adjusted() > MAX_INPUT_EXPONENT:
        raise InvalidSiteInput(field, f"{field} is too large, got {value!r}")
    return number


def _to_count(value: Any, field: str) -> int:
    number = _to_decimal(value, field)
    if number != number.to_integral_value():
        raise InvalidSiteInput(field, f"{field} must be a whole number, got {value!r}")
    return int(number)


def _optional_decimal(record: Mapping[str, Any], field: str) -> Decimal | None:
    value = lookup(record, field)
    return None if value is None else _to_decimal(value, field)


def _coordinate(record: Mapping[str, Any], field: str) -> Decimal | None:
    # Coordinates may be negative, so they skip the non-negative check
    value = lookup(record, field)
    if value is None:
        return None
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidSiteInput(field, f"{field} must be a number, got {value!r}") from None


def parse_site_input(record: Mapping[str, Any]) -> SiteInput:
    """Build a SiteInput from a raw record.

    Raises InvalidSiteInput naming the offending field when daily flow is
    missing or any numeric field cannot be read as a non-negative number.
    Optional fields fall back to their neutral defaults.
    """
    raw_flow = lookup(record, "daily_flow")
    if raw_flow is None:
        raise InvalidSiteInput("daily_flow", "daily_flow is required")

    competitors = lookup(record, "competitor_count")
    docks = lookup(record, "bike_share_count")
    bike_distance = _optional_decimal(record, "bike_share_distance")
    station = lookup(record, "station")

    return SiteInput(
        daily_flow=_to_count(raw_flow, "daily_flow"),
        transit_distance=_optional_decimal(record, "transit_distance"),
        bike_share_distance=NO_BIKE_SHARE_DISTANCE if bike_distance is None else bike_distance,
        competitor_count=0 if competitors is None else _to_count(competitors, "competitor_count"),
        bike_share_count=0 if docks is None else _to_count(docks, "bike_share_count"),
        rent=_optional_decimal(record, "rent"),
        latitude=_coordinate(record, "latitude"),
        longitude=_coordinate(record, "longitude"),
        station=None if station is None else str(station),
    )
