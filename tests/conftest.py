"""Shared fixtures.

Canonical site: 60,000 daily riders, 300 m from the station, 3 competitors,
2 bike-share docks 150 m away, rent 1,500.
"""

import pytest
from decimal import Decimal

from sitescore.models.site import SiteInput


@pytest.fixture
def canonical_site() -> SiteInput:
    return SiteInput(
        daily_flow=60000,
        transit_distance=Decimal("300"),
        bike_share_distance=Decimal("150"),
        competitor_count=3,
        bike_share_count=2,
        rent=Decimal("1500"),
        latitude=Decimal("25.0478"),
        longitude=Decimal("121.5170"),
        station="Taipei Main",
    )


@pytest.fixture
def canonical_record() -> dict:
    """Raw API-style record for the canonical site."""
    return {
        "latitude": 25.0478,
        "longitude": 121.5170,
        "station": "Taipei Main",
        "daily_flow": 60000,
        "transit_distance": 300,
        "bike_share_distance": 150,
        "competitor_count": 3,
        "bike_share_count": 2,
        "rent": 1500,
    }


@pytest.fixture
def analysis_row() -> dict:
    """One `main_analysis` row as the warehouse returns it."""
    return {
        "point_id": "Zhongshan_0-500m",
        "mrt_station": "Zhongshan",
        "zone_label": "0-500m",
        "zone_start_m": 0,
        "base_flow": 80000,
        "distance_decay": 1.0,
        "distance_category": "近距離",
        "flow_accessibility": 80000,
        "flow_score": 80.0,
        "flow_level": "高",
        "cafe_count": 2,
        "total_competitors": 3,
        "supply_demand_ratio": 0.38,
        "supply_demand_level": "低競爭",
        "competition_score": 81.0,
        "youbike_count": 4,
        "youbike_score": 80.0,
        "youbike_level": "良好",
        "optimal_score": 88.5,
        "score_level": "優秀",
        "is_recommended": "推薦",
    }
