from sitescore.dashboard.app import best_site_by_station, build_map_figure, filter_sites


SITES = [
    {"station": "Daan", "zone_label": "0-500m", "composite_score": 72.0, "recommendation": "recommended"},
    {"station": "Daan", "zone_label": "500-1000m", "composite_score": 55.0, "recommendation": "not recommended"},
    {"station": "Zhongshan", "zone_label": "0-500m", "composite_score": 88.0, "recommendation": "strongly recommended"},
]

STATIONS = [
    {"name": "Daan", "latitude": 25.033, "longitude": 121.543, "daily_flow": 45000},
    {"name": "Zhongshan", "latitude": 25.052, "longitude": 121.520, "daily_flow": 80000},
    {"name": "Xindian", "latitude": 24.957, "longitude": 121.537, "daily_flow": 20000},
]


class TestFilterSites:
    def test_sorted_best_first(self):
        assert [s["composite_score"] for s in filter_sites(SITES)] == [88.0, 72.0, 55.0]

    def test_station_and_score(self):
        assert filter_sites(SITES, station="Daan", min_score=60) == [SITES[0]]

    def test_recommended_only(self):
        stations = {s["station"] for s in filter_sites(SITES, recommended_only=True)}
        assert stations == {"Daan", "Zhongshan"}
        assert len(filter_sites(SITES, recommended_only=True)) == 2


class TestMapFigure:
    def test_best_site_per_station(self):
        assert best_site_by_station(SITES)["Daan"]["composite_score"] == 72.0

    def test_one_marker_per_station_with_sites(self):
        fig = build_map_figure(SITES, STATIONS)
        trace = fig.data[0]
        assert list(trace.lat) == [25.033, 25.052]
        assert list(trace.marker.color) == [72.0, 88.0]
