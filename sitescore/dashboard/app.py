"""Plotly Dash dashboard: station map, filter panel and ranked site list."""

import sys
from pathlib import Path

# Ensure project root is on sys.path so `sitescore.*` imports work
# even when Dash's reloader spawns a child process.
_project_root = str(Path(__file__).resolve().parent.parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

import logging

import httpx
import plotly.graph_objects as go
from dash import Dash, Input, Output, callback, dcc, html

from sitescore.config import settings

logger = logging.getLogger(__name__)

MAP_CENTER = {"lat": 25.0478, "lon": 121.5318}

TIER_COLORS = {
    "strongly recommended": "#2ecc71",
    "recommended": "#3498db",
    "consider with caution": "#f39c12",
    "not recommended": "#e94560",
}

FIELD_STYLE = {"width": "100%", "padding": "0.25rem", "fontSize": "0.95rem"}


def filter_sites(
    sites: list[dict],
    station: str | None = None,
    min_score: float = 0,
    recommended_only: bool = False,
) -> list[dict]:
    """Apply the filter panel to sites returned by /api/sites/map-data."""
    selected = []
    for site in sites:
        if station and site.get("station") != station:
            continue
        if (site.get("composite_score") or 0) < min_score:
            continue
        if recommended_only and site.get("recommendation") not in ("strongly recommended", "recommended"):
            continue
        selected.append(site)
    return sorted(selected, key=lambda s: s.get("composite_score") or 0, reverse=True)


def best_site_by_station(sites: list[dict]) -> dict[str, dict]:
    best: dict[str, dict] = {}
    for site in sites:
        current = best.get(site["station"])
        if current is None or (site.get("composite_score") or 0) > (current.get("composite_score") or 0):
            best[site["station"]] = site
    return best


def build_map_figure(sites: list[dict], stations: list[dict]) -> go.Figure:
    """One marker per station, coloured by its best site's score, sized by daily flow."""
    best = best_site_by_station(sites)
    lats, lons, colors, sizes, labels = [], [], [], [], []
    for station in stations:
        site = best.get(station["name"])
        if site is None or station.get("latitude") is None or station.get("longitude") is None:
            continue
        lats.append(station["latitude"])
        lons.append(station["longitude"])
        colors.append(site.get("composite_score") or 0)
        sizes.append(8 + min(24, (station.get("daily_flow") or 0) / 10000))
        labels.append(
            f"{station['name']} {site['zone_label']}<br>"
            f"Score {site.get('composite_score', 0):.1f} ({site['recommendation']})<br>"
            f"Daily flow {station.get('daily_flow') or 0:,}"
        )

    fig = go.Figure(go.Scattermap(
        lat=lats,
        lon=lons,
        mode="markers",
        marker=dict(
            size=sizes,
            color=colors,
            colorscale="RdYlGn",
            cmin=0,
            cmax=100,
            colorbar=dict(title="Score"),
        ),
        text=labels,
        hoverinfo="text",
    ))
    fig.update_layout(
        map=dict(style="open-street-map", center=MAP_CENTER, zoom=11),
        margin=dict(l=0, r=0, t=0, b=0),
        height=560,
    )
    return fig


def site_list(sites: list[dict], limit: int = 20) -> html.Ul:
    items = []
    for site in sites[:limit]:
        color = TIER_COLORS.get(site["recommendation"], "#888")
        items.append(html.Li([
            html.Strong(f"{site['station']} {site['zone_label']}"),
            html.Span(f"  {site.get('composite_score', 0):.1f}", style={"marginLeft": "0.5rem"}),
            html.Span(
                f"  {site['recommendation']}",
                style={"color": color, "marginLeft": "0.5rem", "fontSize": "0.85rem"},
            ),
        ], style={"padding": "0.35rem 0", "borderBottom": "1px solid #eee"}))
    if not items:
        return html.Ul([html.Li("No sites match the current filters.")])
    return html.Ul(items, style={"listStyle": "none", "padding": "0", "margin": "0"})


def fetch_map_data() -> dict:
    try:
        resp = httpx.get(f"{settings.api_base_url}/api/sites/map-data", timeout=30.0)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("Failed to load map data: %s", e)
        return {"sites": [], "stations": [], "error": str(e)}
    return resp.json()


app = Dash(__name__, title="Site Score")

app.layout = html.Div([
    dcc.Store(id="map-data-store"),
    dcc.Interval(id="load-once", interval=1, max_intervals=1),

    html.Nav([
        html.H1("Site Score", style={"fontSize": "1.5rem", "margin": "0"}),
        html.Button("Refresh", id="refresh-btn", n_clicks=0),
    ], style={
        "display": "flex",
        "justifyContent": "space-between",
        "alignItems": "center",
        "backgroundColor": "#1a1a2e",
        "color": "white",
        "padding": "1rem",
        "marginBottom": "1rem",
    }),

    html.Div([
        html.Div([
            html.Label("Station"),
            dcc.Dropdown(id="station-filter", placeholder="All stations", style=FIELD_STYLE),
        ], style={"flex": "1"}),
        html.Div([
            html.Label("Minimum score"),
            dcc.Slider(id="min-score-filter", min=0, max=100, step=5, value=0),
        ], style={"flex": "2"}),
        dcc.Checklist(
            id="recommended-filter",
            options=[{"label": " Recommended only", "value": "yes"}],
            value=[],
        ),
    ], style={"display": "flex", "gap": "1rem", "alignItems": "center", "padding": "0 1rem"}),

    html.Div(id="load-error", style={"color": "#e94560", "padding": "0 1rem"}),

    html.Div([
        dcc.Graph(id="site-map", style={"flex": "3"}),
        html.Div(id="site-list", style={"flex": "1", "overflowY": "auto", "maxHeight": "560px"}),
    ], style={"display": "flex", "gap": "1rem", "padding": "1rem"}),
])


@callback(
    Output("map-data-store", "data"),
    Output("station-filter", "options"),
    Output("load-error", "children"),
    Input("load-once", "n_intervals"),
    Input("refresh-btn", "n_clicks"),
)
def load_data(_n_intervals, _n_clicks):
    data = fetch_map_data()
    options = sorted({site["station"] for site in data.get("sites", [])})
    error = f"Could not load sites: {data['error']}" if data.get("error") else ""
    return data, options, error


@callback(
    Output("site-map", "figure"),
    Output("site-list", "children"),
    Input("map-data-store", "data"),
    Input("station-filter", "value"),
    Input("min-score-filter", "value"),
    Input("recommended-filter", "value"),
)
def render(data, station, min_score, recommended):
    data = data or {}
    sites = filter_sites(data.get("sites", []), station, min_score or 0, "yes" in (recommended or []))
    return build_map_figure(sites, data.get("stations", [])), site_list(sites)


if __name__ == "__main__":
    app.run(debug=True, port=8050)
