from __future__ import annotations

import copy
import math
from typing import Dict, List

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import pydeck as pdk

from .data_loader import mappable_incidents
from .trend import TrendForecast


BAR_COLOR = "#4C72B0"
ACCENT_COLOR = "#D62728"
MURDER_COLOR = [214, 39, 40, 220]
INCIDENT_COLOR = [255, 140, 0, 160]
BOUNDARY_LINE_COLOR = [80, 80, 80, 220]

NYC_VIEW = pdk.ViewState(
    latitude=40.70,
    longitude=-73.94,
    zoom=9.4,
    min_zoom=8,
    max_zoom=16,
    pitch=0,
)

CHART_MARGIN = dict(l=10, r=10, t=60, b=20)


def _style(fig: go.Figure, x_title: str, y_title: str, height: int = 360) -> go.Figure:
    fig.update_layout(
        xaxis_title=x_title,
        yaxis_title=y_title,
        margin=CHART_MARGIN,
        height=height,
    )
    return fig


def plot_monthly_counts(by_month: pd.DataFrame) -> go.Figure:
    fig = px.bar(
        by_month,
        x="MonthName",
        y="count",
        title="Shooting Incidents by Month",
        text_auto=True,
        color_discrete_sequence=[BAR_COLOR],
    )
    fig.update_xaxes(categoryorder="array", categoryarray=list(by_month["MonthName"]))
    return _style(fig, "Month", "Incidents")


def plot_victim_sex(by_sex: pd.DataFrame) -> go.Figure:
    fig = px.bar(
        by_sex,
        x="VIC_SEX",
        y="count",
        title="Incidents by Victim Sex",
        text=by_sex["share"].map("{:.1%}".format),
        color_discrete_sequence=[BAR_COLOR],
    )
    return _style(fig, "Victim sex", "Incidents")


def plot_borough_counts(by_borough: pd.DataFrame) -> go.Figure:
    fig = px.bar(
        by_borough,
        x="count",
        y="borough",
        orientation="h",
        title="Incidents by Borough",
        text_auto=True,
        color_discrete_sequence=[BAR_COLOR],
    )
    fig.update_yaxes(autorange="reversed")
    return _style(fig, "Incidents", "Borough")


def plot_hourly_pattern(by_hour: pd.DataFrame) -> go.Figure:
    fig = px.bar(
        by_hour,
        x="Hour",
        y="count",
        title="Incidents by Hour of Day",
        color_discrete_sequence=[BAR_COLOR],
    )
    fig.update_xaxes(dtick=2)
    return _style(fig, "Hour of day", "Incidents")


def plot_yearly_trend(
    yearly: pd.DataFrame,
    fitted: pd.DataFrame | None = None,
    forecast: TrendForecast | None = None,
) -> go.Figure:
    """Observed yearly counts, the Poisson fit, and the one-year extrapolation."""
    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=yearly["Year"],
            y=yearly["count"],
            mode="lines+markers",
            name="Observed",
            line=dict(color=BAR_COLOR),
        )
    )
    if "murders" in yearly.columns:
        fig.add_trace(
            go.Scatter(
                x=yearly["Year"],
                y=yearly["murders"],
                mode="lines+markers",
                name="Murders",
                line=dict(color="gray"),
            )
        )
    if fitted is not None:
        fig.add_trace(
            go.Scatter(
                x=fitted["Year"],
                y=fitted["fitted"],
                mode="lines",
                name="Poisson fit",
                line=dict(color=ACCENT_COLOR, dash="dash"),
            )
        )
    if forecast is not None:
        fig.add_trace(
            go.Scatter(
                x=[forecast.year],
                y=[forecast.expected],
                mode="markers",
                name=f"{forecast.year} forecast",
                marker=dict(color=ACCENT_COLOR, size=11, symbol="diamond"),
                error_y=dict(
                    type="data",
                    symmetric=False,
                    array=[forecast.count_upper - forecast.expected],
                    arrayminus=[forecast.expected - forecast.count_lower],
                ),
                hovertemplate=(
                    "Forecast %{x}: %{y:,.0f}<br>"
                    f"Range {forecast.count_lower:,}–{forecast.count_upper:,}"
                    "<extra></extra>"
                ),
            )
        )
    fig.update_layout(title="Shooting Incidents per Year", legend=dict(orientation="h"))
    fig.update_xaxes(dtick=1)
    return _style(fig, "Year", "Incidents", height=420)


def plot_borough_trends(by_year_borough: pd.DataFrame) -> go.Figure:
    fig = px.line(
        by_year_borough,
        x="Year",
        y="count",
        color="borough",
        markers=True,
        title="Yearly Incidents by Borough",
    )
    return _style(fig, "Year", "Incidents", height=420)


def count_to_color(value: float | None, max_value: float) -> List[int]:
    """Yellow-to-red ramp; grey when the borough has no count."""
    if value is None or pd.isna(value) or not max_value or math.isnan(max_value):
        return [160, 160, 160, 90]
    scale = max(min(float(value) / float(max_value), 1.0), 0.0)
    r = 255
    g = int(235 * (1 - scale))
    b = int(120 * (1 - scale))
    return [r, g, b, 140]


def _boundary_features(geojson: Dict, borough_counts: pd.DataFrame) -> Dict:
    counts = dict(zip(borough_counts["borough"], borough_counts["count"]))
    max_count = max(counts.values()) if counts else 0
    shaded = copy.deepcopy(geojson)
    for feature in shaded["features"]:
        props = feature.setdefault("properties", {})
        name = str(props["boro_name"]).strip().title()
        count = counts.get(name)
        props["boro_name"] = name
        props["incidents"] = int(count) if count is not None else 0
        props["label"] = f"{props['incidents']:,} incidents"
        props["fill_color"] = count_to_color(count, max_count)
    return shaded


def _incident_records(incidents: pd.DataFrame) -> List[Dict[str, object]]:
    points = mappable_incidents(incidents).assign(
        occurred=lambda frame: frame["OCCUR_DATE"].dt.strftime("%Y-%m-%d").fillna("date unknown")
    )
    records = []
    for rec in points[
        ["Longitude", "Latitude", "borough", "occurred", "VIC_SEX", "VIC_AGE_GROUP", "is_murder"]
    ].to_dict(orient="records"):
        records.append(
            {
                "longitude": float(rec["Longitude"]),
                "latitude": float(rec["Latitude"]),
                "boro_name": rec["borough"],
                "label": (
                    f"{rec['occurred']} · victim {rec['VIC_SEX']}, "
                    f"{rec['VIC_AGE_GROUP']}" + (" · murder" if rec["is_murder"] else "")
                ),
                "color": MURDER_COLOR if rec["is_murder"] else INCIDENT_COLOR,
            }
        )
    return records


def build_incident_map(
    incidents: pd.DataFrame,
    boundaries: Dict,
    borough_counts: pd.DataFrame,
) -> pdk.Deck:
    """Borough choropleth with one point per incident that has coordinates."""
    choropleth = pdk.Layer(
        "GeoJsonLayer",
        data=_boundary_features(boundaries, borough_counts),
        stroked=True,
        filled=True,
        get_fill_color="properties.fill_color",
        get_line_color=BOUNDARY_LINE_COLOR,
        line_width_min_pixels=1,
        pickable=True,
    )

    scatter = pdk.Layer(
        "ScatterplotLayer",
        data=_incident_records(incidents),
        get_position=["longitude", "latitude"],
        get_fill_color="color",
        get_radius=60,
        radius_min_pixels=1.5,
        radius_max_pixels=8,
        pickable=True,
    )

    tooltip = {
        "html": "<b>{boro_name}</b><br/>{label}",
        "style": {"backgroundColor": "rgba(15,17,22,0.85)", "color": "white"},
    }

    return pdk.Deck(
        layers=[choropleth, scatter],
        initial_view_state=NYC_VIEW,
        tooltip=tooltip,
        map_style="light",
    )
