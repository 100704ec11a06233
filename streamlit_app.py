from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd
import streamlit as st

from nypd_shootings.charts import (
    build_incident_map,
    plot_borough_counts,
    plot_borough_trends,
    plot_hourly_pattern,
    plot_monthly_counts,
    plot_victim_sex,
    plot_yearly_trend,
)
from nypd_shootings.data_loader import (
    load_borough_boundaries,
    load_incident_data,
    mappable_incidents,
)
from nypd_shootings.report import SOURCE_NOTE
from nypd_shootings.summaries import build_summary_views
from nypd_shootings.trend import (
    TrendForecast,
    fitted_values,
    forecast_by_borough,
    forecast_next_year,
)


@st.cache_data(show_spinner=False)
def get_data() -> Dict[str, object]:
    return {
        "incidents": load_incident_data(),
        "boundaries": load_borough_boundaries(),
    }


def filter_incidents(
    incidents: pd.DataFrame,
    year_range: Tuple[int, int],
    boroughs: Sequence[str],
) -> pd.DataFrame:
    """Incidents inside the inclusive year range and the selected boroughs."""
    return incidents[
        incidents["Year"].between(*year_range) & incidents["borough"].isin(boroughs)
    ]


def select_year_range(min_year: int, max_year: int) -> Tuple[int, int]:
    # st.slider rejects equal bounds
    if min_year == max_year:
        st.caption(f"Data covers {min_year} only.")
        return min_year, max_year
    return st.slider(
        "Years",
        min_value=min_year,
        max_value=max_year,
        value=(min_year, max_year),
    )


def kpi_metrics(
    incidents: pd.DataFrame,
    yearly: pd.DataFrame,
    forecast: Optional[TrendForecast],
) -> List[Dict[str, object]]:
    """Label/value/delta for each headline metric, in display order."""
    last = yearly.iloc[-1]
    if len(yearly) > 1:
        prior = yearly.iloc[-2]
        year_delta = f"{int(last['count'] - prior['count']):+,} vs {int(prior['Year'])}"
    else:
        year_delta = None
    murders = int(incidents["is_murder"].sum())

    metrics: List[Dict[str, object]] = [
        {"label": "Incidents", "value": f"{len(incidents):,}"},
        {
            "label": f"{int(last['Year'])} incidents",
            "value": f"{int(last['count']):,}",
            "delta": year_delta,
        },
        {
            "label": "Statistical murders",
            "value": f"{murders:,}",
            "delta": f"{murders / len(incidents):.1%} of incidents",
            "delta_color": "off",
        },
    ]
    if forecast is None:
        metrics.append({"label": "Forecast", "value": "n/a"})
    else:
        metrics.append(
            {
                "label": f"{forecast.year} forecast",
                "value": f"{forecast.expected:,.0f}",
                "delta": f"{forecast.annual_change_pct:+.1f}% per year",
                "delta_color": "inverse",
            }
        )
    return metrics


def render_kpis(
    incidents: pd.DataFrame,
    yearly: pd.DataFrame,
    forecast: Optional[TrendForecast],
) -> None:
    metrics = kpi_metrics(incidents, yearly, forecast)
    for col, metric in zip(st.columns(len(metrics)), metrics):
        col.metric(**metric)


def main():
    st.set_page_config(
        page_title="NYPD Shooting Incidents",
        page_icon="📈",
        layout="wide",
        initial_sidebar_state="expanded",
    )
    st.markdown(
        "<style>.main { padding-top: 1.5rem; }</style>",
        unsafe_allow_html=True,
    )

    data = get_data()
    incidents = data["incidents"]
    boundaries = data["boundaries"]

    min_year, max_year = int(incidents["Year"].min()), int(incidents["Year"].max())
    borough_options = sorted(incidents["borough"].unique())

    with st.sidebar:
        st.header("Filters")
        year_range = select_year_range(min_year, max_year)
        selected_boroughs = st.multiselect(
            "Boroughs",
            options=borough_options,
            default=borough_options,
        )
        st.caption(SOURCE_NOTE)

    filtered = filter_incidents(incidents, year_range, selected_boroughs)
    if filtered.empty:
        st.warning("No incidents match the selected filters. Adjust the controls to view data.")
        return

    views = build_summary_views(filtered)
    yearly = views["by_year"]
    try:
        forecast = forecast_next_year(yearly)
        fitted = fitted_values(yearly)
    except ValueError:
        forecast, fitted = None, None

    st.title("NYPD Shooting Incidents")
    st.subheader(f"{year_range[0]}–{year_range[1]} · {', '.join(selected_boroughs)}")
    render_kpis(filtered, yearly, forecast)

    trend_tab, pattern_tab, map_tab = st.tabs(["Trend", "Patterns", "Map"])

    with trend_tab:
        st.plotly_chart(plot_yearly_trend(yearly, fitted, forecast), use_container_width=True)
        if forecast is None:
            st.info("Select at least two years to fit the Poisson trend.")
        else:
            st.caption(
                f"Poisson regression of yearly counts on year. "
                f"{forecast.year} range {forecast.count_lower:,}–{forecast.count_upper:,}; "
                f"Pearson dispersion {forecast.pearson_dispersion:.1f}."
            )
            st.dataframe(
                forecast_by_borough(views["by_year_borough"])[
                    ["borough", "year", "expected", "count_lower", "count_upper", "annual_change_pct"]
                ],
                column_config={
                    "expected": st.column_config.NumberColumn("Expected", format="%.0f"),
                    "annual_change_pct": st.column_config.NumberColumn("Trend %/yr", format="%.1f"),
                },
                use_container_width=True,
                hide_index=True,
            )
        st.plotly_chart(plot_borough_trends(views["by_year_borough"]), use_container_width=True)

    with pattern_tab:
        col1, col2 = st.columns(2)
        with col1:
            st.plotly_chart(plot_monthly_counts(views["by_month"]), use_container_width=True)
            st.plotly_chart(plot_victim_sex(views["by_victim_sex"]), use_container_width=True)
        with col2:
            st.plotly_chart(plot_hourly_pattern(views["by_hour"]), use_container_width=True)
            st.plotly_chart(plot_borough_counts(views["by_borough"]), use_container_width=True)

    with map_tab:
        st.pydeck_chart(
            build_incident_map(filtered, boundaries, views["by_borough"]),
            use_container_width=True,
        )
        mapped = mappable_incidents(filtered)
        st.caption(
            f"{len(mapped):,} of {len(filtered):,} incidents have coordinates. "
            "Boroughs are shaded by incident count; murders are drawn in red."
        )

    with st.expander("Data Quality & Methodology"):
        st.markdown(
            "- **Source refresh:** `scripts/fetch_data.py` downloads the incident CSV and "
            "borough boundaries; every run replaces the previous files.\n"
            "- **Cleaning:** projected coordinates and location descriptors are dropped; "
            "`OCCUR_DATE` is parsed strictly and `(null)` demographics become `UNKNOWN`.\n"
            "- **Forecast:** Poisson GLM of yearly counts on year, extrapolated one year; "
            "the range is a Poisson predictive interval around the 95% mean interval."
        )


if __name__ == "__main__":
    main()
