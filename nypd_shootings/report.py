"""Standalone HTML rendition of the shooting incident analysis."""

from __future__ import annotations

import html
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
import plotly.graph_objects as go

from .charts import (
    build_incident_map,
    plot_borough_counts,
    plot_borough_trends,
    plot_hourly_pattern,
    plot_monthly_counts,
    plot_victim_sex,
    plot_yearly_trend,
)
from .data_loader import EXCLUDED_COLUMNS, REPO_ROOT, UNKNOWN, mappable_incidents
from .summaries import build_summary_views
from .trend import TrendForecast, fitted_values, forecast_by_borough, forecast_next_year


log = logging.getLogger(__name__)

REPORT_DIR = REPO_ROOT / "reports"
REPORT_FILE = REPORT_DIR / "nypd_shootings_report.html"

SOURCE_NOTE = (
    "Source: NYPD Shooting Incident Data (Historic), NYC Open Data; "
    "borough boundaries from NYC Department of City Planning."
)

DATA_NOTES = (
    "Excluded columns: projected coordinates ({excluded}) and location "
    "descriptors are dropped; no rows are removed during cleaning.",
    "Dates: OCCUR_DATE is parsed strictly as MM/DD/YYYY; a missing or "
    "malformed date stops the run.",
    "Demographics: the upstream (null) marker and blanks are reported as {unknown}.",
    "Map: coordinates that are missing or exactly 0 count as missing and are not drawn.",
    "Forecast: Poisson regression of yearly counts on year, extrapolated one "
    "year; the range is a Poisson predictive interval around the 95% "
    "confidence interval of the mean.",
)

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
body {{ font-family: sans-serif; max-width: 1100px; margin: 2rem auto; color: #222; }}
h1 {{ margin-bottom: 0.2rem; }}
.caption {{ color: #7f8a9c; font-size: 0.85rem; }}
.kpis {{ display: flex; gap: 2rem; margin: 1.5rem 0; }}
.kpi b {{ display: block; font-size: 1.6rem; }}
table {{ border-collapse: collapse; margin: 1rem 0; }}
th, td {{ border-bottom: 1px solid #ddd; padding: 4px 10px; text-align: right; }}
th:first-child, td:first-child {{ text-align: left; }}
iframe {{ width: 100%; height: 560px; border: 0; }}
</style>
</head>
<body>
<h1>{title}</h1>
<div class="caption">Generated {generated} · {source}</div>
{body}
</body>
</html>
"""


def _kpi_block(items: List[tuple]) -> str:
    cells = "".join(
        f'<div class="kpi"><b>{html.escape(value)}</b>{html.escape(label)}</div>'
        for label, value in items
    )
    return f'<div class="kpis">{cells}</div>'


def _figure_html(fig: go.Figure, include_plotlyjs: bool | str) -> str:
    return fig.to_html(full_html=False, include_plotlyjs=include_plotlyjs)


def _forecast_table(overall: TrendForecast, boroughs: pd.DataFrame) -> str:
    table = boroughs[
        ["borough", "expected", "count_lower", "count_upper", "annual_change_pct"]
    ].copy()
    citywide = pd.DataFrame(
        [
            {
                "borough": "Citywide",
                "expected": overall.expected,
                "count_lower": overall.count_lower,
                "count_upper": overall.count_upper,
                "annual_change_pct": overall.annual_change_pct,
            }
        ]
    )
    table = pd.concat([citywide, table], ignore_index=True).rename(
        columns={
            "borough": "Area",
            "expected": f"Expected {overall.year}",
            "count_lower": "Low",
            "count_upper": "High",
            "annual_change_pct": "Trend %/yr",
        }
    )
    return table.to_html(
        index=False,
        border=0,
        float_format=lambda val: f"{val:,.1f}",
    )


def _map_iframe(deck_html: str) -> str:
    return f'<iframe srcdoc="{html.escape(deck_html, quote=True)}"></iframe>'


def _data_notes() -> str:
    items = "".join(
        "<li>{}</li>".format(
            html.escape(
                note.format(excluded=", ".join(EXCLUDED_COLUMNS), unknown=UNKNOWN)
            )
        )
        for note in DATA_NOTES
    )
    return f"<ul>{items}</ul>"


def build_report(
    incidents: pd.DataFrame,
    boundaries: Dict,
    generated_at: Optional[datetime] = None,
    title: str = "NYPD Shooting Incidents",
) -> str:
    """Render every view of the analysis into a single HTML document."""
    if incidents.empty:
        raise ValueError("Incident dataframe is empty.")

    views = build_summary_views(incidents)
    yearly = views["by_year"]
    forecast = forecast_next_year(yearly)
    fitted = fitted_values(yearly)
    borough_forecasts = forecast_by_borough(views["by_year_borough"])

    mapped = mappable_incidents(incidents)
    deck = build_incident_map(incidents, boundaries, views["by_borough"])
    deck_html = deck.to_html(as_string=True, notebook_display=False)

    first_year, last_year = int(yearly["Year"].min()), int(yearly["Year"].max())
    murders = int(incidents["is_murder"].sum())
    kpis = _kpi_block(
        [
            ("Incidents", f"{len(incidents):,}"),
            ("Years covered", f"{first_year}–{last_year}"),
            ("Statistical murders", f"{murders:,} ({murders / len(incidents):.1%})"),
            (
                f"{forecast.year} forecast",
                f"{forecast.expected:,.0f} ({forecast.count_lower:,}–{forecast.count_upper:,})",
            ),
        ]
    )

    sections = [
        kpis,
        "<h2>When do shootings happen?</h2>",
        _figure_html(plot_monthly_counts(views["by_month"]), "cdn"),
        _figure_html(plot_hourly_pattern(views["by_hour"]), False),
        "<h2>Trend and one-year extrapolation</h2>",
        _figure_html(plot_yearly_trend(yearly, fitted, forecast), False),
        (
            '<p class="caption">Poisson regression of yearly counts on year. '
            f"Estimated change {forecast.annual_change_pct:+.1f}% per year; "
            f"Pearson dispersion {forecast.pearson_dispersion:.1f} "
            "(values well above 1 mean the interval is too narrow).</p>"
        ),
        _forecast_table(forecast, borough_forecasts),
        _figure_html(plot_borough_trends(views["by_year_borough"]), False),
        "<h2>Who and where</h2>",
        _figure_html(plot_victim_sex(views["by_victim_sex"]), False),
        _figure_html(plot_borough_counts(views["by_borough"]), False),
        _map_iframe(deck_html),
        (
            f'<p class="caption">{len(mapped):,} of {len(incidents):,} incidents '
            "have coordinates and are drawn on the map; murders are shown in red.</p>"
        ),
        "<h2>Data notes</h2>",
        _data_notes(),
    ]

    generated = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M")
    return PAGE_TEMPLATE.format(
        title=html.escape(title),
        generated=generated,
        source=html.escape(SOURCE_NOTE),
        body="\n".join(sections),
    )


def write_report(report_html: str, path: Optional[Path] = None) -> Path:
    output = Path(path) if path else REPORT_FILE
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(report_html, encoding="utf-8")
    log.info("Wrote report to %s", output)
    return output
