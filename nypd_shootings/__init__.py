"""Utility package for the NYPD shooting incident report."""

from .data_loader import (  # noqa: F401
    clean_incidents,
    load_borough_boundaries,
    load_incident_data,
    mappable_incidents,
)
from .report import build_report, write_report  # noqa: F401
from .summaries import build_summary_views  # noqa: F401
from .trend import forecast_next_year  # noqa: F401
