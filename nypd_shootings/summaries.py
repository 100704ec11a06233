from __future__ import annotations

import calendar
from typing import Dict

import pandas as pd


MONTH_LABELS = [calendar.month_abbr[m] for m in range(1, 13)]


def _require_rows(df: pd.DataFrame) -> None:
    if df.empty:
        raise ValueError("Incident dataframe is empty.")


def count_by_month(df: pd.DataFrame) -> pd.DataFrame:
    """Incidents per calendar month, pooled across years."""
    _require_rows(df)
    counts = (
        df.groupby("Month")
        .size()
        .reindex(range(1, 13), fill_value=0)
        .rename("count")
        .rename_axis("Month")
        .reset_index()
    )
    counts.insert(1, "MonthName", MONTH_LABELS)
    return counts


def count_by_year(df: pd.DataFrame) -> pd.DataFrame:
    """Incidents and murders per year; years without incidents appear as 0."""
    _require_rows(df)
    grouped = df.groupby("Year").agg(
        count=("INCIDENT_KEY", "size"),
        murders=("is_murder", "sum"),
    )
    years = range(int(grouped.index.min()), int(grouped.index.max()) + 1)
    yearly = grouped.reindex(years, fill_value=0).rename_axis("Year").reset_index()
    yearly["murders"] = yearly["murders"].astype(int)
    return yearly


def count_by_victim_sex(df: pd.DataFrame) -> pd.DataFrame:
    _require_rows(df)
    counts = (
        df.groupby("VIC_SEX")
        .size()
        .rename("count")
        .reset_index()
        .sort_values(["count", "VIC_SEX"], ascending=[False, True])
        .reset_index(drop=True)
    )
    counts["share"] = counts["count"] / counts["count"].sum()
    return counts


def count_by_borough(df: pd.DataFrame) -> pd.DataFrame:
    _require_rows(df)
    return (
        df.groupby("borough")
        .agg(count=("INCIDENT_KEY", "size"), murders=("is_murder", "sum"))
        .reset_index()
        .astype({"murders": int})
        .sort_values("count", ascending=False)
        .reset_index(drop=True)
    )


def count_by_year_and_borough(df: pd.DataFrame) -> pd.DataFrame:
    """Long-format year x borough counts with every combination present."""
    _require_rows(df)
    years = range(int(df["Year"].min()), int(df["Year"].max()) + 1)
    boroughs = sorted(df["borough"].unique())
    full_index = pd.MultiIndex.from_product([years, boroughs], names=["Year", "borough"])
    return (
        df.groupby(["Year", "borough"])
        .size()
        .rename("count")
        .reindex(full_index, fill_value=0)
        .reset_index()
    )


def count_by_hour(df: pd.DataFrame) -> pd.DataFrame:
    """Hour-of-day pattern; rows without a usable time are left out."""
    _require_rows(df)
    timed = df.dropna(subset=["Hour"])
    return (
        timed.groupby(timed["Hour"].astype(int))
        .size()
        .reindex(range(24), fill_value=0)
        .rename("count")
        .rename_axis("Hour")
        .reset_index()
    )


def build_summary_views(df: pd.DataFrame) -> Dict[str, pd.DataFrame]:
    """Return every grouping the report and the dashboard draw from."""
    _require_rows(df)
    return {
        "by_month": count_by_month(df),
        "by_year": count_by_year(df),
        "by_victim_sex": count_by_victim_sex(df),
        "by_borough": count_by_borough(df),
        "by_year_borough": count_by_year_and_borough(df),
        "by_hour": count_by_hour(df),
    }
