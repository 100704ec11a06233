from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

import pandas as pd


log = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = REPO_ROOT / "data"

INCIDENT_FILE = DATA_DIR / "nypd_shooting_incidents.csv"
BOROUGH_FILE = DATA_DIR / "borough_boundaries.geojson"

DATE_FORMAT = "%m/%d/%Y"

REQUIRED_COLUMNS = (
    "INCIDENT_KEY",
    "OCCUR_DATE",
    "OCCUR_TIME",
    "BORO",
    "VIC_AGE_GROUP",
    "VIC_SEX",
    "VIC_RACE",
    "Latitude",
    "Longitude",
)

# Projected coordinates and location descriptors the report never uses
EXCLUDED_COLUMNS = (
    "X_COORD_CD",
    "Y_COORD_CD",
    "Lon_Lat",
    "JURISDICTION_CODE",
    "LOC_OF_OCCUR_DESC",
    "LOC_CLASSFCTN_DESC",
)

DEMOGRAPHIC_COLUMNS = (
    "PERP_AGE_GROUP",
    "PERP_SEX",
    "PERP_RACE",
    "VIC_AGE_GROUP",
    "VIC_SEX",
    "VIC_RACE",
)

UNKNOWN = "UNKNOWN"


def load_raw_incidents(path: Optional[Path] = None) -> pd.DataFrame:
    """Read the incident CSV exactly as published."""
    data_path = Path(path) if path else INCIDENT_FILE
    if not data_path.exists():
        raise FileNotFoundError(
            f"Incident data not found at {data_path}. Run scripts/fetch_data.py first."
        )

    df = pd.read_csv(data_path, dtype={"INCIDENT_KEY": str}, low_memory=False)
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Incident data is missing expected columns: {missing}")

    log.info("Loaded %s incidents from %s", f"{len(df):,}", data_path)
    return df


def _parse_time_of_day(values: pd.Series) -> pd.Series:
    """Return a timedelta per row; blanks and garbage become NaT."""
    text = values.fillna("").astype(str).str.strip()
    text = text.where(text.str.count(":") != 1, text + ":00")
    return pd.to_timedelta(text.mask(text == ""), errors="coerce")


def _normalize_demographic(values: pd.Series) -> pd.Series:
    cleaned = values.fillna("").astype(str).str.strip().str.upper()
    return cleaned.mask(cleaned.isin(["", "(NULL)", "NULL"]), UNKNOWN)


def clean_incidents(raw: pd.DataFrame) -> pd.DataFrame:
    """
    Drop unused columns and derive the date fields used by every view.

    Rows are never removed here. ``OCCUR_DATE`` is parsed strictly, so a
    missing or malformed date aborts the run instead of becoming NaT.
    """
    df = raw.drop(columns=list(EXCLUDED_COLUMNS), errors="ignore").copy()

    undated = df.loc[df["OCCUR_DATE"].isna(), "INCIDENT_KEY"].tolist()
    if undated:
        raise ValueError(f"Incidents without OCCUR_DATE: {undated}")

    df["OCCUR_DATE"] = pd.to_datetime(df["OCCUR_DATE"], format=DATE_FORMAT)
    time_of_day = _parse_time_of_day(df["OCCUR_TIME"])

    df["Year"] = df["OCCUR_DATE"].dt.year
    df["Month"] = df["OCCUR_DATE"].dt.month
    df["MonthName"] = df["OCCUR_DATE"].dt.strftime("%b")
    df["Hour"] = (time_of_day.dt.total_seconds() // 3600).astype("Int64")
    df["occurred_local"] = df["OCCUR_DATE"] + time_of_day.fillna(pd.Timedelta(0))

    boro = df["BORO"].fillna("").astype(str).str.strip().str.upper()
    df["BORO"] = boro.mask(boro == "", UNKNOWN)
    df["borough"] = df["BORO"].str.title()

    for field in DEMOGRAPHIC_COLUMNS:
        if field in df.columns:
            df[field] = _normalize_demographic(df[field])

    if "STATISTICAL_MURDER_FLAG" in df.columns:
        flag = df["STATISTICAL_MURDER_FLAG"].astype(str).str.strip().str.lower()
        df["is_murder"] = flag.isin(["true", "y", "1"])
    else:
        df["is_murder"] = False

    for col in ("Latitude", "Longitude"):
        df[col] = pd.to_numeric(df[col], errors="coerce")

    log.info(
        "Cleaned %s incidents spanning %s-%s",
        f"{len(df):,}",
        df["Year"].min(),
        df["Year"].max(),
    )
    return df


def load_incident_data(path: Optional[Path] = None) -> pd.DataFrame:
    """Load the incident CSV and return the cleaned frame."""
    return clean_incidents(load_raw_incidents(path))


def mappable_incidents(df: pd.DataFrame) -> pd.DataFrame:
    """Rows with usable coordinates. The upstream file marks a few with 0/0."""
    coords = df[["Latitude", "Longitude"]]
    mask = coords.notna().all(axis=1) & (coords != 0).all(axis=1)
    mapped = df.loc[mask]
    log.info(
        "%s of %s incidents have coordinates", f"{len(mapped):,}", f"{len(df):,}"
    )
    return mapped


def load_borough_boundaries(path: Optional[Path] = None) -> Dict:
    """Load the borough boundary FeatureCollection."""
    data_path = Path(path) if path else BOROUGH_FILE
    if not data_path.exists():
        raise FileNotFoundError(
            f"Borough boundaries not found at {data_path}. Run scripts/fetch_data.py first."
        )

    with open(data_path, encoding="utf-8") as fh:
        geojson = json.load(fh)

    if geojson.get("type") != "FeatureCollection":
        raise ValueError(f"{data_path} is not a GeoJSON FeatureCollection.")
    features = geojson.get("features") or []
    unnamed = [
        idx
        for idx, feature in enumerate(features)
        if not (feature.get("properties") or {}).get("boro_name")
    ]
    if unnamed:
        raise ValueError(f"Borough features without boro_name: {unnamed}")

    log.info("Loaded %d borough boundaries from %s", len(features), data_path)
    return geojson
