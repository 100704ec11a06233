import json

import numpy as np
import pandas as pd
import pytest

from nypd_shootings.data_loader import (
    EXCLUDED_COLUMNS,
    UNKNOWN,
    clean_incidents,
    load_borough_boundaries,
    load_incident_data,
    load_raw_incidents,
    mappable_incidents,
)


def test_clean_keeps_every_row_and_drops_excluded_columns(raw_incidents):
    cleaned = clean_incidents(raw_incidents)
    assert len(cleaned) == len(raw_incidents)
    assert not set(EXCLUDED_COLUMNS) & set(cleaned.columns)


def test_clean_ignores_excluded_columns_that_are_absent(raw_incidents):
    trimmed = raw_incidents.drop(columns=["Lon_Lat", "JURISDICTION_CODE"])
    cleaned = clean_incidents(trimmed)
    assert len(cleaned) == len(trimmed)


def test_every_non_null_date_is_parsed(raw_incidents):
    cleaned = clean_incidents(raw_incidents)
    non_null = raw_incidents["OCCUR_DATE"].notna()
    assert cleaned.loc[non_null, "OCCUR_DATE"].notna().all()
    assert pd.api.types.is_datetime64_any_dtype(cleaned["OCCUR_DATE"])


def test_malformed_date_aborts(raw_incidents):
    broken = raw_incidents.copy()
    broken.loc[0, "OCCUR_DATE"] = "2021-13-45"
    with pytest.raises(ValueError):
        clean_incidents(broken)


def test_missing_date_aborts_with_incident_keys(raw_incidents):
    broken = raw_incidents.copy()
    broken.loc[0, "OCCUR_DATE"] = np.nan
    with pytest.raises(ValueError, match=str(broken.loc[0, "INCIDENT_KEY"])):
        clean_incidents(broken)


def test_derived_date_fields(incidents):
    first = incidents.iloc[0]
    assert first["Year"] == 2019
    assert first["Month"] == 1
    assert first["MonthName"] == "Jan"
    assert first["Hour"] == 0
    assert incidents["Year"].min() == 2019
    assert incidents["Year"].max() == 2022


def test_occurred_local_combines_date_and_time(raw_incidents):
    raw = raw_incidents.copy()
    raw.loc[0, "OCCUR_DATE"] = "07/04/2021"
    raw.loc[0, "OCCUR_TIME"] = "23:15:30"
    raw.loc[1, "OCCUR_TIME"] = np.nan
    raw.loc[2, "OCCUR_TIME"] = "08:05"
    cleaned = clean_incidents(raw)
    assert cleaned.loc[0, "occurred_local"] == pd.Timestamp("2021-07-04 23:15:30")
    assert pd.isna(cleaned.loc[1, "Hour"])
    assert cleaned.loc[1, "occurred_local"] == cleaned.loc[1, "OCCUR_DATE"]
    assert cleaned.loc[2, "Hour"] == 8


def test_demographic_null_sentinels_become_unknown(incidents):
    assert (incidents["PERP_SEX"] == UNKNOWN).any()
    assert (incidents["PERP_RACE"] == UNKNOWN).any()
    assert not incidents["PERP_RACE"].isin(["(null)", "(NULL)"]).any()
    assert incidents["PERP_RACE"].notna().all()


def test_borough_and_murder_flag(incidents):
    assert set(incidents["borough"]) == {
        "Bronx",
        "Brooklyn",
        "Manhattan",
        "Queens",
        "Staten Island",
    }
    assert incidents["is_murder"].dtype == bool
    assert incidents["is_murder"].any()
    assert not incidents["is_murder"].all()


def test_boolean_murder_flag_from_csv(raw_incidents):
    raw = raw_incidents.copy()
    raw["STATISTICAL_MURDER_FLAG"] = raw["STATISTICAL_MURDER_FLAG"] == "true"
    cleaned = clean_incidents(raw)
    assert cleaned["is_murder"].sum() == raw["STATISTICAL_MURDER_FLAG"].sum()


def test_mappable_excludes_missing_and_zero_coordinates(incidents):
    data = incidents.copy()
    data.loc[data.index[1], "Latitude"] = 0.0
    mapped = mappable_incidents(data)
    assert mapped[["Latitude", "Longitude"]].notna().all().all()
    assert (mapped[["Latitude", "Longitude"]] != 0).all().all()
    missing = data[["Latitude", "Longitude"]].isna().any(axis=1)
    assert not mapped.index.isin(data.index[missing]).any()
    assert len(mapped) == len(data) - missing.sum() - 1


def test_load_incident_data_round_trip(tmp_path, raw_incidents):
    path = tmp_path / "incidents.csv"
    raw_incidents.to_csv(path, index=False)
    loaded = load_incident_data(path)
    assert len(loaded) == len(raw_incidents)
    assert loaded["INCIDENT_KEY"].iloc[0] == raw_incidents["INCIDENT_KEY"].iloc[0]


def test_missing_incident_file_points_to_fetch_script(tmp_path):
    with pytest.raises(FileNotFoundError, match="fetch_data.py"):
        load_raw_incidents(tmp_path / "nope.csv")


def test_missing_required_columns(tmp_path, raw_incidents):
    path = tmp_path / "incidents.csv"
    raw_incidents.drop(columns=["VIC_SEX"]).to_csv(path, index=False)
    with pytest.raises(ValueError, match="VIC_SEX"):
        load_raw_incidents(path)


def test_load_borough_boundaries(tmp_path, boundaries):
    path = tmp_path / "boroughs.geojson"
    path.write_text(json.dumps(boundaries))
    loaded = load_borough_boundaries(path)
    assert len(loaded["features"]) == 5


def test_borough_boundaries_must_be_named(tmp_path, boundaries):
    boundaries["features"][2]["properties"].pop("boro_name")
    path = tmp_path / "boroughs.geojson"
    path.write_text(json.dumps(boundaries))
    with pytest.raises(ValueError, match="boro_name"):
        load_borough_boundaries(path)


def test_borough_boundaries_must_be_feature_collection(tmp_path):
    path = tmp_path / "boroughs.geojson"
    path.write_text(json.dumps({"type": "Feature"}))
    with pytest.raises(ValueError):
        load_borough_boundaries(path)
