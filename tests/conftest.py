from typing import Dict, List

import numpy as np
import pandas as pd
import pytest

from nypd_shootings.data_loader import clean_incidents


BOROUGHS = ["BRONX", "BROOKLYN", "MANHATTAN", "QUEENS", "STATEN ISLAND"]
YEARLY_COUNTS = {2019: 10, 2020: 14, 2021: 20, 2022: 28}


def _raw_rows() -> List[Dict[str, object]]:
    rows: List[Dict[str, object]] = []
    key = 100000
    for year, count in YEARLY_COUNTS.items():
        for idx in range(count):
            key += 1
            month = (idx % 12) + 1
            day = (idx % 27) + 1
            missing_coords = idx % 9 == 0
            rows.append(
                {
                    "INCIDENT_KEY": str(key),
                    "OCCUR_DATE": f"{month:02d}/{day:02d}/{year}",
                    "OCCUR_TIME": f"{(idx * 5) % 24:02d}:{idx % 60:02d}:00",
                    "BORO": BOROUGHS[idx % len(BOROUGHS)],
                    "LOC_OF_OCCUR_DESC": "OUTSIDE",
                    "PRECINCT": 40 + idx % 5,
                    "JURISDICTION_CODE": 0,
                    "LOC_CLASSFCTN_DESC": "STREET",
                    "LOCATION_DESC": "(null)" if idx % 4 == 0 else "GROCERY/BODEGA",
                    "STATISTICAL_MURDER_FLAG": "true" if idx % 5 == 0 else "false",
                    "PERP_AGE_GROUP": "(null)" if idx % 3 == 0 else "18-24",
                    "PERP_SEX": "(null)" if idx % 3 == 0 else "M",
                    "PERP_RACE": np.nan if idx % 3 == 0 else "BLACK",
                    "VIC_AGE_GROUP": "25-44",
                    "VIC_SEX": ["M", "M", "F", "U"][idx % 4],
                    "VIC_RACE": "BLACK HISPANIC",
                    "X_COORD_CD": 1000000.0,
                    "Y_COORD_CD": 200000.0,
                    "Latitude": np.nan if missing_coords else 40.60 + idx * 0.001,
                    "Longitude": np.nan if missing_coords else -73.95 - idx * 0.001,
                    "Lon_Lat": None if missing_coords else "POINT (-73.95 40.6)",
                }
            )
    return rows


@pytest.fixture
def raw_incidents() -> pd.DataFrame:
    return pd.DataFrame(_raw_rows())


@pytest.fixture
def incidents(raw_incidents: pd.DataFrame) -> pd.DataFrame:
    return clean_incidents(raw_incidents)


def _square(lon: float, lat: float, size: float = 0.05) -> List[List[List[float]]]:
    return [
        [
            [lon, lat],
            [lon + size, lat],
            [lon + size, lat + size],
            [lon, lat + size],
            [lon, lat],
        ]
    ]


@pytest.fixture
def boundaries() -> Dict:
    names = ["Bronx", "Brooklyn", "Manhattan", "Queens", "Staten Island"]
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"boro_code": str(code), "boro_name": name},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": _square(-74.0 + code * 0.1, 40.6),
                },
            }
            for code, name in enumerate(names, start=1)
        ],
    }


@pytest.fixture
def yearly_counts() -> Dict[int, int]:
    return dict(YEARLY_COUNTS)
