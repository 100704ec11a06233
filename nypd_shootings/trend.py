from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields
from typing import Dict, List

import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf
from scipy.stats import poisson


@dataclass(frozen=True)
class TrendForecast:
    year: int
    expected: float
    mean_lower: float
    mean_upper: float
    count_lower: int
    count_upper: int
    annual_change_pct: float
    pearson_dispersion: float
    observed_years: int

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def _validate_series(yearly: pd.DataFrame) -> pd.DataFrame:
    if len(yearly) < 2:
        raise ValueError("At least two years of counts are needed to fit a trend.")
    if yearly["count"].sum() <= 0:
        raise ValueError("Yearly counts are all zero; nothing to fit.")
    return yearly[["Year", "count"]].astype({"Year": int, "count": int})


def fit_yearly_trend(yearly: pd.DataFrame):
    """Fit ``count ~ Year`` as a Poisson GLM with a log link."""
    data = _validate_series(yearly)
    return smf.glm("count ~ Year", data=data, family=sm.families.Poisson()).fit()


def fitted_values(yearly: pd.DataFrame) -> pd.DataFrame:
    """Observed yearly counts alongside the model's fitted mean."""
    result = fit_yearly_trend(yearly)
    fitted = yearly[["Year", "count"]].copy()
    fitted["fitted"] = result.fittedvalues.to_numpy()
    return fitted


def forecast_next_year(yearly: pd.DataFrame, alpha: float = 0.05) -> TrendForecast:
    """
    Extrapolate the fitted trend one year past the last observed year.

    ``mean_lower``/``mean_upper`` bound the expected count (GLM confidence
    interval); ``count_lower``/``count_upper`` widen that to a Poisson
    predictive interval for the count that will actually be recorded.
    """
    result = fit_yearly_trend(yearly)
    next_year = int(yearly["Year"].max()) + 1

    prediction = result.get_prediction(pd.DataFrame({"Year": [next_year]}))
    frame = prediction.summary_frame(alpha=alpha)
    expected = float(frame["mean"].iloc[0])
    mean_lower = float(frame["mean_ci_lower"].iloc[0])
    mean_upper = float(frame["mean_ci_upper"].iloc[0])

    tail = alpha / 2
    count_lower = int(poisson.ppf(tail, mean_lower))
    count_upper = int(poisson.ppf(1 - tail, mean_upper))

    slope = float(result.params["Year"])
    dispersion = (
        float(result.pearson_chi2 / result.df_resid) if result.df_resid > 0 else math.nan
    )

    return TrendForecast(
        year=next_year,
        expected=expected,
        mean_lower=mean_lower,
        mean_upper=mean_upper,
        count_lower=count_lower,
        count_upper=count_upper,
        annual_change_pct=(math.exp(slope) - 1) * 100,
        pearson_dispersion=dispersion,
        observed_years=len(yearly),
    )


def forecast_by_borough(by_year_borough: pd.DataFrame, alpha: float = 0.05) -> pd.DataFrame:
    """One forecast row per borough with enough history to fit."""
    rows: List[Dict[str, object]] = []
    for borough, group in by_year_borough.groupby("borough"):
        if (group["count"] > 0).sum() < 2:
            continue
        forecast = forecast_next_year(group.sort_values("Year"), alpha=alpha)
        rows.append({"borough": borough, **forecast.to_dict()})

    columns = ["borough", *(field.name for field in fields(TrendForecast))]
    return pd.DataFrame(rows, columns=columns)
