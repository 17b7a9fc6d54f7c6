"""
Percentage metrics derived from two numeric columns.

Every function returns (numerator / denominator) * 100. A zero or missing
denominator gives NaN for that value instead of raising, so a whole column
can be processed in one pass. Results are not clamped: a population that
receives several vaccine doses per person can exceed 100.
"""
from typing import Any

import numpy as np
import pandas as pd


def _as_float(value: Any):
    if isinstance(value, pd.Series):
        return pd.to_numeric(value, errors="coerce").astype("float64")
    return np.nan if pd.isna(value) else float(value)


def percentage(numerator, denominator):
    """
    Compute (numerator / denominator) * 100.

    Args:
        numerator: Scalar or pandas Series
        denominator: Scalar or pandas Series

    Returns:
        float for scalar inputs, float64 Series otherwise. NaN wherever the
        denominator is zero or missing, or the numerator is missing.
    """
    num = _as_float(numerator)
    den = _as_float(denominator)
    if isinstance(den, pd.Series):
        den = den.replace(0.0, np.nan)
    elif den == 0:
        den = np.nan
    return num / den * 100


def death_percentage(df: pd.DataFrame) -> pd.Series:
    """Likelihood of dying once infected: total_deaths / total_cases."""
    return percentage(df["total_deaths"], df["total_cases"])


def case_percentage(df: pd.DataFrame) -> pd.Series:
    """Share of the population that has been infected."""
    return percentage(df["total_cases"], df["population"])


def vaccination_percentage(df: pd.DataFrame) -> pd.Series:
    """Cumulative doses relative to population."""
    return percentage(df["rolling_count"], df["population"])
