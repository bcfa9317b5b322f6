"""
Field normalization and entity filtering.

normalize_records projects each raw record to (entity_name, vaccinated_count,
eligible_population) and coerces the two counts to numbers. A cell that can't
be read as a number becomes NaN for that record only; nothing is dropped here.

filter_entities removes aggregate rows (statewide total, unassigned bucket,
federal program rollups) by exact label match against the configured
exclusion set.
"""

import math
import numbers
import re
from decimal import Decimal
from typing import Any, Iterable

import numpy as np
import pandas as pd

from vax_leaderboard.config import ColumnMapping
from vax_leaderboard.schemas import NORMALIZED_SCHEMA, require_columns

THOUSANDS_SEPARATOR = ","

# "12,345" or "1,234,567.5"; a comma anywhere else is not a thousands separator
_GROUPED_NUMBER = re.compile(r"^[+-]?\d{1,3}(,\d{3})+(\.\d*)?$")


def coerce_numeric(value: Any) -> float:
    """
    Coerce one raw cell to a float, returning NaN instead of raising.

    Numbers pass through unchanged. Text is stripped and well-formed thousands
    separators are removed before parsing ("12,345" -> 12345.0). Blank,
    non-numeric, null, boolean and non-finite values give NaN, as do text forms
    only Python accepts ("1_000") and misplaced commas ("1,2").
    """
    if isinstance(value, bool) or isinstance(value, np.bool_):
        return np.nan

    if isinstance(value, (numbers.Real, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text or "_" in text:
            return np.nan
        if THOUSANDS_SEPARATOR in text:
            if not _GROUPED_NUMBER.match(text):
                return np.nan
            text = text.replace(THOUSANDS_SEPARATOR, "")
        try:
            number = float(text)
        except ValueError:
            return np.nan
    else:
        # None, pd.NA, NaT, dates and anything else
        return np.nan

    return number if math.isfinite(number) else np.nan


def coerce_numeric_series(series: pd.Series) -> pd.Series:
    """Apply coerce_numeric element-wise, returning a float64 Series."""
    return series.map(coerce_numeric).astype("float64")


def _entity_label(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None or pd.isna(value):
        return ""
    return str(value)


def normalize_records(raw: pd.DataFrame, columns: ColumnMapping) -> pd.DataFrame:
    """
    Project raw records to NormalizedRecord columns.

    Args:
        raw: Parsed sheet (one row per source row, raw cell values)
        columns: Which source columns hold the three consumed fields

    Returns:
        New DataFrame with entity_name (str), vaccinated_count (float64) and
        eligible_population (float64), same length and order as `raw`.

    Raises:
        SchemaError: If a mapped source column is absent
    """
    rename_map = columns.as_rename_map()
    require_columns(raw, rename_map.keys(), context="normalize_records")

    normalized = pd.DataFrame(
        {
            "entity_name": raw[columns.entity_name].map(_entity_label).astype(object),
            "vaccinated_count": coerce_numeric_series(raw[columns.vaccinated_count]),
            "eligible_population": coerce_numeric_series(raw[columns.eligible_population]),
        },
        columns=NORMALIZED_SCHEMA.column_names,
    )
    return normalized.reset_index(drop=True)


def filter_entities(df: pd.DataFrame, exclusion_set: Iterable[str]) -> pd.DataFrame:
    """
    Drop rows whose entity_name exactly matches an excluded label.

    Matching is case-sensitive with no trimming: "texas" or "Texas " are
    treated as distinct entities and kept. Survivors keep their order.
    """
    require_columns(df, ["entity_name"], context="filter_entities")

    excluded = set(exclusion_set)
    keep = ~df["entity_name"].isin(list(excluded))
    return df.loc[keep].reset_index(drop=True)


def excluded_entities(df: pd.DataFrame, exclusion_set: Iterable[str]) -> list:
    """Labels from the exclusion set that were actually present in `df`."""
    excluded = set(exclusion_set)
    present = df.loc[df["entity_name"].isin(list(excluded)), "entity_name"]
    return list(dict.fromkeys(present))
