"""
Uptake ratio derivation.

uptake_ratio = vaccinated_count / eligible_population, rounded to a fixed
number of decimals. A missing operand, a zero denominator or a quotient
that overflows to infinity gives NaN ("undetermined"), which the ranker later
leaves out. Ratios above 1 happen when the source reports more people
vaccinated than eligible; they are kept as-is.
"""

from typing import Any, Dict

import numpy as np
import pandas as pd

from vax_leaderboard.config import DEFAULT_DECIMAL_PRECISION
from vax_leaderboard.schemas import NORMALIZED_SCHEMA, validate_schema


def derive_uptake_ratio(
    df: pd.DataFrame,
    decimal_precision: int = DEFAULT_DECIMAL_PRECISION,
) -> pd.DataFrame:
    """
    Add an `uptake_ratio` column to a normalized frame.

    Args:
        df: NormalizedRecord frame (post-filter)
        decimal_precision: Decimal places kept in the stored ratio

    Returns:
        New DataFrame, same rows and order, with `uptake_ratio` (float64)
    """
    validate_schema(df, NORMALIZED_SCHEMA, context="derive_uptake_ratio")

    numerator = df["vaccinated_count"]
    denominator = df["eligible_population"]
    computable = numerator.notna() & denominator.notna() & (denominator != 0)

    ratio = pd.Series(np.nan, index=df.index, dtype="float64")
    quotient = (numerator[computable] / denominator[computable]).round(decimal_precision)
    ratio[computable] = quotient.where(np.isfinite(quotient))

    result = df.copy()
    result["uptake_ratio"] = ratio
    return result


def summarize_uptake(df: pd.DataFrame) -> Dict[str, Any]:
    """Diagnostic counts for a MetricRecord frame, for the run log."""
    ratio = df["uptake_ratio"]
    zero_denominator = df["eligible_population"] == 0
    missing_operand = df["vaccinated_count"].isna() | df["eligible_population"].isna()

    return {
        "rows": int(len(df)),
        "rows_rankable": int(ratio.notna().sum()),
        "rows_missing_ratio": int(ratio.isna().sum()),
        "rows_zero_denominator": int(zero_denominator.sum()),
        "rows_missing_operand": int(missing_operand.sum()),
        "rows_over_100_pct": int((ratio > 1).sum()),
        "unrankable_entities": df.loc[ratio.isna(), "entity_name"].tolist(),
        "ratio_min": float(ratio.min()) if ratio.notna().any() else None,
        "ratio_max": float(ratio.max()) if ratio.notna().any() else None,
    }
