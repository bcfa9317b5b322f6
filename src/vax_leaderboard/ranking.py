"""
Dense ranking and top-N selection.

Ranking rules:
- Only rows with a non-missing uptake_ratio are ranked; the rest are dropped
  from the leaderboard without error.
- Rows are ordered by uptake_ratio descending with a stable sort, so ties keep
  their source order from run to run.
- Ranks are dense: equal ratios (at stored precision) share a rank and the
  next distinct ratio gets rank + 1.
- Truncation is by rank, not by row count. Every row with rank <= top_n is
  kept, so ties at the cut-off can return more than top_n rows.
"""

import pandas as pd

from vax_leaderboard.config import DEFAULT_TOP_N, validate_top_n
from vax_leaderboard.schemas import METRIC_SCHEMA, RANKED_SCHEMA, SchemaError, validate_schema

RANK_COLUMN = "rank"
RATIO_COLUMN = "uptake_ratio"


def dense_rank(ratios: pd.Series) -> pd.Series:
    """
    Dense ranks for a Series already sorted by ratio descending.

    The first value gets 1; each following value gets the previous rank if
    it is exactly equal, otherwise the previous rank + 1.
    """
    if ratios.isna().any():
        raise ValueError("dense_rank expects only non-missing ratios")

    changed = ratios.ne(ratios.shift()).astype("int64")
    ranks = changed.cumsum()
    return ranks.astype("Int64")


def rank_top_n(df: pd.DataFrame, top_n: int = DEFAULT_TOP_N) -> pd.DataFrame:
    """
    Rank metric records and keep every row whose dense rank is <= top_n.

    Args:
        df: MetricRecord frame (must carry uptake_ratio)
        top_n: Rank threshold, >= 1

    Returns:
        RankedRecord frame ordered by ascending rank, ties in source order,
        with columns rank, entity_name, vaccinated_count,
        eligible_population, uptake_ratio.

    Raises:
        ConfigError: If top_n is not an integer >= 1
        SchemaError: If the input has not been through derive_uptake_ratio
    """
    validate_top_n(top_n)
    if RATIO_COLUMN not in df.columns:
        raise SchemaError("rank_top_n requires metric records; run derive_uptake_ratio first")
    validate_schema(df, METRIC_SCHEMA, context="rank_top_n")

    rankable = df.loc[df[RATIO_COLUMN].notna(), METRIC_SCHEMA.column_names]

    # mergesort is stable: tied ratios keep their input order
    ordered = rankable.sort_values(RATIO_COLUMN, ascending=False, kind="mergesort")
    ordered = ordered.reset_index(drop=True)

    ordered.insert(0, RANK_COLUMN, dense_rank(ordered[RATIO_COLUMN]))

    ranked = ordered.loc[ordered[RANK_COLUMN] <= top_n, RANKED_SCHEMA.column_names]
    return ranked.reset_index(drop=True)
