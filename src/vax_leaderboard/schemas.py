"""
Schema validation for pipeline stages.

Only the fields the leaderboard consumes are validated:
- the three mapped source columns must exist in the parsed sheet
- each stage's frame carries its expected columns and dtypes
- schema drift is an immediate local failure (SchemaError)
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import pandas as pd


# =============================================================================
# Schema Definition
# =============================================================================

@dataclass
class ColumnSpec:
    """Specification for a single column."""
    name: str
    dtype: Optional[str] = None  # "Int64", "float64" or "object"
    nullable: bool = True
    min_value: Optional[float] = None


@dataclass
class Schema:
    """Schema specification for a pipeline-stage DataFrame."""
    name: str
    columns: List[ColumnSpec]
    required_columns: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.required_columns:
            self.required_columns = [c.name for c in self.columns]

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]


class SchemaError(Exception):
    """Raised when schema validation fails."""
    pass


# =============================================================================
# Stage Schemas
# =============================================================================

NORMALIZED_SCHEMA = Schema(
    name="normalized",
    columns=[
        ColumnSpec("entity_name", dtype="object", nullable=False),
        ColumnSpec("vaccinated_count", dtype="float64"),
        ColumnSpec("eligible_population", dtype="float64"),
    ],
)

METRIC_SCHEMA = Schema(
    name="metric",
    columns=NORMALIZED_SCHEMA.columns + [
        ColumnSpec("uptake_ratio", dtype="float64"),
    ],
)

# Ranked rows always have a ratio, hence both operands
RANKED_SCHEMA = Schema(
    name="ranked",
    columns=[
        ColumnSpec("rank", dtype="Int64", nullable=False, min_value=1),
        ColumnSpec("entity_name", dtype="object", nullable=False),
        ColumnSpec("vaccinated_count", dtype="float64", nullable=False),
        ColumnSpec("eligible_population", dtype="float64", nullable=False),
        ColumnSpec("uptake_ratio", dtype="float64", nullable=False),
    ],
)


# =============================================================================
# Validation Functions
# =============================================================================

def require_columns(
    df: pd.DataFrame,
    columns: Iterable[str],
    context: str = "",
) -> None:
    """
    Raise SchemaError if any of `columns` is absent from `df`.

    Args:
        df: DataFrame to check
        columns: Column names that must be present
        context: Optional context for error messages
    """
    missing = [c for c in columns if c not in df.columns]
    if missing:
        ctx = f" ({context})" if context else ""
        raise SchemaError(
            f"Missing required columns: {missing}{ctx}. "
            f"Available: {list(df.columns)}"
        )


def validate_column(df: pd.DataFrame, spec: ColumnSpec) -> List[str]:
    """
    Validate a single column against its specification.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []
    col_name = spec.name

    if col_name not in df.columns:
        errors.append(f"Missing column: {col_name}")
        return errors

    col = df[col_name]

    if spec.dtype == "Int64":
        if not pd.api.types.is_integer_dtype(col):
            errors.append(f"Column {col_name}: expected Int64, got {col.dtype}")
    elif spec.dtype == "float64":
        if not pd.api.types.is_float_dtype(col):
            errors.append(f"Column {col_name}: expected float64, got {col.dtype}")
    elif spec.dtype == "object":
        if pd.api.types.is_numeric_dtype(col):
            errors.append(f"Column {col_name}: expected text, got {col.dtype}")

    if not spec.nullable and col.isna().any():
        na_count = col.isna().sum()
        errors.append(f"Column {col_name}: {na_count} NA values not allowed")

    if spec.min_value is not None:
        below_min = (col < spec.min_value) & col.notna()
        if below_min.any():
            errors.append(f"Column {col_name}: values below min {spec.min_value}")

    return errors


def validate_schema(
    df: pd.DataFrame,
    schema: Schema,
    context: str = "",
    raise_on_error: bool = True,
) -> List[str]:
    """
    Validate a DataFrame against a stage schema.

    Args:
        df: DataFrame to validate
        schema: Schema specification
        context: Optional context for error messages
        raise_on_error: If True, raise SchemaError on validation failure

    Returns:
        List of error messages (empty if valid)

    Raises:
        SchemaError: If raise_on_error=True and validation fails
    """
    errors = []
    ctx = f" ({context})" if context else ""

    missing = [c for c in schema.required_columns if c not in df.columns]
    if missing:
        errors.append(f"Missing required columns: {missing}{ctx}")

    for col_spec in schema.columns:
        if col_spec.name in missing:
            continue
        errors.extend(validate_column(df, col_spec))

    if errors and raise_on_error:
        raise SchemaError(f"Schema validation failed for '{schema.name}':\n" + "\n".join(errors))

    return errors
