"""
Tests for field normalization and entity filtering.

Coverage includes:
- Numeric coercion of text, numbers and garbage
- Projection keeps every record, in order
- Exact, case-sensitive exclusion matching
"""

from decimal import Decimal

import numpy as np
import pandas as pd
import pytest

from vax_leaderboard.config import ColumnMapping
from vax_leaderboard.normalize import (
    coerce_numeric,
    coerce_numeric_series,
    excluded_entities,
    filter_entities,
    normalize_records,
)
from vax_leaderboard.schemas import SchemaError


class TestCoerceNumeric:
    """Tests for coerce_numeric."""

    @pytest.mark.parametrize("raw, expected", [
        ("1000", 1000.0),
        ("  42 ", 42.0),
        ("12,345", 12345.0),
        ("1,234,567.5", 1234567.5),
        ("-3", -3.0),
        ("0", 0.0),
        (7, 7.0),
        (2.5, 2.5),
        (np.int64(9), 9.0),
        (np.float32(1.5), 1.5),
        (Decimal("10.25"), 10.25),
    ])
    def test_valid_values(self, raw, expected):
        assert coerce_numeric(raw) == expected

    @pytest.mark.parametrize("raw", [
        "", "   ", "n/a", "--", "abc", "12abc", None, np.nan, pd.NA, pd.NaT,
        True, False, "inf", float("inf"), "nan", [1], pd.Timestamp("2021-01-01"),
        "1_000", "1,2", "12345,678", ",123", "1,,000",
    ])
    def test_invalid_values_become_missing(self, raw):
        assert np.isnan(coerce_numeric(raw))

    def test_never_raises_on_objects(self):
        assert np.isnan(coerce_numeric(object()))

    @pytest.mark.parametrize("value", [0.0, 1.0, 123456.0, 0.0001, -5.0])
    def test_idempotent_on_numbers(self, value):
        once = coerce_numeric(value)
        assert once == value
        assert coerce_numeric(once) == once

    def test_series_is_float64(self):
        result = coerce_numeric_series(pd.Series(["1", 2, None, "x"], dtype=object))
        assert result.dtype == "float64"
        assert result.iloc[0] == 1.0
        assert result.iloc[1] == 2.0
        assert result.iloc[2:].isna().all()

    def test_series_idempotent(self):
        once = coerce_numeric_series(pd.Series(["1,000", "5", "bad"], dtype=object))
        twice = coerce_numeric_series(once)
        pd.testing.assert_series_equal(once, twice)


class TestNormalizeRecords:
    """Tests for normalize_records."""

    def test_projects_three_fields(self, raw_records):
        result = normalize_records(raw_records, ColumnMapping())
        assert list(result.columns) == ["entity_name", "vaccinated_count", "eligible_population"]

    def test_no_records_dropped(self, raw_records):
        result = normalize_records(raw_records, ColumnMapping())
        assert len(result) == len(raw_records)
        assert result["entity_name"].tolist() == raw_records["county_name"].tolist()

    def test_numeric_fields_coerced(self, raw_records):
        result = normalize_records(raw_records, ColumnMapping())
        assert result["vaccinated_count"].dtype == "float64"
        assert result["eligible_population"].dtype == "float64"
        assert result.loc[1, "vaccinated_count"] == 100.0
        assert result.loc[1, "eligible_population"] == 1000.0

    def test_garbage_is_per_record(self):
        raw = pd.DataFrame({
            "county_name": ["Harris", "Dallas"],
            "people_vaccinated_with_at_least_one_dose": ["n/a", "20"],
            "population_12": ["100", "--"],
        })
        result = normalize_records(raw, ColumnMapping())
        assert np.isnan(result.loc[0, "vaccinated_count"])
        assert result.loc[0, "eligible_population"] == 100.0
        assert result.loc[1, "vaccinated_count"] == 20.0
        assert np.isnan(result.loc[1, "eligible_population"])

    def test_entity_name_copied_verbatim(self):
        raw = pd.DataFrame({
            "county_name": ["  Bexar ", "El Paso", None, 48001],
            "people_vaccinated_with_at_least_one_dose": [1, 2, 3, 4],
            "population_12": [10, 20, 30, 40],
        })
        result = normalize_records(raw, ColumnMapping())
        assert result["entity_name"].tolist() == ["  Bexar ", "El Paso", "", "48001"]
        assert result["entity_name"].notna().all()

    def test_extra_columns_ignored(self, raw_records):
        raw = raw_records.assign(people_fully_vaccinated=["1"] * len(raw_records))
        result = normalize_records(raw, ColumnMapping())
        assert "people_fully_vaccinated" not in result.columns

    def test_custom_mapping(self):
        raw = pd.DataFrame({"region": ["X"], "doses": ["5"], "pop": ["10"]})
        mapping = ColumnMapping(entity_name="region", vaccinated_count="doses",
                                eligible_population="pop")
        result = normalize_records(raw, mapping)
        assert result.loc[0, "entity_name"] == "X"
        assert result.loc[0, "vaccinated_count"] == 5.0

    def test_missing_source_column_raises(self, raw_records):
        with pytest.raises(SchemaError, match="population_12"):
            normalize_records(raw_records.drop(columns=["population_12"]), ColumnMapping())

    def test_input_not_mutated(self, raw_records):
        before = raw_records.copy()
        normalize_records(raw_records, ColumnMapping())
        pd.testing.assert_frame_equal(raw_records, before)


class TestFilterEntities:
    """Tests for filter_entities."""

    @pytest.fixture
    def normalized(self, raw_records):
        return normalize_records(raw_records, ColumnMapping())

    def test_excluded_rows_removed(self, normalized):
        result = filter_entities(normalized, {"Texas", "Other"})
        assert "Texas" not in result["entity_name"].values
        assert "Other" not in result["entity_name"].values

    def test_other_rows_preserved_in_order(self, normalized):
        result = filter_entities(normalized, {"Texas", "Other"})
        assert result["entity_name"].tolist() == ["A", "B", "C"]

    def test_duplicates_preserved_exactly(self):
        df = pd.DataFrame({
            "entity_name": ["A", "Texas", "A", "B"],
            "vaccinated_count": [1.0, 2.0, 3.0, 4.0],
            "eligible_population": [10.0, 10.0, 10.0, 10.0],
        })
        result = filter_entities(df, ["Texas"])
        assert result["entity_name"].tolist() == ["A", "A", "B"]
        assert result["vaccinated_count"].tolist() == [1.0, 3.0, 4.0]

    def test_match_is_exact_and_case_sensitive(self):
        df = pd.DataFrame({
            "entity_name": ["Texas", "texas", "Texas ", "TEXAS", "West Texas"],
            "vaccinated_count": [1.0] * 5,
            "eligible_population": [10.0] * 5,
        })
        result = filter_entities(df, ("Texas",))
        assert result["entity_name"].tolist() == ["texas", "Texas ", "TEXAS", "West Texas"]

    def test_empty_exclusion_set_is_noop(self, normalized):
        result = filter_entities(normalized, ())
        pd.testing.assert_frame_equal(result, normalized)

    def test_exclusion_label_not_in_data(self, normalized):
        result = filter_entities(normalized, {"Federal Long-Term Care Vaccination Program"})
        assert len(result) == len(normalized)

    def test_excluded_entities_reports_present_labels(self, normalized):
        present = excluded_entities(normalized, ["Other", "Texas", "Missing Label"])
        assert present == ["Texas", "Other"]
