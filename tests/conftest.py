"""Shared fixtures for leaderboard tests."""

from io import BytesIO

import numpy as np
import pandas as pd
import pytest

from vax_leaderboard.config import LeaderboardConfig
from vax_leaderboard.logging_utils import JSONLLogger

# Header labels as they appear in the published workbook
COUNTY_HEADER = "County Name"
DOSE_HEADER = "People Vaccinated with at least One Dose"
POPULATION_HEADER = "Population\n12+"


@pytest.fixture
def logger(tmp_path):
    """JSONL logger writing into the test's temp directory."""
    lg = JSONLLogger("test_run", log_dir=tmp_path / "logs")
    yield lg
    lg.close()


@pytest.fixture
def config():
    """Config matching the small fixture sheet."""
    return LeaderboardConfig(exclusion_set=("Texas", "Other"))


@pytest.fixture
def raw_records():
    """Parsed-sheet frame: three counties plus two aggregate rows, all cells as text."""
    return pd.DataFrame({
        "county_name": ["Texas", "A", "B", "C", "Other"],
        "people_vaccinated_with_at_least_one_dose": ["350", "100", "50", "200", "12"],
        "population_12": ["3000", "1000", "1000", "1000", "0"],
    })


def make_workbook(sheets):
    """Build .xlsx bytes from a {sheet_name: DataFrame} mapping."""
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name, index=False)
    return buffer.getvalue()


@pytest.fixture
def county_sheet():
    """Sheet laid out like the published 'By County' tab."""
    return pd.DataFrame({
        COUNTY_HEADER: ["Texas", "A", "B", "C", "Federal Pharmacy Retail Vaccination Program",
                        "Other", "D"],
        POPULATION_HEADER: ["3,000", 1000, "1,000", 1000, 0, "--", 500],
        DOSE_HEADER: ["2,350", 100, "50", "200", 1500, 25, "n/a"],
    })


@pytest.fixture
def workbook_bytes(county_sheet):
    """Workbook with the county sheet plus an unrelated notes sheet."""
    notes = pd.DataFrame({"Note": ["Data are provisional"]})
    return make_workbook({"About the Data": notes, "By County": county_sheet})


def metric_frame(ratios, names=None):
    """MetricRecord frame with the given ratios (NaN for unrankable rows)."""
    names = names or [f"County {i}" for i in range(len(ratios))]
    ratios = pd.Series(ratios, dtype="float64")
    return pd.DataFrame({
        "entity_name": pd.Series(names, dtype=object),
        "vaccinated_count": (ratios * 1000).astype("float64"),
        "eligible_population": pd.Series(np.where(ratios.notna(), 1000.0, np.nan), dtype="float64"),
        "uptake_ratio": ratios,
    })
