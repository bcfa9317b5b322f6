"""
Spreadsheet parsing: bytes + sheet name -> raw records.

Column headers in the published workbook are presentation labels
("People Vaccinated with at least One Dose", "Population\\n12+"), so they are
cleaned to snake_case before anything downstream refers to them. Cell values
are left untouched: only empty cells become missing, so labels such as "NA"
or "null" survive as text. Numeric coercion belongs to the normalizer.
"""

import re
from io import BytesIO
from typing import Iterable, List, Union

import pandas as pd

_NON_ALNUM = re.compile(r"[^0-9a-z]+")


class SheetNotFoundError(ValueError):
    """Raised when the requested sheet is absent from the workbook."""
    pass


def clean_column_name(name) -> str:
    """
    Convert a header label to a machine-readable snake_case name.

    >>> clean_column_name("Population\\n12+")
    'population_12'
    """
    text = str(name).strip().lower()
    text = _NON_ALNUM.sub("_", text)
    return text.strip("_")


def clean_column_names(names: Iterable) -> List[str]:
    """Clean a header row, suffixing repeats (`x`, `x_2`, `x_3`) so names stay unique."""
    cleaned = []
    seen = {}
    for name in names:
        base = clean_column_name(name) or "column"
        count = seen.get(base, 0) + 1
        seen[base] = count
        cleaned.append(base if count == 1 else f"{base}_{count}")
    return cleaned


def parse_sheet(
    content: Union[bytes, BytesIO],
    sheet_name: str,
    header_row: int = 0,
) -> pd.DataFrame:
    """
    Read one sheet of an .xlsx workbook into a DataFrame of raw records.

    Args:
        content: Workbook bytes
        sheet_name: Name of the sheet to read
        header_row: Zero-based row holding the column labels

    Returns:
        DataFrame with cleaned column names and raw (object) cell values.
        Rows that are entirely empty are dropped.

    Raises:
        SheetNotFoundError: If `sheet_name` is not in the workbook
    """
    buffer = BytesIO(content) if isinstance(content, (bytes, bytearray)) else content

    with pd.ExcelFile(buffer, engine="openpyxl") as workbook:
        if sheet_name not in workbook.sheet_names:
            raise SheetNotFoundError(
                f"Sheet '{sheet_name}' not found. Available: {workbook.sheet_names}"
            )
        df = pd.read_excel(
            workbook,
            sheet_name=sheet_name,
            header=header_row,
            dtype=object,
            keep_default_na=False,
            na_values=[""],
        )

    df.columns = clean_column_names(df.columns)
    df = df.dropna(how="all").reset_index(drop=True)

    return df
