# placement/utils/excel_parser.py

import logging

import pandas as pd

logger = logging.getLogger(__name__)


def _sanitize_dataframe(df):
    """Drop fully empty rows and replace NaN with None."""
    df = df.dropna(how="all")
    df = df.astype(object)
    return df.where(pd.notna(df), None)


def parse_roster_file(file):
    """
    Read the first sheet of an uploaded workbook into row dicts keyed by the
    header row, preserving sheet order.

    Unreadable workbooks and sheets without data rows yield an empty list so
    callers can report "no valid rows" instead of a parse failure.
    """
    filename = getattr(file, "name", "uploaded_file")
    if hasattr(file, "seek"):
        file.seek(0)

    try:
        df = pd.read_excel(file, sheet_name=0, dtype=str)
    except Exception as exc:
        logger.warning("Could not read roster workbook %s: %s", filename, exc)
        return []

    df.columns = [str(col) for col in df.columns]
    df = _sanitize_dataframe(df)
    return df.to_dict(orient="records")
