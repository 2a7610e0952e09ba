import math
import re

from .equivalents import ROSTER_COLUMNS

# Scanners can append CR/LF or other control characters to the decoded text.
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def clean_cell(value):
    """Render a spreadsheet cell as trimmed text, or None when it is blank."""
    if value is None:
        return None
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer():
            value = int(value)
    text = _CONTROL_CHARS.sub("", str(value)).strip()
    return text or None


def extract_field(row, field):
    """Return the first non-empty value among the accepted spellings of field."""
    for column in ROSTER_COLUMNS[field]:
        value = clean_cell(row.get(column))
        if value is not None:
            return value
    return None


def map_roster_row(row):
    return {field: extract_field(row, field) for field in ROSTER_COLUMNS}
