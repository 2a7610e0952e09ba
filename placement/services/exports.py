from io import BytesIO
from typing import Any, Dict, Sequence

import pandas as pd
from django.http import HttpResponse
from django.utils.text import get_valid_filename

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SEATING_COLUMNS = ["Roll Number", "Name", "Venue", "Seat"]
ATTENDANCE_COLUMNS = ["Roll Number", "Name", "Email", "Phone", "Status", "Marked At"]


def build_workbook(rows: Sequence[Dict[str, Any]], sheet_name: str, columns: Sequence[str]) -> bytes:
    """Write rows to a single-sheet xlsx workbook. Headers are kept when rows is empty."""
    df = pd.DataFrame(list(rows), columns=list(columns))
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
    return buffer.getvalue()


def export_filename(label: str, suffix: str) -> str:
    name = f"{label}_{suffix}.xlsx" if (label or "").strip() else f"{suffix}.xlsx"
    return get_valid_filename(name)


def workbook_response(rows, sheet_name, columns, filename) -> HttpResponse:
    response = HttpResponse(build_workbook(rows, sheet_name, columns), content_type=XLSX_CONTENT_TYPE)
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response
