import logging
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings

from placement.exceptions import NotFoundError, StorageError, ValidationError
from placement.utils.column_mapper import map_roster_row
from placement.utils.equivalents import REQUIRED_ROSTER_FIELDS
from placement.utils.excel_parser import parse_roster_file

logger = logging.getLogger(__name__)

NO_VALID_ROWS_MESSAGE = (
    "No valid data found in the Excel file. "
    "Make sure columns 'roll_number' and 'name' exist."
)


def build_roster_records(rows: Iterable[Dict[str, Any]], test_id) -> Dict[str, Any]:
    """
    Turn parsed sheet rows into applicant records for one test.

    Rows missing a roll number or name are skipped. Repeated roll numbers keep
    the last occurrence, but the record stays at the position where the roll
    number first appeared.
    """
    total = 0
    skipped = 0
    valid = 0
    by_roll: Dict[str, Dict[str, Any]] = {}

    for row in rows:
        total += 1
        mapped = map_roster_row(row)
        if any(mapped[field] is None for field in REQUIRED_ROSTER_FIELDS):
            skipped += 1
            continue
        valid += 1
        by_roll[mapped["roll_number"]] = {
            "test_id": test_id,
            "roll_number": mapped["roll_number"],
            "name": mapped["name"],
            "email": mapped["email"],
            "phone": mapped["phone"],
        }

    records = list(by_roll.values())
    return {
        "records": records,
        "total_rows": total,
        "valid_rows": valid,
        "skipped": skipped,
        "duplicates_removed": valid - len(records),
    }


def _upload_message(count: int, duplicates: int) -> str:
    message = f"{count} applicants uploaded/updated successfully"
    if duplicates:
        message += f" ({duplicates} duplicates removed)"
    return message


def import_roster(
    gateway,
    test_id,
    upload,
    *,
    file_name: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Import an applicant roster spreadsheet into a test.

    ``upload`` is either a file-like workbook or an already parsed list of row
    dicts. Existing applicants (same test and roll number) get their name,
    email and phone refreshed; new roll numbers are inserted. The data store is
    not contacted when the file has no usable rows.
    """
    if isinstance(upload, list):
        rows: List[Dict[str, Any]] = upload
    else:
        rows = parse_roster_file(upload)
        file_name = file_name or getattr(upload, "name", None)

    max_rows = getattr(settings, "PLACEMENT_MAX_UPLOAD_ROWS", None)
    if max_rows and len(rows) > max_rows:
        raise ValidationError(
            f"The file has {len(rows)} rows; at most {max_rows} can be uploaded at once."
        )

    batch = build_roster_records(rows, test_id)
    records = batch["records"]
    if not records:
        raise ValidationError(NO_VALID_ROWS_MESSAGE)

    if not gateway.select("tests", {"id": test_id}, fields=["id"]):
        raise NotFoundError("Test not found.")

    counts = gateway.upsert(
        "applicants",
        records,
        conflict_keys=("test_id", "roll_number"),
        update_fields=("name", "email", "phone"),
    )

    audit_logged = True
    try:
        gateway.insert(
            "roster_uploads",
            [
                {
                    "file_name": file_name or "uploaded_file",
                    "test_id": test_id,
                    "uploaded_by_id": gateway.current_user(),
                    "records_created": counts["created"],
                    "records_updated": counts["updated"],
                    "duplicates_removed": batch["duplicates_removed"],
                    "rows_skipped": batch["skipped"],
                }
            ],
        )
    except StorageError as exc:
        audit_logged = False
        logger.warning(
            "Roster for test %s imported but the upload log was not written: %s",
            test_id,
            exc.message,
        )

    logger.info(
        "Imported roster for test %s: %s created, %s updated, %s duplicates, %s skipped",
        test_id,
        counts["created"],
        counts["updated"],
        batch["duplicates_removed"],
        batch["skipped"],
    )

    return {
        "total_rows": batch["total_rows"],
        "valid_rows": batch["valid_rows"],
        "skipped": batch["skipped"],
        "duplicates_removed": batch["duplicates_removed"],
        "upserted": len(records),
        "created": counts["created"],
        "updated": counts["updated"],
        "message": _upload_message(len(records), batch["duplicates_removed"]),
        "audit_logged": audit_logged,
    }
