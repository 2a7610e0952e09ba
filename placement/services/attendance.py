import logging
from typing import Any, Dict, List, Optional

from django.utils import timezone

from placement.exceptions import AlreadyMarkedError, ConflictError, NotFoundError, ValidationError
from placement.models import AttendanceStatus
from placement.utils.column_mapper import clean_cell

logger = logging.getLogger(__name__)

MISSING_INPUT_MESSAGE = "Please select a test and enter roll number"
NOT_FOUND_MESSAGE = "Student not found: no applicant with this roll number for the selected test"
ALREADY_MARKED_MESSAGE = "Attendance already recorded for this student"
MARKED_MESSAGE = "Attendance marked successfully"


def _existing_record(gateway, applicant_id, test_id) -> Optional[Dict[str, Any]]:
    rows = gateway.select(
        "attendance",
        {"applicant_id": applicant_id, "test_id": test_id},
        fields=["id", "status", "marked_at"],
    )
    return rows[0] if rows else None


def mark_attendance(gateway, test_id, roll_number, *, marked_by=None) -> Dict[str, Any]:
    """
    Record an applicant of ``test_id`` as present.

    ``roll_number`` may come from manual entry or a scanned barcode; it is
    trimmed and stripped of control characters before lookup. Marking is
    idempotent: a second mark for the same applicant raises
    ``AlreadyMarkedError`` whether it is caught by the lookup or by the
    store's uniqueness constraint.
    """
    roll = clean_cell(roll_number)
    if test_id in (None, "") or roll is None:
        raise ValidationError(MISSING_INPUT_MESSAGE)

    matches = gateway.select(
        "applicants",
        {"test_id": test_id, "roll_number": roll},
        fields=["id", "roll_number", "name", "seat_number", "venue__name"],
    )
    if not matches:
        raise NotFoundError(NOT_FOUND_MESSAGE)
    applicant = matches[0]

    existing = _existing_record(gateway, applicant["id"], test_id)
    if existing:
        raise AlreadyMarkedError(ALREADY_MARKED_MESSAGE, record=existing)

    if marked_by is None:
        marked_by = gateway.current_user()

    try:
        created = gateway.insert(
            "attendance",
            [
                {
                    "applicant_id": applicant["id"],
                    "test_id": test_id,
                    "status": AttendanceStatus.PRESENT.value,
                    "marked_by_id": marked_by,
                    "marked_at": timezone.now(),
                }
            ],
        )
    except ConflictError:
        logger.info("Attendance for %s on test %s was marked concurrently", roll, test_id)
        raise AlreadyMarkedError(
            ALREADY_MARKED_MESSAGE,
            record=_existing_record(gateway, applicant["id"], test_id),
        ) from None

    record = created[0]
    logger.info("Marked %s present for test %s", roll, test_id)
    return {
        "id": record["id"],
        "applicant_id": applicant["id"],
        "roll_number": applicant["roll_number"],
        "name": applicant["name"],
        "attendance_status": record["status"],
        "marked_at": record["marked_at"],
        "venue": applicant.get("venue__name"),
        "seat_number": applicant.get("seat_number"),
        "message": MARKED_MESSAGE,
    }


def attendance_export_rows(gateway, test_id) -> List[Dict[str, Any]]:
    """Attendance of a test as spreadsheet rows, in marking order."""
    records = gateway.select(
        "attendance",
        {"test_id": test_id},
        order=["marked_at", "id"],
        fields=[
            "applicant__roll_number",
            "applicant__name",
            "applicant__email",
            "applicant__phone",
            "status",
            "marked_at",
        ],
    )
    rows = []
    for record in records:
        marked_at = record.get("marked_at")
        if marked_at is not None:
            marked_at = timezone.localtime(marked_at).strftime("%Y-%m-%d %H:%M:%S")
        rows.append(
            {
                "Roll Number": record["applicant__roll_number"],
                "Name": record["applicant__name"],
                "Email": record.get("applicant__email") or "",
                "Phone": record.get("applicant__phone") or "",
                "Status": record["status"],
                "Marked At": marked_at or "",
            }
        )
    return rows
