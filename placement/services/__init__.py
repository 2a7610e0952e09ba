from .attendance import attendance_export_rows, mark_attendance
from .roster_import import import_roster
from .seat_allocation import allocate_seats, seating_export_rows

__all__ = [
    "allocate_seats",
    "attendance_export_rows",
    "import_roster",
    "mark_attendance",
    "seating_export_rows",
]
