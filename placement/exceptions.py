"""
Errors raised by the placement procedures.

Views translate these into JSON error responses, so every error carries a
human readable ``message`` that is safe to show to console operators.
"""


class PlacementError(Exception):
    default_message = "Placement operation failed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PlacementError):
    default_message = "Invalid input."


class NotFoundError(PlacementError):
    default_message = "Record not found."


class AlreadyMarkedError(PlacementError):
    default_message = "Attendance already marked."

    def __init__(self, message=None, record=None):
        super().__init__(message)
        self.record = record


class AllocationInProgressError(PlacementError):
    default_message = "Seat allocation is already running for this test."


class StorageError(PlacementError):
    default_message = "The data store rejected the request."


class ConflictError(StorageError):
    default_message = "A record with the same key already exists."
