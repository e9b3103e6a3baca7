"""Domain exceptions for appointment scheduling."""

from typing import Optional


class SchedulingError(Exception):
    """Base class for scheduling errors."""

    error_type = "scheduling_error"


class ValidationError(SchedulingError, ValueError):
    """Raised when a request is malformed or cannot be placed on the grid."""

    error_type = "validation_error"


class InvalidStatusTransition(ValidationError):
    """Raised when an appointment cannot move to the requested status."""

    error_type = "invalid_status_transition"


class ConflictError(SchedulingError):
    """Raised when a requested slot is already held by an active appointment."""

    error_type = "conflict_error"

    def __init__(self, conflicting_label: str, message: Optional[str] = None):
        self.conflicting_label = conflicting_label
        super().__init__(message or f"Time slot {conflicting_label} is already booked")


class NotFoundError(SchedulingError):
    """Raised when an appointment does not exist."""

    error_type = "not_found"


class StoreUnavailableError(SchedulingError):
    """Raised when the appointment store cannot be reached."""

    error_type = "store_unavailable"
