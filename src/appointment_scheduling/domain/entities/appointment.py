"""Appointment entity for slot scheduling."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from ..errors import InvalidStatusTransition
from ..value_objects.slot_grid import span_labels


class AppointmentStatus(Enum):
    """Appointment status enumeration."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)


class Appointment:
    """Appointment entity holding one or more consecutive slots of a day."""

    def __init__(
        self,
        appointment_date: date,
        time_slot: str,
        client_name: str,
        client_email: str,
        duration: int = 60,
        appointment_id: Optional[UUID] = None,
        status: AppointmentStatus = AppointmentStatus.PENDING,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        if isinstance(appointment_date, datetime):
            appointment_date = appointment_date.date()

        self._id = appointment_id or uuid4()
        self._date = appointment_date
        self._time_slot = time_slot
        self._client_name = client_name
        self._client_email = client_email
        self._duration = duration
        self._status = status
        self._created_at = created_at or datetime.utcnow()
        self._updated_at = updated_at or self._created_at

    @property
    def id(self) -> UUID:
        """Get appointment ID."""
        return self._id

    @property
    def date(self) -> date:
        """Get the calendar day of the appointment."""
        return self._date

    @property
    def time_slot(self) -> str:
        """Get the starting slot label."""
        return self._time_slot

    @property
    def client_name(self) -> str:
        """Get client name."""
        return self._client_name

    @property
    def client_email(self) -> str:
        """Get client email, lower-cased."""
        return self._client_email

    @property
    def duration(self) -> int:
        """Get duration in minutes."""
        return self._duration

    @property
    def status(self) -> AppointmentStatus:
        """Get appointment status."""
        return self._status

    @property
    def created_at(self) -> datetime:
        """Get creation timestamp."""
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        """Get last update timestamp."""
        return self._updated_at

    @property
    def is_active(self) -> bool:
        """Active appointments hold their slots."""
        return self._status in ACTIVE_STATUSES

    def occupied_labels(self, granularity_minutes: int) -> List[str]:
        """Slot labels held by this appointment, start label first."""
        return span_labels(self._time_slot, self._duration, granularity_minutes)

    def confirm(self) -> None:
        """Confirm the appointment."""
        if self._status != AppointmentStatus.PENDING:
            raise InvalidStatusTransition(
                f"Only pending appointments can be confirmed (current status: {self._status.value})"
            )
        self._status = AppointmentStatus.CONFIRMED
        self._updated_at = datetime.utcnow()

    def cancel(self) -> None:
        """Cancel the appointment and release its slots."""
        if self._status == AppointmentStatus.CANCELLED:
            raise InvalidStatusTransition("Appointment is already cancelled")
        self._status = AppointmentStatus.CANCELLED
        self._updated_at = datetime.utcnow()

    def transition_to(self, status: AppointmentStatus) -> None:
        """Apply a status transition by target status."""
        if status == AppointmentStatus.CONFIRMED:
            self.confirm()
        elif status == AppointmentStatus.CANCELLED:
            self.cancel()
        else:
            raise InvalidStatusTransition(f"Cannot move an appointment back to {status.value}")

    def __eq__(self, other: object) -> bool:
        """Check equality based on appointment ID."""
        if not isinstance(other, Appointment):
            return False
        return self._id == other._id

    def __hash__(self) -> int:
        """Hash based on appointment ID."""
        return hash(self._id)

    def __str__(self) -> str:
        """String representation."""
        return f"Appointment({self._id}, {self._date.isoformat()} {self._time_slot}, {self._status.value})"
