"""Port interfaces for repositories (Dependency Inversion Principle)."""

from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable, List, Optional, Sequence, TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from appointment_scheduling.domain.entities.appointment import Appointment, AppointmentStatus


class AppointmentRepository(ABC):
    """Port interface for the appointment store."""

    @abstractmethod
    async def find_active(
        self,
        target_date: date,
        time_slots: Optional[Iterable[str]] = None,
        exclude_statuses: Optional[Iterable["AppointmentStatus"]] = None
    ) -> List["Appointment"]:
        """Find appointments of a date that hold slots.

        Args:
            target_date: Calendar day to search
            time_slots: When given, only appointments occupying at least one of
                these labels (start or any later label of their span)
            exclude_statuses: Statuses to leave out, cancelled by default
        """
        raise NotImplementedError

    @abstractmethod
    async def atomic_insert_if_free(
        self,
        appointment: "Appointment",
        required_labels: Sequence[str]
    ) -> Optional[str]:
        """Insert the appointment unless any required label is already held.

        The check and the insert form one atomic step with respect to every
        other admission for the same date.

        Returns:
            None when the appointment was stored, otherwise the first label of
            required_labels held by an active appointment
        """
        raise NotImplementedError

    @abstractmethod
    async def find_by_id(self, appointment_id: UUID) -> Optional["Appointment"]:
        """Find appointment by ID."""
        raise NotImplementedError

    @abstractmethod
    async def update_status(self, appointment_id: UUID, new_status: "AppointmentStatus") -> "Appointment":
        """Persist a status change, releasing slots on cancellation.

        Raises:
            NotFoundError: If the appointment does not exist
        """
        raise NotImplementedError

    @abstractmethod
    async def list_active(self) -> List["Appointment"]:
        """List all active appointments sorted by date, then start label."""
        raise NotImplementedError
