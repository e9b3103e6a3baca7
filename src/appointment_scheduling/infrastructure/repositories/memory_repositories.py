"""In-memory repository implementations for testing and development."""

import asyncio
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from appointment_scheduling.application.ports.repositories import AppointmentRepository
from appointment_scheduling.domain.entities.appointment import Appointment, AppointmentStatus
from appointment_scheduling.domain.errors import NotFoundError


class InMemoryAppointmentRepository(AppointmentRepository):
    """In-memory implementation of the appointment store.

    Admissions and status changes of one date run under that date's lock, so
    the availability check and the insert cannot interleave with another
    admission for the same day.
    """

    def __init__(self, granularity_minutes: int = 30):
        self._granularity_minutes = granularity_minutes
        self._appointments: Dict[UUID, Appointment] = {}
        self._locks: Dict[date, asyncio.Lock] = defaultdict(asyncio.Lock)

    def _occupied_by(self, target_date: date) -> Dict[str, Appointment]:
        """Map every held label of a date to the appointment holding it."""
        occupied = {}
        for appointment in self._appointments.values():
            if appointment.date == target_date and appointment.is_active:
                for label in appointment.occupied_labels(self._granularity_minutes):
                    occupied[label] = appointment
        return occupied

    async def find_active(
        self,
        target_date: date,
        time_slots: Optional[Iterable[str]] = None,
        exclude_statuses: Optional[Iterable[AppointmentStatus]] = None
    ) -> List[Appointment]:
        """Find appointments of a date that hold slots."""
        excluded = set(exclude_statuses) if exclude_statuses is not None else {AppointmentStatus.CANCELLED}
        wanted = set(time_slots) if time_slots is not None else None

        found = []
        for appointment in self._appointments.values():
            if appointment.date != target_date or appointment.status in excluded:
                continue
            if wanted is not None and wanted.isdisjoint(appointment.occupied_labels(self._granularity_minutes)):
                continue
            found.append(appointment)

        return sorted(found, key=lambda a: a.time_slot)

    async def atomic_insert_if_free(
        self,
        appointment: Appointment,
        required_labels: Sequence[str]
    ) -> Optional[str]:
        """Insert the appointment unless a required label is held."""
        async with self._locks[appointment.date]:
            occupied = self._occupied_by(appointment.date)
            for label in required_labels:
                if label in occupied:
                    return label

            self._appointments[appointment.id] = appointment
            return None

    async def find_by_id(self, appointment_id: UUID) -> Optional[Appointment]:
        """Find appointment by ID."""
        return self._appointments.get(appointment_id)

    async def update_status(self, appointment_id: UUID, new_status: AppointmentStatus) -> Appointment:
        """Apply a status transition."""
        appointment = self._appointments.get(appointment_id)
        if not appointment:
            raise NotFoundError(f"Appointment not found: {appointment_id}")

        async with self._locks[appointment.date]:
            appointment.transition_to(new_status)
        return appointment

    async def list_active(self) -> List[Appointment]:
        """List active appointments sorted by date, then start label."""
        active = [a for a in self._appointments.values() if a.is_active]
        return sorted(active, key=lambda a: (a.date, a.time_slot))
