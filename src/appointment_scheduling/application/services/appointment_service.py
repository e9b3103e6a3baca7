"""Appointment service implementing availability and admission use cases."""

import logging
import re
from datetime import date, datetime
from typing import List, Optional, Union
from uuid import UUID

from ..ports.repositories import AppointmentRepository
from .availability_service import SlotGridGenerator, available_starts
from ...domain.entities.appointment import Appointment, AppointmentStatus
from ...domain.errors import ConflictError, NotFoundError, ValidationError
from ...domain.value_objects.slot_grid import SlotGrid
from ...infrastructure.logging import (
    get_logger,
    log_admission_decision,
    log_business_rule_violation,
    log_with_extra
)

DateInput = Union[str, date, datetime]


def parse_appointment_date(value: Optional[DateInput]) -> date:
    """Normalize a request date to its calendar day.

    Accepts a date, a datetime, 'YYYY-MM-DD' or an ISO datetime string.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("A date is required")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD)") from None


class ClientInfoValidator:
    """Service for validating client contact details."""

    EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

    @staticmethod
    def normalize_name(client_name: Optional[str]) -> str:
        """Validate and trim the client name."""
        if not client_name or not client_name.strip():
            raise ValidationError("Client name is required")
        return client_name.strip()

    @classmethod
    def normalize_email(cls, client_email: Optional[str]) -> str:
        """Validate the email and store it lower-cased."""
        if not client_email or not client_email.strip():
            raise ValidationError("Client email is required")

        email = client_email.strip().lower()
        if not cls.EMAIL_PATTERN.match(email):
            raise ValidationError(f"Invalid client email: {client_email}")
        return email


class AppointmentService:
    """Application service for slot availability and booking admission."""

    def __init__(
        self,
        appointment_repository: AppointmentRepository,
        grid_generator: Optional[SlotGridGenerator] = None
    ):
        self._appointment_repository = appointment_repository
        self._grid_generator = grid_generator or SlotGridGenerator()
        self._client_validator = ClientInfoValidator()
        self._logger = get_logger(__name__)

    @property
    def config(self):
        """Grid configuration in use."""
        return self._grid_generator.config

    def get_grid(self) -> SlotGrid:
        """Get the slot grid shared by every calendar day."""
        return self._grid_generator.generate_grid()

    async def get_occupied_labels(self, target_date: date) -> set:
        """Union of labels held by the active appointments of a date."""
        granularity = self.config.granularity_minutes
        appointments = await self._appointment_repository.find_active(target_date)

        occupied = set()
        for appointment in appointments:
            occupied.update(appointment.occupied_labels(granularity))
        return occupied

    def resolve_duration(self, duration: Optional[int] = None) -> int:
        """Duration an availability query uses: one slot when none is given."""
        return self.config.granularity_minutes if duration is None else duration

    def units_for_duration(self, duration: int) -> int:
        """Slot count of an offered booking duration.

        Raises:
            ValidationError: If the duration is not a positive multiple of the
                granularity or is not one of the configured valid durations
        """
        units = self.config.units_for(duration)
        if duration not in self.config.valid_durations:
            raise ValidationError(
                f"Duration {duration} ({units} slots) is not offered; "
                f"valid durations: {', '.join(str(d) for d in self.config.valid_durations)}"
            )
        return units

    async def get_available_starts(self, target_date: DateInput, duration: Optional[int] = None) -> List[str]:
        """Get the labels a booking of the given duration may start at.

        Without a duration every free slot is listed; an explicit duration
        must be one that admission accepts.
        """
        day = parse_appointment_date(target_date)
        units = 1 if duration is None else self.units_for_duration(duration)
        duration = self.resolve_duration(duration)

        grid = self.get_grid()
        occupied = await self.get_occupied_labels(day)
        starts = available_starts(grid, occupied, units)

        self._logger.debug(
            "Computed available starts",
            extra={
                "date": day.isoformat(),
                "duration": duration,
                "occupied_count": len(occupied),
                "available_count": len(starts)
            }
        )
        return starts

    def required_labels(self, time_slot: str, duration: int) -> List[str]:
        """Labels a booking needs, validated against the grid."""
        return self.get_grid().label_run(time_slot, self.units_for_duration(duration))

    async def admit(
        self,
        target_date: DateInput,
        time_slot: str,
        duration: int,
        client_name: str,
        client_email: str
    ) -> Appointment:
        """Admit a new booking if every slot it spans is free.

        Raises:
            ValidationError: If the request cannot be placed on the grid
            ConflictError: If a required slot is held by an active appointment
        """
        day = parse_appointment_date(target_date)
        name = self._client_validator.normalize_name(client_name)
        email = self._client_validator.normalize_email(client_email)
        labels = self.required_labels(time_slot, duration)

        appointment = Appointment(
            appointment_date=day,
            time_slot=time_slot,
            client_name=name,
            client_email=email,
            duration=duration,
            status=AppointmentStatus.PENDING
        )

        conflicting_label = await self._appointment_repository.atomic_insert_if_free(appointment, labels)
        if conflicting_label is not None:
            log_admission_decision(
                self._logger,
                accepted=False,
                date=day.isoformat(),
                time_slot=time_slot,
                duration=duration,
                conflicting_label=conflicting_label
            )
            raise ConflictError(conflicting_label)

        log_admission_decision(
            self._logger,
            accepted=True,
            date=day.isoformat(),
            time_slot=time_slot,
            duration=duration,
            appointment_id=str(appointment.id)
        )
        return appointment

    async def update_status(self, appointment_id: UUID, new_status: AppointmentStatus) -> Appointment:
        """Move an appointment to confirmed or cancelled."""
        try:
            appointment = await self._appointment_repository.update_status(appointment_id, new_status)
        except ValidationError as e:
            log_business_rule_violation(
                self._logger,
                "invalid_status_transition",
                str(e),
                appointment_id=str(appointment_id),
                requested_status=new_status.value
            )
            raise

        log_with_extra(
            self._logger,
            logging.INFO,
            f"Appointment {new_status.value}",
            appointment_id=str(appointment_id),
            status=new_status.value
        )
        return appointment

    async def confirm_appointment(self, appointment_id: UUID) -> Appointment:
        """Confirm a pending appointment."""
        return await self.update_status(appointment_id, AppointmentStatus.CONFIRMED)

    async def cancel_appointment(self, appointment_id: UUID) -> Appointment:
        """Cancel an appointment, freeing its slots."""
        return await self.update_status(appointment_id, AppointmentStatus.CANCELLED)

    async def get_appointment(self, appointment_id: UUID) -> Appointment:
        """Get a specific appointment by ID."""
        appointment = await self._appointment_repository.find_by_id(appointment_id)
        if not appointment:
            raise NotFoundError(f"Appointment not found: {appointment_id}")
        return appointment

    async def list_active_appointments(self) -> List[Appointment]:
        """Get all active appointments ordered by date and start slot."""
        return await self._appointment_repository.list_active()
