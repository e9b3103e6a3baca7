"""SQLAlchemy repository implementations."""

from datetime import date
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from appointment_scheduling.infrastructure.logging import (
    get_logger,
    log_database_operation
)

from appointment_scheduling.application.ports.repositories import AppointmentRepository
from appointment_scheduling.domain.entities.appointment import Appointment, AppointmentStatus, ACTIVE_STATUSES
from appointment_scheduling.domain.errors import NotFoundError
from appointment_scheduling.infrastructure.database.models import AppointmentModel, SlotClaimModel


class SQLAlchemyAppointmentRepository(AppointmentRepository):
    """SQLAlchemy implementation of the appointment store.

    Every active appointment owns one slot_claims row per label it occupies.
    The unique (date, label) constraint on that table makes the database
    reject the second of two overlapping admissions, whichever process or
    connection they come from.
    """

    def __init__(self, session: AsyncSession, granularity_minutes: int = 30):
        self._session = session
        self._granularity_minutes = granularity_minutes
        self._logger = get_logger(__name__)

    async def find_active(
        self,
        target_date: date,
        time_slots: Optional[Iterable[str]] = None,
        exclude_statuses: Optional[Iterable[AppointmentStatus]] = None
    ) -> List[Appointment]:
        """Find appointments of a date that hold slots."""
        excluded = list(exclude_statuses) if exclude_statuses is not None else [AppointmentStatus.CANCELLED]
        log_database_operation(
            self._logger,
            "SELECT",
            "AppointmentModel",
            target_date=str(target_date),
            excluded_statuses=[status.value for status in excluded]
        )

        stmt = select(AppointmentModel).where(AppointmentModel.date == target_date)
        if excluded:
            stmt = stmt.where(AppointmentModel.status.notin_(excluded))
        stmt = stmt.order_by(AppointmentModel.time_slot)

        result = await self._session.execute(stmt)
        appointments = [self._model_to_entity(model) for model in result.scalars().all()]

        if time_slots is None:
            return appointments

        wanted = set(time_slots)
        return [
            appointment for appointment in appointments
            if not wanted.isdisjoint(appointment.occupied_labels(self._granularity_minutes))
        ]

    async def atomic_insert_if_free(
        self,
        appointment: Appointment,
        required_labels: Sequence[str]
    ) -> Optional[str]:
        """Insert the appointment and its slot claims inside one savepoint."""
        log_database_operation(
            self._logger,
            "INSERT",
            "AppointmentModel",
            appointment_id=str(appointment.id),
            target_date=str(appointment.date),
            required_labels=list(required_labels)
        )

        model = self._entity_to_model(appointment)
        claims = [
            SlotClaimModel(appointment_id=appointment.id, date=appointment.date, label=label)
            for label in required_labels
        ]

        try:
            async with self._session.begin_nested():
                self._session.add(model)
                await self._session.flush()
                self._session.add_all(claims)
                await self._session.flush()
        except IntegrityError:
            conflicting_label = await self._first_claimed_label(appointment.date, required_labels)
            self._logger.info(
                "Slot claim rejected by unique constraint",
                extra={
                    "target_date": str(appointment.date),
                    "conflicting_label": conflicting_label
                }
            )
            # The competing claim may have been released again before the lookup
            return conflicting_label or required_labels[0]

        return None

    async def find_by_id(self, appointment_id: UUID) -> Optional[Appointment]:
        """Find appointment by ID."""
        stmt = select(AppointmentModel).where(AppointmentModel.id == appointment_id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if not model:
            return None

        return self._model_to_entity(model)

    async def update_status(self, appointment_id: UUID, new_status: AppointmentStatus) -> Appointment:
        """Apply a status transition under a row lock."""
        log_database_operation(
            self._logger,
            "UPDATE",
            "AppointmentModel",
            appointment_id=str(appointment_id),
            new_status=new_status.value
        )

        stmt = select(AppointmentModel).where(AppointmentModel.id == appointment_id).with_for_update()
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if not model:
            raise NotFoundError(f"Appointment not found: {appointment_id}")

        appointment = self._model_to_entity(model)
        appointment.transition_to(new_status)

        model.status = appointment.status
        model.updated_at = appointment.updated_at

        if appointment.status == AppointmentStatus.CANCELLED:
            await self._session.execute(
                delete(SlotClaimModel).where(SlotClaimModel.appointment_id == appointment_id)
            )

        await self._session.flush()
        return appointment

    async def list_active(self) -> List[Appointment]:
        """List active appointments sorted by date, then start label."""
        stmt = select(AppointmentModel).where(
            AppointmentModel.status.in_(ACTIVE_STATUSES)
        ).order_by(AppointmentModel.date, AppointmentModel.time_slot)

        result = await self._session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def _first_claimed_label(self, target_date: date, labels: Sequence[str]) -> Optional[str]:
        """First label of labels that already has a claim row."""
        stmt = select(SlotClaimModel.label).where(
            SlotClaimModel.date == target_date,
            SlotClaimModel.label.in_(list(labels))
        )
        result = await self._session.execute(stmt)
        claimed = set(result.scalars().all())

        return next((label for label in labels if label in claimed), None)

    def _entity_to_model(self, appointment: Appointment) -> AppointmentModel:
        """Convert domain entity to database model."""
        return AppointmentModel(
            id=appointment.id,
            date=appointment.date,
            time_slot=appointment.time_slot,
            duration=appointment.duration,
            status=appointment.status,
            client_name=appointment.client_name,
            client_email=appointment.client_email,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at
        )

    def _model_to_entity(self, model: AppointmentModel) -> Appointment:
        """Convert database model to domain entity."""
        return Appointment(
            appointment_id=model.id,
            appointment_date=model.date,
            time_slot=model.time_slot,
            client_name=model.client_name,
            client_email=model.client_email,
            duration=model.duration,
            status=model.status,
            created_at=model.created_at,
            updated_at=model.updated_at
        )
