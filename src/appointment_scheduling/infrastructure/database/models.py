"""SQLAlchemy database models."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, String, Date, DateTime, Integer, Enum as SQLEnum, ForeignKey, UniqueConstraint, Index
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from sqlalchemy.orm import declarative_base

from appointment_scheduling.domain.entities.appointment import AppointmentStatus

Base = declarative_base()


class AppointmentModel(Base):
    """SQLAlchemy model for appointments (one row per booking, start + duration)."""

    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_date_time_slot", "date", "time_slot"),
    )

    # Primary key
    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)

    # Booking details
    date = Column(Date, nullable=False, index=True)
    time_slot = Column(String(5), nullable=False)
    duration = Column(Integer, nullable=False, default=60)
    status = Column(
        SQLEnum(AppointmentStatus, name="appointment_status", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=AppointmentStatus.PENDING
    )

    # Client information
    client_name = Column(String(200), nullable=False)
    client_email = Column(String(255), nullable=False)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<AppointmentModel(id={self.id}, date={self.date}, time_slot='{self.time_slot}', status='{self.status}')>"


class SlotClaimModel(Base):
    """One row per slot label held by an active appointment.

    The unique constraint on (date, label) is what keeps two active
    appointments from ever sharing a slot. Rows are deleted when their
    appointment is cancelled.
    """

    __tablename__ = "slot_claims"
    __table_args__ = (
        UniqueConstraint("date", "label", name="uq_slot_claims_date_label"),
    )

    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)
    appointment_id = Column(
        PostgresUUID(as_uuid=True),
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    date = Column(Date, nullable=False)
    label = Column(String(5), nullable=False)

    def __repr__(self) -> str:
        return f"<SlotClaimModel(date={self.date}, label='{self.label}', appointment_id={self.appointment_id})>"
