"""Pydantic schemas for appointment API requests and responses.

Fields are exchanged in camelCase on the wire (timeSlot, clientName, ...);
snake_case names are accepted on input as well.
"""

from datetime import datetime, date as Date
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ....domain.entities.appointment import Appointment, AppointmentStatus


class CamelModel(BaseModel):
    """Base model using camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AppointmentRequest(CamelModel):
    """Request model for creating an appointment."""
    date: str = Field(..., description="Calendar day in YYYY-MM-DD format")
    time_slot: str = Field(..., description="Start slot in HH:MM format")
    client_name: str = Field(..., min_length=1, max_length=200)
    client_email: str = Field(..., min_length=3, max_length=255)
    duration: Optional[int] = Field(None, description="Duration in minutes, defaults to the configured default")


class AppointmentResponse(CamelModel):
    """Response model for appointment operations."""
    id: UUID
    date: Date
    time_slot: str
    client_name: str
    client_email: str
    duration: int
    status: AppointmentStatus
    occupied_slots: List[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, appointment: Appointment, granularity_minutes: int) -> "AppointmentResponse":
        """Build the response from a domain entity."""
        return cls(
            id=appointment.id,
            date=appointment.date,
            time_slot=appointment.time_slot,
            client_name=appointment.client_name,
            client_email=appointment.client_email,
            duration=appointment.duration,
            status=appointment.status,
            occupied_slots=appointment.occupied_labels(granularity_minutes),
            created_at=appointment.created_at,
            updated_at=appointment.updated_at
        )


class AvailableSlotsResponse(CamelModel):
    """Response model for available start slots."""
    date: str
    duration: int
    slots: List[str]


class ErrorResponse(CamelModel):
    """Response model for errors."""
    detail: str
    type: str
    conflicting_label: Optional[str] = None
