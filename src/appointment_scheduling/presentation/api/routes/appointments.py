"""Appointment endpoints.

Domain errors raised by the service are turned into HTTP responses by the
exception handlers registered in main.py.
"""

from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Path, Query, status

from appointment_scheduling.infrastructure.services import get_service_factory
from ..schemas.appointment_schemas import (
    AppointmentRequest,
    AppointmentResponse,
    AvailableSlotsResponse,
    ErrorResponse
)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.get("/slots/{date}", responses=ERROR_RESPONSES)
async def get_available_slots(
    date: str = Path(..., description="Date in YYYY-MM-DD format"),
    duration: Optional[int] = Query(None, description="Booking duration in minutes")
) -> AvailableSlotsResponse:
    """Get the start slots a booking of the given duration can use on a date."""
    async with get_service_factory().get_appointment_service() as appointment_service:
        slots = await appointment_service.get_available_starts(date, duration)
        duration = appointment_service.resolve_duration(duration)

    return AvailableSlotsResponse(date=date, duration=duration, slots=slots)


@router.post("", status_code=status.HTTP_201_CREATED, responses=ERROR_RESPONSES)
async def create_appointment(request: AppointmentRequest) -> AppointmentResponse:
    """Book an appointment if every slot it spans is free."""
    service_factory = get_service_factory()
    duration = request.duration
    if duration is None:
        duration = service_factory.settings.default_duration_minutes

    async with service_factory.get_appointment_service() as appointment_service:
        appointment = await appointment_service.admit(
            target_date=request.date,
            time_slot=request.time_slot,
            duration=duration,
            client_name=request.client_name,
            client_email=request.client_email
        )

    return AppointmentResponse.from_entity(appointment, service_factory.grid_config.granularity_minutes)


@router.get("", responses=ERROR_RESPONSES)
async def list_appointments() -> List[AppointmentResponse]:
    """List active appointments ordered by date and start slot."""
    service_factory = get_service_factory()
    async with service_factory.get_appointment_service() as appointment_service:
        appointments = await appointment_service.list_active_appointments()

    granularity = service_factory.grid_config.granularity_minutes
    return [AppointmentResponse.from_entity(appointment, granularity) for appointment in appointments]


@router.get("/{appointment_id}", responses=ERROR_RESPONSES)
async def get_appointment(
    appointment_id: UUID = Path(..., description="Appointment ID")
) -> AppointmentResponse:
    """Get appointment by ID."""
    service_factory = get_service_factory()
    async with service_factory.get_appointment_service() as appointment_service:
        appointment = await appointment_service.get_appointment(appointment_id)

    return AppointmentResponse.from_entity(appointment, service_factory.grid_config.granularity_minutes)


@router.patch("/{appointment_id}/confirm", responses=ERROR_RESPONSES)
async def confirm_appointment(
    appointment_id: UUID = Path(..., description="Appointment ID")
) -> AppointmentResponse:
    """Confirm a pending appointment."""
    service_factory = get_service_factory()
    async with service_factory.get_appointment_service() as appointment_service:
        appointment = await appointment_service.confirm_appointment(appointment_id)

    return AppointmentResponse.from_entity(appointment, service_factory.grid_config.granularity_minutes)


@router.patch("/{appointment_id}/cancel", responses=ERROR_RESPONSES)
async def cancel_appointment(
    appointment_id: UUID = Path(..., description="Appointment ID")
) -> AppointmentResponse:
    """Cancel an appointment and release its slots."""
    service_factory = get_service_factory()
    async with service_factory.get_appointment_service() as appointment_service:
        appointment = await appointment_service.cancel_appointment(appointment_id)

    return AppointmentResponse.from_entity(appointment, service_factory.grid_config.granularity_minutes)
