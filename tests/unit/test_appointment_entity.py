"""Unit tests for the appointment entity."""

import pytest
from datetime import date, datetime
from uuid import uuid4

from appointment_scheduling.domain.entities.appointment import Appointment, AppointmentStatus
from appointment_scheduling.domain.errors import InvalidStatusTransition, ValidationError


def make_appointment(**overrides) -> Appointment:
    values = dict(
        appointment_date=date(2025, 10, 1),
        time_slot="09:00",
        client_name="Ana Perez",
        client_email="ana@example.com",
        duration=60
    )
    values.update(overrides)
    return Appointment(**values)


class TestAppointment:
    """Test cases for Appointment entity."""

    def test_creation_defaults(self):
        """Test a new appointment is pending with an ID and timestamps."""
        appointment = make_appointment()

        assert appointment.id is not None
        assert appointment.status == AppointmentStatus.PENDING
        assert appointment.is_active is True
        assert appointment.created_at == appointment.updated_at

    def test_datetime_is_normalized_to_calendar_day(self):
        """Test a datetime date is truncated to its day."""
        appointment = make_appointment(appointment_date=datetime(2025, 10, 1, 15, 45))

        assert appointment.date == date(2025, 10, 1)

    def test_occupied_labels(self):
        """Test the labels held by single and double appointments."""
        assert make_appointment(duration=60).occupied_labels(30) == ["09:00", "09:30"]
        assert make_appointment(duration=30).occupied_labels(30) == ["09:00"]

    def test_confirm_pending(self):
        """Test confirming a pending appointment."""
        appointment = make_appointment()

        appointment.confirm()

        assert appointment.status == AppointmentStatus.CONFIRMED
        assert appointment.is_active is True

    def test_confirm_twice_fails(self):
        """Test only pending appointments can be confirmed."""
        appointment = make_appointment()
        appointment.confirm()

        with pytest.raises(InvalidStatusTransition, match="Only pending appointments"):
            appointment.confirm()

    def test_cancel_releases_slots(self):
        """Test a cancelled appointment is no longer active."""
        appointment = make_appointment()

        appointment.cancel()

        assert appointment.status == AppointmentStatus.CANCELLED
        assert appointment.is_active is False

    def test_cancel_confirmed(self):
        """Test confirmed appointments can be cancelled."""
        appointment = make_appointment(status=AppointmentStatus.CONFIRMED)

        appointment.cancel()

        assert appointment.status == AppointmentStatus.CANCELLED

    def test_cancelled_cannot_be_confirmed(self):
        """Test a cancelled appointment cannot take its slots back."""
        appointment = make_appointment(status=AppointmentStatus.CANCELLED)

        with pytest.raises(InvalidStatusTransition):
            appointment.confirm()

    def test_cancel_twice_fails(self):
        """Test cancelling an already cancelled appointment."""
        appointment = make_appointment(status=AppointmentStatus.CANCELLED)

        with pytest.raises(InvalidStatusTransition, match="already cancelled"):
            appointment.cancel()

    def test_transition_to(self):
        """Test transitions by target status."""
        appointment = make_appointment()

        appointment.transition_to(AppointmentStatus.CONFIRMED)
        assert appointment.status == AppointmentStatus.CONFIRMED

        appointment.transition_to(AppointmentStatus.CANCELLED)
        assert appointment.status == AppointmentStatus.CANCELLED

    def test_transition_back_to_pending_fails(self):
        """Test appointments never move back to pending."""
        appointment = make_appointment(status=AppointmentStatus.CONFIRMED)

        with pytest.raises(InvalidStatusTransition):
            appointment.transition_to(AppointmentStatus.PENDING)

    def test_invalid_transition_is_a_validation_error(self):
        """Test transition errors share the validation error family."""
        assert issubclass(InvalidStatusTransition, ValidationError)
        assert issubclass(ValidationError, ValueError)

    def test_equality_by_id(self):
        """Test equality and hashing use the appointment ID."""
        appointment_id = uuid4()
        first = make_appointment(appointment_id=appointment_id)
        second = make_appointment(appointment_id=appointment_id, time_slot="10:00")

        assert first == second
        assert hash(first) == hash(second)
        assert first != make_appointment()
        assert first != "not an appointment"

    def test_str(self):
        """Test string representation."""
        appointment = make_appointment()

        assert str(appointment) == f"Appointment({appointment.id}, 2025-10-01 09:00, pending)"
