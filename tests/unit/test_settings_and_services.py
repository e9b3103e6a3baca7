"""Unit tests for settings and the service factory."""

import pytest
from datetime import date
from pydantic import ValidationError as SettingsValidationError

from appointment_scheduling.application.services.appointment_service import AppointmentService
from appointment_scheduling.infrastructure.services import ServiceFactory, build_grid_config
from appointment_scheduling.presentation.api.config import Settings


def make_settings(**overrides) -> Settings:
    values = dict(_env_file=None, storage_backend="memory")
    values.update(overrides)
    return Settings(**values)


class TestSettings:
    """Test cases for application settings."""

    def test_defaults(self):
        """Test the default business day settings."""
        settings = make_settings()

        assert settings.slot_granularity_minutes == 30
        assert settings.working_start_hour == 6
        assert settings.working_end_limit == 20.5
        assert settings.exclusion_windows == ["12:30-14:00"]
        assert settings.valid_durations == [30, 60]
        assert settings.default_duration_minutes == 60
        assert settings.api_prefix == "/api"

    def test_comma_separated_lists(self):
        """Test list settings accept comma-separated strings."""
        settings = make_settings(
            allowed_origins="http://a.example, http://b.example",
            exclusion_windows="12:00-13:00, 17:00-17:30",
            valid_durations="30, 60, 90"
        )

        assert settings.allowed_origins == ["http://a.example", "http://b.example"]
        assert settings.exclusion_windows == ["12:00-13:00", "17:00-17:30"]
        assert settings.valid_durations == [30, 60, 90]

    def test_environment_variables(self, monkeypatch):
        """Test settings are read from the environment."""
        monkeypatch.setenv("SLOT_GRANULARITY_MINUTES", "15")
        monkeypatch.setenv("VALID_DURATIONS", "15,30")
        monkeypatch.setenv("DEFAULT_DURATION_MINUTES", "30")
        monkeypatch.setenv("EXCLUSION_WINDOWS", "")

        settings = Settings(_env_file=None)

        assert settings.slot_granularity_minutes == 15
        assert settings.valid_durations == [15, 30]
        assert settings.exclusion_windows == ["12:30-14:00"]

    def test_default_duration_must_be_offered(self):
        """Test the default duration must be one of the valid durations."""
        with pytest.raises(SettingsValidationError, match="default_duration_minutes"):
            make_settings(default_duration_minutes=90)

    def test_storage_backend_choices(self):
        """Test unknown storage backends are rejected."""
        with pytest.raises(SettingsValidationError):
            make_settings(storage_backend="redis")


class TestBuildGridConfig:
    """Test cases for build_grid_config."""

    def test_from_default_settings(self):
        """Test the default settings produce the lunch-break grid."""
        config = build_grid_config(make_settings())

        assert config.granularity_minutes == 30
        assert config.start_minutes == 360
        assert config.end_minutes == 1230
        assert [str(w) for w in config.exclusion_windows] == ["12:30-14:00"]
        assert config.valid_durations == (30, 60)

    def test_without_exclusions(self):
        """Test an empty exclusion list yields a continuous day."""
        config = build_grid_config(make_settings(exclusion_windows=[]))

        assert config.exclusion_windows == ()

    def test_invalid_window(self):
        """Test malformed windows fail at startup."""
        with pytest.raises(ValueError):
            build_grid_config(make_settings(exclusion_windows="lunch"))


class TestServiceFactory:
    """Test cases for ServiceFactory."""

    def test_memory_backend_has_no_database(self):
        """Test the memory backend skips the database manager."""
        factory = ServiceFactory(make_settings())

        assert factory.database_manager is None

    def test_sql_backend_creates_database_manager(self):
        """Test the SQL backend prepares a database manager."""
        factory = ServiceFactory(make_settings(storage_backend="sql"))

        assert factory.database_manager is not None

    @pytest.mark.asyncio
    async def test_memory_services_share_one_store(self):
        """Test bookings persist across service instances."""
        factory = ServiceFactory(make_settings())
        await factory.initialize()

        async with factory.get_appointment_service() as service:
            assert isinstance(service, AppointmentService)
            appointment = await service.admit(date(2025, 10, 1), "09:00", 60, "Ana Perez", "ana@example.com")

        async with factory.get_appointment_service() as service:
            assert await service.get_appointment(appointment.id) == appointment
            assert service.config == factory.grid_config

        await factory.shutdown()
