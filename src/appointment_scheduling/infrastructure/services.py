"""Dependency injection and service factory."""

from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager

from appointment_scheduling.application.services.appointment_service import AppointmentService
from appointment_scheduling.application.services.availability_service import SlotGridGenerator
from appointment_scheduling.domain.value_objects.slot_grid import (
    SlotGridConfig,
    parse_durations,
    parse_exclusion_windows
)
from appointment_scheduling.infrastructure.database.connection import DatabaseManager
from appointment_scheduling.infrastructure.logging import get_logger
from appointment_scheduling.infrastructure.repositories.memory_repositories import InMemoryAppointmentRepository
from appointment_scheduling.infrastructure.repositories.sql_repositories import SQLAlchemyAppointmentRepository
from appointment_scheduling.presentation.api.config import Settings, get_settings

logger = get_logger(__name__)


def build_grid_config(settings: Settings) -> SlotGridConfig:
    """Build the slot grid configuration from application settings."""
    return SlotGridConfig(
        granularity_minutes=settings.slot_granularity_minutes,
        start_hour=settings.working_start_hour,
        end_limit=settings.working_end_limit,
        exclusion_windows=parse_exclusion_windows(settings.exclusion_windows),
        valid_durations=parse_durations(settings.valid_durations)
    )


class ServiceFactory:
    """Factory for creating application services with proper dependencies."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.grid_config = build_grid_config(settings)
        self._grid_generator = SlotGridGenerator(self.grid_config)
        self._connected = False

        self.database_manager: Optional[DatabaseManager] = None
        self._memory_repository: Optional[InMemoryAppointmentRepository] = None

        if settings.storage_backend == "memory":
            # Shared by every request of the process
            self._memory_repository = InMemoryAppointmentRepository(self.grid_config.granularity_minutes)
        else:
            self.database_manager = DatabaseManager(
                settings.database_url,
                echo=settings.debug,
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=settings.db_pool_pre_ping
            )

    async def initialize(self):
        """Initialize the service factory."""
        if self.database_manager and not self._connected:
            await self.database_manager.connect()
            self._connected = True
        logger.info(
            "Service factory initialized",
            extra={
                "storage_backend": self.settings.storage_backend,
                "granularity_minutes": self.grid_config.granularity_minutes,
                "exclusion_windows": [str(w) for w in self.grid_config.exclusion_windows]
            }
        )

    async def shutdown(self):
        """Shutdown the service factory."""
        if self.database_manager and self._connected:
            await self.database_manager.disconnect()
            self._connected = False

    @asynccontextmanager
    async def get_appointment_service(self) -> AsyncGenerator[AppointmentService, None]:
        """Get an appointment service bound to one unit of work."""
        if self._memory_repository is not None:
            yield AppointmentService(self._memory_repository, self._grid_generator)
            return

        async with self.database_manager.get_session() as session:
            repository = SQLAlchemyAppointmentRepository(session, self.grid_config.granularity_minutes)
            yield AppointmentService(repository, self._grid_generator)


# Global service factory instance
_service_factory: ServiceFactory | None = None


def get_service_factory() -> ServiceFactory:
    """Get the global service factory instance."""
    global _service_factory

    if _service_factory is None:
        _service_factory = ServiceFactory(get_settings())

    return _service_factory


def set_service_factory(factory: Optional[ServiceFactory]) -> None:
    """Replace the global service factory (None resets it)."""
    global _service_factory
    _service_factory = factory


async def initialize_services():
    """Initialize application services."""
    factory = get_service_factory()
    await factory.initialize()


async def shutdown_services():
    """Shutdown application services."""
    factory = get_service_factory()
    await factory.shutdown()
