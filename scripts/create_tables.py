"""Script to initialize database tables."""

import asyncio

from sqlalchemy.ext.asyncio import create_async_engine

from appointment_scheduling.infrastructure.database.models import Base
from appointment_scheduling.infrastructure.logging import get_logger, setup_logging_from_env
from appointment_scheduling.presentation.api.config import get_settings

logger = get_logger(__name__)


async def create_tables():
    """Create the appointments and slot_claims tables."""
    database_url = get_settings().database_url
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(database_url)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database tables created", extra={"tables": sorted(Base.metadata.tables)})

    except Exception:
        logger.exception("Error creating tables")
        raise
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging_from_env()
    asyncio.run(create_tables())
