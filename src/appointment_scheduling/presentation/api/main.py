"""FastAPI main application module."""

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from ...domain.errors import (
    ConflictError,
    NotFoundError,
    SchedulingError,
    StoreUnavailableError,
    ValidationError
)
from ...infrastructure.logging import get_logger, setup_logging_from_env
from ...infrastructure.services import initialize_services, shutdown_services
from .config import get_settings
from .middleware import RequestResponseLoggingMiddleware
from .routes import appointments, health
from .schemas.appointment_schemas import ErrorResponse


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting Appointment Scheduling API")
    await initialize_services()

    yield

    logger.info("Shutting down Appointment Scheduling API")
    await shutdown_services()


def _error_response(status_code: int, exc: SchedulingError, **fields) -> JSONResponse:
    body = ErrorResponse(detail=str(exc), type=exc.error_type, **fields)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True)
    )


def add_exception_handlers(app: FastAPI) -> None:
    """Add custom exception handlers to the FastAPI application."""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        """Handle requests that cannot be placed on the schedule."""
        logger.warning(f"Validation error on {request.url.path}: {exc}")
        return _error_response(400, exc)

    @app.exception_handler(ConflictError)
    async def conflict_error_handler(request: Request, exc: ConflictError):
        """Handle bookings that collide with an active appointment."""
        logger.warning(f"Booking conflict on {request.url.path}: {exc}")
        return _error_response(409, exc, conflicting_label=exc.conflicting_label)

    @app.exception_handler(NotFoundError)
    async def not_found_error_handler(request: Request, exc: NotFoundError):
        """Handle unknown appointment IDs."""
        logger.info(f"Not found on {request.url.path}: {exc}")
        return _error_response(404, exc)

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        """Handle an unreachable appointment store; the request is safe to retry."""
        logger.error(f"Store unavailable on {request.url.path}: {exc}")
        response = _error_response(503, exc)
        response.headers["Retry-After"] = "1"
        return response


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Appointment Scheduling",
        description="API for booking fixed-length appointment slots without overlaps",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    add_exception_handlers(app)

    app.add_middleware(RequestResponseLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=settings.allowed_methods,
        allow_headers=settings.allowed_headers,
    )

    app.include_router(health.router, tags=["health"])
    app.include_router(
        appointments.router,
        prefix=f"{settings.api_prefix}/appointments",
        tags=["appointments"]
    )

    return app


def run() -> None:
    """Run the API with uvicorn."""
    settings = get_settings()
    setup_logging_from_env(settings.log_level)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


# Create app instance
app = create_app()
