"""Unit tests for the request/response logging middleware."""

import logging
import pytest
from fastapi import FastAPI, Request
from httpx import AsyncClient, ASGITransport

from appointment_scheduling.infrastructure.logging import get_correlation_id
from appointment_scheduling.presentation.api.middleware import RequestResponseLoggingMiddleware

MIDDLEWARE_LOGGER = "appointment_scheduling.presentation.api.middleware.logging"


def make_app(**options) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestResponseLoggingMiddleware, **options)

    @app.post("/echo")
    async def echo(request: Request):
        return {"received": await request.json(), "correlationId": get_correlation_id()}

    @app.get("/health")
    async def health():
        return {"correlationId": get_correlation_id()}

    return app


async def post(app, json, headers=None):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        return await client.post("/echo", json=json, headers=headers)


class TestRequestResponseLoggingMiddleware:
    """Test cases for RequestResponseLoggingMiddleware."""

    @pytest.mark.asyncio
    async def test_correlation_id_visible_to_handler(self):
        """Test the handler runs under the request's correlation ID."""
        response = await post(make_app(), {"a": 1}, headers={"X-Correlation-ID": "req-7"})

        assert response.json()["correlationId"] == "req-7"
        assert response.headers["X-Correlation-ID"] == "req-7"
        assert get_correlation_id() is None

    @pytest.mark.asyncio
    async def test_generated_correlation_id(self):
        """Test a correlation ID is generated when the client sends none."""
        response = await post(make_app(), {"a": 1})

        assert response.headers["X-Correlation-ID"] == response.json()["correlationId"]

    @pytest.mark.asyncio
    async def test_skipped_paths(self):
        """Test excluded paths get no correlation ID."""
        async with AsyncClient(transport=ASGITransport(app=make_app()), base_url="http://test") as client:
            response = await client.get("/health")

        assert response.json() == {"correlationId": None}
        assert "X-Correlation-ID" not in response.headers

    @pytest.mark.asyncio
    async def test_body_logging_redacts_contact_details(self, caplog):
        """Test logged bodies keep booking fields and hide client details."""
        body = {"date": "2025-10-01", "timeSlot": "09:00", "clientName": "Ana", "clientEmail": "ana@example.com"}

        with caplog.at_level(logging.INFO, logger=MIDDLEWARE_LOGGER):
            response = await post(make_app(log_request_body=True), body)

        assert response.json()["received"] == body
        request_record = next(r for r in caplog.records if r.name == MIDDLEWARE_LOGGER and hasattr(r, "request_body"))
        assert request_record.request_body == {
            "date": "2025-10-01",
            "timeSlot": "09:00",
            "clientName": "[REDACTED]",
            "clientEmail": "[REDACTED]"
        }

    @pytest.mark.asyncio
    async def test_large_body_logged_by_size(self, caplog):
        """Test oversized bodies are summarised."""
        with caplog.at_level(logging.INFO, logger=MIDDLEWARE_LOGGER):
            await post(make_app(log_request_body=True, max_body_size=10), {"timeSlot": "09:00"})

        request_record = next(r for r in caplog.records if hasattr(r, "request_body"))
        assert request_record.request_body.endswith("bytes]")

    @pytest.mark.asyncio
    async def test_response_logged_with_status(self, caplog):
        """Test the response line carries status and duration."""
        with caplog.at_level(logging.INFO, logger=MIDDLEWARE_LOGGER):
            await post(make_app(), {"a": 1})

        response_record = next(r for r in caplog.records if hasattr(r, "response_status"))
        assert response_record.response_status == 200
        assert response_record.duration_ms >= 0
