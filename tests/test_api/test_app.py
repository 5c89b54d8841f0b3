"""Tests for application wiring: API key middleware and error mapping."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from clinic_booking.api.errors import ERROR_STATUS, register_exception_handlers, status_for
from clinic_booking.config import Settings
from clinic_booking.core.database import get_db
from clinic_booking.scheduling.errors import (
    DoctorNotFound,
    Forbidden,
    InvalidDate,
    SchedulingError,
    SlotUnavailable,
)


@pytest.fixture
def secured_client():
    from clinic_booking.api.app import create_app

    settings = Settings(api_key="s3cret", database_url="sqlite+aiosqlite://")
    with patch("clinic_booking.api.app.get_settings", return_value=settings):
        app = create_app()

    async def _fake_db():
        yield MagicMock()

    app.dependency_overrides[get_db] = _fake_db
    return TestClient(app)


class TestAPIKey:
    def test_health_skips_auth(self, secured_client):
        assert secured_client.get("/health").status_code == 200

    def test_missing_key_rejected(self, secured_client):
        resp = secured_client.get("/api/v1/appointments/not-a-uuid")
        assert resp.status_code == 401
        assert resp.json()["error"] == "Unauthorized"

    def test_wrong_key_rejected(self, secured_client):
        resp = secured_client.get("/api/v1/appointments/not-a-uuid", headers={"X-API-Key": "nope"})
        assert resp.status_code == 401

    def test_bearer_key_accepted(self, secured_client):
        resp = secured_client.get(
            "/api/v1/appointments/not-a-uuid",
            headers={"Authorization": "Bearer s3cret"},
        )
        # Past the middleware; the route rejects the malformed id.
        assert resp.status_code == 400
        assert "X-Process-Time" in resp.headers

    def test_request_id_echoed(self, secured_client):
        resp = secured_client.get("/health", headers={"X-Request-ID": "abc123"})
        assert resp.headers["X-Request-ID"] == "abc123"
        assert secured_client.get("/health").headers["X-Request-ID"]


class TestErrorMapping:
    @pytest.mark.parametrize(
        "exc,status",
        [
            (DoctorNotFound("x"), 404),
            (InvalidDate("x"), 422),
            (SlotUnavailable("x"), 409),
            (Forbidden("x"), 403),
            (SchedulingError("x"), 400),
        ],
    )
    def test_status_for(self, exc, status):
        assert status_for(exc) == status

    def test_every_error_mapped(self):
        assert all(issubclass(cls, SchedulingError) for cls in ERROR_STATUS)

    def test_handler_body(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/boom")
        async def boom():
            raise SlotUnavailable("Slot 2026-10-19 10:00:00 is no longer available")

        resp = TestClient(app).get("/boom")
        assert resp.status_code == 409
        assert resp.json() == {
            "error": "SlotUnavailable",
            "detail": "Slot 2026-10-19 10:00:00 is no longer available",
        }
