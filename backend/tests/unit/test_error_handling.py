"""
Unit tests for the error handling middleware and exception taxonomy.
"""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from meditrack.middleware.error_handling import (
    InvalidDurationError,
    NotFoundError,
    ServiceError,
    TransientStoreError,
    ValidationError,
    handle_endpoint_errors,
    setup_error_handling,
)


@pytest.fixture
def error_app() -> FastAPI:
    """A tiny app with one route per failure mode."""
    app = FastAPI()
    setup_error_handling(app, debug=False)

    @app.get("/invalid")
    async def invalid():
        raise InvalidDurationError("bad duration", details={"duration_minutes": "0"})

    @app.get("/missing")
    async def missing():
        raise NotFoundError("Technique 9 not found")

    @app.get("/transient")
    async def transient():
        raise TransientStoreError("store down", details={"operation": "x"})

    @app.get("/crash")
    @handle_endpoint_errors("Crash")
    async def crash():
        raise RuntimeError("secret internals")

    @app.get("/http")
    @handle_endpoint_errors("Teapot")
    async def teapot():
        raise HTTPException(status_code=418, detail="teapot")

    return app


@pytest.fixture
def error_client(error_app) -> TestClient:
    return TestClient(error_app, raise_server_exceptions=False)


class TestExceptionTaxonomy:
    """Status and error codes of the service exceptions."""

    @pytest.mark.parametrize(
        "exc_class,status,code",
        [
            (InvalidDurationError, 422, "invalid_duration"),
            (ValidationError, 422, "validation_error"),
            (NotFoundError, 404, "not_found"),
            (TransientStoreError, 503, "transient_store_failure"),
        ],
        ids=["invalid_duration", "validation", "not_found", "transient"],
    )
    def test_defaults(self, exc_class, status, code):
        exc = exc_class("message")
        assert isinstance(exc, ServiceError)
        assert exc.status_code == status
        assert exc.error_code == code
        assert exc.message == "message"


class TestServiceErrorResponses:
    """ServiceError subclasses become structured JSON responses."""

    def test_invalid_duration_is_422_with_details(self, error_client):
        response = error_client.get("/invalid")

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "invalid_duration"
        assert body["details"] == {"duration_minutes": "0"}
        assert body["error_id"]

    def test_not_found_is_404(self, error_client):
        response = error_client.get("/missing")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_transient_hides_details_outside_debug(self, error_client):
        response = error_client.get("/transient")

        assert response.status_code == 503
        assert response.json()["details"] is None


class TestHandleEndpointErrors:
    """Tests for the endpoint decorator."""

    def test_unexpected_error_is_sanitized(self, error_client):
        response = error_client.get("/crash")

        assert response.status_code == 500
        assert "secret internals" not in response.text

    def test_http_exception_passes_through(self, error_client):
        response = error_client.get("/http")

        assert response.status_code == 418
