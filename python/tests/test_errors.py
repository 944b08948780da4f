"""Tests for error handling and response rendering.

Verifies:
- Every error code maps to the right HTTP status
- Error classes carry the wire messages by default
- JSON and plain-text error rendering
- Unknown exceptions return 500 without leaking details
"""

import pytest
from fastapi.testclient import TestClient

from licensor.app import create_app
from licensor.errors import (
    ERROR_CODE_TO_STATUS,
    ApiError,
    ApiErrorCode,
    AuthFailedError,
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
)
from licensor.responses import error_response


class TestErrorResponse:
    """Tests for the JSON error envelope."""

    def test_error_response_has_correct_shape(self):
        response = error_response(404, "Not Found", "req-1")

        assert response == {"error": {"code": 404, "message": "Not Found", "request_id": "req-1"}}

    def test_request_id_omitted_outside_a_request(self):
        response = error_response(400, "Provider missing")
        assert response == {"error": {"code": 400, "message": "Provider missing"}}


class TestErrorCodeToStatus:
    """Tests for error code to HTTP status mapping."""

    def test_all_error_codes_have_status_mapping(self):
        for code in ApiErrorCode:
            assert code in ERROR_CODE_TO_STATUS, f"Missing status mapping for {code}"

    @pytest.mark.parametrize(
        "code,expected_status",
        [
            (ApiErrorCode.E_INVALID_REQUEST, 400),
            (ApiErrorCode.E_PROVIDER_MISSING, 400),
            (ApiErrorCode.E_NAME_MISSING, 400),
            (ApiErrorCode.E_NAME_INVALID, 400),
            (ApiErrorCode.E_CONTENT_ID_INVALID, 400),
            (ApiErrorCode.E_SEQUENCE_ID_INVALID, 400),
            (ApiErrorCode.E_FLAGS_INVALID, 400),
            (ApiErrorCode.E_SIGNATURE_INVALID, 401),
            (ApiErrorCode.E_TOKEN_INVALID, 401),
            (ApiErrorCode.E_FORBIDDEN, 403),
            (ApiErrorCode.E_NOT_FOUND, 404),
            (ApiErrorCode.E_PROVIDER_NOT_FOUND, 404),
            (ApiErrorCode.E_LICENSE_NOT_FOUND, 404),
            (ApiErrorCode.E_NAME_EXISTS, 409),
            (ApiErrorCode.E_LICENSE_EXISTS, 409),
            (ApiErrorCode.E_INTERNAL, 500),
        ],
    )
    def test_error_code_maps_to_correct_status(self, code: ApiErrorCode, expected_status: int):
        assert ERROR_CODE_TO_STATUS[code] == expected_status


class TestApiErrorClass:
    """Tests for ApiError and its subclasses."""

    def test_api_error_derives_status_code(self):
        error = ApiError(ApiErrorCode.E_FORBIDDEN, "Access denied")

        assert error.code == ApiErrorCode.E_FORBIDDEN
        assert error.message == "Access denied"
        assert error.status_code == 403

    @pytest.mark.parametrize(
        "error,status,message",
        [
            (InvalidArgumentError(), 400, "Bad Request"),
            (AuthFailedError(), 401, "Missing or invalid signature"),
            (ForbiddenError(), 403, "Forbidden"),
            (NotFoundError(), 404, "Not Found"),
            (ConflictError(), 409, "Conflict"),
            (InternalError(), 500, "Internal Server Error"),
        ],
    )
    def test_defaults(self, error, status, message):
        assert error.status_code == status
        assert error.message == message


class TestUnhandledExceptionHandling:
    """Tests for unhandled exception handling."""

    @pytest.fixture
    def crash_client(self, server):
        app = create_app(server, log_requests=False)

        @app.get("/crash.json")
        @app.get("/crash")
        def crash_endpoint():
            raise RuntimeError("SECRET_INTERNAL_DETAIL")

        with TestClient(app, raise_server_exceptions=False) as client:
            yield client

    def test_unhandled_exception_returns_500_json(self, crash_client):
        response = crash_client.get("/crash.json")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == 500
        assert response.json()["error"]["message"] == "Internal Server Error"

    def test_unhandled_exception_returns_500_plain(self, crash_client):
        response = crash_client.get("/crash")

        assert response.status_code == 500
        assert response.text == "Internal Server Error"

    def test_unhandled_exception_does_not_leak_details(self, crash_client):
        assert "SECRET_INTERNAL_DETAIL" not in crash_client.get("/crash.json").text
        assert "SECRET_INTERNAL_DETAIL" not in crash_client.get("/crash").text
