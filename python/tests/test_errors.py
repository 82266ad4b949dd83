"""Tests for error handling and error responses.

Verifies:
- Every error code maps to the correct HTTP status
- Error responses are plain text reasons, never structured bodies
- Unknown exceptions return 500 without leaking details
- Malformed JSON returns 400
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from restip.errors import (
    ERROR_CODE_TO_STATUS,
    ApiError,
    ApiErrorCode,
    ConflictError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
    UnsupportedFormatError,
)
from restip.responses import error_text_response, unhandled_exception_handler
from tests.helpers import auth_headers


class TestErrorTextResponse:
    """Tests for the plain text error response."""

    def test_body_is_the_reason(self):
        response = error_text_response("Duplicate", 409)

        assert response.status_code == 409
        assert response.body == b"Duplicate"
        assert response.media_type == "text/plain"


class TestErrorCodeToStatus:
    """Tests for error code to HTTP status mapping."""

    def test_all_error_codes_have_status_mapping(self):
        """Every ApiErrorCode has a corresponding HTTP status."""
        for code in ApiErrorCode:
            assert code in ERROR_CODE_TO_STATUS, f"Missing status mapping for {code}"

    @pytest.mark.parametrize(
        "code,expected_status",
        [
            (ApiErrorCode.E_UNAUTHENTICATED, 401),
            (ApiErrorCode.E_FORBIDDEN, 403),
            (ApiErrorCode.E_MESSAGE_PROTECTED, 403),
            (ApiErrorCode.E_NOT_FOUND, 404),
            (ApiErrorCode.E_MESSAGE_NOT_FOUND, 404),
            (ApiErrorCode.E_FOLDER_NOT_FOUND, 404),
            (ApiErrorCode.E_USER_NOT_FOUND, 404),
            (ApiErrorCode.E_INVALID_REQUEST, 400),
            (ApiErrorCode.E_MESSAGE_CREATION_DISABLED, 400),
            (ApiErrorCode.E_FIELD_MISSING, 406),
            (ApiErrorCode.E_NAME_INVALID, 406),
            (ApiErrorCode.E_FOLDER_DUPLICATE, 409),
            (ApiErrorCode.E_AUTH_UNAVAILABLE, 503),
            (ApiErrorCode.E_INTERNAL, 500),
            (ApiErrorCode.E_MESSAGE_CREATE_FAILED, 500),
            (ApiErrorCode.E_USER_DATA_UNREADABLE, 500),
            (ApiErrorCode.E_FORMAT_NOT_IMPLEMENTED, 501),
        ],
    )
    def test_error_code_maps_to_correct_status(self, code: ApiErrorCode, expected_status: int):
        """Each error code maps to the expected HTTP status."""
        assert ERROR_CODE_TO_STATUS[code] == expected_status


class TestApiErrorClass:
    """Tests for ApiError exception classes."""

    def test_api_error_has_code_and_message(self):
        error = ApiError(ApiErrorCode.E_MESSAGE_NOT_FOUND, "Message x not found")

        assert error.code == ApiErrorCode.E_MESSAGE_NOT_FOUND
        assert error.message == "Message x not found"
        assert error.status_code == 404

    def test_not_found_error_defaults(self):
        error = NotFoundError()

        assert error.code == ApiErrorCode.E_NOT_FOUND
        assert error.status_code == 404

    def test_forbidden_error_defaults(self):
        assert ForbiddenError().status_code == 403

    def test_invalid_request_error_defaults(self):
        error = InvalidRequestError()

        assert error.code == ApiErrorCode.E_INVALID_REQUEST
        assert error.status_code == 400

    def test_conflict_error_defaults(self):
        error = ConflictError()

        assert error.message == "Duplicate"
        assert error.status_code == 409

    def test_unsupported_format_error(self):
        error = UnsupportedFormatError("yaml")

        assert error.message == "Not implemented"
        assert error.status_code == 501


class TestRequestErrors:
    """Framework-level errors through the full app."""

    def test_malformed_json_returns_400(self, client: TestClient, viewer_id: str):
        response = client.post(
            "/messages/in",
            content="{invalid json",
            headers={**auth_headers(viewer_id), "content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.text == "Invalid request body"

    def test_unknown_route_returns_404_text(self, client: TestClient, viewer_id: str):
        response = client.get("/messages/in/0/extra", headers=auth_headers(viewer_id))

        assert response.status_code == 404
        assert response.headers["content-type"].startswith("text/plain")

    def test_wrong_method_returns_405(self, client: TestClient, viewer_id: str):
        response = client.put("/messages/in", headers=auth_headers(viewer_id))

        assert response.status_code == 405


class TestUnhandledExceptionHandling:
    """Tests for unhandled exception handling."""

    def test_unhandled_exception_returns_500_without_details(self):
        test_app = FastAPI()

        @test_app.get("/crash")
        def crash_endpoint():
            raise RuntimeError("SECRET_INTERNAL_DETAIL")

        test_app.add_exception_handler(Exception, unhandled_exception_handler)

        client = TestClient(test_app, raise_server_exceptions=False)
        response = client.get("/crash")

        assert response.status_code == 500
        assert response.text == "Internal server error"
        assert "SECRET_INTERNAL_DETAIL" not in response.text
