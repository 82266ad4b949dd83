"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.
Clients only ever see the status code and the short message; the code is
for logs and tests.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Authentication errors (401)
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"

    # Authorization errors (403)
    E_FORBIDDEN = "E_FORBIDDEN"
    E_MESSAGE_PROTECTED = "E_MESSAGE_PROTECTED"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_MESSAGE_NOT_FOUND = "E_MESSAGE_NOT_FOUND"
    E_FOLDER_NOT_FOUND = "E_FOLDER_NOT_FOUND"
    E_USER_NOT_FOUND = "E_USER_NOT_FOUND"

    # Validation errors
    E_INVALID_REQUEST = "E_INVALID_REQUEST"  # 400
    E_MESSAGE_CREATION_DISABLED = "E_MESSAGE_CREATION_DISABLED"  # 400
    E_FIELD_MISSING = "E_FIELD_MISSING"  # 406
    E_NAME_INVALID = "E_NAME_INVALID"  # 406
    E_FOLDER_DUPLICATE = "E_FOLDER_DUPLICATE"  # 409

    # Server errors
    E_AUTH_UNAVAILABLE = "E_AUTH_UNAVAILABLE"  # 503
    E_INTERNAL = "E_INTERNAL"  # 500
    E_MESSAGE_CREATE_FAILED = "E_MESSAGE_CREATE_FAILED"  # 500
    E_USER_DATA_UNREADABLE = "E_USER_DATA_UNREADABLE"  # 500
    E_FORMAT_NOT_IMPLEMENTED = "E_FORMAT_NOT_IMPLEMENTED"  # 501


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_FORBIDDEN: 403,
    ApiErrorCode.E_MESSAGE_PROTECTED: 403,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_MESSAGE_NOT_FOUND: 404,
    ApiErrorCode.E_FOLDER_NOT_FOUND: 404,
    ApiErrorCode.E_USER_NOT_FOUND: 404,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_MESSAGE_CREATION_DISABLED: 400,
    ApiErrorCode.E_FIELD_MISSING: 406,
    ApiErrorCode.E_NAME_INVALID: 406,
    ApiErrorCode.E_FOLDER_DUPLICATE: 409,
    ApiErrorCode.E_AUTH_UNAVAILABLE: 503,
    ApiErrorCode.E_INTERNAL: 500,
    ApiErrorCode.E_MESSAGE_CREATE_FAILED: 500,
    ApiErrorCode.E_USER_DATA_UNREADABLE: 500,
    ApiErrorCode.E_FORMAT_NOT_IMPLEMENTED: 501,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(ApiError):
    """Resource not found error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class ForbiddenError(ApiError):
    """Authorization failure error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_FORBIDDEN, message: str = "Forbidden"):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Invalid request error."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)


class ConflictError(ApiError):
    """Resource state conflict error."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_FOLDER_DUPLICATE, message: str = "Duplicate"
    ):
        super().__init__(code, message)


class UnsupportedFormatError(ApiError):
    """Requested response format has no encoder."""

    def __init__(self, format_name: str):
        self.format_name = format_name
        super().__init__(ApiErrorCode.E_FORMAT_NOT_IMPLEMENTED, "Not implemented")
