"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.
Each error class matches one kind of failure the service reports:
invalid argument, failed authentication, forbidden, not found, conflict
and internal.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_PROVIDER_MISSING = "E_PROVIDER_MISSING"
    E_NAME_MISSING = "E_NAME_MISSING"
    E_NAME_INVALID = "E_NAME_INVALID"
    E_CONTENT_ID_INVALID = "E_CONTENT_ID_INVALID"
    E_SEQUENCE_ID_INVALID = "E_SEQUENCE_ID_INVALID"
    E_FLAGS_INVALID = "E_FLAGS_INVALID"

    # Authentication errors (401)
    E_SIGNATURE_INVALID = "E_SIGNATURE_INVALID"
    E_TOKEN_INVALID = "E_TOKEN_INVALID"

    # Authorization errors (403)
    E_FORBIDDEN = "E_FORBIDDEN"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_PROVIDER_NOT_FOUND = "E_PROVIDER_NOT_FOUND"
    E_LICENSE_NOT_FOUND = "E_LICENSE_NOT_FOUND"

    # Conflict errors (409)
    E_NAME_EXISTS = "E_NAME_EXISTS"
    E_LICENSE_EXISTS = "E_LICENSE_EXISTS"

    # Server errors (500)
    E_INTERNAL = "E_INTERNAL"


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_PROVIDER_MISSING: 400,
    ApiErrorCode.E_NAME_MISSING: 400,
    ApiErrorCode.E_NAME_INVALID: 400,
    ApiErrorCode.E_CONTENT_ID_INVALID: 400,
    ApiErrorCode.E_SEQUENCE_ID_INVALID: 400,
    ApiErrorCode.E_FLAGS_INVALID: 400,
    ApiErrorCode.E_SIGNATURE_INVALID: 401,
    ApiErrorCode.E_TOKEN_INVALID: 401,
    ApiErrorCode.E_FORBIDDEN: 403,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_PROVIDER_NOT_FOUND: 404,
    ApiErrorCode.E_LICENSE_NOT_FOUND: 404,
    ApiErrorCode.E_NAME_EXISTS: 409,
    ApiErrorCode.E_LICENSE_EXISTS: 409,
    ApiErrorCode.E_INTERNAL: 500,
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


class InvalidArgumentError(ApiError):
    """Malformed or missing request field."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Bad Request"
    ):
        super().__init__(code, message)


class AuthFailedError(ApiError):
    """Missing or invalid signature or token."""

    def __init__(
        self,
        code: ApiErrorCode = ApiErrorCode.E_SIGNATURE_INVALID,
        message: str = "Missing or invalid signature",
    ):
        super().__init__(code, message)


class ForbiddenError(ApiError):
    """Authenticated, but lacking the required permission flag."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_FORBIDDEN, message: str = "Forbidden"):
        super().__init__(code, message)


class NotFoundError(ApiError):
    """Resource not found error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not Found"):
        super().__init__(code, message)


class ConflictError(ApiError):
    """Resource already exists."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NAME_EXISTS, message: str = "Conflict"):
        super().__init__(code, message)


class InternalError(ApiError):
    """Store or crypto failure. The message never carries internal detail."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INTERNAL, message: str = "Internal Server Error"
    ):
        super().__init__(code, message)
