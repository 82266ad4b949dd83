"""Response encoding and exception handlers.

Success responses carry the route's return value with no envelope, encoded
in the format negotiated by FormatMiddleware:
- json: application/json
- php:  text/plain;charset=<legacy charset>
- xml:  text/xml;charset=<legacy charset>

Error responses carry only a short text reason with the status code.
"""

from typing import Any

from fastapi import Request
from fastapi.responses import PlainTextResponse
from starlette.background import BackgroundTask
from starlette.responses import Response

from restip.config import get_settings
from restip.errors import ApiError, ApiErrorCode
from restip.formats import DEFAULT_FORMAT, encode, get_format
from restip.logging import get_logger, get_response_format

logger = get_logger(__name__)


class FormattedResponse(Response):
    """Default response class: encodes content in the negotiated format.

    The format is read from the request context set by FormatMiddleware;
    without one (middleware not installed) JSON is used. ``None`` content
    produces an empty body.
    """

    media_type = "application/json"

    def __init__(
        self,
        content: Any = None,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
        media_type: str | None = None,
        background: BackgroundTask | None = None,
    ) -> None:
        self.response_format = get_format(get_response_format() or DEFAULT_FORMAT)
        self.legacy_charset = get_settings().legacy_charset
        if media_type is None:
            media_type = self.response_format.content_type(self.legacy_charset)
        super().__init__(content, status_code, headers, media_type, background)

    def render(self, content: Any) -> bytes:
        if content is None:
            return b""
        return encode(content, self.response_format.name, self.legacy_charset)


def error_text_response(message: str, status_code: int) -> PlainTextResponse:
    """Create a plain text error response with a short reason."""
    return PlainTextResponse(message, status_code=status_code)


async def api_error_handler(request: Request, exc: ApiError) -> PlainTextResponse:
    """Handle ApiError exceptions and return the short reason as text."""
    logger.info(
        "api_error",
        code=exc.code.value,
        status_code=exc.status_code,
        reason=exc.message,
    )
    return error_text_response(exc.message, exc.status_code)


async def http_exception_handler(request: Request, exc: Any) -> PlainTextResponse:
    """Handle Starlette HTTPException (unmatched routes, wrong methods)."""
    message = str(exc.detail) if exc.detail else "An error occurred"
    return error_text_response(message, exc.status_code)


async def validation_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
    """Handle request validation errors (including malformed JSON)."""
    return error_text_response("Invalid request body", 400)


async def unhandled_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
    """Handle unhandled exceptions and return 500.

    Logs the exception server-side but never leaks details to client.
    """
    logger.exception("unhandled_exception", code=ApiErrorCode.E_INTERNAL.value)
    return error_text_response("Internal server error", 500)
