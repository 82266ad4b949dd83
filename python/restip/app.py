"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, auth middleware, format middleware,
request-id middleware, and routes.

Middleware Ordering (Critical):
- Middleware runs in reverse order of registration
- FormatMiddleware is added after AuthMiddleware so it runs before it:
  auth sees the path without its format suffix, and auth failures still
  get X-Server-Timestamp
- RequestIDMiddleware is added LAST (add_request_id_middleware) so it runs
  FIRST and every response carries X-Request-ID

Actual execution order per request:
1. RequestIDMiddleware (sets request_id, starts timer)
2. FormatMiddleware (strips suffix, negotiates format)
3. AuthMiddleware (verifies bearer token, sets viewer)
4. Route handler (returns data, FormattedResponse encodes it)
5. FormatMiddleware (adds X-Server-Timestamp)
6. RequestIDMiddleware (logs, sets response header)
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from restip.api.routes import create_api_router
from restip.auth.middleware import AuthMiddleware
from restip.auth.verifier import JwksTokenVerifier, TokenVerifier
from restip.config import get_settings
from restip.errors import ApiError
from restip.logging import configure_logging, get_logger
from restip.middleware.format import FormatMiddleware
from restip.middleware.request_id import RequestIDMiddleware
from restip.responses import (
    FormattedResponse,
    api_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)

logger = get_logger(__name__)


def create_token_verifier() -> JwksTokenVerifier:
    """Create the token verifier from settings.

    Returns:
        JwksTokenVerifier pointed at the host's authorization server.
    """
    settings = get_settings()

    return JwksTokenVerifier(
        jwks_url=settings.oauth_jwks_url,  # type: ignore
        issuer=settings.normalized_issuer,  # type: ignore
        audiences=settings.audience_list,
    )


def create_app(
    skip_auth_middleware: bool = False,
    token_verifier: TokenVerifier | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        skip_auth_middleware: If True, skip adding auth middleware (for testing).
        token_verifier: Optional custom token verifier (for testing).

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    configure_logging(json_format=settings.log_json)

    app = FastAPI(
        title="Rest.IP Messages",
        description="Private messages and message folders of the host system",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        default_response_class=FormattedResponse,
    )

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(create_api_router())

    if not skip_auth_middleware:
        verifier = token_verifier or create_token_verifier()
        app.add_middleware(AuthMiddleware, verifier=verifier)
        logger.info("auth_middleware_enabled", env=settings.restip_env.value)

    app.add_middleware(FormatMiddleware)

    logger.info(
        "app_created",
        message_creation_enabled=settings.message_creation_enabled,
        legacy_charset=settings.legacy_charset,
    )
    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware to the app.

    This should be called AFTER all other middleware is added, so it runs FIRST.

    Args:
        app: The FastAPI application.
        log_requests: Whether to log access entries for each request.
    """
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
