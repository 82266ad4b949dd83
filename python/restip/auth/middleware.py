"""Authentication middleware for FastAPI.

Provides:
- Viewer: the authenticated acting user of one request
- AuthMiddleware: bearer token verification on every non-public path
- get_viewer: Dependency for accessing the viewer in route handlers
"""

import logging
from dataclasses import dataclass

from fastapi import Request
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from restip.auth.verifier import TokenVerifier
from restip.errors import ApiError, ApiErrorCode
from restip.responses import error_text_response

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "authorization"

# Paths that don't require authentication (after format suffix stripping)
PUBLIC_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


@dataclass(frozen=True)
class Viewer:
    """Authenticated viewer identity.

    Attributes:
        user_id: Host system user id (from the token's sub claim).
        consumer_key: OAuth client the token was issued to, if the token says.
    """

    user_id: str
    consumer_key: str | None = None


class AuthMiddleware(BaseHTTPMiddleware):
    """Authentication middleware.

    Order of checks:
    1. Skip if public path
    2. Extract and parse bearer token
    3. Verify token via TokenVerifier
    4. Attach Viewer to request state
    """

    def __init__(self, app: ASGIApp, verifier: TokenVerifier):
        super().__init__(app)
        self.verifier = verifier

    async def dispatch(self, request: Request, call_next) -> PlainTextResponse:
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        token, error = self._extract_bearer_token(request)
        if error is not None:
            return error

        try:
            payload = self.verifier.verify(token)
        except ApiError as e:
            return error_text_response(e.message, e.status_code)

        request.state.viewer = Viewer(
            user_id=payload["sub"],
            consumer_key=payload.get("client_id") or payload.get("azp"),
        )

        return await call_next(request)

    def _extract_bearer_token(self, request: Request) -> tuple[str, PlainTextResponse | None]:
        """Extract bearer token from Authorization header.

        Returns:
            Tuple of (token, error_response). Token is empty string if error.
        """
        auth_header = request.headers.get(AUTHORIZATION_HEADER)

        if not auth_header:
            logger.warning(
                "auth_failure",
                extra={"reason": "missing_header", "request_path": request.url.path},
            )
            return "", error_text_response("Authentication required", 401)

        if not auth_header.lower().startswith("bearer "):
            logger.warning(
                "auth_failure",
                extra={"reason": "invalid_header_format", "request_path": request.url.path},
            )
            return "", error_text_response("Invalid authorization header format", 401)

        token = auth_header[7:].strip()
        if not token:
            logger.warning(
                "auth_failure",
                extra={"reason": "invalid_header_format", "request_path": request.url.path},
            )
            return "", error_text_response("Invalid authorization header format", 401)

        return token, None


def get_viewer(request: Request) -> Viewer:
    """FastAPI dependency to get the authenticated viewer.

    Raises:
        ApiError: If viewer is not set (middleware didn't run or path is public).
    """
    viewer = getattr(request.state, "viewer", None)
    if viewer is None:
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Authentication required")
    return viewer
