"""Response format negotiation middleware.

Clients pick the response encoding with a path suffix
(``/messages/in.xml``) or, without one, with the Accept header:

- ``.json`` / ``application/json``                -> json
- ``.xml``  / ``application/xml``, ``text/xml``   -> xml
- ``.php``  / ``application/vnd.php.serialized``  -> php
- anything else                                   -> json

The suffix is stripped from the path before routing. Any other alphabetic
suffix on the last path segment is answered with 501. Every response,
including errors, gets an ``X-Server-Timestamp`` header.
"""

import re
import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from restip.errors import UnsupportedFormatError
from restip.formats import DEFAULT_FORMAT, FORMATS
from restip.logging import get_logger, set_response_format
from restip.responses import error_text_response

SERVER_TIMESTAMP_HEADER = "X-Server-Timestamp"

# Suffix on the last path segment, e.g. "/messages/in.json"
SUFFIX_RE = re.compile(r"\.([A-Za-z]+)$")

# Served by FastAPI itself, never renegotiated
PASSTHROUGH_PATHS = {"/openapi.json", "/docs", "/redoc"}

ACCEPT_TO_FORMAT = {
    "application/json": "json",
    "application/xml": "xml",
    "text/xml": "xml",
    "application/vnd.php.serialized": "php",
}

logger = get_logger(__name__)


def format_from_accept(accept: str | None) -> str:
    """Pick a format from an Accept header, in the client's listed order."""
    if not accept:
        return DEFAULT_FORMAT

    for part in accept.split(","):
        media_type = part.split(";", 1)[0].strip().lower()
        if media_type in ACCEPT_TO_FORMAT:
            return ACCEPT_TO_FORMAT[media_type]

    return DEFAULT_FORMAT


def negotiate_format(path: str, accept: str | None = None) -> tuple[str, str]:
    """Split a request path into the routable path and the response format.

    Args:
        path: Raw request path, possibly ending in ``.json``/``.php``/``.xml``.
        accept: The Accept header, consulted only when there is no suffix.

    Returns:
        Tuple of (path without suffix, format name).

    Raises:
        UnsupportedFormatError: If the path ends in an unknown suffix.
    """
    match = SUFFIX_RE.search(path)
    if match is None:
        return path, format_from_accept(accept)

    suffix = match.group(1).lower()
    if suffix not in FORMATS:
        raise UnsupportedFormatError(suffix)

    return path[: match.start()] or "/", suffix


class FormatMiddleware(BaseHTTPMiddleware):
    """Strip the format suffix, record the format, stamp the response.

    The negotiated format goes to ``request.state.response_format`` and to
    the logging context, where FormattedResponse picks it up.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in PASSTHROUGH_PATHS:
            response = await call_next(request)
            response.headers[SERVER_TIMESTAMP_HEADER] = str(int(time.time()))
            return response

        try:
            path, response_format = negotiate_format(
                request.url.path, request.headers.get("accept")
            )
        except UnsupportedFormatError as e:
            logger.info("format_not_implemented", requested_format=e.format_name)
            response = error_text_response(e.message, e.status_code)
        else:
            if path != request.url.path:
                request.scope["path"] = path
                request.scope["raw_path"] = path.encode("utf-8")
            request.state.response_format = response_format
            set_response_format(response_format)
            response = await call_next(request)

        response.headers[SERVER_TIMESTAMP_HEADER] = str(int(time.time()))
        return response
