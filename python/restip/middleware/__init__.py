"""Middleware modules for the messaging API."""

from restip.middleware.format import SERVER_TIMESTAMP_HEADER, FormatMiddleware
from restip.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware

__all__ = [
    "FormatMiddleware",
    "RequestIDMiddleware",
    "REQUEST_ID_HEADER",
    "SERVER_TIMESTAMP_HEADER",
]
