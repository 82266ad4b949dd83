"""FastAPI dependencies for route handlers.

Common dependencies like database sessions, settings, the viewer and
request bodies.
"""

import json
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError

from restip.auth.middleware import get_viewer
from restip.config import get_settings
from restip.db.session import get_db, get_session_factory
from restip.errors import ApiErrorCode, InvalidRequestError

__all__ = [
    "get_db",
    "get_session_factory",
    "get_settings",
    "get_viewer",
    "parsed_body",
    "read_body_fields",
]

ModelT = TypeVar("ModelT", bound=BaseModel)

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def _invalid_body() -> InvalidRequestError:
    return InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "Invalid request body")


async def read_body_fields(request: Request) -> dict[str, Any]:
    """Read a request body as a mapping of fields.

    Form bodies, as the host's own clients post them, and JSON objects are
    both accepted. An empty body has no fields. Repeated form fields and
    ``name[]`` fields become lists under ``name``.

    Raises:
        InvalidRequestError(E_INVALID_REQUEST): Body is not a JSON object.
    """
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()

    if content_type in FORM_CONTENT_TYPES:
        form = await request.form()
        fields: dict[str, Any] = {}
        for key in dict.fromkeys(form.keys()):
            values = [value for value in form.getlist(key) if isinstance(value, str)]
            if not values:
                continue
            if key.endswith("[]"):
                fields.setdefault(key[:-2], []).extend(values)
            else:
                fields[key] = values if len(values) > 1 else values[0]
        return fields

    body = await request.body()
    if not body.strip():
        return {}

    try:
        data = json.loads(body)
    except ValueError as e:
        raise _invalid_body() from e
    if not isinstance(data, dict):
        raise _invalid_body()
    return data


def parsed_body(model: type[ModelT]) -> Callable[[Request], Awaitable[ModelT]]:
    """Build a dependency that validates the request body fields as a model.

    Raises:
        InvalidRequestError(E_INVALID_REQUEST): Fields have the wrong types.
    """

    async def dependency(request: Request) -> ModelT:
        fields = await read_body_fields(request)
        try:
            return model.model_validate(fields)
        except ValidationError as e:
            raise _invalid_body() from e

    return dependency
