"""Per-user settings blob stored in the host's ``user_data`` table.

One row per user (``sid`` = user id), ``val`` holding the host's PHP
``serialize()`` form of an array, in the legacy charset. The blob is shared
with the host system, so keys this service does not know about are kept as
read. There is no versioning: the last writer wins.
"""

import time
from typing import Any

from sqlalchemy import text
from sqlalchemy.orm import Session

from restip.config import get_settings
from restip.db.session import transaction
from restip.errors import ApiError, ApiErrorCode
from restip.formats import php_serialize, php_unserialize
from restip.logging import get_logger

logger = get_logger(__name__)


def get_user_data(db: Session, user_id: str) -> dict[Any, Any]:
    """Load a user's settings blob.

    A missing row or an empty value reads as an empty mapping. PHP arrays
    come back as dicts with int keys for numeric keys.

    Raises:
        ApiError(E_USER_DATA_UNREADABLE): The stored value is not a
            serialized array. It must not be overwritten.
    """
    val = db.execute(
        text("SELECT val FROM user_data WHERE sid = :user_id"),
        {"user_id": user_id},
    ).scalar()

    if not val:
        return {}

    try:
        data = php_unserialize(val, get_settings().legacy_charset)
    except ValueError as e:
        logger.error("user_data_unreadable", settings_user_id=user_id)
        raise ApiError(ApiErrorCode.E_USER_DATA_UNREADABLE, "Could not read user data") from e

    if not isinstance(data, dict):
        logger.error("user_data_unreadable", settings_user_id=user_id)
        raise ApiError(ApiErrorCode.E_USER_DATA_UNREADABLE, "Could not read user data")

    return data


def set_user_data(db: Session, user_id: str, data: dict[Any, Any]) -> None:
    """Replace a user's settings blob."""
    params = {
        "user_id": user_id,
        "val": php_serialize(data, get_settings().legacy_charset),
        "changed": int(time.time()),
    }

    with transaction(db):
        result = db.execute(
            text("UPDATE user_data SET val = :val, changed = :changed WHERE sid = :user_id"),
            params,
        )
        if result.rowcount == 0:
            db.execute(
                text("INSERT INTO user_data (sid, val, changed) VALUES (:user_id, :val, :changed)"),
                params,
            )
