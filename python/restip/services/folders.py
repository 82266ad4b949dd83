"""Message folders.

Folders are per user and per box (``in`` / ``out``) and live in the user's
settings blob under ``my_messaging_settings.folder.<box>`` as a mapping of
folder id to name. Folder ``0`` is the implicit default folder of each box
and is never stored; its name is localized.
"""

import re
from typing import Any, Literal

from sqlalchemy.orm import Session

from restip.errors import ApiErrorCode, ConflictError, InvalidRequestError
from restip.logging import get_logger
from restip.services.user_settings import get_user_data, set_user_data

logger = get_logger(__name__)

Box = Literal["in", "out"]

BOXES: tuple[Box, ...] = ("in", "out")

SETTINGS_KEY = "my_messaging_settings"

DEFAULT_FOLDER_ID = 0

DEFAULT_FOLDER_NAMES: dict[str, dict[str, str]] = {
    "de": {"in": "Posteingang", "out": "Postausgang"},
    "en": {"in": "Inbox", "out": "Outbox"},
}

FOLDER_NAME_RE = re.compile(r"^[a-z0-9]+$")


def default_folder_name(box: str, language: str) -> str:
    names = DEFAULT_FOLDER_NAMES.get(language, DEFAULT_FOLDER_NAMES["en"])
    return names[box]


def stored_folders(data: dict[str, Any], box: str) -> dict[int, str]:
    """Extract the stored folders of one box from a settings blob.

    Accepts both the mapping form and a plain list (ids are list positions).
    Entries with non-numeric ids are ignored.
    """
    settings = data.get(SETTINGS_KEY)
    boxes = settings.get("folder") if isinstance(settings, dict) else None
    raw = boxes.get(box) if isinstance(boxes, dict) else None

    if isinstance(raw, list):
        raw = dict(enumerate(raw))
    elif not isinstance(raw, dict):
        return {}

    folders: dict[int, str] = {}
    for key, name in raw.items():
        try:
            folder_id = int(key)
        except (TypeError, ValueError):
            continue
        if folder_id != DEFAULT_FOLDER_ID and isinstance(name, str):
            folders[folder_id] = name
    return folders


def folder_exists(data: dict[str, Any], box: str, folder_id: int) -> bool:
    """Whether a folder id names a folder of the box (0 always does)."""
    return folder_id == DEFAULT_FOLDER_ID or folder_id in stored_folders(data, box)


def list_folders(db: Session, user_id: str, box: Box, language: str) -> dict[int, str]:
    """Return the folder map of one box, default folder first."""
    folders = {DEFAULT_FOLDER_ID: default_folder_name(box, language)}
    folders.update(sorted(stored_folders(get_user_data(db, user_id), box).items()))
    return folders


def create_folder(db: Session, user_id: str, box: Box, name: str | None, language: str) -> int:
    """Append a folder to a box.

    Returns:
        The new folder's id.

    Raises:
        InvalidRequestError(E_FIELD_MISSING): Name missing or blank.
        InvalidRequestError(E_NAME_INVALID): Name not made of [a-z0-9].
        ConflictError(E_FOLDER_DUPLICATE): Name already used in the box,
            including the default folder's name.
    """
    name = (name or "").strip()
    if not name:
        raise InvalidRequestError(ApiErrorCode.E_FIELD_MISSING, "No folder name provided")
    if not FOLDER_NAME_RE.match(name):
        raise InvalidRequestError(ApiErrorCode.E_NAME_INVALID, "Invalid folder name provided")

    data = get_user_data(db, user_id)
    folders = stored_folders(data, box)

    if name in folders.values() or name == default_folder_name(box, language):
        raise ConflictError(ApiErrorCode.E_FOLDER_DUPLICATE, "Duplicate")

    folder_id = max(folders, default=DEFAULT_FOLDER_ID) + 1
    folders[folder_id] = name

    settings = data.get(SETTINGS_KEY)
    if not isinstance(settings, dict):
        settings = data[SETTINGS_KEY] = {}
    if not isinstance(settings.get("folder"), dict):
        settings["folder"] = {}
    settings["folder"][box] = dict(sorted(folders.items()))
    set_user_data(db, user_id, data)

    logger.info("folder_created", box=box, folder_id=folder_id)
    return folder_id
