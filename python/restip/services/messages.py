"""Message service layer.

Messages are stored across two host tables:
- ``message``: the shared content, written once by the author
- ``message_user``: one delivery row per participant with that
  participant's folder, read and deleted flags (``snd_rec`` = 'snd' for
  the author, 'rec' for each recipient)

A message is visible to a user while their delivery row is not deleted.
Every function takes the acting user id explicitly.
"""

import hashlib
import time
import uuid
from collections.abc import Iterable

from sqlalchemy import bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from restip.db.session import transaction
from restip.errors import (
    ApiError,
    ApiErrorCode,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
)
from restip.logging import get_logger
from restip.schemas.messages import FolderMessagesOut, MessageOut
from restip.services.folders import Box, folder_exists
from restip.services.formatting import format_ready
from restip.services.user_settings import get_user_data
from restip.services.users import get_user, get_users

logger = get_logger(__name__)

BOX_TO_SND_REC = {"in": "rec", "out": "snd"}
SND_REC_TO_BOX = {"rec": "in", "snd": "out"}

DEFAULT_PRIORITY = "normal"

# The viewer's delivery row (mu) plus, when there is one, a delivery row of
# another participant (mu2) as the counterpart.
LOAD_QUERY = """
    SELECT m.message_id, m.autor_id AS sender_id, mu2.user_id AS receiver_id,
           m.subject, m.message, m.mkdate, m.priority, 1 - mu.readed AS unread,
           mu.dont_delete, mu.snd_rec, mu2.snd_rec AS counterpart_snd_rec
    FROM message AS m
    INNER JOIN message_user AS mu
        ON m.message_id = mu.message_id AND mu.user_id = :user_id
    LEFT JOIN message_user AS mu2
        ON mu.message_id = mu2.message_id AND mu2.user_id != mu.user_id
    WHERE m.message_id IN :message_ids AND mu.deleted = 0
    ORDER BY m.mkdate DESC, m.message_id
"""


# =============================================================================
# Loading
# =============================================================================


def _counterpart_rank(row) -> int:
    if row["counterpart_snd_rec"] is None:
        return 2
    if row["counterpart_snd_rec"] != row["snd_rec"]:
        return 0
    return 1


def load_messages(db: Session, user_id: str, message_ids: Iterable[str]) -> list[MessageOut]:
    """Load the messages visible to a user, newest first.

    For each message the counterpart is a participant on the other side of
    the conversation where possible: the author for received messages, the
    first recipient for sent ones. A message sent to oneself has the viewer
    as receiver. Bodies are display-formatted.
    """
    ids = list(dict.fromkeys(message_ids))
    if not ids:
        return []

    statement = text(LOAD_QUERY).bindparams(bindparam("message_ids", expanding=True))
    rows = db.execute(statement, {"user_id": user_id, "message_ids": ids}).mappings().all()

    best: dict[str, dict] = {}
    for row in rows:
        current = best.get(row["message_id"])
        if current is None or _counterpart_rank(row) < _counterpart_rank(current):
            best[row["message_id"]] = row

    return [
        MessageOut(
            message_id=row["message_id"],
            sender_id=row["sender_id"],
            receiver_id=row["receiver_id"] or user_id,
            subject=row["subject"] or "",
            message=format_ready(row["message"]),
            mkdate=int(row["mkdate"] or 0),
            priority=row["priority"] or DEFAULT_PRIORITY,
            unread=int(row["unread"]),
            dont_delete=bool(row["dont_delete"]),
            box=SND_REC_TO_BOX.get(row["snd_rec"]),
        )
        for row in best.values()
    ]


def load_message(db: Session, user_id: str, message_id: str) -> MessageOut | None:
    """Load one message visible to a user, or None."""
    messages = load_messages(db, user_id, [message_id])
    return messages[0] if messages else None


def get_message_or_404(db: Session, user_id: str, message_id: str) -> MessageOut:
    """Load one message visible to a user or raise NotFoundError."""
    message = load_message(db, user_id, message_id)
    if message is None:
        raise NotFoundError(ApiErrorCode.E_MESSAGE_NOT_FOUND, f"Message {message_id} not found")
    return message


def folder_message_ids(db: Session, user_id: str, box: Box, folder: int) -> list[str]:
    """Ids of the undeleted messages in one folder of a user's box."""
    result = db.execute(
        text("""
            SELECT message_id
            FROM message_user
            WHERE snd_rec = :snd_rec AND folder = :folder
              AND user_id = :user_id AND deleted = 0
        """),
        {"snd_rec": BOX_TO_SND_REC[box], "folder": folder, "user_id": user_id},
    )
    return list(result.scalars().all())


def list_folder(db: Session, user_id: str, box: Box, folder: int) -> FolderMessagesOut:
    """List the messages of a folder together with their participants.

    Raises:
        NotFoundError(E_FOLDER_NOT_FOUND): Folder is neither 0 nor one of
            the user's folders in the box.
    """
    if not folder_exists(get_user_data(db, user_id), box, folder):
        raise NotFoundError(ApiErrorCode.E_FOLDER_NOT_FOUND, f"Folder {box}-{folder} not found")

    messages = load_messages(db, user_id, folder_message_ids(db, user_id, box, folder))

    participant_ids = []
    for message in messages:
        participant_ids.extend((message.sender_id, message.receiver_id))

    return FolderMessagesOut(messages=messages, users=get_users(db, participant_ids))


# =============================================================================
# Mutations
# =============================================================================


def create_message(
    db: Session,
    sender_id: str,
    subject: str | None,
    body: str | None,
    receiver_ids: list[str],
) -> MessageOut:
    """Write a message from sender to each receiver.

    Returns:
        The created message as the sender sees it.

    Raises:
        InvalidRequestError(E_FIELD_MISSING): Subject, body or receivers missing.
        NotFoundError(E_USER_NOT_FOUND): A receiver id is unknown.
        ApiError(E_MESSAGE_CREATE_FAILED): The rows could not be written.
    """
    subject = (subject or "").strip()
    if not subject:
        raise InvalidRequestError(ApiErrorCode.E_FIELD_MISSING, "No subject provided")

    body = (body or "").strip()
    if not body:
        raise InvalidRequestError(ApiErrorCode.E_FIELD_MISSING, "No message provided")

    receiver_ids = list(dict.fromkeys(r.strip() for r in receiver_ids if r and r.strip()))
    if not receiver_ids:
        raise InvalidRequestError(ApiErrorCode.E_FIELD_MISSING, "No receiver provided")

    for receiver_id in receiver_ids:
        if get_user(db, receiver_id) is None:
            raise NotFoundError(
                ApiErrorCode.E_USER_NOT_FOUND, f"Receiver user id {receiver_id} not found"
            )

    message_id = hashlib.md5(uuid.uuid4().bytes).hexdigest()
    now = int(time.time())

    delivery = text("""
        INSERT INTO message_user
            (message_id, user_id, snd_rec, folder, readed, deleted, dont_delete, mkdate)
        VALUES (:message_id, :user_id, :snd_rec, 0, :readed, 0, 0, :mkdate)
    """)

    try:
        with transaction(db):
            result = db.execute(
                text("""
                    INSERT INTO message (message_id, autor_id, subject, message, mkdate, priority)
                    VALUES (:message_id, :autor_id, :subject, :message, :mkdate, :priority)
                """),
                {
                    "message_id": message_id,
                    "autor_id": sender_id,
                    "subject": subject,
                    "message": body,
                    "mkdate": now,
                    "priority": DEFAULT_PRIORITY,
                },
            )
            if result.rowcount != 1:
                raise ApiError(ApiErrorCode.E_MESSAGE_CREATE_FAILED, "Could not create message")

            db.execute(
                delivery,
                {
                    "message_id": message_id,
                    "user_id": sender_id,
                    "snd_rec": "snd",
                    "readed": 1,
                    "mkdate": now,
                },
            )
            for receiver_id in receiver_ids:
                db.execute(
                    delivery,
                    {
                        "message_id": message_id,
                        "user_id": receiver_id,
                        "snd_rec": "rec",
                        "readed": 0,
                        "mkdate": now,
                    },
                )
    except SQLAlchemyError as e:
        logger.exception("message_create_failed", message_id=message_id)
        raise ApiError(ApiErrorCode.E_MESSAGE_CREATE_FAILED, "Could not create message") from e

    logger.info("message_created", message_id=message_id, receiver_count=len(receiver_ids))
    return get_message_or_404(db, sender_id, message_id)


def delete_message(db: Session, user_id: str, message_id: str) -> None:
    """Delete a message for a user.

    The user's delivery row is flagged deleted. Once no participant has an
    undeleted delivery row left, the message and its delivery rows are
    removed.

    Raises:
        NotFoundError(E_MESSAGE_NOT_FOUND): Message not visible to the user.
        ForbiddenError(E_MESSAGE_PROTECTED): Message is flagged dont_delete.
    """
    message = get_message_or_404(db, user_id, message_id)
    if message.dont_delete:
        raise ForbiddenError(ApiErrorCode.E_MESSAGE_PROTECTED, "Message shall not be deleted")

    params = {"message_id": message_id, "user_id": user_id}

    with transaction(db):
        db.execute(
            text("""
                UPDATE message_user SET deleted = 1
                WHERE message_id = :message_id AND user_id = :user_id
            """),
            params,
        )
        remaining = db.execute(
            text("""
                SELECT COUNT(*) FROM message_user
                WHERE message_id = :message_id AND deleted = 0
            """),
            params,
        ).scalar()

        if not remaining:
            db.execute(text("DELETE FROM message_user WHERE message_id = :message_id"), params)
            db.execute(text("DELETE FROM message WHERE message_id = :message_id"), params)

    logger.info("message_deleted", message_id=message_id, purged=not remaining)


def mark_read(session_factory: sessionmaker[Session], user_id: str, message_id: str) -> None:
    """Set the read flag of a user's delivery row.

    Runs after the response has been sent, in its own session. Failures
    are logged and not retried.
    """
    db = session_factory()
    try:
        with transaction(db):
            db.execute(
                text("""
                    UPDATE message_user SET readed = 1
                    WHERE message_id = :message_id AND user_id = :user_id
                """),
                {"message_id": message_id, "user_id": user_id},
            )
        logger.info("message_marked_read", message_id=message_id)
    except SQLAlchemyError:
        logger.exception("message_mark_read_failed", message_id=message_id)
    finally:
        db.close()


def move_message(db: Session, user_id: str, message_id: str, folder: int) -> None:
    """Move a message into another folder of the same box.

    The box is the one the user's delivery row belongs to: received
    messages move between inbox folders, sent ones between outbox folders.

    Raises:
        NotFoundError(E_MESSAGE_NOT_FOUND): Message not visible to the user.
        NotFoundError(E_FOLDER_NOT_FOUND): Folder does not exist in that box.
    """
    message = get_message_or_404(db, user_id, message_id)
    box = message.box or "in"

    if not folder_exists(get_user_data(db, user_id), box, folder):
        raise NotFoundError(ApiErrorCode.E_FOLDER_NOT_FOUND, f"Folder {box}-{folder} not found")

    with transaction(db):
        db.execute(
            text("""
                UPDATE message_user SET folder = :folder
                WHERE message_id = :message_id AND user_id = :user_id AND snd_rec = :snd_rec
            """),
            {
                "folder": folder,
                "message_id": message_id,
                "user_id": user_id,
                "snd_rec": BOX_TO_SND_REC[box],
            },
        )

    logger.info("message_moved", message_id=message_id, box=box, folder=folder)
