"""User lookup against the host system's account table.

The host owns the user model; this module only reads display data for
message senders and receivers.
"""

from collections.abc import Iterable

from sqlalchemy import bindparam, text
from sqlalchemy.orm import Session

from restip.errors import ApiErrorCode, NotFoundError
from restip.schemas.users import UserOut

USER_QUERY = """
    SELECT user_id, username, Vorname AS forename, Nachname AS lastname,
           Email AS email, perms
    FROM auth_user_md5
"""


def get_users(db: Session, user_ids: Iterable[str]) -> dict[str, UserOut]:
    """Load several users at once.

    Returns:
        Mapping of user id to user, in request order. Unknown ids are absent.
    """
    ids = list(dict.fromkeys(user_ids))
    if not ids:
        return {}

    statement = text(USER_QUERY + " WHERE user_id IN :user_ids").bindparams(
        bindparam("user_ids", expanding=True)
    )
    rows = db.execute(statement, {"user_ids": ids}).mappings().all()

    found = {row["user_id"]: UserOut(**row) for row in rows}
    return {user_id: found[user_id] for user_id in ids if user_id in found}


def get_user(db: Session, user_id: str) -> UserOut | None:
    """Load one user, or None if the id is unknown."""
    return get_users(db, [user_id]).get(user_id)


def get_user_or_404(db: Session, user_id: str) -> UserOut:
    """Load one user or raise NotFoundError."""
    user = get_user(db, user_id)
    if user is None:
        raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, f"User {user_id} not found")
    return user
