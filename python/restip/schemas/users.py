"""User Pydantic schemas."""

from pydantic import BaseModel


class UserOut(BaseModel):
    """Display data of a host system user."""

    user_id: str
    username: str
    forename: str | None = None
    lastname: str | None = None
    email: str | None = None
    perms: str | None = None
