"""Message and folder Pydantic schemas.

Contains request and response models for the message endpoints. Request
fields are optional at the schema level so that missing values reach the
services, which answer them with 406 rather than a validation error.
"""

from pydantic import BaseModel, Field

from restip.schemas.users import UserOut

__all__ = [
    "CreateFolderRequest",
    "CreateMessageRequest",
    "FolderMessagesOut",
    "MessageOut",
]

# =============================================================================
# Request Schemas
# =============================================================================


class CreateFolderRequest(BaseModel):
    """Request body for creating a folder in a box."""

    folder: str | None = Field(default=None, description="Folder name, [a-z0-9]+")


class CreateMessageRequest(BaseModel):
    """Request body for writing a message."""

    subject: str | None = Field(default=None, description="Message subject")
    message: str | None = Field(default=None, description="Message body")
    user_id: list[str] | str | None = Field(
        default=None, description="Receiver user id, or a list of them"
    )

    @property
    def receiver_ids(self) -> list[str]:
        if self.user_id is None:
            return []
        if isinstance(self.user_id, str):
            return [self.user_id]
        return list(self.user_id)


# =============================================================================
# Response Schemas
# =============================================================================


class MessageOut(BaseModel):
    """A message as seen by one participant.

    ``sender_id`` is always the author; ``receiver_id`` is the other party
    of the viewer's delivery row. ``message`` is the display-formatted body.
    """

    message_id: str
    sender_id: str
    receiver_id: str
    subject: str
    message: str
    mkdate: int
    priority: str
    unread: int
    dont_delete: bool | None = Field(default=None, exclude=True)
    box: str | None = Field(default=None, exclude=True)


class FolderMessagesOut(BaseModel):
    """Messages of one folder and the users taking part in them."""

    messages: list[MessageOut]
    users: dict[str, UserOut]
