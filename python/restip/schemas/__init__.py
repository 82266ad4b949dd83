"""Pydantic schemas for request and response bodies."""

from restip.schemas.messages import (
    CreateFolderRequest,
    CreateMessageRequest,
    FolderMessagesOut,
    MessageOut,
)
from restip.schemas.users import UserOut

__all__ = [
    "CreateFolderRequest",
    "CreateMessageRequest",
    "FolderMessagesOut",
    "MessageOut",
    "UserOut",
]
