"""Message routes.

Routes are transport-only:
- Take the viewer from the auth middleware
- Call exactly one service function
- Return plain data (encoded by FormattedResponse) or raise ApiError

Box paths only match ``in`` and ``out`` (the ``box`` convertor), so any
other single segment after /messages/ is a message id.
"""

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Response
from sqlalchemy.orm import Session, sessionmaker
from starlette.convertors import Convertor, register_url_convertor

from restip.api.deps import get_db, get_session_factory, parsed_body
from restip.auth.middleware import Viewer, get_viewer
from restip.config import Settings, get_settings
from restip.errors import ApiErrorCode, InvalidRequestError
from restip.schemas.messages import CreateFolderRequest, CreateMessageRequest
from restip.services import folders as folders_service
from restip.services import messages as messages_service
from restip.services.folders import Box


class BoxConvertor(Convertor):
    regex = "in|out"

    def convert(self, value: str) -> str:
        return value

    def to_string(self, value: str) -> str:
        return value


register_url_convertor("box", BoxConvertor())

router = APIRouter()

# =============================================================================
# Inbox and outbox
# =============================================================================


@router.get("/messages/{box:box}", summary="Messages: inbox and outbox")
def list_folders(
    box: Box,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict:
    """List the folders of a box, including the default folder 0."""
    folders = folders_service.list_folders(db, viewer.user_id, box, settings.default_language)
    return {"folders": folders}


@router.post("/messages/{box:box}", status_code=201, summary="Messages: create folder")
def create_folder(
    box: Box,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    body: Annotated[CreateFolderRequest, Depends(parsed_body(CreateFolderRequest))],
) -> Response:
    """Create a folder in a box.

    406 for a missing or invalid name, 409 for a duplicate.
    """
    folders_service.create_folder(
        db,
        viewer.user_id,
        box,
        body.folder,
        settings.default_language,
    )
    return Response(status_code=201)


# =============================================================================
# Folders
# =============================================================================


@router.get("/messages/{box:box}/{folder:int}", summary="Messages: folder")
def list_folder_messages(
    box: Box,
    folder: int,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """List the messages of a folder, newest first, with their users."""
    result = messages_service.list_folder(db, viewer.user_id, box, folder)
    return result.model_dump(mode="json")


# =============================================================================
# Direct access to messages
# =============================================================================


@router.post("/messages", status_code=201, summary="Write messages")
def create_message(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    body: Annotated[CreateMessageRequest, Depends(parsed_body(CreateMessageRequest))],
) -> dict:
    """Write a message to one or more users.

    Answers 400 unless MESSAGE_CREATION_ENABLED is set.
    """
    if not settings.message_creation_enabled:
        raise InvalidRequestError(
            ApiErrorCode.E_MESSAGE_CREATION_DISABLED, "Message creation is disabled"
        )

    result = messages_service.create_message(
        db, viewer.user_id, body.subject, body.message, body.receiver_ids
    )
    return result.model_dump(mode="json")


@router.get("/messages/{message_id}", summary="Messages")
def get_message(
    message_id: str,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get a single message visible to the viewer."""
    result = messages_service.get_message_or_404(db, viewer.user_id, message_id)
    return result.model_dump(mode="json")


@router.delete("/messages/{message_id}", status_code=204, summary="Messages: delete")
def delete_message(
    message_id: str,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Delete a message for the viewer. 403 if it is protected."""
    messages_service.delete_message(db, viewer.user_id, message_id)
    return Response(status_code=204)


@router.post("/messages/{message_id}/read", summary="Mark message as read")
def read_message(
    message_id: str,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    session_factory: Annotated[sessionmaker[Session], Depends(get_session_factory)],
    background_tasks: BackgroundTasks,
) -> dict:
    """Return a message and mark it read once the response is sent.

    The returned record still shows the unread state before this call.
    """
    result = messages_service.get_message_or_404(db, viewer.user_id, message_id)
    background_tasks.add_task(
        messages_service.mark_read, session_factory, viewer.user_id, message_id
    )
    return result.model_dump(mode="json")


@router.post("/messages/{message_id}/move/{folder:int}", summary="Move messages")
def move_message(
    message_id: str,
    folder: int,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Move a message to another folder of its box."""
    messages_service.move_message(db, viewer.user_id, message_id, folder)
    return Response(status_code=204)
