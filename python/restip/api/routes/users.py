"""User lookup routes."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from restip.api.deps import get_db
from restip.auth.middleware import Viewer, get_viewer
from restip.services import users as users_service

router = APIRouter()


@router.get("/user", summary="Current user")
def get_current_user(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get the authenticated viewer's user record."""
    user = users_service.get_user_or_404(db, viewer.user_id)
    return {"user": user.model_dump(mode="json")}


@router.get("/user/{user_id}", summary="User")
def get_user(
    user_id: str,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get any user's display data by id."""
    user = users_service.get_user_or_404(db, user_id)
    return {"user": user.model_dump(mode="json")}
