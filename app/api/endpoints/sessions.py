from fastapi import APIRouter, Depends, HTTPException, status

from app.core.config import settings
from app.core.dependencies import get_sessions
from app.schemas.session import PreferencesRequest, SessionResponse
from app.services.session_store import SessionStore

router = APIRouter()
group_tags = ["sessions"]


@router.get(
    "/{platform_id}",
    tags=group_tags,
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
)
def get_session(platform_id: int, sessions: SessionStore = Depends(get_sessions)) -> SessionResponse:
    session = sessions.get(platform_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    expired = sessions.is_expired(platform_id, settings.SESSION_WINDOW_SECONDS)
    return SessionResponse.from_session(session, expired)


@router.put(
    "/{platform_id}/preferences",
    tags=group_tags,
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
)
def update_preferences(
    platform_id: int,
    body: PreferencesRequest,
    sessions: SessionStore = Depends(get_sessions),
) -> SessionResponse:
    session = sessions.get(platform_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    for key, value in body.model_dump(exclude_none=True).items():
        session = sessions.set_preference(platform_id, key, value)
    expired = sessions.is_expired(platform_id, settings.SESSION_WINDOW_SECONDS)
    return SessionResponse.from_session(session, expired)
