from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from app.schemas.my_base_model import CustomBaseModel
from app.services.session_store import Session


class PreferencesRequest(BaseModel):
    language: Optional[str] = Field(None, min_length=2, max_length=16)
    notifications: Optional[bool] = None


class SessionResponse(CustomBaseModel):
    platform_id: int = 0
    account_id: Optional[str] = None
    is_authenticated: bool = False
    last_activity: datetime
    expired: bool = False
    preferences: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_session(cls, session: Session, expired: bool) -> "SessionResponse":
        return cls(
            platform_id=session.platform_id,
            account_id=session.account_id,
            is_authenticated=session.is_authenticated,
            last_activity=session.last_activity,
            expired=expired,
            preferences=dict(session.preferences),
        )
