"""
Per-identity chat sessions.

One record per platform id. Records are immutable snapshots swapped under a
per-identity lock, so readers never see a half-updated session and updates for
different identities do not contend.

Expiry is policy: ``is_expired`` answers the question for a window the caller
passes in (normally ``settings.SESSION_WINDOW_SECONDS``); nothing is evicted
automatically.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from threading import Lock
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

from app.core.exceptions import UnresolvedIdentityError
from app.services.identity_binder import IdentityBinder

logger = logging.getLogger(__name__)

PREFERENCE_TYPES: Dict[str, type] = {
    "language": str,
    "notifications": bool,
}


@dataclass(frozen=True)
class Session:
    platform_id: int
    last_activity: datetime
    account_id: Optional[str] = None
    is_authenticated: bool = False
    preferences: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


class SessionStore:
    def __init__(
        self,
        binder: IdentityBinder,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._binder = binder
        self._clock = clock
        self._sessions: Dict[int, Session] = {}
        self._locks: Dict[int, Lock] = defaultdict(Lock)
        self._locks_guard = Lock()

    def _lock_for(self, platform_id: int) -> Lock:
        with self._locks_guard:
            return self._locks[platform_id]

    def get(self, platform_id: int) -> Optional[Session]:
        return self._sessions.get(platform_id)

    def touch(self, platform_id: int) -> Session:
        """Advance ``last_activity``; creates an unauthenticated session on first use."""
        with self._lock_for(platform_id):
            now = self._clock()
            current = self._sessions.get(platform_id)
            if current is None:
                session = Session(
                    platform_id=platform_id,
                    last_activity=now,
                    account_id=self._binder.lookup(platform_id),
                )
                logger.debug("session created for platform_id=%s", platform_id)
            else:
                session = replace(current, last_activity=max(current.last_activity, now))
            self._sessions[platform_id] = session
            return session

    def authenticate(self, platform_id: int) -> Session:
        """
        Mark the session authenticated once the identity has an account binding.

        Raises:
            UnresolvedIdentityError: resolve_account has never succeeded for this id
        """
        account_id = self._binder.lookup(platform_id)
        if account_id is None:
            raise UnresolvedIdentityError(platform_id)
        with self._lock_for(platform_id):
            current = self._sessions.get(platform_id)
            if current is None:
                current = Session(platform_id=platform_id, last_activity=self._clock())
            session = replace(current, account_id=account_id, is_authenticated=True)
            self._sessions[platform_id] = session
            return session

    def is_expired(self, platform_id: int, window_seconds: int) -> bool:
        session = self._sessions.get(platform_id)
        if session is None:
            return True
        return (self._clock() - session.last_activity).total_seconds() > window_seconds

    def set_preference(self, platform_id: int, key: str, value: Any) -> Session:
        expected = PREFERENCE_TYPES.get(key)
        if expected is None:
            raise ValueError(f"unknown preference: {key}")
        if not isinstance(value, expected):
            raise ValueError(f"preference {key} must be {expected.__name__}")
        with self._lock_for(platform_id):
            current = self._sessions.get(platform_id)
            if current is None:
                raise KeyError(platform_id)
            preferences = dict(current.preferences)
            preferences[key] = value
            session = replace(current, preferences=MappingProxyType(preferences))
            self._sessions[platform_id] = session
            return session
