"""
Session Provider

Holds the currently logged-in identity for the lifetime of the
application session. The provider is an ordinary object owned by the
app components - there is no module-level "current user".

Lifecycle:
    begin(user)  on successful login or registration
    end()        on logout
Nothing is persisted; a restart starts logged out.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.models.records import User


class NotAuthenticatedError(Exception):
    """An operation needed a logged-in user and there was none."""
    pass


class Session(BaseModel):
    """One logged-in user's session."""

    user_id: int
    email: str
    name: str
    started_at: datetime = Field(default_factory=datetime.utcnow)


class SessionProvider:
    """In-memory holder of the current session."""

    def __init__(self):
        self._session: Optional[Session] = None

    def begin(self, user: User) -> Session:
        """Start a session for user, replacing any existing one."""
        if user.id is None:
            raise ValueError("Cannot start a session for an unsaved user")
        self._session = Session(user_id=user.id, email=user.email, name=user.name)
        return self._session

    def end(self) -> Optional[Session]:
        """End the current session. Returns the session that was ended, if any."""
        ended, self._session = self._session, None
        return ended

    def current(self) -> Optional[Session]:
        return self._session

    def current_user_id(self) -> Optional[int]:
        return self._session.user_id if self._session else None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def require_user_id(self) -> int:
        """
        Get the logged-in user's ID.

        Raises:
            NotAuthenticatedError: If nobody is logged in
        """
        if self._session is None:
            raise NotAuthenticatedError("No user is logged in")
        return self._session.user_id
