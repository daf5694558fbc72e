"""Explicit authentication context: restore, login and logout."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from uuid import uuid4

from quizdesk.constants.message_constants import USER_NOT_FOUND_MESSAGE
from quizdesk.core.errors import AuthenticationError
from quizdesk.core.models import User
from quizdesk.core.services.data_store import QuizDataStore

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AuthSession:
    """Credential handed to the client and presented on every request."""

    token: str
    user_id: str
    created_at: datetime


class AuthManager:
    """Issues opaque session tokens for users found by email.

    Tokens live in memory only. :meth:`restore` re-reads the user from the
    store, so access changes and removals apply to live sessions at once.
    """

    def __init__(self, store: QuizDataStore) -> None:
        self._store = store
        self._sessions: dict[str, AuthSession] = {}

    async def login(self, email: str) -> tuple[AuthSession, User]:
        user = await self._store.get_user_by_email(email)
        if user is None:
            logger.info("Login rejected for unknown email")
            raise AuthenticationError(USER_NOT_FOUND_MESSAGE)
        session = AuthSession(token=uuid4().hex, user_id=user.id, created_at=datetime.now(timezone.utc))
        self._sessions[session.token] = session
        logger.info("User %s logged in as %s", user.id, user.role.value)
        return session, user

    async def restore(self, token: str | None) -> User | None:
        """Return the user behind a persisted credential, or ``None``."""
        if not token:
            return None
        session = self._sessions.get(token)
        if session is None:
            return None
        user = await self._store.get_user_by_id(session.user_id)
        if user is None:
            self._sessions.pop(token, None)
        return user

    def logout(self, token: str | None) -> None:
        if token and self._sessions.pop(token, None) is not None:
            logger.info("Session logged out")

    def drop_user_sessions(self, user_id: str) -> None:
        self._sessions = {token: s for token, s in self._sessions.items() if s.user_id != user_id}

    def active_session_count(self) -> int:
        return len(self._sessions)
