"""Exception hierarchy shared by the store, the session engine and the API."""

from __future__ import annotations


class QuizDeskError(Exception):
    """Base class for every error the platform reports to a user."""


class NotFoundError(QuizDeskError, LookupError):
    """Raised when a subject, question, user or session does not exist."""


class ValidationError(QuizDeskError, ValueError):
    """Raised when submitted form data is incomplete or inconsistent."""


class DuplicateAccountError(ValidationError):
    """Raised when enrolling a student whose email is already registered."""


class AuthenticationError(QuizDeskError):
    """Raised when a login cannot be matched to an account."""


class AccessDeniedError(QuizDeskError, PermissionError):
    """Raised when a user acts outside their role or subject access."""


class SessionStateError(QuizDeskError, RuntimeError):
    """Raised when a quiz session operation is not legal in its current state."""


class PersistenceError(QuizDeskError, RuntimeError):
    """Raised by a data store when the backend rejects a call."""
