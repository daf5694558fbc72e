"""Data access facade consumed by the quiz session engine and the manager.

Implementations may talk to a REST service, a database or plain memory. They
raise :class:`~quizdesk.core.errors.PersistenceError` when the backend rejects a
call and :class:`~quizdesk.core.errors.NotFoundError` when an update or delete
targets a missing record.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from quizdesk.core.models import (
    Question,
    QuestionDraft,
    QuizResult,
    QuizResultDraft,
    Role,
    Subject,
    SubjectDraft,
    User,
)


class QuizDataStore(ABC):
    """Repository interface with one set of CRUD coroutines per entity."""

    # --- Users ---

    @abstractmethod
    async def get_user_by_id(self, user_id: str) -> User | None: ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    async def get_users(self, role: Role | None = None) -> list[User]: ...

    @abstractmethod
    async def enroll_student(self, name: str, email: str) -> User:
        """Create a student with no subject access; duplicate emails are rejected."""

    @abstractmethod
    async def remove_user(self, user_id: str) -> None:
        """Delete a user together with their quiz results."""

    @abstractmethod
    async def update_user_access(self, user_id: str, subject_ids: Iterable[str]) -> User: ...

    # --- Subjects ---

    @abstractmethod
    async def get_subjects(self) -> list[Subject]: ...

    @abstractmethod
    async def get_subject_by_id(self, subject_id: str) -> Subject | None: ...

    @abstractmethod
    async def create_subject(self, draft: SubjectDraft) -> Subject: ...

    @abstractmethod
    async def update_subject(self, subject_id: str, draft: SubjectDraft) -> Subject: ...

    @abstractmethod
    async def delete_subject(self, subject_id: str) -> None:
        """Delete a subject and every question and result that references it."""

    # --- Questions ---

    @abstractmethod
    async def get_questions_for_subject(self, subject_id: str) -> list[Question]:
        """Return the subject's questions in quiz order."""

    @abstractmethod
    async def create_question(self, draft: QuestionDraft) -> Question: ...

    @abstractmethod
    async def update_question(self, question_id: str, draft: QuestionDraft) -> Question: ...

    @abstractmethod
    async def delete_question(self, question_id: str) -> None: ...

    # --- Student portal ---

    @abstractmethod
    async def get_student_subjects(self, user_id: str) -> list[Subject]: ...

    @abstractmethod
    async def submit_quiz(self, draft: QuizResultDraft) -> QuizResult:
        """Append a result. Resubmitting the same ``attempt_id`` returns the stored record."""

    @abstractmethod
    async def get_student_quiz_history(self, user_id: str) -> list[QuizResult]:
        """Return the user's results newest first with ``subject_name`` populated."""

    @abstractmethod
    async def get_all_quiz_results(self) -> list[QuizResult]:
        """Return every result newest first with user and subject names populated."""
