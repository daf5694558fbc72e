"""Business logic shared by the HTTP API: auth, admin tools and student quiz sessions."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
import logging

from quizdesk.constants.message_constants import (
    ADMIN_ONLY_MESSAGE,
    NO_ACTIVE_QUIZ_MESSAGE,
    NO_COMPLETED_QUIZ_MESSAGE,
    STUDENT_NOT_FOUND_MESSAGE,
    STUDENT_ONLY_MESSAGE,
    SUBJECT_ACCESS_DENIED_MESSAGE,
    SUBJECT_NOT_FOUND_MESSAGE,
)
from quizdesk.core.errors import AccessDeniedError, NotFoundError
from quizdesk.core.models import (
    Question,
    QuestionDraft,
    QuizResult,
    Role,
    Subject,
    SubjectDraft,
    User,
)
from quizdesk.core.quiz_importer import parse_bulk_questions
from quizdesk.core.services.auth_session import AuthManager, AuthSession
from quizdesk.core.services.dashboard_stats import (
    AdminDashboardStats,
    StudentDashboardStats,
    build_admin_stats,
    build_student_stats,
)
from quizdesk.core.services.data_store import QuizDataStore
from quizdesk.core.services.quiz_session import QuizSession, SessionState
from quizdesk.core.services.result_summary import (
    QuestionReview,
    ResultSummary,
    review_answers,
    summarize_result,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CompletedQuiz:
    """Everything the result page needs once a session has been submitted."""

    result: QuizResult
    subject_name: str
    summary: ResultSummary
    review: list[QuestionReview] | None


class QuizManager:
    """Facade over the data store, authentication and per-student quiz sessions.

    Every caller passes the authenticated :class:`User` explicitly; the manager
    holds no notion of a "current" user. Each student has at most one quiz
    session; starting another tears the previous one down.
    """

    def __init__(self, store: QuizDataStore, session_factory: Callable[..., QuizSession] = QuizSession) -> None:
        self._store = store
        self._auth = AuthManager(store)
        self._session_factory = session_factory
        self._sessions: dict[str, QuizSession] = {}

    # --- Authentication ---

    async def login(self, email: str) -> tuple[AuthSession, User]:
        return await self._auth.login(email)

    async def restore_user(self, token: str | None) -> User | None:
        return await self._auth.restore(token)

    def logout(self, token: str | None, user: User | None = None) -> None:
        self._auth.logout(token)
        if user is not None:
            self._close_session(user.id)

    # --- Admin: students ---

    async def list_students(self, admin: User) -> list[User]:
        _require_admin(admin)
        return await self._store.get_users(Role.STUDENT)

    async def enroll_student(self, admin: User, name: str, email: str) -> User:
        _require_admin(admin)
        student = await self._store.enroll_student(name, email)
        logger.info("Enrolled student %s", student.id)
        return student

    async def remove_student(self, admin: User, user_id: str) -> None:
        _require_admin(admin)
        target = await self._store.get_user_by_id(user_id)
        if target is None or target.role is not Role.STUDENT:
            raise NotFoundError(STUDENT_NOT_FOUND_MESSAGE)
        await self._store.remove_user(user_id)
        self._close_session(user_id)
        self._auth.drop_user_sessions(user_id)
        logger.info("Removed student %s", user_id)

    async def update_student_access(self, admin: User, user_id: str, subject_ids: Iterable[str]) -> User:
        _require_admin(admin)
        target = await self._store.get_user_by_id(user_id)
        if target is None or target.role is not Role.STUDENT:
            raise NotFoundError(STUDENT_NOT_FOUND_MESSAGE)
        return await self._store.update_user_access(user_id, subject_ids)

    # --- Admin: subjects and questions ---

    async def list_subjects(self, admin: User) -> list[Subject]:
        _require_admin(admin)
        return await self._store.get_subjects()

    async def create_subject(self, admin: User, draft: SubjectDraft) -> Subject:
        _require_admin(admin)
        return await self._store.create_subject(draft)

    async def update_subject(self, admin: User, subject_id: str, draft: SubjectDraft) -> Subject:
        _require_admin(admin)
        return await self._store.update_subject(subject_id, draft)

    async def delete_subject(self, admin: User, subject_id: str) -> None:
        _require_admin(admin)
        await self._store.delete_subject(subject_id)
        # A session on a deleted subject could only produce an orphaned result.
        for user_id in [uid for uid, s in self._sessions.items() if s.subject_id == subject_id]:
            self._close_session(user_id)

    async def get_subject_questions(self, admin: User, subject_id: str) -> tuple[Subject, list[Question]]:
        _require_admin(admin)
        subject = await self._require_subject(subject_id)
        return subject, await self._store.get_questions_for_subject(subject_id)

    async def create_question(self, admin: User, draft: QuestionDraft) -> Question:
        _require_admin(admin)
        return await self._store.create_question(draft)

    async def update_question(self, admin: User, question_id: str, draft: QuestionDraft) -> Question:
        _require_admin(admin)
        return await self._store.update_question(question_id, draft)

    async def delete_question(self, admin: User, question_id: str) -> None:
        _require_admin(admin)
        await self._store.delete_question(question_id)

    async def import_questions(self, admin: User, subject_id: str, document: str) -> list[Question]:
        _require_admin(admin)
        await self._require_subject(subject_id)
        drafts = parse_bulk_questions(document, subject_id)
        created = [await self._store.create_question(draft) for draft in drafts]
        logger.info("Imported %d question(s) into %s", len(created), subject_id)
        return created

    async def list_results(self, admin: User) -> list[QuizResult]:
        _require_admin(admin)
        return await self._store.get_all_quiz_results()

    async def admin_dashboard(self, admin: User) -> AdminDashboardStats:
        _require_admin(admin)
        users = await self._store.get_users()
        subjects = await self._store.get_subjects()
        results = await self._store.get_all_quiz_results()
        return build_admin_stats(users, subjects, results)

    # --- Student portal ---

    async def student_subjects(self, student: User) -> list[Subject]:
        _require_student(student)
        return await self._store.get_student_subjects(student.id)

    async def quiz_history(self, student: User) -> list[QuizResult]:
        _require_student(student)
        return await self._store.get_student_quiz_history(student.id)

    async def student_dashboard(self, student: User) -> StudentDashboardStats:
        _require_student(student)
        history = await self._store.get_student_quiz_history(student.id)
        return build_student_stats(history)

    async def start_quiz(self, student: User, subject_id: str) -> QuizSession:
        _require_student(student)
        if not student.can_access(subject_id):
            raise AccessDeniedError(SUBJECT_ACCESS_DENIED_MESSAGE)
        self._close_session(student.id)
        session = self._session_factory(self._store, student.id, subject_id)
        await session.load()
        # An overlapping start may have registered its own session during the load.
        self._close_session(student.id)
        self._sessions[student.id] = session
        return session

    def get_session(self, student: User) -> QuizSession:
        session = self._sessions.get(student.id)
        if session is None or session.state is SessionState.ABANDONED:
            raise NotFoundError(NO_ACTIVE_QUIZ_MESSAGE)
        return session

    def get_active_session(self, student: User) -> QuizSession:
        session = self.get_session(student)
        if session.state is SessionState.COMPLETED:
            raise NotFoundError(NO_ACTIVE_QUIZ_MESSAGE)
        return session

    async def submit_quiz(self, student: User) -> CompletedQuiz:
        session = self.get_active_session(student)
        await session.submit()
        return self.completed_quiz(student, include_review=False)

    def abandon_quiz(self, student: User) -> None:
        self.get_active_session(student)
        self._close_session(student.id)

    def completed_quiz(self, student: User, include_review: bool = False) -> CompletedQuiz:
        session = self._sessions.get(student.id)
        if session is None or session.result is None:
            raise NotFoundError(NO_COMPLETED_QUIZ_MESSAGE)
        review = review_answers(session.questions, session.answers) if include_review else None
        return CompletedQuiz(
            result=session.result,
            subject_name=session.subject.name,
            summary=summarize_result(session.result),
            review=review,
        )

    # --- Lifecycle ---

    def shutdown(self) -> None:
        for user_id in list(self._sessions):
            self._close_session(user_id)

    def _close_session(self, user_id: str) -> None:
        session = self._sessions.pop(user_id, None)
        if session is not None:
            session.close()

    async def _require_subject(self, subject_id: str) -> Subject:
        subject = await self._store.get_subject_by_id(subject_id)
        if subject is None:
            raise NotFoundError(SUBJECT_NOT_FOUND_MESSAGE)
        return subject


def _require_admin(user: User) -> None:
    if user.role is not Role.ADMIN:
        raise AccessDeniedError(ADMIN_ONLY_MESSAGE)


def _require_student(user: User) -> None:
    if user.role is not Role.STUDENT:
        raise AccessDeniedError(STUDENT_ONLY_MESSAGE)
