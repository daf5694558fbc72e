"""In-memory data store seeded with demo content."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timedelta, timezone
import itertools
import logging

from quizdesk.constants.message_constants import (
    DELETED_SUBJECT_NAME,
    DELETED_USER_NAME,
    DUPLICATE_ACCOUNT_MESSAGE,
    QUESTION_NOT_FOUND_MESSAGE,
    STUDENT_NOT_FOUND_MESSAGE,
    SUBJECT_NOT_FOUND_MESSAGE,
    UNKNOWN_SUBJECT_NAME,
)
from quizdesk.core.errors import DuplicateAccountError, NotFoundError, ValidationError
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
from quizdesk.core.services.data_store import QuizDataStore
from quizdesk.core.validation import clean_question, clean_student, clean_subject, normalize_email

logger = logging.getLogger(__name__)


class InMemoryQuizStore(QuizDataStore):
    """Dict-backed store standing in for a real persistence layer.

    Records are frozen dataclasses, so callers never share mutable state with
    the store. Ids are prefixed counters (``subj3``, ``q5``...).
    """

    def __init__(self, latency_seconds: float = 0.0) -> None:
        self._latency_seconds = latency_seconds
        self._users: dict[str, User] = {}
        self._subjects: dict[str, Subject] = {}
        self._questions: dict[str, Question] = {}
        self._results: dict[str, QuizResult] = {}
        self._id_counter = itertools.count(1)

    @classmethod
    def with_demo_data(cls, latency_seconds: float = 0.0) -> "InMemoryQuizStore":
        store = cls(latency_seconds=latency_seconds)
        store.load_demo_data()
        return store

    def load_demo_data(self, now: datetime | None = None) -> None:
        """Replace all tables with the demo accounts, subjects and questions."""
        now = now or datetime.now(timezone.utc)
        self._users = {
            user.id: user
            for user in (
                User("admin1", "Admin User", "admin@quiz.com", Role.ADMIN),
                User("student1", "Alice", "alice@quiz.com", Role.STUDENT, frozenset({"subj1"})),
                User("student2", "Bob", "bob@quiz.com", Role.STUDENT),
            )
        }
        self._subjects = {
            subject.id: subject
            for subject in (
                Subject(
                    "subj1",
                    "Modern History",
                    "A quiz on world history from the 18th century onwards.",
                    timer_enabled=True,
                    timer_duration=15,
                ),
                Subject(
                    "subj2",
                    "React Fundamentals",
                    "Test your knowledge on the core concepts of React.",
                    timer_enabled=False,
                    timer_duration=30,
                ),
            )
        }
        self._questions = {
            question.id: question
            for question in (
                Question("q1", "subj1", "When did World War II end?", ("1942", "1945", "1950", "1939"), "1945"),
                Question(
                    "q2",
                    "subj1",
                    "Who was the first President of the United States?",
                    ("Abraham Lincoln", "Thomas Jefferson", "George Washington", "John Adams"),
                    "George Washington",
                ),
                Question(
                    "q3",
                    "subj2",
                    "What is JSX?",
                    (
                        "A JavaScript library",
                        "A syntax extension for JavaScript",
                        "A CSS preprocessor",
                        "A database query language",
                    ),
                    "A syntax extension for JavaScript",
                ),
                Question(
                    "q4",
                    "subj2",
                    "Which hook is used for state management in functional components?",
                    ("useEffect", "useContext", "useState", "useReducer"),
                    "useState",
                ),
            )
        }
        self._results = {
            "res1": QuizResult(
                id="res1",
                user_id="student1",
                subject_id="subj1",
                score=1,
                total_questions=2,
                date=now - timedelta(days=1),
                time_taken=300,
            )
        }
        # Generated ids continue past the seeded ones.
        self._id_counter = itertools.count(len(self._users) + len(self._questions) + 1)

    # --- Users ---

    async def get_user_by_id(self, user_id: str) -> User | None:
        await self._simulate_latency()
        return self._users.get(user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        await self._simulate_latency()
        return self._find_user_by_email(normalize_email(email))

    async def get_users(self, role: Role | None = None) -> list[User]:
        await self._simulate_latency()
        if role is None:
            return list(self._users.values())
        return [user for user in self._users.values() if user.role is role]

    async def enroll_student(self, name: str, email: str) -> User:
        await self._simulate_latency()
        cleaned_name, cleaned_email = clean_student(name, email)
        if self._find_user_by_email(cleaned_email) is not None:
            raise DuplicateAccountError(DUPLICATE_ACCOUNT_MESSAGE)
        user = User(
            id=self._next_id("student"),
            name=cleaned_name,
            email=cleaned_email,
            role=Role.STUDENT,
        )
        self._users[user.id] = user
        return user

    async def remove_user(self, user_id: str) -> None:
        await self._simulate_latency()
        if self._users.pop(user_id, None) is None:
            raise NotFoundError(STUDENT_NOT_FOUND_MESSAGE)
        self._results = {
            result_id: result for result_id, result in self._results.items() if result.user_id != user_id
        }

    async def update_user_access(self, user_id: str, subject_ids: Iterable[str]) -> User:
        await self._simulate_latency()
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError(STUDENT_NOT_FOUND_MESSAGE)
        requested = frozenset(subject_ids)
        unknown = sorted(requested - self._subjects.keys())
        if unknown:
            raise ValidationError(f"Unknown subject id(s): {', '.join(unknown)}")
        updated = replace(user, subjects_access=requested)
        self._users[user_id] = updated
        return updated

    # --- Subjects ---

    async def get_subjects(self) -> list[Subject]:
        await self._simulate_latency()
        return list(self._subjects.values())

    async def get_subject_by_id(self, subject_id: str) -> Subject | None:
        await self._simulate_latency()
        return self._subjects.get(subject_id)

    async def create_subject(self, draft: SubjectDraft) -> Subject:
        await self._simulate_latency()
        cleaned = clean_subject(draft)
        subject = Subject(
            id=self._next_id("subj"),
            name=cleaned.name,
            description=cleaned.description,
            timer_enabled=cleaned.timer_enabled,
            timer_duration=cleaned.timer_duration,
        )
        self._subjects[subject.id] = subject
        return subject

    async def update_subject(self, subject_id: str, draft: SubjectDraft) -> Subject:
        await self._simulate_latency()
        if subject_id not in self._subjects:
            raise NotFoundError(SUBJECT_NOT_FOUND_MESSAGE)
        cleaned = clean_subject(draft)
        subject = Subject(
            id=subject_id,
            name=cleaned.name,
            description=cleaned.description,
            timer_enabled=cleaned.timer_enabled,
            timer_duration=cleaned.timer_duration,
        )
        self._subjects[subject_id] = subject
        return subject

    async def delete_subject(self, subject_id: str) -> None:
        await self._simulate_latency()
        if self._subjects.pop(subject_id, None) is None:
            raise NotFoundError(SUBJECT_NOT_FOUND_MESSAGE)
        question_count = len(self._questions)
        result_count = len(self._results)
        self._questions = {
            question_id: question
            for question_id, question in self._questions.items()
            if question.subject_id != subject_id
        }
        self._results = {
            result_id: result for result_id, result in self._results.items() if result.subject_id != subject_id
        }
        for user in list(self._users.values()):
            if subject_id in user.subjects_access:
                self._users[user.id] = replace(user, subjects_access=user.subjects_access - {subject_id})
        logger.info(
            "Deleted subject %s with %d question(s) and %d result(s)",
            subject_id,
            question_count - len(self._questions),
            result_count - len(self._results),
        )

    # --- Questions ---

    async def get_questions_for_subject(self, subject_id: str) -> list[Question]:
        await self._simulate_latency()
        return [question for question in self._questions.values() if question.subject_id == subject_id]

    async def create_question(self, draft: QuestionDraft) -> Question:
        await self._simulate_latency()
        cleaned = self._prepare_question(draft)
        question = Question(
            id=self._next_id("q"),
            subject_id=cleaned.subject_id,
            question_text=cleaned.question_text,
            options=cleaned.options,
            correct_answer=cleaned.correct_answer,
        )
        self._questions[question.id] = question
        return question

    async def update_question(self, question_id: str, draft: QuestionDraft) -> Question:
        await self._simulate_latency()
        if question_id not in self._questions:
            raise NotFoundError(QUESTION_NOT_FOUND_MESSAGE)
        cleaned = self._prepare_question(draft)
        # Preserve the original id and therefore the question's position.
        question = Question(
            id=question_id,
            subject_id=cleaned.subject_id,
            question_text=cleaned.question_text,
            options=cleaned.options,
            correct_answer=cleaned.correct_answer,
        )
        self._questions[question_id] = question
        return question

    async def delete_question(self, question_id: str) -> None:
        await self._simulate_latency()
        if self._questions.pop(question_id, None) is None:
            raise NotFoundError(QUESTION_NOT_FOUND_MESSAGE)

    # --- Student portal ---

    async def get_student_subjects(self, user_id: str) -> list[Subject]:
        await self._simulate_latency()
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError(STUDENT_NOT_FOUND_MESSAGE)
        return [subject for subject in self._subjects.values() if user.can_access(subject.id)]

    async def submit_quiz(self, draft: QuizResultDraft) -> QuizResult:
        await self._simulate_latency()
        if draft.attempt_id is not None:
            existing = next(
                (result for result in self._results.values() if result.attempt_id == draft.attempt_id),
                None,
            )
            if existing is not None:
                return existing
        if draft.subject_id not in self._subjects:
            raise NotFoundError(SUBJECT_NOT_FOUND_MESSAGE)
        if draft.user_id not in self._users:
            raise NotFoundError(STUDENT_NOT_FOUND_MESSAGE)
        result = QuizResult(
            id=self._next_id("res"),
            user_id=draft.user_id,
            subject_id=draft.subject_id,
            score=draft.score,
            total_questions=draft.total_questions,
            date=draft.date,
            time_taken=draft.time_taken,
            attempt_id=draft.attempt_id,
        )
        self._results[result.id] = result
        return result

    async def get_student_quiz_history(self, user_id: str) -> list[QuizResult]:
        await self._simulate_latency()
        history = [
            replace(result, subject_name=self._subject_name(result.subject_id, UNKNOWN_SUBJECT_NAME))
            for result in self._results.values()
            if result.user_id == user_id
        ]
        return sorted(history, key=lambda result: result.date, reverse=True)

    async def get_all_quiz_results(self) -> list[QuizResult]:
        await self._simulate_latency()
        results = []
        for result in self._results.values():
            user = self._users.get(result.user_id)
            results.append(
                replace(
                    result,
                    subject_name=self._subject_name(result.subject_id, DELETED_SUBJECT_NAME),
                    user_name=user.name if user else DELETED_USER_NAME,
                )
            )
        return sorted(results, key=lambda result: result.date, reverse=True)

    # --- Helpers ---

    def _prepare_question(self, draft: QuestionDraft) -> QuestionDraft:
        if draft.subject_id not in self._subjects:
            raise NotFoundError(SUBJECT_NOT_FOUND_MESSAGE)
        return clean_question(draft)

    def _find_user_by_email(self, email: str) -> User | None:
        return next((user for user in self._users.values() if user.email.lower() == email), None)

    def _subject_name(self, subject_id: str, fallback: str) -> str:
        subject = self._subjects.get(subject_id)
        return subject.name if subject else fallback

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}{next(self._id_counter)}"

    async def _simulate_latency(self) -> None:
        if self._latency_seconds > 0:
            await asyncio.sleep(self._latency_seconds)
