"""Domain models for the quiz platform."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from quizdesk.constants.quiz_constants import DEFAULT_TIMER_DURATION_MINUTES


class Role(str, Enum):
    ADMIN = "admin"
    STUDENT = "student"


@dataclass(slots=True, frozen=True)
class User:
    """Account record; ``subjects_access`` only matters for students."""

    id: str
    name: str
    email: str
    role: Role
    subjects_access: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def can_access(self, subject_id: str) -> bool:
        return subject_id in self.subjects_access


@dataclass(slots=True, frozen=True)
class Subject:
    """Named quiz topic with optional timer configuration."""

    id: str
    name: str
    description: str
    timer_enabled: bool
    timer_duration: int  # minutes


@dataclass(slots=True, frozen=True)
class Question:
    """Multiple-choice question; ``correct_answer`` is one of ``options``."""

    id: str
    subject_id: str
    question_text: str
    options: tuple[str, ...]
    correct_answer: str


@dataclass(slots=True, frozen=True)
class QuizResult:
    """Immutable record of one completed attempt."""

    id: str
    user_id: str
    subject_id: str
    score: int
    total_questions: int
    date: datetime
    time_taken: int  # seconds
    attempt_id: str | None = None
    # Filled in at read time for history and admin views.
    user_name: str | None = None
    subject_name: str | None = None


@dataclass(slots=True, frozen=True)
class SubjectDraft:
    name: str
    description: str = ""
    timer_enabled: bool = False
    timer_duration: int = DEFAULT_TIMER_DURATION_MINUTES


@dataclass(slots=True, frozen=True)
class QuestionDraft:
    subject_id: str
    question_text: str
    options: tuple[str, ...]
    correct_answer: str


@dataclass(slots=True, frozen=True)
class QuizResultDraft:
    """Result fields supplied by a finished session, before an id is assigned."""

    user_id: str
    subject_id: str
    score: int
    total_questions: int
    date: datetime
    time_taken: int
    attempt_id: str | None = None
