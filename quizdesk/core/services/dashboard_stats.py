"""Aggregate statistics for the admin and student dashboards."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import math

from quizdesk.constants.quiz_constants import RECENT_QUIZ_LIMIT
from quizdesk.core.models import QuizResult, Role, Subject, User


@dataclass(slots=True, frozen=True)
class SubjectPerformance:
    subject_id: str
    name: str
    attempts: int
    average_score: float  # percent, 0 when there are no attempts


@dataclass(slots=True, frozen=True)
class AdminDashboardStats:
    student_count: int
    subject_count: int
    total_attempts: int
    subject_performance: list[SubjectPerformance]


@dataclass(slots=True, frozen=True)
class StudentDashboardStats:
    recent_quizzes: list[QuizResult]
    subjects_taken: int
    average_score: int  # rounded percent


def build_admin_stats(
    users: Sequence[User],
    subjects: Sequence[Subject],
    results: Sequence[QuizResult],
) -> AdminDashboardStats:
    """Summarize every attempt, per subject pooling scores over possible points."""
    performance = []
    for subject in subjects:
        attempts = [result for result in results if result.subject_id == subject.id]
        total_score = sum(result.score for result in attempts)
        total_possible = sum(result.total_questions for result in attempts)
        performance.append(
            SubjectPerformance(
                subject_id=subject.id,
                name=subject.name,
                attempts=len(attempts),
                average_score=(total_score / total_possible) * 100 if total_possible > 0 else 0.0,
            )
        )
    return AdminDashboardStats(
        student_count=sum(1 for user in users if user.role is Role.STUDENT),
        subject_count=len(subjects),
        total_attempts=len(results),
        subject_performance=performance,
    )


def build_student_stats(history: Sequence[QuizResult], recent_limit: int = RECENT_QUIZ_LIMIT) -> StudentDashboardStats:
    """``history`` is expected newest first, as the store returns it."""
    ratios = [result.score / result.total_questions for result in history if result.total_questions > 0]
    average = (sum(ratios) / len(ratios)) * 100 if ratios else 0.0
    return StudentDashboardStats(
        recent_quizzes=list(history[:recent_limit]),
        subjects_taken=len({result.subject_id for result in history}),
        average_score=math.floor(average + 0.5),
    )
