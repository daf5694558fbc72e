"""Derivations shown on the result page: percentage, feedback and answer review."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
import math

from quizdesk.constants.quiz_constants import (
    EXCELLENT_PERCENTAGE,
    PASS_PERCENTAGE,
    PERFECT_PERCENTAGE,
)
from quizdesk.core.models import Question, QuizResult
from quizdesk.utils.time_format import format_duration


class FeedbackTier(Enum):
    PERFECT = ("perfect", "Perfect Score!", "Outstanding! You're a true master of this subject.")
    EXCELLENT = ("excellent", "Excellent Work!", "You have a strong understanding of the material.")
    GOOD = ("good", "Good Job!", "You passed! A little more practice will make you an expert.")
    KEEP_TRYING = ("keep_trying", "Keep Trying!", "Don't give up. Review the material and try again.")

    def __init__(self, key: str, title: str, message: str) -> None:
        self.key = key
        self.title = title
        self.message = message

    @property
    def passed(self) -> bool:
        return self is not FeedbackTier.KEEP_TRYING


class OptionStatus(str, Enum):
    CORRECT_ANSWER = "correct_answer"
    WRONG_CHOICE = "wrong_choice"
    UNSELECTED = "unselected"


@dataclass(slots=True, frozen=True)
class ResultSummary:
    score: int
    total_questions: int
    incorrect: int
    percentage: int
    feedback: FeedbackTier
    time_taken: int
    time_taken_display: str


@dataclass(slots=True, frozen=True)
class OptionReview:
    text: str
    status: OptionStatus
    selected: bool


@dataclass(slots=True, frozen=True)
class QuestionReview:
    question_id: str
    question_text: str
    options: tuple[OptionReview, ...]
    selected_option: str | None
    correct_answer: str

    @property
    def answered(self) -> bool:
        return self.selected_option is not None

    @property
    def is_correct(self) -> bool:
        return self.selected_option == self.correct_answer


def percentage(score: int, total: int) -> int:
    """Return ``score / total`` as a whole percentage, rounding halves up."""
    if total <= 0:
        return 0
    return math.floor(score * 100 / total + 0.5)


def feedback_for(percent: int) -> FeedbackTier:
    if percent == PERFECT_PERCENTAGE:
        return FeedbackTier.PERFECT
    if percent >= EXCELLENT_PERCENTAGE:
        return FeedbackTier.EXCELLENT
    if percent >= PASS_PERCENTAGE:
        return FeedbackTier.GOOD
    return FeedbackTier.KEEP_TRYING


def summarize_result(result: QuizResult) -> ResultSummary:
    percent = percentage(result.score, result.total_questions)
    return ResultSummary(
        score=result.score,
        total_questions=result.total_questions,
        incorrect=result.total_questions - result.score,
        percentage=percent,
        feedback=feedback_for(percent),
        time_taken=result.time_taken,
        time_taken_display=format_duration(result.time_taken),
    )


def review_answers(questions: Sequence[Question], answers: Mapping[str, str]) -> list[QuestionReview]:
    """Classify every option of every question against the student's answers."""
    reviews: list[QuestionReview] = []
    for question in questions:
        selected = answers.get(question.id)
        options = []
        for option in question.options:
            if option == question.correct_answer:
                status = OptionStatus.CORRECT_ANSWER
            elif option == selected:
                status = OptionStatus.WRONG_CHOICE
            else:
                status = OptionStatus.UNSELECTED
            options.append(OptionReview(text=option, status=status, selected=option == selected))
        reviews.append(
            QuestionReview(
                question_id=question.id,
                question_text=question.question_text,
                options=tuple(options),
                selected_option=selected,
                correct_answer=question.correct_answer,
            )
        )
    return reviews
