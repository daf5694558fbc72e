"""Write-time validation for admin forms.

Every data store runs drafts through these helpers before storing them, so
the rules hold whichever backend sits behind the facade.
"""

from __future__ import annotations

import re

from quizdesk.constants.quiz_constants import MIN_OPTION_COUNT
from quizdesk.core.errors import ValidationError
from quizdesk.core.models import QuestionDraft, SubjectDraft

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def clean_subject(draft: SubjectDraft) -> SubjectDraft:
    """Validate and normalize a subject before storage."""
    name = draft.name.strip()
    if not name:
        raise ValidationError("Subject name is required.")
    timer_duration = _normalize_timer_duration(draft.timer_enabled, draft.timer_duration)
    return SubjectDraft(
        name=name,
        description=(draft.description or "").strip(),
        timer_enabled=bool(draft.timer_enabled),
        timer_duration=timer_duration,
    )


def clean_question(draft: QuestionDraft) -> QuestionDraft:
    """Validate and normalize a question before storage."""
    question_text = draft.question_text.strip()
    if not question_text:
        raise ValidationError("Question text must not be empty.")
    options = _validate_options(draft.options)
    correct_answer = (draft.correct_answer or "").strip()
    if not correct_answer:
        raise ValidationError("A correct answer is required.")
    if correct_answer not in options:
        raise ValidationError("The correct answer must be one of the options.")
    return QuestionDraft(
        subject_id=draft.subject_id,
        question_text=question_text,
        options=options,
        correct_answer=correct_answer,
    )


def clean_student(name: str, email: str) -> tuple[str, str]:
    """Return the stripped name and lower-cased email of a new student."""
    cleaned_name = name.strip()
    cleaned_email = normalize_email(email)
    if not cleaned_name or not cleaned_email:
        raise ValidationError("Name and email are required.")
    if not _EMAIL_PATTERN.match(cleaned_email):
        raise ValidationError("Please enter a valid email address.")
    return cleaned_name, cleaned_email


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _validate_options(options: tuple[str, ...] | list[str]) -> tuple[str, ...]:
    cleaned = tuple(option.strip() for option in options)
    if len(cleaned) < MIN_OPTION_COUNT:
        raise ValidationError(f"Each question needs at least {MIN_OPTION_COUNT} options.")
    if any(not option for option in cleaned):
        raise ValidationError("Option text cannot be empty.")
    if len(set(cleaned)) != len(cleaned):
        raise ValidationError("Options must be unique.")
    return cleaned


def _normalize_timer_duration(timer_enabled: bool, timer_duration: int) -> int:
    if isinstance(timer_duration, bool) or not isinstance(timer_duration, int):
        raise ValidationError("Timer duration must be a whole number of minutes.")
    if timer_enabled and timer_duration <= 0:
        raise ValidationError("Timer duration must be a positive number of minutes.")
    return timer_duration
