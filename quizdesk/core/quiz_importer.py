"""Bulk question import from a pasted JSON document.

Format: a JSON array of question objects::

    [
      {
        "questionText": "When did World War II end?",
        "options": ["1942", "1945", "1950", "1939"],
        "correctAnswer": "1945"
      }
    ]

``question_text`` and ``correct_answer`` are accepted as snake_case
alternatives. The whole document is parsed and validated before the caller
stores anything, so a bad entry never leaves half an import behind.
"""

from __future__ import annotations

import json

from quizdesk.core.errors import ValidationError
from quizdesk.core.models import QuestionDraft
from quizdesk.core.validation import clean_question


class QuizImportError(ValidationError):
    """Raised when a bulk question document cannot be parsed."""


def parse_bulk_questions(text: str, subject_id: str) -> list[QuestionDraft]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise QuizImportError(f"Bulk upload failed: invalid JSON ({exc.msg}).") from exc
    if not isinstance(payload, list):
        raise QuizImportError("Bulk upload failed: JSON must be an array.")
    if not payload:
        raise QuizImportError("Bulk upload failed: the array does not contain any questions.")

    drafts: list[QuestionDraft] = []
    for position, item in enumerate(payload, start=1):
        try:
            drafts.append(_parse_question(item, subject_id))
        except ValidationError as exc:
            raise QuizImportError(f"Bulk upload failed: question {position}: {exc}") from exc
    return drafts


def _parse_question(item: object, subject_id: str) -> QuestionDraft:
    if not isinstance(item, dict):
        raise ValidationError("each entry must be an object.")
    question_text = item.get("questionText", item.get("question_text"))
    options = item.get("options")
    correct_answer = item.get("correctAnswer", item.get("correct_answer"))
    if (
        not isinstance(question_text, str)
        or not isinstance(correct_answer, str)
        or not isinstance(options, list)
        or not all(isinstance(option, str) for option in options)
    ):
        raise ValidationError("each question needs questionText, options (array of strings) and correctAnswer.")
    return clean_question(
        QuestionDraft(
            subject_id=subject_id,
            question_text=question_text,
            options=tuple(options),
            correct_answer=correct_answer,
        )
    )
