import json

import pytest

from quizdesk.core.errors import ValidationError
from quizdesk.core.quiz_importer import QuizImportError, parse_bulk_questions


def test_parses_camel_and_snake_case_entries():
    document = json.dumps(
        [
            {"questionText": "When did World War II end?", "options": ["1942", "1945"], "correctAnswer": "1945"},
            {"question_text": " What is JSX? ", "options": ["Syntax", "Library"], "correct_answer": "Syntax"},
        ]
    )

    drafts = parse_bulk_questions(document, "subj1")

    assert [d.subject_id for d in drafts] == ["subj1", "subj1"]
    assert drafts[1].question_text == "What is JSX?"
    assert drafts[0].options == ("1942", "1945")


@pytest.mark.parametrize(
    ("document", "message"),
    [
        ("not json", "invalid JSON"),
        ('{"questionText": "Q"}', "must be an array"),
        ("[]", "does not contain any questions"),
        ('[{"questionText": "Q", "options": "a,b", "correctAnswer": "a"}]', "question 1"),
        ('[{"questionText": "Q", "options": ["a", "b"], "correctAnswer": "c"}]', "must be one of the options"),
    ],
)
def test_rejects_bad_documents(document, message):
    with pytest.raises(QuizImportError, match=message):
        parse_bulk_questions(document, "subj1")


def test_import_errors_are_validation_errors():
    with pytest.raises(ValidationError, match="^Bulk upload failed"):
        parse_bulk_questions("[1]", "subj1")
