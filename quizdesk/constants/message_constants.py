"""User-facing messages returned by the API."""

USER_NOT_FOUND_MESSAGE: str = "User not found."
LOGIN_REQUIRED_MESSAGE: str = "Please log in to continue."
ADMIN_ONLY_MESSAGE: str = "Administrator access is required."
STUDENT_ONLY_MESSAGE: str = "Only students can take quizzes."
SUBJECT_NOT_FOUND_MESSAGE: str = "Subject not found."
QUESTION_NOT_FOUND_MESSAGE: str = "Question not found."
STUDENT_NOT_FOUND_MESSAGE: str = "Student not found."
DUPLICATE_ACCOUNT_MESSAGE: str = "An account with this email already exists."
NO_QUESTIONS_MESSAGE: str = "This subject has no questions yet."
SUBJECT_ACCESS_DENIED_MESSAGE: str = "You do not have access to this subject."
NO_ACTIVE_QUIZ_MESSAGE: str = "You do not have a quiz in progress."
NO_COMPLETED_QUIZ_MESSAGE: str = "You have not completed a quiz in this session."
SUBMISSION_FAILED_MESSAGE: str = "There was an error submitting your quiz. Please try again."
UNKNOWN_SUBJECT_NAME: str = "Unknown Subject"
DELETED_SUBJECT_NAME: str = "Deleted Subject"
DELETED_USER_NAME: str = "Deleted User"
