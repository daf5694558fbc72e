"""Static metadata describing QuizDesk."""

APP_NAME = "QuizDesk"
APP_VERSION = "0.1.0"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "QuizDesk is a quiz platform for classrooms. Administrators manage students, "
    "subjects and questions; students take timed or untimed quizzes and review their history."
)
