"""Network configuration constants for the quiz platform."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
API_LOG_LEVEL: str = "info"
AUTH_COOKIE_NAME: str = "quizdesk_session"
AUTH_COOKIE_MAX_AGE_SECONDS: int = 60 * 60 * 12
