"""Quiz-related constants shared across the core and server layers."""

DEFAULT_TIMER_DURATION_MINUTES: int = 15
TIMER_TICK_SECONDS: float = 1.0
MIN_OPTION_COUNT: int = 2
RECENT_QUIZ_LIMIT: int = 5

PERFECT_PERCENTAGE: int = 100
EXCELLENT_PERCENTAGE: int = 80
PASS_PERCENTAGE: int = 50
