"""Formatting helpers for durations shown to students."""

from __future__ import annotations


def format_duration(seconds: int) -> str:
    """Format a time taken as ``"5m 3s"``."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}m {secs}s"


def format_countdown(seconds: int | None) -> str | None:
    """Format remaining quiz time as ``"MM:SS"``; ``None`` for untimed quizzes."""
    if seconds is None:
        return None
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"
