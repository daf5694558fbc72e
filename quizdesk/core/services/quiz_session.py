"""Quiz session engine: one student's attempt at one subject's question set."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timezone
from enum import Enum
import logging
import math
from uuid import uuid4

from quizdesk.constants.message_constants import NO_QUESTIONS_MESSAGE, SUBJECT_NOT_FOUND_MESSAGE
from quizdesk.constants.quiz_constants import TIMER_TICK_SECONDS
from quizdesk.core.errors import NotFoundError, QuizDeskError, SessionStateError, ValidationError
from quizdesk.core.models import Question, QuizResult, QuizResultDraft, Subject
from quizdesk.core.services.countdown_timer import CountdownTimer
from quizdesk.core.services.data_store import QuizDataStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
TimerFactory = Callable[..., CountdownTimer]


class SessionState(str, Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


def score_answers(questions: Sequence[Question], answers: Mapping[str, str]) -> int:
    """Count questions whose selected option equals the correct answer."""
    return sum(1 for question in questions if answers.get(question.id) == question.correct_answer)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuizSession:
    """Owns the transient state of a quiz attempt from load to scored submission.

    The session talks to persistence only through :class:`QuizDataStore`. At most
    one submission can be in flight: :meth:`submit` is only legal while the
    session is ``IN_PROGRESS`` and the countdown is cancelled as soon as a
    submission starts, so a late tick can never submit twice.
    """

    def __init__(
        self,
        store: QuizDataStore,
        user_id: str,
        subject_id: str,
        *,
        clock: Clock = _utcnow,
        timer_factory: TimerFactory = CountdownTimer,
        tick_seconds: float = TIMER_TICK_SECONDS,
    ) -> None:
        self._store = store
        self._user_id = user_id
        self._subject_id = subject_id
        self._clock = clock
        self._timer_factory = timer_factory
        self._tick_seconds = tick_seconds
        self.attempt_id = uuid4().hex

        self._state = SessionState.LOADING
        self._subject: Subject | None = None
        self._questions: list[Question] = []
        self._current_index = 0
        self._answers: dict[str, str] = {}
        self._remaining_seconds: int | None = None
        self._started_at: datetime | None = None
        self._timer: CountdownTimer | None = None
        self._result: QuizResult | None = None
        self._submission_error: Exception | None = None
        self._closed = False

    # --- Lifecycle ---

    async def load(self) -> None:
        """Fetch the subject and its questions, then start the attempt."""
        if self._state is not SessionState.LOADING:
            raise SessionStateError("Quiz session has already been loaded.")
        subject, questions = await asyncio.gather(
            self._store.get_subject_by_id(self._subject_id),
            self._store.get_questions_for_subject(self._subject_id),
        )
        if self._state is not SessionState.LOADING:
            # Torn down while loading.
            return
        if subject is None:
            raise NotFoundError(SUBJECT_NOT_FOUND_MESSAGE)
        if not questions:
            raise NotFoundError(NO_QUESTIONS_MESSAGE)

        self._subject = subject
        self._questions = list(questions)
        self._current_index = 0
        self._answers = {}
        # Load latency does not count against the student.
        self._started_at = self._clock()
        self._state = SessionState.IN_PROGRESS
        if subject.timer_enabled:
            self._remaining_seconds = subject.timer_duration * 60
            self._start_timer(self._remaining_seconds)
        logger.info(
            "Quiz started: user=%s subject=%s questions=%d timed=%s",
            self._user_id,
            self._subject_id,
            len(self._questions),
            subject.timer_enabled,
        )

    def close(self) -> None:
        """Tear the session down; no tick or submission happens afterwards."""
        self._closed = True
        self._cancel_timer()
        if self._state in (SessionState.LOADING, SessionState.IN_PROGRESS):
            self._state = SessionState.ABANDONED
            logger.info("Quiz abandoned: user=%s subject=%s", self._user_id, self._subject_id)

    # --- Read access ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def subject_id(self) -> str:
        return self._subject_id

    @property
    def subject(self) -> Subject:
        if self._subject is None:
            raise SessionStateError("Quiz session has not been loaded.")
        return self._subject

    @property
    def questions(self) -> list[Question]:
        return list(self._questions)

    @property
    def question_count(self) -> int:
        return len(self._questions)

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def current_question(self) -> Question:
        if not self._questions:
            raise SessionStateError("Quiz session has not been loaded.")
        return self._questions[self._current_index]

    @property
    def is_last_question(self) -> bool:
        return self._current_index == len(self._questions) - 1

    @property
    def answers(self) -> dict[str, str]:
        return dict(self._answers)

    @property
    def is_timed(self) -> bool:
        return self._remaining_seconds is not None

    @property
    def remaining_seconds(self) -> int | None:
        return self._remaining_seconds

    @property
    def started_at(self) -> datetime | None:
        return self._started_at

    @property
    def result(self) -> QuizResult | None:
        return self._result

    @property
    def submission_error(self) -> Exception | None:
        return self._submission_error

    # --- Navigation and answers ---

    def next_question(self) -> Question:
        self._ensure_in_progress()
        if self._current_index < len(self._questions) - 1:
            self._current_index += 1
        return self.current_question

    def previous_question(self) -> Question:
        self._ensure_in_progress()
        if self._current_index > 0:
            self._current_index -= 1
        return self.current_question

    def select_answer(self, option: str) -> None:
        """Record the option chosen for the current question, replacing any earlier choice."""
        self._ensure_in_progress()
        question = self.current_question
        if option not in question.options:
            raise ValidationError("Selected option is not one of this question's options.")
        self._answers[question.id] = option

    def calculate_score(self) -> int:
        return score_answers(self._questions, self._answers)

    # --- Submission ---

    async def submit(self) -> QuizResult:
        """Score and persist the attempt.

        Raises :class:`SessionStateError` when a submission is already running or
        finished. Any store error is re-raised after restoring the in-progress
        state so the student can retry, unless the session was closed meanwhile.
        """
        self._ensure_in_progress()
        try:
            return await self._submit(trigger="manual")
        except Exception:
            if self._state is SessionState.IN_PROGRESS and self._remaining_seconds:
                self._start_timer(self._remaining_seconds)
            raise

    async def _submit(self, trigger: str) -> QuizResult:
        self._state = SessionState.SUBMITTING
        self._cancel_timer()
        score = self.calculate_score()
        now = self._clock()
        if self._started_at is None:
            raise SessionStateError("Quiz session has not been loaded.")
        time_taken = max(0, math.floor((now - self._started_at).total_seconds()))
        draft = QuizResultDraft(
            user_id=self._user_id,
            subject_id=self._subject_id,
            score=score,
            total_questions=len(self._questions),
            date=now,
            time_taken=time_taken,
            attempt_id=self.attempt_id,
        )
        try:
            result = await self._store.submit_quiz(draft)
        except Exception as exc:
            self._submission_error = exc
            # A session closed mid-submission stays closed.
            self._state = SessionState.ABANDONED if self._closed else SessionState.IN_PROGRESS
            logger.warning(
                "Quiz submission failed (%s): user=%s subject=%s: %s",
                trigger,
                self._user_id,
                self._subject_id,
                exc,
            )
            raise

        self._result = result
        self._submission_error = None
        self._state = SessionState.COMPLETED
        logger.info(
            "Quiz submitted (%s): user=%s subject=%s score=%d/%d time=%ds",
            trigger,
            self._user_id,
            self._subject_id,
            result.score,
            result.total_questions,
            result.time_taken,
        )
        return result

    async def _handle_timer_expired(self) -> None:
        if self._state is not SessionState.IN_PROGRESS:
            return
        try:
            await self._submit(trigger="timer")
        except QuizDeskError:
            # Recorded on the session; the student can retry by hand.
            pass

    # --- Timer ---

    def _start_timer(self, seconds: int) -> None:
        self._cancel_timer()
        self._timer = self._timer_factory(
            seconds,
            self._handle_timer_expired,
            interval_seconds=self._tick_seconds,
            on_tick=self._on_timer_tick,
        )
        self._timer.start()

    def _on_timer_tick(self, remaining: int) -> None:
        if self._state is SessionState.IN_PROGRESS:
            self._remaining_seconds = remaining

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @property
    def timer(self) -> CountdownTimer | None:
        return self._timer

    def _ensure_in_progress(self) -> None:
        if self._state is not SessionState.IN_PROGRESS:
            raise SessionStateError(f"Quiz session is {self._state.value}, not in progress.")
