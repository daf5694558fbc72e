import asyncio
from functools import partial

import pytest

from quizdesk.core.errors import NotFoundError, PersistenceError, SessionStateError, ValidationError
from quizdesk.core.models import Question, QuestionDraft, SubjectDraft
from quizdesk.core.services.countdown_timer import CountdownTimer
from quizdesk.core.services.memory_store import InMemoryQuizStore
from quizdesk.core.services.quiz_session import QuizSession, SessionState, score_answers
from quizdesk.core.services.result_summary import percentage

pytestmark = pytest.mark.anyio


async def _instant_sleep(_seconds):
    await asyncio.sleep(0)


@pytest.fixture
def open_session(clock):
    sessions = []

    async def factory(store, subject_id="subj1", user_id="student1", **kwargs):
        kwargs.setdefault("clock", clock)
        # Keep real countdowns from ticking during a test unless asked to.
        kwargs.setdefault("tick_seconds", 3600)
        session = QuizSession(store, user_id, subject_id, **kwargs)
        sessions.append(session)
        await session.load()
        return session

    yield factory
    for session in sessions:
        session.close()


def test_score_counts_only_correct_answers():
    questions = [
        Question("a", "s", "A?", ("1", "2"), "1"),
        Question("b", "s", "B?", ("1", "2"), "2"),
        Question("c", "s", "C?", ("1", "2"), "1"),
    ]

    assert score_answers(questions, {}) == 0
    assert score_answers(questions, {"a": "1", "b": "1"}) == 1
    assert score_answers(questions, {"a": "1", "b": "2", "c": "1"}) == 3


async def test_modern_history_attempt_is_scored_and_recorded(store, open_session, clock):
    session = await open_session(store)
    assert session.state is SessionState.IN_PROGRESS
    assert session.question_count == 2
    assert session.remaining_seconds == 15 * 60

    session.select_answer("1945")
    session.next_question()
    session.select_answer("Abraham Lincoln")
    clock.advance(125)
    result = await session.submit()

    assert session.state is SessionState.COMPLETED
    assert (result.score, result.total_questions) == (1, 2)
    assert result.time_taken == 125
    assert result.attempt_id == session.attempt_id

    history = await store.get_student_quiz_history("student1")
    assert history[0].id == result.id
    assert history[0].subject_name == "Modern History"
    assert percentage(history[0].score, history[0].total_questions) == 50


async def test_navigation_stays_within_question_range(store, open_session):
    session = await open_session(store, subject_id="subj2")

    session.previous_question()
    assert session.current_index == 0
    session.next_question()
    session.next_question()
    session.next_question()
    assert session.current_index == 1
    assert session.is_last_question


async def test_answers_can_be_changed_and_are_kept_across_navigation(store, open_session):
    session = await open_session(store, subject_id="subj2")

    session.select_answer("A JavaScript library")
    session.select_answer("A syntax extension for JavaScript")
    session.next_question()
    session.previous_question()

    assert session.answers == {"q3": "A syntax extension for JavaScript"}
    assert session.calculate_score() == 1


async def test_selecting_unknown_option_is_rejected(store, open_session):
    session = await open_session(store)

    with pytest.raises(ValidationError):
        session.select_answer("1066")
    assert session.answers == {}


async def test_untimed_subject_has_no_countdown(store, open_session):
    session = await open_session(store, subject_id="subj2")

    assert not session.is_timed
    assert session.remaining_seconds is None
    assert session.timer is None


async def test_load_unknown_subject_raises_not_found(store, open_session):
    with pytest.raises(NotFoundError):
        await open_session(store, subject_id="missing")


async def test_load_subject_without_questions_raises_not_found(store, open_session):
    subject = await store.create_subject(SubjectDraft(name="Empty"))

    with pytest.raises(NotFoundError):
        await open_session(store, subject_id=subject.id)


async def test_second_submit_is_rejected(store, open_session):
    session = await open_session(store)
    await session.submit()

    with pytest.raises(SessionStateError):
        await session.submit()
    assert len(await store.get_student_quiz_history("student1")) == 2


async def test_failed_submission_keeps_answers_and_allows_retry(flaky_store, open_session):
    session = await open_session(flaky_store)
    session.select_answer("1945")

    with pytest.raises(PersistenceError):
        await session.submit()

    assert session.state is SessionState.IN_PROGRESS
    assert session.submission_error is not None
    assert session.answers == {"q1": "1945"}
    assert session.timer is not None and session.timer.is_running()

    result = await session.submit()
    assert result.score == 1
    assert session.state is SessionState.COMPLETED
    assert session.submission_error is None
    assert flaky_store.submit_calls == 2


async def test_timer_expiry_submits_exactly_once(store, open_session):
    subject = await store.create_subject(SubjectDraft(name="Sprint", timer_enabled=True, timer_duration=1))
    await store.create_question(_question_draft(subject.id))
    ticks = []

    def counting_timer(seconds, on_expire, *, on_tick, **kwargs):
        def record(remaining):
            ticks.append(remaining)
            on_tick(remaining)

        return CountdownTimer(seconds, on_expire, sleep=_instant_sleep, on_tick=record, **kwargs)

    session = await open_session(store, subject_id=subject.id, timer_factory=counting_timer)
    timer = session.timer

    await timer.wait()

    assert len(ticks) == 60
    assert session.state is SessionState.COMPLETED
    assert session.remaining_seconds == 0
    history = await store.get_student_quiz_history("student1")
    assert [result.subject_id for result in history].count(subject.id) == 1


async def test_manual_submit_stops_the_countdown(store, open_session):
    session = await open_session(store)
    timer = session.timer

    await session.submit()
    await timer.tick()

    assert timer.cancelled
    assert not timer.expired
    assert len(await store.get_student_quiz_history("student1")) == 2


async def test_failed_auto_submission_is_recorded_for_manual_retry(flaky_store, open_session):
    subject = await flaky_store.create_subject(SubjectDraft(name="Sprint", timer_enabled=True, timer_duration=1))
    await flaky_store.create_question(_question_draft(subject.id))
    factory = partial(CountdownTimer, sleep=_instant_sleep)
    session = await open_session(flaky_store, subject_id=subject.id, timer_factory=factory)

    await session.timer.wait()

    assert session.state is SessionState.IN_PROGRESS
    assert session.submission_error is not None
    assert session.remaining_seconds == 0
    await session.submit()
    assert session.state is SessionState.COMPLETED


async def test_close_abandons_and_blocks_submission(store, open_session):
    session = await open_session(store)
    timer = session.timer

    session.close()

    assert session.state is SessionState.ABANDONED
    assert timer.cancelled
    with pytest.raises(SessionStateError):
        await session.submit()


async def test_close_while_loading_discards_the_load(clock):
    store = InMemoryQuizStore(latency_seconds=0.01)
    store.load_demo_data()
    session = QuizSession(store, "student1", "subj1", clock=clock)

    loading = asyncio.create_task(session.load())
    await asyncio.sleep(0)
    session.close()
    await loading

    assert session.state is SessionState.ABANDONED
    assert session.timer is None
    assert session.question_count == 0


def _question_draft(subject_id):
    return QuestionDraft(subject_id, "2 + 2 = ?", ("3", "4"), "4")


class GatedFailingStore(InMemoryQuizStore):
    """Holds ``submit_quiz`` until released, then rejects it."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()

    async def submit_quiz(self, draft):
        await self.gate.wait()
        raise PersistenceError("database unavailable")


async def test_session_closed_during_failed_submission_stays_closed(open_session):
    store = GatedFailingStore()
    store.load_demo_data()
    session = await open_session(store)

    submitting = asyncio.create_task(session.submit())
    await asyncio.sleep(0)
    assert session.state is SessionState.SUBMITTING
    session.close()
    store.gate.set()
    with pytest.raises(PersistenceError):
        await submitting

    assert session.state is SessionState.ABANDONED
    assert session.timer is None
    with pytest.raises(SessionStateError):
        await session.submit()


async def test_rejected_submission_for_deleted_subject_leaves_session_usable(store, open_session):
    session = await open_session(store)
    await store.delete_subject("subj1")

    with pytest.raises(NotFoundError):
        await session.submit()

    assert session.state is SessionState.IN_PROGRESS
    assert isinstance(session.submission_error, NotFoundError)
    assert session.timer is not None and session.timer.is_running()
    session.close()
    assert session.state is SessionState.ABANDONED
