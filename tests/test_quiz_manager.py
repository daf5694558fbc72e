import asyncio

import pytest

from quizdesk.core.errors import AccessDeniedError, NotFoundError
from quizdesk.core.models import SubjectDraft
from quizdesk.core.quiz_manager import QuizManager
from quizdesk.core.services.memory_store import InMemoryQuizStore
from quizdesk.core.services.quiz_session import SessionState

pytestmark = pytest.mark.anyio


async def _user(store, user_id):
    return await store.get_user_by_id(user_id)


async def test_student_cannot_use_admin_tools(manager, store):
    alice = await _user(store, "student1")

    with pytest.raises(AccessDeniedError):
        await manager.create_subject(alice, SubjectDraft(name="Hacked"))


async def test_admin_cannot_take_quizzes(manager, store):
    admin = await _user(store, "admin1")

    with pytest.raises(AccessDeniedError):
        await manager.start_quiz(admin, "subj1")


async def test_starting_a_new_quiz_replaces_the_old_session(manager, store):
    await store.update_user_access("student1", ["subj1", "subj2"])
    alice = await _user(store, "student1")

    first = await manager.start_quiz(alice, "subj1")
    second = await manager.start_quiz(alice, "subj2")

    assert first.state is SessionState.ABANDONED
    assert manager.get_session(alice) is second


async def test_submit_returns_summary_and_review(manager, store):
    alice = await _user(store, "student1")
    session = await manager.start_quiz(alice, "subj1")
    session.select_answer("1945")
    session.next_question()
    session.select_answer("George Washington")

    completed = await manager.submit_quiz(alice)

    assert completed.summary.percentage == 100
    assert completed.summary.feedback.title == "Perfect Score!"
    assert completed.subject_name == "Modern History"
    assert manager.completed_quiz(alice, include_review=True).review[1].is_correct


async def test_removing_student_ends_their_sessions(manager, store):
    admin = await _user(store, "admin1")
    alice = await _user(store, "student1")
    auth, _ = await manager.login("alice@quiz.com")
    session = await manager.start_quiz(alice, "subj1")

    await manager.remove_student(admin, "student1")

    assert session.state is SessionState.ABANDONED
    assert await manager.restore_user(auth.token) is None


async def test_logout_abandons_running_quiz(manager, store):
    auth, alice = await manager.login("alice@quiz.com")
    session = await manager.start_quiz(alice, "subj1")

    manager.logout(auth.token, alice)

    assert session.state is SessionState.ABANDONED
    with pytest.raises(NotFoundError):
        manager.get_session(alice)


async def test_import_into_missing_subject_fails(manager, store):
    admin = await _user(store, "admin1")

    with pytest.raises(NotFoundError):
        await manager.import_questions(admin, "nope", "[]")


async def test_completed_quiz_requires_a_submission(manager, store):
    alice = await _user(store, "student1")
    await manager.start_quiz(alice, "subj1")

    with pytest.raises(NotFoundError):
        manager.completed_quiz(alice)


async def test_overlapping_starts_leave_one_running_session():
    store = InMemoryQuizStore(latency_seconds=0.01)
    store.load_demo_data()
    manager = QuizManager(store)
    alice = await store.get_user_by_id("student1")

    first, second = await asyncio.gather(
        manager.start_quiz(alice, "subj1"),
        manager.start_quiz(alice, "subj1"),
    )

    current = manager.get_session(alice)
    stale = first if current is second else second
    assert current in (first, second)
    assert stale.state is SessionState.ABANDONED
    assert stale.timer is None

    timer = current.timer
    manager.shutdown()
    assert current.state is SessionState.ABANDONED
    assert timer.cancelled
