import pytest

from quizdesk.core.errors import AuthenticationError
from quizdesk.core.services.auth_session import AuthManager

pytestmark = pytest.mark.anyio


async def test_login_by_email_issues_token(store):
    auth = AuthManager(store)

    session, user = await auth.login("Admin@Quiz.com")

    assert user.id == "admin1"
    assert session.user_id == "admin1"
    assert await auth.restore(session.token) == user


async def test_unknown_email_is_rejected(store):
    auth = AuthManager(store)

    with pytest.raises(AuthenticationError, match="User not found"):
        await auth.login("nobody@quiz.com")
    assert auth.active_session_count() == 0


async def test_restore_without_token_returns_none(store):
    auth = AuthManager(store)

    assert await auth.restore(None) is None
    assert await auth.restore("made-up") is None


async def test_logout_invalidates_token(store):
    auth = AuthManager(store)
    session, _ = await auth.login("alice@quiz.com")

    auth.logout(session.token)

    assert await auth.restore(session.token) is None


async def test_restore_sees_access_changes(store):
    auth = AuthManager(store)
    session, user = await auth.login("bob@quiz.com")
    assert not user.can_access("subj2")

    await store.update_user_access("student2", ["subj2"])

    assert (await auth.restore(session.token)).can_access("subj2")


async def test_removed_user_loses_session(store):
    auth = AuthManager(store)
    session, _ = await auth.login("bob@quiz.com")

    await store.remove_user("student2")

    assert await auth.restore(session.token) is None
    assert auth.active_session_count() == 0
