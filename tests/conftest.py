from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
import pytest

from quizdesk.core.errors import PersistenceError
from quizdesk.core.quiz_manager import QuizManager
from quizdesk.core.services.memory_store import InMemoryQuizStore
from quizdesk.server.api_server import create_api_app

SEED_TIME = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


class FlakyQuizStore(InMemoryQuizStore):
    """Store whose ``submit_quiz`` fails a configurable number of times.

    With ``lose_ack`` the result is saved before the error is raised, like a
    write that succeeded but whose response never arrived.
    """

    def __init__(self, failures: int = 1, lose_ack: bool = False) -> None:
        super().__init__()
        self.failures = failures
        self.lose_ack = lose_ack
        self.submit_calls = 0
        self.saved = []

    async def submit_quiz(self, draft):
        self.submit_calls += 1
        if self.failures > 0:
            self.failures -= 1
            if self.lose_ack:
                self.saved.append(await super().submit_quiz(draft))
            raise PersistenceError("database unavailable")
        result = await super().submit_quiz(draft)
        self.saved.append(result)
        return result


class FakeClock:
    def __init__(self, start: datetime = SEED_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def store():
    store = InMemoryQuizStore()
    store.load_demo_data(now=SEED_TIME)
    return store


@pytest.fixture
def flaky_store():
    store = FlakyQuizStore(failures=1)
    store.load_demo_data(now=SEED_TIME)
    return store


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(store):
    manager = QuizManager(store)
    yield manager
    manager.shutdown()


@pytest.fixture
def client(manager):
    with TestClient(create_api_app(manager)) as test_client:
        yield test_client


def _login(client, email):
    response = client.post("/auth/login", json={"email": email})
    assert response.status_code == 200, response.text
    return client


@pytest.fixture
def flaky_client(flaky_store):
    manager = QuizManager(flaky_store)
    with TestClient(create_api_app(manager)) as test_client:
        yield _login(test_client, "alice@quiz.com")


@pytest.fixture
def admin_client(client):
    return _login(client, "admin@quiz.com")


@pytest.fixture
def student_client(client):
    return _login(client, "alice@quiz.com")
