import pytest
import pytest_asyncio
from fakeredis import FakeRedis
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.model  # noqa: F401  registers every table on Base.metadata
from app.chat.connection_manager import connection_manager
from app.core.database import Base, get_db
from app.schema.participant import Participant
from app.session import create_session, set_redis_client
from main import app as fastapi_app


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def fake_redis():
    client = FakeRedis(decode_responses=True)
    set_redis_client(client)
    try:
        yield client
    finally:
        set_redis_client(None)
        client.flushall()


@pytest.fixture(autouse=True)
def reset_connection_manager():
    """Listeners registered by one test must not see events from the next."""
    yield
    connection_manager._listeners.clear()
    connection_manager._channels.clear()


@pytest.fixture
def alice():
    return Participant.guest("alice")


@pytest.fixture
def bob():
    return Participant.guest("bob")


@pytest.fixture
def carol():
    return Participant.authenticated("carol")


@pytest.fixture
def auth_headers(fake_redis):
    """Issue a session for a participant and return its Authorization header."""

    def _issue(participant: Participant) -> dict:
        token = f"token-{participant.kind.value}-{participant.id}"
        create_session(token, participant)
        return {"Authorization": f"Bearer {token}"}

    return _issue


@pytest_asyncio.fixture
async def api_client(session_factory, monkeypatch):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = _get_db
    monkeypatch.setattr("app.router.api.v1.chat.SessionLocal", session_factory)
    transport = ASGITransport(app=fastapi_app)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        fastapi_app.dependency_overrides.pop(get_db, None)
