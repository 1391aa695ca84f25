import os

# Keep the application engine off the on-disk default database
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine, StaticPool, create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

from event_registry.core.clock import get_clock
from event_registry.core.security import create_access_token, hash_password
from event_registry.database.db import Base, get_db
from event_registry.main import app
from event_registry.models.events import Event
from event_registry.models.users import Role, User

# Use an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine: Engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Services and API see this as "now"
NOW = datetime(2030, 6, 1, 12, 0, 0)
PASSWORD = "secret123"
PASSWORD_HASH = hash_password(PASSWORD)


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock():
    return fixed_clock


@pytest.fixture(autouse=True)
def setup_database():
    """Fresh tables for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


# Override the database and clock dependencies
def override_get_db():
    db: Session = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db
app.dependency_overrides[get_clock] = lambda: fixed_clock


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture(autouse=True)
def redis_client(monkeypatch: pytest.MonkeyPatch, fake_redis):
    """Point the registration lock at an in-process fake Redis."""
    monkeypatch.setattr(
        "event_registry.services.registrations.get_redis_client", lambda: fake_redis
    )
    return fake_redis


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db_session: Session):
    counter = {"n": 0}

    def _make_user(username: str | None = None, roles: list[Role] | None = None, **kwargs) -> User:
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        user = User(
            username=username,
            email=kwargs.pop("email", f"{username}@example.com"),
            hashed_password=PASSWORD_HASH,
            full_name=kwargs.pop("full_name", username.title()),
            roles=[role.value for role in (roles or [Role.USER])],
            **kwargs,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def organizer(make_user) -> User:
    return make_user("organizer", roles=[Role.ORGANIZER])


@pytest.fixture
def admin(make_user) -> User:
    return make_user("admin", roles=[Role.ADMIN])


@pytest.fixture
def make_event(db_session: Session, organizer: User):
    def _make_event(
        name: str = "Conference",
        capacity: int = 10,
        published: bool = True,
        starts_in: timedelta = timedelta(days=7),
        organizer_user: User | None = None,
        **kwargs,
    ) -> Event:
        start_time = NOW + starts_in
        event = Event(
            name=name,
            start_time=start_time,
            end_time=kwargs.pop("end_time", start_time + timedelta(hours=3)),
            capacity=capacity,
            published=published,
            registered_count=kwargs.pop("registered_count", 0),
            organizer=organizer_user or organizer,
            **kwargs,
        )
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event

    return _make_event


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict[str, str]:
        token = create_access_token(data={"sub": user.username})
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
