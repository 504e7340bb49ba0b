import itertools
from datetime import timedelta
from unittest.mock import Mock

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine, StaticPool, create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

from app.database.db import Base, get_db
from app.main import app
from app.models.events import Category, Event, EventState, Location, User
from app.models.requests import ParticipationRequest, RequestStatus
from app.services.events import utcnow

# Use an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine: Engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_database():
    """Fresh tables for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def db_session():
    db: Session = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


# Override the database dependency
def override_get_db():
    db: Session = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture(autouse=True)
def redis_client(monkeypatch: pytest.MonkeyPatch, fake_redis):
    """Route the event lock to fakeredis."""
    monkeypatch.setattr("app.services.concurrency.get_redis_client", lambda: fake_redis)
    return fake_redis


@pytest.fixture(autouse=True)
def hit_task(monkeypatch: pytest.MonkeyPatch):
    """Celery isn't running in tests; capture hit recording instead."""
    task = Mock()
    monkeypatch.setattr("app.routes.public.record_hit_task", task)
    return task


def future_date(days: int = 3):
    return utcnow() + timedelta(days=days)


@pytest.fixture
def user_factory(db_session: Session):
    counter = itertools.count(1)

    def make_user(name: str | None = None) -> User:
        n = next(counter)
        user = User(name=name or f"User {n}", email=f"user{n}@example.com")
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return make_user


@pytest.fixture
def category(db_session: Session) -> Category:
    category = Category(name="Concerts")
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def location(db_session: Session) -> Location:
    location = Location(lat=55.75, lon=37.61)
    db_session.add(location)
    db_session.commit()
    db_session.refresh(location)
    return location


@pytest.fixture
def event_factory(db_session: Session, user_factory, category: Category, location: Location):
    def make_event(
        *,
        initiator: User | None = None,
        participant_limit: int = 0,
        request_moderation: bool = True,
        state: EventState = EventState.PUBLISHED,
        confirmed_requests: int = 0,
    ) -> Event:
        initiator = initiator or user_factory()
        now = utcnow()
        event = Event(
            title="Jazz night",
            annotation="An evening of live jazz in the park",
            description="Bring a blanket, the band starts at eight sharp.",
            category_id=category.id,
            location_id=location.id,
            initiator_id=initiator.id,
            event_date=future_date(),
            created_on=now,
            published_on=now if state == EventState.PUBLISHED else None,
            participant_limit=participant_limit,
            request_moderation=request_moderation,
            confirmed_requests=confirmed_requests,
            state=state.value,
        )
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event

    return make_event


@pytest.fixture
def add_request(db_session: Session):
    """Insert a request row directly, bypassing admission."""
    def make_request(event: Event, requester: User, status: RequestStatus = RequestStatus.PENDING) -> ParticipationRequest:
        request = ParticipationRequest(event_id=event.id, requester_id=requester.id, status=status.value)
        db_session.add(request)
        db_session.commit()
        db_session.refresh(request)
        return request

    return make_request
