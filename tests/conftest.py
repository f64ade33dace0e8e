"""Pytest fixtures for the CalSync API tests.

Provides:
- an in-memory SQLite database shared by request and background sessions
- a FastAPI TestClient wired to that database
- fake Google / Outlook calendar adapters that record every call
- an email outbox replacing the SMTP relay
- a registered organizer with both calendars connected
"""

import itertools
import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="calsync_logs_"))
os.environ.setdefault("FRONTEND_URL", "https://calsync.test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from calsync.base.database import Base, get_db, get_session_factory, init_db
from calsync.base.security import create_access_token, hash_password
from calsync.main import app
from calsync.models.user_model import UserModel
from calsync.providers.calendar_clients import GOOGLE, OUTLOOK
from calsync.services import availability_service, meeting_service, slot_selection_service
from calsync.utils import email_utils

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeCalendarClient:
    """Stands in for a provider adapter; same method shapes, no network."""

    def __init__(self, provider, fail_create=False, fail_delete=False, events=None):
        self.provider = provider
        self.fail_create = fail_create
        self.fail_delete = fail_delete
        self.events = events or []
        self.created = []
        self.deleted = []
        self.list_calls = []
        self._ids = itertools.count(1)

    def create_event(self, subject, start, end, attendee_email):
        if self.fail_create:
            return None
        event_id = f"{self.provider}-evt-{next(self._ids)}"
        self.created.append({
            "id": event_id,
            "subject": subject,
            "start": start,
            "end": end,
            "attendee_email": attendee_email,
        })
        return event_id

    def delete_event(self, event_id):
        self.deleted.append(event_id)
        return not self.fail_delete

    def list_events(self, time_min, time_max):
        self.list_calls.append((time_min, time_max))
        return list(self.events)


@pytest.fixture(autouse=True)
def database():
    init_db(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def calendars(monkeypatch):
    """Provider name -> fake adapter; handed out only for connected providers."""
    fakes = {GOOGLE: FakeCalendarClient(GOOGLE), OUTLOOK: FakeCalendarClient(OUTLOOK)}

    def fake_build(user):
        clients = {}
        if user.google_token:
            clients[GOOGLE] = fakes[GOOGLE]
        if user.outlook_token:
            clients[OUTLOOK] = fakes[OUTLOOK]
        return clients

    for module in (meeting_service, slot_selection_service, availability_service):
        monkeypatch.setattr(module, "build_calendar_clients", fake_build)
    return fakes


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    def fake_send(to_email, subject, html, settings=None):
        sent.append({"to": to_email, "subject": subject, "html": html})
        return True

    monkeypatch.setattr(email_utils, "send_email", fake_send)
    return sent


@pytest.fixture
def client(calendars, outbox):
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(email, password="s3cret-pass", google_token=None, outlook_token=None):
    with TestingSessionLocal() as db:
        user = UserModel(
            email=email,
            password=hash_password(password, rounds=4),
            google_token=google_token,
            outlook_token=outlook_token,
        )
        db.add(user)
        db.commit()
        return user.id


@pytest.fixture
def organizer():
    user_id = make_user("organizer@example.com", google_token="g-token", outlook_token="o-token")
    return {"id": user_id, "email": "organizer@example.com"}


@pytest.fixture
def auth_headers(organizer):
    return {"Authorization": f"Bearer {create_access_token(organizer['id'])}"}


@pytest.fixture
def user_factory():
    return make_user


@pytest.fixture
def bearer():
    def headers_for(user_id):
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}
    return headers_for
