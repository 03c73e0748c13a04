"""Shared pytest fixtures: in-memory database, file storage, API client and users."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.base import Base
from database.connection import get_db, import_all_models
from main import app
from modules.meeting import models as meeting_models
from modules.meeting.storage import FileStorage, get_storage
from modules.rooms.models import Room
from modules.security.model import User, UserRole, UserRoleAssignment
from modules.security.passwords import hash_password
from modules.security.tokens import create_access_token

import_all_models()

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "secret123"
START = datetime(2030, 1, 7, 9, 0)
END = datetime(2030, 1, 7, 10, 0)


@pytest.fixture
def db():
    """Fresh schema per test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def storage(tmp_path):
    return FileStorage(str(tmp_path / "uploads"))


@pytest.fixture
def client(db, storage):
    """TestClient sharing the test session; the lifespan (startup bootstrap) is not run."""
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_storage] = lambda: storage
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ---------- users ----------
@pytest.fixture
def make_user(db):
    def _make(email: str, role: UserRole = UserRole.EMPLOYEE, first_name: str = "Test") -> User:
        user = User(
            first_name=first_name,
            last_name="User",
            email=email,
            password_hash=hash_password(PASSWORD),
        )
        user.role_assignments.append(UserRoleAssignment(role=role.value))
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        token = create_access_token(user.id, user.roles)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def organizer(make_user):
    return make_user("organizer@example.com", first_name="Olivia")


@pytest.fixture
def invitee(make_user):
    return make_user("invitee@example.com", first_name="Ivan")


@pytest.fixture
def outsider(make_user):
    return make_user("outsider@example.com", first_name="Oscar")


@pytest.fixture
def guest(make_user):
    return make_user("guest@example.com", role=UserRole.GUEST, first_name="Gina")


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com", role=UserRole.ADMIN, first_name="Ada")


# ---------- rooms & meetings ----------
@pytest.fixture
def room(db):
    r = Room(name="Everest", capacity=2, location="Floor 3")
    db.add(r)
    db.commit()
    db.refresh(r)
    return r


@pytest.fixture
def meeting(db, room, organizer, invitee):
    """Scheduled meeting in `room`, organized by `organizer`, with `invitee` already accepted."""
    m = meeting_models.Meeting(
        title="Sprint planning",
        agenda="Plan the sprint",
        room_id=room.id,
        organizer_id=organizer.id,
        start_time=START,
        end_time=END,
        status=meeting_models.MeetingStatus.SCHEDULED.value,
    )
    m.invitees.append(meeting_models.Invitee(
        user_id=invitee.id,
        email=invitee.email,
        status=meeting_models.InviteStatus.ANSWERED.value,
        attendance=meeting_models.Attendance.ACCEPTED.value,
    ))
    db.add(m)
    db.commit()
    db.refresh(m)
    return m


@pytest.fixture
def action_item(db, meeting, invitee):
    item = meeting_models.ActionItem(
        description="Write the release notes",
        type="Task",
        assigned_to_id=invitee.id,
    )
    meeting.action_items.append(item)
    db.commit()
    db.refresh(item)
    return item
