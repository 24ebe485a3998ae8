"""
Tests for the reminders and activity API endpoints
"""
import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_current_user, get_db
from app.config import get_settings
from app.infrastructure.db.models import Reminder, UserActivityLog
from app.main import app


@pytest.fixture
def student(make_user):
    return make_user(name="Ana")


@pytest.fixture
def client(db_session, student):
    """Test client with the DB session and the acting user overridden"""
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_current_user] = lambda: student
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(db_session):
    app.dependency_overrides[get_db] = lambda: db_session
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(anonymous_client):
    response = anonymous_client.get("/health")
    assert response.status_code == 200
    assert response.text == "ok"


def test_requires_login(anonymous_client):
    assert anonymous_client.get("/api/reminders").status_code == 401


def test_index(client, student, make_reminder):
    reminder = make_reminder(student, type="streak_risk", status="sent")
    make_reminder(student, status="pending")

    response = client.get("/api/reminders")

    assert response.status_code == 200
    data = response.json()
    assert data["unread_count"] == 1
    assert [r["id"] for r in data["reminders"]] == [reminder.id]
    item = data["reminders"][0]
    assert item["icon"] == "🔥"
    assert item["action_url"] == "/study-planner"
    assert item["send_at"].endswith("+00:00")


def test_mark_read(client, student, make_reminder):
    reminder = make_reminder(student, status="sent")

    response = client.post(f"/api/reminders/{reminder.id}/read")

    assert response.status_code == 200
    assert response.json()["reminder"]["status"] == "read"


def test_read_dismissed_conflict(client, student, make_reminder):
    reminder = make_reminder(student, status="dismissed")
    assert client.post(f"/api/reminders/{reminder.id}/read").status_code == 409


def test_missing_reminder(client):
    assert client.post("/api/reminders/999/dismiss").status_code == 404


def test_foreign_reminder_forbidden(client, make_user, make_reminder, db_session):
    other = make_user()
    reminder = make_reminder(other, status="sent")

    assert client.post(f"/api/reminders/{reminder.id}/dismiss").status_code == 403
    db_session.refresh(reminder)
    assert reminder.status == "sent"


def test_dismiss_all(client, student, make_reminder):
    make_reminder(student, status="sent")
    make_reminder(student, status="read")

    response = client.post("/api/reminders/dismiss-all")

    assert response.json() == {"status": "ok", "dismissed": 2}


def test_toggle(client, student, db_session):
    response = client.post("/api/reminders/toggle", json={"enabled": False})

    assert response.json() == {"status": "ok", "enabled": False}
    db_session.refresh(student)
    assert student.reminders_enabled is False


def test_set_window(client, student, db_session):
    assert client.post("/api/reminders/window", json={"window": "morning"}).status_code == 200
    db_session.refresh(student)
    assert student.reminder_window == "morning"
    assert student.reminder_window_inferred is False


def test_set_window_rejects_unknown(client):
    assert client.post("/api/reminders/window", json={"window": "brunch"}).status_code == 422


def test_demo_requires_debug(client, monkeypatch):
    monkeypatch.setattr(get_settings(), "DEBUG", False)
    assert client.post("/api/reminders/demo").status_code == 403


def test_demo_seeds_samples(client, student, db_session, monkeypatch):
    monkeypatch.setattr(get_settings(), "DEBUG", True)

    response = client.post("/api/reminders/demo")

    assert response.json() == {"status": "ok", "created": 4}
    assert db_session.query(Reminder).filter_by(user_id=student.id, status="sent").count() == 4


def test_track_activity(client, student, db_session):
    response = client.post("/api/activity", json={"event_type": "study_session_completed", "payload": {"minutes": 25}})

    assert response.status_code == 200
    row = db_session.get(UserActivityLog, response.json()["id"])
    assert row.user_id == student.id
    assert row.payload == {"minutes": 25}


def test_track_unknown_activity(client):
    assert client.post("/api/activity", json={"event_type": "page_scrolled"}).status_code == 422
