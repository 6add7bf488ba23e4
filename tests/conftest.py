import os
import tempfile
from datetime import UTC, datetime, timedelta

# must be set before db/deps read the environment
_DB_DIR = tempfile.mkdtemp(prefix="assessment-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/test.db"
os.environ["ADMIN_TOKEN"] = "admin-secret"
os.environ["ASSESSMENT_API_KEY"] = "client-key"
os.environ["SWEEP_INTERVAL_SECONDS"] = "0"
os.environ["SUBMIT_GRACE_SECONDS"] = "30"

import pytest
from fastapi.testclient import TestClient

from clock import FixedClock
from db import Base, SessionLocal, init_db
from deps.engine import get_clock
from main import app

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)
ADMIN = {"x-admin-token": "admin-secret"}

init_db()


def participant(pid="p1", cohort="junior", tier="free", paid_until=None):
    h = {
        "x-api-key": "client-key",
        "x-participant-id": pid,
        "x-participant-cohort": cohort,
        "x-participant-tier": tier,
    }
    if paid_until:
        h["x-paid-until"] = paid_until
    return h


def exam_payload(**overrides):
    body = {
        "kind": "test",
        "title": "Weekly Test 12",
        "description": "GK and maths",
        "cohorts": ["junior"],
        "is_paid": False,
        "live_at": T0.isoformat(),
        "expires_at": (T0 + timedelta(hours=24)).isoformat(),
        "duration_minutes": 30,
        "questions": [
            {"prompt": "2 + 2", "options": ["3", "4", "5"], "correct_index": 1, "marks": 2},
            {"prompt": "Capital of France", "options": ["Paris", "Rome"], "correct_index": 0, "marks": 2},
            {"prompt": "5 * 3", "options": ["15", "8", "53"], "correct_index": 0, "marks": 2},
        ],
        "rewards": [
            {"rank": 1, "title": "1st Place", "prize": "Gift card"},
            {"rank": 2, "title": "2nd Place", "prize": "Book"},
        ],
    }
    body.update(overrides)
    return body


def contest_payload(**overrides):
    body = {
        "kind": "contest",
        "title": "Essay Contest",
        "description": "Write about your city",
        "cohorts": ["junior", "senior"],
        "is_paid": False,
        "live_at": T0.isoformat(),
        "expires_at": (T0 + timedelta(days=7)).isoformat(),
        "submission_deadline": (T0 + timedelta(days=5)).isoformat(),
        "contest_type": "english_essay",
        "max_points": 100,
        "form_schema": [
            {"id": "url", "label": "Essay link", "type": "url", "required": True},
            {"id": "notes", "label": "Notes", "type": "textarea", "max_length": 200},
        ],
    }
    body.update(overrides)
    return body


@pytest.fixture(autouse=True)
def clean_db():
    yield
    with SessionLocal() as db:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()


@pytest.fixture
def clock():
    c = FixedClock(T0 - timedelta(days=1))
    app.dependency_overrides[get_clock] = lambda: c
    yield c
    app.dependency_overrides.pop(get_clock, None)


@pytest.fixture
def client(clock):
    return TestClient(app)


@pytest.fixture
def make_assessment(client):
    def _make(payload):
        r = client.post("/admin/assessments", json=payload, headers=ADMIN)
        assert r.status_code == 201, r.text
        return r.json()["assessment"]["id"]

    return _make
