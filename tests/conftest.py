"""Pytest fixtures: test client, in-memory DB, fake providers."""
import os
import tempfile
import uuid

import pytest
from fastapi.testclient import TestClient

# In-memory SQLite and dummy keys; must be set before the app is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("OPENAI_API_KEY", "sk-test-dummy")
os.environ.setdefault("ASSEMBLYAI_API_KEY", "aai-test-dummy")
os.environ.setdefault("LOCAL_UPLOAD_DIR", tempfile.mkdtemp(prefix="callsight-uploads-"))
# High limits so the whole suite can share one client IP
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "1000")
os.environ.setdefault("RATE_LIMIT_REGISTER_PER_MINUTE", "100")
os.environ.setdefault("RATE_LIMIT_UPLOAD_PER_MINUTE", "1000")

from sqlmodel import Session  # noqa: E402

from callsight.api.deps import get_feedback_service, get_reconciliation_service, get_submission_service  # noqa: E402
from callsight.core.database import engine, init_db  # noqa: E402
from callsight.core.security import hash_password  # noqa: E402
from callsight.main import app  # noqa: E402
from callsight.models import User  # noqa: E402
from callsight.services.feedback import FeedbackService  # noqa: E402
from callsight.services.reconciliation import ReconciliationService  # noqa: E402
from callsight.services.submission import SubmissionService  # noqa: E402
from fakes import FakeInsights, FakeStorage, FakeTranscriber  # noqa: E402

TEST_MAX_UPLOAD_BYTES = 1024 * 1024


@pytest.fixture
def fake_transcriber():
    return FakeTranscriber()


@pytest.fixture
def fake_insights():
    return FakeInsights()


@pytest.fixture
def fake_storage():
    return FakeStorage()


@pytest.fixture(scope="function")
def client(fake_transcriber, fake_insights, fake_storage):
    """TestClient with the provider-backed services swapped for fakes."""
    app.dependency_overrides[get_submission_service] = lambda: SubmissionService(
        fake_storage, fake_transcriber, max_upload_bytes=TEST_MAX_UPLOAD_BYTES
    )
    app.dependency_overrides[get_reconciliation_service] = lambda: ReconciliationService(fake_transcriber, fake_insights)
    app.dependency_overrides[get_feedback_service] = lambda: FeedbackService(fake_insights)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _register_and_login(email: str, full_name: str) -> str:
    with TestClient(app) as auth_client:
        auth_client.post(
            "/auth/register",
            data={"email": email, "password": "test123456", "full_name": full_name},
        )
        r = auth_client.post("/auth/login", data={"email": email, "password": "test123456"})
        assert r.status_code == 200, f"Login failed: {r.status_code} {r.text}"
        return r.json().get("access_token")


@pytest.fixture(scope="session")
def _auth_token():
    """One registration for the whole session; every test uses the same user."""
    return _register_and_login("test@example.com", "Test User")


@pytest.fixture(scope="session")
def _other_auth_token():
    return _register_and_login("other@example.com", "Other User")


@pytest.fixture
def auth_headers(_auth_token):
    return {"Authorization": f"Bearer {_auth_token}"}


@pytest.fixture
def other_auth_headers(_other_auth_token):
    return {"Authorization": f"Bearer {_other_auth_token}"}


@pytest.fixture
def db():
    init_db()
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_user(db):
    def _make(full_name: str = "Rep") -> User:
        user = User(
            email=f"{uuid.uuid4().hex[:12]}@example.com",
            hashed_password=hash_password("secret123"),
            full_name=full_name,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make
