"""Shared fixtures: a throwaway SQLite database, API client, fake AI clients."""

import os
import sys
import uuid

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import unilearn.models  # noqa: F401
from unilearn.config import settings
from unilearn.database import Base, get_db, get_session_factory
from unilearn.dependencies import get_ai_provider
from unilearn.main import app
from unilearn.services.ai_client import AIProvider


class FakeChatClient:
    """Records every call; returns a canned reply or raises."""

    name = "Fake"

    def __init__(self, reply: str = "Inertia keeps objects moving.", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []

    async def chat(self, system, messages, max_tokens=400, temperature=0.7):
        self.calls.append({
            "system": system,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.error is not None:
            raise self.error
        return self.reply


class FakeEmbeddingClient:
    def __init__(self, vector: list[float] | None = None, error: Exception | None = None):
        self.vector = vector
        self.error = error
        self.calls = 0

    async def embed(self, texts):
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.vector is None:
            return []
        return [list(self.vector) for _ in texts]


def build_pdf(text: str) -> bytes:
    """A minimal single-page PDF showing `text` in Helvetica."""
    escaped = text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
    stream = f"BT /F1 12 Tf 72 720 Td ({escaped}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_at = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    return bytes(out)


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def ai_provider():
    """No AI configured; tests attach fake clients when they need them."""
    return AIProvider()


@pytest.fixture
def client(session_factory, ai_provider, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_ai_provider] = lambda: ai_provider
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(client):
    """Register + login; returns (user json, auth headers)."""

    def _make(role: str = "student", password: str = "s3cret-pass"):
        email = f"{role}-{uuid.uuid4().hex[:8]}@uni.edu"
        res = client.post("/api/auth/register", json={
            "email": email,
            "password": password,
            "firstName": role.title(),
            "lastName": "Tester",
            "role": role,
        })
        assert res.status_code == 201, res.text
        login = client.post("/api/auth/login", json={"email": email, "password": password})
        assert login.status_code == 200, login.text
        return res.json(), {"Authorization": f"Bearer {login.json()['access_token']}"}

    return _make


@pytest.fixture
def course_setup(client, make_user):
    """An instructor-owned course with one enrolled student."""
    instructor, instructor_headers = make_user("instructor")
    student, student_headers = make_user("student")

    res = client.post(
        "/api/courses",
        json={"title": "Physics 101", "description": "Classical mechanics"},
        headers=instructor_headers,
    )
    assert res.status_code == 201, res.text
    course = res.json()

    res = client.post(f"/api/courses/{course['id']}/enroll", headers=student_headers)
    assert res.status_code == 201, res.text

    return {
        "course": course,
        "instructor": instructor,
        "instructor_headers": instructor_headers,
        "student": student,
        "student_headers": student_headers,
    }
