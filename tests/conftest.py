# tests/conftest.py

import os

# Settings are read at import time, so the test environment must be in place
# before anything from checkin_service is imported.
os.environ.setdefault("ENV", "test")
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret"

import time
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from jose import jwt
from starlette.testclient import TestClient

from checkin_service.core.config import get_settings
from checkin_service.core.container import build_container
from checkin_service.crud.memory import InMemoryAttendeeStore, InMemoryQueueStore
from checkin_service.schemas.attendee import AttendeeCreate
from checkin_service.services.admission import AdmissionController
from checkin_service.services.checkin import CheckinOrchestrator
from checkin_service.services.recognition import RecognitionClient


# --- Controllable clock ---
class FakeClock:
    """Callable returning a fixed instant that tests move forward explicitly."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 14, 18, 0, 0, tzinfo=timezone.utc))


# --- Recognition service double ---
class RecognitionStub:
    """
    Programmable handler for httpx.MockTransport.

    Set `recognize_response` / `health_response` to an httpx.Response or an
    exception instance to raise from the transport.
    """

    def __init__(self):
        self.recognize_response = httpx.Response(
            200, json={"users": [], "detected_faces": 0, "recognized_faces": 0}
        )
        self.health_response = httpx.Response(
            200, json={"status": "ok", "model_loaded": True, "database_size": 42}
        )
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.health_response if request.url.path == "/health" else self.recognize_response
        if isinstance(response, Exception):
            raise response
        return response

    def recognizes(self, user_id: str, name: str = "Someone", confidence: float = 0.91):
        self.recognize_response = httpx.Response(
            200,
            json={
                "users": [{"userId": user_id, "name": name, "confidence": confidence, "house": "Gryffindor"}],
                "detected_faces": 1,
                "recognized_faces": 1,
            },
        )


@pytest.fixture
def recognition_stub():
    return RecognitionStub()


@pytest.fixture
def recognition_client(recognition_stub):
    return RecognitionClient(
        base_url="http://recognition.test",
        timeout=10.0,
        transport=httpx.MockTransport(recognition_stub),
    )


# --- Stores and services over in-memory storage ---
@pytest.fixture
def attendee_store():
    return InMemoryAttendeeStore()


@pytest.fixture
def queue_store():
    return InMemoryQueueStore()


@pytest.fixture
def admission(queue_store, clock):
    return AdmissionController(queue_store, max_queue_length=10, seconds_per_item=30, now=clock)


@pytest.fixture
def orchestrator(attendee_store, admission, recognition_client, clock):
    return CheckinOrchestrator(
        attendee_store,
        admission,
        recognition_client,
        cooldown_minutes=5,
        default_confidence=0.95,
        now=clock,
    )


def make_attendee(user_id: str, *, is_vip: bool = None, video_url: str = None, seat: str = "A1") -> AttendeeCreate:
    if is_vip is None:
        is_vip = user_id.startswith("VIP_")
    if is_vip and video_url is None:
        video_url = f"https://cdn.example.com/videos/{user_id.lower()}.mp4"
    return AttendeeCreate(
        user_id=user_id,
        name=f"Attendee {user_id}",
        is_vip=is_vip,
        seat=seat,
        video_url=video_url,
    )


@pytest.fixture
def create_attendee(attendee_store, clock):
    async def _create(user_id: str, **kwargs):
        return await attendee_store.create(make_attendee(user_id, **kwargs), created_at=clock())
    return _create


# --- HTTP layer ---
@pytest.fixture
def container(attendee_store, queue_store, recognition_client, clock):
    return build_container(
        get_settings(),
        attendee_store=attendee_store,
        queue_store=queue_store,
        recognition=recognition_client,
        now=clock,
    )


@pytest.fixture
def test_client(container):
    """TestClient over the real app with an in-memory container installed."""
    from checkin_service.main import app

    app.state.container = container
    with TestClient(app) as client:
        yield client
    app.state.container = None


def admin_token(role: str = "admin", sub: str = "admin_1", **overrides) -> str:
    settings = get_settings()
    claims = {
        "sub": sub,
        "role": role,
        "exp": int(time.time()) + 3600,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
    }
    claims.update(overrides)
    return jwt.encode(claims, settings.JWT_SECRET, algorithm="HS256")


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {admin_token()}"}


@pytest.fixture
def token_factory():
    return admin_token


@pytest.fixture
def attendee_factory():
    return make_attendee
