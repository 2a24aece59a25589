import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
import random
import os
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Set testing environment variable
os.environ["TESTING"] = "1"

# Ensure we're using SQLite for tests
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"

from app.main import app
from app.core.database import get_db, Base, redis_client
from app.services.scan_sessions import ScanSessionRegistry, get_scan_sessions

# Create test database
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

PASSWORD = "TestPassword123"

DOCTOR_PROFILE = {
    "name": "Dr. Asha Mehta",
    "specialization": "Cardiologist",
    "experience": "5-10",
    "availability": "Mon-Fri 9AM-5PM",
    "consultation_fee": 500,
    "visit_fee": 800,
    "address": "12 Park Street, Kolkata",
    "about_text": "Heart health and preventive care.",
    "condition_types": ["Heart Disease", "Hypertension"],
}

class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

@pytest.fixture(scope="function")
def test_db():
    # Create tables
    Base.metadata.create_all(bind=engine)
    redis_client.flushall()
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def client():
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def scan_registry(clock):
    registry = ScanSessionRegistry(clock=clock, rng=random.Random(7))
    app.dependency_overrides[get_scan_sessions] = lambda: registry
    yield registry
    app.dependency_overrides.pop(get_scan_sessions, None)

def login(client, email, password=PASSWORD):
    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()

def auth_headers(tokens):
    return {"Authorization": f"Bearer {tokens['access_token']}"}

@pytest.fixture
def make_patient(client, test_db):
    """Register and sign in a patient; returns auth headers."""
    def _make(email="patient@example.com", name="Riya Sen", **extra):
        payload = {
            "email": email,
            "password": PASSWORD,
            "confirm_password": PASSWORD,
            "role": "patient",
            "name": name,
            **extra,
        }
        response = client.post("/api/v1/auth/register", json=payload)
        assert response.status_code == 200, response.text
        return auth_headers(login(client, email))
    return _make

@pytest.fixture
def make_doctor(client, test_db):
    """Register a doctor account with a completed profile; returns auth headers."""
    def _make(email="doctor@example.com", **profile):
        response = client.post("/api/v1/auth/register", json={
            "email": email,
            "password": PASSWORD,
            "role": "doctor",
        })
        assert response.status_code == 200, response.text
        headers = auth_headers(login(client, email))

        response = client.post(
            "/api/v1/doctors", json={**DOCTOR_PROFILE, **profile}, headers=headers
        )
        assert response.status_code == 201, response.text
        return headers
    return _make

@pytest.fixture
def patient_headers(make_patient):
    return make_patient(address="4 Lake Road, Kolkata", phone="9800000000")

@pytest.fixture
def doctor_headers(make_doctor):
    return make_doctor()

@pytest.fixture
def doctor_id(client, doctor_headers):
    return client.get("/api/v1/doctors/me", headers=doctor_headers).json()["id"]
