"""
Pytest configuration shared by all tests.
Every test gets a fresh app bound to an in-memory SQLite database.
"""

import copy

import pytest

from carebase import create_app, db
from config import TestConfig


BASE_PATIENT = {
    "patientId": "p-001",
    "name": {"firstName": "Ada", "lastName": "Lovelace"},
    "dateOfBirth": "1990-05-17",
    "gender": "Female",
    "contact": {"phone": " 555-0100 ", "email": "Ada@Example.com"},
    "address": {"street": "1 Main St", "city": "Springfield", "state": "IL", "zipCode": "62701"},
    "bloodGroup": "O+",
    "allergies": ["penicillin"],
}


@pytest.fixture
def app():
    """Create Flask test app."""
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def auth_header(client):
    """Register a staff user and return its bearer header."""
    resp = client.post("/api/auth/register", json={
        "username": "nurse.joy",
        "password": "s3cret-pass",
        "role": "nurse",
    })
    assert resp.status_code == 201, resp.get_json()
    return {"Authorization": f"Bearer {resp.get_json()['token']}"}


@pytest.fixture
def make_payload():
    """Build a valid creation payload, overriding top-level keys."""
    def make(patient_id="P-001", **overrides):
        payload = copy.deepcopy(BASE_PATIENT)
        payload["patientId"] = patient_id
        payload.update(overrides)
        return payload
    return make


@pytest.fixture
def create(client, auth_header, make_payload):
    """POST a patient and return the created record."""
    def _create(patient_id="P-001", **overrides):
        resp = client.post("/api/patients", json=make_payload(patient_id, **overrides),
                           headers=auth_header)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()
    return _create
