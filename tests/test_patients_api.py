"""
Tests for patient create / fetch / delete endpoints:
- POST /api/patients
- GET /api/patients/<id>
- DELETE /api/patients/<id>
"""

import datetime

import pytest

from carebase.dates import calculate_age


class TestCreatePatient:

    def test_creates_normalised_record_with_derived_age(self, create):
        patient = create("  p-001 ")

        assert patient["patientId"] == "P-001"
        assert patient["name"] == {"firstName": "Ada", "lastName": "Lovelace"}
        assert patient["fullName"] == "Ada Lovelace"
        assert patient["dateOfBirth"] == "1990-05-17"
        assert patient["age"] == calculate_age(datetime.date(1990, 5, 17))
        assert patient["contact"] == {"phone": "555-0100", "email": "ada@example.com"}
        assert patient["allergies"] == ["penicillin"]
        assert patient["medicalHistory"] == []
        assert patient["createdAt"] and patient["updatedAt"]
        assert isinstance(patient["id"], int)

    def test_age_sent_by_client_is_ignored(self, create):
        patient = create(age=3)
        assert patient["age"] == calculate_age(datetime.date(1990, 5, 17))

    def test_accepts_initial_embedded_lists(self, create):
        patient = create(
            medicalHistory=[{"condition": "Asthma", "date": "2020-01-02"}],
            visits=[{"visitDate": "2024-02-03T10:00:00", "doctorName": "Dr. Who",
                     "diagnosis": "Checkup", "attachments": ["scan.pdf"]}],
        )
        assert [e["condition"] for e in patient["medicalHistory"]] == ["Asthma"]
        assert patient["visits"][0]["visitDate"] == "2024-02-03T10:00:00"
        assert patient["visits"][0]["attachments"] == ["scan.pdf"]

    def test_duplicate_patient_id_is_conflict_case_insensitive(self, client, auth_header,
                                                               create, make_payload):
        create("ABC-1")
        resp = client.post("/api/patients", json=make_payload("abc-1"), headers=auth_header)
        assert resp.status_code == 409
        assert "already exists" in resp.get_json()["message"]

    def test_missing_required_fields(self, client, auth_header, make_payload):
        payload = make_payload()
        del payload["dateOfBirth"]
        resp = client.post("/api/patients", json=payload, headers=auth_header)
        assert resp.status_code == 400

    def test_blank_last_name_rejected(self, client, auth_header, make_payload):
        payload = make_payload(name={"firstName": "Ada", "lastName": "   "})
        resp = client.post("/api/patients", json=payload, headers=auth_header)
        assert resp.status_code == 400
        assert "name.lastName" in resp.get_json()["errors"]

    def test_invalid_gender_rejected(self, client, auth_header, make_payload):
        resp = client.post("/api/patients", json=make_payload(gender="Robot"), headers=auth_header)
        assert resp.status_code == 400

    def test_invalid_email_rejected(self, client, auth_header, make_payload):
        payload = make_payload(contact={"phone": "555", "email": "not-an-email"})
        resp = client.post("/api/patients", json=payload, headers=auth_header)
        assert resp.status_code == 400

    def test_malformed_birth_date_rejected(self, client, auth_header, make_payload):
        resp = client.post("/api/patients", json=make_payload(dateOfBirth="17/05/1990"),
                           headers=auth_header)
        assert resp.status_code == 400
        assert "dateOfBirth" in resp.get_json()["message"]

    @pytest.mark.parametrize("sent", [
        "1990-05-16T18:30:00.000Z",  # local midnight east of UTC (+05:30)
        "1990-05-17T05:00:00.000Z",  # local midnight west of UTC (-05:00)
        "1990-05-17T00:00:00+05:30",
    ])
    def test_browser_timestamp_birth_date_keeps_local_day(self, create, sent):
        patient = create(dateOfBirth=sent)
        assert patient["dateOfBirth"] == "1990-05-17"
        assert patient["age"] == calculate_age(datetime.date(1990, 5, 17))

    def test_prescription_missing_dosage_rejected(self, client, auth_header, make_payload):
        payload = make_payload(currentPrescriptions=[{"medicationName": "Ibuprofen",
                                                      "frequency": "daily"}])
        resp = client.post("/api/patients", json=payload, headers=auth_header)
        assert resp.status_code == 400


class TestFetchPatient:

    def test_fetch_by_store_id(self, client, auth_header, create):
        created = create()
        resp = client.get(f"/api/patients/{created['id']}", headers=auth_header)
        assert resp.status_code == 200
        assert resp.get_json() == created

    def test_unknown_id_is_not_found(self, client, auth_header):
        resp = client.get("/api/patients/999", headers=auth_header)
        assert resp.status_code == 404
        assert resp.get_json() == {"message": "Patient not found"}

    def test_malformed_id_is_bad_request(self, client, auth_header):
        resp = client.get("/api/patients/not-an-id", headers=auth_header)
        assert resp.status_code == 400
        assert resp.get_json() == {"message": "Invalid patient ID format."}

    def test_leading_zeros_resolve_to_same_record(self, client, auth_header, create):
        created = create()
        resp = client.get(f"/api/patients/00{created['id']}", headers=auth_header)
        assert resp.status_code == 200
        assert resp.get_json()["id"] == created["id"]

    @pytest.mark.parametrize("raw_id", ["0", "000", "-1", "9223372036854775808", "1" * 30])
    def test_out_of_range_id_is_bad_request(self, client, auth_header, raw_id):
        resp = client.get(f"/api/patients/{raw_id}", headers=auth_header)
        assert resp.status_code == 400
        assert resp.get_json() == {"message": "Invalid patient ID format."}


class TestDeletePatient:

    def test_delete_removes_permanently(self, client, auth_header, create):
        created = create(visits=[{"doctorName": "Dr. Who", "diagnosis": "Flu"}])
        resp = client.delete(f"/api/patients/{created['id']}", headers=auth_header)
        assert resp.status_code == 200
        assert resp.get_json()["deletedPatientId"] == created["id"]

        assert client.get(f"/api/patients/{created['id']}", headers=auth_header).status_code == 404
        assert client.delete(f"/api/patients/{created['id']}", headers=auth_header).status_code == 404

    def test_delete_unknown_is_not_found(self, client, auth_header):
        assert client.delete("/api/patients/12345", headers=auth_header).status_code == 404

    def test_delete_malformed_id(self, client, auth_header):
        assert client.delete("/api/patients/0", headers=auth_header).status_code == 400


class TestAuthRequired:

    def test_patient_routes_require_token(self, client):
        assert client.get("/api/patients").status_code == 401
        assert client.get("/api/patients/search?query=x").status_code == 401
        assert client.get("/api/patients/analytics").status_code == 401
        assert client.get("/api/patients/1").status_code == 401

    def test_rejects_garbage_token(self, client):
        resp = client.get("/api/patients", headers={"Authorization": "Bearer nonsense"})
        assert resp.status_code == 401
        assert "message" in resp.get_json()


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}
