"""Write operations on patient records.

Embedded lists live in child tables, so an append directive becomes a
single INSERT of the new entry and never rewrites the entries already
stored. Scalar edits only touch the columns that changed.
"""
import datetime
import logging
from sqlalchemy.exc import IntegrityError
from . import db
from .dates import calculate_age, parse_birth_date, parse_datetime
from .errors import Conflict, ValidationFailed
from .models import Allergy, DoctorNote, MedicalHistoryEntry, Patient, Prescription, Visit
from .selectors import get_patient

logger = logging.getLogger(__name__)

# Derived or store-managed keys a client may echo back; never written.
READ_ONLY_FIELDS = ("id", "_id", "age", "fullName", "createdAt", "updatedAt")


def _object(value, field):
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationFailed(f"{field} must be an object.", {field: value})
    return value


def _list(value, field):
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationFailed(f"{field} must be a list.", {field: value})
    return value


def _string(value, field):
    if value is None or isinstance(value, str):
        return value
    raise ValidationFailed(f"{field} must be a string.", {field: value})


def _required(data, key, field):
    value = _string(data.get(key), f"{field}.{key}")
    if value is None or not value.strip():
        raise ValidationFailed(f"{field}.{key} is required.", {f"{field}.{key}": "required"})
    return value.strip()


def _optional_datetime(data, key, field):
    if data.get(key) in (None, ""):
        return None
    return parse_datetime(data[key], f"{field}.{key}")


def _build_history_entry(data, field):
    data = _object(data, field)
    return MedicalHistoryEntry(
        date=_optional_datetime(data, "date", field) or datetime.datetime.now(),
        condition=_required(data, "condition", field),
        notes=_string(data.get("notes"), f"{field}.notes"),
        diagnosed_by=_string(data.get("diagnosedBy"), f"{field}.diagnosedBy"),
    )


def _build_prescription(data, field):
    data = _object(data, field)
    return Prescription(
        medication_name=_required(data, "medicationName", field),
        dosage=_required(data, "dosage", field),
        frequency=_required(data, "frequency", field),
        start_date=_optional_datetime(data, "startDate", field) or datetime.datetime.now(),
        end_date=_optional_datetime(data, "endDate", field),
        notes=_string(data.get("notes"), f"{field}.notes"),
    )


def _build_visit(data, field):
    data = _object(data, field)
    attachments = _list(data.get("attachments"), f"{field}.attachments")
    if not all(isinstance(a, str) for a in attachments):
        raise ValidationFailed(f"{field}.attachments must be a list of strings.")
    return Visit(
        visit_date=_optional_datetime(data, "visitDate", field) or datetime.datetime.now(),
        doctor_name=_required(data, "doctorName", field),
        diagnosis=_required(data, "diagnosis", field),
        notes=_string(data.get("notes"), f"{field}.notes"),
        attachments=attachments,
    )


def _build_doctor_note(data, field):
    data = _object(data, field)
    return DoctorNote(
        date=_optional_datetime(data, "date", field) or datetime.datetime.now(),
        note=_required(data, "note", field),
        recorded_by=_string(data.get("recordedBy"), f"{field}.recordedBy"),
    )


# payload key -> (relationship attribute, entry builder, append directive names)
EMBEDDED_LISTS = {
    "medicalHistory": ("medical_history", _build_history_entry,
                       ("newMedicalHistoryEntry", "newMedicalHistory")),
    "currentPrescriptions": ("prescriptions", _build_prescription,
                             ("newPrescription", "newCurrentPrescription")),
    "visits": ("visits", _build_visit, ("newVisit",)),
    "doctorNotes": ("doctor_notes", _build_doctor_note, ("newDoctorNote",)),
}


def _pop_append_directives(payload):
    """Strip append directives from ``payload`` and build the new entries."""
    appends = []
    for attr, builder, directives in EMBEDDED_LISTS.values():
        present = {}
        for name in directives:
            value = payload.pop(name, None)
            if value is not None:
                present[name] = value
        if len(present) > 1:
            raise ValidationFailed(
                f"Only one of {', '.join(present)} may be sent per update.")
        for name, value in present.items():
            appends.append((attr, builder(value, name)))
    return appends


def _apply_fields(patient, payload):
    """Overwrite the fields present in ``payload``.

    ``name``, ``contact`` and ``address`` are replaced as a whole, so a key
    missing from the supplied object clears the stored value.
    """
    if "patientId" in payload:
        patient.patient_id = _string(payload["patientId"], "patientId")
    if "name" in payload:
        name = _object(payload["name"], "name")
        patient.first_name = _string(name.get("firstName"), "name.firstName")
        patient.last_name = _string(name.get("lastName"), "name.lastName")
    if "dateOfBirth" in payload:
        patient.date_of_birth = parse_birth_date(payload["dateOfBirth"], "dateOfBirth")
        patient.age = calculate_age(patient.date_of_birth)
    if "gender" in payload:
        patient.gender = payload["gender"]
    if "contact" in payload:
        contact = _object(payload["contact"], "contact")
        patient.phone = _string(contact.get("phone"), "contact.phone")
        patient.email = _string(contact.get("email"), "contact.email")
    if "address" in payload:
        address = _object(payload["address"], "address")
        patient.street = _string(address.get("street"), "address.street")
        patient.city = _string(address.get("city"), "address.city")
        patient.state = _string(address.get("state"), "address.state")
        patient.zip_code = _string(address.get("zipCode"), "address.zipCode")
    if "bloodGroup" in payload:
        patient.blood_group = _string(payload["bloodGroup"], "bloodGroup")
    if "allergies" in payload:
        names = _list(payload["allergies"], "allergies")
        if not all(isinstance(name, str) for name in names):
            raise ValidationFailed("allergies must be a list of strings.", {"allergies": names})
        patient.allergies = [Allergy(name=name) for name in names]

    for key, (attr, builder, _) in EMBEDDED_LISTS.items():
        if key in payload:
            entries = _list(payload[key], key)
            setattr(patient, attr, [builder(entry, key) for entry in entries])


def create_patient(payload):
    payload = _object(payload, "payload")
    patient = Patient()
    with db.session.no_autoflush:
        _apply_fields(patient, payload)
        patient.check_required()

    if Patient.query.filter_by(patient_id=patient.patient_id).first() is not None:
        raise Conflict("Patient with this ID already exists.")

    db.session.add(patient)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Patient ID already exists.")

    logger.info("Created patient %s (%s)", patient.id, patient.patient_id)
    return patient


def update_patient(raw_id, payload):
    patient = get_patient(raw_id)
    payload = dict(_object(payload, "payload"))
    for key in READ_ONLY_FIELDS:
        payload.pop(key, None)

    try:
        with db.session.no_autoflush:
            appends = _pop_append_directives(payload)
            _apply_fields(patient, payload)
            for attr, entry in appends:
                getattr(patient, attr).append(entry)
            patient.check_required()
        patient.updated_at = datetime.datetime.now()
        db.session.commit()
    except ValidationFailed:
        db.session.rollback()
        raise
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Patient ID already exists.")

    logger.info("Updated patient %s (%s)", patient.id, patient.patient_id)
    return patient


def delete_patient(raw_id):
    patient = get_patient(raw_id)
    pk, patient_id, full_name = patient.id, patient.patient_id, patient.full_name
    db.session.delete(patient)
    db.session.commit()
    logger.info("Deleted patient %s: %s - %s", pk, patient_id, full_name)
    return pk
