"""Translate patient search parameters into SQLAlchemy filter clauses."""
from sqlalchemy import and_, or_
from .dates import day_bounds, parse_date
from .models import Allergy, DoctorNote, MedicalHistoryEntry, Patient, Prescription, Visit

PATIENT_TEXT_COLUMNS = (
    Patient.patient_id, Patient.first_name, Patient.last_name, Patient.gender,
    Patient.phone, Patient.email, Patient.street, Patient.city, Patient.state,
    Patient.zip_code, Patient.blood_group,
)

# relationship -> searchable columns of the embedded entries
EMBEDDED_TEXT_COLUMNS = (
    (Patient.allergies, (Allergy.name,)),
    (Patient.medical_history, (MedicalHistoryEntry.condition, MedicalHistoryEntry.notes,
                               MedicalHistoryEntry.diagnosed_by)),
    (Patient.prescriptions, (Prescription.medication_name, Prescription.dosage,
                             Prescription.frequency, Prescription.notes)),
    (Patient.visits, (Visit.doctor_name, Visit.diagnosis, Visit.notes)),
    (Patient.doctor_notes, (DoctorNote.note, DoctorNote.recorded_by)),
)


def _contains(column, value):
    return column.icontains(value, autoescape=True)


def _text_clause(term):
    """A patient matches ``term`` if any of its string fields contains it."""
    clauses = [_contains(column, term) for column in PATIENT_TEXT_COLUMNS]
    for relationship, columns in EMBEDDED_TEXT_COLUMNS:
        clauses.append(relationship.any(or_(*(_contains(c, term) for c in columns))))
    return or_(*clauses)


def _param(params, key):
    value = params.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def build_patient_filters(params):
    """Return the filter clauses for the given search parameters.

    Absent or blank parameters add no clause; the caller combines the
    returned clauses with AND.
    """
    filters = []

    query = _param(params, "query")
    if query:
        filters.append(or_(*(_text_clause(term) for term in query.split())))

    patient_id = _param(params, "patientId")
    if patient_id:
        filters.append(_contains(Patient.patient_id, patient_id))

    first_name = _param(params, "firstName")
    if first_name:
        filters.append(_contains(Patient.first_name, first_name))

    last_name = _param(params, "lastName")
    if last_name:
        filters.append(_contains(Patient.last_name, last_name))

    condition = _param(params, "condition")
    if condition:
        filters.append(or_(
            Patient.medical_history.any(_contains(MedicalHistoryEntry.condition, condition)),
            Patient.prescriptions.any(_contains(Prescription.medication_name, condition)),
        ))

    visit_date = _param(params, "visitDate")
    if visit_date:
        start, end = day_bounds(parse_date(visit_date, "visitDate"))
        filters.append(Patient.visits.any(and_(Visit.visit_date >= start, Visit.visit_date < end)))

    return filters
