"""Read-side queries for patient records."""
import re
from . import db
from .errors import InvalidIdentifier, NotFound, ValidationFailed
from .models import Patient
from .pagination import paginate
from .search import build_patient_filters

IDENTIFIER_PATTERN = re.compile(r"^\d+$")
# Primary keys are 64-bit signed integers
MAX_IDENTIFIER = 2 ** 63 - 1

SORT_COLUMNS = {
    "patientId": Patient.patient_id,
    "name.firstName": Patient.first_name,
    "name.lastName": Patient.last_name,
    "dateOfBirth": Patient.date_of_birth,
    "age": Patient.age,
    "gender": Patient.gender,
    "createdAt": Patient.created_at,
    "updatedAt": Patient.updated_at,
}
DEFAULT_SORT = "name.lastName"


def parse_identifier(raw_id):
    raw_id = str(raw_id).strip()
    if not IDENTIFIER_PATTERN.match(raw_id):
        raise InvalidIdentifier("Invalid patient ID format.")
    identifier = int(raw_id)
    if not 0 < identifier <= MAX_IDENTIFIER:
        raise InvalidIdentifier("Invalid patient ID format.")
    return identifier


def get_patient(raw_id):
    patient = db.session.get(Patient, parse_identifier(raw_id))
    if patient is None:
        raise NotFound("Patient not found")
    return patient


def list_patients(page, limit, sort=None, order=None):
    sort = sort or DEFAULT_SORT
    if sort not in SORT_COLUMNS:
        raise ValidationFailed(
            f"sort must be one of: {', '.join(SORT_COLUMNS)}.", {"sort": sort})
    order = (order or "asc").lower()
    if order not in ("asc", "desc"):
        raise ValidationFailed("order must be 'asc' or 'desc'.", {"order": order})

    column = SORT_COLUMNS[sort]
    query = Patient.query.order_by(
        column.desc() if order == "desc" else column.asc(), Patient.id.asc())
    return paginate(query, page, limit)


def search_patients(params, page, limit):
    query = Patient.query.filter(*build_patient_filters(params)).order_by(Patient.id.asc())
    return paginate(query, page, limit)
