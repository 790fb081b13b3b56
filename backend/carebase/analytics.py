"""Aggregate reports over the whole patient store.

Each report is one grouped query; an empty store yields empty lists. Group
keys are returned under ``_id``, the shape the analytics dashboard reads.
"""
import datetime
from sqlalchemy import extract, func
from . import db
from .dates import one_year_before
from .models import MedicalHistoryEntry, Patient, Prescription, Visit

TOP_MEDICATIONS = 10


def _average(value):
    return float(value) if value is not None else None


def patients_per_condition():
    count = func.count(MedicalHistoryEntry.id).label("count")
    rows = (db.session.query(MedicalHistoryEntry.condition, count)
            .group_by(MedicalHistoryEntry.condition)
            .order_by(count.desc(), MedicalHistoryEntry.condition.asc())
            .all())
    return [{"_id": condition, "count": n} for condition, n in rows]


def most_prescribed_medications(limit=TOP_MEDICATIONS):
    count = func.count(Prescription.id).label("count")
    rows = (db.session.query(Prescription.medication_name, count)
            .group_by(Prescription.medication_name)
            .order_by(count.desc(), Prescription.medication_name.asc())
            .limit(limit)
            .all())
    return [{"_id": name, "count": n} for name, n in rows]


def average_age_per_gender():
    rows = (db.session.query(Patient.gender, func.avg(Patient.age))
            .group_by(Patient.gender)
            .order_by(Patient.gender.asc())
            .all())
    return [{"_id": gender, "averageAge": _average(avg)} for gender, avg in rows]


def average_age_per_doctor():
    """Average patient age over visit rows, grouped by the visiting doctor.

    A patient seen three times by a doctor weighs three times in that
    doctor's average.
    """
    average = func.avg(Patient.age).label("average_age")
    rows = (db.session.query(Visit.doctor_name, average)
            .join(Patient, Patient.id == Visit.patient_pk)
            .group_by(Visit.doctor_name)
            .order_by(average.desc(), Visit.doctor_name.asc())
            .all())
    return [{"_id": doctor, "averageAge": _average(avg)} for doctor, avg in rows]


def visits_per_month(now=None):
    since = one_year_before(now or datetime.datetime.now())
    year = extract("year", Visit.visit_date).label("year")
    month = extract("month", Visit.visit_date).label("month")
    rows = (db.session.query(year, month, func.count(Visit.id))
            .filter(Visit.visit_date >= since)
            .group_by(year, month)
            .order_by(year.asc(), month.asc())
            .all())
    return [{"_id": {"year": int(y), "month": int(m)}, "count": n} for y, m, n in rows]


def build_analytics(now=None):
    return {
        "patientsPerCondition": patients_per_condition(),
        "mostPrescribedMedications": most_prescribed_medications(),
        "avgAgePerGender": average_age_per_gender(),
        "avgAgePerDoctor": average_age_per_doctor(),
        "visitsPerMonth": visits_per_month(now),
    }
