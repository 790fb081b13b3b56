import datetime
import re
from sqlalchemy.orm import validates
from . import db
from .errors import ValidationFailed

GENDERS = ("Male", "Female", "Other")
ROLES = ("receptionist", "nurse", "doctor", "admin")
EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")


def _now():
    return datetime.datetime.now()


def _iso(value):
    return value.isoformat() if value is not None else None


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False)
    password = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, default=_now)

    @validates("role")
    def validate_role(self, key, value):
        if value not in ROLES:
            raise ValidationFailed(f"role must be one of: {', '.join(ROLES)}.")
        return value

    def to_dict(self):
        return {"id": self.id, "username": self.username, "role": self.role}


class Patient(db.Model):
    __tablename__ = "patient"
    __table_args__ = (
        db.Index("ix_patient_name", "first_name", "last_name"),
    )

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.String(50), unique=True, nullable=False, index=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    date_of_birth = db.Column(db.Date, nullable=False)
    age = db.Column(db.Integer, nullable=False)
    gender = db.Column(db.String(10), nullable=False)
    phone = db.Column(db.String(30), nullable=False)
    email = db.Column(db.String(120))
    street = db.Column(db.String(200))
    city = db.Column(db.String(100))
    state = db.Column(db.String(100))
    zip_code = db.Column(db.String(20))
    blood_group = db.Column(db.String(10))
    created_at = db.Column(db.DateTime, default=_now)
    updated_at = db.Column(db.DateTime, default=_now)

    allergies = db.relationship(
        "Allergy", backref="patient", lazy=True,
        cascade="all, delete-orphan", order_by="Allergy.id")
    medical_history = db.relationship(
        "MedicalHistoryEntry", backref="patient", lazy=True,
        cascade="all, delete-orphan", order_by="MedicalHistoryEntry.id")
    prescriptions = db.relationship(
        "Prescription", backref="patient", lazy=True,
        cascade="all, delete-orphan", order_by="Prescription.id")
    visits = db.relationship(
        "Visit", backref="patient", lazy=True,
        cascade="all, delete-orphan", order_by="Visit.id")
    doctor_notes = db.relationship(
        "DoctorNote", backref="patient", lazy=True,
        cascade="all, delete-orphan", order_by="DoctorNote.id")

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    @validates("patient_id")
    def validate_patient_id(self, key, value):
        return value.strip().upper() if isinstance(value, str) else value

    @validates("first_name", "last_name", "phone")
    def validate_trimmed(self, key, value):
        return value.strip() if isinstance(value, str) else value

    @validates("gender")
    def validate_gender(self, key, value):
        if value not in GENDERS:
            raise ValidationFailed(f"gender must be one of: {', '.join(GENDERS)}.",
                                   {"gender": value})
        return value

    @validates("email")
    def validate_email(self, key, value):
        if value is None:
            return None
        value = value.strip().lower()
        if not value:
            return None
        if not EMAIL_PATTERN.match(value):
            raise ValidationFailed("contact.email is not a valid e-mail address.",
                                   {"contact.email": value})
        return value

    def check_required(self):
        """Raise ValidationFailed if the merged record misses a required field."""
        required = {
            "patientId": self.patient_id,
            "name.firstName": self.first_name,
            "name.lastName": self.last_name,
            "dateOfBirth": self.date_of_birth,
            "gender": self.gender,
            "contact.phone": self.phone,
        }
        missing = [name for name, value in required.items() if value in (None, "")]
        if missing:
            raise ValidationFailed("Missing required patient fields.",
                                   {name: "required" for name in missing})

    def to_dict(self):
        return {
            "id": self.id,
            "patientId": self.patient_id,
            "name": {"firstName": self.first_name, "lastName": self.last_name},
            "fullName": self.full_name,
            "dateOfBirth": _iso(self.date_of_birth),
            "age": self.age,
            "gender": self.gender,
            "contact": {"phone": self.phone, "email": self.email},
            "address": {
                "street": self.street,
                "city": self.city,
                "state": self.state,
                "zipCode": self.zip_code,
            },
            "bloodGroup": self.blood_group,
            "allergies": [a.name for a in self.allergies],
            "medicalHistory": [e.to_dict() for e in self.medical_history],
            "currentPrescriptions": [p.to_dict() for p in self.prescriptions],
            "visits": [v.to_dict() for v in self.visits],
            "doctorNotes": [n.to_dict() for n in self.doctor_notes],
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class MedicalHistoryEntry(db.Model):
    __tablename__ = "medical_history_entry"

    id = db.Column(db.Integer, primary_key=True)
    patient_pk = db.Column(db.Integer, db.ForeignKey("patient.id"), nullable=False, index=True)
    date = db.Column(db.DateTime, default=_now)
    condition = db.Column(db.String(200), nullable=False, index=True)
    notes = db.Column(db.Text)
    diagnosed_by = db.Column(db.String(100))

    def to_dict(self):
        return {
            "id": self.id,
            "date": _iso(self.date),
            "condition": self.condition,
            "notes": self.notes,
            "diagnosedBy": self.diagnosed_by,
        }


class Prescription(db.Model):
    __tablename__ = "prescription"

    id = db.Column(db.Integer, primary_key=True)
    patient_pk = db.Column(db.Integer, db.ForeignKey("patient.id"), nullable=False, index=True)
    medication_name = db.Column(db.String(200), nullable=False)
    dosage = db.Column(db.String(100), nullable=False)
    frequency = db.Column(db.String(100), nullable=False)
    start_date = db.Column(db.DateTime, default=_now)
    end_date = db.Column(db.DateTime)
    notes = db.Column(db.Text)

    def to_dict(self):
        return {
            "id": self.id,
            "medicationName": self.medication_name,
            "dosage": self.dosage,
            "frequency": self.frequency,
            "startDate": _iso(self.start_date),
            "endDate": _iso(self.end_date),
            "notes": self.notes,
        }


class Visit(db.Model):
    __tablename__ = "visit"

    id = db.Column(db.Integer, primary_key=True)
    patient_pk = db.Column(db.Integer, db.ForeignKey("patient.id"), nullable=False, index=True)
    visit_date = db.Column(db.DateTime, default=_now, index=True)
    doctor_name = db.Column(db.String(100), nullable=False)
    diagnosis = db.Column(db.String(200), nullable=False)
    notes = db.Column(db.Text)
    attachments = db.Column(db.JSON, default=list)

    def to_dict(self):
        return {
            "id": self.id,
            "visitDate": _iso(self.visit_date),
            "doctorName": self.doctor_name,
            "diagnosis": self.diagnosis,
            "notes": self.notes,
            "attachments": list(self.attachments or []),
        }


class DoctorNote(db.Model):
    __tablename__ = "doctor_note"

    id = db.Column(db.Integer, primary_key=True)
    patient_pk = db.Column(db.Integer, db.ForeignKey("patient.id"), nullable=False, index=True)
    date = db.Column(db.DateTime, default=_now)
    note = db.Column(db.Text, nullable=False)
    recorded_by = db.Column(db.String(100))

    def to_dict(self):
        return {
            "id": self.id,
            "date": _iso(self.date),
            "note": self.note,
            "recordedBy": self.recorded_by,
        }


class Allergy(db.Model):
    __tablename__ = "allergy"

    id = db.Column(db.Integer, primary_key=True)
    patient_pk = db.Column(db.Integer, db.ForeignKey("patient.id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
