from flask import request
from flask_restx import Namespace, fields, Resource
from .analytics import build_analytics
from .auth import token_required
from .models import GENDERS
from .pagination import page_args, page_response
from .selectors import get_patient, list_patients, search_patients
from .services import create_patient, delete_patient, update_patient

patients_ns = Namespace("patients", description="Patient records management")

name_model = patients_ns.model("Name", {
    "firstName": fields.String(required=True, description="First name"),
    "lastName": fields.String(required=True, description="Last name"),
})

contact_model = patients_ns.model("Contact", {
    "phone": fields.String(required=True, description="Phone number"),
    "email": fields.String(description="E-mail address"),
})

address_model = patients_ns.model("Address", {
    "street": fields.String(),
    "city": fields.String(),
    "state": fields.String(),
    "zipCode": fields.String(),
})

history_model = patients_ns.model("MedicalHistoryEntry", {
    "date": fields.String(description="Date (ISO-8601)"),
    "condition": fields.String(required=True),
    "notes": fields.String(),
    "diagnosedBy": fields.String(),
})

prescription_model = patients_ns.model("Prescription", {
    "medicationName": fields.String(required=True),
    "dosage": fields.String(required=True),
    "frequency": fields.String(required=True),
    "startDate": fields.String(description="Date (ISO-8601)"),
    "endDate": fields.String(description="Date (ISO-8601)"),
    "notes": fields.String(),
})

visit_model = patients_ns.model("Visit", {
    "visitDate": fields.String(description="Date (ISO-8601)"),
    "doctorName": fields.String(required=True),
    "diagnosis": fields.String(required=True),
    "notes": fields.String(),
    "attachments": fields.List(fields.String),
})

note_model = patients_ns.model("DoctorNote", {
    "date": fields.String(description="Date (ISO-8601)"),
    "note": fields.String(required=True),
    "recordedBy": fields.String(),
})

patient_model = patients_ns.model("Patient", {
    "patientId": fields.String(required=True, description="Unique patient identifier"),
    "name": fields.Nested(name_model, required=True),
    "dateOfBirth": fields.String(required=True, description="Date of birth (YYYY-MM-DD)"),
    "gender": fields.String(required=True, enum=list(GENDERS)),
    "contact": fields.Nested(contact_model, required=True),
    "address": fields.Nested(address_model),
    "bloodGroup": fields.String(),
    "allergies": fields.List(fields.String),
    "medicalHistory": fields.List(fields.Nested(history_model)),
    "currentPrescriptions": fields.List(fields.Nested(prescription_model)),
    "visits": fields.List(fields.Nested(visit_model)),
    "doctorNotes": fields.List(fields.Nested(note_model)),
})

patient_update_model = patients_ns.inherit("PatientUpdate", patient_model, {
    "newMedicalHistoryEntry": fields.Nested(history_model),
    "newPrescription": fields.Nested(prescription_model),
    "newVisit": fields.Nested(visit_model),
    "newDoctorNote": fields.Nested(note_model),
})

list_parser = patients_ns.parser()
list_parser.add_argument("page", type=int, location="args", help="Page number (1-based)")
list_parser.add_argument("limit", type=int, location="args", help="Page size")
list_parser.add_argument("sort", location="args", help="Sort field, e.g. name.lastName")
list_parser.add_argument("order", location="args", choices=("asc", "desc"))

search_parser = list_parser.copy()
search_parser.remove_argument("sort")
search_parser.remove_argument("order")
for _arg in ("query", "patientId", "firstName", "lastName", "condition", "visitDate"):
    search_parser.add_argument(_arg, location="args")


@patients_ns.route("")
class PatientList(Resource):
    @token_required
    @patients_ns.expect(list_parser, validate=False)
    def get(current_user, self):
        """
        Paginated, sorted patient listing:
        /api/patients?page=1&limit=10&sort=name.lastName&order=asc
        """
        page, limit = page_args(request.args)
        pagination = list_patients(page, limit, request.args.get("sort"), request.args.get("order"))
        return page_response(pagination), 200

    @token_required
    @patients_ns.expect(patient_model, validate=True)
    def post(current_user, self):
        """
        Registers a new patient; age is derived from dateOfBirth.
        """
        patient = create_patient(request.get_json())
        return patient.to_dict(), 201


@patients_ns.route("/search")
class PatientSearch(Resource):
    @token_required
    @patients_ns.expect(search_parser, validate=False)
    def get(current_user, self):
        """
        Filters patients; every supplied parameter must match.
        """
        page, limit = page_args(request.args)
        pagination = search_patients(request.args, page, limit)
        return page_response(pagination), 200


@patients_ns.route("/analytics")
class PatientAnalytics(Resource):
    @token_required
    def get(current_user, self):
        return build_analytics(), 200


@patients_ns.route("/<string:id>")
class PatientDetail(Resource):
    @token_required
    def get(current_user, self, id):
        return get_patient(id).to_dict(), 200

    @token_required
    @patients_ns.expect(patient_update_model, validate=False)
    def put(current_user, self, id):
        """
        Updates a patient. Fields present in the body overwrite the stored
        ones; newMedicalHistoryEntry, newPrescription, newVisit and
        newDoctorNote each append one entry to their list.
        """
        patient = update_patient(id, request.get_json())
        return patient.to_dict(), 200

    @token_required
    def delete(current_user, self, id):
        deleted_id = delete_patient(id)
        return {"message": "Patient record deleted successfully", "deletedPatientId": deleted_id}, 200
