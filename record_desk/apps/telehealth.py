from __future__ import annotations

import copy
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Union

from record_desk.core.records import NotFound, Record
from record_desk.core.schema import CascadeRule, CollectionSpec, FieldKind, FieldSpec
from record_desk.services.preferences import DarkModeSetting
from record_desk.validation.errors import ValidationIssue
from record_desk.views.aggregates import count_by
from .base import AppDefinition

RISK_LEVELS = ("low", "medium", "high")
CONSULTATION_STATUSES = ("scheduled", "in-progress", "completed", "cancelled", "no-show")

DEFAULT_SETTINGS = {
    "language": "en",
    "timezone": "UTC",
    "theme": "system",
    "notifications": {
        "email": True, "sms": True, "push": True,
        "appointments": True, "prescriptions": True, "emergencies": True,
    },
    "consultationDefaults": {"duration": 30, "recordConsultations": True, "requireFollowUp": False},
    "prescriptionDefaults": {"pharmacy": "Central Pharmacy", "defaultRefills": 2, "requireApproval": True},
    "security": {"sessionTimeout": 60, "twoFactorAuth": False, "auditLog": True},
}

SEED_PATIENTS = [
    {"id": "1", "name": "John Smith", "email": "john.smith@email.com", "phone": "+1-555-0123",
     "dateOfBirth": "1985-03-15", "gender": "male", "address": "123 Main St, City, State 12345",
     "emergencyContact": "Jane Smith - +1-555-0124",
     "medicalHistory": ["Hypertension", "Diabetes Type 2"], "allergies": ["Penicillin", "Nuts"],
     "currentMedications": ["Metformin 500mg", "Lisinopril 10mg"], "riskLevel": "medium",
     "lastConsultation": "2025-06-10", "nextAppointment": "2025-06-15", "status": "active"},
    {"id": "2", "name": "Sarah Johnson", "email": "sarah.johnson@email.com", "phone": "+1-555-0125",
     "dateOfBirth": "1992-07-22", "gender": "female", "address": "456 Oak Ave, City, State 12345",
     "emergencyContact": "Mike Johnson - +1-555-0126", "medicalHistory": ["Asthma"],
     "allergies": ["Shellfish"], "currentMedications": ["Albuterol Inhaler"], "riskLevel": "low",
     "lastConsultation": "2025-06-08", "nextAppointment": "", "status": "active"},
    {"id": "3", "name": "Robert Davis", "email": "robert.davis@email.com", "phone": "+1-555-0127",
     "dateOfBirth": "1978-11-30", "gender": "male", "address": "789 Pine St, City, State 12345",
     "emergencyContact": "Lisa Davis - +1-555-0128",
     "medicalHistory": ["Heart Disease", "High Cholesterol"], "allergies": ["Sulfa"],
     "currentMedications": ["Atorvastatin 20mg", "Carvedilol 6.25mg"], "riskLevel": "high",
     "lastConsultation": "2025-06-09", "nextAppointment": "2025-06-12", "status": "active"},
]

SEED_VITALS = [
    {"id": "1", "patientId": "1", "date": "2025-06-10", "bloodPressure": "140/90", "heartRate": 78,
     "temperature": 98.6, "weight": 185, "height": 72, "oxygenSaturation": 98,
     "notes": "Slightly elevated BP, continue monitoring"},
    {"id": "2", "patientId": "2", "date": "2025-06-08", "bloodPressure": "115/75", "heartRate": 68,
     "temperature": 98.4, "weight": 135, "height": 65, "oxygenSaturation": 99,
     "notes": "All vitals within normal range"},
    {"id": "3", "patientId": "3", "date": "2025-06-09", "bloodPressure": "160/95", "heartRate": 85,
     "temperature": 98.7, "weight": 205, "height": 70, "oxygenSaturation": 96,
     "notes": "Elevated BP, adjust medication"},
]

SEED_CONSULTATIONS = [
    {"id": "1", "patientId": "1", "patientName": "John Smith", "doctorName": "Dr. Johnson",
     "date": "2025-06-10", "time": "10:00", "duration": 30, "type": "video", "status": "completed",
     "reason": "Routine Follow-up",
     "notes": "Patient reports feeling well. Blood pressure slightly elevated.",
     "diagnosis": "Hypertension - well controlled",
     "treatment": "Continue current medications, monitor BP", "followUp": "Follow up in 2 weeks"},
    {"id": "2", "patientId": "2", "patientName": "Sarah Johnson", "doctorName": "Dr. Johnson",
     "date": "2025-06-15", "time": "14:30", "duration": 30, "type": "video", "status": "scheduled",
     "reason": "Asthma Check-up", "notes": "", "diagnosis": "", "treatment": "", "followUp": ""},
]

SEED_PRESCRIPTIONS = [
    {"id": "prescription-1", "patientId": "1", "patientName": "John Smith", "consultationId": "1",
     "doctorName": "Dr. Johnson", "date": "2025-06-10",
     "medications": ["Metformin 500mg - Twice daily"],
     "instructions": "Continue current diabetes management plan", "status": "active",
     "refillsRemaining": 2, "pharmacyInfo": "Central Pharmacy - 555-0100",
     "notes": "Patient tolerating medication well"},
]


def patient_age(date_of_birth: str, today: Optional[date] = None) -> Optional[int]:
    """Age in whole years, or None when the birth date is missing or malformed."""
    try:
        born = date.fromisoformat(str(date_of_birth)[:10])
    except ValueError:
        return None
    today = today or date.today()
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


def upcoming_consultations(consultations: Sequence[Record], today: Optional[str] = None) -> List[Record]:
    today = today or date.today().isoformat()
    upcoming = [
        c for c in consultations
        if c.get("status") == "scheduled" and str(c.get("date", "")) >= today
    ]
    return sorted(upcoming, key=lambda c: (c.get("date", ""), c.get("time", "")))


class TelehealthApp(AppDefinition):
    id = "telehealth"
    label = "MediConnect"
    dark_mode = DarkModeSetting("theme", on_value="dark", off_value="light")
    settings_key = "mediconnect_settings"

    def collection_specs(self) -> List[CollectionSpec]:
        return [
            CollectionSpec(
                name="patients",
                storage_key="mediconnect_patients",
                id_prefix="pat",
                fields=(
                    FieldSpec("name", required=True, csv_header="Name"),
                    FieldSpec("email", required=True, csv_header="Email"),
                    FieldSpec("phone", required=True, csv_header="Phone"),
                    FieldSpec("dateOfBirth", FieldKind.DATE, label="Date of Birth", csv_header="Date of Birth"),
                    FieldSpec("gender", csv_header="Gender"),
                    FieldSpec("address", csv_header="Address"),
                    FieldSpec("emergencyContact", label="Emergency Contact", csv_header="Emergency Contact"),
                    FieldSpec("medicalHistory", FieldKind.LIST, default=(), label="Medical History",
                              csv_header="Medical History"),
                    FieldSpec("allergies", FieldKind.LIST, default=(), csv_header="Allergies"),
                    FieldSpec("currentMedications", FieldKind.LIST, default=(),
                              label="Current Medications", csv_header="Current Medications"),
                    FieldSpec("riskLevel", FieldKind.CHOICE, default="low", choices=RISK_LEVELS,
                              label="Risk Level", csv_header="Risk Level"),
                    FieldSpec("lastConsultation", FieldKind.DATE, label="Last Consultation",
                              csv_header="Last Consultation"),
                    FieldSpec("nextAppointment", FieldKind.DATE, label="Next Appointment",
                              csv_header="Next Appointment"),
                    FieldSpec("status", FieldKind.CHOICE, default="active", choices=("active", "inactive"),
                              csv_header="Status"),
                ),
                search_fields=("name", "email"),
                import_fields=("name", "email", "phone", "dateOfBirth", "gender", "riskLevel",
                               "lastConsultation", "status"),
                export_fields=("name", "email", "phone", "dateOfBirth", "gender", "riskLevel",
                               "lastConsultation", "status"),
            ),
            CollectionSpec(
                name="consultations",
                storage_key="mediconnect_consultations",
                id_prefix="con",
                fields=(
                    FieldSpec("patientId", FieldKind.REFERENCE, required=True,
                              references="patients", label="Patient"),
                    FieldSpec("patientName", csv_header="Patient"),
                    FieldSpec("doctorName", csv_header="Doctor"),
                    FieldSpec("date", FieldKind.DATE, required=True, csv_header="Date"),
                    FieldSpec("time", required=True, csv_header="Time"),
                    FieldSpec("duration", FieldKind.INTEGER, default=30, minimum=0, exclusive_minimum=True),
                    FieldSpec("type", FieldKind.CHOICE, default="video", choices=("video", "audio", "chat"),
                              csv_header="Type"),
                    FieldSpec("status", FieldKind.CHOICE, default="scheduled",
                              choices=CONSULTATION_STATUSES, csv_header="Status"),
                    FieldSpec("reason", required=True, csv_header="Reason"),
                    FieldSpec("notes"),
                    FieldSpec("diagnosis", csv_header="Diagnosis"),
                    FieldSpec("treatment"),
                    FieldSpec("followUp", label="Follow Up"),
                ),
                search_fields=("patientName", "reason"),
                export_fields=("patientName", "doctorName", "date", "time", "type", "status",
                               "reason", "diagnosis"),
            ),
            CollectionSpec(
                name="prescriptions",
                storage_key="mediconnect_prescriptions",
                id_prefix="prescription",
                fields=(
                    FieldSpec("patientId", FieldKind.REFERENCE, required=True,
                              references="patients", label="Patient"),
                    FieldSpec("patientName", label="Patient Name"),
                    FieldSpec("consultationId", FieldKind.REFERENCE, references="consultations",
                              label="Consultation"),
                    FieldSpec("doctorName", label="Doctor Name"),
                    FieldSpec("date", FieldKind.DATE),
                    FieldSpec("medications", FieldKind.LIST, default=()),
                    FieldSpec("instructions"),
                    FieldSpec("status", FieldKind.CHOICE, default="active",
                              choices=("active", "completed", "cancelled")),
                    FieldSpec("refillsRemaining", FieldKind.INTEGER, default=0, minimum=0,
                              label="Refills Remaining"),
                    FieldSpec("pharmacyInfo", label="Pharmacy Info"),
                    FieldSpec("notes"),
                ),
                search_fields=("patientName", "medications"),
            ),
            CollectionSpec(
                name="vitals",
                storage_key="mediconnect_vitals",
                id_prefix="vit",
                fields=(
                    FieldSpec("patientId", FieldKind.REFERENCE, required=True,
                              references="patients", label="Patient"),
                    FieldSpec("date", FieldKind.DATE),
                    FieldSpec("bloodPressure", label="Blood Pressure"),
                    FieldSpec("heartRate", FieldKind.NUMBER, default=None, nullable=True, label="Heart Rate"),
                    FieldSpec("temperature", FieldKind.NUMBER, default=None, nullable=True),
                    FieldSpec("weight", FieldKind.NUMBER, default=None, nullable=True),
                    FieldSpec("height", FieldKind.NUMBER, default=None, nullable=True),
                    FieldSpec("oxygenSaturation", FieldKind.NUMBER, default=None, nullable=True,
                              minimum=0, maximum=100, label="Oxygen Saturation"),
                    FieldSpec("notes"),
                ),
            ),
        ]

    def default_settings(self) -> Dict[str, Any]:
        return copy.deepcopy(DEFAULT_SETTINGS)

    def seed_data(self) -> Dict[str, List[Record]]:
        return {
            "patients": SEED_PATIENTS,
            "consultations": SEED_CONSULTATIONS,
            "prescriptions": SEED_PRESCRIPTIONS,
            "vitals": SEED_VITALS,
        }

    def cascade_rules(self) -> List[CascadeRule]:
        return [
            CascadeRule("patients", "consultations", "patientId"),
            CascadeRule("patients", "prescriptions", "patientId"),
            CascadeRule("patients", "vitals", "patientId"),
        ]

    def validate(self, store, name, values, existing):
        if name in ("consultations", "prescriptions", "vitals"):
            if store.get("patients", values.get("patientId")) is None:
                return [ValidationIssue("unknown_reference", "Selected patient not found")]
        return []

    def prepare_save(self, store, name, values, existing):
        if name in ("consultations", "prescriptions"):
            patient = store.get("patients", values.get("patientId")) or {}
            return {**values, "patientName": patient.get("name", "")}
        return values

    # -- consultation lifecycle -----------------------------------------

    def start_consultation(self, store, consultation_id: str) -> Union[Record, NotFound]:
        return store.update("consultations", consultation_id, {"status": "in-progress"})

    def end_consultation(self, store, consultation_id: str) -> Union[Record, NotFound]:
        result = store.update("consultations", consultation_id, {"status": "completed"})
        if result:
            store.update("patients", result["patientId"], {"lastConsultation": result.get("date", "")})
        return result

    # -- read side -------------------------------------------------------

    def sort_keys(self, store, name):
        if name == "patients":
            return {"age": lambda r: patient_age(r.get("dateOfBirth", ""))}
        return {}

    def summary(self, store) -> Dict[str, Any]:
        patients = store.records("patients")
        consultations = store.records("consultations")
        return {
            "totalPatients": len(patients),
            "activePatients": sum(1 for p in patients if p.get("status") == "active"),
            "highRiskPatients": sum(1 for p in patients if p.get("riskLevel") == "high"),
            "riskLevels": count_by(patients, "riskLevel"),
            "consultationStatuses": count_by(consultations, "status"),
            "upcomingConsultations": len(upcoming_consultations(consultations)),
            "activePrescriptions": sum(
                1 for p in store.records("prescriptions") if p.get("status") == "active"
            ),
        }
