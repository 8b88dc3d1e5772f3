"""Encounter models.

Clinical visit documentation following the SOAP structure
(Subjective / Objective / Assessment / Plan) and FHIR R4 encounter
statuses. Section models keep every field optional so the same class
serves as a partial update payload.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

from clinic_core.models.common import Diagnosis, Entity, PersonRef, StatusDisplay
from clinic_core.utils.time import ensure_aware


class EncounterStatus(str, Enum):
    """Status of a clinical encounter."""

    PLANNED = "planned"
    ARRIVED = "arrived"
    TRIAGED = "triaged"
    IN_PROGRESS = "in-progress"
    ON_LEAVE = "onleave"
    FINISHED = "finished"
    CANCELLED = "cancelled"


CLOSED_ENCOUNTER_STATUSES = frozenset(
    {EncounterStatus.FINISHED, EncounterStatus.CANCELLED}
)


class EncounterClass(str, Enum):
    """Setting in which the encounter takes place."""

    AMBULATORY = "ambulatory"
    EMERGENCY = "emergency"
    INPATIENT = "inpatient"
    OBSERVATION = "observation"
    VIRTUAL = "virtual"
    HOME = "home"


ENCOUNTER_STATUS_CONFIG: dict[EncounterStatus, StatusDisplay] = {
    EncounterStatus.PLANNED: StatusDisplay(label="Planned", color="#6b7280", icon="schedule"),
    EncounterStatus.ARRIVED: StatusDisplay(label="Arrived", color="#f59e0b", icon="login"),
    EncounterStatus.TRIAGED: StatusDisplay(label="Triaged", color="#8b5cf6", icon="assignment"),
    EncounterStatus.IN_PROGRESS: StatusDisplay(label="In Progress", color="#3b82f6", icon="edit_note"),
    EncounterStatus.ON_LEAVE: StatusDisplay(label="On Leave", color="#f97316", icon="exit_to_app"),
    EncounterStatus.FINISHED: StatusDisplay(label="Completed", color="#10b981", icon="check_circle"),
    EncounterStatus.CANCELLED: StatusDisplay(label="Cancelled", color="#ef4444", icon="cancel"),
}

ENCOUNTER_CLASS_LABELS: dict[EncounterClass, str] = {
    EncounterClass.AMBULATORY: "Office Visit",
    EncounterClass.EMERGENCY: "Emergency",
    EncounterClass.INPATIENT: "Inpatient",
    EncounterClass.OBSERVATION: "Observation",
    EncounterClass.VIRTUAL: "Telehealth",
    EncounterClass.HOME: "Home Visit",
}


class VitalSigns(BaseModel):
    """Vital signs captured during the encounter."""

    recorded_at: datetime | None = None
    recorded_by: str | None = None

    height_cm: float | None = Field(None, gt=0)
    weight_kg: float | None = Field(None, gt=0)
    bmi: float | None = None
    temperature_celsius: float | None = None
    pulse_rate: int | None = Field(None, ge=0)
    respiratory_rate: int | None = Field(None, ge=0)
    blood_pressure_systolic: int | None = Field(None, ge=0)
    blood_pressure_diastolic: int | None = Field(None, ge=0)
    oxygen_saturation: float | None = Field(None, ge=0, le=100)
    pain_level: int | None = Field(None, ge=0, le=10)
    notes: str | None = None


class SubjectiveAssessment(BaseModel):
    chief_complaint: str | None = None
    history_of_present_illness: str | None = None
    review_of_systems: dict[str, str] | None = None
    social_history: str | None = None
    family_history: str | None = None
    allergies: str | None = None
    medications: str | None = None


class ObjectiveAssessment(BaseModel):
    physical_exam: dict[str, str] | None = None
    lab_results: str | None = None
    imaging_results: str | None = None
    other_findings: str | None = None


class Assessment(BaseModel):
    clinical_impression: str | None = None
    diagnoses: list[Diagnosis] | None = None
    differential_diagnoses: list[str] | None = None


class FollowUp(BaseModel):
    timing: str
    reason: str | None = None
    appointment_id: str | None = None
    instructions: str | None = None


class Plan(BaseModel):
    treatment_plan: str | None = None
    medications: list[dict[str, Any]] | None = None
    lab_orders: list[dict[str, Any]] | None = None
    imaging_orders: list[dict[str, Any]] | None = None
    referrals: list[dict[str, Any]] | None = None
    patient_education: str | None = None
    follow_up: FollowUp | None = None
    additional_instructions: str | None = None


SOAP_SECTIONS: dict[str, type[BaseModel]] = {
    "subjective": SubjectiveAssessment,
    "objective": ObjectiveAssessment,
    "assessment": Assessment,
    "plan": Plan,
}


class EncounterAddendum(BaseModel):
    """Dated supplement appended to a signed encounter."""

    addendum_id: str
    author: str
    text: str
    created_at: datetime


class Encounter(Entity):
    """Clinical encounter.

    Once signed (``finished``) the SOAP sections are an audit record;
    corrections are appended to ``addenda``.
    """

    status: EncounterStatus = EncounterStatus.IN_PROGRESS
    encounter_class: EncounterClass = EncounterClass.AMBULATORY

    patient_id: str
    patient_name: str = ""
    provider_id: str
    provider_name: str = ""

    start_time: datetime
    end_time: datetime | None = None

    facility_id: str | None = None
    room_id: str | None = None
    appointment_id: str | None = None
    service_type: str | None = None

    vital_signs: VitalSigns | None = None
    subjective: SubjectiveAssessment | None = None
    objective: ObjectiveAssessment | None = None
    assessment: Assessment | None = None
    plan: Plan | None = None
    additional_notes: str | None = None

    signed_at: datetime | None = None
    signed_by: str | None = None
    attestation: str | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    addenda: list[EncounterAddendum] = Field(default_factory=list)

    created_by: str | None = None
    updated_by: str | None = None

    @field_validator("start_time", "end_time", mode="after")
    @classmethod
    def _aware(cls, value: datetime | None) -> datetime | None:
        return ensure_aware(value) if value is not None else None

    @model_validator(mode="after")
    def _check_consistency(self) -> "Encounter":
        if self.signed_at is not None and self.status != EncounterStatus.FINISHED:
            raise ValueError("a signed encounter must be finished")
        if self.end_time is not None and self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def patient(self) -> PersonRef:
        return PersonRef(id=self.patient_id, name=self.patient_name)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def provider(self) -> PersonRef:
        return PersonRef(id=self.provider_id, name=self.provider_name)

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_ENCOUNTER_STATUSES

    @property
    def duration_minutes(self) -> int | None:
        if self.end_time is None:
            return None
        return int((self.end_time - self.start_time).total_seconds() // 60)


class EncounterTemplate(BaseModel):
    """Pre-authored section defaults for a common visit type."""

    id: str
    name: str
    description: str | None = None
    category: str
    encounter_class: EncounterClass = EncounterClass.AMBULATORY
    subjective: SubjectiveAssessment | None = None
    objective: ObjectiveAssessment | None = None
    assessment: Assessment | None = None
    plan: Plan | None = None
    is_shared: bool = True
