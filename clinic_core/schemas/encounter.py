"""Encounter schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from clinic_core.models.encounter import (
    SOAP_SECTIONS,
    Assessment,
    EncounterClass,
    EncounterStatus,
    ObjectiveAssessment,
    Plan,
    SubjectiveAssessment,
    VitalSigns,
)
from clinic_core.schemas.common import VersionedRequest


class EncounterCreate(BaseModel):
    """Schema for opening an encounter, directly or from an appointment."""

    patient_id: str | None = None
    provider_id: str | None = None
    appointment_id: str | None = None
    encounter_class: EncounterClass = EncounterClass.AMBULATORY
    status: EncounterStatus = EncounterStatus.IN_PROGRESS
    start_time: datetime | None = None
    facility_id: str | None = None
    room_id: str | None = None
    service_type: str | None = None
    chief_complaint: str | None = Field(None, max_length=2000)


class SectionsUpdate(VersionedRequest):
    """Partial SOAP update; only sections and fields sent are written."""

    subjective: SubjectiveAssessment | None = None
    objective: ObjectiveAssessment | None = None
    assessment: Assessment | None = None
    plan: Plan | None = None
    additional_notes: str | None = Field(None, max_length=10000)

    def sections(self) -> dict:
        return {
            name: getattr(self, name)
            for name in SOAP_SECTIONS
            if name in self.model_fields_set and getattr(self, name) is not None
        }


class VitalSignsRequest(VitalSigns):
    """Vital-signs reading plus optional version check."""

    expected_version: int | None = Field(None, ge=1)

    def reading(self) -> VitalSigns:
        return VitalSigns.model_validate(self.model_dump(exclude={"expected_version"}))


class StatusUpdate(VersionedRequest):
    """Request to move an open encounter to its next status."""

    status: EncounterStatus


class SignRequest(VersionedRequest):
    """Request to sign an encounter."""

    attestation: str | None = Field(None, max_length=2000)


class AddendumCreate(VersionedRequest):
    """Request to append an addendum."""

    text: str = Field(..., min_length=1, max_length=10000)
