"""Imaging order schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from clinic_core.models.common import DiagnosisCode
from clinic_core.models.imaging import (
    BodyRegion,
    ContrastType,
    ImagingCategory,
    ImagingModality,
    ImagingOrderStatus,
    ImagingPriority,
    Laterality,
    SafetyScreening,
)
from clinic_core.schemas.common import VersionedRequest


class ImagingOrderCreate(BaseModel):
    """Schema for placing an imaging order."""

    patient_id: str
    ordering_provider_id: str
    modality: ImagingModality
    procedure_code: str = Field(..., min_length=1)
    procedure_name: str = ""
    body_region: BodyRegion
    laterality: Laterality | None = None
    priority: ImagingPriority = ImagingPriority.ROUTINE
    category: ImagingCategory = ImagingCategory.DIAGNOSTIC
    contrast_required: bool = False
    contrast_type: ContrastType | None = None
    encounter_id: str | None = None
    reason_for_exam: str | None = Field(None, max_length=2000)
    clinical_history: str | None = Field(None, max_length=10000)
    diagnosis_codes: list[DiagnosisCode] = Field(default_factory=list)
    safety_screening: SafetyScreening | None = None
    performing_facility_id: str | None = None
    status: ImagingOrderStatus = ImagingOrderStatus.PENDING


class ScheduleRequest(VersionedRequest):
    """Request to schedule a study."""

    scheduled_date: datetime
    facility_id: str | None = None


class ReportSubmit(VersionedRequest):
    """Radiologist report submission."""

    findings: str = Field(..., max_length=20000)
    impression: str = Field(..., max_length=10000)
    final: bool = False
    has_critical_findings: bool = False
    indication: str | None = None
    technique: str | None = None
    comparison: str | None = None
    recommendations: str | None = None
    radiologist_id: str | None = None
    radiologist_name: str | None = None


class ReportAddendumCreate(VersionedRequest):
    """Request to add an addendum to a final report."""

    text: str = Field(..., min_length=1, max_length=10000)
    reason: str | None = None


class CriticalFindingAcknowledge(VersionedRequest):
    """Request to record that a critical finding was communicated."""

    acknowledged_by: str | None = None
