"""Imaging order models.

Radiology orders move through scheduling, acquisition and reporting.
The critical-finding acknowledgment on the report is tracked
independently of the order status.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, computed_field

from clinic_core.models.common import DiagnosisCode, Entity, PersonRef


class ImagingModality(str, Enum):
    XRAY = "xray"
    CT = "ct"
    MRI = "mri"
    ULTRASOUND = "ultrasound"
    MAMMOGRAPHY = "mammography"
    FLUOROSCOPY = "fluoroscopy"
    NUCLEAR = "nuclear"
    PET = "pet"
    DEXA = "dexa"


class ImagingOrderStatus(str, Enum):
    """Status of an imaging order."""

    DRAFT = "draft"
    PENDING = "pending"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    PRELIMINARY = "preliminary"
    FINAL = "final"
    ADDENDUM = "addendum"
    CANCELLED = "cancelled"


class ImagingPriority(str, Enum):
    ROUTINE = "routine"
    URGENT = "urgent"
    STAT = "stat"
    ASAP = "asap"


class ImagingCategory(str, Enum):
    DIAGNOSTIC = "diagnostic"
    SCREENING = "screening"
    FOLLOW_UP = "follow-up"
    PRE_OPERATIVE = "pre-operative"
    POST_OPERATIVE = "post-operative"
    EMERGENCY = "emergency"


class ContrastType(str, Enum):
    NONE = "none"
    ORAL = "oral"
    IV = "iv"
    ORAL_IV = "oral-iv"
    INTRATHECAL = "intrathecal"
    ARTHROGRAM = "arthrogram"


class Laterality(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    BILATERAL = "bilateral"
    NOT_APPLICABLE = "not-applicable"


class BodyRegion(str, Enum):
    HEAD = "head"
    NECK = "neck"
    CHEST = "chest"
    ABDOMEN = "abdomen"
    PELVIS = "pelvis"
    SPINE = "spine"
    UPPER_EXTREMITY = "upper-extremity"
    LOWER_EXTREMITY = "lower-extremity"
    WHOLE_BODY = "whole-body"


class ReportStatus(str, Enum):
    DRAFT = "draft"
    PRELIMINARY = "preliminary"
    FINAL = "final"
    ADDENDUM = "addendum"
    AMENDED = "amended"


class PregnancyStatus(str, Enum):
    NOT_PREGNANT = "not-pregnant"
    PREGNANT = "pregnant"
    UNKNOWN = "unknown"
    NOT_APPLICABLE = "not-applicable"


class FacilityType(str, Enum):
    HOSPITAL = "hospital"
    IMAGING_CENTER = "imaging-center"
    CLINIC = "clinic"
    MOBILE = "mobile"


MODALITY_LABELS: dict[ImagingModality, str] = {
    ImagingModality.XRAY: "X-Ray",
    ImagingModality.CT: "CT Scan",
    ImagingModality.MRI: "MRI",
    ImagingModality.ULTRASOUND: "Ultrasound",
    ImagingModality.MAMMOGRAPHY: "Mammography",
    ImagingModality.FLUOROSCOPY: "Fluoroscopy",
    ImagingModality.NUCLEAR: "Nuclear Medicine",
    ImagingModality.PET: "PET Scan",
    ImagingModality.DEXA: "DEXA Scan",
}

IMAGING_STATUS_LABELS: dict[ImagingOrderStatus, str] = {
    ImagingOrderStatus.DRAFT: "Draft",
    ImagingOrderStatus.PENDING: "Pending",
    ImagingOrderStatus.SCHEDULED: "Scheduled",
    ImagingOrderStatus.IN_PROGRESS: "In Progress",
    ImagingOrderStatus.COMPLETED: "Completed",
    ImagingOrderStatus.PRELIMINARY: "Preliminary",
    ImagingOrderStatus.FINAL: "Final",
    ImagingOrderStatus.ADDENDUM: "Addendum",
    ImagingOrderStatus.CANCELLED: "Cancelled",
}

PRIORITY_LABELS: dict[ImagingPriority, str] = {
    ImagingPriority.ROUTINE: "Routine",
    ImagingPriority.URGENT: "Urgent",
    ImagingPriority.ASAP: "ASAP",
    ImagingPriority.STAT: "STAT",
}

BODY_REGION_LABELS: dict[BodyRegion, str] = {
    BodyRegion.HEAD: "Head",
    BodyRegion.NECK: "Neck",
    BodyRegion.CHEST: "Chest",
    BodyRegion.ABDOMEN: "Abdomen",
    BodyRegion.PELVIS: "Pelvis",
    BodyRegion.SPINE: "Spine",
    BodyRegion.UPPER_EXTREMITY: "Upper Extremity",
    BodyRegion.LOWER_EXTREMITY: "Lower Extremity",
    BodyRegion.WHOLE_BODY: "Whole Body",
}


class ImagingProcedure(BaseModel):
    """Orderable study from the procedure catalogue."""

    procedure_code: str
    procedure_name: str
    modality: ImagingModality
    body_region: BodyRegion
    cpt_code: str | None = None
    description: str | None = None

    contrast_options: list[ContrastType] = Field(default_factory=lambda: [ContrastType.NONE])
    default_contrast: ContrastType = ContrastType.NONE
    requires_prep: bool = False
    prep_instructions: str | None = None
    estimated_duration: int = Field(..., gt=0)

    technical_fee: float | None = Field(None, ge=0)
    professional_fee: float | None = Field(None, ge=0)

    is_common: bool = False


class ImagingFacility(BaseModel):
    """Site that performs imaging studies."""

    id: str
    name: str
    facility_type: FacilityType
    address: str | None = None
    phone: str | None = None

    modalities: list[ImagingModality]
    is_24_hour: bool = False
    accepts_walk_ins: bool = False
    pacs_integrated: bool = False
    supports_e_orders: bool = False
    is_preferred: bool = False

    def performs(self, modality: ImagingModality) -> bool:
        return modality in self.modalities


class SafetyScreening(BaseModel):
    """Pre-acquisition safety screening answers."""

    pregnancy_status: PregnancyStatus | None = None
    has_implants: bool | None = None
    implant_details: str | None = None
    claustrophobia: bool | None = None
    creatinine: float | None = Field(None, ge=0)
    egfr: float | None = Field(None, ge=0)


class ReportAddendum(BaseModel):
    """Dated supplement to an already-final report."""

    addendum_id: str
    author: str
    text: str
    created_at: datetime
    reason: str | None = None


class ImagingReport(BaseModel):
    """Radiologist interpretation attached to an order."""

    report_id: str
    status: ReportStatus = ReportStatus.PRELIMINARY

    indication: str | None = None
    technique: str | None = None
    comparison: str | None = None
    findings: str = ""
    impression: str = ""
    recommendations: str | None = None

    has_critical_findings: bool = False
    critical_finding_communicated: bool = False
    critical_finding_communicated_to: str | None = None
    critical_finding_communicated_at: datetime | None = None

    radiologist_id: str | None = None
    radiologist_name: str | None = None
    signed_at: datetime | None = None

    addenda: list[ReportAddendum] = Field(default_factory=list)

    @property
    def critical_finding_outstanding(self) -> bool:
        """A critical finding exists and nobody has been told yet."""
        return self.has_critical_findings and not self.critical_finding_communicated


class ImagingOrder(Entity):
    """Imaging order with its optional report."""

    status: ImagingOrderStatus = ImagingOrderStatus.PENDING
    accession_number: str

    patient_id: str
    patient_name: str = ""
    encounter_id: str | None = None

    modality: ImagingModality
    procedure_code: str
    procedure_name: str = ""
    body_region: BodyRegion
    laterality: Laterality | None = None
    priority: ImagingPriority = ImagingPriority.ROUTINE
    category: ImagingCategory = ImagingCategory.DIAGNOSTIC

    contrast_required: bool = False
    contrast_type: ContrastType | None = None

    ordering_provider_id: str
    ordering_provider_name: str = ""
    reading_radiologist_id: str | None = None
    reading_radiologist_name: str | None = None
    performing_facility_id: str | None = None
    performing_facility_name: str | None = None

    reason_for_exam: str | None = None
    clinical_history: str | None = None
    diagnosis_codes: list[DiagnosisCode] = Field(default_factory=list)

    ordered_date: datetime
    scheduled_date: datetime | None = None
    performed_date: datetime | None = None
    reported_date: datetime | None = None

    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None

    safety_screening: SafetyScreening | None = None
    report: ImagingReport | None = None

    created_by: str | None = None
    updated_by: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def ordering_provider(self) -> PersonRef:
        return PersonRef(id=self.ordering_provider_id, name=self.ordering_provider_name)

    @property
    def has_outstanding_critical_finding(self) -> bool:
        return self.report is not None and self.report.critical_finding_outstanding

    def __repr__(self) -> str:
        return f"<ImagingOrder {self.id} {self.accession_number} status={self.status.value}>"
