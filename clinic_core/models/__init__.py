"""Domain models for the clinic scheduling and order lifecycle engine."""

from clinic_core.models.appointment import (
    APPOINTMENT_STATUS_CONFIG,
    APPOINTMENT_TYPE_CONFIG,
    TERMINAL_APPOINTMENT_STATUSES,
    Appointment,
    AppointmentStatus,
    AppointmentType,
    Recurrence,
    RecurrencePattern,
    Slot,
)
from clinic_core.models.common import (
    CodeSystem,
    Diagnosis,
    DiagnosisCode,
    DiagnosisRole,
    DiagnosisStatus,
    Entity,
    PersonRef,
    StatusDisplay,
)
from clinic_core.models.encounter import (
    ENCOUNTER_STATUS_CONFIG,
    Assessment,
    Encounter,
    EncounterAddendum,
    EncounterClass,
    EncounterStatus,
    EncounterTemplate,
    ObjectiveAssessment,
    Plan,
    SubjectiveAssessment,
    VitalSigns,
)
from clinic_core.models.imaging import (
    IMAGING_STATUS_LABELS,
    BodyRegion,
    FacilityType,
    ImagingFacility,
    ImagingModality,
    ImagingOrder,
    ImagingOrderStatus,
    ImagingPriority,
    ImagingProcedure,
    ImagingReport,
    ReportAddendum,
    ReportStatus,
    SafetyScreening,
)

__all__ = [
    # Common
    "Entity",
    "PersonRef",
    "StatusDisplay",
    "Diagnosis",
    "DiagnosisCode",
    "DiagnosisRole",
    "DiagnosisStatus",
    "CodeSystem",
    # Scheduling
    "Appointment",
    "AppointmentStatus",
    "AppointmentType",
    "Recurrence",
    "RecurrencePattern",
    "Slot",
    "APPOINTMENT_STATUS_CONFIG",
    "APPOINTMENT_TYPE_CONFIG",
    "TERMINAL_APPOINTMENT_STATUSES",
    # Encounters
    "Encounter",
    "EncounterStatus",
    "EncounterClass",
    "EncounterAddendum",
    "EncounterTemplate",
    "SubjectiveAssessment",
    "ObjectiveAssessment",
    "Assessment",
    "Plan",
    "VitalSigns",
    "ENCOUNTER_STATUS_CONFIG",
    # Imaging
    "ImagingOrder",
    "ImagingOrderStatus",
    "ImagingModality",
    "ImagingPriority",
    "ImagingProcedure",
    "ImagingFacility",
    "FacilityType",
    "BodyRegion",
    "ImagingReport",
    "ReportAddendum",
    "ReportStatus",
    "SafetyScreening",
    "IMAGING_STATUS_LABELS",
]
