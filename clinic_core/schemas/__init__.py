"""Pydantic schemas for request/response validation."""

from clinic_core.schemas.appointment import AppointmentCreate, AppointmentUpdate
from clinic_core.schemas.common import (
    CancelRequest,
    ErrorResponse,
    PageResponse,
    VersionedRequest,
)
from clinic_core.schemas.encounter import (
    AddendumCreate,
    EncounterCreate,
    SectionsUpdate,
    SignRequest,
    StatusUpdate,
    VitalSignsRequest,
)
from clinic_core.schemas.imaging import (
    CriticalFindingAcknowledge,
    ImagingOrderCreate,
    ReportAddendumCreate,
    ReportSubmit,
    ScheduleRequest,
)

__all__ = [
    "PageResponse",
    "ErrorResponse",
    "VersionedRequest",
    "CancelRequest",
    "AppointmentCreate",
    "AppointmentUpdate",
    "EncounterCreate",
    "SectionsUpdate",
    "VitalSignsRequest",
    "StatusUpdate",
    "SignRequest",
    "AddendumCreate",
    "ImagingOrderCreate",
    "ScheduleRequest",
    "ReportSubmit",
    "ReportAddendumCreate",
    "CriticalFindingAcknowledge",
]
