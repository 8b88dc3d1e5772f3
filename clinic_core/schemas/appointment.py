"""Appointment schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from clinic_core.models.appointment import (
    AppointmentStatus,
    AppointmentType,
    Recurrence,
)
from clinic_core.schemas.common import VersionedRequest


class AppointmentCreate(BaseModel):
    """Schema for booking a new appointment."""

    patient_id: str
    provider_id: str
    start: datetime
    duration: int | None = Field(None, description="Minutes; defaults to the visit type's duration")
    appointment_type: AppointmentType = AppointmentType.ROUTINE
    facility_id: str | None = None
    status: AppointmentStatus = AppointmentStatus.BOOKED
    room_id: str | None = None
    reason_description: str = Field("", max_length=2000)
    chief_complaint: str | None = Field(None, max_length=2000)
    notes: str | None = Field(None, max_length=10000)
    is_telehealth: bool = False
    recurrence: Recurrence | None = None


class AppointmentUpdate(VersionedRequest):
    """Schema for rescheduling or editing an appointment.

    Only fields present in the request body are changed.
    """

    start: datetime | None = None
    duration: int | None = None
    appointment_type: AppointmentType | None = None
    facility_id: str | None = None
    room_id: str | None = None
    reason_description: str | None = Field(None, max_length=2000)
    chief_complaint: str | None = Field(None, max_length=2000)
    notes: str | None = Field(None, max_length=10000)
    is_telehealth: bool | None = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude={"expected_version"})
