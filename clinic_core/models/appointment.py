"""Appointment models.

Appointments follow the FHIR R4 appointment status set. Status is a
closed enum; presentation labels live in ``APPOINTMENT_STATUS_CONFIG``.
"""

from datetime import date, datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

from clinic_core.models.common import Entity, PersonRef, StatusDisplay
from clinic_core.utils.time import ensure_aware


class AppointmentStatus(str, Enum):
    """Status of an appointment."""

    PROPOSED = "proposed"
    PENDING = "pending"
    BOOKED = "booked"
    ARRIVED = "arrived"
    CHECKED_IN = "checked-in"
    IN_PROGRESS = "in-progress"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"
    NO_SHOW = "noshow"


TERMINAL_APPOINTMENT_STATUSES = frozenset(
    {
        AppointmentStatus.FULFILLED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }
)


class AppointmentType(str, Enum):
    """Visit type, drives the default duration."""

    ROUTINE = "routine"
    FOLLOWUP = "followup"
    NEW_PATIENT = "new-patient"
    URGENT = "urgent"
    PHYSICAL = "physical"
    WELLNESS = "wellness"
    PROCEDURE = "procedure"
    TELEHEALTH = "telehealth"
    LAB_REVIEW = "lab-review"
    CONSULTATION = "consultation"


class RecurrencePattern(str, Enum):
    """Repeat cadence for recurring appointments."""

    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class AppointmentTypeConfig(BaseModel):
    """Catalogue entry for an appointment type."""

    type: AppointmentType
    label: str
    duration: int
    color: str
    icon: str


APPOINTMENT_TYPE_CONFIG: dict[AppointmentType, AppointmentTypeConfig] = {
    cfg.type: cfg
    for cfg in [
        AppointmentTypeConfig(type=AppointmentType.NEW_PATIENT, label="New Patient", duration=45, color="#10b981", icon="person_add"),
        AppointmentTypeConfig(type=AppointmentType.ROUTINE, label="Routine Visit", duration=20, color="#3b82f6", icon="event"),
        AppointmentTypeConfig(type=AppointmentType.FOLLOWUP, label="Follow-up", duration=15, color="#0077b6", icon="replay"),
        AppointmentTypeConfig(type=AppointmentType.PHYSICAL, label="Annual Physical", duration=45, color="#8b5cf6", icon="monitor_heart"),
        AppointmentTypeConfig(type=AppointmentType.WELLNESS, label="Wellness Visit", duration=30, color="#14b8a6", icon="spa"),
        AppointmentTypeConfig(type=AppointmentType.URGENT, label="Urgent Care", duration=20, color="#ef4444", icon="emergency"),
        AppointmentTypeConfig(type=AppointmentType.PROCEDURE, label="Procedure", duration=60, color="#f59e0b", icon="healing"),
        AppointmentTypeConfig(type=AppointmentType.TELEHEALTH, label="Telehealth", duration=20, color="#6366f1", icon="video_call"),
        AppointmentTypeConfig(type=AppointmentType.LAB_REVIEW, label="Lab Review", duration=15, color="#ec4899", icon="science"),
        AppointmentTypeConfig(type=AppointmentType.CONSULTATION, label="Consultation", duration=30, color="#64748b", icon="forum"),
    ]
}


APPOINTMENT_STATUS_CONFIG: dict[AppointmentStatus, StatusDisplay] = {
    AppointmentStatus.PROPOSED: StatusDisplay(label="Proposed", color="#6b7280", icon="help_outline"),
    AppointmentStatus.PENDING: StatusDisplay(label="Pending", color="#f59e0b", icon="hourglass_empty"),
    AppointmentStatus.BOOKED: StatusDisplay(label="Confirmed", color="#3b82f6", icon="event_available"),
    AppointmentStatus.ARRIVED: StatusDisplay(label="Arrived", color="#10b981", icon="login"),
    AppointmentStatus.CHECKED_IN: StatusDisplay(label="Checked In", color="#10b981", icon="how_to_reg"),
    AppointmentStatus.IN_PROGRESS: StatusDisplay(label="In Progress", color="#8b5cf6", icon="play_circle"),
    AppointmentStatus.FULFILLED: StatusDisplay(label="Completed", color="#22c55e", icon="check_circle"),
    AppointmentStatus.CANCELLED: StatusDisplay(label="Cancelled", color="#ef4444", icon="cancel"),
    AppointmentStatus.NO_SHOW: StatusDisplay(label="No Show", color="#dc2626", icon="person_off"),
}


class Recurrence(BaseModel):
    """Recurrence descriptor stored with the appointment."""

    pattern: RecurrencePattern
    end_date: date | None = None
    parent_appointment_id: str | None = None


class Appointment(Entity):
    """Scheduled visit between a patient and a provider.

    Flat ``patient_*``/``provider_*`` fields are canonical; the nested
    ``patient``/``provider`` objects are computed on read.
    """

    status: AppointmentStatus = AppointmentStatus.BOOKED
    appointment_type: AppointmentType = AppointmentType.ROUTINE

    start: datetime
    end: datetime
    duration: int = Field(gt=0, description="Minutes")

    patient_id: str
    patient_name: str = ""
    provider_id: str
    provider_name: str = ""
    facility_id: str
    facility_name: str = ""
    room_id: str | None = None

    reason_description: str = ""
    chief_complaint: str | None = None
    notes: str | None = None
    is_telehealth: bool = False
    recurrence: Recurrence | None = None

    # Reminders / confirmation
    reminder_sent: bool = False
    reminder_sent_at: datetime | None = None
    confirmed_at: datetime | None = None
    confirmed_by: str | None = None

    # Check-in
    arrived_at: datetime | None = None
    checked_in_at: datetime | None = None
    checked_in_by: str | None = None

    # Terminal outcomes
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    cancellation_reason: str | None = None
    no_show_at: datetime | None = None

    created_by: str | None = None

    @field_validator("start", "end", mode="after")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @model_validator(mode="after")
    def _end_matches_duration(self) -> "Appointment":
        if self.end != self.start + timedelta(minutes=self.duration):
            raise ValueError("end must equal start + duration")
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
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_APPOINTMENT_STATUSES

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open interval intersection; touching endpoints do not overlap."""
        return start < self.end and end > self.start

    def __repr__(self) -> str:
        return f"<Appointment {self.id} {self.start.isoformat()} status={self.status.value}>"


class Slot(BaseModel):
    """Bookable time window. Computed on demand, never stored."""

    start: datetime
    end: datetime
    duration: int
    provider_id: str
    facility_id: str
    is_available: bool
