"""Appointment lifecycle service.

Handles booking, rescheduling and the front-desk workflow
(confirm / arrive / check-in / start / complete) plus the terminal
cancel and no-show outcomes. Status changes go through ``transition``
so the allowed moves live in one table.
"""

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

from clinic_core.core.config import settings
from clinic_core.core.errors import (
    InvalidTransitionError,
    SlotNotAvailableError,
    ValidationError,
)
from clinic_core.core.logging import audit_logger
from clinic_core.models.appointment import (
    APPOINTMENT_TYPE_CONFIG,
    TERMINAL_APPOINTMENT_STATUSES,
    Appointment,
    AppointmentStatus,
    AppointmentType,
    Recurrence,
    Slot,
)
from clinic_core.models.common import new_id
from clinic_core.repository import (
    InMemoryRepository,
    Page,
    all_of,
    date_range,
    field_equals,
    status_in,
    text_match,
)
from clinic_core.services.directory import Directory
from clinic_core.services.slots import BusinessHours, compute_slots, has_conflict
from clinic_core.utils.time import day_bounds, ensure_aware, utc_now

logger = logging.getLogger(__name__)


class AppointmentAction(str, Enum):
    """Actions that can be applied to an appointment."""

    CONFIRM = "confirm"
    MARK_ARRIVED = "mark_arrived"
    CHECK_IN = "check_in"
    START_ENCOUNTER = "start_encounter"
    COMPLETE = "complete"
    CANCEL = "cancel"
    MARK_NO_SHOW = "mark_no_show"
    SEND_REMINDER = "send_reminder"


ACTIVE_APPOINTMENT_STATUSES = frozenset(AppointmentStatus) - TERMINAL_APPOINTMENT_STATUSES

# action -> (allowed source statuses, target status; None keeps the status)
APPOINTMENT_TRANSITIONS: dict[
    AppointmentAction, tuple[frozenset[AppointmentStatus], AppointmentStatus | None]
] = {
    AppointmentAction.CONFIRM: (
        frozenset({AppointmentStatus.PROPOSED, AppointmentStatus.PENDING}),
        AppointmentStatus.BOOKED,
    ),
    AppointmentAction.MARK_ARRIVED: (
        frozenset({AppointmentStatus.BOOKED}),
        AppointmentStatus.ARRIVED,
    ),
    AppointmentAction.CHECK_IN: (
        frozenset({AppointmentStatus.BOOKED, AppointmentStatus.ARRIVED}),
        AppointmentStatus.CHECKED_IN,
    ),
    AppointmentAction.START_ENCOUNTER: (
        frozenset({AppointmentStatus.CHECKED_IN}),
        AppointmentStatus.IN_PROGRESS,
    ),
    AppointmentAction.COMPLETE: (
        frozenset({AppointmentStatus.IN_PROGRESS}),
        AppointmentStatus.FULFILLED,
    ),
    AppointmentAction.CANCEL: (ACTIVE_APPOINTMENT_STATUSES, AppointmentStatus.CANCELLED),
    AppointmentAction.MARK_NO_SHOW: (ACTIVE_APPOINTMENT_STATUSES, AppointmentStatus.NO_SHOW),
    AppointmentAction.SEND_REMINDER: (ACTIVE_APPOINTMENT_STATUSES, None),
}

INITIAL_APPOINTMENT_STATUSES = frozenset(
    {AppointmentStatus.PROPOSED, AppointmentStatus.PENDING, AppointmentStatus.BOOKED}
)

# Fields a caller may change through update_appointment
UPDATABLE_FIELDS = frozenset(
    {
        "start",
        "duration",
        "appointment_type",
        "facility_id",
        "room_id",
        "reason_description",
        "chief_complaint",
        "notes",
        "is_telehealth",
    }
)

SORTABLE_FIELDS = frozenset({"start", "status", "patient_name", "provider_name", "appointment_type", "created_at"})


def transition(status: AppointmentStatus, action: AppointmentAction) -> AppointmentStatus:
    """Return the status after ``action`` or raise InvalidTransitionError."""
    allowed, target = APPOINTMENT_TRANSITIONS[action]
    if status not in allowed:
        raise InvalidTransitionError("appointment", status.value, action.value)
    return target if target is not None else status


def default_duration(appointment_type: AppointmentType) -> int:
    """Catalogue duration for a visit type, in minutes."""
    config = APPOINTMENT_TYPE_CONFIG.get(appointment_type)
    return config.duration if config else settings.default_slot_minutes


class AppointmentService:
    """Service for booking appointments and driving their lifecycle."""

    def __init__(
        self,
        repository: InMemoryRepository[Appointment],
        directory: Directory,
        clock: Callable[[], datetime] = utc_now,
        business_hours: BusinessHours | None = None,
    ) -> None:
        self.repository = repository
        self.directory = directory
        self.clock = clock
        self.business_hours = business_hours
        # Booking for one provider is check-then-write; serialise it
        self._provider_locks: dict[str, threading.Lock] = {}
        self._provider_locks_guard = threading.Lock()

    def _provider_lock(self, provider_id: str) -> threading.Lock:
        with self._provider_locks_guard:
            lock = self._provider_locks.get(provider_id)
            if lock is None:
                lock = threading.Lock()
                self._provider_locks[provider_id] = lock
            return lock

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: str) -> Appointment:
        """Get appointment by ID."""
        return self.repository.find(appointment_id)

    def search_appointments(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        provider_id: str | None = None,
        patient_id: str | None = None,
        facility_id: str | None = None,
        status: Iterable[AppointmentStatus] | None = None,
        appointment_type: Iterable[AppointmentType] | None = None,
        search_text: str | None = None,
        sort_by: str = "start",
        sort_direction: str = "asc",
        page: int = 1,
        page_size: int | None = None,
    ) -> Page[Appointment]:
        """Search appointments with filters, sorting and paging."""
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"Cannot sort appointments by '{sort_by}'")
        predicate = all_of(
            date_range("start", start_date, end_date),
            field_equals("provider_id", provider_id),
            field_equals("patient_id", patient_id),
            field_equals("facility_id", facility_id),
            status_in(status),
            status_in(appointment_type, field_name="appointment_type"),
            text_match(
                search_text,
                [
                    lambda a: a.patient_name,
                    lambda a: a.provider_name,
                    lambda a: a.reason_description,
                    lambda a: a.chief_complaint,
                ],
            ),
        )
        return self.repository.search(
            predicate,
            sort_key=sort_by,
            sort_direction=sort_direction,  # type: ignore[arg-type]
            page=page,
            page_size=min(page_size or settings.default_page_size, settings.max_page_size),
        )

    def get_provider_schedule(self, provider_id: str, target_date: date) -> list[Appointment]:
        """All of a provider's appointments touching ``target_date``, by start time."""
        day_start, day_end = day_bounds(target_date)
        appointments = self.repository.all(
            lambda a: a.provider_id == provider_id and a.overlaps(day_start, day_end)
        )
        return sorted(appointments, key=lambda a: (a.start, a.id))

    def get_patient_appointments(self, patient_id: str) -> list[Appointment]:
        """A patient's appointments, most recent first."""
        appointments = self.repository.all(lambda a: a.patient_id == patient_id)
        return sorted(appointments, key=lambda a: (a.start, a.id), reverse=True)

    def get_available_slots(
        self,
        target_date: date,
        provider_id: str,
        duration: int | None = None,
        facility_id: str | None = None,
    ) -> list[Slot]:
        """Compute the provider's slots for a day against live bookings."""
        existing = [
            a
            for a in self.get_provider_schedule(provider_id, target_date)
            if a.status != AppointmentStatus.CANCELLED
        ]
        return compute_slots(
            target_date,
            provider_id,
            duration if duration is not None else settings.default_slot_minutes,
            existing,
            facility_id=facility_id,
            business_hours=self.business_hours,
        )

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def _check_overlap(
        self,
        provider_id: str,
        start: datetime,
        end: datetime,
        exclude_id: str | None = None,
    ) -> None:
        existing = self.repository.all(
            lambda a: a.provider_id == provider_id and a.id != exclude_id
        )
        if has_conflict(start, end, existing):
            logger.warning(
                f"Rejected booking for provider {provider_id}: "
                f"{start.isoformat()}-{end.isoformat()} overlaps an existing appointment"
            )
            raise SlotNotAvailableError(
                "This time slot is no longer available",
                details={"provider_id": provider_id, "start": start.isoformat(), "end": end.isoformat()},
            )

    def create_appointment(
        self,
        patient_id: str,
        provider_id: str,
        start: datetime,
        duration: int | None = None,
        appointment_type: AppointmentType = AppointmentType.ROUTINE,
        facility_id: str | None = None,
        status: AppointmentStatus = AppointmentStatus.BOOKED,
        room_id: str | None = None,
        reason_description: str = "",
        chief_complaint: str | None = None,
        notes: str | None = None,
        is_telehealth: bool = False,
        recurrence: Recurrence | None = None,
        created_by: str | None = None,
    ) -> Appointment:
        """Book a new appointment.

        Duration defaults to the visit type's catalogue duration. The
        patient, provider and facility names are snapshotted from the
        directory at this point and never refreshed.
        """
        if duration is None:
            duration = default_duration(appointment_type)
        if duration <= 0:
            raise ValidationError("duration must be greater than zero")
        if status not in INITIAL_APPOINTMENT_STATUSES:
            raise ValidationError(f"New appointments cannot start in status '{status.value}'")

        start = ensure_aware(start)
        end = start + timedelta(minutes=duration)
        facility_id = facility_id or settings.default_facility_id
        now = self.clock()

        appointment = Appointment(
            id=new_id("apt"),
            status=status,
            appointment_type=appointment_type,
            start=start,
            end=end,
            duration=duration,
            patient_id=patient_id,
            patient_name=self.directory.patient_name(patient_id) or "",
            provider_id=provider_id,
            provider_name=self.directory.provider_name(provider_id) or "",
            facility_id=facility_id,
            facility_name=self.directory.facility_name(facility_id) or "",
            room_id=room_id,
            reason_description=reason_description,
            chief_complaint=chief_complaint,
            notes=notes,
            is_telehealth=is_telehealth,
            recurrence=recurrence,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )

        with self._provider_lock(provider_id):
            self._check_overlap(provider_id, start, end)
            stored = self.repository.add(appointment)

        audit_logger.log(
            action="appointment.created",
            actor_type="user",
            actor_id=created_by,
            entity_type="appointment",
            entity_id=stored.id,
            metadata={
                "provider_id": provider_id,
                "start": start.isoformat(),
                "duration": duration,
                "status": stored.status.value,
            },
        )
        return stored

    def update_appointment(
        self,
        appointment_id: str,
        changes: Mapping[str, Any],
        updated_by: str | None = None,
        expected_version: int | None = None,
    ) -> Appointment:
        """Reschedule or edit an appointment that is not terminal.

        ``end`` is recomputed whenever ``start`` or ``duration`` changes
        and the new window is re-checked for overlap.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update appointment fields: {', '.join(sorted(unknown))}")
        if "duration" in changes and (changes["duration"] is None or changes["duration"] <= 0):
            raise ValidationError("duration must be greater than zero")
        if "start" in changes and changes["start"] is None:
            raise ValidationError("start is required")

        current = self.repository.find(appointment_id)
        now = self.clock()

        def mutate(apt: Appointment) -> Appointment:
            if apt.status in TERMINAL_APPOINTMENT_STATUSES:
                logger.warning(f"Rejected update on appointment {apt.id}: status={apt.status.value}")
                raise InvalidTransitionError("appointment", apt.status.value, "update")

            for field_name, value in changes.items():
                setattr(apt, field_name, value)
            if "start" in changes:
                apt.start = ensure_aware(apt.start)
            if "facility_id" in changes and apt.facility_id:
                apt.facility_name = self.directory.facility_name(apt.facility_id) or ""
            apt.end = apt.start + timedelta(minutes=apt.duration)

            if "start" in changes or "duration" in changes:
                self._check_overlap(apt.provider_id, apt.start, apt.end, exclude_id=apt.id)
            apt.updated_at = now
            return apt

        with self._provider_lock(current.provider_id):
            updated = self.repository.update(appointment_id, mutate, expected_version)

        audit_logger.log(
            action="appointment.updated",
            actor_type="user",
            actor_id=updated_by,
            entity_type="appointment",
            entity_id=appointment_id,
            metadata={"fields": sorted(changes), "start": updated.start.isoformat()},
        )
        return updated

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _apply(
        self,
        appointment_id: str,
        action: AppointmentAction,
        actor_id: str | None,
        expected_version: int | None = None,
        side_effects: Callable[[Appointment, datetime], None] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Appointment:
        now = self.clock()
        previous: dict[str, str] = {}

        def mutate(apt: Appointment) -> Appointment:
            try:
                new_status = transition(apt.status, action)
            except InvalidTransitionError:
                logger.warning(
                    f"Rejected {action.value} on appointment {apt.id}: status={apt.status.value}"
                )
                raise
            previous["status"] = apt.status.value
            apt.status = new_status
            if side_effects is not None:
                side_effects(apt, now)
            apt.updated_at = now
            return apt

        updated = self.repository.update(appointment_id, mutate, expected_version)

        audit_logger.log(
            action=f"appointment.{action.value}",
            actor_type="user",
            actor_id=actor_id,
            entity_type="appointment",
            entity_id=appointment_id,
            metadata={
                "from_status": previous.get("status"),
                "to_status": updated.status.value,
                **(metadata or {}),
            },
        )
        return updated

    def confirm(
        self,
        appointment_id: str,
        confirmed_by: str | None = None,
        expected_version: int | None = None,
    ) -> Appointment:
        """Confirm a proposed or pending appointment."""

        def effects(apt: Appointment, now: datetime) -> None:
            apt.confirmed_at = now
            apt.confirmed_by = confirmed_by

        return self._apply(appointment_id, AppointmentAction.CONFIRM, confirmed_by, expected_version, effects)

    def mark_arrived(
        self,
        appointment_id: str,
        actor_id: str | None = None,
        expected_version: int | None = None,
    ) -> Appointment:
        """Record that the patient is on site."""

        def effects(apt: Appointment, now: datetime) -> None:
            apt.arrived_at = now

        return self._apply(appointment_id, AppointmentAction.MARK_ARRIVED, actor_id, expected_version, effects)

    def check_in(
        self,
        appointment_id: str,
        checked_in_by: str | None = None,
        expected_version: int | None = None,
    ) -> Appointment:
        """Check the patient in at the front desk."""

        def effects(apt: Appointment, now: datetime) -> None:
            if apt.arrived_at is None:
                apt.arrived_at = now
            apt.checked_in_at = now
            apt.checked_in_by = checked_in_by

        return self._apply(appointment_id, AppointmentAction.CHECK_IN, checked_in_by, expected_version, effects)

    def start_encounter(
        self,
        appointment_id: str,
        actor_id: str | None = None,
        expected_version: int | None = None,
    ) -> Appointment:
        """Mark the visit as under way."""
        return self._apply(appointment_id, AppointmentAction.START_ENCOUNTER, actor_id, expected_version)

    def complete(
        self,
        appointment_id: str,
        actor_id: str | None = None,
        expected_version: int | None = None,
    ) -> Appointment:
        """Mark the visit as fulfilled."""
        return self._apply(appointment_id, AppointmentAction.COMPLETE, actor_id, expected_version)

    def cancel(
        self,
        appointment_id: str,
        reason: str | None = None,
        cancelled_by: str | None = None,
        expected_version: int | None = None,
    ) -> Appointment:
        """Cancel a non-terminal appointment. Frees its slot."""

        def effects(apt: Appointment, now: datetime) -> None:
            apt.cancelled_at = now
            apt.cancelled_by = cancelled_by
            apt.cancellation_reason = reason

        return self._apply(
            appointment_id,
            AppointmentAction.CANCEL,
            cancelled_by,
            expected_version,
            effects,
            metadata={"reason": reason},
        )

    def mark_no_show(
        self,
        appointment_id: str,
        actor_id: str | None = None,
        expected_version: int | None = None,
    ) -> Appointment:
        """Record that the patient did not attend."""

        def effects(apt: Appointment, now: datetime) -> None:
            apt.no_show_at = now

        return self._apply(appointment_id, AppointmentAction.MARK_NO_SHOW, actor_id, expected_version, effects)

    def send_reminder(
        self,
        appointment_id: str,
        actor_id: str | None = None,
        expected_version: int | None = None,
    ) -> Appointment:
        """Flag that a reminder went out. Delivery happens elsewhere."""

        def effects(apt: Appointment, now: datetime) -> None:
            apt.reminder_sent = True
            apt.reminder_sent_at = now

        return self._apply(appointment_id, AppointmentAction.SEND_REMINDER, actor_id, expected_version, effects)
