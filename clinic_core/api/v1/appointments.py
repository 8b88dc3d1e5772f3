"""Appointment API endpoints.

Booking, rescheduling, slot availability and the front-desk lifecycle.
Engine errors propagate to the application-level handler.
"""

from datetime import date, datetime

from fastapi import APIRouter, Query, status

from clinic_core.api.deps import ActorId, Appointments
from clinic_core.models.appointment import Appointment, AppointmentStatus, AppointmentType, Slot
from clinic_core.schemas.appointment import AppointmentCreate, AppointmentUpdate
from clinic_core.schemas.common import CancelRequest, PageResponse, VersionedRequest

router = APIRouter()


def _version(request: VersionedRequest | None) -> int | None:
    return request.expected_version if request is not None else None


@router.get(
    "",
    response_model=PageResponse[Appointment],
)
def search_appointments(
    service: Appointments,
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    provider_id: str | None = Query(None),
    patient_id: str | None = Query(None),
    facility_id: str | None = Query(None),
    status_filter: list[AppointmentStatus] | None = Query(None, alias="status"),
    appointment_type: list[AppointmentType] | None = Query(None),
    search: str | None = Query(None),
    sort_by: str = Query("start"),
    sort_direction: str = Query("asc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
) -> PageResponse[Appointment]:
    """Search appointments."""
    result = service.search_appointments(
        start_date=start_date,
        end_date=end_date,
        provider_id=provider_id,
        patient_id=patient_id,
        facility_id=facility_id,
        status=status_filter,
        appointment_type=appointment_type,
        search_text=search,
        sort_by=sort_by,
        sort_direction=sort_direction,
        page=page,
        page_size=page_size,
    )
    return PageResponse[Appointment].from_page(result)


@router.post(
    "",
    response_model=Appointment,
    status_code=status.HTTP_201_CREATED,
)
def create_appointment(
    service: Appointments,
    request: AppointmentCreate,
    actor_id: ActorId = None,
) -> Appointment:
    """Book an appointment."""
    return service.create_appointment(
        patient_id=request.patient_id,
        provider_id=request.provider_id,
        start=request.start,
        duration=request.duration,
        appointment_type=request.appointment_type,
        facility_id=request.facility_id,
        status=request.status,
        room_id=request.room_id,
        reason_description=request.reason_description,
        chief_complaint=request.chief_complaint,
        notes=request.notes,
        is_telehealth=request.is_telehealth,
        recurrence=request.recurrence,
        created_by=actor_id,
    )


@router.get(
    "/slots",
    response_model=list[Slot],
)
def get_available_slots(
    service: Appointments,
    provider_id: str = Query(...),
    target_date: date = Query(..., alias="date"),
    duration: int | None = Query(None),
    facility_id: str | None = Query(None),
) -> list[Slot]:
    """Get the day's slots for a provider, flagged free or taken."""
    return service.get_available_slots(
        target_date=target_date,
        provider_id=provider_id,
        duration=duration,
        facility_id=facility_id,
    )


@router.get(
    "/{appointment_id}",
    response_model=Appointment,
)
def get_appointment(appointment_id: str, service: Appointments) -> Appointment:
    """Get appointment by ID."""
    return service.get_appointment(appointment_id)


@router.patch(
    "/{appointment_id}",
    response_model=Appointment,
)
def update_appointment(
    appointment_id: str,
    service: Appointments,
    request: AppointmentUpdate,
    actor_id: ActorId = None,
) -> Appointment:
    """Reschedule or edit an appointment."""
    return service.update_appointment(
        appointment_id,
        request.changes(),
        updated_by=actor_id,
        expected_version=request.expected_version,
    )


@router.post("/{appointment_id}/confirm", response_model=Appointment)
def confirm_appointment(
    appointment_id: str,
    service: Appointments,
    request: VersionedRequest | None = None,
    actor_id: ActorId = None,
) -> Appointment:
    """Confirm a proposed or pending appointment."""
    return service.confirm(appointment_id, confirmed_by=actor_id, expected_version=_version(request))


@router.post("/{appointment_id}/arrive", response_model=Appointment)
def mark_arrived(
    appointment_id: str,
    service: Appointments,
    request: VersionedRequest | None = None,
    actor_id: ActorId = None,
) -> Appointment:
    """Mark the patient as arrived."""
    return service.mark_arrived(appointment_id, actor_id=actor_id, expected_version=_version(request))


@router.post("/{appointment_id}/check-in", response_model=Appointment)
def check_in(
    appointment_id: str,
    service: Appointments,
    request: VersionedRequest | None = None,
    actor_id: ActorId = None,
) -> Appointment:
    """Check the patient in."""
    return service.check_in(appointment_id, checked_in_by=actor_id, expected_version=_version(request))


@router.post("/{appointment_id}/start", response_model=Appointment)
def start_encounter(
    appointment_id: str,
    service: Appointments,
    request: VersionedRequest | None = None,
    actor_id: ActorId = None,
) -> Appointment:
    """Start the visit."""
    return service.start_encounter(appointment_id, actor_id=actor_id, expected_version=_version(request))


@router.post("/{appointment_id}/complete", response_model=Appointment)
def complete_appointment(
    appointment_id: str,
    service: Appointments,
    request: VersionedRequest | None = None,
    actor_id: ActorId = None,
) -> Appointment:
    """Complete the visit."""
    return service.complete(appointment_id, actor_id=actor_id, expected_version=_version(request))


@router.post("/{appointment_id}/cancel", response_model=Appointment)
def cancel_appointment(
    appointment_id: str,
    service: Appointments,
    request: CancelRequest | None = None,
    actor_id: ActorId = None,
) -> Appointment:
    """Cancel an appointment."""
    return service.cancel(
        appointment_id,
        reason=request.reason if request else None,
        cancelled_by=actor_id,
        expected_version=_version(request),
    )


@router.post("/{appointment_id}/no-show", response_model=Appointment)
def mark_no_show(
    appointment_id: str,
    service: Appointments,
    request: VersionedRequest | None = None,
    actor_id: ActorId = None,
) -> Appointment:
    """Mark the appointment as a no-show."""
    return service.mark_no_show(appointment_id, actor_id=actor_id, expected_version=_version(request))


@router.post("/{appointment_id}/send-reminder", response_model=Appointment)
def send_reminder(
    appointment_id: str,
    service: Appointments,
    request: VersionedRequest | None = None,
    actor_id: ActorId = None,
) -> Appointment:
    """Flag that a reminder was sent."""
    return service.send_reminder(appointment_id, actor_id=actor_id, expected_version=_version(request))
