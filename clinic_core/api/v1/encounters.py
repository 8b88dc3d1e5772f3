"""Encounter API endpoints.

SOAP documentation, vital signs, templates, sign-off and addenda.
"""

from datetime import datetime

from fastapi import APIRouter, Query, status

from clinic_core.api.deps import ActorId, Encounters, RequiredActorId
from clinic_core.models.encounter import (
    Encounter,
    EncounterClass,
    EncounterStatus,
    EncounterTemplate,
)
from clinic_core.schemas.common import CancelRequest, PageResponse, VersionedRequest
from clinic_core.schemas.encounter import (
    AddendumCreate,
    EncounterCreate,
    SectionsUpdate,
    SignRequest,
    StatusUpdate,
    VitalSignsRequest,
)

router = APIRouter()


@router.get(
    "",
    response_model=PageResponse[Encounter],
)
def search_encounters(
    service: Encounters,
    patient_id: str | None = Query(None),
    provider_id: str | None = Query(None),
    status_filter: list[EncounterStatus] | None = Query(None, alias="status"),
    encounter_class: list[EncounterClass] | None = Query(None, alias="class"),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    search: str | None = Query(None),
    sort_by: str = Query("start_time"),
    sort_direction: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
) -> PageResponse[Encounter]:
    """Search encounters."""
    result = service.search_encounters(
        patient_id=patient_id,
        provider_id=provider_id,
        status=status_filter,
        encounter_class=encounter_class,
        start_date=start_date,
        end_date=end_date,
        search_text=search,
        sort_by=sort_by,
        sort_direction=sort_direction,
        page=page,
        page_size=page_size,
    )
    return PageResponse[Encounter].from_page(result)


@router.post(
    "",
    response_model=Encounter,
    status_code=status.HTTP_201_CREATED,
)
def create_encounter(
    service: Encounters,
    request: EncounterCreate,
    actor_id: ActorId = None,
) -> Encounter:
    """Open an encounter, optionally from an appointment."""
    return service.create_encounter(
        patient_id=request.patient_id,
        provider_id=request.provider_id,
        appointment_id=request.appointment_id,
        encounter_class=request.encounter_class,
        status=request.status,
        start_time=request.start_time,
        facility_id=request.facility_id,
        room_id=request.room_id,
        service_type=request.service_type,
        chief_complaint=request.chief_complaint,
        created_by=actor_id,
    )


@router.get(
    "/templates",
    response_model=list[EncounterTemplate],
)
def list_templates(
    service: Encounters,
    category: str | None = Query(None),
) -> list[EncounterTemplate]:
    """List encounter templates."""
    return service.list_templates(category=category)


@router.get(
    "/{encounter_id}",
    response_model=Encounter,
)
def get_encounter(encounter_id: str, service: Encounters) -> Encounter:
    """Get encounter by ID."""
    return service.get_encounter(encounter_id)


@router.patch("/{encounter_id}/sections", response_model=Encounter)
def update_sections(
    encounter_id: str,
    service: Encounters,
    request: SectionsUpdate,
    actor_id: ActorId = None,
) -> Encounter:
    """Update SOAP sections of an open encounter."""
    return service.update_sections(
        encounter_id,
        request.sections(),
        additional_notes=request.additional_notes,
        updated_by=actor_id,
        expected_version=request.expected_version,
    )


@router.put("/{encounter_id}/vitals", response_model=Encounter)
def record_vital_signs(
    encounter_id: str,
    service: Encounters,
    request: VitalSignsRequest,
    actor_id: ActorId = None,
) -> Encounter:
    """Record vital signs."""
    return service.record_vital_signs(
        encounter_id,
        request.reading(),
        recorded_by=actor_id,
        expected_version=request.expected_version,
    )


@router.post("/{encounter_id}/status", response_model=Encounter)
def advance_status(
    encounter_id: str,
    service: Encounters,
    request: StatusUpdate,
    actor_id: ActorId = None,
) -> Encounter:
    """Move an open encounter to its next status."""
    return service.advance_status(
        encounter_id,
        request.status,
        actor_id=actor_id,
        expected_version=request.expected_version,
    )


@router.post("/{encounter_id}/sign", response_model=Encounter)
def sign_encounter(
    encounter_id: str,
    service: Encounters,
    actor_id: RequiredActorId,
    request: SignRequest | None = None,
) -> Encounter:
    """Sign the encounter."""
    return service.sign(
        encounter_id,
        signed_by=actor_id,
        attestation=request.attestation if request else None,
        expected_version=request.expected_version if request else None,
    )


@router.post("/{encounter_id}/cancel", response_model=Encounter)
def cancel_encounter(
    encounter_id: str,
    service: Encounters,
    request: CancelRequest | None = None,
    actor_id: ActorId = None,
) -> Encounter:
    """Cancel an unsigned encounter."""
    return service.cancel(
        encounter_id,
        reason=request.reason if request else None,
        cancelled_by=actor_id,
        expected_version=request.expected_version if request else None,
    )


@router.post("/{encounter_id}/apply-template/{template_id}", response_model=Encounter)
def apply_template(
    encounter_id: str,
    template_id: str,
    service: Encounters,
    request: VersionedRequest | None = None,
    actor_id: ActorId = None,
) -> Encounter:
    """Fill empty section fields from a template."""
    return service.apply_template(
        encounter_id,
        template_id,
        applied_by=actor_id,
        expected_version=request.expected_version if request else None,
    )


@router.post(
    "/{encounter_id}/addenda",
    response_model=Encounter,
    status_code=status.HTTP_201_CREATED,
)
def add_addendum(
    encounter_id: str,
    service: Encounters,
    actor_id: RequiredActorId,
    request: AddendumCreate,
) -> Encounter:
    """Append an addendum to a signed encounter."""
    return service.add_addendum(
        encounter_id,
        author=actor_id,
        text=request.text,
        expected_version=request.expected_version,
    )
