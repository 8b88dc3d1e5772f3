"""Imaging API endpoints.

Procedure and facility catalogues, order workflow, radiology reports,
critical-finding acknowledgment, statistics and the outstanding
critical-findings worklist.
"""

from datetime import datetime

from fastapi import APIRouter, Query, status

from clinic_core.api.deps import ActorId, Imaging, RequiredActorId
from clinic_core.core.errors import ValidationError
from clinic_core.models.imaging import (
    BodyRegion,
    ImagingFacility,
    ImagingModality,
    ImagingOrder,
    ImagingOrderStatus,
    ImagingPriority,
    ImagingProcedure,
)
from clinic_core.schemas.common import CancelRequest, PageResponse, VersionedRequest
from clinic_core.schemas.imaging import (
    CriticalFindingAcknowledge,
    ImagingOrderCreate,
    ReportAddendumCreate,
    ReportSubmit,
    ScheduleRequest,
)
from clinic_core.services.imaging import ImagingStatistics

router = APIRouter()


def _version(request: VersionedRequest | None) -> int | None:
    return request.expected_version if request is not None else None


@router.get(
    "/procedures",
    response_model=list[ImagingProcedure],
)
def list_procedures(
    service: Imaging,
    modality: ImagingModality | None = Query(None),
    body_region: BodyRegion | None = Query(None),
    common_only: bool = Query(False),
    search: str | None = Query(None),
) -> list[ImagingProcedure]:
    """Procedure catalogue."""
    return service.list_procedures(
        modality=modality,
        body_region=body_region,
        common_only=common_only,
        search_text=search,
    )


@router.get(
    "/procedures/{code}",
    response_model=ImagingProcedure,
)
def get_procedure(code: str, service: Imaging) -> ImagingProcedure:
    """Look up a procedure by catalogue or CPT code."""
    return service.get_procedure(code)


@router.get(
    "/facilities",
    response_model=list[ImagingFacility],
)
def list_facilities(
    service: Imaging,
    modality: ImagingModality | None = Query(None),
) -> list[ImagingFacility]:
    """Imaging sites, optionally filtered by modality."""
    return service.list_facilities(modality=modality)


@router.get(
    "/statistics",
    response_model=ImagingStatistics,
)
def get_statistics(
    service: Imaging,
    patient_id: str | None = Query(None),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
) -> ImagingStatistics:
    """Order counts by status and modality plus review backlog."""
    return service.get_statistics(patient_id=patient_id, date_from=date_from, date_to=date_to)


@router.get(
    "/critical-findings/outstanding",
    response_model=list[ImagingOrder],
)
def list_outstanding_critical_findings(service: Imaging) -> list[ImagingOrder]:
    """Orders whose critical finding has not been acknowledged."""
    return service.list_outstanding_critical_findings()


@router.get(
    "/orders",
    response_model=PageResponse[ImagingOrder],
)
def search_orders(
    service: Imaging,
    patient_id: str | None = Query(None),
    encounter_id: str | None = Query(None),
    modality: ImagingModality | None = Query(None),
    status_filter: list[ImagingOrderStatus] | None = Query(None, alias="status"),
    priority: ImagingPriority | None = Query(None),
    body_region: BodyRegion | None = Query(None),
    facility_id: str | None = Query(None),
    ordering_provider_id: str | None = Query(None),
    reading_radiologist_id: str | None = Query(None),
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    has_critical_findings: bool | None = Query(None),
    search: str | None = Query(None),
    sort_by: str = Query("ordered_date"),
    sort_direction: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
) -> PageResponse[ImagingOrder]:
    """Search imaging orders."""
    result = service.search_orders(
        patient_id=patient_id,
        encounter_id=encounter_id,
        modality=modality,
        status=status_filter,
        priority=priority,
        body_region=body_region,
        facility_id=facility_id,
        ordering_provider_id=ordering_provider_id,
        reading_radiologist_id=reading_radiologist_id,
        date_from=date_from,
        date_to=date_to,
        has_critical_findings=has_critical_findings,
        search_text=search,
        sort_by=sort_by,
        sort_direction=sort_direction,
        page=page,
        page_size=page_size,
    )
    return PageResponse[ImagingOrder].from_page(result)


@router.post(
    "/orders",
    response_model=ImagingOrder,
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    service: Imaging,
    request: ImagingOrderCreate,
    actor_id: ActorId = None,
) -> ImagingOrder:
    """Place an imaging order."""
    return service.create_order(
        patient_id=request.patient_id,
        ordering_provider_id=request.ordering_provider_id,
        modality=request.modality,
        procedure_code=request.procedure_code,
        procedure_name=request.procedure_name,
        body_region=request.body_region,
        laterality=request.laterality,
        priority=request.priority,
        category=request.category,
        contrast_required=request.contrast_required,
        contrast_type=request.contrast_type,
        encounter_id=request.encounter_id,
        reason_for_exam=request.reason_for_exam,
        clinical_history=request.clinical_history,
        diagnosis_codes=request.diagnosis_codes,
        safety_screening=request.safety_screening,
        performing_facility_id=request.performing_facility_id,
        status=request.status,
        created_by=actor_id,
    )


@router.get(
    "/orders/{order_id}",
    response_model=ImagingOrder,
)
def get_order(order_id: str, service: Imaging) -> ImagingOrder:
    """Get imaging order by ID."""
    return service.get_order(order_id)


@router.post("/orders/{order_id}/submit", response_model=ImagingOrder)
def submit_order(
    order_id: str,
    service: Imaging,
    request: VersionedRequest | None = None,
    actor_id: ActorId = None,
) -> ImagingOrder:
    """Submit a draft order."""
    return service.submit(order_id, actor_id=actor_id, expected_version=_version(request))


@router.post("/orders/{order_id}/schedule", response_model=ImagingOrder)
def schedule_order(
    order_id: str,
    service: Imaging,
    request: ScheduleRequest,
    actor_id: ActorId = None,
) -> ImagingOrder:
    """Schedule the study."""
    return service.schedule(
        order_id,
        scheduled_date=request.scheduled_date,
        facility_id=request.facility_id,
        actor_id=actor_id,
        expected_version=request.expected_version,
    )


@router.post("/orders/{order_id}/start", response_model=ImagingOrder)
def start_study(
    order_id: str,
    service: Imaging,
    request: VersionedRequest | None = None,
    actor_id: ActorId = None,
) -> ImagingOrder:
    """Begin acquisition."""
    return service.start(order_id, actor_id=actor_id, expected_version=_version(request))


@router.post("/orders/{order_id}/complete", response_model=ImagingOrder)
def complete_study(
    order_id: str,
    service: Imaging,
    request: VersionedRequest | None = None,
    actor_id: ActorId = None,
) -> ImagingOrder:
    """Finish acquisition."""
    return service.complete(order_id, actor_id=actor_id, expected_version=_version(request))


@router.post("/orders/{order_id}/report", response_model=ImagingOrder)
def submit_report(
    order_id: str,
    service: Imaging,
    request: ReportSubmit,
    actor_id: ActorId = None,
) -> ImagingOrder:
    """Submit a preliminary or final report."""
    return service.submit_report(
        order_id,
        findings=request.findings,
        impression=request.impression,
        final=request.final,
        has_critical_findings=request.has_critical_findings,
        indication=request.indication,
        technique=request.technique,
        comparison=request.comparison,
        recommendations=request.recommendations,
        radiologist_id=request.radiologist_id or actor_id,
        radiologist_name=request.radiologist_name,
        expected_version=request.expected_version,
    )


@router.post("/orders/{order_id}/addendum", response_model=ImagingOrder)
def add_report_addendum(
    order_id: str,
    service: Imaging,
    actor_id: RequiredActorId,
    request: ReportAddendumCreate,
) -> ImagingOrder:
    """Add an addendum to a final report."""
    return service.add_addendum(
        order_id,
        text=request.text,
        author=actor_id,
        reason=request.reason,
        expected_version=request.expected_version,
    )


@router.post("/orders/{order_id}/acknowledge-critical", response_model=ImagingOrder)
def acknowledge_critical_finding(
    order_id: str,
    service: Imaging,
    request: CriticalFindingAcknowledge | None = None,
    actor_id: ActorId = None,
) -> ImagingOrder:
    """Record that a critical finding was communicated."""
    acknowledged_by = (request.acknowledged_by if request else None) or actor_id
    if not acknowledged_by:
        raise ValidationError("acknowledged_by is required")
    return service.acknowledge_critical_finding(
        order_id,
        acknowledged_by=acknowledged_by,
        expected_version=_version(request),
    )


@router.post("/orders/{order_id}/cancel", response_model=ImagingOrder)
def cancel_order(
    order_id: str,
    service: Imaging,
    request: CancelRequest | None = None,
    actor_id: ActorId = None,
) -> ImagingOrder:
    """Cancel an order."""
    return service.cancel(
        order_id,
        reason=request.reason if request else None,
        cancelled_by=actor_id,
        expected_version=_version(request),
    )
