"""Imaging order lifecycle service.

Handles order workflow: submit/schedule/start/complete, radiology
reporting (preliminary, final, addenda) and the critical-finding
acknowledgment, which is tracked on the report independently of the
order status.
"""

import logging
import uuid
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from clinic_core.core.config import settings
from clinic_core.core.errors import InvalidTransitionError, NotFoundError, ValidationError
from clinic_core.core.logging import audit_logger
from clinic_core.models.common import DiagnosisCode, new_id
from clinic_core.models.imaging import (
    BodyRegion,
    ContrastType,
    ImagingCategory,
    ImagingFacility,
    ImagingModality,
    ImagingOrder,
    ImagingOrderStatus,
    ImagingPriority,
    ImagingProcedure,
    ImagingReport,
    Laterality,
    ReportAddendum,
    ReportStatus,
    SafetyScreening,
)
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
from clinic_core.utils.time import ensure_aware, utc_now

logger = logging.getLogger(__name__)


class ImagingAction(str, Enum):
    """Actions that can be applied to an imaging order."""

    SUBMIT = "submit"
    SCHEDULE = "schedule"
    START = "start"
    COMPLETE = "complete"
    SUBMIT_PRELIMINARY_REPORT = "submit_preliminary_report"
    SUBMIT_FINAL_REPORT = "submit_final_report"
    ADD_ADDENDUM = "add_addendum"
    CANCEL = "cancel"
    ACKNOWLEDGE_CRITICAL_FINDING = "acknowledge_critical_finding"


NON_CANCELLABLE_STATUSES = frozenset(
    {ImagingOrderStatus.COMPLETED, ImagingOrderStatus.FINAL, ImagingOrderStatus.CANCELLED}
)

# Orders a radiologist still has to sign off
PENDING_REVIEW_STATUSES = frozenset({ImagingOrderStatus.COMPLETED, ImagingOrderStatus.PRELIMINARY})

IMAGING_TRANSITIONS: dict[ImagingAction, tuple[frozenset[ImagingOrderStatus], ImagingOrderStatus]] = {
    ImagingAction.SUBMIT: (
        frozenset({ImagingOrderStatus.DRAFT}),
        ImagingOrderStatus.PENDING,
    ),
    ImagingAction.SCHEDULE: (
        frozenset({ImagingOrderStatus.DRAFT, ImagingOrderStatus.PENDING}),
        ImagingOrderStatus.SCHEDULED,
    ),
    ImagingAction.START: (
        frozenset({ImagingOrderStatus.SCHEDULED}),
        ImagingOrderStatus.IN_PROGRESS,
    ),
    ImagingAction.COMPLETE: (
        frozenset({ImagingOrderStatus.IN_PROGRESS}),
        ImagingOrderStatus.COMPLETED,
    ),
    ImagingAction.SUBMIT_PRELIMINARY_REPORT: (
        frozenset({ImagingOrderStatus.COMPLETED}),
        ImagingOrderStatus.PRELIMINARY,
    ),
    ImagingAction.SUBMIT_FINAL_REPORT: (
        frozenset({ImagingOrderStatus.COMPLETED, ImagingOrderStatus.PRELIMINARY}),
        ImagingOrderStatus.FINAL,
    ),
    ImagingAction.ADD_ADDENDUM: (
        frozenset({ImagingOrderStatus.FINAL, ImagingOrderStatus.ADDENDUM}),
        ImagingOrderStatus.ADDENDUM,
    ),
    ImagingAction.CANCEL: (
        frozenset(ImagingOrderStatus) - NON_CANCELLABLE_STATUSES,
        ImagingOrderStatus.CANCELLED,
    ),
}

INITIAL_ORDER_STATUSES = frozenset({ImagingOrderStatus.DRAFT, ImagingOrderStatus.PENDING})

SORTABLE_FIELDS = frozenset(
    {"ordered_date", "scheduled_date", "performed_date", "reported_date", "status", "priority", "patient_name", "modality"}
)

# Clinical urgency, lowest first
PRIORITY_RANK: dict[ImagingPriority, int] = {
    ImagingPriority.ROUTINE: 0,
    ImagingPriority.URGENT: 1,
    ImagingPriority.ASAP: 2,
    ImagingPriority.STAT: 3,
}


def priority_rank(order: ImagingOrder) -> int:
    return PRIORITY_RANK[order.priority]


def transition(status: ImagingOrderStatus, action: ImagingAction) -> ImagingOrderStatus:
    """Return the status after ``action`` or raise InvalidTransitionError."""
    allowed, target = IMAGING_TRANSITIONS[action]
    if status not in allowed:
        raise InvalidTransitionError("imaging_order", status.value, action.value)
    return target


def generate_accession_number(now: datetime | None = None) -> str:
    """Generate unique accession number."""
    timestamp = (now or utc_now()).strftime("%Y%m%d")
    unique_id = uuid.uuid4().hex[:6].upper()
    return f"ACC-{timestamp}-{unique_id}"


class ImagingStatistics(BaseModel):
    """Aggregate counts over a set of imaging orders."""

    total: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    by_modality: dict[str, int] = Field(default_factory=dict)
    critical_findings: int = 0
    outstanding_critical_findings: int = 0
    pending_review: int = 0


class ImagingOrderService:
    """Service for imaging orders and their reports."""

    def __init__(
        self,
        repository: InMemoryRepository[ImagingOrder],
        directory: Directory,
        clock: Callable[[], datetime] = utc_now,
        procedures: Mapping[str, ImagingProcedure] | None = None,
        facilities: Mapping[str, ImagingFacility] | None = None,
    ) -> None:
        self.repository = repository
        self.directory = directory
        self.clock = clock
        self.procedures = dict(procedures or {})
        self.facilities = dict(facilities or {})

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------

    def list_procedures(
        self,
        modality: ImagingModality | None = None,
        body_region: BodyRegion | None = None,
        common_only: bool = False,
        search_text: str | None = None,
    ) -> list[ImagingProcedure]:
        """Orderable procedures, narrowed by modality, region and search term."""
        procedures = list(self.procedures.values())
        if modality is not None:
            procedures = [p for p in procedures if p.modality == modality]
        if body_region is not None:
            procedures = [p for p in procedures if p.body_region == body_region]
        if common_only:
            procedures = [p for p in procedures if p.is_common]
        if search_text:
            term = search_text.lower()
            procedures = [
                p
                for p in procedures
                if term in p.procedure_name.lower()
                or term in p.procedure_code.lower()
                or (p.cpt_code is not None and term in p.cpt_code.lower())
            ]
        return [p.model_copy(deep=True) for p in procedures]

    def get_procedure(self, code: str) -> ImagingProcedure:
        """Look up a procedure by catalogue code or CPT code."""
        procedure = self.procedures.get(code)
        if procedure is None:
            procedure = next((p for p in self.procedures.values() if p.cpt_code == code), None)
        if procedure is None:
            raise NotFoundError("imaging_procedure", code)
        return procedure.model_copy(deep=True)

    def list_facilities(self, modality: ImagingModality | None = None) -> list[ImagingFacility]:
        """Imaging sites, optionally only those that perform ``modality``."""
        facilities = list(self.facilities.values())
        if modality is not None:
            facilities = [f for f in facilities if f.performs(modality)]
        return [f.model_copy(deep=True) for f in facilities]

    def get_facility(self, facility_id: str) -> ImagingFacility:
        facility = self.facilities.get(facility_id)
        if facility is None:
            raise NotFoundError("imaging_facility", facility_id)
        return facility.model_copy(deep=True)

    def _resolve_procedure(
        self,
        code: str,
        modality: ImagingModality,
        body_region: BodyRegion,
        contrast_type: ContrastType | None,
    ) -> ImagingProcedure:
        try:
            procedure = self.get_procedure(code)
        except NotFoundError:
            raise ValidationError(f"Unknown procedure code '{code}'") from None
        if procedure.modality != modality:
            raise ValidationError(
                f"Procedure {procedure.procedure_code} is {procedure.modality.value}, not {modality.value}"
            )
        if procedure.body_region != body_region:
            raise ValidationError(
                f"Procedure {procedure.procedure_code} images the {procedure.body_region.value}, "
                f"not the {body_region.value}"
            )
        if contrast_type is not None and contrast_type not in procedure.contrast_options:
            raise ValidationError(
                f"Procedure {procedure.procedure_code} does not allow {contrast_type.value} contrast"
            )
        return procedure

    def _facility_for(self, facility_id: str, modality: ImagingModality) -> ImagingFacility:
        facility = self.facilities.get(facility_id)
        if facility is None:
            raise ValidationError(f"Unknown imaging facility '{facility_id}'")
        if not facility.performs(modality):
            raise ValidationError(f"{facility.name} does not perform {modality.value} studies")
        return facility

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> ImagingOrder:
        """Get imaging order by ID."""
        return self.repository.find(order_id)

    def search_orders(
        self,
        patient_id: str | None = None,
        encounter_id: str | None = None,
        modality: ImagingModality | None = None,
        status: Iterable[ImagingOrderStatus] | None = None,
        priority: ImagingPriority | None = None,
        body_region: BodyRegion | None = None,
        facility_id: str | None = None,
        ordering_provider_id: str | None = None,
        reading_radiologist_id: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        has_critical_findings: bool | None = None,
        search_text: str | None = None,
        sort_by: str = "ordered_date",
        sort_direction: str = "desc",
        page: int = 1,
        page_size: int | None = None,
    ) -> Page[ImagingOrder]:
        """Search imaging orders with filters, sorting and paging."""
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"Cannot sort imaging orders by '{sort_by}'")

        critical = None
        if has_critical_findings is not None:

            def critical(order: ImagingOrder) -> bool:
                flagged = order.report is not None and order.report.has_critical_findings
                return flagged == has_critical_findings

        predicate = all_of(
            field_equals("patient_id", patient_id),
            field_equals("encounter_id", encounter_id),
            field_equals("modality", modality),
            status_in(status),
            field_equals("priority", priority),
            field_equals("body_region", body_region),
            field_equals("performing_facility_id", facility_id),
            field_equals("ordering_provider_id", ordering_provider_id),
            field_equals("reading_radiologist_id", reading_radiologist_id),
            date_range("ordered_date", date_from, date_to),
            critical,
            text_match(
                search_text,
                [
                    lambda o: o.procedure_name,
                    lambda o: o.id,
                    lambda o: o.accession_number,
                    lambda o: o.ordering_provider_name,
                    lambda o: o.patient_name,
                ],
            ),
        )
        sort_key: str | Callable[[ImagingOrder], Any] = sort_by
        if sort_by == "priority":
            sort_key = priority_rank

        return self.repository.search(
            predicate,
            sort_key=sort_key,
            sort_direction=sort_direction,  # type: ignore[arg-type]
            page=page,
            page_size=min(page_size or settings.default_page_size, settings.max_page_size),
        )

    def get_statistics(
        self,
        patient_id: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> ImagingStatistics:
        """Counts by status and modality plus the review and safety backlog."""
        orders = self.repository.all(
            all_of(
                field_equals("patient_id", patient_id),
                date_range("ordered_date", date_from, date_to),
            )
        )
        stats = ImagingStatistics(total=len(orders))
        for order in orders:
            stats.by_status[order.status.value] = stats.by_status.get(order.status.value, 0) + 1
            stats.by_modality[order.modality.value] = stats.by_modality.get(order.modality.value, 0) + 1
            if order.report is not None and order.report.has_critical_findings:
                stats.critical_findings += 1
            if order.has_outstanding_critical_finding:
                stats.outstanding_critical_findings += 1
            if order.status in PENDING_REVIEW_STATUSES:
                stats.pending_review += 1
        return stats

    def list_outstanding_critical_findings(self) -> list[ImagingOrder]:
        """Orders with an unacknowledged critical finding, oldest report first."""
        orders = self.repository.all(lambda o: o.has_outstanding_critical_finding)
        return sorted(orders, key=lambda o: (o.reported_date or o.ordered_date, o.id))

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_order(
        self,
        patient_id: str,
        ordering_provider_id: str,
        modality: ImagingModality,
        procedure_code: str,
        body_region: BodyRegion,
        procedure_name: str = "",
        priority: ImagingPriority = ImagingPriority.ROUTINE,
        category: ImagingCategory = ImagingCategory.DIAGNOSTIC,
        laterality: Laterality | None = None,
        contrast_required: bool = False,
        contrast_type: ContrastType | None = None,
        encounter_id: str | None = None,
        reason_for_exam: str | None = None,
        clinical_history: str | None = None,
        diagnosis_codes: list[DiagnosisCode] | None = None,
        safety_screening: SafetyScreening | None = None,
        performing_facility_id: str | None = None,
        status: ImagingOrderStatus = ImagingOrderStatus.PENDING,
        created_by: str | None = None,
    ) -> ImagingOrder:
        """Place a new imaging order with a fresh accession number.

        With a procedure catalogue configured, ``procedure_code`` may be a
        catalogue code or a CPT code. It must match the order's modality
        and body region, and the catalogue name fills a blank
        ``procedure_name``.
        """
        if status not in INITIAL_ORDER_STATUSES:
            raise ValidationError(f"New imaging orders cannot start in status '{status.value}'")
        if not procedure_code:
            raise ValidationError("procedure_code is required")
        if self.procedures:
            procedure = self._resolve_procedure(procedure_code, modality, body_region, contrast_type)
            procedure_code = procedure.procedure_code
            procedure_name = procedure_name or procedure.procedure_name
        facility_name = None
        if performing_facility_id is not None and self.facilities:
            facility_name = self._facility_for(performing_facility_id, modality).name
        if contrast_type is not None and contrast_type != ContrastType.NONE and not contrast_required:
            contrast_required = True

        now = self.clock()
        existing = {o.accession_number for o in self.repository.all()}
        accession_number = generate_accession_number(now)
        while accession_number in existing:
            accession_number = generate_accession_number(now)

        order = ImagingOrder(
            id=new_id("img"),
            status=status,
            accession_number=accession_number,
            patient_id=patient_id,
            patient_name=self.directory.patient_name(patient_id) or "",
            encounter_id=encounter_id,
            modality=modality,
            procedure_code=procedure_code,
            procedure_name=procedure_name,
            body_region=body_region,
            laterality=laterality,
            priority=priority,
            category=category,
            contrast_required=contrast_required,
            contrast_type=contrast_type,
            ordering_provider_id=ordering_provider_id,
            ordering_provider_name=self.directory.provider_name(ordering_provider_id) or "",
            performing_facility_id=performing_facility_id,
            performing_facility_name=facility_name,
            reason_for_exam=reason_for_exam,
            clinical_history=clinical_history,
            diagnosis_codes=diagnosis_codes or [],
            ordered_date=now,
            safety_screening=safety_screening,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        stored = self.repository.add(order)

        audit_logger.log(
            action="imaging_order.created",
            actor_type="user",
            actor_id=created_by,
            entity_type="imaging_order",
            entity_id=stored.id,
            metadata={
                "accession_number": stored.accession_number,
                "modality": modality.value,
                "priority": priority.value,
            },
        )
        return stored

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _apply(
        self,
        order_id: str,
        action: ImagingAction,
        actor_id: str | None,
        side_effects: Callable[[ImagingOrder, datetime], None] | None = None,
        expected_version: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ImagingOrder:
        now = self.clock()
        previous: dict[str, str] = {}

        def mutate(order: ImagingOrder) -> ImagingOrder:
            previous["status"] = order.status.value
            try:
                new_status = transition(order.status, action)
            except InvalidTransitionError:
                logger.warning(
                    f"Rejected {action.value} on imaging order {order.id}: status={order.status.value}"
                )
                raise
            if side_effects is not None:
                side_effects(order, now)
            order.status = new_status
            order.updated_at = now
            order.updated_by = actor_id
            return order

        updated = self.repository.update(order_id, mutate, expected_version)

        audit_logger.log(
            action=f"imaging_order.{action.value}",
            actor_type="user",
            actor_id=actor_id,
            entity_type="imaging_order",
            entity_id=order_id,
            metadata={
                "accession_number": updated.accession_number,
                "from_status": previous.get("status"),
                "to_status": updated.status.value,
                **(metadata or {}),
            },
        )
        return updated

    def submit(
        self,
        order_id: str,
        actor_id: str | None = None,
        expected_version: int | None = None,
    ) -> ImagingOrder:
        """Release a draft order to the imaging department."""
        return self._apply(order_id, ImagingAction.SUBMIT, actor_id, expected_version=expected_version)

    def schedule(
        self,
        order_id: str,
        scheduled_date: datetime,
        facility_id: str | None = None,
        actor_id: str | None = None,
        expected_version: int | None = None,
    ) -> ImagingOrder:
        """Book the study for a date and, optionally, a facility.

        The facility must perform the order's modality.
        """
        scheduled_date = ensure_aware(scheduled_date)

        def effects(order: ImagingOrder, now: datetime) -> None:
            order.scheduled_date = scheduled_date
            if facility_id is not None:
                if self.facilities:
                    order.performing_facility_name = self._facility_for(facility_id, order.modality).name
                order.performing_facility_id = facility_id

        return self._apply(
            order_id,
            ImagingAction.SCHEDULE,
            actor_id,
            effects,
            expected_version,
            metadata={"scheduled_date": scheduled_date.isoformat(), "facility_id": facility_id},
        )

    def start(
        self,
        order_id: str,
        actor_id: str | None = None,
        expected_version: int | None = None,
    ) -> ImagingOrder:
        """Begin acquisition. Stamps the performed date."""

        def effects(order: ImagingOrder, now: datetime) -> None:
            order.performed_date = now

        return self._apply(order_id, ImagingAction.START, actor_id, effects, expected_version)

    def complete(
        self,
        order_id: str,
        actor_id: str | None = None,
        expected_version: int | None = None,
    ) -> ImagingOrder:
        """Acquisition finished; the study awaits reporting."""
        return self._apply(order_id, ImagingAction.COMPLETE, actor_id, expected_version=expected_version)

    def submit_report(
        self,
        order_id: str,
        findings: str,
        impression: str,
        final: bool = False,
        has_critical_findings: bool = False,
        indication: str | None = None,
        technique: str | None = None,
        comparison: str | None = None,
        recommendations: str | None = None,
        radiologist_id: str | None = None,
        radiologist_name: str | None = None,
        expected_version: int | None = None,
    ) -> ImagingOrder:
        """Attach a preliminary or final report.

        A final report replaces an earlier preliminary one. If the earlier
        report's critical finding was already communicated and the new
        report still flags one, the acknowledgment carries over.
        """
        action = ImagingAction.SUBMIT_FINAL_REPORT if final else ImagingAction.SUBMIT_PRELIMINARY_REPORT
        if radiologist_id and not radiologist_name:
            radiologist_name = self.directory.provider_name(radiologist_id)

        def effects(order: ImagingOrder, now: datetime) -> None:
            if order.performed_date is None:
                raise ValidationError(
                    "Cannot report on an order that has no performed study",
                    details={"order_id": order.id},
                )
            report = ImagingReport(
                report_id=new_id("rpt"),
                status=ReportStatus.FINAL if final else ReportStatus.PRELIMINARY,
                indication=indication or order.reason_for_exam,
                technique=technique,
                comparison=comparison,
                findings=findings,
                impression=impression,
                recommendations=recommendations,
                has_critical_findings=has_critical_findings,
                radiologist_id=radiologist_id,
                radiologist_name=radiologist_name,
                signed_at=now if final else None,
            )
            previous = order.report
            if has_critical_findings and previous is not None and previous.critical_finding_communicated:
                report.critical_finding_communicated = True
                report.critical_finding_communicated_to = previous.critical_finding_communicated_to
                report.critical_finding_communicated_at = previous.critical_finding_communicated_at
            order.report = report
            order.reported_date = now
            if radiologist_id:
                order.reading_radiologist_id = radiologist_id
                order.reading_radiologist_name = radiologist_name

        updated = self._apply(
            order_id,
            action,
            radiologist_id,
            effects,
            expected_version,
            metadata={"final": final, "has_critical_findings": has_critical_findings},
        )
        if updated.has_outstanding_critical_finding:
            logger.warning(
                f"Critical finding reported on imaging order {updated.id} "
                f"({updated.accession_number}); awaiting acknowledgment"
            )
        return updated

    def add_addendum(
        self,
        order_id: str,
        text: str,
        author: str,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> ImagingOrder:
        """Append an addendum to a final report."""
        if not text or not text.strip():
            raise ValidationError("Addendum text is required")

        def effects(order: ImagingOrder, now: datetime) -> None:
            if order.report is None:
                raise InvalidTransitionError(
                    "imaging_order", order.status.value, ImagingAction.ADD_ADDENDUM.value, reason="no report"
                )
            order.report.addenda.append(
                ReportAddendum(
                    addendum_id=new_id("add"),
                    author=author,
                    text=text.strip(),
                    created_at=now,
                    reason=reason,
                )
            )

        return self._apply(order_id, ImagingAction.ADD_ADDENDUM, author, effects, expected_version)

    def cancel(
        self,
        order_id: str,
        reason: str | None = None,
        cancelled_by: str | None = None,
        expected_version: int | None = None,
    ) -> ImagingOrder:
        """Cancel an order that has not been completed or finalised."""

        def effects(order: ImagingOrder, now: datetime) -> None:
            order.cancelled_at = now
            order.cancellation_reason = reason

        return self._apply(
            order_id,
            ImagingAction.CANCEL,
            cancelled_by,
            effects,
            expected_version,
            metadata={"reason": reason},
        )

    def acknowledge_critical_finding(
        self,
        order_id: str,
        acknowledged_by: str,
        expected_version: int | None = None,
    ) -> ImagingOrder:
        """Record that the critical finding was communicated.

        Repeating the call is a no-op: the first actor and time stand.
        """
        current = self.repository.find(order_id)
        self._check_acknowledgeable(current)
        if current.report is not None and current.report.critical_finding_communicated:
            logger.info(f"Critical finding on imaging order {order_id} already acknowledged")
            return current

        now = self.clock()

        def mutate(order: ImagingOrder) -> ImagingOrder:
            self._check_acknowledgeable(order)
            report = order.report
            if not report.critical_finding_communicated:
                report.critical_finding_communicated = True
                report.critical_finding_communicated_to = acknowledged_by
                report.critical_finding_communicated_at = now
                order.updated_at = now
                order.updated_by = acknowledged_by
            return order

        updated = self.repository.update(order_id, mutate, expected_version)

        audit_logger.log(
            action=f"imaging_order.{ImagingAction.ACKNOWLEDGE_CRITICAL_FINDING.value}",
            actor_type="user",
            actor_id=acknowledged_by,
            entity_type="imaging_order",
            entity_id=order_id,
            metadata={"accession_number": updated.accession_number},
        )
        return updated

    def _check_acknowledgeable(self, order: ImagingOrder) -> None:
        if order.report is None or not order.report.has_critical_findings:
            logger.warning(
                f"Rejected {ImagingAction.ACKNOWLEDGE_CRITICAL_FINDING.value} on imaging order "
                f"{order.id}: no critical finding reported"
            )
            raise InvalidTransitionError(
                "imaging_order",
                order.status.value,
                ImagingAction.ACKNOWLEDGE_CRITICAL_FINDING.value,
                reason="no critical finding reported",
            )
