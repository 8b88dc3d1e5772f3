"""Encounter lifecycle service.

Covers SOAP documentation while an encounter is open, sign-off,
cancellation and post-signature addenda. A finished encounter's
sections are never modified again.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel

from clinic_core.core.config import settings
from clinic_core.core.errors import InvalidTransitionError, NotFoundError, ValidationError
from clinic_core.core.logging import audit_logger
from clinic_core.models.common import is_filled, new_id
from clinic_core.models.encounter import (
    CLOSED_ENCOUNTER_STATUSES,
    SOAP_SECTIONS,
    Encounter,
    EncounterAddendum,
    EncounterClass,
    EncounterStatus,
    EncounterTemplate,
    SubjectiveAssessment,
    VitalSigns,
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


class EncounterAction(str, Enum):
    """Actions that can be applied to an encounter."""

    ADVANCE = "advance"
    SIGN = "sign"
    CANCEL = "cancel"
    UPDATE_SECTIONS = "update_sections"
    RECORD_VITALS = "record_vital_signs"
    APPLY_TEMPLATE = "apply_template"
    ADD_ADDENDUM = "add_addendum"


# Forward moves available while the encounter is open
ENCOUNTER_PROGRESSIONS: dict[EncounterStatus, frozenset[EncounterStatus]] = {
    EncounterStatus.PLANNED: frozenset(
        {EncounterStatus.ARRIVED, EncounterStatus.TRIAGED, EncounterStatus.IN_PROGRESS}
    ),
    EncounterStatus.ARRIVED: frozenset({EncounterStatus.TRIAGED, EncounterStatus.IN_PROGRESS}),
    EncounterStatus.TRIAGED: frozenset({EncounterStatus.IN_PROGRESS}),
    EncounterStatus.IN_PROGRESS: frozenset({EncounterStatus.ON_LEAVE}),
    EncounterStatus.ON_LEAVE: frozenset({EncounterStatus.IN_PROGRESS}),
}

OPEN_ENCOUNTER_STATUSES = frozenset(EncounterStatus) - CLOSED_ENCOUNTER_STATUSES

# action -> (allowed source statuses, target status; None keeps the status)
# ADVANCE takes its target from the caller, checked against ENCOUNTER_PROGRESSIONS
ENCOUNTER_TRANSITIONS: dict[
    EncounterAction, tuple[frozenset[EncounterStatus], EncounterStatus | None]
] = {
    EncounterAction.ADVANCE: (frozenset(ENCOUNTER_PROGRESSIONS), None),
    EncounterAction.SIGN: (OPEN_ENCOUNTER_STATUSES, EncounterStatus.FINISHED),
    EncounterAction.CANCEL: (OPEN_ENCOUNTER_STATUSES, EncounterStatus.CANCELLED),
    EncounterAction.UPDATE_SECTIONS: (OPEN_ENCOUNTER_STATUSES, None),
    EncounterAction.RECORD_VITALS: (OPEN_ENCOUNTER_STATUSES, None),
    EncounterAction.APPLY_TEMPLATE: (OPEN_ENCOUNTER_STATUSES, None),
    EncounterAction.ADD_ADDENDUM: (frozenset({EncounterStatus.FINISHED}), None),
}

SORTABLE_FIELDS = frozenset({"start_time", "status", "patient_name", "provider_name", "encounter_class", "created_at"})


def transition(
    status: EncounterStatus,
    action: EncounterAction,
    target: EncounterStatus | None = None,
) -> EncounterStatus:
    """Return the status after ``action`` or raise InvalidTransitionError.

    ``target`` is only used by ADVANCE.
    """
    allowed, next_status = ENCOUNTER_TRANSITIONS[action]
    if status not in allowed:
        raise InvalidTransitionError("encounter", status.value, action.value)
    if action == EncounterAction.ADVANCE:
        if target not in ENCOUNTER_PROGRESSIONS[status]:
            raise InvalidTransitionError(
                "encounter",
                status.value,
                action.value,
                reason=f"cannot move to '{target.value if target else None}'",
            )
        return target
    return next_status if next_status is not None else status


def calculate_bmi(height_cm: float | None, weight_kg: float | None) -> float | None:
    """Body-mass index rounded to one decimal, or None without both inputs."""
    if not height_cm or not weight_kg:
        return None
    height_m = height_cm / 100
    return round(weight_kg / (height_m * height_m), 1)


def merge_template_section(current: BaseModel | None, template: BaseModel | None) -> BaseModel | None:
    """Fill empty fields of ``current`` from ``template``.

    The merge is shallow: a field the user has filled is kept as a
    whole, including dict- and list-valued fields.
    """
    if template is None:
        return current
    if current is None:
        return template.model_copy(deep=True)
    merged = current.model_copy(deep=True)
    for field_name in type(template).model_fields:
        template_value = getattr(template, field_name)
        if is_filled(template_value) and not is_filled(getattr(merged, field_name)):
            setattr(merged, field_name, _copy_value(template_value))
    return merged


def _copy_value(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_copy(deep=True)
    if isinstance(value, list):
        return [_copy_value(v) for v in value]
    if isinstance(value, dict):
        return {k: _copy_value(v) for k, v in value.items()}
    return value


def _section_patch(name: str, data: BaseModel | Mapping[str, Any]) -> dict[str, Any]:
    model = SOAP_SECTIONS[name]
    if isinstance(data, BaseModel):
        patch = data
    else:
        patch = model.model_validate(dict(data))
    return {field_name: getattr(patch, field_name) for field_name in patch.model_fields_set}


class EncounterService:
    """Service for clinical encounter documentation and sign-off."""

    def __init__(
        self,
        repository: InMemoryRepository[Encounter],
        directory: Directory,
        templates: Mapping[str, EncounterTemplate] | None = None,
        appointments: InMemoryRepository | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.repository = repository
        self.directory = directory
        self.templates = dict(templates or {})
        self.appointments = appointments
        self.clock = clock

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_encounter(self, encounter_id: str) -> Encounter:
        """Get encounter by ID."""
        return self.repository.find(encounter_id)

    def search_encounters(
        self,
        patient_id: str | None = None,
        provider_id: str | None = None,
        status: Iterable[EncounterStatus] | None = None,
        encounter_class: Iterable[EncounterClass] | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        search_text: str | None = None,
        sort_by: str = "start_time",
        sort_direction: str = "desc",
        page: int = 1,
        page_size: int | None = None,
    ) -> Page[Encounter]:
        """Search encounters with filters, sorting and paging."""
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"Cannot sort encounters by '{sort_by}'")
        predicate = all_of(
            field_equals("patient_id", patient_id),
            field_equals("provider_id", provider_id),
            status_in(status),
            status_in(encounter_class, field_name="encounter_class"),
            date_range("start_time", start_date, end_date),
            text_match(
                search_text,
                [
                    lambda e: e.patient_name,
                    lambda e: e.provider_name,
                    lambda e: e.subjective.chief_complaint if e.subjective else None,
                    lambda e: e.assessment.clinical_impression if e.assessment else None,
                    lambda e: (
                        [d.description for d in e.assessment.diagnoses]
                        if e.assessment and e.assessment.diagnoses
                        else None
                    ),
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

    def list_templates(self, category: str | None = None) -> list[EncounterTemplate]:
        """Template catalogue, optionally filtered by category."""
        templates = sorted(self.templates.values(), key=lambda t: t.id)
        if category:
            templates = [t for t in templates if t.category == category]
        return [t.model_copy(deep=True) for t in templates]

    def get_template(self, template_id: str) -> EncounterTemplate:
        template = self.templates.get(template_id)
        if template is None:
            raise NotFoundError("encounter_template", template_id)
        return template.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_encounter(
        self,
        patient_id: str | None = None,
        provider_id: str | None = None,
        appointment_id: str | None = None,
        encounter_class: EncounterClass = EncounterClass.AMBULATORY,
        status: EncounterStatus = EncounterStatus.IN_PROGRESS,
        start_time: datetime | None = None,
        facility_id: str | None = None,
        room_id: str | None = None,
        service_type: str | None = None,
        chief_complaint: str | None = None,
        created_by: str | None = None,
    ) -> Encounter:
        """Open a new encounter.

        When ``appointment_id`` is given, patient, provider, facility and
        room are copied from the appointment unless passed explicitly.
        """
        if status in CLOSED_ENCOUNTER_STATUSES:
            raise ValidationError(f"New encounters cannot start in status '{status.value}'")

        patient_name = provider_name = None
        if appointment_id is not None:
            if self.appointments is None:
                raise ValidationError("Appointment lookup is not configured")
            appointment = self.appointments.find(appointment_id)
            patient_id = patient_id or appointment.patient_id
            provider_id = provider_id or appointment.provider_id
            facility_id = facility_id or appointment.facility_id
            room_id = room_id or appointment.room_id
            chief_complaint = chief_complaint or appointment.chief_complaint
            if patient_id == appointment.patient_id:
                patient_name = appointment.patient_name
            if provider_id == appointment.provider_id:
                provider_name = appointment.provider_name
            if appointment.is_telehealth and encounter_class == EncounterClass.AMBULATORY:
                encounter_class = EncounterClass.VIRTUAL

        if not patient_id or not provider_id:
            raise ValidationError("patient_id and provider_id are required")

        now = self.clock()
        encounter = Encounter(
            id=new_id("enc"),
            status=status,
            encounter_class=encounter_class,
            patient_id=patient_id,
            patient_name=patient_name or self.directory.patient_name(patient_id) or "",
            provider_id=provider_id,
            provider_name=provider_name or self.directory.provider_name(provider_id) or "",
            start_time=ensure_aware(start_time) if start_time else now,
            facility_id=facility_id,
            room_id=room_id,
            appointment_id=appointment_id,
            service_type=service_type,
            subjective=SubjectiveAssessment(chief_complaint=chief_complaint) if chief_complaint else None,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        stored = self.repository.add(encounter)

        audit_logger.log(
            action="encounter.created",
            actor_type="user",
            actor_id=created_by,
            entity_type="encounter",
            entity_id=stored.id,
            metadata={"patient_id": patient_id, "appointment_id": appointment_id},
        )
        return stored

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _mutate(
        self,
        encounter_id: str,
        action: EncounterAction,
        actor_id: str | None,
        change: Callable[[Encounter, datetime], None] | None = None,
        expected_version: int | None = None,
        metadata: dict[str, Any] | None = None,
        target: EncounterStatus | None = None,
    ) -> Encounter:
        now = self.clock()
        previous: dict[str, str] = {}

        def mutate(encounter: Encounter) -> Encounter:
            previous["status"] = encounter.status.value
            try:
                new_status = transition(encounter.status, action, target)
            except InvalidTransitionError:
                logger.warning(
                    f"Rejected {action.value} on encounter {encounter.id}: status={encounter.status.value}"
                )
                raise
            if change is not None:
                change(encounter, now)
            encounter.status = new_status
            encounter.updated_at = now
            encounter.updated_by = actor_id
            return encounter

        updated = self.repository.update(encounter_id, mutate, expected_version)

        audit_logger.log(
            action=f"encounter.{action.value}",
            actor_type="user",
            actor_id=actor_id,
            entity_type="encounter",
            entity_id=encounter_id,
            metadata={
                "from_status": previous.get("status"),
                "to_status": updated.status.value,
                **(metadata or {}),
            },
        )
        return updated

    def advance_status(
        self,
        encounter_id: str,
        status: EncounterStatus,
        actor_id: str | None = None,
        expected_version: int | None = None,
    ) -> Encounter:
        """Move an open encounter along planned -> arrived -> triaged -> in-progress."""
        return self._mutate(
            encounter_id,
            EncounterAction.ADVANCE,
            actor_id,
            expected_version=expected_version,
            target=status,
        )

    def update_sections(
        self,
        encounter_id: str,
        sections: Mapping[str, BaseModel | Mapping[str, Any] | None],
        additional_notes: str | None = None,
        updated_by: str | None = None,
        expected_version: int | None = None,
    ) -> Encounter:
        """Shallow-merge SOAP section edits into an open encounter.

        Only the fields present in each section payload are written.
        """
        unknown = set(sections) - set(SOAP_SECTIONS)
        if unknown:
            raise ValidationError(f"Unknown encounter sections: {', '.join(sorted(unknown))}")
        patches = {name: _section_patch(name, data) for name, data in sections.items() if data is not None}

        def change(encounter: Encounter, now: datetime) -> None:
            for name, patch in patches.items():
                current = getattr(encounter, name) or SOAP_SECTIONS[name]()
                for field_name, value in patch.items():
                    setattr(current, field_name, value)
                setattr(encounter, name, current)
            if additional_notes is not None:
                encounter.additional_notes = additional_notes

        return self._mutate(
            encounter_id,
            EncounterAction.UPDATE_SECTIONS,
            updated_by,
            change,
            expected_version,
            metadata={"sections": sorted(patches)},
        )

    def record_vital_signs(
        self,
        encounter_id: str,
        vitals: VitalSigns | Mapping[str, Any],
        recorded_by: str | None = None,
        expected_version: int | None = None,
    ) -> Encounter:
        """Store a vital-signs set, computing BMI from height and weight."""
        reading = vitals if isinstance(vitals, VitalSigns) else VitalSigns.model_validate(dict(vitals))

        def change(encounter: Encounter, now: datetime) -> None:
            stamped = reading.model_copy(deep=True)
            stamped.recorded_at = now
            stamped.recorded_by = recorded_by
            bmi = calculate_bmi(stamped.height_cm, stamped.weight_kg)
            if bmi is not None:
                stamped.bmi = bmi
            encounter.vital_signs = stamped

        return self._mutate(encounter_id, EncounterAction.RECORD_VITALS, recorded_by, change, expected_version)

    def apply_template(
        self,
        encounter_id: str,
        template_id: str,
        applied_by: str | None = None,
        expected_version: int | None = None,
    ) -> Encounter:
        """Fill empty section fields from a template."""
        template = self.get_template(template_id)

        def change(encounter: Encounter, now: datetime) -> None:
            for name in SOAP_SECTIONS:
                merged = merge_template_section(getattr(encounter, name), getattr(template, name))
                setattr(encounter, name, merged)

        return self._mutate(
            encounter_id,
            EncounterAction.APPLY_TEMPLATE,
            applied_by,
            change,
            expected_version,
            metadata={"template_id": template_id},
        )

    def sign(
        self,
        encounter_id: str,
        signed_by: str,
        attestation: str | None = None,
        expected_version: int | None = None,
    ) -> Encounter:
        """Sign the encounter. Sections are frozen from here on."""

        def change(encounter: Encounter, now: datetime) -> None:
            encounter.signed_at = now
            encounter.signed_by = signed_by
            encounter.attestation = attestation or settings.default_attestation
            if encounter.end_time is None:
                encounter.end_time = max(now, encounter.start_time)

        return self._mutate(encounter_id, EncounterAction.SIGN, signed_by, change, expected_version)

    def cancel(
        self,
        encounter_id: str,
        reason: str | None = None,
        cancelled_by: str | None = None,
        expected_version: int | None = None,
    ) -> Encounter:
        """Cancel an encounter that has not been signed."""

        def change(encounter: Encounter, now: datetime) -> None:
            encounter.cancelled_at = now
            encounter.cancellation_reason = reason
            # An encounter cancelled before its planned start ends at that start
            encounter.end_time = max(now, encounter.start_time)

        return self._mutate(
            encounter_id,
            EncounterAction.CANCEL,
            cancelled_by,
            change,
            expected_version,
            metadata={"reason": reason},
        )

    def add_addendum(
        self,
        encounter_id: str,
        author: str,
        text: str,
        expected_version: int | None = None,
    ) -> Encounter:
        """Append a dated addendum to a signed encounter."""
        if not text or not text.strip():
            raise ValidationError("Addendum text is required")

        def change(encounter: Encounter, now: datetime) -> None:
            encounter.addenda.append(
                EncounterAddendum(
                    addendum_id=new_id("add"),
                    author=author,
                    text=text.strip(),
                    created_at=now,
                )
            )

        return self._mutate(encounter_id, EncounterAction.ADD_ADDENDUM, author, change, expected_version)
