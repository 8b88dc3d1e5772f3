"""Tests for entity models and their lookup tables."""

from datetime import timedelta

import pydantic
import pytest

from clinic_core.models.appointment import (
    APPOINTMENT_STATUS_CONFIG,
    APPOINTMENT_TYPE_CONFIG,
    Appointment,
    AppointmentStatus,
    AppointmentType,
)
from clinic_core.models.common import CodeSystem, Diagnosis, is_filled
from clinic_core.models.encounter import (
    ENCOUNTER_CLASS_LABELS,
    ENCOUNTER_STATUS_CONFIG,
    Encounter,
    EncounterClass,
    EncounterStatus,
)
from clinic_core.models.imaging import (
    BODY_REGION_LABELS,
    IMAGING_STATUS_LABELS,
    MODALITY_LABELS,
    PRIORITY_LABELS,
    BodyRegion,
    ImagingModality,
    ImagingOrderStatus,
    ImagingPriority,
)

from tests.factories import at, make_appointment


class TestDisplayTables:
    """Every enum member has presentation metadata."""

    @pytest.mark.parametrize(
        "enum_cls,table",
        [
            (AppointmentStatus, APPOINTMENT_STATUS_CONFIG),
            (AppointmentType, APPOINTMENT_TYPE_CONFIG),
            (EncounterStatus, ENCOUNTER_STATUS_CONFIG),
            (EncounterClass, ENCOUNTER_CLASS_LABELS),
            (ImagingOrderStatus, IMAGING_STATUS_LABELS),
            (ImagingModality, MODALITY_LABELS),
            (ImagingPriority, PRIORITY_LABELS),
            (BodyRegion, BODY_REGION_LABELS),
        ],
    )
    def test_table_covers_enum(self, enum_cls, table) -> None:
        """Lookup tables have exactly one entry per enum member."""
        assert set(table) == set(enum_cls)

    def test_booked_displays_as_confirmed(self) -> None:
        """The booked status is presented as Confirmed."""
        assert APPOINTMENT_STATUS_CONFIG[AppointmentStatus.BOOKED].label == "Confirmed"
        assert APPOINTMENT_TYPE_CONFIG[AppointmentType.PROCEDURE].duration == 60


class TestAppointmentModel:
    """Tests for Appointment invariants."""

    def test_end_must_match_duration(self) -> None:
        """end != start + duration is rejected."""
        with pytest.raises(pydantic.ValidationError):
            Appointment(
                id="apt-x",
                start=at(9),
                end=at(9) + timedelta(minutes=20),
                duration=30,
                patient_id="PAT001",
                provider_id="PROV001",
                facility_id="fac-001",
            )

    def test_naive_times_become_utc(self) -> None:
        """Naive datetimes are treated as UTC."""
        apt = make_appointment(at(9).replace(tzinfo=None))

        assert apt.start == at(9)

    def test_overlap_is_half_open(self) -> None:
        """Touching endpoints do not overlap."""
        apt = make_appointment(at(9))

        assert apt.overlaps(at(9, 29), at(9, 45))
        assert not apt.overlaps(at(9, 30), at(10))

    def test_serialises_nested_people(self) -> None:
        """patient/provider are computed into the dump."""
        data = make_appointment(at(9)).model_dump(mode="json")

        assert data["patient"] == {"id": "PAT001", "name": ""}
        assert data["status"] == "booked"


class TestEncounterModel:
    """Tests for Encounter invariants."""

    def test_signed_must_be_finished(self) -> None:
        """A signature on an open encounter is rejected."""
        with pytest.raises(pydantic.ValidationError):
            Encounter(
                id="enc-x",
                patient_id="PAT001",
                provider_id="PROV001",
                start_time=at(9),
                signed_at=at(10),
            )

    def test_end_before_start_rejected(self) -> None:
        """end_time earlier than start_time is rejected."""
        with pytest.raises(pydantic.ValidationError):
            Encounter(
                id="enc-x",
                patient_id="PAT001",
                provider_id="PROV001",
                start_time=at(9),
                end_time=at(8, 59),
            )

    def test_duration_minutes(self) -> None:
        """Duration is derived from start and end."""
        enc = Encounter(id="enc-x", patient_id="PAT001", provider_id="PROV001", start_time=at(9))
        assert enc.duration_minutes is None

        enc.end_time = at(9, 40)
        assert enc.duration_minutes == 40


class TestCommon:
    """Tests for shared helpers."""

    def test_qualified_code(self) -> None:
        """Diagnosis codes are qualified by their coding system."""
        dx = Diagnosis(code="I10", description="Essential hypertension")

        assert dx.qualified_code == "ICD-10|I10"
        assert Diagnosis(code="38341003", code_system=CodeSystem.SNOMED, description="HTN").qualified_code == (
            "SNOMED|38341003"
        )

    @pytest.mark.parametrize(
        "value,expected",
        [(None, False), ("", False), ([], False), ({}, False), ("x", True), (0, True), (False, True)],
    )
    def test_is_filled(self, value, expected) -> None:
        """Empty strings and containers count as unfilled; scalars do not."""
        assert is_filled(value) is expected
