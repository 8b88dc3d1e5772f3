"""Tests for slot availability calculation."""

import pytest

from clinic_core.core.errors import ValidationError
from clinic_core.models.appointment import AppointmentStatus
from clinic_core.services.slots import BusinessHours, compute_slots, has_conflict

from tests.factories import CLINIC_DAY, at, make_appointment


class TestComputeSlots:
    """Tests for compute_slots."""

    def test_empty_day_yields_sixteen_half_hour_slots(self) -> None:
        """8-12 and 13-17 at 30 minutes gives 8 + 8 free slots."""
        slots = compute_slots(CLINIC_DAY, "PROV001", 30, [])

        assert len(slots) == 16
        assert all(slot.is_available for slot in slots)
        assert slots[0].start == at(8)
        assert slots[7].end == at(12)
        assert slots[8].start == at(13)
        assert slots[-1].end == at(17)

    def test_slots_are_ordered_and_never_cross_lunch(self) -> None:
        """Slots ascend, and a 45 minute slot never spans 12:00."""
        slots = compute_slots(CLINIC_DAY, "PROV001", 45, [])

        starts = [slot.start for slot in slots]
        assert starts == sorted(starts)
        assert all(not (slot.start < at(12) < slot.end) for slot in slots)
        # 240 // 45 = 5 per period
        assert len(slots) == 10
        assert slots[4].end == at(11, 45)

    def test_booking_blocks_overlapping_slot(self) -> None:
        """A 09:00-09:30 booking makes only the 09:00 slot unavailable."""
        booking = make_appointment(at(9))

        slots = compute_slots(CLINIC_DAY, "PROV001", 30, [booking])

        taken = [slot.start for slot in slots if not slot.is_available]
        assert taken == [at(9)]

    def test_partial_overlap_blocks_both_slots(self) -> None:
        """A booking straddling two slots blocks both."""
        booking = make_appointment(at(9, 15), duration=30)

        slots = compute_slots(CLINIC_DAY, "PROV001", 30, [booking])

        taken = [slot.start for slot in slots if not slot.is_available]
        assert taken == [at(9), at(9, 30)]

    def test_cancelled_booking_does_not_block(self) -> None:
        """Cancelled appointments never block a slot."""
        booking = make_appointment(at(9), status=AppointmentStatus.CANCELLED)

        slots = compute_slots(CLINIC_DAY, "PROV001", 30, [booking])

        assert all(slot.is_available for slot in slots)

    def test_other_providers_bookings_ignored(self) -> None:
        """Only the requested provider's bookings are considered."""
        booking = make_appointment(at(9), provider_id="PROV002")

        slots = compute_slots(CLINIC_DAY, "PROV001", 30, [booking])

        assert all(slot.is_available for slot in slots)

    @pytest.mark.parametrize("duration", [0, -15])
    def test_non_positive_duration_rejected(self, duration: int) -> None:
        """Zero or negative durations raise ValidationError."""
        with pytest.raises(ValidationError):
            compute_slots(CLINIC_DAY, "PROV001", duration, [])

    def test_custom_business_hours(self) -> None:
        """A single morning period only produces morning slots."""
        hours = BusinessHours(periods=((9, 11),))

        slots = compute_slots(CLINIC_DAY, "PROV001", 60, [], facility_id="fac-002", business_hours=hours)

        assert [slot.start for slot in slots] == [at(9), at(10)]
        assert all(slot.facility_id == "fac-002" for slot in slots)


class TestBusinessHours:
    """Tests for BusinessHours validation."""

    def test_inverted_period_rejected(self) -> None:
        """A period ending before it starts is invalid."""
        with pytest.raises(ValidationError):
            BusinessHours(periods=((12, 8),))


class TestHasConflict:
    """Tests for has_conflict."""

    def test_touching_endpoints_do_not_conflict(self) -> None:
        """Back-to-back windows share an endpoint without overlapping."""
        booking = make_appointment(at(9))

        assert not has_conflict(at(9, 30), at(10), [booking])
        assert not has_conflict(at(8, 30), at(9), [booking])
        assert has_conflict(at(9, 29), at(10), [booking])
