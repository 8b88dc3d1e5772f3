"""Tests for the appointment lifecycle service."""

import logging

import pytest

from clinic_core.core.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    SlotNotAvailableError,
    ValidationError,
)
from clinic_core.models.appointment import AppointmentStatus, AppointmentType
from clinic_core.services.appointments import AppointmentAction, transition

from tests.factories import CLINIC_DAY, at


@pytest.fixture
def booked(appointment_service):
    """A 09:00 routine visit with PROV001."""
    return appointment_service.create_appointment(
        patient_id="PAT001",
        provider_id="PROV001",
        start=at(9),
        duration=30,
        reason_description="Annual check",
    )


class TestTransitionTable:
    """Tests for the transition() guard."""

    def test_front_desk_path(self) -> None:
        """booked -> arrived -> checked-in -> in-progress -> fulfilled."""
        status = AppointmentStatus.BOOKED
        for action, expected in [
            (AppointmentAction.MARK_ARRIVED, AppointmentStatus.ARRIVED),
            (AppointmentAction.CHECK_IN, AppointmentStatus.CHECKED_IN),
            (AppointmentAction.START_ENCOUNTER, AppointmentStatus.IN_PROGRESS),
            (AppointmentAction.COMPLETE, AppointmentStatus.FULFILLED),
        ]:
            status = transition(status, action)
            assert status == expected

    @pytest.mark.parametrize(
        "status",
        [AppointmentStatus.FULFILLED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW],
    )
    def test_terminal_statuses_accept_nothing(self, status: AppointmentStatus) -> None:
        """No action is allowed from a terminal status."""
        for action in AppointmentAction:
            with pytest.raises(InvalidTransitionError):
                transition(status, action)

    def test_reminder_keeps_status(self) -> None:
        """send_reminder does not change the status."""
        assert transition(AppointmentStatus.PENDING, AppointmentAction.SEND_REMINDER) == AppointmentStatus.PENDING


class TestCreateAppointment:
    """Tests for booking."""

    def test_snapshot_names_and_version(self, booked) -> None:
        """Names come from the directory; end is start + duration."""
        assert booked.version == 1
        assert booked.status == AppointmentStatus.BOOKED
        assert booked.patient_name == "John Smith"
        assert booked.provider_name == "Dr. Sarah Johnson"
        assert booked.facility_name == "Main Street Clinic"
        assert booked.end == at(9, 30)
        assert booked.patient.name == "John Smith"

    def test_duration_defaults_from_type(self, appointment_service) -> None:
        """A new-patient visit without a duration takes 45 minutes."""
        apt = appointment_service.create_appointment(
            patient_id="PAT002",
            provider_id="PROV001",
            start=at(13),
            appointment_type=AppointmentType.NEW_PATIENT,
        )

        assert apt.duration == 45
        assert apt.end == at(13, 45)

    def test_unknown_ids_get_empty_names(self, appointment_service) -> None:
        """Ids missing from the directory are stored with empty names."""
        apt = appointment_service.create_appointment(patient_id="PAT999", provider_id="PROV001", start=at(10))

        assert apt.patient_name == ""

    def test_overlap_rejected(self, appointment_service, booked) -> None:
        """A second booking inside the same window is refused."""
        with pytest.raises(SlotNotAvailableError) as exc_info:
            appointment_service.create_appointment(
                patient_id="PAT002", provider_id="PROV001", start=at(9, 15), duration=30
            )

        assert exc_info.value.status_code == 409
        assert len(appointment_service.repository) == 1

    def test_back_to_back_allowed(self, appointment_service, booked) -> None:
        """A booking starting at the previous end does not overlap."""
        apt = appointment_service.create_appointment(
            patient_id="PAT002", provider_id="PROV001", start=at(9, 30), duration=30
        )

        assert apt.start == booked.end

    def test_other_provider_same_time_allowed(self, appointment_service, booked) -> None:
        """Overlap is per provider."""
        apt = appointment_service.create_appointment(
            patient_id="PAT002", provider_id="PROV002", start=at(9), duration=30
        )

        assert apt.provider_name == "Dr. Emily Chen"

    def test_cancelled_booking_frees_slot(self, appointment_service, booked) -> None:
        """Once cancelled, the window can be booked again."""
        appointment_service.cancel(booked.id, reason="Patient request")

        apt = appointment_service.create_appointment(patient_id="PAT002", provider_id="PROV001", start=at(9))

        assert apt.status == AppointmentStatus.BOOKED

    @pytest.mark.parametrize("duration", [0, -30])
    def test_non_positive_duration_rejected(self, appointment_service, duration: int) -> None:
        """Zero or negative duration is a ValidationError."""
        with pytest.raises(ValidationError):
            appointment_service.create_appointment(
                patient_id="PAT001", provider_id="PROV001", start=at(9), duration=duration
            )

    def test_cannot_create_in_progress(self, appointment_service) -> None:
        """New appointments start proposed, pending or booked."""
        with pytest.raises(ValidationError):
            appointment_service.create_appointment(
                patient_id="PAT001",
                provider_id="PROV001",
                start=at(9),
                status=AppointmentStatus.IN_PROGRESS,
            )

    def test_creation_is_audited(self, appointment_service, caplog) -> None:
        """Booking writes an audit line."""
        with caplog.at_level(logging.INFO, logger="audit"):
            apt = appointment_service.create_appointment(patient_id="PAT001", provider_id="PROV001", start=at(10))

        assert any(
            "action=appointment.created" in record.getMessage() and apt.id in record.getMessage()
            for record in caplog.records
        )


class TestLifecycle:
    """Tests for the front-desk workflow."""

    def test_full_visit(self, appointment_service, booked, clock) -> None:
        """Check-in through completion stamps the relevant fields."""
        clock.advance(hours=1, minutes=50)
        arrived = appointment_service.mark_arrived(booked.id, actor_id="FD01")
        assert arrived.status == AppointmentStatus.ARRIVED
        assert arrived.arrived_at == at(8, 50)

        clock.advance(minutes=5)
        checked_in = appointment_service.check_in(booked.id, checked_in_by="FD01")
        assert checked_in.status == AppointmentStatus.CHECKED_IN
        assert checked_in.checked_in_at == at(8, 55)
        assert checked_in.arrived_at == at(8, 50)
        assert checked_in.checked_in_by == "FD01"

        started = appointment_service.start_encounter(booked.id)
        assert started.status == AppointmentStatus.IN_PROGRESS

        done = appointment_service.complete(booked.id)
        assert done.status == AppointmentStatus.FULFILLED
        assert done.version == 5

    def test_check_in_without_arrival_sets_arrived_at(self, appointment_service, booked, clock) -> None:
        """Checking in straight from booked also records the arrival time."""
        checked_in = appointment_service.check_in(booked.id)

        assert checked_in.arrived_at == clock()
        assert checked_in.checked_in_at == clock()

    def test_confirm_pending(self, appointment_service) -> None:
        """A pending appointment becomes booked on confirmation."""
        apt = appointment_service.create_appointment(
            patient_id="PAT001",
            provider_id="PROV001",
            start=at(10),
            status=AppointmentStatus.PENDING,
        )

        confirmed = appointment_service.confirm(apt.id, confirmed_by="PAT001")

        assert confirmed.status == AppointmentStatus.BOOKED
        assert confirmed.confirmed_by == "PAT001"

    def test_cancel_records_reason(self, appointment_service, booked) -> None:
        """Cancellation stores who, when and why."""
        cancelled = appointment_service.cancel(booked.id, reason="Feeling better", cancelled_by="PAT001")

        assert cancelled.status == AppointmentStatus.CANCELLED
        assert cancelled.cancellation_reason == "Feeling better"
        assert cancelled.cancelled_by == "PAT001"
        assert cancelled.cancelled_at is not None

    def test_cancel_twice_rejected(self, appointment_service, booked) -> None:
        """A cancelled appointment cannot be cancelled again."""
        appointment_service.cancel(booked.id)

        with pytest.raises(InvalidTransitionError):
            appointment_service.cancel(booked.id)

    def test_complete_requires_in_progress(self, appointment_service, booked, caplog) -> None:
        """Completing a booked appointment is rejected and logged."""
        with caplog.at_level(logging.WARNING):
            with pytest.raises(InvalidTransitionError) as exc_info:
                appointment_service.complete(booked.id)

        assert exc_info.value.current == "booked"
        assert appointment_service.get_appointment(booked.id).version == 1
        assert any("Rejected complete" in record.getMessage() for record in caplog.records)

    def test_no_show(self, appointment_service, booked) -> None:
        """mark_no_show is terminal."""
        no_show = appointment_service.mark_no_show(booked.id)

        assert no_show.status == AppointmentStatus.NO_SHOW
        assert no_show.is_terminal

    def test_send_reminder(self, appointment_service, booked, clock) -> None:
        """A reminder flags the appointment without changing its status."""
        reminded = appointment_service.send_reminder(booked.id)

        assert reminded.status == AppointmentStatus.BOOKED
        assert reminded.reminder_sent is True
        assert reminded.reminder_sent_at == clock()
        assert reminded.version == 2

    def test_stale_version_rejected(self, appointment_service, booked) -> None:
        """An action carrying an old version loses."""
        appointment_service.send_reminder(booked.id)

        with pytest.raises(ConflictError):
            appointment_service.cancel(booked.id, expected_version=1)

    def test_unknown_id(self, appointment_service) -> None:
        """Actions on unknown ids raise NotFoundError."""
        with pytest.raises(NotFoundError):
            appointment_service.check_in("apt-missing")


class TestUpdateAppointment:
    """Tests for rescheduling and edits."""

    def test_reschedule_recomputes_end(self, appointment_service, booked) -> None:
        """Moving the start moves the end."""
        updated = appointment_service.update_appointment(booked.id, {"start": at(10), "duration": 45})

        assert updated.start == at(10)
        assert updated.end == at(10, 45)
        assert updated.version == 2

    def test_reschedule_within_own_window_allowed(self, appointment_service, booked) -> None:
        """An appointment does not conflict with itself."""
        updated = appointment_service.update_appointment(booked.id, {"start": at(9, 15)})

        assert updated.end == at(9, 45)

    def test_reschedule_into_taken_slot_rejected(self, appointment_service, booked) -> None:
        """Moving onto another booking is refused and nothing changes."""
        other = appointment_service.create_appointment(patient_id="PAT002", provider_id="PROV001", start=at(11))

        with pytest.raises(SlotNotAvailableError):
            appointment_service.update_appointment(other.id, {"start": at(9, 10)})

        assert appointment_service.get_appointment(other.id).start == at(11)

    def test_terminal_appointment_not_updatable(self, appointment_service, booked) -> None:
        """Edits to a cancelled appointment are rejected."""
        appointment_service.cancel(booked.id)

        with pytest.raises(InvalidTransitionError) as exc_info:
            appointment_service.update_appointment(booked.id, {"notes": "too late"})

        assert exc_info.value.action == "update"

    def test_unknown_field_rejected(self, appointment_service, booked) -> None:
        """Only whitelisted fields may be changed."""
        with pytest.raises(ValidationError):
            appointment_service.update_appointment(booked.id, {"status": AppointmentStatus.FULFILLED})

    def test_facility_change_refreshes_name(self, appointment_service, booked) -> None:
        """Changing the facility re-reads its display name."""
        updated = appointment_service.update_appointment(booked.id, {"facility_id": "fac-002"})

        assert updated.facility_name == "Springfield Imaging Center"


class TestQueries:
    """Tests for search, schedules and slots."""

    def test_search_filters_and_pages(self, appointment_service) -> None:
        """Status filter and paging work together."""
        for hour in (8, 9, 10, 11):
            appointment_service.create_appointment(patient_id="PAT001", provider_id="PROV001", start=at(hour))
        first = appointment_service.search_appointments(page_size=3)
        cancelled = appointment_service.cancel(first.items[0].id)

        page = appointment_service.search_appointments(status=[AppointmentStatus.BOOKED], page=1, page_size=2)

        assert page.total == 3
        assert [a.start for a in page.items] == [at(9), at(10)]
        assert cancelled.id not in {a.id for a in page.items}

    def test_search_text(self, appointment_service, booked) -> None:
        """Free text matches patient name and reason."""
        appointment_service.create_appointment(patient_id="PAT002", provider_id="PROV002", start=at(9))

        assert appointment_service.search_appointments(search_text="maria").total == 1
        assert appointment_service.search_appointments(search_text="annual").total == 1

    def test_unsortable_field_rejected(self, appointment_service) -> None:
        """Sorting is limited to known fields."""
        with pytest.raises(ValidationError):
            appointment_service.search_appointments(sort_by="notes")

    def test_provider_schedule_is_ordered(self, appointment_service) -> None:
        """The day schedule is sorted by start time."""
        for hour in (14, 9, 11):
            appointment_service.create_appointment(patient_id="PAT001", provider_id="PROV001", start=at(hour))

        schedule = appointment_service.get_provider_schedule("PROV001", CLINIC_DAY)

        assert [a.start for a in schedule] == [at(9), at(11), at(14)]

    def test_patient_appointments_most_recent_first(self, appointment_service) -> None:
        """Patient history is newest first."""
        for hour in (9, 14):
            appointment_service.create_appointment(patient_id="PAT002", provider_id="PROV001", start=at(hour))

        history = appointment_service.get_patient_appointments("PAT002")

        assert [a.start for a in history] == [at(14), at(9)]

    def test_available_slots_reflect_bookings(self, appointment_service, booked) -> None:
        """The 09:00 slot is taken; the rest of the day is free."""
        slots = appointment_service.get_available_slots(CLINIC_DAY, "PROV001", duration=30)

        assert len(slots) == 16
        assert [s.start for s in slots if not s.is_available] == [at(9)]
