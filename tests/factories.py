"""Builders shared across the test suite."""

from datetime import date, datetime, timedelta, timezone

from clinic_core.models.appointment import Appointment, AppointmentStatus

# Monday; every test runs against this clinic day
CLINIC_DAY = date(2025, 3, 10)


def at(hour: int, minute: int = 0, day: date = CLINIC_DAY) -> datetime:
    """UTC instant on the clinic day."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: int = 0, hours: int = 0) -> datetime:
        self.now = self.now + timedelta(minutes=minutes, hours=hours)
        return self.now


def make_appointment(
    start: datetime,
    duration: int = 30,
    provider_id: str = "PROV001",
    status: AppointmentStatus = AppointmentStatus.BOOKED,
    appointment_id: str | None = None,
) -> Appointment:
    """Build an appointment without going through the service."""
    return Appointment(
        id=appointment_id or f"apt-{start:%H%M}-{provider_id}",
        status=status,
        start=start,
        end=start + timedelta(minutes=duration),
        duration=duration,
        patient_id="PAT001",
        provider_id=provider_id,
        facility_id="fac-001",
    )
