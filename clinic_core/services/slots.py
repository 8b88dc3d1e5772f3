"""Slot availability calculation.

Pure functions: given a day, a provider and that provider's bookings,
produce the ordered list of fixed-length windows inside business hours
and flag each one as free or taken.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from clinic_core.core.config import settings
from clinic_core.core.errors import ValidationError
from clinic_core.models.appointment import Appointment, AppointmentStatus, Slot
from clinic_core.utils.time import at_hour


@dataclass(frozen=True)
class BusinessHours:
    """Working periods of a day as (start_hour, end_hour) pairs."""

    periods: tuple[tuple[int, int], ...] = ((8, 12), (13, 17))
    tz: timezone = timezone.utc

    def __post_init__(self) -> None:
        for start_hour, end_hour in self.periods:
            if not 0 <= start_hour < end_hour <= 24:
                raise ValidationError(f"Invalid business period: {start_hour}-{end_hour}")

    @classmethod
    def from_settings(cls) -> "BusinessHours":
        return cls(periods=settings.business_periods)

    def windows(self, day: date) -> list[tuple[datetime, datetime]]:
        """Concrete [start, end) instants of each period on ``day``."""
        result = []
        for start_hour, end_hour in self.periods:
            start = at_hour(day, start_hour, self.tz)
            # 24 means midnight at the end of the day
            end = at_hour(day, 0, self.tz) + timedelta(hours=end_hour)
            result.append((start, end))
        return result


def has_conflict(start: datetime, end: datetime, existing: Iterable[Appointment]) -> bool:
    """Check if a proposed [start, end) window overlaps any live booking."""
    for apt in existing:
        if apt.status == AppointmentStatus.CANCELLED:
            continue
        if apt.overlaps(start, end):
            return True
    return False


def compute_slots(
    target_date: date,
    provider_id: str,
    duration_minutes: int,
    appointments: Iterable[Appointment],
    facility_id: str | None = None,
    business_hours: BusinessHours | None = None,
) -> list[Slot]:
    """Generate the day's slots for a provider.

    Each business period is sliced on its own, so a window never runs
    past the end of its period. Only appointments belonging to
    ``provider_id`` are considered; cancelled ones never block.
    """
    if duration_minutes <= 0:
        raise ValidationError("duration must be greater than zero")

    hours = business_hours or BusinessHours.from_settings()
    facility = facility_id or settings.default_facility_id
    duration = timedelta(minutes=duration_minutes)

    booked = [
        apt
        for apt in appointments
        if apt.provider_id == provider_id and apt.status != AppointmentStatus.CANCELLED
    ]

    slots: list[Slot] = []
    for period_start, period_end in hours.windows(target_date):
        current = period_start
        while current + duration <= period_end:
            window_end = current + duration
            slots.append(
                Slot(
                    start=current,
                    end=window_end,
                    duration=duration_minutes,
                    provider_id=provider_id,
                    facility_id=facility,
                    is_available=not has_conflict(current, window_end, booked),
                )
            )
            current = window_end

    return slots
