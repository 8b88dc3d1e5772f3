"""Patient / provider / facility name lookup.

Services only need display names to snapshot onto new records, so the
directory is a narrow protocol. ``StaticDirectory`` is the in-memory
implementation used by default and in tests.
"""

from typing import Protocol


class Directory(Protocol):
    """Resolves ids to display names. Unknown ids resolve to None."""

    def patient_name(self, patient_id: str) -> str | None: ...

    def provider_name(self, provider_id: str) -> str | None: ...

    def facility_name(self, facility_id: str) -> str | None: ...


class StaticDirectory:
    """Directory backed by plain dicts."""

    def __init__(
        self,
        patients: dict[str, str] | None = None,
        providers: dict[str, str] | None = None,
        facilities: dict[str, str] | None = None,
    ) -> None:
        self.patients = dict(patients or {})
        self.providers = dict(providers or {})
        self.facilities = dict(facilities or {})

    def patient_name(self, patient_id: str) -> str | None:
        return self.patients.get(patient_id)

    def provider_name(self, provider_id: str) -> str | None:
        return self.providers.get(provider_id)

    def facility_name(self, facility_id: str) -> str | None:
        return self.facilities.get(facility_id)


def default_directory() -> StaticDirectory:
    """Seed directory for a demo clinic."""
    return StaticDirectory(
        patients={
            "PAT001": "John Smith",
            "PAT002": "Maria Garcia",
            "PAT003": "Robert Wilson",
            "PAT004": "Linda Brown",
            "PAT005": "James Lee",
        },
        providers={
            "PROV001": "Dr. Sarah Johnson",
            "PROV002": "Dr. Emily Chen",
            "PROV003": "Dr. Michael Chen",
            "PROV004": "Dr. Maria Garcia",
            "PROV005": "Dr. Sarah Wilson",
        },
        facilities={
            "fac-001": "Main Street Clinic",
            "fac-002": "Springfield Imaging Center",
            "fac-003": "Springfield Medical Center - Radiology",
            "fac-004": "Regional PET/CT Center",
        },
    )
