"""Shared building blocks for engine entities."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clinic_core.utils.time import ensure_aware, utc_now


def new_id(prefix: str) -> str:
    """Generate a prefixed entity id (e.g. ``apt-1f3c...``)."""
    return f"{prefix}-{uuid4().hex[:12]}"


class Entity(BaseModel):
    """Base class for repository-owned entities.

    ``version`` is bumped by the repository on every write and is the
    compare-and-swap token for optimistic concurrency.
    """

    model_config = ConfigDict(use_enum_values=False, populate_by_name=True)

    id: str
    version: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def _aware_timestamps(cls, value: datetime) -> datetime:
        return ensure_aware(value)


class PersonRef(BaseModel):
    """Read-time projection of a patient or provider snapshot."""

    id: str
    name: str


class CodeSystem(str, Enum):
    """Coding systems accepted for diagnosis codes."""

    ICD10 = "ICD-10"
    ICD9 = "ICD-9"
    SNOMED = "SNOMED"


class DiagnosisRole(str, Enum):
    """Role a diagnosis plays within an encounter."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    ADMITTING = "admitting"
    DISCHARGE = "discharge"
    BILLING = "billing"


class DiagnosisStatus(str, Enum):
    """Clinical status of a diagnosis."""

    ACTIVE = "active"
    RESOLVED = "resolved"
    INACTIVE = "inactive"


class Diagnosis(BaseModel):
    """Coded diagnosis attached to an encounter assessment."""

    code: str
    code_system: CodeSystem = CodeSystem.ICD10
    description: str
    role: DiagnosisRole = DiagnosisRole.PRIMARY
    clinical_status: DiagnosisStatus = DiagnosisStatus.ACTIVE
    onset_date: datetime | None = None
    resolved_date: datetime | None = None
    notes: str | None = None

    @property
    def qualified_code(self) -> str:
        """Code qualified by its coding system (``ICD-10|J06.9``)."""
        return f"{self.code_system.value}|{self.code}"


class DiagnosisCode(BaseModel):
    """Bare diagnosis code used as an imaging order indication."""

    code: str
    description: str
    code_system: CodeSystem = CodeSystem.ICD10


class StatusDisplay(BaseModel):
    """Presentation metadata for a status value."""

    label: str
    color: str
    icon: str


def is_filled(value: Any) -> bool:
    """Whether a section field holds user-entered content."""
    if value is None:
        return False
    if isinstance(value, (str, list, dict, tuple, set)):
        return len(value) > 0
    return True
