"""Business logic services."""

from clinic_core.services.appointments import AppointmentAction, AppointmentService
from clinic_core.services.directory import Directory, StaticDirectory, default_directory
from clinic_core.services.encounters import EncounterAction, EncounterService
from clinic_core.services.engine import ClinicEngine
from clinic_core.services.imaging import ImagingAction, ImagingOrderService, ImagingStatistics
from clinic_core.services.slots import BusinessHours, compute_slots

__all__ = [
    "AppointmentAction",
    "AppointmentService",
    "BusinessHours",
    "ClinicEngine",
    "Directory",
    "EncounterAction",
    "EncounterService",
    "ImagingAction",
    "ImagingOrderService",
    "ImagingStatistics",
    "StaticDirectory",
    "compute_slots",
    "default_directory",
]
