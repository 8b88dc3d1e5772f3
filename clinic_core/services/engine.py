"""Engine facade wiring repositories and services together."""

import logging
from collections.abc import Callable
from datetime import datetime

from clinic_core.fixtures import load_facilities, load_procedures, load_templates
from clinic_core.models.appointment import Appointment
from clinic_core.models.encounter import Encounter
from clinic_core.models.imaging import ImagingOrder
from clinic_core.repository import InMemoryRepository
from clinic_core.services.appointments import AppointmentService
from clinic_core.services.directory import Directory, default_directory
from clinic_core.services.encounters import EncounterService
from clinic_core.services.imaging import ImagingOrderService
from clinic_core.services.slots import BusinessHours
from clinic_core.utils.time import utc_now

logger = logging.getLogger(__name__)


class ClinicEngine:
    """One set of repositories shared by the three lifecycle services."""

    def __init__(
        self,
        directory: Directory | None = None,
        clock: Callable[[], datetime] = utc_now,
        business_hours: BusinessHours | None = None,
    ) -> None:
        self.directory = directory if directory is not None else default_directory()
        self.clock = clock

        self.appointment_repository: InMemoryRepository[Appointment] = InMemoryRepository(
            Appointment, "appointment"
        )
        self.encounter_repository: InMemoryRepository[Encounter] = InMemoryRepository(
            Encounter, "encounter"
        )
        self.imaging_repository: InMemoryRepository[ImagingOrder] = InMemoryRepository(
            ImagingOrder, "imaging_order"
        )

        self.appointments = AppointmentService(
            self.appointment_repository,
            self.directory,
            clock=clock,
            business_hours=business_hours,
        )
        self.encounters = EncounterService(
            self.encounter_repository,
            self.directory,
            templates=load_templates(),
            appointments=self.appointment_repository,
            clock=clock,
        )
        self.imaging = ImagingOrderService(
            self.imaging_repository,
            self.directory,
            clock=clock,
            procedures=load_procedures(),
            facilities=load_facilities(),
        )

        logger.info(
            f"Clinic engine ready with {len(self.encounters.templates)} encounter templates, "
            f"{len(self.imaging.procedures)} imaging procedures"
        )
