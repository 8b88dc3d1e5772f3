"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from clinic_core.services.appointments import AppointmentService
from clinic_core.services.encounters import EncounterService
from clinic_core.services.engine import ClinicEngine
from clinic_core.services.imaging import ImagingOrderService


def get_engine(request: Request) -> ClinicEngine:
    """Get the engine built at application startup.

    Raises:
        HTTPException: If the application lifespan has not run
    """
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Engine not initialised",
        )
    return engine


def get_appointment_service(engine: Annotated[ClinicEngine, Depends(get_engine)]) -> AppointmentService:
    return engine.appointments


def get_encounter_service(engine: Annotated[ClinicEngine, Depends(get_engine)]) -> EncounterService:
    return engine.encounters


def get_imaging_service(engine: Annotated[ClinicEngine, Depends(get_engine)]) -> ImagingOrderService:
    return engine.imaging


# Type aliases for cleaner route signatures
Engine = Annotated[ClinicEngine, Depends(get_engine)]
Appointments = Annotated[AppointmentService, Depends(get_appointment_service)]
Encounters = Annotated[EncounterService, Depends(get_encounter_service)]
Imaging = Annotated[ImagingOrderService, Depends(get_imaging_service)]

# Acting user, as asserted by the calling system
ActorId = Annotated[str | None, Header(alias="X-Actor-Id")]
RequiredActorId = Annotated[str, Header(alias="X-Actor-Id")]
