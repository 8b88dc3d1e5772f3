"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from clinic_core.api.deps import Engine

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str


class ReadinessResponse(HealthResponse):
    """Readiness response with store sizes."""

    appointments: int
    encounters: int
    imaging_orders: int


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Returns service health status",
)
async def health_check() -> HealthResponse:
    """Check if the service is healthy.

    Returns:
        Health status response
    """
    return HealthResponse(status="ok")


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Returns readiness once the engine is built",
)
def readiness_check(engine: Engine) -> ReadinessResponse:
    """Check if the engine is ready to accept requests.

    Returns:
        Readiness status with the number of stored entities
    """
    return ReadinessResponse(
        status="ok",
        appointments=len(engine.appointment_repository),
        encounters=len(engine.encounter_repository),
        imaging_orders=len(engine.imaging_repository),
    )
