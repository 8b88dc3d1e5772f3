"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from clinic_core.api.v1 import appointments, encounters, health, imaging
from clinic_core.schemas.common import ErrorResponse

# Engine errors documented on every domain route
ENGINE_ERROR_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Entity not found"},
    409: {"model": ErrorResponse, "description": "Invalid transition or concurrent write"},
    422: {"model": ErrorResponse, "description": "Validation error"},
}

api_router = APIRouter()

# Health check
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"],
)

# Scheduling
api_router.include_router(
    appointments.router,
    prefix="/appointments",
    tags=["appointments"],
    responses=ENGINE_ERROR_RESPONSES,
)

# Clinical documentation
api_router.include_router(
    encounters.router,
    prefix="/encounters",
    tags=["encounters"],
    responses=ENGINE_ERROR_RESPONSES,
)

# Radiology
api_router.include_router(
    imaging.router,
    prefix="/imaging",
    tags=["imaging"],
    responses=ENGINE_ERROR_RESPONSES,
)
