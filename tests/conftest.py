"""Pytest configuration and fixtures."""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from clinic_core.main import app
from clinic_core.services.directory import StaticDirectory
from clinic_core.services.engine import ClinicEngine

from tests.factories import FakeClock, at


@pytest.fixture
def clock() -> FakeClock:
    """Clock pinned to 07:00 on the clinic day."""
    return FakeClock(at(7))


@pytest.fixture
def directory() -> StaticDirectory:
    """Small directory with two patients, three providers and two facilities."""
    return StaticDirectory(
        patients={"PAT001": "John Smith", "PAT002": "Maria Garcia"},
        providers={"PROV001": "Dr. Sarah Johnson", "PROV002": "Dr. Emily Chen", "RAD001": "Dr. Alan Reyes"},
        facilities={"fac-001": "Main Street Clinic", "fac-002": "Springfield Imaging Center"},
    )


@pytest.fixture
def engine(directory: StaticDirectory, clock: FakeClock) -> ClinicEngine:
    """Fresh engine with empty repositories."""
    return ClinicEngine(directory=directory, clock=clock)


@pytest.fixture
def appointment_service(engine: ClinicEngine):
    return engine.appointments


@pytest.fixture
def encounter_service(engine: ClinicEngine):
    return engine.encounters


@pytest.fixture
def imaging_service(engine: ClinicEngine):
    return engine.imaging


@pytest.fixture(scope="function")
def client(engine: ClinicEngine) -> Generator[TestClient, None, None]:
    """Create FastAPI test client bound to the test engine."""
    app.state.engine = engine

    with TestClient(app) as test_client:
        yield test_client

    app.state.engine = None
