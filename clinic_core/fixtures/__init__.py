"""Seed data for the clinic engine.

Contains:
- Encounter templates
- Imaging procedure and facility catalogues
"""

from clinic_core.fixtures.encounter_templates import ENCOUNTER_TEMPLATES, load_templates
from clinic_core.fixtures.imaging_catalog import (
    IMAGING_FACILITIES,
    IMAGING_PROCEDURES,
    load_facilities,
    load_procedures,
)

__all__ = [
    "ENCOUNTER_TEMPLATES",
    "IMAGING_FACILITIES",
    "IMAGING_PROCEDURES",
    "load_facilities",
    "load_procedures",
    "load_templates",
]
