"""Encounter template fixtures.

Shared SOAP templates for common visit types. Applying a template only
fills section fields the clinician has left empty.
"""

from clinic_core.models.common import CodeSystem, DiagnosisRole, DiagnosisStatus
from clinic_core.models.encounter import EncounterClass, EncounterTemplate

# Default encounter templates
ENCOUNTER_TEMPLATES = [
    # =========================================================================
    # Preventive
    # =========================================================================
    {
        "id": "tmpl-001",
        "name": "Annual Physical - Adult",
        "description": "Standard template for adult wellness examination",
        "category": "Preventive",
        "encounter_class": EncounterClass.AMBULATORY,
        "subjective": {
            "chief_complaint": "Annual physical examination",
            "history_of_present_illness": "Patient presents for routine annual physical examination.",
            "review_of_systems": {
                "constitutional": "",
                "cardiovascular": "",
                "respiratory": "",
                "gastrointestinal": "",
                "neurological": "",
            },
        },
        "objective": {
            "physical_exam": {
                "general": "Well-appearing in no acute distress",
                "head": "Normocephalic, atraumatic",
                "eyes": "PERRLA, EOM intact",
                "ears": "TMs clear bilaterally",
                "throat": "Oropharynx clear",
                "neck": "Supple, no lymphadenopathy",
                "heart": "RRR, no murmurs",
                "lungs": "CTA bilaterally",
                "abdomen": "Soft, non-tender, no organomegaly",
                "extremities": "No edema",
                "neurological": "Alert and oriented x3",
            },
        },
        "plan": {
            "treatment_plan": "Continue healthy lifestyle. Age-appropriate screenings reviewed.",
            "follow_up": {"timing": "1 year", "reason": "Annual physical"},
        },
    },
    {
        "id": "tmpl-005",
        "name": "Well Child - Pediatric",
        "description": "Template for pediatric wellness visit",
        "category": "Preventive",
        "encounter_class": EncounterClass.AMBULATORY,
        "subjective": {
            "chief_complaint": "Well child visit",
            "history_of_present_illness": "Child presents for routine well child examination.",
            "social_history": "Development: ___. School performance: ___.",
        },
        "objective": {
            "physical_exam": {
                "general": "Well-appearing child, active and alert",
                "head": "Normocephalic",
                "eyes": "Red reflex present bilaterally",
                "ears": "TMs clear",
                "heart": "RRR, no murmurs",
                "lungs": "CTA",
                "abdomen": "Soft, non-tender",
                "extremities": "Full ROM, normal gait",
                "neurological": "Age-appropriate development",
            },
        },
        "plan": {
            "treatment_plan": "Age-appropriate immunizations administered. Anticipatory guidance provided.",
            "follow_up": {"timing": "Per schedule", "reason": "Well child visit"},
        },
    },
    # =========================================================================
    # Acute
    # =========================================================================
    {
        "id": "tmpl-002",
        "name": "URI - Acute Visit",
        "description": "Template for upper respiratory infection visit",
        "category": "Acute",
        "encounter_class": EncounterClass.AMBULATORY,
        "subjective": {
            "chief_complaint": "Cold symptoms",
            "history_of_present_illness": (
                "Patient presents with ___ day history of nasal congestion, sore throat, and cough."
            ),
            "review_of_systems": {"constitutional": "", "respiratory": ""},
        },
        "objective": {
            "physical_exam": {"general": "", "throat": "", "ears": "", "lungs": "", "neck": ""},
        },
        "assessment": {
            "clinical_impression": "Acute upper respiratory infection, likely viral",
            "diagnoses": [
                {
                    "code": "J06.9",
                    "code_system": CodeSystem.ICD10,
                    "description": "Acute upper respiratory infection, unspecified",
                    "role": DiagnosisRole.PRIMARY,
                    "clinical_status": DiagnosisStatus.ACTIVE,
                },
            ],
        },
        "plan": {
            "treatment_plan": "Supportive care. Push fluids, rest.",
            "follow_up": {
                "timing": "PRN",
                "reason": "If symptoms worsen or do not improve in 7-10 days",
            },
        },
    },
    # =========================================================================
    # Chronic disease
    # =========================================================================
    {
        "id": "tmpl-003",
        "name": "Diabetes Follow-up",
        "description": "Template for Type 2 DM follow-up visit",
        "category": "Chronic Disease",
        "encounter_class": EncounterClass.AMBULATORY,
        "subjective": {
            "chief_complaint": "Diabetes follow-up",
            "history_of_present_illness": (
                "Patient with Type 2 DM presents for routine follow-up. Current medications: ___."
            ),
        },
        "objective": {
            "physical_exam": {
                "general": "",
                "heart": "",
                "extremities": "Sensation intact to monofilament testing",
            },
            "lab_results": "Recent HbA1c: ___",
        },
        "plan": {
            "treatment_plan": "Continue current diabetes management.",
            "lab_orders": [
                {"test_name": "HbA1c", "indication": "Diabetes monitoring", "urgency": "routine"},
                {
                    "test_name": "Comprehensive Metabolic Panel",
                    "indication": "Kidney function monitoring",
                    "urgency": "routine",
                },
            ],
            "follow_up": {"timing": "3 months", "reason": "Diabetes management"},
        },
    },
    {
        "id": "tmpl-004",
        "name": "Hypertension Follow-up",
        "description": "Template for HTN management visit",
        "category": "Chronic Disease",
        "encounter_class": EncounterClass.AMBULATORY,
        "subjective": {
            "chief_complaint": "Blood pressure follow-up",
            "history_of_present_illness": (
                "Patient with essential hypertension presents for follow-up. "
                "Current medications: ___. Reports compliance with medications."
            ),
        },
        "objective": {
            "physical_exam": {"general": "", "heart": "", "lungs": ""},
        },
        "assessment": {
            "clinical_impression": "Essential hypertension",
            "diagnoses": [
                {
                    "code": "I10",
                    "code_system": CodeSystem.ICD10,
                    "description": "Essential (primary) hypertension",
                    "role": DiagnosisRole.PRIMARY,
                    "clinical_status": DiagnosisStatus.ACTIVE,
                },
            ],
        },
        "plan": {
            "treatment_plan": "Continue antihypertensive therapy. Lifestyle modifications reinforced.",
            "follow_up": {"timing": "3 months", "reason": "Blood pressure management"},
        },
    },
]


def load_templates() -> dict[str, EncounterTemplate]:
    """Build the template catalogue keyed by template id."""
    templates = [EncounterTemplate.model_validate(data) for data in ENCOUNTER_TEMPLATES]
    return {template.id: template for template in templates}
