"""Imaging catalogue fixtures.

Orderable procedures and the facilities that perform them. Orders are
checked against the procedure's modality and body region, and a study
can only be scheduled at a facility that has the modality.
"""

from clinic_core.models.imaging import (
    BodyRegion,
    ContrastType,
    FacilityType,
    ImagingFacility,
    ImagingModality,
    ImagingProcedure,
)

# Default procedure catalogue
IMAGING_PROCEDURES = [
    # =========================================================================
    # X-Ray
    # =========================================================================
    {
        "procedure_code": "XR-CHEST-2V",
        "procedure_name": "Chest X-Ray, 2 Views",
        "modality": ImagingModality.XRAY,
        "body_region": BodyRegion.CHEST,
        "cpt_code": "71046",
        "description": "PA and lateral chest radiograph",
        "estimated_duration": 15,
        "technical_fee": 85,
        "professional_fee": 35,
        "is_common": True,
    },
    {
        "procedure_code": "XR-SHOULDER-2V",
        "procedure_name": "Shoulder X-Ray, 2 Views",
        "modality": ImagingModality.XRAY,
        "body_region": BodyRegion.UPPER_EXTREMITY,
        "cpt_code": "73030",
        "description": "AP and axillary shoulder radiographs",
        "estimated_duration": 15,
        "technical_fee": 70,
        "professional_fee": 30,
        "is_common": False,
    },
    {
        "procedure_code": "XR-KNEE-3V",
        "procedure_name": "Knee X-Ray, 3 Views",
        "modality": ImagingModality.XRAY,
        "body_region": BodyRegion.LOWER_EXTREMITY,
        "cpt_code": "73562",
        "description": "AP, lateral, and oblique knee radiographs",
        "estimated_duration": 15,
        "technical_fee": 75,
        "professional_fee": 30,
        "is_common": True,
    },
    {
        "procedure_code": "XR-SPINE-L-4V",
        "procedure_name": "Lumbar Spine X-Ray, 4 Views",
        "modality": ImagingModality.XRAY,
        "body_region": BodyRegion.SPINE,
        "cpt_code": "72110",
        "description": "AP, lateral, and oblique lumbar spine radiographs",
        "estimated_duration": 20,
        "technical_fee": 95,
        "professional_fee": 40,
        "is_common": True,
    },
    # =========================================================================
    # CT
    # =========================================================================
    {
        "procedure_code": "CT-HEAD-WO",
        "procedure_name": "CT Head without Contrast",
        "modality": ImagingModality.CT,
        "body_region": BodyRegion.HEAD,
        "cpt_code": "70450",
        "description": "Non-contrast CT of the brain",
        "estimated_duration": 15,
        "technical_fee": 350,
        "professional_fee": 95,
        "is_common": True,
    },
    {
        "procedure_code": "CT-HEAD-W",
        "procedure_name": "CT Head with Contrast",
        "modality": ImagingModality.CT,
        "body_region": BodyRegion.HEAD,
        "cpt_code": "70460",
        "description": "CT of the brain with IV contrast",
        "contrast_options": [ContrastType.IV],
        "default_contrast": ContrastType.IV,
        "estimated_duration": 30,
        "technical_fee": 450,
        "professional_fee": 115,
        "is_common": True,
    },
    {
        "procedure_code": "CT-CHEST-WO",
        "procedure_name": "CT Chest without Contrast",
        "modality": ImagingModality.CT,
        "body_region": BodyRegion.CHEST,
        "cpt_code": "71250",
        "description": "Non-contrast CT of the chest",
        "estimated_duration": 15,
        "technical_fee": 350,
        "professional_fee": 95,
        "is_common": False,
    },
    {
        "procedure_code": "CT-CHEST-W",
        "procedure_name": "CT Chest with Contrast",
        "modality": ImagingModality.CT,
        "body_region": BodyRegion.CHEST,
        "cpt_code": "71260",
        "description": "CT of the chest with IV contrast",
        "contrast_options": [ContrastType.NONE, ContrastType.IV],
        "default_contrast": ContrastType.IV,
        "estimated_duration": 20,
        "technical_fee": 400,
        "professional_fee": 105,
        "is_common": True,
    },
    {
        "procedure_code": "CT-ABD-PEL-W",
        "procedure_name": "CT Abdomen/Pelvis with Contrast",
        "modality": ImagingModality.CT,
        "body_region": BodyRegion.ABDOMEN,
        "cpt_code": "74177",
        "description": "CT of abdomen and pelvis with IV contrast",
        "contrast_options": [ContrastType.ORAL, ContrastType.IV, ContrastType.ORAL_IV],
        "default_contrast": ContrastType.ORAL_IV,
        "requires_prep": True,
        "prep_instructions": "NPO 4 hours. Drink oral contrast 1-2 hours before exam.",
        "estimated_duration": 30,
        "technical_fee": 550,
        "professional_fee": 135,
        "is_common": True,
    },
    {
        "procedure_code": "CTA-CHEST-PE",
        "procedure_name": "CT Angiography Chest (PE Protocol)",
        "modality": ImagingModality.CT,
        "body_region": BodyRegion.CHEST,
        "cpt_code": "71275",
        "description": "CT angiography of chest for pulmonary embolism",
        "contrast_options": [ContrastType.IV],
        "default_contrast": ContrastType.IV,
        "estimated_duration": 20,
        "technical_fee": 600,
        "professional_fee": 150,
        "is_common": True,
    },
    # =========================================================================
    # MRI
    # =========================================================================
    {
        "procedure_code": "MRI-BRAIN-WO",
        "procedure_name": "MRI Brain without Contrast",
        "modality": ImagingModality.MRI,
        "body_region": BodyRegion.HEAD,
        "cpt_code": "70551",
        "description": "MRI of the brain without contrast",
        "estimated_duration": 45,
        "technical_fee": 800,
        "professional_fee": 180,
        "is_common": True,
    },
    {
        "procedure_code": "MRI-BRAIN-WWO",
        "procedure_name": "MRI Brain with and without Contrast",
        "modality": ImagingModality.MRI,
        "body_region": BodyRegion.HEAD,
        "cpt_code": "70553",
        "description": "MRI of the brain with and without contrast",
        "contrast_options": [ContrastType.IV],
        "default_contrast": ContrastType.IV,
        "estimated_duration": 60,
        "technical_fee": 1000,
        "professional_fee": 220,
        "is_common": True,
    },
    {
        "procedure_code": "MRI-SPINE-L-WO",
        "procedure_name": "MRI Lumbar Spine without Contrast",
        "modality": ImagingModality.MRI,
        "body_region": BodyRegion.SPINE,
        "cpt_code": "72148",
        "description": "MRI of lumbar spine without contrast",
        "estimated_duration": 45,
        "technical_fee": 750,
        "professional_fee": 170,
        "is_common": True,
    },
    {
        "procedure_code": "MRI-KNEE-WO",
        "procedure_name": "MRI Knee without Contrast",
        "modality": ImagingModality.MRI,
        "body_region": BodyRegion.LOWER_EXTREMITY,
        "cpt_code": "73721",
        "description": "MRI of the knee without contrast",
        "estimated_duration": 45,
        "technical_fee": 700,
        "professional_fee": 160,
        "is_common": True,
    },
    # =========================================================================
    # Ultrasound
    # =========================================================================
    {
        "procedure_code": "US-ABD-COMP",
        "procedure_name": "Ultrasound Abdomen Complete",
        "modality": ImagingModality.ULTRASOUND,
        "body_region": BodyRegion.ABDOMEN,
        "cpt_code": "76700",
        "description": "Complete abdominal ultrasound",
        "requires_prep": True,
        "prep_instructions": "NPO 8 hours before exam",
        "estimated_duration": 30,
        "technical_fee": 250,
        "professional_fee": 75,
        "is_common": True,
    },
    {
        "procedure_code": "US-THYROID",
        "procedure_name": "Ultrasound Thyroid",
        "modality": ImagingModality.ULTRASOUND,
        "body_region": BodyRegion.NECK,
        "cpt_code": "76536",
        "description": "Thyroid ultrasound with soft tissue of neck",
        "estimated_duration": 20,
        "technical_fee": 180,
        "professional_fee": 55,
        "is_common": True,
    },
    # =========================================================================
    # Mammography
    # =========================================================================
    {
        "procedure_code": "MAMMO-SCREEN-BILAT",
        "procedure_name": "Screening Mammography, Bilateral",
        "modality": ImagingModality.MAMMOGRAPHY,
        "body_region": BodyRegion.CHEST,
        "cpt_code": "77067",
        "description": "Bilateral screening mammography",
        "estimated_duration": 20,
        "technical_fee": 150,
        "professional_fee": 50,
        "is_common": True,
    },
    {
        "procedure_code": "MAMMO-DIAG-BILAT",
        "procedure_name": "Diagnostic Mammography, Bilateral",
        "modality": ImagingModality.MAMMOGRAPHY,
        "body_region": BodyRegion.CHEST,
        "cpt_code": "77066",
        "description": "Bilateral diagnostic mammography",
        "estimated_duration": 30,
        "technical_fee": 200,
        "professional_fee": 65,
        "is_common": True,
    },
]

# Imaging sites
IMAGING_FACILITIES = [
    {
        "id": "fac-001",
        "name": "Main Street Clinic",
        "facility_type": FacilityType.CLINIC,
        "address": "789 Wellness Way, Springfield, IL 62703",
        "phone": "(217) 555-0300",
        "modalities": [ImagingModality.XRAY, ImagingModality.ULTRASOUND],
        "accepts_walk_ins": True,
    },
    {
        "id": "fac-002",
        "name": "Springfield Imaging Center",
        "facility_type": FacilityType.IMAGING_CENTER,
        "address": "456 Diagnostic Blvd, Suite 200, Springfield, IL 62702",
        "phone": "(217) 555-0200",
        "modalities": [
            ImagingModality.CT,
            ImagingModality.MRI,
            ImagingModality.ULTRASOUND,
            ImagingModality.MAMMOGRAPHY,
            ImagingModality.DEXA,
        ],
        "pacs_integrated": True,
        "supports_e_orders": True,
    },
    {
        "id": "fac-003",
        "name": "Springfield Medical Center - Radiology",
        "facility_type": FacilityType.HOSPITAL,
        "address": "123 Medical Center Dr, Springfield, IL 62701",
        "phone": "(217) 555-0100",
        "modalities": [
            ImagingModality.XRAY,
            ImagingModality.CT,
            ImagingModality.MRI,
            ImagingModality.ULTRASOUND,
            ImagingModality.MAMMOGRAPHY,
            ImagingModality.FLUOROSCOPY,
            ImagingModality.NUCLEAR,
        ],
        "is_24_hour": True,
        "accepts_walk_ins": True,
        "pacs_integrated": True,
        "supports_e_orders": True,
        "is_preferred": True,
    },
    {
        "id": "fac-004",
        "name": "Regional PET/CT Center",
        "facility_type": FacilityType.IMAGING_CENTER,
        "address": "321 Oncology Center, Springfield, IL 62704",
        "phone": "(217) 555-0400",
        "modalities": [ImagingModality.PET, ImagingModality.CT, ImagingModality.NUCLEAR],
        "pacs_integrated": True,
        "supports_e_orders": True,
    },
]


def load_procedures() -> dict[str, ImagingProcedure]:
    """Build the procedure catalogue keyed by procedure code."""
    procedures = [ImagingProcedure.model_validate(data) for data in IMAGING_PROCEDURES]
    return {procedure.procedure_code: procedure for procedure in procedures}


def load_facilities() -> dict[str, ImagingFacility]:
    """Build the facility catalogue keyed by facility id."""
    facilities = [ImagingFacility.model_validate(data) for data in IMAGING_FACILITIES]
    return {facility.id: facility for facility in facilities}
