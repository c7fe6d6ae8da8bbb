# core/extraction_steps.py
from typing import Any, Dict, List

FieldSchema = Dict[str, Dict[str, Any]]

# Field schemas per extraction-form step (JSON-schema "properties").
STEP_SCHEMAS: Dict[int, FieldSchema] = {
    1: {
        "citation": {"type": "string", "description": "Full citation"},
        "doi": {"type": "string", "description": "DOI if found"},
        "pmid": {"type": "string", "description": "PMID if found"},
        "journal": {"type": "string", "description": "Journal name"},
        "year": {"type": "number", "description": "Publication year"},
        "country": {"type": "string", "description": "Country where study conducted"},
        "centers": {"type": "string", "description": "Single-center or multi-center"},
        "funding": {"type": "string", "description": "Funding sources"},
    },
    3: {
        "totalN": {"type": "number", "description": "Total sample size"},
        "surgicalN": {"type": "number", "description": "Surgical group size"},
        "controlN": {"type": "number", "description": "Control group size"},
        "ageMean": {"type": "number", "description": "Mean age"},
        "ageSD": {"type": "number", "description": "Age standard deviation"},
        "malePercent": {"type": "number", "description": "Percentage of males"},
    },
    4: {
        "volumeMean": {"type": "number", "description": "Mean volume in mL"},
        "location": {"type": "string", "description": "Anatomical location"},
        "laterality": {"type": "string", "description": "Left, right, bilateral"},
    },
    5: {
        "surgicalProcedures": {"type": "string", "description": "Surgical interventions"},
        "medicalManagement": {"type": "string", "description": "Medical management"},
    },
    6: {"studyArms": {"type": "array", "description": "List of study arms"}},
    7: {"mortalityTimepoints": {"type": "array", "description": "Mortality data"}},
    8: {"complications": {"type": "array", "description": "Complications data"}},
}

STEP_SECTIONS: Dict[int, List[str]] = {
    1: ["title", "abstract"],
    3: ["methods", "abstract"],
    4: ["methods", "results"],
    5: ["methods"],
    6: ["methods"],
    7: ["results"],
    8: ["results", "discussion"],
}

_DEFAULT_SECTIONS = ["abstract", "methods", "results"]


def schema_for_step(step: int) -> FieldSchema:
    return STEP_SCHEMAS.get(step, STEP_SCHEMAS[1])


def sections_for_step(step: int) -> List[str]:
    return STEP_SECTIONS.get(step, _DEFAULT_SECTIONS)
