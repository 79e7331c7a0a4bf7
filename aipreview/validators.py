from __future__ import annotations
from typing import Any, Dict, List

from jsonschema import Draft202012Validator

# Model output is untrusted and partial; nothing is required, only shapes are checked.
ANALYSIS_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "overview": {"type": "string"},
        "features": {"type": "array", "items": {"type": "string"}},
        "techStack": {
            "type": "object",
            "additionalProperties": {"type": ["array", "string"]},
        },
        "timeline": {
            "type": "object",
            "properties": {
                "totalWeeks": {"type": "integer", "minimum": 0},
                "phases": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "phase": {"type": "string"},
                            "weeks": {"type": "number", "minimum": 0},
                            "deliverables": {"type": "array", "items": {"type": "string"}},
                        },
                    },
                },
            },
        },
        "budgetBreakdown": {
            "type": "object",
            "properties": {
                "total": {"type": "string"},
                "breakdown": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "category": {"type": "string"},
                            "percentage": {"type": "number", "minimum": 0, "maximum": 100},
                            "description": {"type": "string"},
                        },
                    },
                },
            },
        },
        "risks": {"type": "array", "items": {"type": "string"}},
        "recommendations": {"type": "array", "items": {"type": "string"}},
    },
}

_VALIDATOR = Draft202012Validator(ANALYSIS_SCHEMA)


def collect_errors(doc: Any) -> List[Dict[str, str]]:
    """
    Return a list of {"path": "...", "message": "..."} dicts for an analysis document.
    An empty list means the document has the expected shape.
    """
    errors: List[Dict[str, str]] = []
    for err in sorted(_VALIDATOR.iter_errors(doc), key=lambda e: [str(p) for p in e.path]):
        loc = ".".join([str(p) for p in err.path]) or "(root)"
        errors.append({"path": loc, "message": str(err.message)})
    return errors
