"""JSON Schema for the report printed by ``cfnscan lint``."""

from __future__ import annotations

from typing import Any, Dict

from .constants import RUNNER_ERROR_ID, SEVERITY_LEVELS

FINDING_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["rule_id", "severity", "message", "path", "line", "column"],
    "additionalProperties": False,
    "properties": {
        "rule_id": {
            "type": "string",
            "anyOf": [{"pattern": "^[EWI][0-9]{4}$"}, {"const": RUNNER_ERROR_ID}],
        },
        "severity": {"enum": list(SEVERITY_LEVELS)},
        "message": {"type": "string", "minLength": 1},
        "path": {"type": "array", "items": {"type": "string"}},
        "line": {"type": "integer", "minimum": 1},
        "column": {"type": "integer", "minimum": 1},
        "original_resource": {"type": "string"},
    },
}

REPORT_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "cfnscan lint report",
    "type": "array",
    "items": {
        "type": "object",
        "required": ["filename", "findings"],
        "additionalProperties": False,
        "properties": {
            "filename": {"type": "string"},
            "findings": {"type": "array", "items": FINDING_SCHEMA},
        },
    },
}
