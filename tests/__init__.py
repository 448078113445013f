"""Test package helpers shared across cfnscan suites."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List

FINDING_REQUIRED_FIELDS: tuple[str, ...] = (
    "rule_id",
    "severity",
    "message",
    "path",
    "line",
    "column",
)


def findings_for(findings: Iterable[Any], rule_id: str) -> List[Any]:
    """Findings of one rule, in emitted order."""

    return [finding for finding in findings if finding.rule_id == rule_id]


def rule_ids(findings: Iterable[Any]) -> List[str]:
    return [finding.rule_id for finding in findings]


def canonicalize_findings(findings: Iterable[Any]) -> str:
    """Serialise findings the way consumers see them, for byte comparisons."""

    payload: List[Dict[str, Any]] = []
    for finding in findings:
        record = finding.to_dict()
        missing = [field for field in FINDING_REQUIRED_FIELDS if field not in record]
        if missing:
            raise AssertionError(f"Missing finding fields: {', '.join(missing)}")
        payload.append(record)
    return json.dumps(payload, sort_keys=True)


__all__ = ["canonicalize_findings", "findings_for", "rule_ids"]
