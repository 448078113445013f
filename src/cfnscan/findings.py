"""Finding record emitted by rules and the runner."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .constants import SEVERITY_BY_PREFIX, SEVERITY_ERROR, SEVERITY_LEVELS


def severity_for_rule_id(rule_id: str) -> str:
    """Severity is carried by the leading letter of the id."""

    return SEVERITY_BY_PREFIX.get(rule_id[:1], SEVERITY_ERROR)


def severity_rank(severity: str) -> int:
    return SEVERITY_LEVELS.index(severity) if severity in SEVERITY_LEVELS else len(SEVERITY_LEVELS)


@dataclass(frozen=True)
class Finding:
    rule_id: str
    severity: str
    message: str
    path: Tuple[str, ...] = ()
    line: int = 0
    column: int = 0
    original_resource: Optional[str] = None

    def sort_key(self) -> Tuple[str, int, int, Tuple[str, ...]]:
        return (self.rule_id, self.line, self.column, self.path)

    def with_position(self, line: int, column: int, original_resource: Optional[str] = None) -> "Finding":
        return replace(self, line=line, column=column, original_resource=original_resource)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "rule_id": self.rule_id,
            "severity": self.severity,
            "message": self.message,
            "path": list(self.path),
            "line": self.line,
            "column": self.column,
        }
        if self.original_resource is not None:
            payload["original_resource"] = self.original_resource
        return payload


def make_finding(
    rule_id: str,
    message: str,
    path: Sequence[str] = (),
    line: int = 0,
    column: int = 0,
) -> Finding:
    return Finding(
        rule_id=rule_id,
        severity=severity_for_rule_id(rule_id),
        message=message,
        path=tuple(str(segment) for segment in path),
        line=line,
        column=column,
    )


def sort_findings(findings: Iterable[Finding]) -> List[Finding]:
    """Deterministically order findings and drop exact duplicates."""

    ordered = sorted(findings, key=lambda finding: (finding.sort_key(), finding.message))
    return list(dict.fromkeys(ordered))
