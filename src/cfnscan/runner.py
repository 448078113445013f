"""Applies the rule catalog to one template."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Sequence

from .constants import RUNNER_ERROR_ID, SEVERITY_ERROR, SEVERITY_INFORMATIONAL, SEVERITY_LEVELS
from .findings import Finding, severity_rank, sort_findings
from .rules import Rule, get_rules
from .sam.sourcemap import SourceMap, map_finding
from .template import Template

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunFilters:
    """Which rules may run and which findings are kept."""

    include_ids: FrozenSet[str] = frozenset()
    exclude_ids: FrozenSet[str] = frozenset()
    include_tags: FrozenSet[str] = frozenset()
    exclude_tags: FrozenSet[str] = frozenset()
    min_severity: str = SEVERITY_INFORMATIONAL

    def __post_init__(self) -> None:
        if self.min_severity not in SEVERITY_LEVELS:
            raise ValueError(f"Unknown severity {self.min_severity!r}; expected one of {', '.join(SEVERITY_LEVELS)}")

    @classmethod
    def build(
        cls,
        include_ids: Iterable[str] = (),
        exclude_ids: Iterable[str] = (),
        include_tags: Iterable[str] = (),
        exclude_tags: Iterable[str] = (),
        min_severity: str = SEVERITY_INFORMATIONAL,
    ) -> "RunFilters":
        return cls(
            include_ids=frozenset(include_ids),
            exclude_ids=frozenset(exclude_ids),
            include_tags=frozenset(include_tags),
            exclude_tags=frozenset(exclude_tags),
            min_severity=min_severity,
        )

    def allows_rule(self, rule: Rule) -> bool:
        if not self.allows_id(rule.id):
            return False
        tags = set(rule.tags)
        if self.include_tags and not tags & self.include_tags:
            return False
        if tags & self.exclude_tags:
            return False
        return severity_rank(rule.severity) >= severity_rank(self.min_severity)

    def allows_id(self, rule_id: str) -> bool:
        if self.include_ids and rule_id not in self.include_ids:
            return False
        return rule_id not in self.exclude_ids

    def allows_finding(self, finding: Finding) -> bool:
        if finding.rule_id != RUNNER_ERROR_ID and not self.allows_id(finding.rule_id):
            return False
        return severity_rank(finding.severity) >= severity_rank(self.min_severity)


def _runner_error(rule: Rule, exc: Exception, template: Template) -> Finding:
    return Finding(
        rule_id=RUNNER_ERROR_ID,
        severity=SEVERITY_ERROR,
        message=f"{rule.id}: {type(exc).__name__}: {exc}",
        path=(),
        line=template.root.line,
        column=template.root.column,
    )


def run(
    template: Template,
    filters: Optional[RunFilters] = None,
    *,
    rules: Optional[Sequence[Rule]] = None,
    source_map: Optional[SourceMap] = None,
) -> List[Finding]:
    """Evaluate rules against ``template`` and return sorted, de-duplicated findings.

    A rule that raises is reported as a ``RUNNER_ERROR`` finding instead of
    aborting the run. When ``source_map`` is given, positions are rewritten to
    the pre-expansion template.
    """

    filters = filters or RunFilters()
    catalog = list(rules) if rules is not None else get_rules()
    findings: List[Finding] = []
    skipped = 0
    for rule in catalog:
        if not filters.allows_rule(rule):
            skipped += 1
            continue
        try:
            produced = rule.evaluate(template)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Rule %s failed on %s", rule.id, template.source_filename or "<memory>", exc_info=True)
            findings.append(_runner_error(rule, exc, template))
            continue
        findings.extend(produced)

    logger.debug("Evaluated %d rules, skipped %d", len(catalog) - skipped, skipped)
    kept = [map_finding(finding, source_map) for finding in findings if filters.allows_finding(finding)]
    return sort_findings(kept)
