"""Base classes shared by all rules."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, List, Sequence, Tuple

from ..findings import Finding, make_finding, severity_for_rule_id
from ..template import Template


@dataclass(frozen=True)
class RuleMetadata:
    rule_id: str
    short_description: str
    description: str = ""
    source_url: str = ""
    tags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Match:
    """A problem reported by a rule, before it becomes a finding.

    ``line``/``column`` are optional; when left at zero the position is
    resolved from ``path`` against the template.
    """

    message: str
    path: Sequence[str] = field(default_factory=tuple)
    line: int = 0
    column: int = 0


class Rule:
    """Minimal interface all rules must satisfy."""

    # Subclasses should override this attribute
    metadata: RuleMetadata

    @property
    def id(self) -> str:
        return self.metadata.rule_id

    @property
    def short_description(self) -> str:
        return self.metadata.short_description

    @property
    def description(self) -> str:
        return self.metadata.description or self.metadata.short_description

    @property
    def source_url(self) -> str:
        return self.metadata.source_url

    @property
    def tags(self) -> List[str]:
        return list(self.metadata.tags)

    @property
    def severity(self) -> str:
        return severity_for_rule_id(self.id)

    def match(self, template: Template) -> Iterable[Match]:  # pragma: no cover - abstract
        raise NotImplementedError

    def evaluate(self, template: Template) -> List[Finding]:
        findings: List[Finding] = []
        for match in self.match(template):
            line, column = match.line, match.column
            if not line:
                line, column = template.locate(match.path)
            findings.append(make_finding(self.id, match.message, match.path, line, column))
        return findings

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


def expression_scopes(template: Template, sections: Sequence[str]) -> Iterator[Tuple[Tuple[str, ...], Any]]:
    """Yield ``(path prefix, generic value)`` for every entity in ``sections``."""

    for section in sections:
        node = template.section_node(section)
        if node is None:
            continue
        for key_node, value_node in node.pairs():
            yield (section, str(key_node.value)), value_node.to_value()
