"""Source map relating expanded logical IDs to their SAM origin."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..constants import ENTITY_SECTIONS, SECTION_RESOURCES
from ..findings import Finding


@dataclass(frozen=True)
class SourceLocation:
    line: int
    column: int
    original_resource: str

    def __str__(self) -> str:
        return f"{self.original_resource} (line {self.line}, column {self.column})"


class SourceMap:
    """(section, logical ID) -> origin in the pre-expansion template.

    Sections keep their own namespaces: an Output may share its name with the
    resource it exports.
    """

    def __init__(self) -> None:
        self._locations: Dict[Tuple[str, str], SourceLocation] = {}

    def add(
        self,
        logical_id: str,
        line: int,
        column: int,
        original_resource: str,
        section: str = SECTION_RESOURCES,
    ) -> None:
        self._locations[(section, logical_id)] = SourceLocation(line, column, original_resource)

    def lookup(self, logical_id: str, section: str = SECTION_RESOURCES) -> Optional[SourceLocation]:
        return self._locations.get((section, logical_id))

    def __contains__(self, logical_id: object) -> bool:
        key = logical_id if isinstance(logical_id, tuple) else (SECTION_RESOURCES, logical_id)
        return key in self._locations

    def __len__(self) -> int:
        return len(self._locations)


def map_finding(finding: Finding, source_map: Optional[SourceMap]) -> Finding:
    """Rewrite a finding's position through ``source_map``.

    The section is the first path segment and the logical ID the one right
    after it. Without a source map, or without an origin for that entry, the
    finding is returned unchanged.
    """

    if source_map is None or len(finding.path) < 2 or finding.path[0] not in ENTITY_SECTIONS:
        return finding
    location = source_map.lookup(finding.path[1], section=finding.path[0])
    if location is None:
        return finding
    return finding.with_position(location.line, location.column, location.original_resource)
