"""Positioned YAML nodes produced by the template reader."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

DOCUMENT = "document"
MAPPING = "mapping"
SEQUENCE = "sequence"
SCALAR = "scalar"

_INDEX_SEGMENT = re.compile(r"^\[(\d+)\]$")


@dataclass(eq=False)
class PositionedNode:
    """A parse-tree element with its 1-indexed source position.

    Mapping children alternate key, value, key, value in source order.
    Sequence children are the items. Scalars carry the decoded ``value``;
    for mapping keys ``value`` is the key text.
    """

    kind: str
    line: int
    column: int
    value: Any = None
    children: List["PositionedNode"] = field(default_factory=list)
    end_line: int = 0
    end_column: int = 0
    tag: Optional[str] = None

    @property
    def is_mapping(self) -> bool:
        return self.kind == MAPPING

    @property
    def is_sequence(self) -> bool:
        return self.kind == SEQUENCE

    @property
    def is_scalar(self) -> bool:
        return self.kind == SCALAR

    def pairs(self) -> Iterator[Tuple["PositionedNode", "PositionedNode"]]:
        if self.kind != MAPPING:
            return
        for index in range(0, len(self.children) - 1, 2):
            yield self.children[index], self.children[index + 1]

    def keys(self) -> List[str]:
        return [str(key.value) for key, _ in self.pairs()]

    def get_pair(self, key: str) -> Optional[Tuple["PositionedNode", "PositionedNode"]]:
        for key_node, value_node in self.pairs():
            if key_node.value == key:
                return key_node, value_node
        return None

    def get(self, key: str) -> Optional["PositionedNode"]:
        pair = self.get_pair(key)
        return pair[1] if pair else None

    def to_value(self) -> Any:
        """Decode the subtree into a plain generic value."""

        if self.kind == SCALAR:
            return self.value
        if self.kind == SEQUENCE:
            return [child.to_value() for child in self.children]
        if self.kind == MAPPING:
            decoded: Dict[str, Any] = {}
            for key_node, value_node in self.pairs():
                decoded[str(key_node.value)] = value_node.to_value()
            return decoded
        if self.children:
            return self.children[0].to_value()
        return None

    def resolve(self, path: Sequence[str]) -> List["PositionedNode"]:
        """Follow ``path`` and return the positioned nodes visited.

        Mapping steps contribute the key node, sequence steps (``"[i]"``)
        the item. Resolution stops at the first segment that does not match.
        """

        trail: List[PositionedNode] = []
        current: PositionedNode = self
        for segment in path:
            if current.kind == DOCUMENT and current.children:
                current = current.children[0]
            if current.kind == MAPPING:
                pair = current.get_pair(segment)
                if pair is None:
                    break
                trail.append(pair[0])
                current = pair[1]
            elif current.kind == SEQUENCE:
                match = _INDEX_SEGMENT.match(segment)
                if match is None:
                    break
                index = int(match.group(1))
                if index >= len(current.children):
                    break
                current = current.children[index]
                trail.append(current)
            else:
                break
        return trail

    def contains_position(self, line: int, column: int) -> bool:
        start = (self.line, self.column)
        end = (self.end_line or self.line, self.end_column or self.column)
        return start <= (line, column) <= end
