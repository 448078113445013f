"""Rules for the Mappings section."""
from __future__ import annotations

import re
from typing import Iterable, Set

from ..constants import SECTION_MAPPINGS
from ..template import Template
from ..traversal import find_intrinsic
from .base import Match, Rule, RuleMetadata
from .registry import register_rule

_MAPPING_NAME = re.compile(r"^[a-zA-Z0-9.-]+$")


@register_rule
class MappingConfiguration(Rule):
    metadata = RuleMetadata(
        rule_id="E7001",
        short_description="Mappings are named and shaped correctly",
        description="A mapping is a non-empty two-level mapping with an alphanumeric name.",
        tags=("mappings",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, mapping in template.mappings.items():
            path = (SECTION_MAPPINGS, name)
            if not _MAPPING_NAME.match(name):
                yield Match(f"Mapping name '{name}' must contain only alphanumerics, '.' or '-'", path)
            if not mapping.node.is_mapping:
                yield Match(f"Mapping '{name}' must be a mapping", path)
                continue
            if not mapping.node.children:
                yield Match(f"Mapping '{name}' must have at least one key", path)
            for key_node, value_node in mapping.node.pairs():
                if not value_node.is_mapping:
                    yield Match(
                        f"Mapping '{name}' key '{key_node.value}' must map to a mapping",
                        path + (str(key_node.value),),
                    )


def _used_mappings(template: Template) -> Set[str]:
    used: Set[str] = set()
    for key_node, value_node in template.root.pairs():
        if key_node.value == SECTION_MAPPINGS:
            continue
        for operand, _path in find_intrinsic(value_node.to_value(), "Fn::FindInMap"):
            if isinstance(operand, list) and operand and isinstance(operand[0], str):
                used.add(operand[0])
    return used


@register_rule
class UnusedMapping(Rule):
    metadata = RuleMetadata(
        rule_id="W7001",
        short_description="Mappings are used",
        tags=("mappings",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        used = _used_mappings(template)
        for name in template.mappings:
            if name not in used:
                yield Match(f"Mapping '{name}' is not used", (SECTION_MAPPINGS, name))
