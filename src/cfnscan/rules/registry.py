"""Process-wide registry of rule implementations."""
from __future__ import annotations

import re
from typing import Dict, List, Type

from ..errors import RuleRegistrationError
from .base import Rule, RuleMetadata

RULE_ID_PATTERN = re.compile(r"^[EWI][0-9]{4}$")


class RuleRegistry:
    """Append-only mapping from rule id to rule instance."""

    def __init__(self) -> None:
        self._rules: Dict[str, Rule] = {}

    def register(self, rule: Rule) -> None:
        rule_id = rule.metadata.rule_id
        if not RULE_ID_PATTERN.match(rule_id):
            raise RuleRegistrationError(f"Invalid rule id: {rule_id!r}")
        if rule_id in self._rules:
            raise RuleRegistrationError(f"Duplicate rule id registered: {rule_id}")
        self._rules[rule_id] = rule

    def all(self) -> List[Rule]:
        return list(self._rules.values())

    def metadata_map(self) -> Dict[str, RuleMetadata]:
        return {rule_id: rule.metadata for rule_id, rule in self._rules.items()}

    def get(self, rule_id: str) -> Rule:
        return self._rules[rule_id]

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __len__(self) -> int:
        return len(self._rules)


_registry = RuleRegistry()


def register_rule(cls: Type[Rule]) -> Type[Rule]:
    """Class decorator registering a built-in rule when its module imports."""

    rule = cls()
    if not isinstance(getattr(rule, "metadata", None), RuleMetadata):
        raise RuleRegistrationError(f"Rule {cls.__name__} must define RuleMetadata")
    _registry.register(rule)
    return cls


def get_rules() -> List[Rule]:
    return _registry.all()


def get_rule(rule_id: str) -> Rule:
    return _registry.get(rule_id)


def get_rule_metadata() -> Dict[str, RuleMetadata]:
    return _registry.metadata_map()
