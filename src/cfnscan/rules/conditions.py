"""Rules for the Conditions section and condition functions."""
from __future__ import annotations

from typing import Iterable, Iterator, Set

from ..constants import (
    CONDITION_FUNCTIONS,
    SECTION_CONDITIONS,
    SECTION_OUTPUTS,
    SECTION_RESOURCES,
    SECTION_RULES,
)
from ..template import Template
from ..traversal import find_intrinsic, intrinsic_call, iter_condition_refs
from .base import Match, Rule, RuleMetadata, expression_scopes
from .registry import register_rule

_SCOPES = (SECTION_CONDITIONS, SECTION_RESOURCES, SECTION_OUTPUTS, SECTION_RULES)


def _scope_label(prefix) -> str:
    section, name = prefix
    return f"{section[:-1]} '{name}'"


@register_rule
class ConditionConfiguration(Rule):
    metadata = RuleMetadata(
        rule_id="E8001",
        short_description="Conditions use condition functions",
        description="Each condition must be a single condition function or a Condition reference.",
        tags=("conditions",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        allowed = ", ".join(CONDITION_FUNCTIONS)
        for name, condition in template.conditions.items():
            function, _operand = intrinsic_call(condition.expression)
            if function not in CONDITION_FUNCTIONS:
                yield Match(
                    f"Condition '{name}' must use a condition function ({allowed})",
                    (SECTION_CONDITIONS, name),
                )


@register_rule
class UndefinedCondition(Rule):
    metadata = RuleMetadata(
        rule_id="E8002",
        short_description="Referenced conditions are defined",
        description="Condition attributes, Condition functions and Fn::If must name a declared condition.",
        tags=("conditions",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for section, entities in ((SECTION_RESOURCES, template.resources), (SECTION_OUTPUTS, template.outputs)):
            for name, entity in entities.items():
                if entity.condition and not template.has_condition(entity.condition):
                    yield Match(
                        f"Condition '{entity.condition}' used by {section[:-1].lower()} '{name}' is not defined",
                        (section, name, "Condition"),
                    )

        for prefix, value in expression_scopes(template, _SCOPES):
            for condition_name, path in iter_condition_refs(value):
                if not template.has_condition(condition_name):
                    yield Match(
                        f"Condition '{condition_name}' referenced in {_scope_label(prefix)} is not defined",
                        prefix + path,
                    )


@register_rule
class EqualsArity(Rule):
    metadata = RuleMetadata(
        rule_id="E8003",
        short_description="Fn::Equals has exactly two elements",
        tags=("conditions", "functions"),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for prefix, value in expression_scopes(template, _SCOPES):
            for operand, path in find_intrinsic(value, "Fn::Equals"):
                if not isinstance(operand, list):
                    problem = "Fn::Equals must be a list of exactly 2 elements"
                elif len(operand) != 2:
                    problem = f"Fn::Equals must have exactly 2 elements, got {len(operand)}"
                else:
                    continue
                yield Match(f"{_scope_label(prefix)}: {problem}", prefix + path)


class _OperandCountRule(Rule):
    """Checks the list length of every invocation of ``function``."""

    function = ""
    minimum = 0
    maximum = 0

    def _expected(self) -> str:
        if self.minimum == self.maximum:
            return f"exactly {self.minimum}"
        return f"between {self.minimum} and {self.maximum}"

    def match(self, template: Template) -> Iterable[Match]:
        for prefix, value in expression_scopes(template, _SCOPES):
            for operand, path in find_intrinsic(value, self.function):
                if not isinstance(operand, list):
                    yield Match(
                        f"{_scope_label(prefix)}: {self.function} must be a list of {self._expected()} conditions",
                        prefix + path,
                    )
                elif not self.minimum <= len(operand) <= self.maximum:
                    yield Match(
                        f"{_scope_label(prefix)}: {self.function} must have {self._expected()} conditions, "
                        f"got {len(operand)}",
                        prefix + path,
                    )


@register_rule
class AndOperands(_OperandCountRule):
    metadata = RuleMetadata(
        rule_id="E8004",
        short_description="Fn::And has between 2 and 10 conditions",
        tags=("conditions", "functions"),
    )
    function = "Fn::And"
    minimum = 2
    maximum = 10


@register_rule
class NotOperands(_OperandCountRule):
    metadata = RuleMetadata(
        rule_id="E8005",
        short_description="Fn::Not has exactly one condition",
        tags=("conditions", "functions"),
    )
    function = "Fn::Not"
    minimum = 1
    maximum = 1


@register_rule
class OrOperands(_OperandCountRule):
    metadata = RuleMetadata(
        rule_id="E8006",
        short_description="Fn::Or has between 2 and 10 conditions",
        tags=("conditions", "functions"),
    )
    function = "Fn::Or"
    minimum = 2
    maximum = 10


@register_rule
class ConditionFunctionOperand(Rule):
    metadata = RuleMetadata(
        rule_id="E8007",
        short_description="Condition function operand is a string",
        tags=("conditions", "functions"),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, condition in template.conditions.items():
            for operand, path in find_intrinsic(condition.expression, "Condition"):
                if not isinstance(operand, str):
                    yield Match(
                        f"Condition '{name}': the Condition function must reference a condition name string",
                        (SECTION_CONDITIONS, name) + path + ("Condition",),
                    )


def _used_conditions(template: Template) -> Set[str]:
    used = {entity.condition for entity in template.resources.values() if entity.condition}
    used.update(entity.condition for entity in template.outputs.values() if entity.condition)
    for _prefix, value in expression_scopes(template, _SCOPES):
        used.update(name for name, _path in iter_condition_refs(value))
    return used


@register_rule
class UnusedCondition(Rule):
    metadata = RuleMetadata(
        rule_id="W8001",
        short_description="Conditions are used",
        description="A declared condition that nothing references has no effect.",
        tags=("conditions",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        used = _used_conditions(template)
        for name in template.conditions:
            if name not in used:
                yield Match(f"Condition '{name}' is not used", (SECTION_CONDITIONS, name))


def _is_literal(value) -> bool:
    return not isinstance(value, (dict, list))


@register_rule
class StaticEquals(Rule):
    metadata = RuleMetadata(
        rule_id="W8003",
        short_description="Fn::Equals compares at least one dynamic value",
        tags=("conditions", "functions"),
    )

    def match(self, template: Template) -> Iterator[Match]:
        for name, condition in template.conditions.items():
            for operand, path in find_intrinsic(condition.expression, "Fn::Equals"):
                if isinstance(operand, list) and len(operand) == 2 and all(map(_is_literal, operand)):
                    outcome = "true" if str(operand[0]) == str(operand[1]) else "false"
                    yield Match(
                        f"Condition '{name}': Fn::Equals compares two static values and is always {outcome}",
                        (SECTION_CONDITIONS, name) + path + ("Fn::Equals",),
                    )
