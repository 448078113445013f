"""Rules for the template Rules section (parameter assertions)."""
from __future__ import annotations

from typing import Iterable

from ..constants import SECTION_RULES
from ..template import Template
from .base import Match, Rule, RuleMetadata
from .registry import register_rule

VALID_RULE_KEYS = ("RuleCondition", "Assertions")
VALID_ASSERTION_KEYS = ("Assert", "AssertDescription")


@register_rule
class TemplateRuleConfiguration(Rule):
    metadata = RuleMetadata(
        rule_id="E1700",
        short_description="Template rules have Assertions and only valid properties",
        tags=("rules",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, rule in template.rules.items():
            path = (SECTION_RULES, name)
            if not rule.node.is_mapping:
                yield Match(f"Rule '{name}' must be a mapping with an Assertions property", path)
                continue
            assertions = rule.child("Assertions")
            if assertions is None:
                yield Match(f"Rule '{name}' is missing required property 'Assertions'", path)
            elif not assertions.is_sequence or not assertions.children:
                yield Match(f"Rule '{name}' Assertions must be a non-empty list", path + ("Assertions",))
            for key in rule.node.keys():
                if key not in VALID_RULE_KEYS:
                    yield Match(
                        f"Rule '{name}' has invalid property '{key}'. Valid properties are: "
                        f"{', '.join(VALID_RULE_KEYS)}",
                        path + (key,),
                    )


@register_rule
class AssertionConfiguration(Rule):
    metadata = RuleMetadata(
        rule_id="E1701",
        short_description="Rule assertions have Assert and only valid properties",
        tags=("rules",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, rule in template.rules.items():
            for index, assertion in enumerate(rule.assertions):
                path = (SECTION_RULES, name, "Assertions", f"[{index}]")
                if not assertion.node.is_mapping:
                    yield Match(f"Rule '{name}' assertion {index} must be a mapping with Assert", path)
                    continue
                if assertion.node.get("Assert") is None:
                    yield Match(f"Rule '{name}' assertion {index} is missing required property 'Assert'", path)
                for key in assertion.node.keys():
                    if key not in VALID_ASSERTION_KEYS:
                        yield Match(
                            f"Rule '{name}' assertion {index} has invalid property '{key}'", path + (key,)
                        )
