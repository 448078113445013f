"""Rules for the Outputs section."""
from __future__ import annotations

from typing import Iterable

from ..constants import SECTION_OUTPUTS
from ..template import Template
from ..traversal import find_intrinsic, intrinsic_call
from .base import Match, Rule, RuleMetadata
from .registry import register_rule

VALID_OUTPUT_KEYS = ("Value", "Description", "Export", "Condition")

STRING_FUNCTIONS = frozenset(
    {
        "Ref",
        "Fn::Base64",
        "Fn::FindInMap",
        "Fn::GetAtt",
        "Fn::If",
        "Fn::ImportValue",
        "Fn::Join",
        "Fn::Select",
        "Fn::Sub",
        "Fn::ToJsonString",
    }
)


@register_rule
class OutputProperties(Rule):
    metadata = RuleMetadata(
        rule_id="E6001",
        short_description="Outputs use only valid properties",
        tags=("outputs",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, output in template.outputs.items():
            if not output.node.is_mapping:
                yield Match(f"Output '{name}' must be a mapping", (SECTION_OUTPUTS, name))
                continue
            for key in output.node.keys():
                if key not in VALID_OUTPUT_KEYS:
                    yield Match(
                        f"Output '{name}' has invalid property '{key}'. Valid properties are: "
                        f"{', '.join(VALID_OUTPUT_KEYS)}",
                        (SECTION_OUTPUTS, name, key),
                    )


@register_rule
class OutputValueRequired(Rule):
    metadata = RuleMetadata(
        rule_id="E6002",
        short_description="Outputs have a Value",
        tags=("outputs",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, output in template.outputs.items():
            if output.node.is_mapping and output.child_key("Value") is None:
                yield Match(f"Output '{name}' is missing required property 'Value'", (SECTION_OUTPUTS, name))


@register_rule
class OutputPropertyTypes(Rule):
    metadata = RuleMetadata(
        rule_id="E6003",
        short_description="Output properties have the right types",
        tags=("outputs",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, output in template.outputs.items():
            for key in ("Description", "Condition"):
                node = output.child(key)
                if node is not None and not node.is_scalar:
                    yield Match(f"Output '{name}' {key} must be a string", (SECTION_OUTPUTS, name, key))
            export = output.child("Export")
            if export is None:
                continue
            if not export.is_mapping:
                yield Match(f"Output '{name}' Export must be a mapping", (SECTION_OUTPUTS, name, "Export"))
            elif export.get("Name") is None:
                yield Match(
                    f"Output '{name}' Export is missing required property 'Name'", (SECTION_OUTPUTS, name, "Export")
                )


@register_rule
class OutputValueType(Rule):
    metadata = RuleMetadata(
        rule_id="E6101",
        short_description="Output values are strings",
        description="Output Value must be a string or a function that returns one.",
        tags=("outputs",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, output in template.outputs.items():
            if output.child_key("Value") is None:
                continue
            value = output.value
            path = (SECTION_OUTPUTS, name, "Value")
            if value is None:
                yield Match(f"Output '{name}' Value must not be null", path)
            elif isinstance(value, list):
                yield Match(f"Output '{name}' Value must be a string, got a list", path)
            elif isinstance(value, dict):
                function, _operand = intrinsic_call(value)
                if function not in STRING_FUNCTIONS:
                    label = f"function '{function}'" if function else "a mapping"
                    yield Match(f"Output '{name}' Value must be a string, got {label}", path)


@register_rule
class ImportValueInOutput(Rule):
    metadata = RuleMetadata(
        rule_id="W6001",
        short_description="Outputs do not re-export imported values",
        tags=("outputs", "functions"),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, output in template.outputs.items():
            for _operand, path in find_intrinsic(output.value, "Fn::ImportValue"):
                yield Match(
                    f"Output '{name}' uses Fn::ImportValue, which ties this stack to the exporting stack",
                    (SECTION_OUTPUTS, name, "Value") + path + ("Fn::ImportValue",),
                )
                break
