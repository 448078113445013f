"""Rules for the Parameters section."""
from __future__ import annotations

import re
from typing import Any, Iterable, Set

from ..constants import SECTION_OUTPUTS, SECTION_PARAMETERS
from ..template import Template
from ..traversal import find_intrinsic, find_refs, find_sub_variables, sub_template
from .base import Match, Rule, RuleMetadata
from .registry import register_rule

VALID_PARAMETER_KEYS = frozenset(
    {
        "Type",
        "Default",
        "AllowedPattern",
        "AllowedValues",
        "ConstraintDescription",
        "Description",
        "MaxLength",
        "MaxValue",
        "MinLength",
        "MinValue",
        "NoEcho",
    }
)

_AWS_SPECIFIC_TYPES = (
    "AWS::EC2::AvailabilityZone::Name",
    "AWS::EC2::Image::Id",
    "AWS::EC2::Instance::Id",
    "AWS::EC2::KeyPair::KeyName",
    "AWS::EC2::SecurityGroup::GroupName",
    "AWS::EC2::SecurityGroup::Id",
    "AWS::EC2::Subnet::Id",
    "AWS::EC2::Volume::Id",
    "AWS::EC2::VPC::Id",
    "AWS::Route53::HostedZone::Id",
)
_LIST_TYPES = tuple(f"List<{name}>" for name in _AWS_SPECIFIC_TYPES if name != "AWS::EC2::KeyPair::KeyName")
_SSM_VALUE_TYPES = tuple(
    f"AWS::SSM::Parameter::Value<{name}>"
    for name in ("String", "List<String>", "CommaDelimitedList") + _AWS_SPECIFIC_TYPES[:-1] + _LIST_TYPES[:-1]
)

VALID_PARAMETER_TYPES = frozenset(
    ("String", "Number", "List<Number>", "CommaDelimitedList", "AWS::SSM::Parameter::Name")
    + _AWS_SPECIFIC_TYPES
    + _LIST_TYPES
    + _SSM_VALUE_TYPES
)

_PERMISSIVE_PATTERNS = frozenset({".*", ".+", "^.*$", "^.+$"})


@register_rule
class ParameterConfiguration(Rule):
    metadata = RuleMetadata(
        rule_id="E2001",
        short_description="Parameters have a Type and only valid properties",
        tags=("parameters",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, parameter in template.parameters.items():
            if not parameter.node.is_mapping:
                yield Match(f"Parameter '{name}' must be a mapping", (SECTION_PARAMETERS, name))
                continue
            if parameter.child_key("Type") is None:
                yield Match(
                    f"Parameter '{name}' is missing required property 'Type'", (SECTION_PARAMETERS, name)
                )
            for key in parameter.node.keys():
                if key not in VALID_PARAMETER_KEYS:
                    yield Match(
                        f"Parameter '{name}' has invalid property '{key}'", (SECTION_PARAMETERS, name, key)
                    )


@register_rule
class ParameterType(Rule):
    metadata = RuleMetadata(
        rule_id="E2002",
        short_description="Parameter types are valid",
        tags=("parameters",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, parameter in template.parameters.items():
            if not parameter.type or parameter.type in VALID_PARAMETER_TYPES:
                continue
            yield Match(
                f"Parameter '{name}' has invalid type '{parameter.type}'", (SECTION_PARAMETERS, name, "Type")
            )


def _as_number(value: Any):
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@register_rule
class DefaultWithinConstraints(Rule):
    metadata = RuleMetadata(
        rule_id="E2015",
        short_description="Parameter defaults satisfy the parameter's constraints",
        tags=("parameters",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, parameter in template.parameters.items():
            default = parameter.default
            if not parameter.has_default or isinstance(default, (dict, list)) or default is None:
                continue
            path = (SECTION_PARAMETERS, name, "Default")
            text = str(default).lower() if isinstance(default, bool) else str(default)

            if parameter.allowed_values:
                allowed = {str(value) for value in parameter.allowed_values}
                is_list = parameter.type.startswith("List<") or parameter.type == "CommaDelimitedList"
                items = [item.strip() for item in text.split(",")] if is_list else [text]
                for item in items:
                    if item not in allowed:
                        yield Match(f"Parameter '{name}' default value '{item}' is not in AllowedValues", path)

            if parameter.allowed_pattern:
                try:
                    pattern = re.compile(parameter.allowed_pattern)
                except re.error:
                    pattern = None
                if pattern is not None and not pattern.fullmatch(text):
                    yield Match(
                        f"Parameter '{name}' default value '{text}' does not match AllowedPattern "
                        f"'{parameter.allowed_pattern}'",
                        path,
                    )

            if parameter.type == "Number":
                number = _as_number(default)
                if number is None:
                    yield Match(f"Parameter '{name}' default value '{text}' is not a number", path)
                else:
                    if parameter.min_value is not None and number < parameter.min_value:
                        yield Match(
                            f"Parameter '{name}' default value {text} is less than MinValue {parameter.min_value:g}",
                            path,
                        )
                    if parameter.max_value is not None and number > parameter.max_value:
                        yield Match(
                            f"Parameter '{name}' default value {text} is greater than MaxValue "
                            f"{parameter.max_value:g}",
                            path,
                        )

            if parameter.type == "String":
                if parameter.min_length is not None and len(text) < parameter.min_length:
                    yield Match(
                        f"Parameter '{name}' default value length {len(text)} is less than MinLength "
                        f"{parameter.min_length}",
                        path,
                    )
                if parameter.max_length is not None and len(text) > parameter.max_length:
                    yield Match(
                        f"Parameter '{name}' default value length {len(text)} is greater than MaxLength "
                        f"{parameter.max_length}",
                        path,
                    )


def _referenced_names(template: Template) -> Set[str]:
    """Names referenced by Ref or Fn::Sub anywhere outside the Parameters section."""

    names: Set[str] = set()
    for key_node, value_node in template.root.pairs():
        if key_node.value == SECTION_PARAMETERS:
            continue
        value = value_node.to_value()
        names.update(target for target, _path in find_refs(value))
        for operand, _path in find_intrinsic(value, "Fn::Sub"):
            text, _variables = sub_template(operand)
            names.update(find_sub_variables(text))
    return names


@register_rule
class UnusedParameter(Rule):
    metadata = RuleMetadata(
        rule_id="W2001",
        short_description="Parameters are used",
        description="A parameter that is never referenced can be removed.",
        tags=("parameters",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        referenced = _referenced_names(template)
        for name in template.parameters:
            if name not in referenced:
                yield Match(f"Parameter '{name}' is not used", (SECTION_PARAMETERS, name))


@register_rule
class NoEchoInOutputs(Rule):
    metadata = RuleMetadata(
        rule_id="W2010",
        short_description="NoEcho parameters are not exposed through outputs",
        description="Outputs are visible in the console and API; referencing a NoEcho parameter "
        "from an output value discloses it.",
        tags=("parameters", "outputs", "security"),
    )

    def match(self, template: Template) -> Iterable[Match]:
        secrets = {name for name, parameter in template.parameters.items() if parameter.no_echo}
        if not secrets:
            return
        for name, output in template.outputs.items():
            prefix = (SECTION_OUTPUTS, name, "Value")
            for target, path in find_refs(output.value):
                if target in secrets:
                    yield Match(
                        f"Output '{name}' references NoEcho parameter '{target}'", prefix + path + ("Ref",)
                    )
            for operand, path in find_intrinsic(output.value, "Fn::Sub"):
                text, variables = sub_template(operand)
                for variable in find_sub_variables(text):
                    if variable in secrets and variable not in variables:
                        yield Match(
                            f"Output '{name}' substitutes NoEcho parameter '{variable}'",
                            prefix + path + ("Fn::Sub",),
                        )


@register_rule
class AllowedPatternValid(Rule):
    metadata = RuleMetadata(
        rule_id="W2031",
        short_description="Parameter AllowedPattern is a useful regular expression",
        tags=("parameters",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, parameter in template.parameters.items():
            pattern = parameter.allowed_pattern
            if not pattern:
                continue
            path = (SECTION_PARAMETERS, name, "AllowedPattern")
            try:
                re.compile(pattern)
            except re.error as exc:
                yield Match(f"Parameter '{name}' has invalid AllowedPattern: {exc}", path)
                continue
            if pattern in _PERMISSIVE_PATTERNS:
                yield Match(
                    f"Parameter '{name}' has AllowedPattern '{pattern}' which matches almost anything",
                    path,
                )
