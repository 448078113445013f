"""Rules for intrinsic function usage."""
from __future__ import annotations

from typing import Any, Iterable, Set, Tuple

from ..constants import (
    KNOWN_TRANSFORMS,
    PSEUDO_PARAMETERS,
    SECTION_CONDITIONS,
    SECTION_OUTPUTS,
    SECTION_RESOURCES,
)
from ..template import Template
from ..traversal import find_intrinsic, find_refs, find_sub_variables, split_getatt, sub_template
from .base import Match, Rule, RuleMetadata, expression_scopes
from .registry import register_rule

_VALUE_SCOPES = (SECTION_RESOURCES, SECTION_OUTPUTS)


def _has_if_ancestor(path: Tuple[str, ...]) -> bool:
    return "Fn::If" in path


@register_rule
class RefTargetDefined(Rule):
    metadata = RuleMetadata(
        rule_id="E1001",
        short_description="Ref targets a defined parameter or resource",
        description="Every Ref must name a parameter, a resource or a pseudo parameter.",
        tags=("functions", "ref"),
    )

    def match(self, template: Template) -> Iterable[Match]:
        defined = set(template.parameters) | set(template.resources) | PSEUDO_PARAMETERS
        condition_defined = set(template.parameters) | PSEUDO_PARAMETERS
        for prefix, value in expression_scopes(template, _VALUE_SCOPES + (SECTION_CONDITIONS,)):
            valid = condition_defined if prefix[0] == SECTION_CONDITIONS else defined
            for target, path in find_refs(value):
                if target not in valid:
                    yield Match(
                        f"Ref '{target}' does not reference a defined parameter, resource or pseudo parameter",
                        prefix + path + ("Ref",),
                    )


@register_rule
class TransformConfiguration(Rule):
    metadata = RuleMetadata(
        rule_id="E1005",
        short_description="Transform names are valid",
        description="Transform must be a macro name, a list of names, or an AWS::Include style mapping.",
        tags=("transform",),
    )

    def _check(self, entry: Any, path: Tuple[str, ...]) -> Iterable[Match]:
        if isinstance(entry, dict):
            name = entry.get("Name")
            if not isinstance(name, str):
                yield Match("Transform mapping must have a string 'Name'", path)
                return
            entry = name
        if not isinstance(entry, str):
            yield Match("Transform must be a string, a mapping with Name, or a list of them", path)
        elif entry.startswith("AWS::") and entry not in KNOWN_TRANSFORMS:
            yield Match(f"Transform '{entry}' is not a known AWS transform", path)

    def match(self, template: Template) -> Iterable[Match]:
        transform = template.transform
        if transform is None:
            return
        if isinstance(transform, list):
            for index, entry in enumerate(transform):
                yield from self._check(entry, ("Transform", f"[{index}]"))
        else:
            yield from self._check(transform, ("Transform",))


@register_rule
class GetAttTargetDefined(Rule):
    metadata = RuleMetadata(
        rule_id="E1010",
        short_description="Fn::GetAtt targets a defined resource",
        tags=("functions", "getatt"),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for prefix, value in expression_scopes(template, _VALUE_SCOPES):
            for operand, path in find_intrinsic(value, "Fn::GetAtt"):
                location = prefix + path + ("Fn::GetAtt",)
                resource, attribute = split_getatt(operand)
                if not resource:
                    yield Match("Fn::GetAtt must be a [resource, attribute] list or a dotted string", location)
                elif not template.has_resource(resource):
                    yield Match(f"Fn::GetAtt references undefined resource '{resource}'", location)
                elif attribute == "" or attribute is None:
                    yield Match(f"Fn::GetAtt on resource '{resource}' must name an attribute", location)


@register_rule
class FindInMapStructure(Rule):
    metadata = RuleMetadata(
        rule_id="E1011",
        short_description="Fn::FindInMap uses defined mappings and keys",
        tags=("functions", "mappings"),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for prefix, value in expression_scopes(template, _VALUE_SCOPES):
            for operand, path in find_intrinsic(value, "Fn::FindInMap"):
                location = prefix + path + ("Fn::FindInMap",)
                has_default = (
                    isinstance(operand, list) and len(operand) == 4 and isinstance(operand[3], dict)
                    and "DefaultValue" in operand[3]
                )
                if not isinstance(operand, list) or (len(operand) != 3 and not has_default):
                    count = len(operand) if isinstance(operand, list) else 0
                    yield Match(f"Fn::FindInMap must have exactly 3 elements, got {count}", location)
                    continue
                map_name, top_key, second_key = operand[:3]
                if not isinstance(map_name, str):
                    continue
                mapping = template.mappings.get(map_name)
                if mapping is None:
                    yield Match(f"Fn::FindInMap references undefined mapping '{map_name}'", location)
                    continue
                if has_default or not isinstance(top_key, str):
                    continue
                if top_key not in mapping.values:
                    yield Match(f"Fn::FindInMap key '{top_key}' does not exist in mapping '{map_name}'", location)
                elif isinstance(second_key, str) and second_key not in mapping.values[top_key]:
                    yield Match(
                        f"Fn::FindInMap key '{second_key}' does not exist under '{top_key}' in mapping '{map_name}'",
                        location,
                    )


@register_rule
class SelectStructure(Rule):
    metadata = RuleMetadata(
        rule_id="E1017",
        short_description="Fn::Select has an index and a list",
        tags=("functions",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for prefix, value in expression_scopes(template, _VALUE_SCOPES):
            for operand, path in find_intrinsic(value, "Fn::Select"):
                location = prefix + path + ("Fn::Select",)
                if not isinstance(operand, list) or len(operand) != 2:
                    yield Match("Fn::Select must be a list of [index, list]", location)
                    continue
                index, choices = operand
                if isinstance(index, bool) or not (
                    isinstance(index, (int, dict)) or (isinstance(index, str) and index.isdigit())
                ):
                    yield Match(f"Fn::Select index must be a non-negative integer, got {index!r}", location)
                if not isinstance(choices, (list, dict)):
                    yield Match("Fn::Select second element must be a list or a function returning one", location)
                elif isinstance(index, int) and not isinstance(index, bool) and isinstance(choices, list):
                    if not 0 <= index < len(choices):
                        yield Match(f"Fn::Select index {index} is out of range for {len(choices)} elements", location)


def _defined_sub_names(template: Template) -> Set[str]:
    return set(template.parameters) | set(template.resources) | PSEUDO_PARAMETERS


@register_rule
class SubVariablesDefined(Rule):
    metadata = RuleMetadata(
        rule_id="E1019",
        short_description="Fn::Sub variables are defined",
        description="Each ${Name} in Fn::Sub must be a parameter, resource, pseudo parameter, "
        "Resource.Attribute, or a key of the variable map.",
        tags=("functions", "sub"),
    )

    def match(self, template: Template) -> Iterable[Match]:
        defined = _defined_sub_names(template)
        for prefix, value in expression_scopes(template, _VALUE_SCOPES):
            for operand, path in find_intrinsic(value, "Fn::Sub"):
                location = prefix + path + ("Fn::Sub",)
                text, variables = sub_template(operand)
                if not isinstance(operand, str) and not (
                    isinstance(operand, list) and len(operand) == 2 and isinstance(operand[0], str)
                    and isinstance(operand[1], dict)
                ):
                    yield Match("Fn::Sub must be a string or a list of [string, mapping]", location)
                    continue
                for name in find_sub_variables(text):
                    if name in variables or name in defined:
                        continue
                    if "." in name and template.has_resource(name.split(".", 1)[0]):
                        continue
                    yield Match(f"Fn::Sub references undefined variable '${{{name}}}'", location)


@register_rule
class JoinStructure(Rule):
    metadata = RuleMetadata(
        rule_id="E1022",
        short_description="Fn::Join has a delimiter and a list",
        tags=("functions",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for prefix, value in expression_scopes(template, _VALUE_SCOPES):
            for operand, path in find_intrinsic(value, "Fn::Join"):
                location = prefix + path + ("Fn::Join",)
                if not isinstance(operand, list) or len(operand) != 2:
                    yield Match("Fn::Join must be a list of [delimiter, list]", location)
                    continue
                delimiter, items = operand
                if not isinstance(delimiter, str):
                    yield Match("Fn::Join delimiter must be a string", location)
                if not isinstance(items, (list, dict)):
                    yield Match("Fn::Join second element must be a list or a function returning one", location)


@register_rule
class IfStructure(Rule):
    metadata = RuleMetadata(
        rule_id="E1028",
        short_description="Fn::If has a condition name and two values",
        tags=("functions", "conditions"),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for prefix, value in expression_scopes(template, _VALUE_SCOPES):
            for operand, path in find_intrinsic(value, "Fn::If"):
                location = prefix + path + ("Fn::If",)
                if not isinstance(operand, list) or len(operand) != 3:
                    count = len(operand) if isinstance(operand, list) else 0
                    yield Match(
                        "Fn::If must have exactly 3 elements [condition_name, value_if_true, value_if_false], "
                        f"got {count}",
                        location,
                    )
                elif not isinstance(operand[0], str):
                    yield Match("Fn::If first element must be a condition name string", location)


@register_rule
class ReferenceToConditionalResource(Rule):
    metadata = RuleMetadata(
        rule_id="W1001",
        short_description="References to conditional resources are guarded",
        description="Referencing a conditional resource from a resource or output that is not "
        "created under the same condition fails when the condition is false.",
        tags=("functions", "conditions"),
    )

    def match(self, template: Template) -> Iterable[Match]:
        conditional = {name: res.condition for name, res in template.resources.items() if res.condition}
        if not conditional:
            return
        for section, entities in ((SECTION_RESOURCES, template.resources), (SECTION_OUTPUTS, template.outputs)):
            for name, entity in entities.items():
                value = entity.node.to_value()
                references = [(target, path + ("Ref",)) for target, path in find_refs(value)]
                for operand, path in find_intrinsic(value, "Fn::GetAtt"):
                    resource, _attribute = split_getatt(operand)
                    if resource:
                        references.append((resource, path + ("Fn::GetAtt",)))
                for target, path in references:
                    target_condition = conditional.get(target)
                    if not target_condition or target == name or _has_if_ancestor(path):
                        continue
                    if entity.condition == target_condition:
                        continue
                    owner = f"condition '{entity.condition}'" if entity.condition else "no condition"
                    yield Match(
                        f"Resource '{target}' is created only when condition '{target_condition}' is true "
                        f"but is referenced from {section[:-1].lower()} '{name}' with {owner}",
                        (section, name) + path,
                    )


@register_rule
class SubWithoutVariables(Rule):
    metadata = RuleMetadata(
        rule_id="W1020",
        short_description="Fn::Sub is only used with variables",
        tags=("functions", "sub"),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for prefix, value in expression_scopes(template, _VALUE_SCOPES):
            for operand, path in find_intrinsic(value, "Fn::Sub"):
                text, _variables = sub_template(operand)
                if isinstance(operand, str) and "${" not in text:
                    yield Match(
                        "Fn::Sub is not needed because the string contains no variables",
                        prefix + path + ("Fn::Sub",),
                    )
