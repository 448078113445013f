"""Rules for the Resources section."""
from __future__ import annotations

import re
from typing import Dict, Iterable, List, Set

from ..constants import SECTION_RESOURCES
from ..template import Resource, Template
from ..traversal import find_getatt, find_intrinsic, find_refs, find_sub_variables, sub_template
from .base import Match, Rule, RuleMetadata
from .registry import register_rule

VALID_RESOURCE_ATTRIBUTES = frozenset(
    {
        "Type",
        "Properties",
        "DependsOn",
        "Condition",
        "Metadata",
        "DeletionPolicy",
        "UpdatePolicy",
        "UpdateReplacePolicy",
        "CreationPolicy",
    }
)

DELETION_POLICIES = ("Delete", "Retain", "Snapshot", "RetainExceptOnCreate")
UPDATE_REPLACE_POLICIES = ("Delete", "Retain", "Snapshot")

SNAPSHOT_TYPES = frozenset(
    {
        "AWS::DocDB::DBCluster",
        "AWS::EC2::Volume",
        "AWS::ElastiCache::CacheCluster",
        "AWS::ElastiCache::ReplicationGroup",
        "AWS::Neptune::DBCluster",
        "AWS::RDS::DBCluster",
        "AWS::RDS::DBInstance",
        "AWS::Redshift::Cluster",
    }
)

_RESOURCE_TYPE = re.compile(r"^[A-Za-z0-9]+::[A-Za-z0-9]+::[A-Za-z0-9]+$")
_CUSTOM_TYPE = re.compile(r"^Custom::[A-Za-z0-9_@-]+$")
_MODULE_TYPE = re.compile(r"^[A-Za-z0-9]+::[A-Za-z0-9]+::[A-Za-z0-9]+::MODULE$")
_LOGICAL_ID = re.compile(r"^[A-Za-z0-9]+$")


def resource_references(resource: Resource) -> Set[str]:
    """Logical IDs a resource points at through Ref, Fn::GetAtt or Fn::Sub."""

    value = resource.node.to_value()
    targets = {target for target, _path in find_refs(value)}
    targets.update(name for name, _attribute, _path in find_getatt(value))
    for operand, _path in find_intrinsic(value, "Fn::Sub"):
        text, variables = sub_template(operand)
        for variable in find_sub_variables(text):
            if variable not in variables:
                targets.add(variable.split(".", 1)[0])
    return targets


@register_rule
class ResourceConfiguration(Rule):
    metadata = RuleMetadata(
        rule_id="E3001",
        short_description="Resources have a Type and only valid attributes",
        tags=("resources",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, resource in template.resources.items():
            if not resource.node.is_mapping:
                yield Match(f"Resource '{name}' must be a mapping", (SECTION_RESOURCES, name))
                continue
            if resource.child_key("Type") is None:
                yield Match(f"Resource '{name}' is missing required property 'Type'", (SECTION_RESOURCES, name))
            for key in resource.node.keys():
                if key not in VALID_RESOURCE_ATTRIBUTES:
                    yield Match(
                        f"Resource '{name}' has invalid attribute '{key}'", (SECTION_RESOURCES, name, key)
                    )


@register_rule
class PropertiesMapping(Rule):
    metadata = RuleMetadata(
        rule_id="E3002",
        short_description="Resource Properties is a mapping",
        tags=("resources",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, resource in template.resources.items():
            properties = resource.child("Properties")
            if properties is not None and not properties.is_mapping:
                yield Match(
                    f"Resource '{name}' Properties must be a mapping", (SECTION_RESOURCES, name, "Properties")
                )


def _cycles(graph: Dict[str, List[str]]) -> List[List[str]]:
    """Strongly connected components that form a cycle, in declaration order."""

    index_of: Dict[str, int] = {}
    lowlink: Dict[str, int] = {}
    stack: List[str] = []
    on_stack: Set[str] = set()
    components: List[List[str]] = []

    def visit(node: str) -> None:
        index_of[node] = lowlink[node] = len(index_of)
        stack.append(node)
        on_stack.add(node)
        for neighbour in graph[node]:
            if neighbour not in index_of:
                visit(neighbour)
                lowlink[node] = min(lowlink[node], lowlink[neighbour])
            elif neighbour in on_stack:
                lowlink[node] = min(lowlink[node], index_of[neighbour])
        if lowlink[node] == index_of[node]:
            component = []
            while True:
                member = stack.pop()
                on_stack.discard(member)
                component.append(member)
                if member == node:
                    break
            if len(component) > 1 or node in graph[node]:
                components.append(component)

    for node in graph:
        if node not in index_of:
            visit(node)
    return components


@register_rule
class CircularDependency(Rule):
    metadata = RuleMetadata(
        rule_id="E3004",
        short_description="Resources have no circular dependencies",
        description="Dependencies come from DependsOn, Ref, Fn::GetAtt and Fn::Sub.",
        tags=("resources", "dependencies"),
    )

    def match(self, template: Template) -> Iterable[Match]:
        order = list(template.resources)
        graph: Dict[str, List[str]] = {}
        for name, resource in template.resources.items():
            targets = resource_references(resource) | set(resource.depends_on)
            graph[name] = [target for target in order if target in targets]
        for component in _cycles(graph):
            members = [name for name in order if name in component]
            description = ", ".join(members)
            for member in members:
                yield Match(
                    f"Circular dependency between resources: {description}", (SECTION_RESOURCES, member)
                )


@register_rule
class DependsOnDefined(Rule):
    metadata = RuleMetadata(
        rule_id="E3005",
        short_description="DependsOn targets defined resources",
        tags=("resources", "dependencies"),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, resource in template.resources.items():
            node = resource.child("DependsOn")
            if node is None:
                continue
            path = (SECTION_RESOURCES, name, "DependsOn")
            value = node.to_value()
            if isinstance(value, str):
                entries = [(value, path)]
            elif isinstance(value, list):
                entries = [(item, path + (f"[{index}]",)) for index, item in enumerate(value)]
            else:
                yield Match(f"Resource '{name}' DependsOn must be a string or a list of strings", path)
                continue
            for target, location in entries:
                if not isinstance(target, str):
                    yield Match(f"Resource '{name}' DependsOn entries must be strings", location)
                elif not template.has_resource(target):
                    yield Match(f"Resource '{name}' DependsOn undefined resource '{target}'", location)


@register_rule
class ResourceTypeFormat(Rule):
    metadata = RuleMetadata(
        rule_id="E3006",
        short_description="Resource types are well formed",
        tags=("resources",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, resource in template.resources.items():
            node = resource.child("Type")
            if node is None:
                continue
            path = (SECTION_RESOURCES, name, "Type")
            if not node.is_scalar or not isinstance(node.value, str):
                yield Match(f"Resource '{name}' Type must be a string", path)
                continue
            resource_type = node.value
            if not any(pattern.match(resource_type) for pattern in (_RESOURCE_TYPE, _CUSTOM_TYPE, _MODULE_TYPE)):
                yield Match(f"Resource '{name}' has invalid type '{resource_type}'", path)


@register_rule
class LogicalIdAlphanumeric(Rule):
    metadata = RuleMetadata(
        rule_id="E3008",
        short_description="Resource logical IDs are alphanumeric",
        tags=("resources",),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name in template.resources:
            if not _LOGICAL_ID.match(name):
                yield Match(f"Resource logical ID '{name}' must be alphanumeric", (SECTION_RESOURCES, name))


class _PolicyValueRule(Rule):
    attribute = ""
    allowed: tuple = ()

    def match(self, template: Template) -> Iterable[Match]:
        for name, resource in template.resources.items():
            node = resource.attribute_node(self.attribute)
            # Intrinsic functions are resolved at deploy time.
            if node is None or node.is_mapping:
                continue
            value = node.value if node.is_scalar else None
            if value not in self.allowed:
                yield Match(
                    f"Resource '{name}' has invalid {self.attribute} '{value}'. "
                    f"Valid values: {', '.join(self.allowed)}",
                    (SECTION_RESOURCES, name, self.attribute),
                )


@register_rule
class DeletionPolicyValue(_PolicyValueRule):
    metadata = RuleMetadata(
        rule_id="E3035",
        short_description="DeletionPolicy has a valid value",
        tags=("resources", "policies"),
    )
    attribute = "DeletionPolicy"
    allowed = DELETION_POLICIES


@register_rule
class UpdateReplacePolicyValue(_PolicyValueRule):
    metadata = RuleMetadata(
        rule_id="E3036",
        short_description="UpdateReplacePolicy has a valid value",
        tags=("resources", "policies"),
    )
    attribute = "UpdateReplacePolicy"
    allowed = UPDATE_REPLACE_POLICIES


@register_rule
class RedundantDependsOn(Rule):
    metadata = RuleMetadata(
        rule_id="W3005",
        short_description="DependsOn is not redundant",
        description="Ref, Fn::GetAtt and Fn::Sub already create the dependency.",
        tags=("resources", "dependencies"),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, resource in template.resources.items():
            if not resource.depends_on:
                continue
            implied = resource_references(resource)
            for target in resource.depends_on:
                if target in implied:
                    yield Match(
                        f"Resource '{name}' DependsOn '{target}' is redundant because it is already referenced",
                        (SECTION_RESOURCES, name, "DependsOn"),
                    )


@register_rule
class RetentionPolicies(Rule):
    metadata = RuleMetadata(
        rule_id="W3011",
        short_description="DeletionPolicy and UpdateReplacePolicy agree",
        description="Protecting a resource from deletion needs both policies; a replacement "
        "otherwise still deletes the old resource.",
        tags=("resources", "policies"),
    )

    def match(self, template: Template) -> Iterable[Match]:
        for name, resource in template.resources.items():
            deletion = resource.deletion_policy
            replace = resource.update_replace_policy
            prefix = (SECTION_RESOURCES, name)
            if deletion in ("Retain", "RetainExceptOnCreate", "Snapshot") and replace is None:
                yield Match(
                    f"Resource '{name}' sets DeletionPolicy '{deletion}' without UpdateReplacePolicy",
                    prefix + ("DeletionPolicy",),
                )
            elif replace in ("Retain", "Snapshot") and deletion is None:
                yield Match(
                    f"Resource '{name}' sets UpdateReplacePolicy '{replace}' without DeletionPolicy",
                    prefix + ("UpdateReplacePolicy",),
                )
            if "Snapshot" in (deletion, replace) and resource.type not in SNAPSHOT_TYPES:
                attribute = "DeletionPolicy" if deletion == "Snapshot" else "UpdateReplacePolicy"
                yield Match(
                    f"Resource '{name}' of type '{resource.type}' does not support the Snapshot policy",
                    prefix + (attribute,),
                )
