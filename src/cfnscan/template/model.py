"""Typed façade over a parsed CloudFormation template."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from ..constants import (
    SECTION_CONDITIONS,
    SECTION_MAPPINGS,
    SECTION_METADATA,
    SECTION_OUTPUTS,
    SECTION_PARAMETERS,
    SECTION_RESOURCES,
    SECTION_RULES,
)
from .nodes import MAPPING, SCALAR, SEQUENCE, PositionedNode


@dataclass(frozen=True)
class Entity:
    """Common shape of everything declared under a template section.

    ``key_node`` is the key the entity was declared under and supplies the
    reported position; ``node`` is the declared value.
    """

    name: str
    key_node: PositionedNode = field(repr=False, compare=False)
    node: PositionedNode = field(repr=False, compare=False)

    @property
    def line(self) -> int:
        return self.key_node.line

    @property
    def column(self) -> int:
        return self.key_node.column

    def child(self, key: str) -> Optional[PositionedNode]:
        return self.node.get(key) if self.node.is_mapping else None

    def child_key(self, key: str) -> Optional[PositionedNode]:
        if not self.node.is_mapping:
            return None
        pair = self.node.get_pair(key)
        return pair[0] if pair else None


@dataclass(frozen=True)
class Parameter(Entity):
    type: str = ""
    default: Any = None
    allowed_values: Optional[List[Any]] = None
    allowed_pattern: Optional[str] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    no_echo: bool = False
    description: Optional[str] = None
    constraint_description: Optional[str] = None

    @property
    def has_default(self) -> bool:
        return self.child_key("Default") is not None


@dataclass(frozen=True)
class Mapping(Entity):
    values: Dict[str, Dict[str, Any]] = field(default_factory=dict)


@dataclass(frozen=True)
class Condition(Entity):
    expression: Any = None


@dataclass(frozen=True)
class Resource(Entity):
    type: str = ""
    properties: Dict[str, Any] = field(default_factory=dict)
    depends_on: List[str] = field(default_factory=list)
    condition: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def attribute_node(self, name: str) -> Optional[PositionedNode]:
        return self.child(name)

    def _scalar_attribute(self, name: str) -> Optional[str]:
        node = self.attribute_node(name)
        if node is None or not node.is_scalar or node.value is None:
            return None
        return str(node.value)

    @property
    def deletion_policy(self) -> Optional[str]:
        return self._scalar_attribute("DeletionPolicy")

    @property
    def update_replace_policy(self) -> Optional[str]:
        return self._scalar_attribute("UpdateReplacePolicy")


@dataclass(frozen=True)
class Output(Entity):
    value: Any = None
    description: str = ""
    export: Dict[str, Any] = field(default_factory=dict)
    condition: str = ""


@dataclass(frozen=True)
class Assertion:
    node: PositionedNode = field(repr=False, compare=False)
    assert_value: Any = None
    assert_description: str = ""


@dataclass(frozen=True)
class TemplateRule(Entity):
    """An entry of the CloudFormation ``Rules`` section."""

    rule_condition: Any = None
    assertions: List[Assertion] = field(default_factory=list)


def _as_str(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_int(value: Any) -> Optional[int]:
    number = _as_float(value)
    if number is None:
        return None
    try:
        return int(number)
    except (OverflowError, ValueError):
        return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip().lower() == "true"


def _as_mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _optional_str(decoded: Dict[str, Any], key: str) -> Optional[str]:
    if key not in decoded:
        return None
    return _as_str(decoded[key])


def _section_pairs(root: PositionedNode, section: str) -> Iterator[Tuple[str, PositionedNode, PositionedNode]]:
    node = root.get(section)
    if node is None:
        return
    for key_node, value_node in node.pairs():
        yield str(key_node.value), key_node, value_node


def _build_parameter(name: str, key_node: PositionedNode, node: PositionedNode) -> Parameter:
    decoded = _as_mapping(node.to_value())
    allowed_values = decoded.get("AllowedValues")
    return Parameter(
        name=name,
        key_node=key_node,
        node=node,
        type=_as_str(decoded.get("Type")),
        default=decoded.get("Default"),
        allowed_values=list(allowed_values) if isinstance(allowed_values, list) else None,
        allowed_pattern=_optional_str(decoded, "AllowedPattern"),
        min_value=_as_float(decoded.get("MinValue")),
        max_value=_as_float(decoded.get("MaxValue")),
        min_length=_as_int(decoded.get("MinLength")),
        max_length=_as_int(decoded.get("MaxLength")),
        no_echo=_as_bool(decoded.get("NoEcho")),
        description=_optional_str(decoded, "Description"),
        constraint_description=_optional_str(decoded, "ConstraintDescription"),
    )


def _build_mapping(name: str, key_node: PositionedNode, node: PositionedNode) -> Mapping:
    values: Dict[str, Dict[str, Any]] = {}
    for top_key, second_level in _as_mapping(node.to_value()).items():
        values[top_key] = _as_mapping(second_level)
    return Mapping(name=name, key_node=key_node, node=node, values=values)


def _build_resource(name: str, key_node: PositionedNode, node: PositionedNode) -> Resource:
    decoded = _as_mapping(node.to_value())
    depends_on = decoded.get("DependsOn")
    if isinstance(depends_on, str):
        dependencies = [depends_on]
    elif isinstance(depends_on, list):
        dependencies = [item for item in depends_on if isinstance(item, str)]
    else:
        dependencies = []
    return Resource(
        name=name,
        key_node=key_node,
        node=node,
        type=_as_str(decoded.get("Type")),
        properties=_as_mapping(decoded.get("Properties")),
        depends_on=dependencies,
        condition=_as_str(decoded.get("Condition")),
        metadata=_as_mapping(decoded.get("Metadata")),
    )


def _build_output(name: str, key_node: PositionedNode, node: PositionedNode) -> Output:
    decoded = _as_mapping(node.to_value())
    return Output(
        name=name,
        key_node=key_node,
        node=node,
        value=decoded.get("Value"),
        description=_as_str(decoded.get("Description")),
        export=_as_mapping(decoded.get("Export")),
        condition=_as_str(decoded.get("Condition")),
    )


def _build_rule(name: str, key_node: PositionedNode, node: PositionedNode) -> TemplateRule:
    assertions: List[Assertion] = []
    assertions_node = node.get("Assertions") if node.is_mapping else None
    if assertions_node is not None and assertions_node.kind == SEQUENCE:
        for item in assertions_node.children:
            decoded = _as_mapping(item.to_value())
            assertions.append(
                Assertion(
                    node=item,
                    assert_value=decoded.get("Assert"),
                    assert_description=_as_str(decoded.get("AssertDescription")),
                )
            )
    rule_condition = None
    if node.is_mapping and node.get("RuleCondition") is not None:
        rule_condition = node.get("RuleCondition").to_value()
    return TemplateRule(
        name=name, key_node=key_node, node=node, rule_condition=rule_condition, assertions=assertions
    )


@dataclass(frozen=True)
class Template:
    """Read-only view over the sections of one template."""

    source_filename: str
    root: PositionedNode = field(repr=False)
    format_version: str = ""
    description: str = ""
    transform: Any = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    parameters: Dict[str, Parameter] = field(default_factory=dict)
    mappings: Dict[str, Mapping] = field(default_factory=dict)
    conditions: Dict[str, Condition] = field(default_factory=dict)
    resources: Dict[str, Resource] = field(default_factory=dict)
    outputs: Dict[str, Output] = field(default_factory=dict)
    rules: Dict[str, TemplateRule] = field(default_factory=dict)

    @classmethod
    def from_root(cls, root: PositionedNode, source_filename: str = "") -> "Template":
        def scalar_field(key: str) -> str:
            node = root.get(key)
            return _as_str(node.value) if node is not None and node.kind == SCALAR else ""

        transform_node = root.get("Transform")
        metadata_node = root.get(SECTION_METADATA)
        conditions = {
            name: Condition(name=name, key_node=key_node, node=node, expression=node.to_value())
            for name, key_node, node in _section_pairs(root, SECTION_CONDITIONS)
        }
        return cls(
            source_filename=source_filename,
            root=root,
            format_version=scalar_field("AWSTemplateFormatVersion"),
            description=scalar_field("Description"),
            transform=transform_node.to_value() if transform_node is not None else None,
            metadata=_as_mapping(metadata_node.to_value()) if metadata_node is not None else {},
            parameters={
                name: _build_parameter(name, key_node, node)
                for name, key_node, node in _section_pairs(root, SECTION_PARAMETERS)
            },
            mappings={
                name: _build_mapping(name, key_node, node)
                for name, key_node, node in _section_pairs(root, SECTION_MAPPINGS)
            },
            conditions=conditions,
            resources={
                name: _build_resource(name, key_node, node)
                for name, key_node, node in _section_pairs(root, SECTION_RESOURCES)
            },
            outputs={
                name: _build_output(name, key_node, node)
                for name, key_node, node in _section_pairs(root, SECTION_OUTPUTS)
            },
            rules={
                name: _build_rule(name, key_node, node)
                for name, key_node, node in _section_pairs(root, SECTION_RULES)
            },
        )

    def has_parameter(self, name: str) -> bool:
        return name in self.parameters

    def has_mapping(self, name: str) -> bool:
        return name in self.mappings

    def has_condition(self, name: str) -> bool:
        return name in self.conditions

    def has_resource(self, name: str) -> bool:
        return name in self.resources

    def has_output(self, name: str) -> bool:
        return name in self.outputs

    def resources_of_type(self, resource_type: str) -> Dict[str, Resource]:
        return {name: res for name, res in self.resources.items() if res.type == resource_type}

    def section_node(self, section: str) -> Optional[PositionedNode]:
        return self.root.get(section)

    def section_names(self, section: str) -> List[str]:
        node = self.root.get(section)
        if node is None or node.kind != MAPPING:
            return []
        return node.keys()

    def node_at(self, path: Sequence[str]) -> PositionedNode:
        """Return the deepest positioned node along ``path``, or the root."""

        trail = self.root.resolve(path)
        return trail[-1] if trail else self.root

    def locate(self, path: Sequence[str]) -> Tuple[int, int]:
        node = self.node_at(path)
        return node.line, node.column

    def to_dict(self) -> Dict[str, Any]:
        """Generic value of the whole template with intrinsics in long form."""

        return self.root.to_value()
