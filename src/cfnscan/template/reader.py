"""Position-preserving CloudFormation template reader built on PyYAML."""
from __future__ import annotations

import logging
from typing import Any, Dict, Set, Union

import yaml
from yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode

from ..errors import TemplateParseError
from .model import Template
from .nodes import DOCUMENT, MAPPING, SCALAR, SEQUENCE, PositionedNode

logger = logging.getLogger(__name__)

# Short tag name -> canonical long-form key.
INTRINSIC_TAGS: Dict[str, str] = {
    "Ref": "Ref",
    "Condition": "Condition",
    "GetAtt": "Fn::GetAtt",
    "Sub": "Fn::Sub",
    "Join": "Fn::Join",
    "Select": "Fn::Select",
    "Split": "Fn::Split",
    "If": "Fn::If",
    "Equals": "Fn::Equals",
    "And": "Fn::And",
    "Or": "Fn::Or",
    "Not": "Fn::Not",
    "FindInMap": "Fn::FindInMap",
    "Base64": "Fn::Base64",
    "Cidr": "Fn::Cidr",
    "GetAZs": "Fn::GetAZs",
    "ImportValue": "Fn::ImportValue",
    "ToJsonString": "Fn::ToJsonString",
}

_YAML_TAG_PREFIX = "tag:yaml.org,2002:"
_CONSTRUCTED_SCALAR_TAGS = frozenset(
    _YAML_TAG_PREFIX + name for name in ("str", "int", "float", "bool", "null")
)


def _start(node: Node) -> tuple:
    return node.start_mark.line + 1, node.start_mark.column + 1


def _end(node: Node) -> tuple:
    return node.end_mark.line + 1, node.end_mark.column + 1


class _NodeConverter:
    """Turns a composed PyYAML graph into positioned nodes."""

    def __init__(self, loader: yaml.SafeLoader) -> None:
        self._loader = loader
        self._active: Set[int] = set()

    def convert(self, node: Node) -> PositionedNode:
        if id(node) in self._active:
            line, column = _start(node)
            raise TemplateParseError(
                "Recursive YAML alias", kind=TemplateParseError.MALFORMED_YAML, line=line, column=column
            )
        self._active.add(id(node))
        try:
            tag = node.tag or ""
            if tag.startswith("!"):
                return self._rewrite_intrinsic(node, tag)
            return self._convert_plain(node)
        finally:
            self._active.discard(id(node))

    def _convert_plain(self, node: Node) -> PositionedNode:
        line, column = _start(node)
        end_line, end_column = _end(node)
        if isinstance(node, ScalarNode):
            return PositionedNode(
                SCALAR, line, column, value=self._scalar_value(node), end_line=end_line, end_column=end_column
            )
        if isinstance(node, SequenceNode):
            children = [self.convert(item) for item in node.value]
            return PositionedNode(
                SEQUENCE, line, column, children=children, end_line=end_line, end_column=end_column
            )
        if isinstance(node, MappingNode):
            return self._convert_mapping(node)
        raise TemplateParseError(
            f"Unsupported YAML node {type(node).__name__}",
            kind=TemplateParseError.MALFORMED_YAML,
            line=line,
            column=column,
        )

    def _convert_mapping(self, node: MappingNode) -> PositionedNode:
        line, column = _start(node)
        end_line, end_column = _end(node)
        children = []
        seen: Set[str] = set()
        for key_yaml, value_yaml in node.value:
            key_node = self._convert_key(key_yaml)
            if key_node.value in seen:
                raise TemplateParseError(
                    f"Duplicate key '{key_node.value}'",
                    kind=TemplateParseError.DUPLICATE_KEY,
                    line=key_node.line,
                    column=key_node.column,
                )
            seen.add(key_node.value)
            children.append(key_node)
            children.append(self.convert(value_yaml))
        return PositionedNode(MAPPING, line, column, children=children, end_line=end_line, end_column=end_column)

    def _convert_key(self, node: Node) -> PositionedNode:
        line, column = _start(node)
        if not isinstance(node, ScalarNode):
            raise TemplateParseError(
                "Mapping keys must be scalars",
                kind=TemplateParseError.MALFORMED_YAML,
                line=line,
                column=column,
            )
        end_line, end_column = _end(node)
        return PositionedNode(SCALAR, line, column, value=node.value, end_line=end_line, end_column=end_column)

    def _scalar_value(self, node: ScalarNode) -> Any:
        # Timestamps and other non-core scalars keep their source text.
        if node.tag in _CONSTRUCTED_SCALAR_TAGS:
            return self._loader.construct_object(node, deep=True)
        return node.value

    def _rewrite_intrinsic(self, node: Node, tag: str) -> PositionedNode:
        line, column = _start(node)
        end_line, end_column = _end(node)
        name = tag[1:]
        long_form = INTRINSIC_TAGS.get(name)
        if long_form is None:
            raise TemplateParseError(
                f"Unknown intrinsic tag '{tag}'",
                kind=TemplateParseError.UNKNOWN_INTRINSIC_TAG,
                line=line,
                column=column,
            )

        if isinstance(node, ScalarNode):
            operand = PositionedNode(
                SCALAR, line, column, value=node.value, end_line=end_line, end_column=end_column
            )
            if name == "GetAtt" and "." in node.value:
                resource, attribute = node.value.split(".", 1)
                operand = PositionedNode(
                    SEQUENCE,
                    line,
                    column,
                    children=[
                        PositionedNode(SCALAR, line, column, value=resource, end_line=end_line, end_column=end_column),
                        PositionedNode(SCALAR, line, column, value=attribute, end_line=end_line, end_column=end_column),
                    ],
                    end_line=end_line,
                    end_column=end_column,
                )
        else:
            operand = self._convert_plain(node)

        key_node = PositionedNode(
            SCALAR, line, column, value=long_form, end_line=line, end_column=column + len(tag), tag=tag
        )
        return PositionedNode(
            MAPPING,
            line,
            column,
            children=[key_node, operand],
            end_line=end_line,
            end_column=end_column,
            tag=tag,
        )


def _decode(data: Union[bytes, str]) -> str:
    if isinstance(data, bytes):
        try:
            return data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise TemplateParseError(
                f"Template is not valid UTF-8: {exc.reason}",
                kind=TemplateParseError.MALFORMED_YAML,
                line=1,
                column=1,
            ) from exc
    return data[1:] if data.startswith("\ufeff") else data


def _malformed(exc: yaml.YAMLError) -> TemplateParseError:
    if isinstance(exc, yaml.MarkedYAMLError):
        mark = exc.problem_mark or exc.context_mark
        line = mark.line + 1 if mark else 1
        column = mark.column + 1 if mark else 1
        message = exc.problem or exc.context or "Invalid YAML"
        return TemplateParseError(message, kind=TemplateParseError.MALFORMED_YAML, line=line, column=column)
    return TemplateParseError(str(exc), kind=TemplateParseError.MALFORMED_YAML, line=1, column=1)


def compose(data: Union[bytes, str]) -> PositionedNode:
    """Compose ``data`` into a positioned document node."""

    text = _decode(data)
    try:
        loader = yaml.SafeLoader(text)
    except yaml.YAMLError as exc:
        raise _malformed(exc) from exc
    try:
        try:
            yaml_root = loader.get_single_node()
        except yaml.YAMLError as exc:
            raise _malformed(exc) from exc

        if yaml_root is None:
            raise TemplateParseError(
                "Template is empty", kind=TemplateParseError.ROOT_NOT_MAPPING, line=1, column=1
            )
        root = _NodeConverter(loader).convert(yaml_root)
    finally:
        loader.dispose()

    return PositionedNode(
        DOCUMENT, 1, 1, children=[root], end_line=root.end_line, end_column=root.end_column
    )


def parse(data: Union[bytes, str], filename: str = "") -> Template:
    """Parse YAML or JSON template text into a :class:`Template`."""

    document = compose(data)
    root = document.children[0]
    if root.kind != MAPPING:
        raise TemplateParseError(
            "Template root must be a mapping",
            kind=TemplateParseError.ROOT_NOT_MAPPING,
            line=root.line,
            column=root.column,
        )
    template = Template.from_root(root, filename)
    logger.debug(
        "Parsed %s: %d parameters, %d resources, %d outputs",
        filename or "<memory>",
        len(template.parameters),
        len(template.resources),
        len(template.outputs),
    )
    return template
