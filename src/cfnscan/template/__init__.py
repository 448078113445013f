"""Template parsing and the typed template façade."""
from .model import (
    Assertion,
    Condition,
    Entity,
    Mapping,
    Output,
    Parameter,
    Resource,
    Template,
    TemplateRule,
)
from .nodes import DOCUMENT, MAPPING, SCALAR, SEQUENCE, PositionedNode
from .reader import INTRINSIC_TAGS, compose, parse

__all__ = [
    "Assertion",
    "Condition",
    "DOCUMENT",
    "Entity",
    "INTRINSIC_TAGS",
    "MAPPING",
    "Mapping",
    "Output",
    "Parameter",
    "PositionedNode",
    "Resource",
    "SCALAR",
    "SEQUENCE",
    "Template",
    "TemplateRule",
    "compose",
    "parse",
]
