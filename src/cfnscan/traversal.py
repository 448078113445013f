"""Recursive helpers for locating intrinsic functions in generic values.

Every helper accepts any generic value (scalars, lists, dicts in any
nesting) and never raises on unexpected shapes; a scalar simply yields
nothing. Paths are tuples of mapping keys and ``"[i]"`` sequence steps,
relative to the value passed in.
"""
from __future__ import annotations

import re
from typing import Any, Callable, Iterator, List, Tuple

Path = Tuple[str, ...]

_SUB_VARIABLE = re.compile(r"\$\{([^}]*)\}")


def index_segment(index: int) -> str:
    return f"[{index}]"


def iter_values(value: Any, path: Path = ()) -> Iterator[Tuple[Any, Path]]:
    """Depth-first, source-ordered walk over every mapping and sequence."""

    if isinstance(value, dict):
        yield value, path
        for key, child in value.items():
            yield from iter_values(child, path + (str(key),))
    elif isinstance(value, list):
        yield value, path
        for index, child in enumerate(value):
            yield from iter_values(child, path + (index_segment(index),))


def walk(value: Any, visitor: Callable[[Any, List[str]], None]) -> None:
    for node, path in iter_values(value):
        visitor(node, list(path))


def intrinsic_call(value: Any) -> Tuple[str, Any]:
    """Return ``(name, operand)`` when ``value`` is a single-key intrinsic mapping."""

    if isinstance(value, dict) and len(value) == 1:
        name, operand = next(iter(value.items()))
        if name in ("Ref", "Condition") or str(name).startswith("Fn::"):
            return name, operand
    return "", None


def find_intrinsic(value: Any, name: str) -> Iterator[Tuple[Any, Path]]:
    """Yield ``(operand, path)`` for every ``{name: operand}`` mapping."""

    for node, path in iter_values(value):
        if isinstance(node, dict) and len(node) == 1 and name in node:
            yield node[name], path


def find_refs(value: Any) -> Iterator[Tuple[str, Path]]:
    for operand, path in find_intrinsic(value, "Ref"):
        if isinstance(operand, str):
            yield operand, path


def split_getatt(operand: Any) -> Tuple[str, Any]:
    """Split a ``Fn::GetAtt`` operand into resource and attribute.

    The dotted string form splits on the first dot. Returns ``("", None)``
    when the operand names no resource.
    """

    if isinstance(operand, str):
        if "." not in operand:
            return operand, ""
        resource, attribute = operand.split(".", 1)
        return resource, attribute
    if isinstance(operand, list) and operand and isinstance(operand[0], str):
        attribute = operand[1] if len(operand) > 1 else ""
        return operand[0], attribute
    return "", None


def find_getatt(value: Any) -> Iterator[Tuple[str, Any, Path]]:
    for operand, path in find_intrinsic(value, "Fn::GetAtt"):
        resource, attribute = split_getatt(operand)
        if resource:
            yield resource, attribute, path


def sub_template(sub_value: Any) -> Tuple[str, dict]:
    """Return the template string and variable map of an ``Fn::Sub`` operand."""

    if isinstance(sub_value, str):
        return sub_value, {}
    if isinstance(sub_value, list) and sub_value and isinstance(sub_value[0], str):
        variables = sub_value[1] if len(sub_value) > 1 and isinstance(sub_value[1], dict) else {}
        return sub_value[0], variables
    return "", {}


def find_sub_variables(sub_value: Any) -> Iterator[str]:
    """Yield each ``${Name}`` in a Sub operand; ``${!Literal}`` is skipped."""

    text, variables = sub_template(sub_value)
    for match in _SUB_VARIABLE.finditer(text):
        name = match.group(1).strip()
        if not name or name.startswith("!"):
            continue
        yield name
    for key in variables:
        yield str(key)


def find_condition_refs(value: Any) -> Iterator[str]:
    for name, _path in iter_condition_refs(value):
        yield name


def iter_condition_refs(value: Any) -> Iterator[Tuple[str, Path]]:
    """Like :func:`find_condition_refs` but with the path of each reference."""

    for node, path in iter_values(value):
        name, operand = intrinsic_call(node)
        if name == "Condition" and isinstance(operand, str):
            yield operand, path
        elif name == "Fn::If" and isinstance(operand, list) and operand and isinstance(operand[0], str):
            yield operand[0], path + ("Fn::If", index_segment(0))
