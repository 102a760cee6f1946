"""
Parameter Map → CL command text.

The inverse of the structural parser for maps it produced: every
parameter is written in keyword form, in declaration order.

    {"PGM": ["MYPGM", "MYLIB"], "PARM": ["&A", "&B"]}
        → CALL PGM(MYLIB/MYPGM) PARM(&A &B)
"""

from typing import Any, List, Mapping, Optional, Sequence

from clprompt.schema import (
    CommandSchema,
    ElementDefinition,
    ParameterDefinition,
    ParameterKind,
)


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(_scalar(item) for item in value if _scalar(item))
    return str(value).strip()


def _qualified(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        segments = [_scalar(segment) for segment in value]
        while segments and not segments[-1]:
            segments.pop()
        return "/".join(reversed(segments))
    return _scalar(value)


def _plain(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return "(" + " ".join(_plain(item) for item in value) + ")"
    return _scalar(value)


def _element(definition: Optional[ElementDefinition], value: Any) -> str:
    if definition is None or not definition.shape_known:
        return _plain(value)
    if definition.kind is ParameterKind.QUALIFIED:
        return _qualified(value)
    if definition.kind is ParameterKind.ELEMENT_LIST:
        if isinstance(value, (list, tuple)):
            return "(" + _elements(definition.elements, value) + ")"
        return _scalar(value)
    return _scalar(value)


def _elements(elements: Sequence[ElementDefinition], value: Any) -> str:
    if not isinstance(value, (list, tuple)):
        return _scalar(value)
    parts = []
    for index, item in enumerate(value):
        definition = elements[index] if index < len(elements) else None
        parts.append(_element(definition, item))
    return " ".join(part for part in parts if part)


def _instance(definition: ParameterDefinition, value: Any) -> str:
    kind = definition.value_kind
    if kind is ParameterKind.QUALIFIED:
        return _qualified(value)
    if kind is ParameterKind.ELEMENT_LIST:
        return _elements(definition.elements, value)
    return _scalar(value)


def format_value(definition: ParameterDefinition, value: Any) -> str:
    """Text that goes between a keyword's parentheses."""
    if not definition.is_repeatable:
        return _instance(definition, value)

    instances = value if isinstance(value, (list, tuple)) else [value]
    parts: List[str] = []
    for instance in instances:
        text = _instance(definition, instance)
        if not text:
            continue
        if definition.value_kind is ParameterKind.ELEMENT_LIST and isinstance(instance, (list, tuple)):
            text = f"({text})"
        parts.append(text)
    return " ".join(parts)


def format_parameters(parameters: Mapping[str, Any], schema: CommandSchema) -> str:
    """
    Render keyword groups in declaration order.

    Keywords without a definition are written after the known ones,
    verbatim, so nothing the caller supplied is lost.
    """
    given = {key.upper(): value for key, value in parameters.items()}
    parts = []
    for definition in schema.parameters:
        if definition.keyword.upper() not in given:
            continue
        text = format_value(definition, given.pop(definition.keyword.upper()))
        if text:
            parts.append(f"{definition.keyword}({text})")
    for keyword, value in given.items():
        if isinstance(value, (list, tuple)):
            text = " ".join(_plain(item) for item in value)
        else:
            text = _scalar(value)
        if text:
            parts.append(f"{keyword}({text})")
    return " ".join(parts)


def format_command(parameters: Mapping[str, Any], schema: CommandSchema,
                   label: Optional[str] = None) -> str:
    """
    Render a full logical command line.

    Args:
        parameters: Parameter Map
        schema: Command definition
        label: Optional label, written as "LABEL:"

    Returns:
        e.g. "LOOP: CALL PGM(MYLIB/MYPGM)"
    """
    parts = []
    if label:
        parts.append(f"{label}:")
    parts.append(schema.name)
    body = format_parameters(parameters, schema)
    if body:
        parts.append(body)
    return " ".join(parts)


__all__ = [
    "format_command",
    "format_parameters",
    "format_value",
]
