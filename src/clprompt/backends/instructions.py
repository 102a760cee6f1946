"""
Population instruction generator for CL command prompts.

Converts a Parameter Map into a flat, ordered list of "populate this
field with this value" instructions that a form can replay without any
structural knowledge of the command.

Target path convention:
    KWD                     simple parameter, or instance 0 of a repeatable simple one
    KWD_<i>                 instance i (i >= 1) of a repeatable simple parameter
    KWD_QUAL<q>             qualifier q of a qualified parameter
    KWD_INST<i>             repeat instance i (materialize target)
    KWD_INST<i>_QUAL<q>     qualifier q of instance i
    KWD_INST<i>_ELEM<e>     element e of instance i (element lists always carry _INST)
    ..._ELEM<e>_QUAL<q>     qualified element
    ..._ELEM<e>_ELEM<s>     nested element list

Ordering:
    declaration order of keywords, then instance, element and qualifier order.
    All materialize instructions of a keyword come before its field values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from clprompt.diagnostics import Diagnostic, DiagnosticKind, report
from clprompt.lexer import find_group_end, is_expression, split_top_level
from clprompt.schema import (
    CommandSchema,
    ElementDefinition,
    ParameterDefinition,
    ParameterKind,
    QualifierDefinition,
    resolve_nested_shape,
)

logger = logging.getLogger(__name__)


class InstructionKind(Enum):
    SIMPLE = "simple"
    QUALIFIED_SEGMENT = "qualified-segment"
    ELEMENT = "element"
    MATERIALIZE_INSTANCE = "materialize-instance"


class PopulationMethod(Enum):
    """How the form applies an instruction."""
    SELECTION = "selection"              # field offers a list of allowed values
    FREE_TEXT = "free-text"
    SYNTHETIC_CLICK = "synthetic-click"  # press "add" to grow a repeating group


@dataclass(frozen=True)
class PopulationInstruction:
    """
    One write-once field directive.

    Properties:
        kind: InstructionKind
        target_path: Field address, see the module docstring for the convention
        value: Value to write ("" clears the field)
        method: PopulationMethod
    """
    kind: InstructionKind
    target_path: str
    value: str
    method: PopulationMethod

    def to_dict(self) -> Dict[str, str]:
        return {
            "kind": self.kind.value,
            "targetPath": self.target_path,
            "value": self.value,
            "method": self.method.value,
        }


@dataclass
class GenerationOptions:
    """
    Generator tuning.

    legacy_text_elements: unpack "(A B)" strings found where an element
        list is expected (values written as free text before nesting was
        modelled)
    arity_fallback: treat two plain strings as a qualified name where the
        schema declares no sub-shape
    """
    legacy_text_elements: bool = True
    arity_fallback: bool = False


@dataclass
class GenerationResult:
    instructions: List[PopulationInstruction] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


# =========================================================================
# Path naming
# =========================================================================

def instance_path(keyword: str, index: int) -> str:
    return f"{keyword}_INST{index}"


def simple_instance_path(keyword: str, index: int) -> str:
    return keyword if index == 0 else f"{keyword}_{index}"


def element_path(base: str, index: int) -> str:
    return f"{base}_ELEM{index}"


def qualifier_path(base: str, index: int) -> str:
    return f"{base}_QUAL{index}"


# =========================================================================
# Legacy free-text element encoding
# =========================================================================

def is_legacy_text(value: str) -> bool:
    """True for a free-text value holding a parenthesized group, e.g. "(A B)"."""
    return "(" in value and not is_expression(value)


def unpack_legacy_text(value: str) -> List[str]:
    """Strip one layer of parentheses and split on blanks."""
    text = value.strip()
    if text.startswith("(") and find_group_end(text, 0) == len(text) - 1:
        text = text[1:-1]
    return split_top_level(text)


def split_qualified_text(value: str) -> List[str]:
    """Split "LIB/OBJ" into ["OBJ", "LIB"]; expressions are never split."""
    if is_expression(value):
        return [value]
    segments = split_top_level(value, "/")
    segments.reverse()
    return segments


# =========================================================================
# Generator
# =========================================================================

class _Generator:
    def __init__(self, schema: CommandSchema, options: GenerationOptions):
        self.schema = schema
        self.options = options
        self.result = GenerationResult()

    def flag(self, kind: DiagnosticKind, message: str, keyword: Optional[str] = None) -> None:
        report(self.result.diagnostics, kind, message, keyword=keyword, logger=logger)

    def emit(self, kind: InstructionKind, path: str, value: str, method: PopulationMethod) -> None:
        self.result.instructions.append(PopulationInstruction(kind, path, value, method))

    @staticmethod
    def method_for(values: Sequence[str]) -> PopulationMethod:
        return PopulationMethod.SELECTION if values else PopulationMethod.FREE_TEXT

    def as_text(self, value: Any, keyword: str) -> str:
        """Coerce a value to a scalar string."""
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, (list, tuple)):
            self.flag(DiagnosticKind.SHAPE_MISMATCH,
                      f"list {list(value)!r} given where a single value is declared; joined",
                      keyword=keyword)
            return " ".join(self.as_text(item, keyword) for item in value if item is not None)
        return str(value)

    def scalar(self, kind: InstructionKind, path: str, value: Any,
               values: Sequence[str], keyword: str) -> None:
        text = self.as_text(value, keyword)
        if not text.strip():
            return
        self.emit(kind, path, text, self.method_for(values))

    # --- command level ---------------------------------------------------

    def generate(self, parameters: Mapping[str, Any]) -> GenerationResult:
        given: Dict[str, Any] = {}
        for key, value in parameters.items():
            if self.schema.get_parameter(key) is None:
                self.flag(DiagnosticKind.SCHEMA_MISMATCH,
                          f"no definition for keyword {key}; value ignored", keyword=key)
                continue
            given[key.upper()] = value

        for definition in self.schema.parameters:
            value = given.get(definition.keyword.upper())
            if value is None:
                continue
            if definition.is_repeatable:
                self.repeatable(definition, value)
            else:
                self.instance(definition, value, 0)
        return self.result

    def repeatable(self, definition: ParameterDefinition, value: Any) -> None:
        instances = list(value) if isinstance(value, (list, tuple)) else [value]
        if len(instances) > definition.max_occurs:
            self.flag(DiagnosticKind.SHAPE_OVERFLOW,
                      f"{len(instances)} instances given, only {definition.max_occurs} allowed; extra dropped",
                      keyword=definition.keyword)
            instances = instances[:definition.max_occurs]

        for index in range(1, len(instances)):
            self.emit(InstructionKind.MATERIALIZE_INSTANCE, instance_path(definition.keyword, index),
                      "", PopulationMethod.SYNTHETIC_CLICK)
        for index, instance in enumerate(instances):
            self.instance(definition, instance, index)

    def instance(self, definition: ParameterDefinition, value: Any, index: int) -> None:
        keyword = definition.keyword
        kind = definition.value_kind

        if kind is ParameterKind.QUALIFIED:
            base = instance_path(keyword, index) if definition.is_repeatable else keyword
            self.qualified(base, definition.qualifiers, value, definition.allowed_values, keyword)
        elif kind is ParameterKind.ELEMENT_LIST:
            self.elements(instance_path(keyword, index), definition.elements, value,
                          definition.allowed_values, keyword)
        else:
            path = simple_instance_path(keyword, index) if definition.is_repeatable else keyword
            self.scalar(InstructionKind.SIMPLE, path, value, definition.scalar_values(), keyword)

    # --- value shapes ----------------------------------------------------

    def segments_of(self, value: Any, keyword: str) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return split_qualified_text(value)
        if isinstance(value, (list, tuple)):
            return [self.as_text(item, keyword) for item in value]
        return [str(value)]

    def qualified(self, base: str, qualifiers: Sequence[QualifierDefinition], value: Any,
                  lead_values: Sequence[str], keyword: str) -> None:
        segments = self.segments_of(value, keyword)
        count = len(qualifiers) or len(segments)
        if len(segments) > count:
            self.flag(DiagnosticKind.SHAPE_OVERFLOW,
                      f"{len(segments)} qualifiers given, {count} declared; extra dropped",
                      keyword=keyword)
            segments = segments[:count]

        for index in range(count):
            segment = segments[index] if index < len(segments) else ""
            values: Sequence[str] = ()
            if index < len(qualifiers):
                values = qualifiers[index].allowed_values
            if index == 0:
                values = tuple(lead_values) + tuple(values)
            # Missing segments are written as "" so no stale text survives.
            self.emit(InstructionKind.QUALIFIED_SEGMENT, qualifier_path(base, index),
                      segment, self.method_for(values))

    def items_of(self, value: Any, keyword: str) -> List[Any]:
        """An element-list value as a list of elements."""
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return list(value)
        text = self.as_text(value, keyword)
        if self.options.legacy_text_elements and is_legacy_text(text):
            return unpack_legacy_text(text)
        return [text]

    def elements(self, base: str, elements: Sequence[ElementDefinition], value: Any,
                 lead_values: Sequence[str], keyword: str) -> None:
        items = self.items_of(value, keyword)
        if not elements:
            for index, item in enumerate(items):
                self.plain(element_path(base, index), item, keyword)
            return

        if len(items) > len(elements):
            self.flag(DiagnosticKind.SHAPE_OVERFLOW,
                      f"{len(items)} elements given, {len(elements)} declared; extra dropped",
                      keyword=keyword)
            items = items[:len(elements)]
        for index, item in enumerate(items):
            extra = tuple(lead_values) if index == 0 else ()
            self.element(element_path(base, index), elements[index], item, extra, keyword)

    def element(self, path: str, definition: ElementDefinition, value: Any,
                lead_values: Sequence[str], keyword: str) -> None:
        if not definition.shape_known:
            self.unknown_element(path, definition, value, keyword)
            return

        kind = definition.kind
        if kind is ParameterKind.QUALIFIED:
            self.qualified(path, definition.qualifiers, value,
                           tuple(lead_values) + definition.single_values, keyword)
        elif kind is ParameterKind.ELEMENT_LIST:
            self.elements(path, definition.elements, value,
                          tuple(lead_values) + definition.single_values, keyword)
        else:
            self.scalar(InstructionKind.ELEMENT, path, value,
                        tuple(lead_values) + definition.allowed_values, keyword)

    def unknown_element(self, path: str, definition: ElementDefinition, value: Any, keyword: str) -> None:
        """Nested value whose sub-shape the schema does not declare."""
        if isinstance(value, str):
            if self.options.legacy_text_elements and is_legacy_text(value):
                for index, item in enumerate(unpack_legacy_text(value)):
                    self.plain(element_path(path, index), item, keyword)
            else:
                self.scalar(InstructionKind.ELEMENT, path, value, definition.allowed_values, keyword)
            return

        items = list(value) if isinstance(value, (list, tuple)) else [value]
        resolution = resolve_nested_shape(definition, items, self.options.arity_fallback)
        self.flag(DiagnosticKind.AMBIGUOUS_NESTING, resolution.description, keyword=keyword)
        if resolution.kind is ParameterKind.QUALIFIED:
            self.qualified(path, (), items, definition.allowed_values, keyword)
            return
        for index, item in enumerate(items):
            self.plain(element_path(path, index), item, keyword)

    def plain(self, path: str, value: Any, keyword: str) -> None:
        """An element with no definition: nested lists recurse, scalars are free text."""
        if isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                self.plain(element_path(path, index), item, keyword)
        else:
            self.scalar(InstructionKind.ELEMENT, path, value, (), keyword)


def generate_population(parameters: Mapping[str, Any], schema: CommandSchema,
                        options: Optional[GenerationOptions] = None) -> GenerationResult:
    """
    Generate population instructions for a Parameter Map.

    Pure function of its inputs: the same map and schema always produce
    the same instruction sequence.

    Args:
        parameters: Parameter Map (keyword -> value)
        schema: Command definition that shapes every value
        options: GenerationOptions (defaults apply when None)

    Returns:
        GenerationResult with the ordered instructions and any diagnostics
    """
    return _Generator(schema, options or GenerationOptions()).generate(parameters)


def generate_instructions(parameters: Mapping[str, Any], schema: CommandSchema,
                          options: Optional[GenerationOptions] = None) -> List[PopulationInstruction]:
    """Instructions only, diagnostics are logged and discarded."""
    return generate_population(parameters, schema, options).instructions


__all__ = [
    "GenerationOptions",
    "GenerationResult",
    "InstructionKind",
    "PopulationInstruction",
    "PopulationMethod",
    "element_path",
    "generate_instructions",
    "generate_population",
    "instance_path",
    "qualifier_path",
    "simple_instance_path",
    "unpack_legacy_text",
]
