"""
Prompt Session (Host Surface state for one prompted command).

Holds the field values a form shows, how many instances each
repeatable parameter currently has, and which fields the user touched.
A session is created when a command is loaded into the form and torn
down by submit() or cancel().

ARCHITECTURAL RULE:
    The engines hold no state between calls. Everything a form needs to
    remember lives on a session object, never at module level.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from clprompt.backends.instructions import (
    InstructionKind,
    PopulationInstruction,
    element_path,
    instance_path,
    qualifier_path,
    simple_instance_path,
)
from clprompt.schema import (
    CommandSchema,
    ElementDefinition,
    ParameterDefinition,
    ParameterKind,
    QualifierDefinition,
)

logger = logging.getLogger(__name__)


class SessionClosedError(Exception):
    """Raised when a session is used after submit() or cancel()."""
    pass


class PromptSession:
    """
    Field state for one command being prompted.

    Properties:
        schema: Command definition the fields belong to
        fields: target path -> current value
        instance_counts: keyword -> number of instances shown
        touched: target paths edited by the user
        closed: True after submit() or cancel()
    """

    def __init__(self, schema: CommandSchema):
        self.schema = schema
        self.fields: Dict[str, str] = {}
        self.instance_counts: Dict[str, int] = {}
        self.touched: Set[str] = set()
        self.closed = False

    def _check_open(self) -> None:
        if self.closed:
            raise SessionClosedError(f"Prompt session for {self.schema.name} is closed")

    def apply(self, instructions: Iterable[PopulationInstruction]) -> None:
        """
        Reset the fields and replay a complete instruction sequence.

        Replaying the same sequence twice leaves the same state.
        """
        self._check_open()
        self.fields = {}
        self.instance_counts = {}
        self.touched = set()
        for instruction in instructions:
            if instruction.kind is InstructionKind.MATERIALIZE_INSTANCE:
                keyword = self.keyword_for(instruction.target_path)
                if keyword is not None:
                    self.instance_counts[keyword] = self.instance_counts.get(keyword, 1) + 1
                continue
            self.fields[instruction.target_path] = instruction.value
        logger.debug("Applied %d fields to %s session", len(self.fields), self.schema.name)

    def touch(self, path: str, value: str) -> None:
        """Record a user edit of one field."""
        self._check_open()
        self.fields[path] = value
        self.touched.add(path)

    def add_instance(self, keyword: str) -> int:
        """Grow a repeatable parameter by one instance; returns the new count."""
        self._check_open()
        definition = self.schema.get_parameter(keyword)
        if definition is None or not definition.is_repeatable:
            raise KeyError(f"{keyword} is not a repeatable parameter of {self.schema.name}")
        count = min(self.instance_counts.get(definition.keyword, 1) + 1, definition.max_occurs)
        self.instance_counts[definition.keyword] = count
        return count

    def keyword_for(self, path: str) -> Optional[str]:
        """Keyword a target path belongs to (longest matching keyword wins)."""
        best = None
        upper = path.upper()
        for keyword in self.schema.keywords:
            kwd = keyword.upper()
            if upper == kwd or upper.startswith(kwd + "_"):
                if best is None or len(kwd) > len(best):
                    best = keyword
        return best

    def changed_parameters(self) -> List[str]:
        """Keywords with at least one touched field, in declaration order."""
        self._check_open()
        changed = {self.keyword_for(path) for path in self.touched}
        return [keyword for keyword in self.schema.keywords if keyword in changed]

    # =====================================================================
    # Fields → Parameter Map
    # =====================================================================

    def _value(self, path: str) -> Optional[str]:
        value = self.fields.get(path)
        if value is None or not value.strip():
            return None
        return value

    def _has_prefix(self, path: str) -> bool:
        prefix = path + "_"
        return any(key.startswith(prefix) for key in self.fields)

    def _read_qualified(self, base: str, qualifiers: List[QualifierDefinition]) -> Optional[List[str]]:
        count = len(qualifiers)
        if not count:
            while qualifier_path(base, count) in self.fields:
                count += 1
        segments = [self._value(qualifier_path(base, index)) or "" for index in range(count)]
        while segments and not segments[-1]:
            segments.pop()
        return segments or None

    def _read_plain(self, path: str) -> Any:
        if path in self.fields:
            return self._value(path)
        if qualifier_path(path, 0) in self.fields:
            return self._read_qualified(path, [])
        if not self._has_prefix(path):
            return None
        items = []
        index = 0
        while self._has_prefix(element_path(path, index)) or element_path(path, index) in self.fields:
            item = self._read_plain(element_path(path, index))
            items.append("" if item is None else item)
            index += 1
        while items and items[-1] == "":
            items.pop()
        return items or None

    def _read_element(self, path: str, definition: ElementDefinition) -> Any:
        if not definition.shape_known:
            return self._read_plain(path)
        if definition.kind is ParameterKind.QUALIFIED:
            return self._read_qualified(path, list(definition.qualifiers))
        if definition.kind is ParameterKind.ELEMENT_LIST:
            return self._read_elements(path, list(definition.elements))
        return self._value(path)

    def _read_elements(self, base: str, elements: List[ElementDefinition]) -> Optional[List[Any]]:
        if not elements:
            return self._read_plain(base)
        items = [self._read_element(element_path(base, index), definition)
                 for index, definition in enumerate(elements)]
        while items and items[-1] is None:
            items.pop()
        if not items:
            return None
        return ["" if item is None else item for item in items]

    def _read_instance(self, definition: ParameterDefinition, index: int) -> Any:
        keyword = definition.keyword
        kind = definition.value_kind
        if kind is ParameterKind.QUALIFIED:
            base = instance_path(keyword, index) if definition.is_repeatable else keyword
            return self._read_qualified(base, list(definition.qualifiers))
        if kind is ParameterKind.ELEMENT_LIST:
            return self._read_elements(instance_path(keyword, index), list(definition.elements))
        path = simple_instance_path(keyword, index) if definition.is_repeatable else keyword
        return self._value(path)

    def to_parameter_map(self) -> Dict[str, Any]:
        """
        Rebuild a Parameter Map from the current fields.

        Uses only the schema and the target path convention, so a map that
        went through generate_population() and apply() comes back with the
        same shape for every keyword.
        """
        self._check_open()
        result: Dict[str, Any] = {}
        for definition in self.schema.parameters:
            if definition.is_repeatable:
                count = self.instance_counts.get(definition.keyword, 1)
                instances = [self._read_instance(definition, index) for index in range(count)]
                instances = [instance for instance in instances if instance is not None]
                if instances:
                    result[definition.keyword] = instances
            else:
                value = self._read_instance(definition, 0)
                if value is not None:
                    result[definition.keyword] = value
        return result

    def submit(self) -> Dict[str, Any]:
        """Return the final Parameter Map and close the session."""
        parameters = self.to_parameter_map()
        self.closed = True
        logger.debug("Submitted %s session", self.schema.name)
        return parameters

    def cancel(self) -> None:
        self._check_open()
        self.closed = True
        logger.debug("Cancelled %s session", self.schema.name)


__all__ = [
    "PromptSession",
    "SessionClosedError",
]
