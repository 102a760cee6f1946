"""
Command Schema Model

Read-only, in-memory view of a command's parameter definitions.

These are pure data classes representing:
    - Parameters (keyword, kind, occurrence, position)
    - Qualifiers (segments of a qualified name)
    - Elements (positional sub-values of an element list)
    - Commands (root container)

ARCHITECTURAL RULE:
    These objects:
        - Are immutable once loaded
        - Declare shape, they never infer it from parsed text
        - Know nothing about tokens, forms or instructions
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Tuple


class ParameterKind(Enum):
    """Declared value shape of a parameter or element."""

    SIMPLE = "SIMPLE"
    QUALIFIED = "QUAL"
    ELEMENT_LIST = "ELEM"


class CaseRule(Enum):
    """Case-folding policy for unquoted values."""

    MONO = "MONO"
    MIXED = "MIXED"


def _dedupe(values) -> Tuple[str, ...]:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return tuple(seen)


@dataclass(frozen=True)
class QualifierDefinition:
    """
    One segment of a qualified name, e.g. the library of LIB/OBJ.

    Qualifiers are declared most-significant first: the object name is
    qualifier 0, its library is qualifier 1.
    """

    prompt: str = ""
    data_type: Optional[str] = None
    default: Optional[str] = None
    special_values: Tuple[str, ...] = ()
    values: Tuple[str, ...] = ()
    restricted: bool = False
    case: CaseRule = CaseRule.MONO

    @property
    def kind(self) -> ParameterKind:
        return ParameterKind.SIMPLE

    @property
    def allowed_values(self) -> Tuple[str, ...]:
        return _dedupe(self.special_values + self.values)


@dataclass(frozen=True)
class ElementDefinition:
    """
    One positional sub-value of an element list.

    An element may itself be qualified or a nested element list.

    Properties:
        prompt: Prompt text
        data_type: Declared type from the command definition ("NAME", "QUAL", "ELEM", ...)
        default: Default value (Host Surface concern, never injected by parsing)
        special_values: Special values such as *ALL
        single_values: Values that stand alone in place of the whole element
        values: Restricted value list
        case: Case-folding policy
        qualifiers: Qualifier definitions when the element is qualified
        elements: Nested element definitions when the element is itself a list

    IMPORTANT:
        An element declared as QUAL or ELEM without sub-definitions has an
        unknown sub-shape. It is the only place where shape may have to be
        resolved without the schema's help.
    """

    prompt: str = ""
    data_type: Optional[str] = None
    default: Optional[str] = None
    special_values: Tuple[str, ...] = ()
    single_values: Tuple[str, ...] = ()
    values: Tuple[str, ...] = ()
    restricted: bool = False
    case: CaseRule = CaseRule.MONO
    qualifiers: Tuple[QualifierDefinition, ...] = ()
    elements: Tuple["ElementDefinition", ...] = ()

    @property
    def kind(self) -> ParameterKind:
        if self.qualifiers:
            return ParameterKind.QUALIFIED
        if self.elements or not self.shape_known:
            return ParameterKind.ELEMENT_LIST
        return ParameterKind.SIMPLE

    @property
    def shape_known(self) -> bool:
        declared = (self.data_type or "").upper()
        if declared == "QUAL" and not self.qualifiers:
            return False
        if declared == "ELEM" and not self.elements:
            return False
        return True

    @property
    def allowed_values(self) -> Tuple[str, ...]:
        return _dedupe(self.special_values + self.single_values + self.values)


@dataclass(frozen=True)
class ParameterDefinition:
    """
    Declares one parameter of a command.

    Properties:
        keyword:
            Unique identifier, e.g. "PGM"

        kind:
            Declared shape: SIMPLE, QUALIFIED or ELEMENT_LIST

        min_occurs / max_occurs:
            Occurrence bounds. max_occurs > 1 makes the parameter repeatable:
            its value becomes an ordered list of instances, each shaped by kind.

        position:
            Positional number (PosNbr); the keyword may be omitted in source
            text when the value appears in this position.

        default / constant:
            Default and constant values, carried for the Host Surface

        special_values / single_values / values:
            Allowed values; single values replace the whole value

        case:
            MONO folds unquoted special values to their declared casing

        qualifiers / elements:
            Sub-definitions for QUALIFIED and ELEMENT_LIST kinds

    INVARIANT:
        Shape is declared here and only validated against text,
        never inferred from it.
    """

    keyword: str
    kind: ParameterKind = ParameterKind.SIMPLE
    prompt: str = ""
    data_type: Optional[str] = None
    min_occurs: int = 0
    max_occurs: int = 1
    position: Optional[int] = None
    default: Optional[str] = None
    constant: Optional[str] = None
    special_values: Tuple[str, ...] = ()
    single_values: Tuple[str, ...] = ()
    values: Tuple[str, ...] = ()
    restricted: bool = False
    case: CaseRule = CaseRule.MONO
    qualifiers: Tuple[QualifierDefinition, ...] = ()
    elements: Tuple[ElementDefinition, ...] = ()

    @property
    def is_repeatable(self) -> bool:
        return self.max_occurs > 1

    @property
    def is_positional(self) -> bool:
        return self.position is not None and self.position > 0

    @property
    def allowed_values(self) -> Tuple[str, ...]:
        return _dedupe(self.special_values + self.single_values + self.values)

    @property
    def sole_element(self) -> Optional[ElementDefinition]:
        """
        The lone simple element of a one-element list, if that is the shape.

        CALL PARM is declared as a list of one simple element; each instance
        of such a parameter carries one scalar.
        """
        if self.kind is not ParameterKind.ELEMENT_LIST or len(self.elements) != 1:
            return None
        only = self.elements[0]
        if only.kind is ParameterKind.SIMPLE and only.shape_known:
            return only
        return None

    @property
    def value_kind(self) -> ParameterKind:
        """Shape of one instance of this parameter's value."""
        if self.sole_element is not None:
            return ParameterKind.SIMPLE
        return self.kind

    def scalar_values(self) -> Tuple[str, ...]:
        """Values a scalar instance of this parameter may be folded to."""
        only = self.sole_element
        if only is not None:
            return _dedupe(self.allowed_values + only.allowed_values)
        return self.allowed_values

    def scalar_case(self) -> CaseRule:
        only = self.sole_element
        return only.case if only is not None else self.case


@dataclass(frozen=True)
class CommandSchema:
    """
    Root container for one command's definition.

    Parameters are kept in declaration order; this order drives the
    ordering of Parameter Maps and population instructions.

    Properties:
        name: Command name, e.g. "CALL"
        parameters: Parameter definitions in declaration order
        max_positional: Highest position that may be given positionally
        prompt: Command prompt text
        library: Library the definition was retrieved from (optional)
    """

    name: str
    parameters: Tuple[ParameterDefinition, ...] = ()
    max_positional: Optional[int] = None
    prompt: str = ""
    library: Optional[str] = None

    def get_parameter(self, keyword: str) -> Optional[ParameterDefinition]:
        """
        Retrieve a parameter definition by keyword (case-insensitive).

        Returns:
            ParameterDefinition or None if not found
        """
        wanted = keyword.upper()
        for parm in self.parameters:
            if parm.keyword.upper() == wanted:
                return parm
        return None

    @property
    def keywords(self) -> List[str]:
        return [parm.keyword for parm in self.parameters]

    def positional_parameters(self) -> List[ParameterDefinition]:
        """Positional definitions in position order, capped at max_positional."""
        positional = [parm for parm in self.parameters if parm.is_positional]
        positional.sort(key=lambda parm: parm.position)
        if self.max_positional is not None:
            positional = [parm for parm in positional if parm.position <= self.max_positional]
        return positional

    def matches_name(self, text: str) -> bool:
        """True when text names this command, optionally library-qualified."""
        if not self.name or not text:
            return False
        return text.rsplit("/", 1)[-1].upper() == self.name.upper()


@dataclass(frozen=True)
class ShapeResolution:
    """Outcome of resolving a nested value's shape."""

    kind: ParameterKind
    ambiguous: bool = False

    @property
    def description(self) -> str:
        """Diagnostic text both engines use for an undeclared sub-shape."""
        if self.kind is ParameterKind.QUALIFIED:
            return "undeclared sub-shape with two values treated as a qualified name"
        return "undeclared sub-shape treated as a plain element list"


def resolve_nested_shape(definition: ElementDefinition, value: Any,
                         arity_fallback: bool = False) -> ShapeResolution:
    """
    Decide whether a nested value is qualified or a plain element list.

    Both engines go through this function so parsing and generation stay
    shape-consistent.

    Order of precedence:
        1. The schema's declared sub-shape
        2. With arity_fallback: exactly two plain strings -> QUALIFIED
        3. Plain element list

    Steps 2 and 3 are flagged as ambiguous.
    """
    if definition.shape_known:
        return ShapeResolution(kind=definition.kind)
    if arity_fallback and is_plain_pair(value):
        return ShapeResolution(kind=ParameterKind.QUALIFIED, ambiguous=True)
    return ShapeResolution(kind=ParameterKind.ELEMENT_LIST, ambiguous=True)


def is_plain_pair(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) == 2
        and all(isinstance(item, str) for item in value)
    )
