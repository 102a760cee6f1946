"""
Structural Parser (tokens + Command Schema → Parameter Map).

Value shapes in the Parameter Map, by the definition's kind:
    SIMPLE        "MYPGM"
    QUALIFIED     ["MYPGM", "MYLIB"]            (most-significant segment first)
    ELEMENT_LIST  [["FILEA", "LIBA"], "*FILE"]  (one entry per element)
    repeatable    [instance, instance, ...]     (each instance shaped as above)

Syntax Notes:
    - KEYWORD(value) groups are matched to definitions case-insensitively
    - Leading values without a keyword fill positional definitions in order
    - Qualified names split on "/" outside quotes, parentheses and expressions
    - Parameters absent from the text are omitted, never defaulted

The parser never raises on content: unknown keywords, extra segments,
elements or instances are dropped and reported as diagnostics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from clprompt.diagnostics import Diagnostic, DiagnosticKind, report
from clprompt.lexer import tokenize
from clprompt.schema import (
    CaseRule,
    CommandSchema,
    ElementDefinition,
    ParameterDefinition,
    ParameterKind,
    QualifierDefinition,
    resolve_nested_shape,
)
from clprompt.tokens import Token, TokenType

logger = logging.getLogger(__name__)


@dataclass
class ParseOptions:
    """
    Parser tuning.

    normalize_case: fold unquoted special values of monocase definitions
    arity_fallback: treat LIB/OBJ as qualified where the schema declares
        no sub-shape (off by default; the schema should decide)
    """
    normalize_case: bool = True
    arity_fallback: bool = False


@dataclass
class ParseResult:
    """Parameter Map plus everything learned while building it."""
    parameters: Dict[str, Any] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    label: Optional[str] = None
    command: Optional[str] = None


# =========================================================================
# Token tree
# =========================================================================

_WORD_TYPES = (
    TokenType.BARE,
    TokenType.VARIABLE,
    TokenType.QUOTED,
    TokenType.QUALIFIER_SEPARATOR,
)


@dataclass
class _Word:
    """Adjacent tokens with no blank between them, e.g. MYLIB/MYPGM."""
    tokens: List[Token]

    @property
    def start(self) -> int:
        return self.tokens[0].start

    @property
    def end(self) -> int:
        return self.tokens[-1].end


@dataclass
class _Atom:
    """A single EXPRESSION or OPERATOR token."""
    token: Token

    @property
    def start(self) -> int:
        return self.token.start

    @property
    def end(self) -> int:
        return self.token.end


@dataclass
class _Group:
    children: List["_Node"]
    start: int
    end: int
    closed: bool = True


@dataclass
class _Keyword:
    token: Token
    group: _Group


_Node = Union[_Word, _Atom, _Group, _Keyword]


def _build_nodes(tokens: Sequence[Token], index: int, depth: int) -> Tuple[List[_Node], int, Optional[Token]]:
    """Fold tokens into nodes until the CLOSE ending this depth."""
    nodes: List[_Node] = []
    while index < len(tokens):
        tok = tokens[index]
        if tok.type is TokenType.CLOSE:
            if depth > 0:
                return nodes, index + 1, tok
            index += 1
            continue
        if tok.type is TokenType.OPEN:
            group, index = _build_group(tokens, index, depth)
            nodes.append(group)
            continue
        if tok.type is TokenType.KEYWORD and index + 1 < len(tokens) \
                and tokens[index + 1].type is TokenType.OPEN:
            group, index = _build_group(tokens, index + 1, depth)
            nodes.append(_Keyword(tok, group))
            continue
        if tok.type in (TokenType.EXPRESSION, TokenType.OPERATOR):
            nodes.append(_Atom(tok))
        elif nodes and isinstance(nodes[-1], _Word) and nodes[-1].end == tok.start:
            nodes[-1].tokens.append(tok)
        else:
            nodes.append(_Word([tok]))
        index += 1
    return nodes, index, None


def _build_group(tokens: Sequence[Token], open_index: int, depth: int) -> Tuple[_Group, int]:
    opener = tokens[open_index]
    children, index, close = _build_nodes(tokens, open_index + 1, depth + 1)
    if close is not None:
        end = close.end
    else:
        end = max([opener.end] + [child.end for child in children])
    return _Group(children, opener.start, end, closed=close is not None), index


# =========================================================================
# Parser
# =========================================================================

class _Parser:
    def __init__(self, schema: CommandSchema, source: str, options: ParseOptions):
        self.schema = schema
        self.source = source
        self.options = options
        self.diagnostics: List[Diagnostic] = []

    # --- helpers ---------------------------------------------------------

    def text(self, node: _Node) -> str:
        if isinstance(node, _Keyword):
            return self.source[node.token.start:node.group.end]
        return self.source[node.start:node.end]

    def region_text(self, region: Sequence[_Node]) -> str:
        if not region:
            return ""
        return self.source[region[0].start:region[-1].end].strip()

    def flag(self, kind: DiagnosticKind, message: str, keyword: Optional[str] = None,
             span: Optional[Tuple[int, int]] = None) -> None:
        report(self.diagnostics, kind, message, keyword=keyword, span=span, logger=logger)

    def fold(self, text: str, values: Sequence[str], case: CaseRule) -> str:
        """Replace an unquoted special value with its declared casing."""
        if not self.options.normalize_case or case is CaseRule.MIXED:
            return text
        upper = text.upper()
        for value in values:
            if value.upper() == upper:
                return value
        return text

    @staticmethod
    def is_bare(node: _Node) -> bool:
        return isinstance(node, _Word) and len(node.tokens) == 1 \
            and node.tokens[0].type is TokenType.BARE

    # --- command level ---------------------------------------------------

    def parse(self, tokens: Sequence[Token]) -> ParseResult:
        nodes, _, _ = _build_nodes(tokens, 0, 0)
        result = ParseResult()
        i = 0

        if nodes and self.is_bare(nodes[0]) and self.text(nodes[0]).endswith(":"):
            result.label = self.text(nodes[0])[:-1]
            i = 1
        if i < len(nodes) and isinstance(nodes[i], _Word) and self.schema.matches_name(self.text(nodes[i])):
            result.command = self.text(nodes[i])
            i += 1

        values: Dict[str, Any] = {}
        positional = list(self.schema.positional_parameters())
        seen_keyword = False

        while i < len(nodes):
            node = nodes[i]
            if isinstance(node, _Keyword):
                seen_keyword = True
                self.parse_keyword(node, values)
                i += 1
                continue

            j = i + 1
            while j < len(nodes) and not isinstance(nodes[j], _Keyword) and (
                    self.is_operator(nodes[j]) or self.is_operator(nodes[j - 1])):
                j += 1
            unit = nodes[i:j]
            i = j

            if seen_keyword:
                self.flag(DiagnosticKind.SCHEMA_MISMATCH,
                          f"positional value {self.region_text(unit)!r} after a keyword was dropped",
                          span=(unit[0].start, unit[-1].end))
                continue
            while positional and positional[0].keyword in values:
                positional.pop(0)
            if not positional:
                self.flag(DiagnosticKind.SCHEMA_MISMATCH,
                          f"no positional parameter left for {self.region_text(unit)!r}",
                          span=(unit[0].start, unit[-1].end))
                continue
            definition = positional.pop(0)
            values[definition.keyword] = self.parse_parameter(definition, self.positional_region(unit))

        result.parameters = {kwd: values[kwd] for kwd in self.schema.keywords if kwd in values}
        result.diagnostics = self.diagnostics
        return result

    @staticmethod
    def is_operator(node: _Node) -> bool:
        return isinstance(node, _Atom) and node.token.type is TokenType.OPERATOR

    def positional_region(self, unit: List[_Node]) -> List[_Node]:
        if len(unit) > 1:
            start, end = unit[0].start, unit[-1].end
            merged = Token(TokenType.EXPRESSION, self.source[start:end], start, end)
            return [_Atom(merged)]
        if isinstance(unit[0], _Group):
            return unit[0].children
        return unit

    def parse_keyword(self, node: _Keyword, values: Dict[str, Any]) -> None:
        keyword = node.token.text
        definition = self.schema.get_parameter(keyword)
        if definition is None:
            self.flag(DiagnosticKind.SCHEMA_MISMATCH,
                      f"keyword {keyword.upper()} is not defined for {self.schema.name or 'this command'}",
                      keyword=keyword.upper(), span=(node.token.start, node.group.end))
            return
        if definition.keyword in values:
            self.flag(DiagnosticKind.SCHEMA_MISMATCH,
                      "keyword given more than once, last value kept",
                      keyword=definition.keyword, span=(node.token.start, node.group.end))
        values[definition.keyword] = self.parse_parameter(definition, node.group.children)

    # --- parameter level -------------------------------------------------

    def parse_parameter(self, definition: ParameterDefinition, region: List[_Node]) -> Any:
        if not definition.is_repeatable:
            return self.parse_instance(definition, region)

        instances = self.split_instances(definition, region)
        if len(instances) > definition.max_occurs:
            self.flag(DiagnosticKind.SHAPE_OVERFLOW,
                      f"{len(instances)} values given, only {definition.max_occurs} allowed; extra dropped",
                      keyword=definition.keyword)
            instances = instances[:definition.max_occurs]
        return [self.parse_instance(definition, instance) for instance in instances]

    def split_instances(self, definition: ParameterDefinition, region: List[_Node]) -> List[List[_Node]]:
        """
        One entry per space- or parenthesis-delimited instance.

        A multi-element list written without its own parentheses,
        OMITOBJ(LIB/OBJ *FILE), is a single instance.
        """
        kind = definition.value_kind
        if kind is ParameterKind.ELEMENT_LIST and len(definition.elements) > 1 \
                and region and not any(isinstance(node, _Group) for node in region):
            return [list(region)]
        instances = []
        for node in region:
            if isinstance(node, _Group) and kind is not ParameterKind.SIMPLE:
                instances.append(node.children)
            else:
                instances.append([node])
        return instances

    def parse_instance(self, definition: ParameterDefinition, region: List[_Node]) -> Any:
        kind = definition.value_kind
        if kind is ParameterKind.QUALIFIED:
            return self.parse_qualified(region, definition.qualifiers,
                                        definition.allowed_values, definition.keyword)
        if kind is ParameterKind.ELEMENT_LIST:
            return self.parse_elements(region, definition.elements,
                                       definition.allowed_values, definition.keyword)
        return self.parse_scalar(region, definition.scalar_values(), definition.scalar_case())

    # --- value shapes ----------------------------------------------------

    def parse_scalar(self, region: Sequence[_Node], values: Sequence[str], case: CaseRule) -> str:
        text = self.region_text(region)
        if len(region) == 1 and self.is_bare(region[0]):
            return self.fold(text, values, case)
        return text

    def split_segments(self, node: _Node) -> List[Tuple[str, bool]]:
        """Split a word on "/" into (text, foldable) pairs, left to right."""
        if not isinstance(node, _Word):
            return [(self.text(node), False)]
        segments: List[Tuple[str, bool]] = []
        current: List[Token] = []
        for tok in node.tokens + [None]:
            if tok is None or tok.type is TokenType.QUALIFIER_SEPARATOR:
                if current:
                    text = self.source[current[0].start:current[-1].end]
                    foldable = len(current) == 1 and current[0].type is TokenType.BARE
                    segments.append((text, foldable))
                else:
                    segments.append(("", False))
                current = []
            else:
                current.append(tok)
        return segments

    def parse_qualified(self, region: Sequence[_Node], qualifiers: Sequence[QualifierDefinition],
                        lead_values: Sequence[str], keyword: str) -> List[str]:
        if not region:
            return []
        node = region[0]
        if len(region) > 1:
            self.flag(DiagnosticKind.SHAPE_OVERFLOW,
                      f"extra value(s) after qualified name dropped: {self.region_text(region[1:])!r}",
                      keyword=keyword, span=(region[1].start, region[-1].end))
        if isinstance(node, _Group):
            return self.parse_qualified(node.children, qualifiers, lead_values, keyword)

        segments = self.split_segments(node)
        segments.reverse()
        while segments and segments[-1][0] == "":
            segments.pop()
        if qualifiers and len(segments) > len(qualifiers):
            self.flag(DiagnosticKind.SHAPE_OVERFLOW,
                      f"{len(segments)} qualifiers given, {len(qualifiers)} declared; extra dropped",
                      keyword=keyword, span=(node.start, node.end))
            segments = segments[:len(qualifiers)]

        result = []
        for index, (text, foldable) in enumerate(segments):
            if foldable and index < len(qualifiers):
                qualifier = qualifiers[index]
                values = tuple(lead_values) + qualifier.allowed_values if index == 0 else qualifier.allowed_values
                text = self.fold(text, values, qualifier.case)
            result.append(text)
        return result

    def parse_elements(self, region: Sequence[_Node], elements: Sequence[ElementDefinition],
                       lead_values: Sequence[str], keyword: str) -> List[Any]:
        nodes = list(region)
        if not elements:
            return [self.text(node) for node in nodes]

        result: List[Any] = []
        for index, element in enumerate(elements):
            if not nodes:
                break
            node = nodes.pop(0)
            extra = tuple(lead_values) if index == 0 else ()
            result.append(self.parse_element(node, element, extra, keyword))
        if nodes:
            self.flag(DiagnosticKind.SHAPE_OVERFLOW,
                      f"{len(nodes)} element(s) beyond the {len(elements)} declared were dropped",
                      keyword=keyword, span=(nodes[0].start, nodes[-1].end))
        return result

    def parse_element(self, node: _Node, element: ElementDefinition,
                      lead_values: Sequence[str], keyword: str) -> Any:
        if not element.shape_known:
            return self.parse_unknown_element(node, element, keyword)

        region = node.children if isinstance(node, _Group) else [node]
        if element.kind is ParameterKind.QUALIFIED:
            return self.parse_qualified(region, element.qualifiers,
                                        tuple(lead_values) + element.single_values, keyword)
        if element.kind is ParameterKind.ELEMENT_LIST:
            return self.parse_elements(region, element.elements,
                                       tuple(lead_values) + element.single_values, keyword)
        return self.parse_scalar([node], tuple(lead_values) + element.allowed_values, element.case)

    def parse_unknown_element(self, node: _Node, element: ElementDefinition, keyword: str) -> Any:
        """Nested value whose sub-shape the schema does not declare."""
        if isinstance(node, _Group):
            items = [self.text(child) for child in node.children]
        else:
            items = [text for text, _ in reversed(self.split_segments(node))]
        resolution = resolve_nested_shape(element, items, self.options.arity_fallback)

        if isinstance(node, _Group) or resolution.kind is ParameterKind.QUALIFIED:
            value: Any = items
            message = resolution.description
        else:
            value = self.text(node)
            message = "undeclared sub-shape kept as text"
        self.flag(DiagnosticKind.AMBIGUOUS_NESTING, message,
                  keyword=keyword, span=(node.start, node.end))
        return value


def parse_tokens(tokens: Sequence[Token], schema: CommandSchema, source: str,
                 options: Optional[ParseOptions] = None) -> ParseResult:
    """
    Build a Parameter Map from an already-lexed token sequence.

    Args:
        tokens: Output of the lexer for source
        schema: Command definition to shape values by
        source: The text the tokens were produced from
        options: ParseOptions (defaults apply when None)

    Returns:
        ParseResult with parameters in schema declaration order
    """
    return _Parser(schema, source, options or ParseOptions()).parse(tokens)


def parse_command(text: str, schema: CommandSchema,
                  options: Optional[ParseOptions] = None) -> ParseResult:
    """
    Parse one logical CL command line against its schema.

    The text may start with a label ("LOOP:") and the command name;
    both are optional.

    Args:
        text: Command text, continuations already joined
        schema: Command definition
        options: ParseOptions

    Returns:
        ParseResult; lexer diagnostics come first in result.diagnostics
    """
    source = text or ""
    lexed = tokenize(source)
    result = parse_tokens(lexed.tokens, schema, source, options)
    result.diagnostics = lexed.diagnostics + result.diagnostics
    return result


__all__ = [
    "ParseOptions",
    "ParseResult",
    "parse_command",
    "parse_tokens",
]
