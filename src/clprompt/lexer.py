"""
CL Lexer (raw command text → tokens).

Rules:
    - Whitespace outside quotes and parentheses separates tokens
    - A quoted region is one QUOTED token; a doubled quote is a literal quote
    - An identifier immediately followed by "(" at depth 0 is a KEYWORD
    - "&NAME" is a VARIABLE; "/" is a QUALIFIER_SEPARATOR
    - A parenthesized group whose top level holds an expression operator or a
      function-call form becomes one EXPRESSION token, so structural parsing
      never splits expression internals into elements or qualifier segments

The lexer never raises. Unclassifiable spans become BARE tokens and
malformed input is reported through diagnostics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from clprompt.diagnostics import Diagnostic, DiagnosticKind, report
from clprompt.tokens import (
    KEYWORD_RE,
    VARIABLE_RE,
    Token,
    TokenType,
    contains_operator,
    is_operator,
)

logger = logging.getLogger(__name__)

QUOTES = ("'", '"')
_BARE_STOP = set(" \t\r\n()/") | set(QUOTES)


@dataclass
class LexResult:
    """Tokens plus the diagnostics raised while producing them."""
    tokens: List[Token] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


def find_quote_end(text: str, start: int, limit: Optional[int] = None) -> Optional[int]:
    """
    Index one past the closing quote of the region opening at start.

    Returns None when the region is unterminated.
    """
    limit = len(text) if limit is None else limit
    quote = text[start]
    i = start + 1
    while i < limit:
        if text[i] == quote:
            if i + 1 < limit and text[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    return None


def find_group_end(text: str, open_index: int, limit: Optional[int] = None) -> Optional[int]:
    """Index of the parenthesis closing the group opened at open_index."""
    limit = len(text) if limit is None else limit
    depth = 0
    i = open_index
    while i < limit:
        ch = text[i]
        if ch in QUOTES:
            end = find_quote_end(text, i, limit)
            if end is None:
                return None
            i = end
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def top_level_text(content: str) -> str:
    """
    The depth-0, unquoted characters of content.

    Quoted regions and the insides of nested groups are blanked out; the
    opening parenthesis of a nested group is kept so that a function-call
    form ("%SST(") stays visible.
    """
    out = []
    depth = 0
    i = 0
    while i < len(content):
        ch = content[i]
        if ch in QUOTES:
            end = find_quote_end(content, i) or len(content)
            out.append(" " * (end - i))
            i = end
            continue
        if ch == "(":
            out.append("(" if depth == 0 else " ")
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)
            out.append(" ")
        else:
            out.append(ch if depth == 0 else " ")
        i += 1
    return "".join(out)


def is_expression(content: str) -> bool:
    """
    True when a group's content must be kept as one EXPRESSION token.

    A lone operator word (COMP(*EQ)) is a value, not an expression.
    """
    stripped = content.strip()
    if not stripped or is_operator(stripped):
        return False
    return contains_operator(top_level_text(content))


def split_top_level(text: str, separator: Optional[str] = None) -> List[str]:
    """
    Split text outside quotes and parentheses.

    With no separator, runs of blanks split and empty pieces are dropped.
    With a separator ("/"), empty pieces are kept so positions survive.
    """
    pieces: List[str] = []
    current: List[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in QUOTES:
            end = find_quote_end(text, i) or len(text)
            current.append(text[i:end])
            i = end
            continue
        if ch == "(":
            close = find_group_end(text, i)
            end = len(text) if close is None else close + 1
            current.append(text[i:end])
            i = end
            continue
        if (separator is None and ch.isspace()) or ch == separator:
            pieces.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    pieces.append("".join(current))
    if separator is None:
        return [piece for piece in pieces if piece]
    return pieces


class _Lexer:
    def __init__(self, text: str):
        self.text = text
        self.result = LexResult()

    def emit(self, type_: TokenType, start: int, end: int) -> None:
        self.result.tokens.append(Token(type_, self.text[start:end], start, end))

    def flag(self, kind: DiagnosticKind, message: str, start: int, end: int) -> None:
        report(self.result.diagnostics, kind, message, span=(start, end), logger=logger)

    def lex_region(self, start: int, end: int, depth: int) -> None:
        text = self.text
        i = start
        while i < end:
            ch = text[i]
            if ch.isspace():
                i += 1
            elif ch == "(":
                i = self.lex_group(i, end, depth)
            elif ch == ")":
                self.flag(DiagnosticKind.UNBALANCED_PARENTHESES,
                          "closing parenthesis without a matching opening", i, i + 1)
                self.emit(TokenType.BARE, i, i + 1)
                i += 1
            elif ch in QUOTES:
                close = find_quote_end(text, i, end)
                if close is None:
                    self.flag(DiagnosticKind.MALFORMED_QUOTING,
                              "unterminated quoted string", i, end)
                    close = end
                self.emit(TokenType.QUOTED, i, close)
                i = close
            elif ch == "/":
                self.emit(TokenType.QUALIFIER_SEPARATOR, i, i + 1)
                i += 1
            elif ch == "&" and VARIABLE_RE.match(text, i):
                match = VARIABLE_RE.match(text, i)
                stop = min(match.end(), end)
                self.emit(TokenType.VARIABLE, i, stop)
                i = stop
            else:
                i = self.lex_bare(i, end, depth)

    def lex_bare(self, start: int, end: int, depth: int) -> int:
        i = start
        while i < end and self.text[i] not in _BARE_STOP:
            i += 1
        word = self.text[start:i]
        if depth == 0 and i < end and self.text[i] == "(" and KEYWORD_RE.match(word):
            self.emit(TokenType.KEYWORD, start, i)
        elif depth == 0 and is_operator(word):
            self.emit(TokenType.OPERATOR, start, i)
        else:
            self.emit(TokenType.BARE, start, i)
        return i

    def lex_group(self, open_index: int, end: int, depth: int) -> int:
        close = find_group_end(self.text, open_index, end)
        inner_end = end if close is None else close
        self.emit(TokenType.OPEN, open_index, open_index + 1)

        content = self.text[open_index + 1:inner_end]
        if is_expression(content):
            lead = len(content) - len(content.lstrip())
            trail = len(content.rstrip())
            self.emit(TokenType.EXPRESSION, open_index + 1 + lead, open_index + 1 + trail)
        else:
            self.lex_region(open_index + 1, inner_end, depth + 1)

        if close is None:
            self.flag(DiagnosticKind.UNBALANCED_PARENTHESES,
                      "parenthesis is never closed", open_index, end)
            return end
        self.emit(TokenType.CLOSE, close, close + 1)
        return close + 1


def tokenize(text: str) -> LexResult:
    """
    Convert raw CL command text into an ordered token sequence.

    Args:
        text: One logical command line (continuations already joined)

    Returns:
        LexResult with tokens in source order and any diagnostics
    """
    lexer = _Lexer(text or "")
    lexer.lex_region(0, len(lexer.text), 0)
    return lexer.result


__all__ = [
    "LexResult",
    "tokenize",
    "is_expression",
    "find_group_end",
    "find_quote_end",
    "split_top_level",
    "top_level_text",
]
