"""
Token Model for CL Command Text

The lexer turns raw command text into a flat sequence of classified
spans. Tokens are ephemeral: the structural parser consumes them once.

ARCHITECTURAL RULE:
    Tokens carry classification and source span only.
    They know nothing about command schemas or parameter shapes.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class TokenType(Enum):
    """
    Token classes produced by the lexer.

    Keep this minimal. Anything the lexer cannot classify is BARE,
    validity judgment belongs to the parser.
    """

    KEYWORD = "keyword"
    OPEN = "open"
    CLOSE = "close"
    QUOTED = "quoted"
    BARE = "bare"
    VARIABLE = "variable"
    OPERATOR = "operator"
    EXPRESSION = "expression"
    QUALIFIER_SEPARATOR = "qualifier-separator"


@dataclass(frozen=True)
class Token:
    """
    A classified span of source text.

    Properties:
        type: TokenType
        text: The exact source characters (quotes included for QUOTED)
        start: Offset of the first character in the source
        end: Offset one past the last character

    Example:
        PGM(MYLIB/MYPGM) lexes as

            Token(KEYWORD, "PGM", 0, 3)
            Token(OPEN, "(", 3, 4)
            Token(BARE, "MYLIB", 4, 9)
            Token(QUALIFIER_SEPARATOR, "/", 9, 10)
            Token(BARE, "MYPGM", 10, 15)
            Token(CLOSE, ")", 15, 16)
    """

    type: TokenType
    text: str
    start: int
    end: int

    @property
    def span(self) -> Tuple[int, int]:
        return (self.start, self.end)


# Concatenation, relational and logical operators in their keyword form.
WORD_OPERATORS = (
    "*CAT", "*BCAT", "*TCAT",
    "*EQ", "*NE", "*LT", "*LE", "*GT", "*GE", "*NL", "*NG",
    "*AND", "*OR", "*NOT",
)

# Symbolic forms. Longest first so alternation prefers "||" over "|".
SYMBOL_OPERATORS = (
    "||", "|>", "|<",
    ">=", "<=", "¬=", "¬>", "¬<", "!=",
    "=", ">", "<", "¬",
)

NAME_CHARS = "A-Za-z0-9_$#@"

_WORD_OPERATOR_RE = re.compile(
    r"(?<![%s*])\*(?:%s)(?![%s])" % (
        NAME_CHARS,
        "|".join(op[1:] for op in WORD_OPERATORS),
        NAME_CHARS,
    ),
    re.IGNORECASE,
)
_SYMBOL_OPERATOR_RE = re.compile("|".join(re.escape(op) for op in SYMBOL_OPERATORS))
_FUNCTION_CALL_RE = re.compile(r"(?<![%s&*%%])%%?[A-Za-z][%s]*\(" % (NAME_CHARS, NAME_CHARS))

KEYWORD_RE = re.compile(r"^[A-Za-z][%s]*$" % NAME_CHARS)
VARIABLE_RE = re.compile(r"&[A-Za-z][%s]*" % NAME_CHARS)


def is_operator(text: str) -> bool:
    """True when text is exactly one operator of the CL vocabulary."""
    upper = text.upper()
    return upper in WORD_OPERATORS or text in SYMBOL_OPERATORS


def contains_operator(text: str) -> bool:
    """True when text holds an operator or a function-call form."""
    return bool(
        _WORD_OPERATOR_RE.search(text)
        or _SYMBOL_OPERATOR_RE.search(text)
        or _FUNCTION_CALL_RE.search(text)
    )
