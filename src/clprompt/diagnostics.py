"""
Diagnostics for the lexer, parser and instruction generator.

None of the engines fail on content. Every recoverable condition is
recorded as a Diagnostic next to the best-effort result, and logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple


class DiagnosticKind(Enum):
    """Recoverable conditions reported to the caller."""

    SCHEMA_MISMATCH = "schema-mismatch"            # keyword or value with no definition
    SHAPE_OVERFLOW = "shape-overflow"              # more segments/elements/instances than declared
    AMBIGUOUS_NESTING = "ambiguous-nesting"        # nested shape not declared by the schema
    MALFORMED_QUOTING = "malformed-quoting"        # unterminated quoted region
    UNBALANCED_PARENTHESES = "unbalanced-parentheses"
    SHAPE_MISMATCH = "shape-mismatch"              # value shape differs from its definition


@dataclass(frozen=True)
class Diagnostic:
    """
    One recoverable condition.

    Properties:
        kind: DiagnosticKind
        message: Human-readable description
        keyword: Parameter keyword involved, if any
        span: (start, end) offsets into the source text, if known
    """

    kind: DiagnosticKind
    message: str
    keyword: Optional[str] = None
    span: Optional[Tuple[int, int]] = None

    def __str__(self) -> str:
        where = f" [{self.keyword}]" if self.keyword else ""
        return f"{self.kind.value}{where}: {self.message}"


def report(diagnostics: List[Diagnostic], kind: DiagnosticKind, message: str,
           keyword: Optional[str] = None, span: Optional[Tuple[int, int]] = None,
           logger: Optional[logging.Logger] = None) -> Diagnostic:
    """Record a diagnostic once and log it at DEBUG."""
    diagnostic = Diagnostic(kind=kind, message=message, keyword=keyword, span=span)
    if diagnostic not in diagnostics:
        diagnostics.append(diagnostic)
    (logger or logging.getLogger(__name__)).debug("%s", diagnostic)
    return diagnostic


def of_kind(diagnostics: List[Diagnostic], kind: DiagnosticKind) -> List[Diagnostic]:
    return [d for d in diagnostics if d.kind is kind]


__all__ = [
    "Diagnostic",
    "DiagnosticKind",
    "of_kind",
    "report",
]
