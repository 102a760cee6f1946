"""
CL source lines → one logical command.

CL source continues a command on the next line with a trailing "+"
(leading blanks of the next line are dropped) or "-" (the next line is
appended as-is). Comments are written /* ... */.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from clprompt.lexer import QUOTES, find_quote_end

CONTINUATION_CHARS = ("+", "-")

_LABEL_RE = re.compile(r"^\s*([A-Za-z$#@][A-Za-z0-9_$#@]*)\s*:\s*")
_NAME = r"[A-Za-z$#@][A-Za-z0-9_$#@]*"
_COMMAND_RE = re.compile(r"^\s*((?:%s/)?%s)(?=\s|$)" % (_NAME, _NAME))


@dataclass(frozen=True)
class ExtractedCommand:
    """
    A command assembled from source lines.

    Properties:
        command: Continuations joined, comments removed, blanks collapsed
        start_line: Index of the first source line of the command
        end_line: Index of the last source line of the command
    """
    command: str
    start_line: int
    end_line: int


def strip_comments(line: str) -> str:
    """
    Remove /* ... */ comments outside quotes; an unclosed comment runs to the end.

    A comment opens only at the start of the line or after a blank, so
    values such as *LIBL/*ALL are left alone.
    """
    out = []
    i = 0
    while i < len(line):
        ch = line[i]
        if ch in QUOTES:
            end = find_quote_end(line, i) or len(line)
            out.append(line[i:end])
            i = end
            continue
        if line.startswith("/*", i) and (i == 0 or line[i - 1].isspace()):
            close = line.find("*/", i + 2)
            if close == -1:
                break
            i = close + 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def collapse_blanks(text: str) -> str:
    """Collapse runs of blanks outside quotes to a single blank."""
    out = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in QUOTES:
            end = find_quote_end(text, i) or len(text)
            out.append(text[i:end])
            i = end
            continue
        if ch.isspace():
            if out and out[-1] != " ":
                out.append(" ")
        else:
            out.append(ch)
        i += 1
    return "".join(out).strip()


def _code_part(line: str) -> Tuple[str, Optional[str]]:
    """Line without comments and trailing blanks, plus its continuation char."""
    code = strip_comments(line).rstrip()
    if code and code[-1] in CONTINUATION_CHARS:
        return code[:-1], code[-1]
    return code, None


def continues(line: str) -> bool:
    return _code_part(line)[1] is not None


def join_continuations(lines: Sequence[str]) -> str:
    """
    Join the physical lines of one command into a single logical line.

    Joining stops at the first line that does not continue.
    """
    parts: List[str] = []
    previous: Optional[str] = None
    for line in lines:
        code, marker = _code_part(line)
        if previous == "+":
            code = code.lstrip()
        parts.append(code)
        previous = marker
        if marker is None:
            break
    return collapse_blanks("".join(parts))


def extract_command(lines: Sequence[str], line_index: int) -> ExtractedCommand:
    """
    Extract the command that the given line belongs to.

    Scans upward to the first line of the command, then forward through
    its continuation lines.

    Raises:
        IndexError: If line_index is outside lines
    """
    if not 0 <= line_index < len(lines):
        raise IndexError(f"Line {line_index} is outside the source ({len(lines)} lines)")

    start = line_index
    while start > 0 and continues(lines[start - 1]):
        start -= 1

    end = line_index
    while end + 1 < len(lines) and continues(lines[end]):
        end += 1

    return ExtractedCommand(
        command=join_continuations(lines[start:end + 1]),
        start_line=start,
        end_line=end,
    )


def split_label(text: str) -> Tuple[Optional[str], str]:
    """Split "LOOP: CHGVAR ..." into ("LOOP", "CHGVAR ...")."""
    match = _LABEL_RE.match(text or "")
    if match is None:
        return None, (text or "").strip()
    return match.group(1), text[match.end():].strip()


def split_command_name(text: str) -> Tuple[Optional[str], str]:
    """Split "QSYS/CALL PGM(X)" into ("QSYS/CALL", "PGM(X)")."""
    match = _COMMAND_RE.match(text or "")
    if match is None:
        return None, (text or "").strip()
    return match.group(1), text[match.end():].strip()


__all__ = [
    "ExtractedCommand",
    "collapse_blanks",
    "continues",
    "extract_command",
    "join_continuations",
    "split_command_name",
    "split_label",
    "strip_comments",
]
