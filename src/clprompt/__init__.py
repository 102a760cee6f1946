"""
CL Prompt Package

Round-trips IBM i CL command text through a schema-shaped Parameter Map:

    CL text → lexer → parser (+ CommandSchema) → Parameter Map
    Parameter Map → instruction generator (+ CommandSchema) → Population Instructions

ARCHITECTURAL GUARANTEE:
------------------------
The lexer, parser and generator contain ZERO knowledge of:
    - Editors, webviews or any other form technology
    - Command execution or semantic validation
    - Where command definitions come from

Shape is declared by the CommandSchema only.

All presentation happens in external layers.
All layers consume the Parameter Map unchanged.
"""

import logging

from clprompt.backends.instructions import (
    GenerationOptions,
    GenerationResult,
    PopulationInstruction,
    generate_instructions,
    generate_population,
)
from clprompt.diagnostics import Diagnostic, DiagnosticKind
from clprompt.formatter import format_command
from clprompt.parser import ParseOptions, ParseResult, parse_command
from clprompt.schema import CommandSchema
from clprompt.session import PromptSession, SessionClosedError
from clprompt.xml_loader import SchemaLoadError, load_command_schema, load_command_schema_file

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "CommandSchema",
    "Diagnostic",
    "DiagnosticKind",
    "GenerationOptions",
    "GenerationResult",
    "ParseOptions",
    "ParseResult",
    "PopulationInstruction",
    "PromptSession",
    "SchemaLoadError",
    "SessionClosedError",
    "format_command",
    "generate_instructions",
    "generate_population",
    "load_command_schema",
    "load_command_schema_file",
    "parse_command",
]
