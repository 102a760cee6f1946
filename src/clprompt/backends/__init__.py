"""Backends turning Parameter Maps into output for a presentation layer."""

from .instructions import (
    GenerationOptions,
    GenerationResult,
    InstructionKind,
    PopulationInstruction,
    PopulationMethod,
    generate_instructions,
    generate_population,
)

__all__ = [
    "GenerationOptions",
    "GenerationResult",
    "InstructionKind",
    "PopulationInstruction",
    "PopulationMethod",
    "generate_instructions",
    "generate_population",
]
