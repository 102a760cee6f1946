#!/usr/bin/env python3
"""
Complete Pipeline Demo: Source → Parameter Map → Instructions → Form → Text

Shows the full workflow:
1. Extract a continued command from CL source
2. Parse it into a Parameter Map
3. Generate population instructions
4. Replay them into a prompt session and edit a field
5. Render the submitted map back into command text
"""

from clprompt.examples import load_example_schema
from clprompt.source import extract_command
from clprompt.parser import parse_command
from clprompt.backends import generate_population
from clprompt.session import PromptSession
from clprompt.formatter import format_command
from clprompt.serialization import parameters_to_yaml


SOURCE = [
    "             PGM",
    "             SAVLIB     LIB(LIBA LIBB) DEV(*SAVF) +",
    "                          SAVF(QGPL/SAVF1) /* target */ +",
    "                          OMITOBJ((LIBA/OBJ1 *FILE) +",
    "                                  (*ALL/OBJ2 *PGM))",
    "             ENDPGM",
]


def main():
    schema = load_example_schema("SAVLIB")

    print("=" * 80)
    print("COMPLETE PIPELINE DEMO: Source → Map → Instructions → Form → Text")
    print("=" * 80)

    # =========================================================================
    # STEP 1: Extract command
    # =========================================================================
    print("\n1. EXTRACTING COMMAND...")
    extracted = extract_command(SOURCE, 3)
    print(f"   ✓ Lines {extracted.start_line}-{extracted.end_line}")
    print(f"   ✓ {extracted.command}")

    # =========================================================================
    # STEP 2: Parse
    # =========================================================================
    print("\n2. PARSING...")
    parsed = parse_command(extracted.command, schema)
    print(f"   ✓ Command: {parsed.command}")
    print(f"   ✓ Diagnostics: {len(parsed.diagnostics)}")
    for line in parameters_to_yaml(parsed.parameters).splitlines():
        print(f"   {line}")

    # =========================================================================
    # STEP 3: Instructions
    # =========================================================================
    print("\n3. GENERATING INSTRUCTIONS...")
    generated = generate_population(parsed.parameters, schema)
    for instruction in generated.instructions:
        print(f"   {instruction.kind.value:<22} {instruction.target_path:<28} "
              f"{instruction.value!r:<12} {instruction.method.value}")

    # =========================================================================
    # STEP 4: Prompt session
    # =========================================================================
    print("\n4. PROMPTING...")
    session = PromptSession(schema)
    session.apply(generated.instructions)
    session.touch("DEV", "*MEDDFN")
    print(f"   ✓ Instance counts: {session.instance_counts}")
    print(f"   ✓ Changed: {session.changed_parameters()}")
    submitted = session.submit()

    # =========================================================================
    # STEP 5: Render
    # =========================================================================
    print("\n5. RENDERING...")
    print(f"   {format_command(submitted, schema)}")

    print("\n" + "=" * 80)
    print("PIPELINE COMPLETE!")
    print("=" * 80)


if __name__ == "__main__":
    main()
