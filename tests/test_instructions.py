"""
Tests for the population instruction generator.

The generator is what a form replays, so these tests check exact
target paths, values, methods and ordering.

Tests cover:
    - Path naming for simple, qualified, element and repeated values
    - Explicit clears for missing qualifier segments
    - Materialize-instance instructions and the repeat cap
    - Legacy "(A B)" free-text elements
    - Undeclared sub-shapes and the arity fallback
    - Determinism
"""

import pytest
from clprompt.backends.instructions import (
    GenerationOptions,
    InstructionKind,
    PopulationInstruction,
    PopulationMethod,
    generate_instructions,
    generate_population,
    unpack_legacy_text,
)
from clprompt.diagnostics import DiagnosticKind, of_kind
from clprompt.examples import load_example_schema
from clprompt.schema import (
    CommandSchema,
    ElementDefinition,
    ParameterDefinition,
    ParameterKind,
)


def pairs(instructions):
    return [(i.target_path, i.value) for i in instructions]


@pytest.fixture
def call():
    return load_example_schema("CALL")


@pytest.fixture
def savlib():
    return load_example_schema("SAVLIB")


@pytest.fixture
def crtddmf():
    return load_example_schema("CRTDDMF")


def repeatable_parm_schema(maximum=5):
    return CommandSchema(
        name="TST",
        parameters=(ParameterDefinition(keyword="PARM", max_occurs=maximum),),
    )


def undeclared_shape_schema():
    return CommandSchema(
        name="TSTCMD",
        parameters=(
            ParameterDefinition(
                keyword="OBJ",
                kind=ParameterKind.ELEMENT_LIST,
                elements=(
                    ElementDefinition(data_type="QUAL"),
                    ElementDefinition(data_type="CHAR"),
                ),
            ),
        ),
    )


class TestCoreShapes:
    """Test the basic instruction shapes."""

    def test_qualified_segments(self, call):
        """PGM_QUAL0 holds the object, PGM_QUAL1 the library."""
        instructions = generate_instructions({"PGM": ["MYPGM", "MYLIB"]}, call)
        assert pairs(instructions) == [("PGM_QUAL0", "MYPGM"), ("PGM_QUAL1", "MYLIB")]
        assert all(i.kind == InstructionKind.QUALIFIED_SEGMENT for i in instructions)

    def test_qualified_element(self, crtddmf):
        """A qualified element addresses INST0, ELEM0 and each qualifier."""
        instructions = generate_instructions({"RMTFILE": [["FILEA", "LIBA"]]}, crtddmf)
        assert pairs(instructions) == [
            ("RMTFILE_INST0_ELEM0_QUAL0", "FILEA"),
            ("RMTFILE_INST0_ELEM0_QUAL1", "LIBA"),
        ]

    def test_repeatable_simple(self):
        """One materialize, then PARM and PARM_1."""
        instructions = generate_instructions({"PARM": ["&A", "&B"]}, repeatable_parm_schema())
        assert instructions[0] == PopulationInstruction(
            InstructionKind.MATERIALIZE_INSTANCE, "PARM_INST1", "", PopulationMethod.SYNTHETIC_CLICK
        )
        assert pairs(instructions[1:]) == [("PARM", "&A"), ("PARM_1", "&B")]
        assert [i.kind for i in instructions[1:]] == [InstructionKind.SIMPLE] * 2

    def test_call_parm_uses_simple_paths(self, call):
        """A list of single values behaves like a repeatable scalar."""
        instructions = generate_instructions({"PARM": ["&A", "&B", "&C"]}, call)
        assert pairs(instructions) == [
            ("PARM_INST1", ""),
            ("PARM_INST2", ""),
            ("PARM", "&A"),
            ("PARM_1", "&B"),
            ("PARM_2", "&C"),
        ]


class TestQualified:
    """Test qualified values."""

    def test_missing_segment_is_cleared(self, call):
        """An omitted library is written as an empty value."""
        instructions = generate_instructions({"PGM": ["MYPGM"]}, call)
        assert pairs(instructions) == [("PGM_QUAL0", "MYPGM"), ("PGM_QUAL1", "")]

    def test_string_is_split_on_slash(self, call):
        """A LIB/OBJ string is split into segments."""
        instructions = generate_instructions({"PGM": "MYLIB/MYPGM"}, call)
        assert pairs(instructions) == [("PGM_QUAL0", "MYPGM"), ("PGM_QUAL1", "MYLIB")]

    def test_expression_string_not_split(self, call):
        """An expression string keeps its slashes."""
        instructions = generate_instructions({"PGM": "&LIB *TCAT '/' *TCAT &PGM"}, call)
        assert pairs(instructions)[0] == ("PGM_QUAL0", "&LIB *TCAT '/' *TCAT &PGM")

    def test_never_more_than_declared(self, call):
        """Extra segments are dropped and reported."""
        result = generate_population({"PGM": ["A", "B", "C"]}, call)
        assert len(result.instructions) == 2
        assert of_kind(result.diagnostics, DiagnosticKind.SHAPE_OVERFLOW)

    def test_selection_for_fields_with_special_values(self, call):
        """Fields with allowed values use selection."""
        instructions = generate_instructions({"PGM": ["MYPGM", "*LIBL"]}, call)
        assert instructions[0].method == PopulationMethod.FREE_TEXT
        assert instructions[1].method == PopulationMethod.SELECTION


class TestElementLists:
    """Test element lists and repeated element lists."""

    def test_repeated_pairs(self, savlib):
        """Each OMITOBJ instance expands into its elements and qualifiers."""
        value = [[["A", "MYLIB"], "*FILE"], [["B"], "*PGM"]]
        instructions = generate_instructions({"OMITOBJ": value}, savlib)
        assert pairs(instructions) == [
            ("OMITOBJ_INST1", ""),
            ("OMITOBJ_INST0_ELEM0_QUAL0", "A"),
            ("OMITOBJ_INST0_ELEM0_QUAL1", "MYLIB"),
            ("OMITOBJ_INST0_ELEM1", "*FILE"),
            ("OMITOBJ_INST1_ELEM0_QUAL0", "B"),
            ("OMITOBJ_INST1_ELEM0_QUAL1", ""),
            ("OMITOBJ_INST1_ELEM1", "*PGM"),
        ]

    def test_simple_elements(self, crtddmf):
        """Simple elements are ELEMENT instructions in order."""
        instructions = generate_instructions({"RMTLOCNAME": ["SYSB", "*IP"]}, crtddmf)
        assert pairs(instructions) == [
            ("RMTLOCNAME_INST0_ELEM0", "SYSB"),
            ("RMTLOCNAME_INST0_ELEM1", "*IP"),
        ]
        assert all(i.kind == InstructionKind.ELEMENT for i in instructions)

    def test_extra_elements_dropped(self, crtddmf):
        """Elements beyond the declared ones are dropped and reported."""
        result = generate_population({"RMTLOCNAME": ["SYSB", "*IP", "X"]}, crtddmf)
        assert len(result.instructions) == 2
        assert of_kind(result.diagnostics, DiagnosticKind.SHAPE_OVERFLOW)

    def test_blank_element_suppressed(self, crtddmf):
        """A blank element emits no instruction."""
        instructions = generate_instructions({"RMTLOCNAME": ["", "*IP"]}, crtddmf)
        assert pairs(instructions) == [("RMTLOCNAME_INST0_ELEM1", "*IP")]


class TestRepeatCap:
    """Test instance limits."""

    def test_cap_materializes_maximum_minus_one(self):
        """A capped list materializes maximum minus one instances."""
        schema = repeatable_parm_schema(maximum=3)
        result = generate_population({"PARM": ["A", "B", "C", "D"]}, schema)
        materialize = [i for i in result.instructions
                       if i.kind == InstructionKind.MATERIALIZE_INSTANCE]
        assert len(materialize) == 2
        assert pairs(result.instructions)[-1] == ("PARM_2", "C")
        assert of_kind(result.diagnostics, DiagnosticKind.SHAPE_OVERFLOW)

    def test_single_instance_needs_no_materialize(self):
        """One instance needs no materialize instruction."""
        instructions = generate_instructions({"PARM": ["A"]}, repeatable_parm_schema())
        assert pairs(instructions) == [("PARM", "A")]

    def test_scalar_for_repeatable_is_one_instance(self):
        """A plain string counts as a single instance."""
        instructions = generate_instructions({"PARM": "A"}, repeatable_parm_schema())
        assert pairs(instructions) == [("PARM", "A")]


class TestLegacyText:
    """Test the free-text element compatibility path."""

    def test_unpack(self):
        """One layer of parentheses is stripped, inner groups stay whole."""
        assert unpack_legacy_text("(MYLIB/A *FILE)") == ["MYLIB/A", "*FILE"]
        assert unpack_legacy_text("(A (B C))") == ["A", "(B C)"]

    def test_legacy_instance_unpacked(self, savlib):
        """A free-text instance is unpacked into its elements."""
        instructions = generate_instructions({"OMITOBJ": ["(MYLIB/A *FILE)"]}, savlib)
        assert pairs(instructions) == [
            ("OMITOBJ_INST0_ELEM0_QUAL0", "A"),
            ("OMITOBJ_INST0_ELEM0_QUAL1", "MYLIB"),
            ("OMITOBJ_INST0_ELEM1", "*FILE"),
        ]

    def test_legacy_can_be_disabled(self, savlib):
        """With unpacking off the text is written unchanged."""
        options = GenerationOptions(legacy_text_elements=False)
        instructions = generate_instructions({"OMITOBJ": ["(MYLIB/A *FILE)"]}, savlib, options)
        assert instructions[0].value == "(MYLIB/A *FILE)"

    def test_never_fires_for_simple_elements(self, call):
        """Parentheses in a simple value are left alone."""
        instructions = generate_instructions({"PARM": ["(A B)"]}, call)
        assert pairs(instructions) == [("PARM", "(A B)")]

    def test_legacy_undeclared_element(self):
        """Free text for an undeclared element becomes plain elements."""
        instructions = generate_instructions({"OBJ": ["(FILEA LIBA)", "*FILE"]}, undeclared_shape_schema())
        assert pairs(instructions) == [
            ("OBJ_INST0_ELEM0_ELEM0", "FILEA"),
            ("OBJ_INST0_ELEM0_ELEM1", "LIBA"),
            ("OBJ_INST0_ELEM1", "*FILE"),
        ]


class TestUndeclaredNesting:
    """Test nested values without a declared sub-shape."""

    def test_plain_list_by_default(self):
        """An undeclared pair is a plain element list by default."""
        result = generate_population({"OBJ": [["FILEA", "LIBA"], "*FILE"]}, undeclared_shape_schema())
        assert pairs(result.instructions) == [
            ("OBJ_INST0_ELEM0_ELEM0", "FILEA"),
            ("OBJ_INST0_ELEM0_ELEM1", "LIBA"),
            ("OBJ_INST0_ELEM1", "*FILE"),
        ]
        assert of_kind(result.diagnostics, DiagnosticKind.AMBIGUOUS_NESTING)

    def test_arity_fallback(self):
        """With the fallback on, an undeclared pair is qualified."""
        options = GenerationOptions(arity_fallback=True)
        result = generate_population({"OBJ": [["FILEA", "LIBA"], "*FILE"]},
                                     undeclared_shape_schema(), options)
        assert pairs(result.instructions)[:2] == [
            ("OBJ_INST0_ELEM0_QUAL0", "FILEA"),
            ("OBJ_INST0_ELEM0_QUAL1", "LIBA"),
        ]
        assert of_kind(result.diagnostics, DiagnosticKind.AMBIGUOUS_NESTING)

    def test_fallback_needs_exactly_two(self):
        """Three values are never treated as a qualified name."""
        options = GenerationOptions(arity_fallback=True)
        instructions = generate_instructions({"OBJ": [["A", "B", "C"]]}, undeclared_shape_schema(), options)
        assert [path for path, _ in pairs(instructions)] == [
            "OBJ_INST0_ELEM0_ELEM0",
            "OBJ_INST0_ELEM0_ELEM1",
            "OBJ_INST0_ELEM0_ELEM2",
        ]


class TestMapLevel:
    """Test ordering, unknown keys and coercion."""

    def test_declaration_order(self, call):
        """Instructions follow the schema order, not the map order."""
        instructions = generate_instructions({"PARM": ["&A"], "PGM": "X"}, call)
        assert [i.target_path for i in instructions] == ["PGM_QUAL0", "PGM_QUAL1", "PARM"]

    def test_keys_case_insensitive(self, call):
        """Map keys match keywords regardless of case."""
        instructions = generate_instructions({"pgm": "X"}, call)
        assert pairs(instructions)[0] == ("PGM_QUAL0", "X")

    def test_unknown_keyword(self, call):
        """Keys without a definition are reported and skipped."""
        result = generate_population({"FOO": "BAR"}, call)
        assert result.instructions == []
        assert of_kind(result.diagnostics, DiagnosticKind.SCHEMA_MISMATCH)[0].keyword == "FOO"

    def test_list_for_scalar_is_joined(self):
        """A list given for a scalar is joined and reported."""
        schema = load_example_schema("CHGVAR")
        result = generate_population({"VAR": ["&A", "&B"]}, schema)
        assert pairs(result.instructions) == [("VAR", "&A &B")]
        assert of_kind(result.diagnostics, DiagnosticKind.SHAPE_MISMATCH)

    def test_blank_scalar_suppressed(self):
        """Blank scalars emit nothing."""
        schema = load_example_schema("CHGVAR")
        assert generate_instructions({"VAR": "  ", "VALUE": ""}, schema) == []

    def test_deterministic(self, savlib):
        """The same input always gives the same sequence."""
        parameters = {
            "LIB": ["LIBA", "LIBB"],
            "DEV": ["*SAVF"],
            "SAVF": ["SAVF1", "QGPL"],
            "OMITOBJ": [[["A", "MYLIB"], "*FILE"], [["B"], "*PGM"]],
        }
        first = generate_instructions(parameters, savlib)
        second = generate_instructions(parameters, savlib)
        assert first == second
        assert [i.to_dict() for i in first] == [i.to_dict() for i in second]

    def test_to_dict_field_names(self, call):
        """Dict form uses kind, targetPath, value and method."""
        instruction = generate_instructions({"PGM": "X"}, call)[0]
        assert instruction.to_dict() == {
            "kind": "qualified-segment",
            "targetPath": "PGM_QUAL0",
            "value": "X",
            "method": "free-text",
        }

