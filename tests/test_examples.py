"""
Tests for the bundled example command definitions.

Every example must load cleanly and parse its canonical command without
diagnostics.
"""

import pytest
from clprompt.examples import (
    EXAMPLE_DEFINITIONS,
    build_example_schemas,
    example_names,
    load_example_schema,
)
from clprompt.parser import parse_command


CANONICAL = {
    "CALL": "CALL PGM(MYLIB/MYPGM) PARM(&A 'x y' &C)",
    "SAVLIB": "SAVLIB LIB(LIBA) DEV(*SAVF) SAVF(QGPL/SAVF1) OMITOBJ((LIBA/OBJ1 *FILE))",
    "CRTDDMF": "CRTDDMF FILE(MYLIB/DDMF) RMTFILE(RLIB/RFILE) RMTLOCNAME(SYSB *IP)",
    "MONMSG": "MONMSG MSGID(CPF0000) EXEC(RETURN)",
    "CHGVAR": "CHGVAR VAR(&X) VALUE(1)",
}


class TestExamples:
    """Test example lookup."""

    def test_names(self):
        """Examples are listed in declaration order."""
        assert example_names() == ["CALL", "SAVLIB", "CRTDDMF", "MONMSG", "CHGVAR"]

    def test_lookup_case_insensitive(self):
        """Example names match regardless of case."""
        assert load_example_schema("savlib").name == "SAVLIB"

    def test_unknown_example(self):
        """An unknown name raises KeyError."""
        with pytest.raises(KeyError):
            load_example_schema("CRTPF")

    def test_build_all(self):
        """Every example loads with its own name and parameters."""
        schemas = build_example_schemas()
        assert set(schemas) == set(EXAMPLE_DEFINITIONS)
        for name, schema in schemas.items():
            assert schema.name == name
            assert schema.parameters

    @pytest.mark.parametrize("name", sorted(CANONICAL))
    def test_canonical_command_parses_cleanly(self, name):
        """Each example's canonical command parses without diagnostics."""
        result = parse_command(CANONICAL[name], load_example_schema(name))
        assert result.diagnostics == []
        assert result.command == name
