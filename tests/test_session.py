"""
Tests for the prompt session (form state and its lifecycle).

The round-trip tests replay generated instructions into a session and
check that the rebuilt Parameter Map has the same shape as the parsed one.
"""

import pytest
from clprompt.backends.instructions import generate_instructions
from clprompt.examples import load_example_schema
from clprompt.parser import parse_command
from clprompt.session import PromptSession, SessionClosedError


ROUND_TRIP_COMMANDS = [
    ("CALL", "CALL PGM(MYLIB/MYPGM) PARM(&A 'x y' &C)"),
    ("CALL", "CALL MYPGM"),
    ("SAVLIB", "SAVLIB LIB(LIBA LIBB) DEV(*SAVF) SAVF(QGPL/SAVF1) "
               "OMITOBJ((LIBA/OBJ1 *FILE) (*ALL/OBJ2 *PGM))"),
    ("SAVLIB", "SAVLIB LIB(*ALLUSR) DEV(TAP01) OMITOBJ(*NONE)"),
    ("CRTDDMF", "CRTDDMF FILE(MYLIB/DDMF) RMTFILE(RLIB/RFILE) RMTLOCNAME(SYSB *IP) TEXT('Remote file')"),
    ("MONMSG", "MONMSG MSGID(CPF0000 CPF9999) EXEC(GOTO CMDLBL(ERROR))"),
    ("CHGVAR", "CHGVAR VAR(&X) VALUE(&A *CAT &B)"),
]


def session_for(name, text):
    schema = load_example_schema(name)
    parsed = parse_command(text, schema).parameters
    session = PromptSession(schema)
    session.apply(generate_instructions(parsed, schema))
    return session, parsed


class TestRoundTrip:
    """Test text → map → instructions → session → map."""

    @pytest.mark.parametrize("name,text", ROUND_TRIP_COMMANDS)
    def test_map_reproduced(self, name, text):
        """Replaying generated instructions rebuilds the parsed map."""
        session, parsed = session_for(name, text)
        assert session.to_parameter_map() == parsed

    def test_instance_counts(self):
        """Materialize instructions grow the instance counts."""
        session, _ = session_for(*ROUND_TRIP_COMMANDS[2])
        assert session.instance_counts == {"LIB": 2, "OMITOBJ": 2}

    def test_apply_is_idempotent(self):
        """Applying the same sequence twice leaves the same state."""
        schema = load_example_schema("CALL")
        instructions = generate_instructions({"PGM": ["A", "LIB"], "PARM": ["&A", "&B"]}, schema)
        session = PromptSession(schema)
        session.apply(instructions)
        first = (dict(session.fields), dict(session.instance_counts))
        session.apply(instructions)
        assert (session.fields, session.instance_counts) == first

    def test_apply_replaces_previous_state(self):
        """A new sequence replaces everything from the last one."""
        schema = load_example_schema("CALL")
        session = PromptSession(schema)
        session.apply(generate_instructions({"PGM": "A", "PARM": ["&A", "&B"]}, schema))
        session.apply(generate_instructions({"PGM": "B"}, schema))
        assert session.to_parameter_map() == {"PGM": ["B"]}


class TestEditing:
    """Test user edits on top of applied instructions."""

    def test_touch_changes_map(self):
        """A touched field changes the map and marks its keyword."""
        session, _ = session_for("CALL", "CALL PGM(MYLIB/MYPGM)")
        session.touch("PGM_QUAL1", "*CURLIB")
        assert session.to_parameter_map() == {"PGM": ["MYPGM", "*CURLIB"]}
        assert session.changed_parameters() == ["PGM"]

    def test_add_instance(self):
        """A new instance can be filled and is read back."""
        session, _ = session_for("CALL", "CALL PGM(X) PARM(&A)")
        assert session.add_instance("parm") == 2
        session.touch("PARM_1", "&B")
        assert session.to_parameter_map()["PARM"] == ["&A", "&B"]
        assert session.changed_parameters() == ["PARM"]

    def test_add_instance_requires_repeatable(self):
        """Only repeatable parameters can grow."""
        session = PromptSession(load_example_schema("CALL"))
        with pytest.raises(KeyError):
            session.add_instance("PGM")

    def test_keyword_for_path(self):
        """Target paths map back to their keyword."""
        session = PromptSession(load_example_schema("CRTDDMF"))
        assert session.keyword_for("RMTFILE_INST0_ELEM0_QUAL1") == "RMTFILE"
        assert session.keyword_for("FILE_QUAL0") == "FILE"
        assert session.keyword_for("NOPE") is None

    def test_cleared_field_drops_keyword(self):
        """Clearing a field removes its keyword from the map."""
        session, _ = session_for("CHGVAR", "CHGVAR VAR(&X) VALUE(1)")
        session.touch("VALUE", "")
        assert session.to_parameter_map() == {"VAR": "&X"}


class TestLifecycle:
    """Test creation and teardown."""

    def test_submit_returns_map_and_closes(self):
        """Submit returns the map and closes the session."""
        session, parsed = session_for("CALL", "CALL PGM(X)")
        assert session.submit() == parsed
        assert session.closed
        with pytest.raises(SessionClosedError):
            session.touch("PGM_QUAL0", "Y")

    def test_cancel_closes(self):
        """A cancelled session rejects further use."""
        session = PromptSession(load_example_schema("CALL"))
        session.cancel()
        with pytest.raises(SessionClosedError):
            session.to_parameter_map()
        with pytest.raises(SessionClosedError):
            session.cancel()

    def test_sessions_are_independent(self):
        """Sessions on one schema share no state."""
        schema = load_example_schema("CALL")
        first = PromptSession(schema)
        second = PromptSession(schema)
        first.touch("PGM_QUAL0", "A")
        assert second.fields == {}
