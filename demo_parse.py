"""
Demo: Parse each example command and print its Parameter Map and diagnostics.
"""

from clprompt.examples import example_names, load_example_schema
from clprompt.parser import parse_command
from clprompt.serialization import parameters_to_json


COMMANDS = {
    "CALL": "CALL MYLIB/MYPGM (&A 'x y' &C)",
    "SAVLIB": "SAVLIB LIB(LIBA LIBB) DEV(*SAVF) OMITOBJ((LIBA/OBJ1 *FILE) (*ALL/OBJ2 *PGM))",
    "CRTDDMF": "CRTDDMF MYLIB/DDMF RLIB/RFILE (SYSB *IP) TEXT('Remote file')",
    "MONMSG": "MONMSG MSGID(CPF0000 CPF9999) EXEC(GOTO CMDLBL(ERROR))",
    "CHGVAR": "LOOP: CHGVAR &X (&A *CAT &B) BOGUS(1)",
}


def main():
    for name in example_names():
        schema = load_example_schema(name)
        result = parse_command(COMMANDS[name], schema)
        print()
        print("=" * 70)
        print(COMMANDS[name])
        print("=" * 70)
        if result.label:
            print(f"  Label:       {result.label}")
        print(f"  Parameters:  {parameters_to_json(result.parameters)}")
        if result.diagnostics:
            print("  Diagnostics:")
            for diagnostic in result.diagnostics:
                print(f"    - {diagnostic}")


if __name__ == "__main__":
    main()
