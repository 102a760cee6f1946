"""
Example command definitions for demos and tests.

Each command is kept as the XML a system would hand back for it, so the
examples exercise the loader as well as the engines:
    CALL     qualified PGM, PARM as a list of up to 255 single values
    SAVLIB   repeatable LIB/DEV, OMITOBJ as repeated (qualified, type) pairs
    CRTDDMF  RMTFILE as a list whose only element is qualified
    MONMSG   repeatable MSGID, free-form EXEC command
    CHGVAR   VALUE holding expressions
"""
from typing import Dict, List

from clprompt.schema import CommandSchema
from clprompt.xml_loader import load_command_schema


CALL_XML = """<?xml version="1.0" encoding="UTF-8"?>
<QcdCLCmd DTDVersion="1.0">
  <Cmd CmdName="CALL" CmdLib="__LIBL" Prompt="Call Program" MaxPos="2">
    <Parm Kwd="PGM" PosNbr="1" KeyParm="NO" Type="QUAL" Min="1" Max="1" Prompt="Program">
      <Qual Type="NAME" Min="1" Max="1" Len="10" Prompt="Program"/>
      <Qual Type="NAME" Min="0" Max="1" Len="10" Dft="*LIBL" Prompt="Library">
        <SpcVal>
          <Value Val="*LIBL" MapTo="*LIBL"/>
          <Value Val="*CURLIB" MapTo="*CURLIB"/>
        </SpcVal>
      </Qual>
    </Parm>
    <Parm Kwd="PARM" PosNbr="2" KeyParm="NO" Type="ELEM" Min="0" Max="255" Prompt="Parameters">
      <Elem Type="CHAR" Len="256" Case="MIXED" Prompt="Parameter"/>
    </Parm>
  </Cmd>
</QcdCLCmd>
"""

SAVLIB_XML = """<?xml version="1.0" encoding="UTF-8"?>
<QcdCLCmd DTDVersion="1.0">
  <Cmd CmdName="SAVLIB" CmdLib="__LIBL" Prompt="Save Library" MaxPos="2">
    <Parm Kwd="LIB" PosNbr="1" Type="GENERIC" Min="1" Max="300" Prompt="Library">
      <SngVal>
        <Value Val="*NONSYS"/>
        <Value Val="*ALLUSR"/>
        <Value Val="*IBM"/>
      </SngVal>
    </Parm>
    <Parm Kwd="DEV" PosNbr="2" Type="NAME" Min="1" Max="4" Prompt="Device">
      <SngVal>
        <Value Val="*SAVF"/>
        <Value Val="*MEDDFN"/>
      </SngVal>
    </Parm>
    <Parm Kwd="SAVF" Type="QUAL" Min="0" Max="1" Prompt="Save file">
      <Qual Type="NAME" Len="10" Prompt="Save file"/>
      <Qual Type="NAME" Len="10" Dft="*LIBL" SpcVal="((*LIBL) (*CURLIB))" Prompt="Library"/>
    </Parm>
    <Parm Kwd="OMITOBJ" Type="ELEM" Min="0" Max="300" Prompt="Objects to omit">
      <SngVal>
        <Value Val="*NONE"/>
      </SngVal>
      <Elem Type="QUAL" Prompt="Object">
        <Qual Type="GENERIC" Len="10" Prompt="Object">
          <SpcVal><Value Val="*ALL"/></SpcVal>
        </Qual>
        <Qual Type="NAME" Len="10" Dft="*ALL" Prompt="Library">
          <SpcVal><Value Val="*ALL"/></SpcVal>
        </Qual>
      </Elem>
      <Elem Type="CHAR" Len="10" Dft="*ALL" Prompt="Object type">
        <SpcVal>
          <Value Val="*ALL"/>
          <Value Val="*FILE"/>
          <Value Val="*PGM"/>
        </SpcVal>
      </Elem>
    </Parm>
    <Parm Kwd="TGTRLS" Type="CHAR" Len="8" Dft="*CURRENT" Prompt="Target release">
      <SpcVal>
        <Value Val="*CURRENT"/>
        <Value Val="*PRV"/>
      </SpcVal>
    </Parm>
    <Parm Kwd="UPDHST" Type="CHAR" Constant="*YES"/>
  </Cmd>
</QcdCLCmd>
"""

CRTDDMF_XML = """<?xml version="1.0" encoding="UTF-8"?>
<QcdCLCmd DTDVersion="1.0">
  <Cmd CmdName="CRTDDMF" CmdLib="__LIBL" Prompt="Create DDM File" MaxPos="3">
    <Parm Kwd="FILE" PosNbr="1" Type="QUAL" Min="1" Max="1" Prompt="DDM file">
      <Qual Type="NAME" Len="10" Prompt="DDM file"/>
      <Qual Type="NAME" Len="10" Dft="*CURLIB" SpcVal="((*CURLIB))" Prompt="Library"/>
    </Parm>
    <Parm Kwd="RMTFILE" PosNbr="2" Type="ELEM" Min="1" Max="1" Prompt="Remote file">
      <Elem Type="QUAL" Prompt="File">
        <Qual Type="NAME" Len="10" Prompt="File"/>
        <Qual Type="NAME" Len="10" Dft="*LIBL" Prompt="Library">
          <SpcVal><Value Val="*LIBL"/></SpcVal>
        </Qual>
      </Elem>
    </Parm>
    <Parm Kwd="RMTLOCNAME" PosNbr="3" Type="ELEM" Min="1" Max="1" Prompt="Remote location">
      <Elem Type="COMMNAME" Len="255" Prompt="Name or address">
        <SpcVal><Value Val="*RDB"/></SpcVal>
      </Elem>
      <Elem Type="CHAR" Len="4" Dft="*SNA" Rstd="YES" Prompt="Type">
        <Values>
          <Value Val="*SNA"/>
          <Value Val="*IP"/>
        </Values>
      </Elem>
    </Parm>
    <Parm Kwd="TEXT" Type="CHAR" Len="50" Dft="*BLANK" Case="MIXED" Prompt="Text 'description'">
      <SpcVal><Value Val="*BLANK"/></SpcVal>
    </Parm>
  </Cmd>
</QcdCLCmd>
"""

MONMSG_XML = """<?xml version="1.0" encoding="UTF-8"?>
<QcdCLCmd DTDVersion="1.0">
  <Cmd CmdName="MONMSG" CmdLib="__LIBL" Prompt="Monitor Message" MaxPos="3">
    <Parm Kwd="MSGID" PosNbr="1" Type="NAME" Len="7" Min="1" Max="50" Prompt="Message identifier"/>
    <Parm Kwd="CMPDTA" PosNbr="2" Type="CHAR" Len="28" Dft="*NONE" Case="MIXED" Prompt="Comparison data">
      <SpcVal><Value Val="*NONE"/></SpcVal>
    </Parm>
    <Parm Kwd="EXEC" PosNbr="3" Type="CMD" Len="20000" Prompt="Command to execute"/>
  </Cmd>
</QcdCLCmd>
"""

CHGVAR_XML = """<?xml version="1.0" encoding="UTF-8"?>
<QcdCLCmd DTDVersion="1.0">
  <Cmd CmdName="CHGVAR" CmdLib="__LIBL" Prompt="Change Variable" MaxPos="2">
    <Parm Kwd="VAR" PosNbr="1" Type="CHAR" Len="32" Min="1" Prompt="CL variable name"/>
    <Parm Kwd="VALUE" PosNbr="2" Type="CHAR" Len="5000" Min="1" Case="MIXED" Prompt="New value"/>
  </Cmd>
</QcdCLCmd>
"""

EXAMPLE_DEFINITIONS: Dict[str, str] = {
    "CALL": CALL_XML,
    "SAVLIB": SAVLIB_XML,
    "CRTDDMF": CRTDDMF_XML,
    "MONMSG": MONMSG_XML,
    "CHGVAR": CHGVAR_XML,
}


def example_names() -> List[str]:
    return list(EXAMPLE_DEFINITIONS)


def load_example_schema(name: str) -> CommandSchema:
    """
    Load one of the bundled example commands.

    Raises:
        KeyError: If there is no example with that name
    """
    try:
        xml = EXAMPLE_DEFINITIONS[name.upper()]
    except KeyError:
        raise KeyError(f"No example command named {name!r}; choose from {example_names()}") from None
    return load_command_schema(xml)


def build_example_schemas() -> Dict[str, CommandSchema]:
    return {name: load_example_schema(name) for name in EXAMPLE_DEFINITIONS}
