"""
Command-definition XML Loader (QcdCLCmd document → CommandSchema).

Document shape:
    <QcdCLCmd>
      <Cmd CmdName="CALL" MaxPos="2" Prompt="Call Program">
        <Parm Kwd="PGM" Type="QUAL" PosNbr="1" Min="1" Max="1">
          <Qual Type="NAME" Prompt="Program"/>
          <Qual Type="NAME" Dft="*LIBL" Prompt="Library">
            <SpcVal><Value Val="*LIBL"/><Value Val="*CURLIB"/></SpcVal>
          </Qual>
        </Parm>
        ...

Syntax Notes:
    - Tag and attribute names are matched case-insensitively
    - Special values come from SpcVal/SngVal/Values child lists, or from
      attributes written in command-source form: SpcVal="((*LIBL) (*CURLIB))"
    - Parameters with a Constant or Type="NULL" are not promptable and skipped

Unlike the engines, loading fails loudly: a schema that cannot be read
leaves nothing to parse against.
"""

import logging
import os
import re
import xml.etree.ElementTree as ET
from typing import List, Optional, Tuple, Union

from clprompt.schema import (
    CaseRule,
    CommandSchema,
    ElementDefinition,
    ParameterDefinition,
    ParameterKind,
    QualifierDefinition,
)

logger = logging.getLogger(__name__)


class SchemaLoadError(Exception):
    """Raised when a command-definition document cannot be loaded."""
    pass


_VALUE_GROUP_RE = re.compile(r"\(\s*([^()\s]+)[^()]*\)")


def _local(tag) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1].upper()


def _children(node: ET.Element, tag: str) -> List[ET.Element]:
    wanted = tag.upper()
    return [child for child in node if _local(child.tag) == wanted]


def _attr(node: ET.Element, *names: str) -> Optional[str]:
    for name in names:
        if name in node.attrib:
            return node.attrib[name]
    lowered = {key.lower(): value for key, value in node.attrib.items()}
    for name in names:
        if name.lower() in lowered:
            return lowered[name.lower()]
    return None


def _int_attr(node: ET.Element, name: str, default: Optional[int]) -> Optional[int]:
    raw = _attr(node, name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.debug("Ignoring non-numeric %s=%r on <%s>", name, raw, _local(node.tag))
        return default


def _values_from_attribute(raw: Optional[str]) -> List[str]:
    """Values from command-source form, "((*LIBL) (*CURLIB))" or "*LIBL *CURLIB"."""
    if not raw or not raw.strip():
        return []
    groups = _VALUE_GROUP_RE.findall(raw)
    if groups:
        return groups
    return raw.replace("(", " ").replace(")", " ").split()


def _value_list(node: ET.Element, tag: str) -> Tuple[str, ...]:
    found: List[str] = _values_from_attribute(_attr(node, tag))
    for holder in _children(node, tag):
        for value in _children(holder, "Value"):
            text = _attr(value, "Val", "Value")
            if text:
                found.append(text)
    return tuple(found)


def _case(node: ET.Element) -> CaseRule:
    return CaseRule.MIXED if (_attr(node, "Case") or "").upper() == "MIXED" else CaseRule.MONO


def _restricted(node: ET.Element) -> bool:
    return (_attr(node, "Rstd") or "").upper() in ("YES", "*YES")


def _load_qualifier(node: ET.Element) -> QualifierDefinition:
    return QualifierDefinition(
        prompt=_attr(node, "Prompt") or "",
        data_type=_attr(node, "Type"),
        default=_attr(node, "Dft"),
        special_values=_value_list(node, "SpcVal"),
        values=_value_list(node, "Values"),
        restricted=_restricted(node),
        case=_case(node),
    )


def _load_element(node: ET.Element) -> ElementDefinition:
    return ElementDefinition(
        prompt=_attr(node, "Prompt") or "",
        data_type=_attr(node, "Type"),
        default=_attr(node, "Dft"),
        special_values=_value_list(node, "SpcVal"),
        single_values=_value_list(node, "SngVal"),
        values=_value_list(node, "Values"),
        restricted=_restricted(node),
        case=_case(node),
        qualifiers=tuple(_load_qualifier(q) for q in _children(node, "Qual")),
        elements=tuple(_load_element(e) for e in _children(node, "Elem")),
    )


def _parameter_kind(node: ET.Element, has_qualifiers: bool, has_elements: bool) -> ParameterKind:
    declared = (_attr(node, "Type") or "").upper()
    if has_qualifiers:
        return ParameterKind.QUALIFIED
    if has_elements or declared == "ELEM":
        return ParameterKind.ELEMENT_LIST
    return ParameterKind.SIMPLE


def _load_parameter(node: ET.Element) -> Optional[ParameterDefinition]:
    keyword = _attr(node, "Kwd")
    if not keyword:
        logger.debug("Skipping <Parm> without Kwd")
        return None
    if _attr(node, "Constant") is not None or (_attr(node, "Type") or "").upper() == "NULL":
        logger.debug("Skipping non-promptable parameter %s", keyword)
        return None

    qualifiers = tuple(_load_qualifier(q) for q in _children(node, "Qual"))
    elements = tuple(_load_element(e) for e in _children(node, "Elem"))
    position = _int_attr(node, "PosNbr", None)

    return ParameterDefinition(
        keyword=keyword.upper(),
        kind=_parameter_kind(node, bool(qualifiers), bool(elements)),
        prompt=_attr(node, "Prompt") or "",
        data_type=_attr(node, "Type"),
        min_occurs=_int_attr(node, "Min", 0),
        max_occurs=max(1, _int_attr(node, "Max", 1)),
        position=position if position and position > 0 else None,
        default=_attr(node, "Dft"),
        constant=_attr(node, "Constant"),
        special_values=_value_list(node, "SpcVal"),
        single_values=_value_list(node, "SngVal"),
        values=_value_list(node, "Values"),
        restricted=_restricted(node),
        case=_case(node),
        qualifiers=qualifiers,
        elements=elements,
    )


def _find_command(root: ET.Element) -> Optional[ET.Element]:
    for node in root.iter():
        if _local(node.tag) == "CMD":
            return node
    return None


def load_command_schema(xml: Union[str, bytes]) -> CommandSchema:
    """
    Load a CommandSchema from command-definition XML.

    Args:
        xml: The QcdCLCmd document as str or bytes

    Returns:
        CommandSchema with parameters in document order

    Raises:
        SchemaLoadError: If the document is not XML or holds no Cmd element
    """
    if not xml or (isinstance(xml, str) and not xml.strip()):
        raise SchemaLoadError("Command definition XML is empty")
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        raise SchemaLoadError(f"Command definition XML is not well-formed: {e}") from e

    command = _find_command(root)
    if command is None:
        raise SchemaLoadError("Command definition XML has no <Cmd> element")

    parameters = []
    seen = set()
    for node in _children(command, "Parm"):
        parameter = _load_parameter(node)
        if parameter is None:
            continue
        if parameter.keyword in seen:
            raise SchemaLoadError(f"Duplicate parameter keyword: {parameter.keyword}")
        seen.add(parameter.keyword)
        parameters.append(parameter)

    max_positional = _int_attr(command, "MaxPos", None)
    if max_positional is None:
        max_positional = _int_attr(command, "CmdMaxPos", None)

    schema = CommandSchema(
        name=(_attr(command, "CmdName", "Cmd") or "").upper(),
        parameters=tuple(parameters),
        max_positional=max_positional,
        prompt=_attr(command, "Prompt") or "",
        library=_attr(command, "CmdLib"),
    )
    logger.debug("Loaded schema %s with %d parameters", schema.name, len(schema.parameters))
    return schema


def load_command_schema_file(filepath: str) -> CommandSchema:
    """
    Load a CommandSchema from an XML file.

    Raises:
        FileNotFoundError: If file doesn't exist
        SchemaLoadError: If loading fails
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Command definition file not found: {filepath}")
    with open(filepath, "rb") as f:
        content = f.read()
    return load_command_schema(content)


__all__ = [
    "load_command_schema",
    "load_command_schema_file",
    "SchemaLoadError",
]
