"""
Serialization helpers for command schemas, Parameter Maps and instructions.

Provides lossless JSON/YAML round-trip via intermediate dict representation.
Instruction dicts use the field names a form consumes:
    {kind, targetPath, value, method}
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Sequence

import yaml

from clprompt.backends.instructions import (
    InstructionKind,
    PopulationInstruction,
    PopulationMethod,
)
from clprompt.schema import (
    CaseRule,
    CommandSchema,
    ElementDefinition,
    ParameterDefinition,
    ParameterKind,
    QualifierDefinition,
)


def qualifier_to_dict(q: QualifierDefinition) -> Dict[str, Any]:
    return {
        "prompt": q.prompt,
        "data_type": q.data_type,
        "default": q.default,
        "special_values": list(q.special_values),
        "values": list(q.values),
        "restricted": q.restricted,
        "case": q.case.value,
    }


def qualifier_from_dict(d: Dict[str, Any]) -> QualifierDefinition:
    return QualifierDefinition(
        prompt=d.get("prompt", ""),
        data_type=d.get("data_type"),
        default=d.get("default"),
        special_values=tuple(d.get("special_values", [])),
        values=tuple(d.get("values", [])),
        restricted=d.get("restricted", False),
        case=CaseRule(d.get("case", CaseRule.MONO.value)),
    )


def element_to_dict(e: ElementDefinition) -> Dict[str, Any]:
    return {
        "prompt": e.prompt,
        "data_type": e.data_type,
        "default": e.default,
        "special_values": list(e.special_values),
        "single_values": list(e.single_values),
        "values": list(e.values),
        "restricted": e.restricted,
        "case": e.case.value,
        "qualifiers": [qualifier_to_dict(q) for q in e.qualifiers],
        "elements": [element_to_dict(sub) for sub in e.elements],
    }


def element_from_dict(d: Dict[str, Any]) -> ElementDefinition:
    return ElementDefinition(
        prompt=d.get("prompt", ""),
        data_type=d.get("data_type"),
        default=d.get("default"),
        special_values=tuple(d.get("special_values", [])),
        single_values=tuple(d.get("single_values", [])),
        values=tuple(d.get("values", [])),
        restricted=d.get("restricted", False),
        case=CaseRule(d.get("case", CaseRule.MONO.value)),
        qualifiers=tuple(qualifier_from_dict(q) for q in d.get("qualifiers", [])),
        elements=tuple(element_from_dict(sub) for sub in d.get("elements", [])),
    )


def parameter_definition_to_dict(p: ParameterDefinition) -> Dict[str, Any]:
    return {
        "keyword": p.keyword,
        "kind": p.kind.value,
        "prompt": p.prompt,
        "data_type": p.data_type,
        "min_occurs": p.min_occurs,
        "max_occurs": p.max_occurs,
        "position": p.position,
        "default": p.default,
        "constant": p.constant,
        "special_values": list(p.special_values),
        "single_values": list(p.single_values),
        "values": list(p.values),
        "restricted": p.restricted,
        "case": p.case.value,
        "qualifiers": [qualifier_to_dict(q) for q in p.qualifiers],
        "elements": [element_to_dict(e) for e in p.elements],
    }


def parameter_definition_from_dict(d: Dict[str, Any]) -> ParameterDefinition:
    return ParameterDefinition(
        keyword=d["keyword"],
        kind=ParameterKind(d.get("kind", ParameterKind.SIMPLE.value)),
        prompt=d.get("prompt", ""),
        data_type=d.get("data_type"),
        min_occurs=d.get("min_occurs", 0),
        max_occurs=d.get("max_occurs", 1),
        position=d.get("position"),
        default=d.get("default"),
        constant=d.get("constant"),
        special_values=tuple(d.get("special_values", [])),
        single_values=tuple(d.get("single_values", [])),
        values=tuple(d.get("values", [])),
        restricted=d.get("restricted", False),
        case=CaseRule(d.get("case", CaseRule.MONO.value)),
        qualifiers=tuple(qualifier_from_dict(q) for q in d.get("qualifiers", [])),
        elements=tuple(element_from_dict(e) for e in d.get("elements", [])),
    )


def schema_to_dict(s: CommandSchema) -> Dict[str, Any]:
    return {
        "name": s.name,
        "prompt": s.prompt,
        "library": s.library,
        "max_positional": s.max_positional,
        "parameters": [parameter_definition_to_dict(p) for p in s.parameters],
    }


def schema_from_dict(d: Dict[str, Any]) -> CommandSchema:
    return CommandSchema(
        name=d.get("name", ""),
        parameters=tuple(parameter_definition_from_dict(p) for p in d.get("parameters", [])),
        max_positional=d.get("max_positional"),
        prompt=d.get("prompt", ""),
        library=d.get("library"),
    )


def schema_to_json(s: CommandSchema) -> str:
    return json.dumps(schema_to_dict(s), sort_keys=True)


def schema_from_json(s: str) -> CommandSchema:
    return schema_from_dict(json.loads(s))


def schema_to_yaml(s: CommandSchema) -> str:
    return yaml.safe_dump(schema_to_dict(s))


def schema_from_yaml(s: str) -> CommandSchema:
    return schema_from_dict(yaml.safe_load(s))


# =========================================================================
# Parameter Maps
# =========================================================================

def value_to_data(value: Any) -> Any:
    """A Parameter Map value as plain str / list data (tuples become lists)."""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return [value_to_data(item) for item in value]
    raise TypeError(f"Unsupported parameter value type: {type(value)}")


def parameters_to_dict(parameters: Mapping[str, Any]) -> Dict[str, Any]:
    return {keyword: value_to_data(value) for keyword, value in parameters.items()}


def parameters_from_dict(d: Mapping[str, Any]) -> Dict[str, Any]:
    if not isinstance(d, Mapping):
        raise TypeError(f"Parameter Map must be a mapping, got {type(d)}")
    return {str(keyword): value_to_data(value) for keyword, value in d.items()}


def parameters_to_json(parameters: Mapping[str, Any]) -> str:
    # Key order is declaration order and part of the map's meaning.
    return json.dumps(parameters_to_dict(parameters))


def parameters_from_json(s: str) -> Dict[str, Any]:
    return parameters_from_dict(json.loads(s))


def parameters_to_yaml(parameters: Mapping[str, Any]) -> str:
    return yaml.safe_dump(parameters_to_dict(parameters), sort_keys=False)


def parameters_from_yaml(s: str) -> Dict[str, Any]:
    return parameters_from_dict(yaml.safe_load(s) or {})


# =========================================================================
# Instructions
# =========================================================================

def instruction_to_dict(i: PopulationInstruction) -> Dict[str, str]:
    return i.to_dict()


def instruction_from_dict(d: Dict[str, Any]) -> PopulationInstruction:
    try:
        return PopulationInstruction(
            kind=InstructionKind(d["kind"]),
            target_path=d["targetPath"],
            value=d.get("value", ""),
            method=PopulationMethod(d["method"]),
        )
    except KeyError as e:
        raise ValueError(f"Instruction dict is missing {e}") from e


def instructions_to_json(instructions: Sequence[PopulationInstruction]) -> str:
    return json.dumps([instruction_to_dict(i) for i in instructions])


def instructions_from_json(s: str) -> List[PopulationInstruction]:
    return [instruction_from_dict(d) for d in json.loads(s)]


def instructions_to_yaml(instructions: Sequence[PopulationInstruction]) -> str:
    return yaml.safe_dump([instruction_to_dict(i) for i in instructions], sort_keys=False)


def instructions_from_yaml(s: str) -> List[PopulationInstruction]:
    return [instruction_from_dict(d) for d in yaml.safe_load(s) or []]
