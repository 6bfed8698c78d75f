"""Vendor-neutral response schemas and their provider dialects.

Every structured-output schema in the project is written once as a
``SchemaNode`` tree and translated on demand:

* ``to_gemini_schema`` produces ``google.genai.types.Schema`` objects with
  the SDK's ``Type`` constants.
* ``to_json_schema`` produces a plain JSON-Schema dict with lowercase type
  names and ``additionalProperties: False`` on every object.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from google.genai import types


class SchemaType(str, Enum):
    STRING = "STRING"
    NUMBER = "NUMBER"
    INTEGER = "INTEGER"
    BOOLEAN = "BOOLEAN"
    ARRAY = "ARRAY"
    OBJECT = "OBJECT"


class Dialect(str, Enum):
    GEMINI = "gemini"
    JSON_SCHEMA = "json_schema"


@dataclass(frozen=True)
class SchemaNode:
    type: SchemaType
    description: Optional[str] = None
    enum: Optional[Tuple[str, ...]] = None
    required: Optional[Tuple[str, ...]] = None
    properties: Optional[Dict[str, "SchemaNode"]] = None
    items: Optional["SchemaNode"] = None

    def __post_init__(self) -> None:
        if self.type == SchemaType.OBJECT and self.properties is None:
            raise ValueError("OBJECT schema nodes must define properties.")
        if self.type == SchemaType.ARRAY and self.items is None:
            raise ValueError("ARRAY schema nodes must define items.")


_GEMINI_TYPES: Dict[SchemaType, types.Type] = {
    SchemaType.STRING: types.Type.STRING,
    SchemaType.NUMBER: types.Type.NUMBER,
    SchemaType.INTEGER: types.Type.INTEGER,
    SchemaType.BOOLEAN: types.Type.BOOLEAN,
    SchemaType.ARRAY: types.Type.ARRAY,
    SchemaType.OBJECT: types.Type.OBJECT,
}


def to_gemini_schema(node: SchemaNode) -> types.Schema:
    out: Dict[str, Any] = {"type": _GEMINI_TYPES[node.type]}
    if node.description:
        out["description"] = node.description
    if node.enum:
        out["enum"] = list(node.enum)
    if node.required:
        out["required"] = list(node.required)
    if node.properties is not None:
        out["properties"] = {
            key: to_gemini_schema(prop) for key, prop in node.properties.items()
        }
    if node.items is not None:
        out["items"] = to_gemini_schema(node.items)
    return types.Schema(**out)


def to_json_schema(node: SchemaNode) -> Dict[str, Any]:
    out: Dict[str, Any] = {"type": node.type.value.lower()}
    if node.description:
        out["description"] = node.description
    if node.enum:
        out["enum"] = list(node.enum)
    if node.required:
        out["required"] = list(node.required)
    if node.properties is not None:
        out["properties"] = {
            key: to_json_schema(prop) for key, prop in node.properties.items()
        }
    if node.type == SchemaType.OBJECT:
        out["additionalProperties"] = False
    if node.items is not None:
        out["items"] = to_json_schema(node.items)
    return out


def translate(node: SchemaNode, dialect: Dialect) -> Any:
    if dialect == Dialect.GEMINI:
        return to_gemini_schema(node)
    if dialect == Dialect.JSON_SCHEMA:
        return to_json_schema(node)
    raise ValueError(f"Unsupported schema dialect: {dialect}")
