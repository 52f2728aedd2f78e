"""
Struct and exception definition extraction.

``extract`` reads the field list of a single ``defstruct`` node.
``extract_from_body`` and ``extract_exception`` scan a whole module body so
``@enforce_keys`` and ``@derive`` directives are picked up as well.
"""

from dataclasses import dataclass, field, replace
from typing import Any

from .errors import Result, failure, success
from .helpers import (
    DeriveInfo,
    attribute_parts,
    extract_derives,
    extract_location_if,
    format_error,
    normalize_body,
    split_definition_head,
)
from .location import SourceLocation
from .nodes import Atom, Call, ListNode, Str, TupleNode, meta_of


@dataclass(frozen=True)
class StructField:
    name: str
    has_default: bool = False
    default_value: Any = None
    location: SourceLocation | None = None
    raw: Any = None


@dataclass(frozen=True)
class Struct:
    fields: list[StructField] = field(default_factory=list)
    enforce_keys: list[str] = field(default_factory=list)
    derives: list[DeriveInfo] = field(default_factory=list)
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ExceptionStruct:
    fields: list[StructField] = field(default_factory=list)
    enforce_keys: list[str] = field(default_factory=list)
    derives: list[DeriveInfo] = field(default_factory=list)
    has_custom_message: bool = False
    default_message: str | None = None
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


def is_defstruct(node: Any) -> bool:
    return isinstance(node, Call) and node.tag == "defstruct"


def is_defexception(node: Any) -> bool:
    return isinstance(node, Call) and node.tag == "defexception"


def defines_struct(body: Any) -> bool:
    return any(is_defstruct(statement) for statement in normalize_body(body))


def defines_exception(body: Any) -> bool:
    return any(is_defexception(statement) for statement in normalize_body(body))


# =============================================================================
# Fields
# =============================================================================


def _field(element: Any) -> StructField:
    if isinstance(element, Atom):
        return StructField(element.name)
    if (
        isinstance(element, TupleNode)
        and len(element.elements) == 2
        and isinstance(element.elements[0], Atom)
    ):
        return StructField(element.elements[0].name, True, element.elements[1])
    return StructField("unknown", raw=element)


def _fields(node: Call) -> list[StructField]:
    if len(node.args) != 1 or not isinstance(node.args[0], ListNode):
        return []
    return [_field(element) for element in node.args[0].elements]


def extract_enforce_keys(body: Any) -> list[str]:
    keys = []
    for statement in normalize_body(body):
        parts = attribute_parts(statement)
        if parts is None or parts[0] != "enforce_keys" or len(parts[1]) != 1:
            continue
        value = parts[1][0]
        if isinstance(value, ListNode):
            keys.extend(element.name for element in value.elements if isinstance(element, Atom))
    return keys


def _has_custom_message(statements: list) -> bool:
    for statement in statements:
        if not (isinstance(statement, Call) and statement.tag == "def" and statement.args):
            continue
        head = split_definition_head(statement.args[0])
        if head is not None and head[0] == "message" and len(head[1]) == 1:
            return True
    return False


def _default_message(fields: list[StructField]) -> str | None:
    for struct_field in fields:
        if struct_field.name == "message":
            if struct_field.has_default and isinstance(struct_field.default_value, Str):
                return struct_field.default_value.value
            return None
    return None


# =============================================================================
# Extraction
# =============================================================================


def extract(node: Any, include_location: bool = True) -> Result:
    if not is_defstruct(node):
        return failure("not_a_struct", format_error("Not a defstruct", node))
    fields = _fields(node)
    return success(
        Struct(
            fields=fields,
            location=extract_location_if(node, include_location),
            metadata={
                "field_count": len(fields),
                "fields_with_defaults": sum(1 for f in fields if f.has_default),
                "line": meta_of(node).get("line"),
            },
        )
    )


def extract_or_raise(node: Any, include_location: bool = True) -> Struct:
    return extract(node, include_location).unwrap()


def extract_from_body(body: Any, include_location: bool = True) -> Result:
    statements = normalize_body(body)
    node = next((statement for statement in statements if is_defstruct(statement)), None)
    if node is None:
        return failure("no_struct", "No defstruct found in module body")
    struct = extract(node, include_location).unwrap()
    return success(
        replace(struct, enforce_keys=extract_enforce_keys(statements), derives=extract_derives(body))
    )


def extract_exception(body: Any, include_location: bool = True) -> Result:
    """Exception definition from a module body (or a lone ``defexception`` node)."""
    statements = normalize_body(body)
    node = next((statement for statement in statements if is_defexception(statement)), None)
    if node is None:
        return failure("no_exception", format_error("No defexception found in module body", body))
    fields = _fields(node)
    default_message = _default_message(fields)
    return success(
        ExceptionStruct(
            fields=fields,
            enforce_keys=extract_enforce_keys(statements),
            derives=extract_derives(body),
            has_custom_message=_has_custom_message(statements),
            default_message=default_message,
            location=extract_location_if(node, include_location),
            metadata={
                "field_count": len(fields),
                "has_default_message": default_message is not None,
                "line": meta_of(node).get("line"),
            },
        )
    )


def extract_exception_or_raise(body: Any, include_location: bool = True) -> ExceptionStruct:
    return extract_exception(body, include_location).unwrap()


# =============================================================================
# Queries
# =============================================================================


def field_names(struct: Struct | ExceptionStruct) -> list[str]:
    return [f.name for f in struct.fields]


def get_field(struct: Struct | ExceptionStruct, name: str) -> StructField | None:
    for struct_field in struct.fields:
        if struct_field.name == name:
            return struct_field
    return None


def enforced(struct: Struct | ExceptionStruct, name: str) -> bool:
    return name in struct.enforce_keys


def has_default(struct: Struct | ExceptionStruct, name: str) -> bool:
    struct_field = get_field(struct, name)
    return struct_field is not None and struct_field.has_default


def default_value(struct: Struct | ExceptionStruct, name: str) -> Any:
    struct_field = get_field(struct, name)
    return struct_field.default_value if struct_field is not None else None


def fields_with_defaults(struct: Struct | ExceptionStruct) -> list[StructField]:
    return [f for f in struct.fields if f.has_default]


def required_fields(struct: Struct | ExceptionStruct) -> list[StructField]:
    """Enforced fields without a default."""
    return [f for f in struct.fields if f.name in struct.enforce_keys and not f.has_default]


def has_derives(struct: Struct | ExceptionStruct) -> bool:
    return bool(struct.derives)


def derived_protocols(struct: Struct | ExceptionStruct) -> list:
    return [entry["protocol"] for derive in struct.derives for entry in derive.protocols]
