"""
Behaviour extraction.

Collects ``@callback`` / ``@macrocallback`` declarations, the
``@optional_callbacks`` set and ``@behaviour`` implementations from a
module body.
"""

from dataclasses import dataclass, field
from typing import Any

from .errors import Result, failure, success
from .helpers import (
    attribute_parts,
    doc_string,
    extract_location_if,
    extract_moduledoc,
    format_error,
    module_name,
    normalize_body,
)
from .location import SourceLocation, extract_location
from .nodes import Atom, Call, Integer, ListNode, TupleNode, Variable, is_call

CALLBACK_ATTRIBUTES = frozenset({"callback", "macrocallback"})


@dataclass(frozen=True)
class Callback:
    name: str
    arity: int
    type: str  # "callback" or "macrocallback"
    spec: Any = None
    return_type: Any = None
    parameters: list = field(default_factory=list)
    is_optional: bool = False
    doc: str | bool | None = None
    location: SourceLocation | None = None


@dataclass(frozen=True)
class Behaviour:
    callbacks: list[Callback] = field(default_factory=list)
    macrocallbacks: list[Callback] = field(default_factory=list)
    optional_callbacks: list[tuple[str, int]] = field(default_factory=list)
    implementations: list[str] = field(default_factory=list)
    doc: str | bool | None = None
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


def _attribute(node: Any, names) -> tuple[str, Any] | None:
    parts = attribute_parts(node)
    if parts is None or parts[0] not in names or len(parts[1]) != 1:
        return None
    return parts[0], parts[1][0]


def is_callback(node: Any) -> bool:
    return _attribute(node, {"callback"}) is not None


def is_macrocallback(node: Any) -> bool:
    return _attribute(node, {"macrocallback"}) is not None


def is_optional_callbacks(node: Any) -> bool:
    return _attribute(node, {"optional_callbacks"}) is not None


def defines_behaviour(body: Any) -> bool:
    return any(_attribute(statement, CALLBACK_ATTRIBUTES) for statement in normalize_body(body))


def _parse_head(head: Any) -> tuple[str, list]:
    if is_call(head, "when") and head.args:
        head = head.args[0]
    if isinstance(head, Variable):
        return head.name, []
    if isinstance(head, Call):
        return head.tag, list(head.args)
    return "unknown", [head]


def _parse_spec(spec: Any) -> tuple[str, list, Any]:
    if is_call(spec, "when", 2):
        spec = spec.args[0]
    if is_call(spec, "::", 2):
        name, parameters = _parse_head(spec.args[0])
        return name, parameters, spec.args[1]
    if isinstance(spec, Variable):
        return spec.name, [], None
    if isinstance(spec, Call):
        return spec.tag, list(spec.args), None
    return "unknown", [], spec


def _build_callback(node: Any, kind: str, spec: Any, doc, optional: list, include_location=True):
    name, parameters, return_type = _parse_spec(spec)
    arity = len(parameters)
    return Callback(
        name=name,
        arity=arity,
        type=kind,
        spec=spec,
        return_type=return_type,
        parameters=parameters,
        is_optional=(name, arity) in optional,
        doc=doc,
        location=extract_location_if(node, include_location),
    )


def _optional_entries(value: Any) -> list[tuple[str, int]]:
    entries = []
    if not isinstance(value, ListNode):
        return entries
    for element in value.elements:
        if isinstance(element, TupleNode) and len(element.elements) == 2:
            name, arity = element.elements
            if isinstance(name, Atom) and isinstance(arity, Integer):
                entries.append((name.name, arity.value))
    return entries


def extract_callback(node: Any, include_location: bool = True) -> Result:
    attribute = _attribute(node, CALLBACK_ATTRIBUTES)
    if attribute is None:
        return failure("not_a_callback", format_error("Not a callback", node))
    kind, spec = attribute
    return success(_build_callback(node, kind, spec, None, [], include_location))


def extract_callback_or_raise(node: Any) -> Callback:
    return extract_callback(node).unwrap()


def extract_implementations(body: Any) -> list[str]:
    """Modules named by ``@behaviour`` declarations, in order."""
    implementations = []
    for statement in normalize_body(body):
        attribute = _attribute(statement, {"behaviour", "behavior"})
        if attribute is None:
            continue
        name = module_name(attribute[1])
        if name is not None:
            implementations.append(name)
    return implementations


def extract_from_body(body: Any, include_location: bool = True) -> Behaviour:
    statements = normalize_body(body)

    # Optionality must be known before the first callback is built
    optional = []
    for statement in statements:
        attribute = _attribute(statement, {"optional_callbacks"})
        if attribute is not None:
            optional.extend(_optional_entries(attribute[1]))

    callbacks = []
    macrocallbacks = []
    pending_doc = None
    for statement in statements:
        attribute = _attribute(statement, {"doc", "callback", "macrocallback"})
        if attribute is None:
            continue
        kind, value = attribute
        if kind == "doc":
            pending_doc = doc_string(value)
            continue
        callback = _build_callback(statement, kind, value, pending_doc, optional, include_location)
        if kind == "callback":
            callbacks.append(callback)
        else:
            macrocallbacks.append(callback)
        pending_doc = None

    return Behaviour(
        callbacks=callbacks,
        macrocallbacks=macrocallbacks,
        optional_callbacks=optional,
        implementations=extract_implementations(statements),
        doc=extract_moduledoc(statements),
        location=extract_location(statements[0]) if statements and include_location else None,
        metadata={
            "callback_count": len(callbacks),
            "macrocallback_count": len(macrocallbacks),
        },
    )


def _all_callbacks(behaviour: Behaviour) -> list[Callback]:
    return behaviour.callbacks + behaviour.macrocallbacks


def callback_names(behaviour: Behaviour) -> list[str]:
    return [callback.name for callback in _all_callbacks(behaviour)]


def required_callback_names(behaviour: Behaviour) -> list[str]:
    return [callback.name for callback in _all_callbacks(behaviour) if not callback.is_optional]


def optional_callback_names(behaviour: Behaviour) -> list[str]:
    return [callback.name for callback in _all_callbacks(behaviour) if callback.is_optional]


def get_callback(behaviour: Behaviour, name: str) -> Callback | None:
    for callback in _all_callbacks(behaviour):
        if callback.name == name:
            return callback
    return None


def is_optional(behaviour: Behaviour, name: str, arity: int) -> bool:
    return (name, arity) in behaviour.optional_callbacks
