"""
Macro definition extraction.

A macro is non-hygienic when its body calls ``var!``. Use of
``Macro.escape`` is reported separately and does not affect hygiene.
"""

from dataclasses import dataclass, field
from typing import Any

from . import parameter as parameter_extractor
from .errors import Result, failure, success
from .helpers import extract_location_if, format_error, module_parts, normalize_body, split_definition_head
from .nodes import Call, ListNode, RemoteCall, keyword_get, prewalk
from .location import SourceLocation

MACRO_FORMS = frozenset({"defmacro", "defmacrop"})


@dataclass(frozen=True)
class Macro:
    name: str
    arity: int
    visibility: str
    parameters: list = field(default_factory=list)
    guard: Any = None
    body: Any = None
    is_hygienic: bool = True
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


def is_macro(node: Any) -> bool:
    return isinstance(node, Call) and node.tag in MACRO_FORMS


def _uses_var_bang(body: Any) -> bool:
    return any(isinstance(node, Call) and node.tag == "var!" for node in prewalk(body))


def _uses_macro_escape(body: Any) -> bool:
    return any(
        isinstance(node, RemoteCall)
        and node.function == "escape"
        and module_parts(node.receiver) == ["Macro"]
        for node in prewalk(body)
    )


def extract(node: Any, include_location: bool = True) -> Result:
    if not is_macro(node) or len(node.args) not in (1, 2):
        return failure("not_a_macro", format_error("Not a macro definition", node))
    head = split_definition_head(node.args[0])
    if head is None:
        return failure("not_a_macro", format_error("Not a macro definition", node))

    name, params, guard = head
    opts = node.args[1] if len(node.args) == 2 else None
    body = keyword_get(opts, "do") if isinstance(opts, ListNode) else None
    uses_var_bang = _uses_var_bang(body)
    return success(
        Macro(
            name=name,
            arity=len(params),
            visibility="public" if node.tag == "defmacro" else "private",
            parameters=parameter_extractor.extract_all(params, include_location),
            guard=guard,
            body=body,
            is_hygienic=not uses_var_bang,
            location=extract_location_if(node, include_location),
            metadata={
                "uses_var_bang": uses_var_bang,
                "uses_macro_escape": _uses_macro_escape(body),
                "has_guard": guard is not None,
            },
        )
    )


def extract_or_raise(node: Any, include_location: bool = True) -> Macro:
    return extract(node, include_location).unwrap()


def extract_all(body: Any) -> list[Macro]:
    macros = []
    for statement in normalize_body(body):
        if not is_macro(statement):
            continue
        result = extract(statement)
        if result.ok:
            macros.append(result.value)
    return macros


def is_public(macro: Macro) -> bool:
    return macro.visibility == "public"


def has_guard(macro: Macro) -> bool:
    return macro.guard is not None


def macro_id(macro: Macro) -> str:
    return f"{macro.name}/{macro.arity}"
