"""
Function definition extraction.

Recognizes ``def``/``defp`` (with or without a guard, with or without a
body), ``defguard``/``defguardp`` and ``defdelegate``. Default parameters
give a function an arity range, so ``min_arity`` is reported next to
``arity``.
"""

from dataclasses import dataclass, field
from typing import Any

from . import parameter as parameter_extractor
from .errors import Result, failure, success
from .helpers import (
    attribute_parts,
    doc_string,
    extract_location_if,
    format_error,
    module_name,
    normalize_body,
    split_definition_head,
)
from .location import SourceLocation
from .nodes import Atom, Call, ListNode, is_call, keyword_get, meta_of

PUBLIC_FUNCTIONS = frozenset({"def"})
PRIVATE_FUNCTIONS = frozenset({"defp"})
PUBLIC_GUARDS = frozenset({"defguard"})
PRIVATE_GUARDS = frozenset({"defguardp"})
DELEGATES = frozenset({"defdelegate"})

FUNCTION_FORMS = PUBLIC_FUNCTIONS | PRIVATE_FUNCTIONS | PUBLIC_GUARDS | PRIVATE_GUARDS | DELEGATES


@dataclass(frozen=True)
class Function:
    type: str  # "function", "guard" or "delegate"
    name: str
    arity: int
    min_arity: int
    visibility: str
    parameters: list = field(default_factory=list)
    guard: Any = None
    body: Any = None
    docstring: str | bool | None = None
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


def is_function(node: Any) -> bool:
    return isinstance(node, Call) and node.tag in FUNCTION_FORMS


def is_guard_definition(node: Any) -> bool:
    return isinstance(node, Call) and node.tag in PUBLIC_GUARDS | PRIVATE_GUARDS


def is_delegate(node: Any) -> bool:
    return isinstance(node, Call) and node.tag in DELEGATES


def _arities(params: tuple) -> tuple[int, int, int]:
    defaults = sum(1 for param in params if is_call(param, "\\\\"))
    return len(params), len(params) - defaults, defaults


def _docstring(doc: Any) -> str | bool | None:
    if doc is False or isinstance(doc, str):
        return doc
    return None


def _base_metadata(node: Call, module, doc, defaults: int) -> dict:
    return {
        "module": module,
        "doc_hidden": doc is False,
        "default_args": defaults,
        "line": meta_of(node).get("line"),
    }


def _delegate_module(opts: Any) -> str | None:
    target = keyword_get(opts, "to")
    if target is None:
        return None
    return module_name(target)


def extract(
    node: Any,
    module: list[str] | None = None,
    doc: str | bool | None = None,
    spec: Any = None,
    include_location: bool = True,
) -> Result:
    """Extract a function, guard or delegate definition.

    Args:
        node: Definition node.
        module: Enclosing module name segments, kept in metadata.
        doc: Text of the preceding ``@doc`` (False for ``@doc false``).
        spec: Preceding ``@spec`` node.
        include_location: Attach a source location.
    """
    if not is_function(node) or not node.args:
        return failure("not_a_function", format_error("Not a function definition", node))

    head = split_definition_head(node.args[0])
    if head is None:
        return failure("not_a_function", format_error("Not a function definition", node))
    name, params, guard = head
    arity, min_arity, defaults = _arities(params)
    opts = node.args[1] if len(node.args) > 1 else None
    location = extract_location_if(node, include_location)
    parameters = parameter_extractor.extract_all(params, include_location)
    metadata = _base_metadata(node, module, doc, defaults)

    if node.tag in DELEGATES:
        if len(node.args) != 2:
            return failure("not_a_function", format_error("Not a function definition", node))
        target_module = _delegate_module(opts)
        target_function = keyword_get(opts, "as")
        target_name = target_function.name if isinstance(target_function, Atom) else name
        metadata["delegates_to"] = (
            (target_module, target_name, arity) if target_module is not None else None
        )
        return success(
            Function("delegate", name, arity, min_arity, "public", parameters, guard, None,
                     _docstring(doc), location, metadata)
        )

    if node.tag in PUBLIC_GUARDS | PRIVATE_GUARDS:
        if len(node.args) != 1:
            return failure("not_a_function", format_error("Not a function definition", node))
        visibility = "public" if node.tag in PUBLIC_GUARDS else "private"
        metadata["guard_expression"] = guard
        return success(
            Function("guard", name, arity, min_arity, visibility, parameters, guard, None,
                     _docstring(doc), location, metadata)
        )

    if len(node.args) > 2:
        return failure("not_a_function", format_error("Not a function definition", node))
    visibility = "public" if node.tag in PUBLIC_FUNCTIONS else "private"
    body = keyword_get(opts, "do") if isinstance(opts, ListNode) else None
    metadata["spec"] = spec
    metadata["has_guard"] = guard is not None
    metadata["has_body"] = opts is not None
    return success(
        Function("function", name, arity, min_arity, visibility, parameters, guard, body,
                 _docstring(doc), location, metadata)
    )


def extract_or_raise(node: Any, **options) -> Function:
    return extract(node, **options).unwrap()


def extract_all(body: Any, module: list[str] | None = None) -> list[Function]:
    """Function definitions of a module body, in order.

    A ``@doc`` or ``@spec`` attaches to the next definition and is then
    cleared.
    """
    functions = []
    pending_doc = None
    pending_spec = None
    for statement in normalize_body(body):
        parts = attribute_parts(statement)
        if parts is not None and parts[0] == "doc" and len(parts[1]) == 1:
            pending_doc = doc_string(parts[1][0])
            continue
        if parts is not None and parts[0] == "spec" and len(parts[1]) == 1:
            pending_spec = parts[1][0]
            continue
        if not is_function(statement):
            continue
        result = extract(statement, module=module, doc=pending_doc, spec=pending_spec)
        if result.ok:
            functions.append(result.value)
        pending_doc = None
        pending_spec = None
    return functions


def function_id(function: Function) -> str:
    return f"{function.name}/{function.arity}"


def qualified_id(function: Function) -> str:
    module = function.metadata.get("module")
    if module:
        return f"{'.'.join(module)}.{function.name}/{function.arity}"
    return function_id(function)


def is_doc_hidden(function: Function) -> bool:
    return function.docstring is False or function.metadata.get("doc_hidden", False)


def has_defaults(function: Function) -> bool:
    return function.min_arity < function.arity


def delegate_target(function: Function) -> tuple | None:
    if function.type != "delegate":
        return None
    return function.metadata.get("delegates_to")
