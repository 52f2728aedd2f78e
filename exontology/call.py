"""
Function call extraction.

Three kinds of call site are recognised:

- local: ``foo(a, b)``, a call in the current module
- remote: ``Mod.foo(a)``, ``:ets.new(...)``, ``__MODULE__.foo()`` or ``var.foo()``
- dynamic: ``apply/2``, ``apply/3``, ``Kernel.apply`` and ``fun.(args)``

Calls are extracted on demand; nothing here runs unless a caller asks for
call sites.
"""

import re
from dataclasses import dataclass, field
from typing import Any

from . import walker
from .errors import Result, failure, success
from .helpers import extract_location_if, format_error, is_special_form, module_parts
from .location import SourceLocation
from .nodes import Atom, Call, ListNode, RemoteCall, Variable, is_alias

CALL_TYPES = ("local", "remote", "dynamic")

_IDENTIFIER = re.compile(r"^[a-z_][a-zA-Z0-9_]*[?!]?$")

# Word operators that parse with an identifier-shaped tag
_WORD_OPERATORS = frozenset({"and", "or", "not", "in", "when"})


@dataclass(frozen=True)
class FunctionCall:
    type: str
    name: str
    arity: int
    module: Any = None  # name parts for aliases, a string for atoms and variables
    arguments: list = field(default_factory=list)
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


# =============================================================================
# Predicates
# =============================================================================


def is_local_call(node: Any) -> bool:
    if not isinstance(node, Call):
        return False
    tag = node.tag
    if not _IDENTIFIER.match(tag) or tag.startswith("sigil_"):
        return False
    return not is_special_form(tag) and tag not in _WORD_OPERATORS


def _is_current_module(node: Any) -> bool:
    return isinstance(node, Variable) and node.name == "__MODULE__"


def is_remote_call(node: Any) -> bool:
    if not isinstance(node, RemoteCall) or node.function is None:
        return False
    receiver = node.receiver
    return is_alias(receiver) or isinstance(receiver, (Atom, Variable))


def _is_kernel_apply(node: Any) -> bool:
    return (
        isinstance(node, RemoteCall)
        and node.function == "apply"
        and module_parts(node.receiver) == ["Kernel"]
    )


def _apply_args(node: Any) -> tuple | None:
    """Arguments of an apply/2 or apply/3 call whose last argument is a list."""
    if isinstance(node, Call) and node.tag == "apply":
        args = node.args
    elif _is_kernel_apply(node):
        args = node.args
    else:
        return None
    if len(args) in (2, 3) and isinstance(args[-1], ListNode):
        return args
    return None


def _is_anonymous_call(node: Any) -> bool:
    return (
        isinstance(node, RemoteCall)
        and node.function is None
        and isinstance(node.receiver, Variable)
        and not _is_current_module(node.receiver)
    )


def is_dynamic_call(node: Any) -> bool:
    return _apply_args(node) is not None or _is_anonymous_call(node)


# =============================================================================
# Extraction
# =============================================================================


def extract_local(node: Any, include_location: bool = True) -> Result:
    if not is_local_call(node):
        return failure("not_a_local_call", format_error("Not a local function call", node))
    return success(
        FunctionCall(
            type="local",
            name=node.tag,
            arity=len(node.args),
            arguments=list(node.args),
            location=extract_location_if(node, include_location),
        )
    )


def extract_remote(node: Any, include_location: bool = True) -> Result:
    if not is_remote_call(node):
        return failure("not_a_remote_call", format_error("Not a remote function call", node))
    receiver = node.receiver
    if is_alias(receiver):
        module, metadata = module_parts(receiver), {}
    elif isinstance(receiver, Atom):
        module, metadata = receiver.name, {"erlang_module": True}
    elif _is_current_module(receiver):
        module, metadata = "__MODULE__", {"current_module": True}
    else:
        module = receiver.name
        metadata = {"dynamic_receiver": True, "receiver_variable": receiver.name}
    return success(
        FunctionCall(
            type="remote",
            name=node.function,
            arity=len(node.args),
            module=module,
            arguments=list(node.args),
            location=extract_location_if(node, include_location),
            metadata=metadata,
        )
    )


def _target_info(node: Any, prefix: str) -> dict:
    if is_alias(node):
        return {f"known_{prefix}": module_parts(node)}
    if isinstance(node, Atom):
        return {f"known_{prefix}": node.name}
    if isinstance(node, Variable):
        return {f"{prefix}_variable": node.name}
    return {}


def extract_dynamic(node: Any, include_location: bool = True) -> Result:
    location = extract_location_if(node, include_location)
    args = _apply_args(node)
    if args is not None:
        arguments = list(args[-1].elements)
        if len(args) == 3:
            metadata = {"dynamic_type": "apply_3"}
            metadata.update(_target_info(args[0], "module"))
            metadata.update(_target_info(args[1], "function"))
        else:
            metadata = {"dynamic_type": "apply_2"}
            if isinstance(args[0], Variable):
                metadata["function_variable"] = args[0].name
            elif isinstance(args[0], Call) and args[0].tag == "&":
                metadata["function_capture"] = args[0]
        return success(
            FunctionCall("dynamic", "apply", len(arguments), None, arguments, location, metadata)
        )
    if _is_anonymous_call(node):
        return success(
            FunctionCall(
                "dynamic",
                "anonymous",
                len(node.args),
                None,
                list(node.args),
                location,
                {"dynamic_type": "anonymous_call", "function_variable": node.receiver.name},
            )
        )
    return failure("not_a_dynamic_call", format_error("Not a dynamic function call", node))


def extract(node: Any, include_location: bool = True) -> Result:
    """Any call site; dynamic shapes are checked before remote and local ones."""
    if is_dynamic_call(node):
        return extract_dynamic(node, include_location)
    if is_remote_call(node):
        return extract_remote(node, include_location)
    if is_local_call(node):
        return extract_local(node, include_location)
    return failure("not_a_call", format_error("Not a function call", node))


def extract_or_raise(node: Any, include_location: bool = True) -> FunctionCall:
    return extract(node, include_location).unwrap()


# =============================================================================
# Bulk extraction
# =============================================================================


def extract_calls(ast: Any, call_type: str | None = None, max_depth: int | None = None) -> list[FunctionCall]:
    """Call sites in the tree, each before the calls in its arguments.

    Args:
        ast: Root node.
        call_type: One of ``CALL_TYPES`` to keep only that kind; None keeps all.
        max_depth: Depth limit, defaults to the shared recursion limit.
    """

    def visit(node: Any, depth: int):
        result = extract(node)
        if not result.ok:
            return None
        found = [result.value] if call_type in (None, result.value.type) else []
        return found, result.value.arguments

    return walker.collect(ast, visit, max_depth)


def extract_local_calls(ast: Any, max_depth: int | None = None) -> list[FunctionCall]:
    return extract_calls(ast, "local", max_depth)


def extract_remote_calls(ast: Any, max_depth: int | None = None) -> list[FunctionCall]:
    return extract_calls(ast, "remote", max_depth)


def extract_dynamic_calls(ast: Any, max_depth: int | None = None) -> list[FunctionCall]:
    return extract_calls(ast, "dynamic", max_depth)
