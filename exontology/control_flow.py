"""
Control flow extraction.

One entry point for every control flow construct. ``if``/``unless``/``cond``
and ``case``/``with``/``receive`` are handed to their own extractors; this
module decomposes ``try``, ``raise`` and ``throw``.
"""

from dataclasses import dataclass, field
from typing import Any

from . import case_with, conditional, walker
from .clause import (
    MalformedClause,
    build_clauses,
    clause_bodies,
    clause_list,
    is_malformed,
    is_stab_clause,
    split_params_and_guard,
)
from .errors import Result, failure, success
from .helpers import extract_location_if, format_error, module_name, module_parts
from .location import SourceLocation
from .literal import has_interpolation
from .nodes import Atom, Call, ListNode, Str, Variable, is_alias, is_call, keyword_get, keyword_has, render

CONTROL_FLOW_TYPES = ("if", "unless", "case", "cond", "with", "try", "receive", "raise", "throw")

RAISE_TYPES = ("message", "exception", "reraise", "unknown")


@dataclass(frozen=True)
class RescueClause:
    index: int
    exceptions: list[str] = field(default_factory=list)
    variable: str | None = None
    body: Any = None
    location: SourceLocation | None = None


@dataclass(frozen=True)
class CatchClause:
    index: int
    kind: Any  # atom name ("throw", "exit", "error") or the kind expression
    pattern: Any
    guard: Any = None
    body: Any = None
    location: SourceLocation | None = None


@dataclass(frozen=True)
class TryExpression:
    body: Any
    rescue_clauses: list[RescueClause | MalformedClause] = field(default_factory=list)
    catch_clauses: list[CatchClause | MalformedClause] = field(default_factory=list)
    after_body: Any = None
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)
    else_clauses: list = field(default_factory=list)


@dataclass(frozen=True)
class RaiseExpression:
    raise_type: str
    message: Any = None
    exception_module: list[str] | None = None
    options: Any = None
    exception: Any = None
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ThrowExpression:
    value: Any
    location: SourceLocation | None = None


# =============================================================================
# Classification
# =============================================================================


def control_flow_type(node: Any) -> str | None:
    if isinstance(node, Call) and node.tag in CONTROL_FLOW_TYPES:
        return node.tag
    return None


def is_control_flow(node: Any) -> bool:
    return control_flow_type(node) is not None


def is_try(node: Any) -> bool:
    return is_call(node, "try", 1) and isinstance(node.args[0], ListNode)


def is_raise(node: Any) -> bool:
    return is_call(node, "raise") and len(node.args) in (1, 2)


def is_throw(node: Any) -> bool:
    return is_call(node, "throw", 1)


# =============================================================================
# try / rescue / catch
# =============================================================================


def _exception_names(node: Any) -> list[str]:
    entries = node.elements if isinstance(node, ListNode) else (node,)
    names = []
    for entry in entries:
        name = module_name(entry) if is_alias(entry) or isinstance(entry, Atom) else None
        names.append(name if name is not None else render(entry))
    return names


def _rescue_head(head: Any) -> tuple[list[str], str | None]:
    if is_call(head, "in", 2) and isinstance(head.args[0], Variable):
        variable = head.args[0].name
        return _exception_names(head.args[1]), None if variable == "_" else variable
    if isinstance(head, Variable):
        return [], None if head.name == "_" else head.name
    return _exception_names(head), None


def _rescue_builder(include_location: bool):
    def build(item: Any, index: int) -> RescueClause | None:
        if not is_stab_clause(item) or len(item.args[0].elements) != 1:
            return None
        exceptions, variable = _rescue_head(item.args[0].elements[0])
        return RescueClause(
            index=index,
            exceptions=exceptions,
            variable=variable,
            body=item.args[1],
            location=extract_location_if(item, include_location),
        )

    return build


def _catch_builder(include_location: bool):
    def build(item: Any, index: int) -> CatchClause | None:
        if not is_stab_clause(item):
            return None
        params, guard = split_params_and_guard(item.args[0])
        if len(params) == 1:
            kind, pattern = "throw", params[0]
        elif len(params) == 2:
            kind, pattern = params
            if isinstance(kind, Atom):
                kind = kind.name
        else:
            return None
        return CatchClause(
            index=index,
            kind=kind,
            pattern=pattern,
            guard=guard,
            body=item.args[1],
            location=extract_location_if(item, include_location),
        )

    return build


def extract_try(node: Any, include_location: bool = True) -> Result:
    if not is_try(node):
        return failure("not_a_try", format_error("Not a try expression", node))
    opts = node.args[0]
    rescue_clauses = build_clauses(
        clause_list(keyword_get(opts, "rescue")), _rescue_builder(include_location), "rescue"
    )
    catch_clauses = build_clauses(
        clause_list(keyword_get(opts, "catch")), _catch_builder(include_location), "catch"
    )
    else_clauses = case_with.build_case_clauses(
        keyword_get(opts, "else"), "try else", include_location
    )
    after_body = keyword_get(opts, "after")
    return success(
        TryExpression(
            body=keyword_get(opts, "do"),
            rescue_clauses=rescue_clauses,
            catch_clauses=catch_clauses,
            after_body=after_body,
            location=extract_location_if(node, include_location),
            metadata={
                "has_rescue": bool(rescue_clauses),
                "has_catch": bool(catch_clauses),
                "has_after": keyword_has(opts, "after"),
                "has_else": bool(else_clauses),
                "rescue_clause_count": len(rescue_clauses),
                "catch_clause_count": len(catch_clauses),
            },
            else_clauses=else_clauses,
        )
    )


def extract_try_or_raise(node: Any, include_location: bool = True) -> TryExpression:
    return extract_try(node, include_location).unwrap()


# =============================================================================
# raise / throw
# =============================================================================


def _is_message(node: Any) -> bool:
    return isinstance(node, Str) or (is_call(node, "<<>>") and has_interpolation(node.args))


def extract_raise(node: Any, include_location: bool = True) -> Result:
    if not is_raise(node):
        return failure("not_a_raise", format_error("Not a raise expression", node))
    location = extract_location_if(node, include_location)
    args = node.args

    if len(args) == 1 and _is_message(args[0]):
        message = args[0].value if isinstance(args[0], Str) else args[0]
        return success(RaiseExpression("message", message=message, location=location))
    if is_alias(args[0]):
        options = args[1] if len(args) == 2 else ListNode()
        return success(
            RaiseExpression(
                "exception",
                exception_module=module_parts(args[0]),
                options=options,
                location=location,
                metadata={"has_options": len(args) == 2},
            )
        )
    if len(args) == 1:
        return success(RaiseExpression("reraise", exception=args[0], location=location))
    return success(RaiseExpression("unknown", location=location, metadata={"args": list(args)}))


def extract_throw(node: Any, include_location: bool = True) -> Result:
    if not is_throw(node):
        return failure("not_a_throw", format_error("Not a throw expression", node))
    return success(ThrowExpression(node.args[0], extract_location_if(node, include_location)))


# =============================================================================
# Unified entry point
# =============================================================================


_EXTRACTORS = {
    "if": conditional.extract_if,
    "unless": conditional.extract_unless,
    "cond": conditional.extract_cond,
    "case": case_with.extract_case,
    "with": case_with.extract_with,
    "receive": case_with.extract_receive,
    "try": extract_try,
    "raise": extract_raise,
    "throw": extract_throw,
}


def extract(node: Any, include_location: bool = True) -> Result:
    """Record of the extractor that owns this control flow construct."""
    kind = control_flow_type(node)
    if kind is None:
        return failure("not_control_flow", format_error("Not a control flow expression", node))
    return _EXTRACTORS[kind](node, include_location)


def extract_or_raise(node: Any, include_location: bool = True) -> Any:
    return extract(node, include_location).unwrap()


def nested_nodes(record: Any) -> list:
    """Sub-expressions of any control flow record that may hold further constructs."""
    if isinstance(record, conditional.Conditional):
        return conditional.nested_nodes(record)
    if isinstance(record, TryExpression):
        nested = [record.body]
        nested.extend(clause_bodies(record.rescue_clauses))
        nested.extend(clause_bodies(record.catch_clauses))
        nested.extend(clause_bodies(record.else_clauses))
        nested.append(record.after_body)
        return nested
    if isinstance(record, RaiseExpression):
        return [record.exception, record.options] + record.metadata.get("args", [])
    if isinstance(record, ThrowExpression):
        return [record.value]
    return case_with.nested_nodes(record)


def _visit_try(node: Any, depth: int):
    if not is_try(node):
        return None
    record = extract_try(node).value
    return [record], nested_nodes(record)


def extract_try_expressions(ast: Any, max_depth: int | None = None) -> list[TryExpression]:
    return walker.collect(ast, _visit_try, max_depth)


def _visit_any(node: Any, depth: int):
    if not is_control_flow(node):
        return None
    result = extract(node)
    if not result.ok:
        return None
    return [result.value], nested_nodes(result.value)


def extract_all(ast: Any, max_depth: int | None = None) -> list:
    """Every control flow construct in the tree, outer before inner."""
    return walker.collect(ast, _visit_any, max_depth)


def has_malformed_clauses(record: Any) -> bool:
    clauses = getattr(record, "clauses", None) or []
    return any(is_malformed(clause) for clause in clauses)
