"""
Pattern-matching expression extraction: ``case``, ``with`` and ``receive``.

Clause patterns are kept as raw nodes. Pass ``include_patterns=True`` to
also get a ``Pattern`` record for each clause.
"""

from dataclasses import dataclass, field
from typing import Any

from . import pattern as pattern_extractor
from . import walker
from .clause import (
    MalformedClause,
    build_clauses,
    clause_bodies,
    clause_list,
    is_malformed,
    is_stab_clause,
    split_pattern_and_guard,
)
from .errors import Result, failure, success
from .helpers import extract_location_if, format_error
from .location import SourceLocation
from .nodes import Integer, ListNode, is_call, keyword_get, keyword_has, keyword_items


@dataclass(frozen=True)
class CaseClause:
    index: int
    pattern: Any
    guard: Any = None
    body: Any = None
    has_guard: bool = False
    location: SourceLocation | None = None
    pattern_record: pattern_extractor.Pattern | None = None


@dataclass(frozen=True)
class CaseExpression:
    subject: Any
    clauses: list[CaseClause | MalformedClause] = field(default_factory=list)
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class WithClause:
    index: int
    type: str  # "match" (<-) or "bare_match" (=)
    pattern: Any
    expression: Any
    location: SourceLocation | None = None


@dataclass(frozen=True)
class WithExpression:
    clauses: list[WithClause | MalformedClause] = field(default_factory=list)
    body: Any = None
    else_clauses: list[CaseClause | MalformedClause] = field(default_factory=list)
    has_else: bool = False
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class AfterClause:
    timeout: Any
    body: Any
    is_immediate: bool = False
    location: SourceLocation | None = None


@dataclass(frozen=True)
class ReceiveExpression:
    clauses: list[CaseClause | MalformedClause] = field(default_factory=list)
    after_clause: AfterClause | None = None
    has_after: bool = False
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


# =============================================================================
# Predicates
# =============================================================================


def is_case(node: Any) -> bool:
    return is_call(node, "case", 2) and isinstance(node.args[1], ListNode)


def is_with(node: Any) -> bool:
    return is_call(node, "with") and len(node.args) >= 1 and isinstance(node.args[-1], ListNode)


def is_receive(node: Any) -> bool:
    return is_call(node, "receive", 1) and isinstance(node.args[0], ListNode)


# =============================================================================
# Clauses
# =============================================================================


def _case_clause_builder(include_location: bool, include_patterns: bool):
    def build(item: Any, index: int) -> CaseClause | None:
        if not is_stab_clause(item) or len(item.args[0].elements) != 1:
            return None
        pattern, guard = split_pattern_and_guard(item.args[0].elements[0])
        pattern_record = None
        if include_patterns:
            result = pattern_extractor.extract(pattern, include_location)
            pattern_record = result.value if result.ok else None
        return CaseClause(
            index=index,
            pattern=pattern,
            guard=guard,
            body=item.args[1],
            has_guard=guard is not None,
            location=extract_location_if(item, include_location),
            pattern_record=pattern_record,
        )

    return build


def build_case_clauses(
    items: Any, construct: str, include_location: bool = True, include_patterns: bool = False
) -> list:
    return build_clauses(
        clause_list(items), _case_clause_builder(include_location, include_patterns), construct
    )


def _with_clause_builder(include_location: bool):
    def build(item: Any, index: int) -> WithClause | None:
        if is_call(item, "<-", 2):
            kind = "match"
        elif is_call(item, "=", 2):
            kind = "bare_match"
        else:
            return None
        return WithClause(
            index=index,
            type=kind,
            pattern=item.args[0],
            expression=item.args[1],
            location=extract_location_if(item, include_location),
        )

    return build


def _after_clause(items: Any, include_location: bool) -> AfterClause | None:
    items = clause_list(items)
    if len(items) != 1:
        return None
    item = items[0]
    if not is_stab_clause(item) or len(item.args[0].elements) != 1:
        return None
    timeout = item.args[0].elements[0]
    return AfterClause(
        timeout=timeout,
        body=item.args[1],
        is_immediate=timeout == Integer(0),
        location=extract_location_if(item, include_location),
    )


# =============================================================================
# Extraction
# =============================================================================


def extract_case(node: Any, include_location: bool = True, include_patterns: bool = False) -> Result:
    if not is_case(node):
        return failure("not_a_case", format_error("Not a case expression", node))
    subject, opts = node.args
    clauses = build_case_clauses(keyword_get(opts, "do"), "case", include_location, include_patterns)
    return success(
        CaseExpression(
            subject=subject,
            clauses=clauses,
            location=extract_location_if(node, include_location),
            metadata={
                "clause_count": len(clauses),
                "has_guards": any(not is_malformed(c) and c.has_guard for c in clauses),
            },
        )
    )


def extract_with(node: Any, include_location: bool = True, include_patterns: bool = False) -> Result:
    if not is_with(node):
        return failure("not_a_with", format_error("Not a with expression", node))
    *clause_args, opts = node.args
    clauses = build_clauses(clause_args, _with_clause_builder(include_location), "with")
    else_items = keyword_get(opts, "else")
    else_clauses = build_case_clauses(else_items, "with else", include_location, include_patterns)
    return success(
        WithExpression(
            clauses=clauses,
            body=keyword_get(opts, "do"),
            else_clauses=else_clauses,
            has_else=keyword_has(opts, "else") and bool(clause_list(else_items)),
            location=extract_location_if(node, include_location),
            metadata={
                "clause_count": len(clauses),
                "else_clause_count": len(else_clauses),
                "has_bare_match": any(
                    not is_malformed(c) and c.type == "bare_match" for c in clauses
                ),
                "options": [key for key, _ in keyword_items(opts) if key not in ("do", "else")],
            },
        )
    )


def extract_receive(node: Any, include_location: bool = True, include_patterns: bool = False) -> Result:
    if not is_receive(node):
        return failure("not_a_receive", format_error("Not a receive expression", node))
    opts = node.args[0]
    clauses = build_case_clauses(keyword_get(opts, "do"), "receive", include_location, include_patterns)
    after_clause = _after_clause(keyword_get(opts, "after"), include_location)
    has_after = after_clause is not None
    return success(
        ReceiveExpression(
            clauses=clauses,
            after_clause=after_clause,
            has_after=has_after,
            location=extract_location_if(node, include_location),
            metadata={
                "clause_count": len(clauses),
                "is_blocking": not has_after or not after_clause.is_immediate,
                "has_immediate_timeout": has_after and after_clause.is_immediate,
            },
        )
    )


def extract_case_or_raise(node: Any, **options) -> CaseExpression:
    return extract_case(node, **options).unwrap()


def extract_with_or_raise(node: Any, **options) -> WithExpression:
    return extract_with(node, **options).unwrap()


def extract_receive_or_raise(node: Any, **options) -> ReceiveExpression:
    return extract_receive(node, **options).unwrap()


# =============================================================================
# Bulk extraction
# =============================================================================


def nested_nodes(record: Any) -> list:
    """Sub-expressions of a case/with/receive record that may hold further constructs."""
    if isinstance(record, CaseExpression):
        return [record.subject] + clause_bodies(record.clauses)
    if isinstance(record, WithExpression):
        expressions = [c.expression for c in record.clauses if not is_malformed(c)]
        return expressions + [record.body] + clause_bodies(record.else_clauses)
    if isinstance(record, ReceiveExpression):
        nested = clause_bodies(record.clauses)
        if record.after_clause is not None:
            nested.append(record.after_clause.body)
        return nested
    return []


_EXTRACTORS = (
    (is_case, extract_case),
    (is_with, extract_with),
    (is_receive, extract_receive),
)


def _collect(ast: Any, wanted, max_depth: int | None) -> list:
    def visit(node: Any, depth: int):
        for predicate, extract in _EXTRACTORS:
            if predicate(node):
                record = extract(node).value
                found = [record] if predicate is wanted else []
                return found, nested_nodes(record)
        return None

    return walker.collect(ast, visit, max_depth)


def extract_case_expressions(ast: Any, max_depth: int | None = None) -> list[CaseExpression]:
    return _collect(ast, is_case, max_depth)


def extract_with_expressions(ast: Any, max_depth: int | None = None) -> list[WithExpression]:
    return _collect(ast, is_with, max_depth)


def extract_receive_expressions(ast: Any, max_depth: int | None = None) -> list[ReceiveExpression]:
    return _collect(ast, is_receive, max_depth)
