"""
Conditional expression extraction: ``if``, ``unless`` and ``cond``.

The condition of ``unless`` is kept as written. Its metadata marks the
negated semantics for consumers that need them.
"""

from dataclasses import dataclass, field
from typing import Any

from . import walker
from .clause import MalformedClause, build_clauses, clause_list, is_malformed, is_stab_clause
from .errors import Result, failure, success
from .helpers import extract_location_if, format_error
from .location import SourceLocation
from .nodes import ListNode, TRUE, is_call, keyword_get, keyword_has

CONDITIONAL_TYPES = ("if", "unless", "cond")


@dataclass(frozen=True)
class Branch:
    type: str  # "then" or "else"
    body: Any
    location: SourceLocation | None = None


@dataclass(frozen=True)
class CondClause:
    index: int
    condition: Any
    body: Any
    is_catch_all: bool = False
    location: SourceLocation | None = None


@dataclass(frozen=True)
class Conditional:
    type: str
    condition: Any = None
    branches: list[Branch] = field(default_factory=list)
    clauses: list[CondClause | MalformedClause] = field(default_factory=list)
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


def is_if(node: Any) -> bool:
    return is_call(node, "if", 2) and isinstance(node.args[1], ListNode)


def is_unless(node: Any) -> bool:
    return is_call(node, "unless", 2) and isinstance(node.args[1], ListNode)


def is_cond(node: Any) -> bool:
    return is_call(node, "cond", 1) and isinstance(node.args[0], ListNode)


def is_conditional(node: Any) -> bool:
    return is_if(node) or is_unless(node) or is_cond(node)


def _branches(opts: ListNode) -> list[Branch]:
    branches = [Branch("then", keyword_get(opts, "do"))]
    if keyword_has(opts, "else"):
        branches.append(Branch("else", keyword_get(opts, "else")))
    return branches


def _if_like(node: Any, kind: str, include_location: bool) -> Conditional:
    condition, opts = node.args
    branches = _branches(opts)
    metadata = {"has_else": len(branches) == 2, "branch_count": len(branches)}
    if kind == "unless":
        metadata["semantics"] = "negated_condition"
    return Conditional(
        type=kind,
        condition=condition,
        branches=branches,
        location=extract_location_if(node, include_location),
        metadata=metadata,
    )


def extract_if(node: Any, include_location: bool = True) -> Result:
    if not is_if(node):
        return failure("not_an_if", format_error("Not an if expression", node))
    return success(_if_like(node, "if", include_location))


def extract_unless(node: Any, include_location: bool = True) -> Result:
    if not is_unless(node):
        return failure("not_an_unless", format_error("Not an unless expression", node))
    return success(_if_like(node, "unless", include_location))


def _cond_clause(include_location: bool):
    def build(item: Any, index: int) -> CondClause | None:
        if not is_stab_clause(item) or len(item.args[0].elements) != 1:
            return None
        condition = item.args[0].elements[0]
        return CondClause(
            index=index,
            condition=condition,
            body=item.args[1],
            is_catch_all=condition == TRUE,
            location=extract_location_if(item, include_location),
        )

    return build


def extract_cond(node: Any, include_location: bool = True) -> Result:
    if not is_cond(node):
        return failure("not_a_cond", format_error("Not a cond expression", node))
    items = clause_list(keyword_get(node.args[0], "do"))
    clauses = build_clauses(items, _cond_clause(include_location), "cond")
    catch_all_count = sum(1 for c in clauses if not is_malformed(c) and c.is_catch_all)
    return success(
        Conditional(
            type="cond",
            clauses=clauses,
            location=extract_location_if(node, include_location),
            metadata={
                "clause_count": len(clauses),
                "has_catch_all": catch_all_count > 0,
                "catch_all_count": catch_all_count,
            },
        )
    )


def extract_conditional(node: Any, include_location: bool = True) -> Result:
    if is_if(node):
        return extract_if(node, include_location)
    if is_unless(node):
        return extract_unless(node, include_location)
    if is_cond(node):
        return extract_cond(node, include_location)
    return failure("not_a_conditional", format_error("Not a conditional expression", node))


def extract_conditional_or_raise(node: Any, include_location: bool = True) -> Conditional:
    return extract_conditional(node, include_location).unwrap()


def nested_nodes(record: Conditional) -> list:
    """Sub-expressions of a conditional that may hold further constructs."""
    if record.type == "cond":
        nested = []
        for clause in record.clauses:
            if not is_malformed(clause):
                nested.extend((clause.condition, clause.body))
        return nested
    return [record.condition] + [branch.body for branch in record.branches]


def _visit(node: Any, depth: int):
    if not is_conditional(node):
        return None
    record = extract_conditional(node).value
    return [record], nested_nodes(record)


def extract_conditionals(ast: Any, max_depth: int | None = None) -> list[Conditional]:
    """All conditionals in the tree, outer before inner, in source order."""
    return walker.collect(ast, _visit, max_depth)
