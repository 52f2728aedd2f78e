"""
Anonymous function extraction (``fn ... end``).

Every well-formed clause must take the same number of parameters; when
they disagree extraction fails with ``inconsistent_arity`` instead of
reporting the first clause's arity.
"""

from dataclasses import dataclass, field
from typing import Any

from . import pattern as pattern_extractor
from . import walker
from .clause import (
    MalformedClause,
    build_clauses,
    clause_bodies,
    is_malformed,
    is_stab_clause,
    split_params_and_guard,
)
from .errors import Result, failure, success
from .helpers import extract_location_if, format_error
from .location import SourceLocation
from .nodes import Call


@dataclass(frozen=True)
class FnClause:
    order: int  # 1-based
    parameters: list = field(default_factory=list)
    guard: Any = None
    body: Any = None
    location: SourceLocation | None = None
    parameter_patterns: list | None = None


@dataclass(frozen=True)
class AnonymousFunction:
    clauses: list[FnClause | MalformedClause]
    arity: int
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


def is_anonymous_function(node: Any) -> bool:
    return isinstance(node, Call) and node.tag == "fn"


def _patterns(parameters: list, include_location: bool) -> list:
    patterns = []
    for parameter in parameters:
        result = pattern_extractor.extract(parameter, include_location)
        patterns.append(result.value if result.ok else None)
    return patterns


def _clause_builder(include_location: bool, include_patterns: bool):
    def build(item: Any, index: int) -> FnClause | None:
        if not is_stab_clause(item):
            return None
        parameters, guard = split_params_and_guard(item.args[0])
        return FnClause(
            order=index + 1,
            parameters=parameters,
            guard=guard,
            body=item.args[1],
            location=extract_location_if(item, include_location),
            parameter_patterns=_patterns(parameters, include_location) if include_patterns else None,
        )

    return build


def extract(node: Any, include_patterns: bool = False, include_location: bool = True) -> Result:
    if not is_anonymous_function(node):
        return failure("not_anonymous_function", format_error("Not an anonymous function", node))

    clauses = build_clauses(
        list(node.args), _clause_builder(include_location, include_patterns), "fn"
    )
    well_formed = [clause for clause in clauses if not is_malformed(clause)]
    arities = [len(clause.parameters) for clause in well_formed]
    if len(set(arities)) > 1:
        return failure(
            "inconsistent_arity",
            format_error(f"Anonymous function clauses have different arities {arities}", node),
        )

    bindings = pattern_extractor.collect_bindings(
        [parameter for clause in well_formed for parameter in clause.parameters]
    )
    return success(
        AnonymousFunction(
            clauses=clauses,
            arity=arities[0] if arities else 0,
            location=extract_location_if(node, include_location),
            metadata={
                "clause_count": len(clauses),
                "has_guards": any(clause.guard is not None for clause in well_formed),
                "bound_variables": bindings,
            },
        )
    )


def extract_or_raise(node: Any, include_patterns: bool = False) -> AnonymousFunction:
    return extract(node, include_patterns).unwrap()


def is_multi_clause(function: AnonymousFunction) -> bool:
    return len(function.clauses) > 1


def _visit(node: Any, depth: int):
    if not is_anonymous_function(node):
        return None
    result = extract(node)
    if not result.ok:
        return None
    return [result.value], clause_bodies(result.value.clauses)


def extract_all(ast: Any, max_depth: int | None = None) -> list[AnonymousFunction]:
    """Anonymous functions anywhere in the tree, including ones nested in clause bodies."""
    return walker.collect(ast, _visit, max_depth)
