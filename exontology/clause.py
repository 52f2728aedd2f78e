"""
Clause helpers shared by the multi-clause extractors.

Clauses are ``->`` nodes whose left side is the list of heads. An item of a
clause list that does not have that shape becomes a ``MalformedClause`` in
place, so its siblings keep their positions.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from .helpers import format_error
from .nodes import Call, ListNode, is_call

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MalformedClause:
    """Placeholder for a clause that could not be decomposed."""

    index: int
    raw: Any
    malformed: bool = field(default=True, init=False)
    pattern: Any = field(default=None, init=False)
    guard: Any = field(default=None, init=False)
    body: Any = field(default=None, init=False)
    location: Any = field(default=None, init=False)
    metadata: dict = field(default_factory=lambda: {"malformed": True}, init=False)


def is_malformed(clause: Any) -> bool:
    return isinstance(clause, MalformedClause)


def is_stab_clause(node: Any) -> bool:
    return is_call(node, "->", 2) and isinstance(node.args[0], ListNode)


def clause_list(node: Any) -> list:
    """Items of a ``do``/``else``/``after`` clause section.

    An empty section parses as an empty block.
    """
    if isinstance(node, ListNode):
        return list(node.elements)
    if node is None or is_call(node, "__block__", 0):
        return []
    return [node]


def split_pattern_and_guard(node: Any) -> tuple[Any, Any]:
    """(pattern, guard) of a single clause head; guard is None without ``when``."""
    if is_call(node, "when", 2):
        return node.args[0], node.args[1]
    return node, None


def split_params_and_guard(params: Any) -> tuple[list, Any]:
    """(params, guard) of a multi-parameter clause head.

    ``x, y when g`` parses as a single ``when`` node holding every parameter
    followed by the guard.
    """
    params = list(params.elements if isinstance(params, ListNode) else params or [])
    if len(params) == 1 and isinstance(params[0], Call) and params[0].tag == "when":
        inner = list(params[0].args)
        if len(inner) >= 2:
            return inner[:-1], inner[-1]
    return params, None


def build_clauses(
    items: list,
    build: Callable[[Any, int], Any],
    construct: str,
) -> list:
    """Apply ``build(item, index)`` to every clause item.

    ``build`` returns None for an item it cannot decompose; that item is
    replaced by a ``MalformedClause`` and logged.
    """
    clauses = []
    for index, item in enumerate(items):
        clause = build(item, index)
        if clause is None:
            logger.warning(format_error(f"Malformed {construct} clause at index {index}", item))
            clause = MalformedClause(index, item)
        clauses.append(clause)
    return clauses


def clause_bodies(clauses: list) -> list:
    return [clause.body for clause in clauses if not is_malformed(clause) and clause.body is not None]
