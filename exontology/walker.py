"""
Depth-bounded tree walker shared by the bulk extractors.

``collect`` walks a tree in source order and asks a visitor about each node.
The visitor returns None to decline (the walker then descends into the
node's children) or a ``(records, nested)`` pair: the records are emitted
and only the ``nested`` sub-nodes are scanned further, so a construct is
never reported twice.

Statement blocks and plain lists do not add a level; every other descent
does. Subtrees beyond ``max_depth`` contribute nothing.
"""

import logging
from typing import Any, Callable, Iterable

from .helpers import resolve_max_depth
from .nodes import Call, ListNode, children

logger = logging.getLogger(__name__)

Visit = Callable[[Any, int], "tuple[Iterable, Iterable] | None"]


def _sequence(node: Any) -> tuple | None:
    if isinstance(node, ListNode):
        return node.elements
    if isinstance(node, Call) and node.tag == "__block__":
        return node.args
    if isinstance(node, (list, tuple)):
        return tuple(node)
    return None


def collect(ast: Any, visit: Visit, max_depth: int | None = None) -> list:
    """Records produced by ``visit`` anywhere in ``ast``, in source order."""
    limit = resolve_max_depth(max_depth)
    records = []
    stack = [(ast, 0)]
    while stack:
        node, depth = stack.pop()
        if depth > limit:
            logger.debug(f"Depth limit {limit} reached, skipping subtree")
            continue
        items = _sequence(node)
        if items is not None:
            stack.extend((child, depth) for child in reversed(items))
            continue
        matched = visit(node, depth)
        if matched is None:
            stack.extend((child, depth + 1) for child in reversed(children(node)))
            continue
        found, nested = matched
        records.extend(found)
        stack.extend((child, depth + 1) for child in reversed(list(nested)))
    return records


def matching(
    predicate: Callable[[Any], bool],
    extract: Callable[[Any], Any],
    nested: Callable[[Any], Iterable] = children,
) -> Visit:
    """Visitor for the common case: one record per node accepted by ``predicate``.

    Nodes whose extraction fails are skipped and walked into as if they had
    not matched.
    """

    def visit(node: Any, depth: int):
        if not predicate(node):
            return None
        result = extract(node)
        if not result.ok:
            logger.debug(f"Skipping node at depth {depth}: {result.error}")
            return None
        return [result.value], nested(node)

    return visit
