"""
Capture operator extraction (``&``).

- named_local: ``&foo/2``
- named_remote: ``&Mod.foo/2`` or ``&:erlang.foo/2``
- shorthand: ``&(&1 + &2)``; arity is the highest placeholder number

Placeholder discovery stops at nested captures: each capture is analysed
on its own.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from . import walker
from .errors import Result, failure, success
from .helpers import format_error, module_name
from .location import SourceLocation, extract_location
from .nodes import Atom, Call, Integer, RemoteCall, Variable, prewalk

logger = logging.getLogger(__name__)

CAPTURE_TYPES = ("named_local", "named_remote", "shorthand")


@dataclass(frozen=True)
class Capture:
    type: str
    module: str | None = None
    function: str | None = None
    arity: int = 0
    expression: Any = None
    placeholders: list[int] = field(default_factory=list)
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Placeholder:
    position: int
    usage_count: int
    locations: list[SourceLocation] = field(default_factory=list)


@dataclass(frozen=True)
class PlaceholderAnalysis:
    placeholders: list[Placeholder]
    highest: int | None
    arity: int
    gaps: list[int] = field(default_factory=list)
    has_gaps: bool = False
    total_usages: int = 0


def is_capture(node: Any) -> bool:
    return isinstance(node, Call) and node.tag == "&" and len(node.args) == 1


def is_placeholder(node: Any) -> bool:
    """``&1``, ``&2``, ...: a capture of a positive integer literal."""
    return is_capture(node) and isinstance(node.args[0], Integer) and node.args[0].value > 0


def _is_nested_capture(node: Any) -> bool:
    return is_capture(node) and not is_placeholder(node)


def _placeholder_nodes(ast: Any) -> list[Call]:
    def descend(node: Any) -> bool:
        return node is ast or not _is_nested_capture(node)

    return [node for node in prewalk(ast, descend) if is_placeholder(node)]


def find_placeholders(ast: Any) -> list[int]:
    """Sorted unique placeholder positions used in ``ast``."""
    return sorted({node.args[0].value for node in _placeholder_nodes(ast)})


def extract_capture_placeholders(ast: Any) -> list[Placeholder]:
    occurrences = defaultdict(list)
    for node in _placeholder_nodes(ast):
        occurrences[node.args[0].value].append(node)
    placeholders = []
    for position in sorted(occurrences):
        nodes = occurrences[position]
        locations = [loc for loc in (extract_location(node) for node in nodes) if loc is not None]
        placeholders.append(Placeholder(position, len(nodes), locations))
    return placeholders


def analyze_placeholders(ast: Any) -> PlaceholderAnalysis:
    """Placeholder usage of a shorthand capture body, with unused positions as gaps.

    >>> body = Call("+", (Call("&", (Integer(1),)), Call("&", (Integer(3),))))
    >>> analyze_placeholders(body).gaps
    [2]
    """
    placeholders = extract_capture_placeholders(ast)
    positions = [placeholder.position for placeholder in placeholders]
    highest = max(positions) if positions else None
    gaps = sorted(set(range(1, highest + 1)) - set(positions)) if highest else []
    return PlaceholderAnalysis(
        placeholders=placeholders,
        highest=highest,
        arity=highest or 0,
        gaps=gaps,
        has_gaps=bool(gaps),
        total_usages=sum(placeholder.usage_count for placeholder in placeholders),
    )


# =============================================================================
# Extraction
# =============================================================================


def _named_capture(target: Any, arity: int, location) -> Capture | None:
    if isinstance(target, Variable):
        return Capture("named_local", function=target.name, arity=arity, location=location)
    if isinstance(target, Call) and not target.args:
        return Capture("named_local", function=target.tag, arity=arity, location=location)
    if isinstance(target, RemoteCall) and target.function is not None and not target.args:
        return Capture(
            "named_remote",
            module=module_name(target.receiver),
            function=target.function,
            arity=arity,
            location=location,
            metadata={"module_ast": target.receiver},
        )
    return None


def extract(node: Any) -> Result:
    if not is_capture(node):
        return failure("not_a_capture", format_error("Not a capture expression", node))
    content = node.args[0]
    location = extract_location(node)

    if isinstance(content, Call) and content.tag == "/" and len(content.args) == 2 \
            and isinstance(content.args[1], Integer):
        capture = _named_capture(content.args[0], content.args[1].value, location)
        if capture is None:
            return failure(
                "unrecognized_capture_pattern",
                format_error("Unrecognized capture pattern", node),
            )
        return success(capture)

    placeholders = find_placeholders(content)
    return success(
        Capture(
            "shorthand",
            arity=max(placeholders) if placeholders else 0,
            expression=content,
            placeholders=placeholders,
            location=location,
        )
    )


def extract_or_raise(node: Any) -> Capture:
    return extract(node).unwrap()


def nested_nodes(capture: Capture) -> list:
    """Sub-expressions still to scan: the body of a shorthand capture."""
    if capture.type == "shorthand" and capture.expression is not None:
        return [capture.expression]
    return []


def _visit(node: Any, depth: int):
    if not _is_nested_capture(node):
        return None
    result = extract(node)
    if not result.ok:
        logger.debug(f"Skipping capture at depth {depth}: {result.error}")
        return None
    return [result.value], nested_nodes(result.value)


def extract_all(ast: Any, max_depth: int | None = None) -> list[Capture]:
    """All captures in the tree, skipping placeholders.

    Captures nested in a shorthand body are separate records; their
    placeholders are not counted for the enclosing capture.
    """
    return walker.collect(ast, _visit, max_depth)


def is_erlang_capture(capture: Capture) -> bool:
    return capture.type == "named_remote" and isinstance(capture.metadata.get("module_ast"), Atom)
