"""
Source locations for extracted records.

Positions come from node metadata: ``line`` and ``column`` for the start,
and the ``end``, ``closing`` or ``end_of_expression`` entries (each a
``{"line", "column"}`` dict) for the end of the construct.
"""

from dataclasses import dataclass
from typing import Any

from .nodes import children, meta_of

ESTIMATE_MAX_DEPTH = 100

_END_KEYS = ("end", "closing", "end_of_expression")


@dataclass(frozen=True)
class SourceLocation:
    start_line: int
    start_column: int
    end_line: int | None = None
    end_column: int | None = None

    def to_dict(self) -> dict:
        d = {"start": [self.start_line, self.start_column]}
        if self.end_line is not None:
            d["end"] = [self.end_line, self.end_column]
        return d


def _position(meta: Any) -> tuple[int, int] | None:
    if not isinstance(meta, dict):
        return None
    line = meta.get("line")
    column = meta.get("column")
    if isinstance(line, int) and isinstance(column, int) and line > 0 and column > 0:
        return line, column
    return None


def _end_position(meta: dict) -> tuple[int, int] | None:
    for key in _END_KEYS:
        position = _position(meta.get(key))
        if position is not None:
            return position
    return None


def extract_location(node: Any) -> SourceLocation | None:
    """Start-only location, or None when the node carries no position."""
    start = _position(meta_of(node))
    if start is None:
        return None
    return SourceLocation(start[0], start[1])


def extract_range(node: Any) -> SourceLocation | None:
    """Start location plus the end position recorded in metadata, if any."""
    meta = meta_of(node)
    start = _position(meta)
    if start is None:
        return None
    end = _end_position(meta)
    if end is None:
        return SourceLocation(start[0], start[1])
    return SourceLocation(start[0], start[1], end[0], end[1])


def span(start_node: Any, end_node: Any) -> SourceLocation | None:
    """Location running from the start of one node to the end of another."""
    start = _position(meta_of(start_node))
    if start is None:
        return None
    end_meta = meta_of(end_node)
    end = _end_position(end_meta) or _position(end_meta)
    if end is None:
        return SourceLocation(start[0], start[1])
    return SourceLocation(start[0], start[1], end[0], end[1])


def estimate_end(node: Any, max_depth: int = ESTIMATE_MAX_DEPTH) -> tuple[int, int] | None:
    """Furthest position found in the node or its descendants."""

    def walk(current: Any, depth: int) -> tuple[int, int] | None:
        if depth > max_depth:
            return None
        meta = meta_of(current)
        best = _end_position(meta) or _position(meta)
        for child in children(current):
            found = walk(child, depth + 1)
            if found is not None and (best is None or found > best):
                best = found
        return best

    return walk(node, 0)


def extract_range_with_estimate(node: Any) -> SourceLocation | None:
    """Like extract_range, estimating the end from descendants when metadata lacks one."""
    location = extract_range(node)
    if location is None or location.end_line is not None:
        return location
    end = estimate_end(node)
    if end is None:
        return location
    return SourceLocation(location.start_line, location.start_column, end[0], end[1])
