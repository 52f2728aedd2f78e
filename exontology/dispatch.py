"""
Extraction driver.

Walks a parsed tree depth-first and hands each node to the extractor that
owns it. Ownership is decided by an ordered table of ``(kind, predicate,
extractor)`` rows; the first matching row wins, so definitions are tried
before control flow, control flow before calls, and calls before the
generic operator and literal rows.

Each extracted record only re-scans the sub-expressions that may hold
further constructs (bodies, clause bodies, arguments), never its own shape.
A module is summarised once: its functions, macros, specs, struct,
exception and behaviour are emitted with the module record and are not
reported again when its statements are walked.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from . import anonymous_function
from . import behaviour
from . import block
from . import call
from . import capture
from . import case_with
from . import comprehension
from . import conditional
from . import control_flow
from . import frontend
from . import function
from . import function_spec
from . import literal
from . import macro
from . import macro_invocation
from . import module
from . import operator
from . import pipe
from . import struct
from . import walker
from .clause import clause_bodies
from .errors import Result, failure
from .helpers import format_error, module_name, normalize_body
from .nodes import Call, children, is_alias

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractedRecord:
    kind: str
    record: Any


def _is_callback(node: Any) -> bool:
    return behaviour.is_callback(node) or behaviour.is_macrocallback(node)


def _is_kernel_invocation(node: Any) -> bool:
    if not isinstance(node, Call):
        return False
    if node.tag == "@":
        return True
    # operators and sigils are Kernel macros too, but their own rows own them
    return (
        macro_invocation.is_kernel_macro(node.tag)
        and not operator.is_operator(node)
        and not literal.is_literal(node)
    )


def _is_library_invocation(node: Any) -> bool:
    if not macro_invocation.is_qualified_call(node):
        return False
    names = macro_invocation.KNOWN_LIBRARY_MACROS.get(module_name(node.receiver), ())
    return node.function in names


def _is_macro_invocation(node: Any) -> bool:
    return _is_kernel_invocation(node) or _is_library_invocation(node)


def _is_call(node: Any) -> bool:
    return call.is_dynamic_call(node) or call.is_remote_call(node) or call.is_local_call(node)


def _is_capture(node: Any) -> bool:
    return capture.is_capture(node) and not capture.is_placeholder(node)


Row = tuple[str, Callable[[Any], bool], Callable[[Any], Result]]

EXTRACTORS: tuple[Row, ...] = (
    ("module", module.is_module, module.extract),
    ("function", function.is_function, function.extract),
    ("macro", macro.is_macro, macro.extract),
    ("spec", function_spec.is_spec, function_spec.extract),
    ("callback", _is_callback, behaviour.extract_callback),
    ("struct", struct.is_defstruct, struct.extract),
    ("exception", struct.is_defexception, struct.extract_exception),
    ("try", control_flow.is_try, control_flow.extract_try),
    ("raise", control_flow.is_raise, control_flow.extract_raise),
    ("throw", control_flow.is_throw, control_flow.extract_throw),
    ("conditional", conditional.is_conditional, conditional.extract_conditional),
    ("case", case_with.is_case, case_with.extract_case),
    ("with", case_with.is_with, case_with.extract_with),
    ("receive", case_with.is_receive, case_with.extract_receive),
    ("comprehension", comprehension.is_comprehension, comprehension.extract),
    ("anonymous_function", anonymous_function.is_anonymous_function, anonymous_function.extract),
    ("pipe", pipe.is_pipe_chain, pipe.extract_pipe_chain),
    ("capture", _is_capture, capture.extract),
    ("block", block.is_block, block.extract),
    ("macro_invocation", _is_macro_invocation, macro_invocation.extract),
    ("call", _is_call, call.extract),
    ("operator", operator.is_operator, operator.extract),
    ("literal", literal.is_literal, literal.extract),
)

KINDS = tuple(kind for kind, _, _ in EXTRACTORS)

# Summarised by the enclosing module record
_MODULE_LEVEL_KINDS = frozenset({"function", "macro", "spec", "callback", "struct", "exception"})


def classify(node: Any) -> str | None:
    """Kind of the extractor that owns ``node``, or None."""
    for kind, predicate, _ in EXTRACTORS:
        if predicate(node):
            return kind
    return None


def extract_node(node: Any) -> Result:
    """Extract ``node`` with the extractor that owns it."""
    for kind, predicate, extract in EXTRACTORS:
        if predicate(node):
            return extract(node)
    return failure("unclassified", format_error("No extractor owns this node", node))


# =============================================================================
# Nested sub-expressions per record kind
# =============================================================================


def _definition_body(record: Any) -> list:
    return [record.body] if record.body is not None else []


def _call_nested(node: Any, record: call.FunctionCall) -> list:
    # apply/2, apply/3 and fun.(x): the function and module operands count too
    if record.type == "dynamic":
        return list(children(node))
    return record.arguments


def _invocation_nested(record: macro_invocation.MacroInvocation) -> list:
    if record.category == "attribute" and record.arguments and isinstance(record.arguments[0], Call):
        return list(record.arguments[0].args)
    return record.arguments


_NESTED: dict[str, Callable[[Any, Any], list]] = {
    "function": lambda node, record: _definition_body(record),
    "macro": lambda node, record: _definition_body(record),
    "try": lambda node, record: control_flow.nested_nodes(record),
    "raise": lambda node, record: control_flow.nested_nodes(record),
    "throw": lambda node, record: control_flow.nested_nodes(record),
    "conditional": lambda node, record: conditional.nested_nodes(record),
    "case": lambda node, record: case_with.nested_nodes(record),
    "with": lambda node, record: case_with.nested_nodes(record),
    "receive": lambda node, record: case_with.nested_nodes(record),
    "comprehension": lambda node, record: comprehension.nested_nodes(record),
    "anonymous_function": lambda node, record: clause_bodies(record.clauses),
    "pipe": lambda node, record: pipe.nested_nodes(record),
    "capture": lambda node, record: capture.nested_nodes(record),
    "macro_invocation": lambda node, record: _invocation_nested(record),
    "call": lambda node, record: _call_nested(node, record),
    "operator": lambda node, record: children(node),
    "literal": lambda node, record: children(node),
}


def _nested(kind: str, node: Any, record: Any) -> list:
    nested = _NESTED.get(kind)
    if nested is None:
        return []
    return [child for child in nested(node, record) if child is not None]


# =============================================================================
# Tree extraction
# =============================================================================


def _module_records(node: Any, record: module.Module, full_name: list[str]) -> list[ExtractedRecord]:
    body = module.module_body(node)
    records = [ExtractedRecord("module", record)]
    if struct.defines_struct(body):
        records.append(ExtractedRecord("struct", struct.extract_from_body(body).value))
    if struct.defines_exception(body):
        records.append(ExtractedRecord("exception", struct.extract_exception(body).value))
    if behaviour.defines_behaviour(body):
        records.append(ExtractedRecord("behaviour", behaviour.extract_from_body(body)))
    records.extend(ExtractedRecord("function", f) for f in function.extract_all(body, full_name))
    records.extend(ExtractedRecord("macro", m) for m in macro.extract_all(body))
    records.extend(ExtractedRecord("spec", s) for s in function_spec.extract_all(body))
    return records


def _module_nested(node: Any) -> list:
    """Module statements still to walk; definitions contribute their bodies only."""
    nested = []
    for statement in normalize_body(module.module_body(node)):
        kind = classify(statement)
        if kind in ("function", "macro"):
            body = (function if kind == "function" else macro).extract(statement)
            if body.ok and body.value.body is not None:
                nested.append(body.value.body)
        elif kind not in _MODULE_LEVEL_KINDS:
            nested.append(statement)
    return nested


def extract_tree(ast: Any, max_depth: int | None = None) -> list[ExtractedRecord]:
    """Every construct in ``ast``, each record before the records found inside it.

    Args:
        ast: Root node, typically from ``frontend.parse_source``.
        max_depth: Depth limit, defaults to the shared recursion limit.
            Deeper subtrees contribute nothing.
    """
    parents: dict[int, list[str]] = {}

    def visit(node: Any, depth: int):
        if is_alias(node) or capture.is_placeholder(node):
            return [], ()
        kind = classify(node)
        if kind is None:
            return None
        result = extract_node(node)
        if not result.ok:
            logger.debug(f"Skipping {kind} at depth {depth}: {result.error}")
            return None
        record = result.value
        if kind == "module":
            parent = parents.get(id(node))
            if parent is not None:
                record = module.extract(node, parent_module=parent).value
            full_name = (parent or []) + record.name
            nested = _module_nested(node)
            for statement in nested:
                if module.is_module(statement):
                    parents[id(statement)] = full_name
            return _module_records(node, record, full_name), nested
        return [ExtractedRecord(kind, record)], _nested(kind, node, record)

    return walker.collect(ast, visit, max_depth)


def extract_source(
    source: str | bytes, file_path: Any = "<string>", max_depth: int | None = None
) -> list[ExtractedRecord]:
    return extract_tree(frontend.parse_source(source, file_path), max_depth)


def extract_file(path: str | Path, max_depth: int | None = None) -> list[ExtractedRecord]:
    return extract_tree(frontend.parse_file(path), max_depth)


def extract_files(paths, max_depth: int | None = None) -> dict[Path, list[ExtractedRecord]]:
    """Records per file; files that cannot be read or parsed are logged and skipped."""
    results = {}
    for path in paths:
        file_path = Path(path)
        try:
            results[file_path] = extract_file(file_path, max_depth)
        except (frontend.ParseError, frontend.FileTooLargeError, OSError, ValueError) as e:
            logger.warning(f"Skipping {file_path}: {e}")
        except RecursionError:
            logger.warning(f"Skipping {file_path}: nesting too deep to convert")
    return results
