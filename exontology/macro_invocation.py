"""
Macro invocation extraction.

Classifies macro call sites into categories:

- definition: ``def``, ``defmodule``, ``defstruct``, ...
- control_flow: ``if``, ``case``, ``try``, ...
- import: ``import``, ``require``, ``use``, ``alias``
- attribute: ``@name value``
- quote: ``quote``, ``unquote``, ``unquote_splicing``
- library: qualified calls to well-known library macros (``Logger.info``)
- custom: any other qualified call
- other: remaining Kernel macros (``match?``, ``put_in``, sigils, ...)

Kernel forms resolve to ``Kernel``; qualified calls resolve to their
receiver module. Nothing here expands a macro.
"""

from dataclasses import dataclass, field, replace
from typing import Any

from . import module as module_extractor
from .errors import Result, failure, success
from .helpers import extract_location_if, format_error, module_name
from .nodes import Call, RemoteCall, Variable, meta_of, prewalk

DEFINITION_MACROS = frozenset({
    "def", "defp", "defmacro", "defmacrop", "defmodule", "defprotocol", "defimpl",
    "defstruct", "defexception", "defdelegate", "defguard", "defguardp", "defoverridable",
})

CONTROL_FLOW_MACROS = frozenset({
    "if", "unless", "case", "cond", "with", "for", "try", "receive", "raise", "throw", "reraise",
})

IMPORT_MACROS = frozenset({"import", "require", "use", "alias"})

QUOTE_MACROS = frozenset({"quote", "unquote", "unquote_splicing"})

OTHER_KERNEL_MACROS = frozenset({
    "and", "or", "not", "in", "binding", "var!", "match?", "destructure",
    "get_and_update_in", "put_in", "update_in", "get_in", "pop_in",
    "sigil_C", "sigil_c", "sigil_D", "sigil_N", "sigil_R", "sigil_r", "sigil_S", "sigil_s",
    "sigil_T", "sigil_U", "sigil_W", "sigil_w",
})

KERNEL_MACROS = DEFINITION_MACROS | CONTROL_FLOW_MACROS | IMPORT_MACROS | QUOTE_MACROS | OTHER_KERNEL_MACROS

LOGGER_MACROS = frozenset({
    "debug", "info", "notice", "warning", "warn", "error", "critical", "alert", "emergency",
})

ECTO_QUERY_MACROS = frozenset({
    "from", "where", "select", "join", "order_by", "group_by", "having", "limit", "offset",
    "preload", "distinct", "update", "exclude", "lock", "windows", "combinations", "with_cte",
    "recursive_ctes", "subquery", "dynamic", "fragment", "type", "field", "as", "parent_as",
})

PHOENIX_MACROS = frozenset({
    "get", "post", "put", "patch", "delete", "options", "head", "connect", "trace",
    "resources", "resource", "scope", "pipe_through", "pipeline", "forward", "live", "plug",
    "socket", "channel",
})

EXUNIT_MACROS = frozenset({
    "test", "describe", "setup", "setup_all", "assert", "refute", "assert_raise",
    "assert_receive", "refute_receive", "assert_received", "refute_received", "flunk", "doctest",
})

KNOWN_LIBRARY_MACROS = {
    "Logger": LOGGER_MACROS,
    "Ecto.Query": ECTO_QUERY_MACROS,
    "Phoenix.Router": PHOENIX_MACROS,
    "ExUnit.Case": EXUNIT_MACROS,
}

ALL_KNOWN_LIBRARY_MACRO_NAMES = frozenset().union(*KNOWN_LIBRARY_MACROS.values())

CATEGORIES = (
    "definition", "control_flow", "import", "attribute", "quote", "library", "custom", "other",
)

RESOLUTION_STATUSES = ("kernel", "resolved", "unresolved")


@dataclass(frozen=True)
class MacroContext:
    """Where a macro is expanded, in the spirit of ``__CALLER__``."""

    module: str | None = None
    file: str | None = None
    line: int | None = None
    function: tuple[str, int] | None = None
    aliases: list = field(default_factory=list)

    def is_populated(self) -> bool:
        return any(
            value is not None for value in (self.module, self.file, self.line, self.function)
        ) or bool(self.aliases)


@dataclass(frozen=True)
class MacroInvocation:
    macro_module: str | None
    macro_name: str
    arity: int
    arguments: list = field(default_factory=list)
    category: str = "other"
    resolution_status: str = "kernel"
    location: Any = None
    metadata: dict = field(default_factory=dict)


# =============================================================================
# Classification
# =============================================================================


def is_kernel_macro(name: Any) -> bool:
    return name in KERNEL_MACROS


def is_known_library_macro(name: Any) -> bool:
    return name in ALL_KNOWN_LIBRARY_MACRO_NAMES


def is_qualified_call(node: Any) -> bool:
    return isinstance(node, RemoteCall) and node.function is not None


def is_macro_invocation(node: Any) -> bool:
    if isinstance(node, Call):
        return node.tag == "@" or node.tag in KERNEL_MACROS
    return is_qualified_call(node)


def _kernel_category(name: str) -> str:
    if name in DEFINITION_MACROS:
        return "definition"
    if name in CONTROL_FLOW_MACROS:
        return "control_flow"
    if name in IMPORT_MACROS:
        return "import"
    if name in QUOTE_MACROS:
        return "quote"
    return "other"


def _qualified_category(module: str | None, name: str) -> str:
    if name in KNOWN_LIBRARY_MACROS.get(module, ()):
        return "library"
    return "custom"


def _attribute_name(args: tuple) -> str | None:
    if not args:
        return None
    target = args[0]
    if isinstance(target, Call):
        return target.tag
    if isinstance(target, Variable):
        return target.name
    return None


# =============================================================================
# Extraction
# =============================================================================


def extract(node: Any, include_location: bool = True) -> Result:
    location = extract_location_if(node, include_location)
    if isinstance(node, Call) and node.tag == "@":
        return success(
            MacroInvocation(
                macro_module="Kernel",
                macro_name="@",
                arity=len(node.args),
                arguments=list(node.args),
                category="attribute",
                location=location,
                metadata={"attribute_name": _attribute_name(node.args)},
            )
        )
    if isinstance(node, Call) and node.tag in KERNEL_MACROS:
        return success(
            MacroInvocation(
                macro_module="Kernel",
                macro_name=node.tag,
                arity=len(node.args),
                arguments=list(node.args),
                category=_kernel_category(node.tag),
                location=location,
            )
        )
    if is_qualified_call(node):
        module = module_name(node.receiver)
        return success(
            MacroInvocation(
                macro_module=module,
                macro_name=node.function,
                arity=len(node.args),
                arguments=list(node.args),
                category=_qualified_category(module, node.function),
                resolution_status="resolved",
                location=location,
                metadata={"qualified": True},
            )
        )
    return failure(
        "not_a_macro_invocation", format_error("Not a recognized macro invocation", node)
    )


def extract_or_raise(node: Any, include_location: bool = True) -> MacroInvocation:
    return extract(node, include_location).unwrap()


def extract_all(body: Any) -> list[MacroInvocation]:
    """Invocations among the top-level statements of ``body``; no recursion."""
    if body is None:
        return []
    statements = body.args if isinstance(body, Call) and body.tag == "__block__" else (body,)
    invocations = []
    for statement in statements:
        result = extract(statement)
        if result.ok:
            invocations.append(result.value)
    return invocations


def extract_all_recursive(ast: Any) -> list[MacroInvocation]:
    """Invocations anywhere in the tree, in pre-order."""
    invocations = []
    for node in prewalk(ast):
        if is_macro_invocation(node):
            invocations.append(extract(node).value)
    return invocations


def extract_imports(body: Any) -> list[module_extractor.ImportDirective]:
    return module_extractor.extract_imports(body)


def extract_requires(body: Any) -> list[module_extractor.RequireDirective]:
    return module_extractor.extract_requires(body)


# =============================================================================
# Context
# =============================================================================


def _build_context(node: Any, module, file, function, aliases) -> MacroContext:
    meta = meta_of(node)
    return MacroContext(
        module=module,
        file=file if file is not None else meta.get("file"),
        line=meta.get("line"),
        function=function,
        aliases=list(aliases or []),
    )


def extract_with_context(
    node: Any,
    module: str | None = None,
    file: str | None = None,
    function: tuple[str, int] | None = None,
    aliases: list | None = None,
) -> Result:
    """Extract an invocation and attach a ``MacroContext`` under ``metadata["context"]``."""
    result = extract(node)
    if not result.ok:
        return result
    invocation = result.value
    context = _build_context(node, module, file, function, aliases)
    return success(replace(invocation, metadata={**invocation.metadata, "context": context}))


def extract_all_recursive_with_context(ast: Any, **context) -> list[MacroInvocation]:
    invocations = []
    for node in prewalk(ast):
        if is_macro_invocation(node):
            invocations.append(extract_with_context(node, **context).value)
    return invocations


def get_context(invocation: MacroInvocation) -> MacroContext | None:
    return invocation.metadata.get("context")


def has_context(invocation: MacroInvocation) -> bool:
    context = get_context(invocation)
    return context is not None and context.is_populated()


# =============================================================================
# Record helpers
# =============================================================================


def invocation_id(invocation: MacroInvocation) -> str:
    prefix = f"{invocation.macro_module}." if invocation.macro_module else ""
    return f"{prefix}{invocation.macro_name}/{invocation.arity}"


def is_resolved(invocation: MacroInvocation) -> bool:
    return invocation.resolution_status in ("kernel", "resolved")


def is_unresolved(invocation: MacroInvocation) -> bool:
    return invocation.resolution_status == "unresolved"


def is_qualified(invocation: MacroInvocation) -> bool:
    return invocation.metadata.get("qualified") is True


def filter_unresolved(invocations: list[MacroInvocation]) -> list[MacroInvocation]:
    return [invocation for invocation in invocations if is_unresolved(invocation)]
