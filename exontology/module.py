"""
Module definition extraction.

Produces the module name, docstring, directive lists and shallow
function/macro/type summaries. Nested ``defmodule`` blocks are not
descended into; their names are listed in ``metadata["nested_modules"]``
so the caller can extract them with ``parent_module`` set.
"""

from dataclasses import dataclass, field
from typing import Any

from .errors import Result, failure, success
from .helpers import (
    attribute_parts,
    extract_location_if,
    extract_moduledoc,
    format_error,
    module_parts,
    normalize_body,
    split_definition_head,
)
from .location import SourceLocation, extract_location
from .nodes import Atom, Call, ListNode, RemoteCall, Variable, is_alias, is_call, keyword_get

TYPE_ATTRIBUTES = {"type": "public", "typep": "private", "opaque": "opaque"}


@dataclass(frozen=True)
class AliasDirective:
    module: list[str]
    as_: str | None = None
    location: SourceLocation | None = None


@dataclass(frozen=True)
class ImportDirective:
    module: list[str]
    only: Any = None
    except_: Any = None
    location: SourceLocation | None = None


@dataclass(frozen=True)
class RequireDirective:
    module: list[str]
    as_: str | None = None
    location: SourceLocation | None = None


@dataclass(frozen=True)
class UseDirective:
    module: list[str]
    options: Any = None
    location: SourceLocation | None = None


@dataclass(frozen=True)
class Module:
    type: str  # "module" or "nested_module"
    name: list[str]
    docstring: str | bool | None = None
    aliases: list[AliasDirective] = field(default_factory=list)
    imports: list[ImportDirective] = field(default_factory=list)
    requires: list[RequireDirective] = field(default_factory=list)
    uses: list[UseDirective] = field(default_factory=list)
    functions: list[dict] = field(default_factory=list)
    macros: list[dict] = field(default_factory=list)
    types: list[dict] = field(default_factory=list)
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


def is_module(node: Any) -> bool:
    return is_call(node, "defmodule", 2)


def _module_body(node: Call) -> Any:
    opts = node.args[1]
    return keyword_get(opts, "do") if isinstance(opts, ListNode) else None


# =============================================================================
# Directives
# =============================================================================


def _directives(body: Any, tag: str) -> list[Call]:
    return [statement for statement in normalize_body(body) if is_call(statement, tag)]


def _directive_args(node: Call) -> tuple[Any, Any]:
    target = node.args[0] if node.args else None
    opts = node.args[1] if len(node.args) > 1 else None
    return target, opts


def _short_name(node: Any) -> str | None:
    parts = module_parts(node)
    if parts is None:
        return None
    return parts[-1] if is_alias(node) else parts[0]


def _multi_alias_targets(node: Any) -> list[list[str]] | None:
    """Expanded targets of ``alias Foo.{Bar, Baz}``."""
    if not (isinstance(node, RemoteCall) and node.function == "{}"):
        return None
    base = module_parts(node.receiver) or []
    return [base + (module_parts(member) or []) for member in node.args]


def extract_aliases(body: Any) -> list[AliasDirective]:
    aliases = []
    for node in _directives(body, "alias"):
        target, opts = _directive_args(node)
        location = extract_location(node)
        expanded = _multi_alias_targets(target)
        if expanded is not None:
            aliases.extend(AliasDirective(parts, None, location) for parts in expanded)
            continue
        as_ = _short_name(keyword_get(opts, "as")) if isinstance(opts, ListNode) else None
        aliases.append(AliasDirective(module_parts(target) or [], as_, location))
    return aliases


def extract_imports(body: Any) -> list[ImportDirective]:
    imports = []
    for node in _directives(body, "import"):
        target, opts = _directive_args(node)
        only = keyword_get(opts, "only") if isinstance(opts, ListNode) else None
        except_ = keyword_get(opts, "except") if isinstance(opts, ListNode) else None
        imports.append(
            ImportDirective(module_parts(target) or [], only, except_, extract_location(node))
        )
    return imports


def extract_requires(body: Any) -> list[RequireDirective]:
    requires = []
    for node in _directives(body, "require"):
        target, opts = _directive_args(node)
        as_ = _short_name(keyword_get(opts, "as")) if isinstance(opts, ListNode) else None
        requires.append(RequireDirective(module_parts(target) or [], as_, extract_location(node)))
    return requires


def extract_uses(body: Any) -> list[UseDirective]:
    uses = []
    for node in _directives(body, "use"):
        target, opts = _directive_args(node)
        uses.append(
            UseDirective(
                module_parts(target) or [],
                opts if opts is not None else ListNode(),
                extract_location(node),
            )
        )
    return uses


# =============================================================================
# Summaries
# =============================================================================


def _unique_signatures(entries: list[dict]) -> list[dict]:
    seen = set()
    unique = []
    for entry in entries:
        key = (entry["name"], entry["arity"])
        if key not in seen:
            seen.add(key)
            unique.append(entry)
    return unique


def _definitions(body: Any, tags: dict) -> list[dict]:
    summaries = []
    for statement in normalize_body(body):
        if not (isinstance(statement, Call) and statement.tag in tags and statement.args):
            continue
        if len(statement.args) > 2:
            continue
        head = split_definition_head(statement.args[0])
        if head is not None:
            summaries.append(
                {"name": head[0], "arity": len(head[1]), "visibility": tags[statement.tag]}
            )
    return _unique_signatures(summaries)


def extract_functions(body: Any) -> list[dict]:
    return _definitions(body, {"def": "public", "defp": "private"})


def extract_macros(body: Any) -> list[dict]:
    return _definitions(body, {"defmacro": "public", "defmacrop": "private"})


def _type_signature(node: Any) -> tuple[str, int] | None:
    if is_call(node, "::", 2):
        node = node.args[0]
    if isinstance(node, Variable):
        return node.name, 0
    if isinstance(node, Call) and node.tag not in ("::", "when"):
        return node.tag, len(node.args)
    return None


def extract_types(body: Any) -> list[dict]:
    types = []
    for statement in normalize_body(body):
        parts = attribute_parts(statement)
        if parts is None or parts[0] not in TYPE_ATTRIBUTES or len(parts[1]) != 1:
            continue
        signature = _type_signature(parts[1][0])
        if signature is not None:
            types.append(
                {
                    "name": signature[0],
                    "arity": signature[1],
                    "visibility": TYPE_ATTRIBUTES[parts[0]],
                }
            )
    return _unique_signatures(types)


def extract_nested_module_names(body: Any) -> list[list[str]]:
    names = []
    for statement in normalize_body(body):
        if is_module(statement):
            parts = module_parts(statement.args[0])
            if parts is not None:
                names.append(parts)
    return names


# =============================================================================
# Extraction
# =============================================================================


def extract(
    node: Any, parent_module: list[str] | None = None, include_location: bool = True
) -> Result:
    if not is_module(node):
        return failure("not_a_module", format_error("Not a module definition", node))
    name_node = node.args[0]
    if not (is_alias(name_node) or isinstance(name_node, Atom)):
        return failure("not_a_module", format_error("Not a module definition", node))

    body = _module_body(node)
    docstring = extract_moduledoc(normalize_body(body))
    return success(
        Module(
            type="nested_module" if parent_module else "module",
            name=module_parts(name_node),
            docstring=docstring,
            aliases=extract_aliases(body),
            imports=extract_imports(body),
            requires=extract_requires(body),
            uses=extract_uses(body),
            functions=extract_functions(body),
            macros=extract_macros(body),
            types=extract_types(body),
            location=extract_location_if(node, include_location),
            metadata={
                "parent_module": parent_module,
                "has_moduledoc": docstring is not None,
                "nested_modules": extract_nested_module_names(body),
            },
        )
    )


def extract_or_raise(node: Any, parent_module: list[str] | None = None) -> Module:
    return extract(node, parent_module).unwrap()


def module_name_string(module: Module) -> str:
    return ".".join(module.name)


def has_docs(module: Module) -> bool:
    return isinstance(module.docstring, str)


def docs_hidden(module: Module) -> bool:
    return module.docstring is False


def module_body(node: Any) -> Any:
    """The ``do`` body of a ``defmodule`` node, or None."""
    return _module_body(node) if is_module(node) else None
